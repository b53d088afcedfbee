"""Admin-triggered encouragement emails for users who never applied."""

from typing import Any

from sqlalchemy import func

from insights.auth.models import User
from insights.email.service import EmailService, email_service
from insights.errors import AlreadyAppliedError, DeliveryError, NotFoundError
from insights.logging_config import get_logger
from insights.storage.db import db
from insights.storage.models import Application, Opportunity

logger = get_logger(__name__)


class EncouragementService:
    """Sends the "you haven't applied yet" email.

    No record of sent emails is kept, so repeated calls send again.
    """

    def __init__(self, mailer: EmailService | None = None):
        self.mailer = mailer or email_service
        self.logger = get_logger(__name__)

    async def send(self, target_user_id: Any) -> None:
        """Email a user who has no application yet.

        Args:
            target_user_id: User ID (path value; non-numeric means not found)

        Raises:
            NotFoundError: Unknown user
            AlreadyAppliedError: User has at least one application
            DeliveryError: Email collaborator failed
        """
        try:
            user_id = int(target_user_id)
        except (TypeError, ValueError):
            raise NotFoundError("User not found")

        with db.session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")

            has_applied = (
                session.query(Application.id)
                .filter(Application.user_id == user_id)
                .first()
                is not None
            )
            if has_applied:
                raise AlreadyAppliedError("User has already applied")

            opportunities_count = (
                session.query(func.count(Opportunity.id))
                .filter(Opportunity.is_active.is_(True))
                .scalar()
                or 0
            )
            email, name = user.email, user.name

        result = await self.mailer.send_encouragement_email(email, name, opportunities_count)
        if not result.ok:
            self.logger.error("encouragement_failed", user_id=user_id, error=result.error)
            raise DeliveryError("Failed to send email", result.error)

        self.logger.info(
            "encouragement_sent",
            user_id=user_id,
            opportunities=opportunities_count,
        )


# Singleton instance
encouragement_service = EncouragementService()
