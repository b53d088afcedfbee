"""Registry service for referral codes and promo links."""

import secrets
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from insights.errors import CodeCreationError, ValidationError
from insights.logging_config import get_logger
from insights.referral.models import AttributionCodeMixin, PromoLink, ReferralCode
from insights.settings import settings
from insights.storage.db import db
from insights.tracking.models import AttributionSource

logger = get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 500


def generate_code() -> str:
    """Generate a short shareable code.

    Hex of ``code_random_bytes`` random bytes, uppercased (6 chars by default).
    """
    return secrets.token_bytes(settings.code_random_bytes).hex().upper()


def normalize_code(code: str | None) -> str | None:
    """Strip and uppercase a code coming from a link or form."""
    if code is None:
        return None
    code = str(code).strip().upper()
    return code or None


class AttributionRegistry:
    """Create, list and count clicks for one kind of attribution code."""

    def __init__(self, model: type[AttributionCodeMixin], source: AttributionSource):
        """Initialize registry.

        Args:
            model: ReferralCode or PromoLink
            source: Attribution namespace the model serves
        """
        self.model = model
        self.source = source
        self.logger = get_logger(__name__).bind(source=source.value)

    def create(self, description: str | None, creator_id: int | None) -> AttributionCodeMixin:
        """Create a new code with a freshly generated unique value.

        Args:
            description: Free text shown in the admin list
            creator_id: Admin user creating the code

        Returns:
            Persisted code record

        Raises:
            ValidationError: Description too long
            CodeCreationError: All generated codes collided or the write failed
        """
        if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters"
            )

        try:
            with db.session() as session:
                code = generate_code()
                attempts = 0
                while self._exists(session, code):
                    if attempts >= settings.code_max_attempts:
                        self.logger.error("code_generation_exhausted", attempts=attempts + 1)
                        raise CodeCreationError("Could not generate a unique code")
                    code = generate_code()
                    attempts += 1

                record = self.model(
                    code=code,
                    description=description,
                    created_by_id=creator_id,
                    clicks=0,
                )
                session.add(record)
                session.commit()
                session.refresh(record)
        except IntegrityError as e:
            # Another request took the same code between check and insert
            self.logger.warning("code_insert_conflict", error=str(e.orig))
            raise CodeCreationError("Could not generate a unique code") from e
        except SQLAlchemyError as e:
            self.logger.error("code_insert_failed", error=str(e))
            raise CodeCreationError(str(e)) from e

        self.logger.info(
            "attribution_code_created",
            code=record.code,
            creator_id=creator_id,
            attempts=attempts + 1,
        )
        return record

    def _exists(self, session, code: str) -> bool:
        return session.query(self.model.id).filter(self.model.code == code).first() is not None

    def get(self, code: str) -> AttributionCodeMixin | None:
        """Look up a code (case-insensitive input)."""
        code = normalize_code(code)
        if not code:
            return None

        with db.session() as session:
            return session.query(self.model).filter(self.model.code == code).first()

    def record_hit(self, code: str | None) -> bool:
        """Best-effort click increment.

        Never raises: an unknown code or a store error is logged and
        reported as False.

        Args:
            code: Code carried by the visit

        Returns:
            True if a counter was incremented
        """
        code = normalize_code(code)
        if not code:
            return False

        try:
            with db.session() as session:
                result = session.execute(
                    update(self.model)
                    .where(self.model.code == code)
                    .values(clicks=self.model.clicks + 1, updated_at=datetime.utcnow())
                )
                matched = result.rowcount > 0
        except SQLAlchemyError as e:
            self.logger.warning("attribution_hit_failed", code=code, error=str(e))
            return False

        if matched:
            self.logger.debug("attribution_hit_recorded", code=code)
        else:
            self.logger.debug("attribution_hit_unknown_code", code=code)
        return matched

    def list(self) -> list[AttributionCodeMixin]:
        """All codes, newest first.

        Not paginated; fine while the number of codes stays small.
        """
        with db.session() as session:
            return (
                session.query(self.model)
                .order_by(self.model.created_at.desc(), self.model.id.desc())
                .all()
            )


# Singleton instances
referral_registry = AttributionRegistry(ReferralCode, AttributionSource.REFERRAL)
promo_registry = AttributionRegistry(PromoLink, AttributionSource.PROMO)

REGISTRIES = {
    AttributionSource.REFERRAL: referral_registry,
    AttributionSource.PROMO: promo_registry,
}


def registry_for(source: AttributionSource) -> AttributionRegistry:
    return REGISTRIES[source]
