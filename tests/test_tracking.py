import pytest
from sqlalchemy.exc import OperationalError

from insights.api.rate_limit import limiter
from insights.referral.service import promo_registry, referral_registry
from insights.settings import settings
from insights.storage.db import db
from insights.tracking.models import AttributionSource
from insights.tracking.service import RequestContext, VisitInput, visitor_recorder

TRACK_URL = "/api/v1/dashboard/track-visit"


class TestTrackVisitEndpoint:
    def test_anonymous_visit(self, client, recorded_events):
        response = client.post(
            TRACK_URL,
            json={"page": "browse", "sessionId": "sess-1", "timeSpent": 12.5},
            headers={"User-Agent": "pytest-agent", "Referer": "https://news.example.com/"},
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}

        [event] = recorded_events()
        assert event.user_id is None
        assert event.is_authenticated is False
        assert event.page == "browse"
        assert event.session_id == "sess-1"
        assert event.time_spent == 12.5
        assert event.user_agent == "pytest-agent"
        assert event.referrer == "https://news.example.com/"
        assert event.ip_address
        assert event.attribution_code is None
        assert event.attribution_source is None

    def test_authenticated_visit(self, client, student, auth_headers, recorded_events):
        response = client.post(TRACK_URL, json={"page": "dashboard"}, headers=auth_headers(student))

        assert response.json() == {"ok": True}
        [event] = recorded_events()
        assert event.user_id == student.id
        assert event.is_authenticated is True

    def test_invalid_token_is_tracked_as_anonymous(self, client, recorded_events):
        response = client.post(
            TRACK_URL, json={"page": "browse"}, headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.json() == {"ok": True}
        [event] = recorded_events()
        assert event.user_id is None
        assert event.is_authenticated is False

    def test_defaults_when_body_missing(self, client, recorded_events):
        response = client.post(TRACK_URL)

        assert response.json() == {"ok": True}
        [event] = recorded_events()
        assert event.page == "landing"
        assert event.session_id is None
        assert event.time_spent == 0

    def test_beacon_text_plain_body_is_parsed(self, client, recorded_events):
        response = client.post(
            TRACK_URL,
            content=b'{"page": "browse", "timeSpent": 4}',
            headers={"Content-Type": "text/plain;charset=UTF-8"},
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        [event] = recorded_events()
        assert event.page == "browse"
        assert event.time_spent == 4

    def test_array_body_records_default_visit(self, client, recorded_events):
        response = client.post(TRACK_URL, json=[1, 2])

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        [event] = recorded_events()
        assert event.page == "landing"

    def test_malformed_json_records_default_visit(self, client, recorded_events):
        response = client.post(
            TRACK_URL, content=b'{"page":', headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        [event] = recorded_events()
        assert event.page == "landing"

    def test_bad_time_spent_becomes_zero(self, client, recorded_events):
        client.post(TRACK_URL, json={"page": "browse", "timeSpent": "a while"})
        client.post(TRACK_URL, json={"page": "browse", "timeSpent": -5})

        assert [event.time_spent for event in recorded_events()] == [0, 0]

    def test_matching_referral_increments_clicks_once(self, client, admin):
        referral = referral_registry.create("Newsletter", admin.id)

        response = client.post(TRACK_URL, json={"page": "landing", "referral": referral.code})

        assert response.json() == {"ok": True}
        assert referral_registry.get(referral.code).clicks == 1

    def test_unknown_referral_still_records(self, client, admin, recorded_events):
        referral = referral_registry.create("Newsletter", admin.id)

        response = client.post(TRACK_URL, json={"page": "landing", "referral": "nope42"})

        assert response.json() == {"ok": True}
        assert referral_registry.get(referral.code).clicks == 0
        [event] = recorded_events()
        assert event.attribution_code == "NOPE42"
        assert event.attribution_source is AttributionSource.REFERRAL

    def test_promo_tag_counts_against_promo_links(self, client, admin, recorded_events):
        promo = promo_registry.create("Campus fair", admin.id)

        client.post(TRACK_URL, json={"page": "landing", "promo": promo.code})

        assert promo_registry.get(promo.code).clicks == 1
        [event] = recorded_events()
        assert event.attribution_source is AttributionSource.PROMO
        assert event.attribution_code == promo.code

    def test_referral_wins_when_both_tags_sent(self, client, admin, recorded_events):
        referral = referral_registry.create("r", admin.id)
        promo = promo_registry.create("p", admin.id)

        client.post(TRACK_URL, json={"referral": referral.code, "promo": promo.code})

        [event] = recorded_events()
        assert event.attribution_source is AttributionSource.REFERRAL
        assert referral_registry.get(referral.code).clicks == 1
        assert promo_registry.get(promo.code).clicks == 0

    def test_store_failure_returns_soft_failure(self, client, mocker):
        mocker.patch.object(
            db, "session", side_effect=OperationalError("INSERT", {}, Exception("db down"))
        )

        response = client.post(TRACK_URL, json={"page": "landing", "referral": "ABC123"})

        assert response.status_code == 500
        assert response.json() == {"ok": False}


class TestVisitorEventRecorder:
    def test_dispatches_hit_after_write(self, mocker):
        schedule = mocker.Mock()

        outcome = visitor_recorder.record(
            VisitInput(page="landing", referral=" abc123 "),
            RequestContext(),
            schedule=schedule,
        )

        assert outcome.ok is True
        assert outcome.event_id is not None
        schedule.assert_called_once_with(referral_registry.record_hit, "ABC123")

    def test_no_dispatch_without_code(self, mocker):
        schedule = mocker.Mock()

        visitor_recorder.record(VisitInput(page="landing"), RequestContext(), schedule=schedule)

        schedule.assert_not_called()

    def test_no_dispatch_when_write_fails(self, mocker):
        mocker.patch.object(
            db, "session", side_effect=OperationalError("INSERT", {}, Exception("db down"))
        )
        schedule = mocker.Mock()

        outcome = visitor_recorder.record(
            VisitInput(referral="ABC123"), RequestContext(), schedule=schedule
        )

        assert outcome.ok is False
        schedule.assert_not_called()

    def test_failing_hit_does_not_affect_outcome(self, mocker):
        mocker.patch.object(
            referral_registry, "record_hit", side_effect=AssertionError("must not propagate")
        )
        schedule = mocker.Mock()

        outcome = visitor_recorder.record(
            VisitInput(referral="ABC123"), RequestContext(), schedule=schedule
        )

        # The hit is only handed to the scheduler, never awaited here
        assert outcome.ok is True
        schedule.assert_called_once()


class TestTrackVisitRateLimit:
    @pytest.fixture
    def enforced_limiter(self, mocker):
        mocker.patch.object(limiter, "enabled", True)
        limiter.reset()
        yield limiter
        limiter.reset()

    def test_tracker_limit_comes_from_settings(self, client, enforced_limiter):
        allowed = int(settings.track_visit_rate_limit.split("/")[0])

        statuses = [client.post(TRACK_URL).status_code for _ in range(allowed + 1)]

        assert statuses[:allowed] == [200] * allowed
        assert statuses[-1] == 429

    def test_default_limit_matches_tracker_limit(self):
        allowed = int(settings.track_visit_rate_limit.split("/")[0])

        [group] = limiter._default_limits
        assert [limit.limit.amount for limit in group] == [allowed]
