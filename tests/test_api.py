import re
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from insights.auth.tokens import create_access_token
from insights.dashboard.reports import reporting_service

API = "/api/v1/dashboard"
CODE_PATTERN = re.compile(r"^[0-9A-F]{6}$")

ADMIN_ROUTES = [
    ("get", "/applications-status"),
    ("get", "/analytics"),
    ("get", "/visitors"),
    ("get", "/referrals"),
    ("post", "/referrals"),
    ("get", "/promo-links"),
    ("post", "/promo-links"),
]


class TestAccessControl:
    @pytest.mark.parametrize("method,path", ADMIN_ROUTES + [("get", "/stats"), ("get", "/activity")])
    def test_requires_token(self, client, method, path):
        response = getattr(client, method)(API + path)
        assert response.status_code == 401

    @pytest.mark.parametrize("method,path", ADMIN_ROUTES)
    def test_students_are_forbidden(self, client, student, auth_headers, method, path):
        response = getattr(client, method)(API + path, headers=auth_headers(student))
        assert response.status_code == 403

    def test_token_for_unknown_user_is_rejected(self, client, auth_headers, mocker):
        response = client.get(API + "/stats", headers=auth_headers(mocker.Mock(id=9999)))
        assert response.status_code == 401

    def test_expired_token_is_rejected(self, client, student):
        token = create_access_token(student.id, expires_in=timedelta(seconds=-5))

        response = client.get(API + "/stats", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestReferralEndpoints:
    def test_create_and_list(self, client, admin, auth_headers):
        headers = auth_headers(admin)

        created = client.post(API + "/referrals", json={"description": "Autumn mailer"}, headers=headers)

        assert created.status_code == 201
        referral = created.json()["referral"]
        assert CODE_PATTERN.match(referral["code"])
        assert referral["description"] == "Autumn mailer"
        assert referral["clicks"] == 0
        assert referral["createdBy"] == {"id": admin.id, "name": "Admin", "email": "admin@example.com"}

        listed = client.get(API + "/referrals", headers=headers).json()["referrals"]
        assert [r["code"] for r in listed] == [referral["code"]]

    def test_create_without_body(self, client, admin, auth_headers):
        response = client.post(API + "/referrals", headers=auth_headers(admin))

        assert response.status_code == 201
        assert response.json()["referral"]["description"] is None

    def test_oversized_description(self, client, admin, auth_headers):
        response = client.post(
            API + "/referrals", json={"description": "x" * 501}, headers=auth_headers(admin)
        )

        assert response.status_code == 400
        assert "500" in response.json()["message"]

    def test_clicks_visible_after_tracked_visit(self, client, admin, auth_headers):
        headers = auth_headers(admin)
        code = client.post(API + "/referrals", headers=headers).json()["referral"]["code"]

        client.post(API + "/track-visit", json={"page": "landing", "referral": code.lower()})

        [listed] = client.get(API + "/referrals", headers=headers).json()["referrals"]
        assert listed["clicks"] == 1

    def test_promo_links_are_a_separate_list(self, client, admin, auth_headers):
        headers = auth_headers(admin)

        created = client.post(API + "/promo-links", json={"description": "Flyer"}, headers=headers)

        assert created.status_code == 201
        promo = created.json()["promoLink"]
        assert CODE_PATTERN.match(promo["code"])
        assert client.get(API + "/referrals", headers=headers).json() == {"referrals": []}
        listed = client.get(API + "/promo-links", headers=headers).json()["promoLinks"]
        assert [p["code"] for p in listed] == [promo["code"]]


class TestDashboardEndpoints:
    def test_stats(self, client, student, auth_headers, make_application):
        make_application(student)

        response = client.get(API + "/stats", headers=auth_headers(student))

        assert response.status_code == 200
        assert response.json()["myApplications"] == 1

    def test_garbage_query_values_are_defaulted(self, client, admin, auth_headers):
        headers = auth_headers(admin)

        analytics = client.get(API + "/analytics?days=soon", headers=headers)
        visitors = client.get(API + "/visitors?page=-2&limit=abc&type=robots", headers=headers)
        applications = client.get(
            API + "/applications-status?page=x&limit=9999&status=archived", headers=headers
        )

        assert analytics.status_code == 200
        assert analytics.json()["period"] == "30 days"
        assert visitors.status_code == 200
        assert visitors.json()["page"] == 1
        assert applications.status_code == 200
        assert applications.json()["page"] == 1

    def test_store_failure_is_500_with_message(self, client, admin, auth_headers, mocker):
        mocker.patch.object(
            reporting_service,
            "visitor_analytics",
            side_effect=OperationalError("SELECT", {}, Exception("db down")),
        )

        response = client.get(API + "/analytics", headers=auth_headers(admin))

        assert response.status_code == 500
        assert "message" in response.json()


class TestServiceEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_security_headers(self, client):
        response = client.get("/")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
