"""Integration tests for login, license login and self-service routes."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from edutrack.api.db.accounts import AccountRepository
from edutrack.core.constants import (
    MSG_ACCOUNT_INACTIVE,
    MSG_INVALID_CREDENTIALS,
    MSG_LICENSE_EXPIRED,
    MSG_LICENSE_INACTIVE,
    MSG_LICENSE_KEY_INVALID,
    MSG_LICENSE_OK,
    MSG_LICENSE_OK_NEEDS_SECRETARY,
    MSG_TENANT_LICENSE_EXPIRED,
    MSG_TENANT_LICENSE_INACTIVE,
)
from edutrack.saas.account import Role

from support import PASSWORD, Harness


class TestLogin:
    def test_success(self, harness: Harness) -> None:
        school = harness.create_school("a")
        response = harness.client.post(
            "/auth/login", json={"email": "sec@a.test", "password": PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["role"] == "secretary"
        assert data["user"] == {
            "id": school.secretary.id,
            "name": school.secretary.name,
            "email": "sec@a.test",
        }

    def test_missing_fields(self, harness: Harness) -> None:
        response = harness.client.post("/auth/login", json={"email": "sec@a.test"})
        assert response.status_code == 400
        assert "message" in response.json()

    def test_malformed_body(self, harness: Harness) -> None:
        response = harness.client.post(
            "/auth/login",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid request."}

    def test_unknown_email(self, harness: Harness) -> None:
        response = harness.client.post(
            "/auth/login", json={"email": "nobody@a.test", "password": PASSWORD}
        )
        assert response.status_code == 401
        assert response.json()["message"] == MSG_INVALID_CREDENTIALS

    def test_wrong_password(self, harness: Harness) -> None:
        harness.create_school("a")
        response = harness.client.post(
            "/auth/login", json={"email": "sec@a.test", "password": "wrong"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == MSG_INVALID_CREDENTIALS

    def test_inactive_account(self, harness: Harness) -> None:
        school = harness.create_school("a")
        harness.run(AccountRepository(harness.engine).update, replace(school.teacher, active=False))
        response = harness.client.post(
            "/auth/login", json={"email": "teacher@a.test", "password": PASSWORD}
        )
        assert response.status_code == 401
        assert response.json()["message"] == MSG_ACCOUNT_INACTIVE

    def test_expired_license(self, harness: Harness) -> None:
        school = harness.create_school("a")
        school.tenant.license.expiry_at = datetime.now(timezone.utc) - timedelta(days=1)
        harness.run(harness.tenants.save_license, school.tenant.license)
        response = harness.client.post(
            "/auth/login", json={"email": "sec@a.test", "password": PASSWORD}
        )
        assert response.status_code == 401
        assert response.json()["message"] == MSG_TENANT_LICENSE_EXPIRED

    def test_inactive_license(self, harness: Harness) -> None:
        school = harness.create_school("a")
        school.tenant.license.active = False
        harness.run(harness.tenants.save_license, school.tenant.license)
        response = harness.client.post(
            "/auth/login", json={"email": "sec@a.test", "password": PASSWORD}
        )
        assert response.status_code == 401
        assert response.json()["message"] == MSG_TENANT_LICENSE_INACTIVE


class TestLicenseLogin:
    def test_new_tenant_needs_secretary(self, harness: Harness) -> None:
        tenant = harness.create_tenant()
        response = harness.client.post("/auth/license", json={"license_key": tenant.license_key})
        assert response.status_code == 200
        data = response.json()
        assert data["tenant_id"] == tenant.tenant_id
        assert data["tenant_name"] == tenant.name
        assert data["message"] == MSG_LICENSE_OK_NEEDS_SECRETARY
        assert "token" not in data

    def test_tenant_with_secretary(self, harness: Harness) -> None:
        tenant = harness.create_tenant()
        harness.create_account(tenant, "sec@a.test", Role.SECRETARY)
        response = harness.client.post(
            "/auth/license", json={"license_key": f"  {tenant.license_key} "}
        )
        assert response.status_code == 200
        assert response.json()["message"] == MSG_LICENSE_OK

    def test_missing_key(self, harness: Harness) -> None:
        response = harness.client.post("/auth/license", json={"license_key": "   "})
        assert response.status_code == 400

    def test_unknown_key(self, harness: Harness) -> None:
        response = harness.client.post("/auth/license", json={"license_key": "0000-0000-0000-0000"})
        assert response.status_code == 401
        assert response.json()["message"] == MSG_LICENSE_KEY_INVALID

    def test_expired_key(self, harness: Harness) -> None:
        tenant = harness.create_tenant()
        tenant.license.expiry_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        harness.run(harness.tenants.save_license, tenant.license)
        response = harness.client.post("/auth/license", json={"license_key": tenant.license_key})
        assert response.status_code == 401
        assert response.json()["message"] == MSG_LICENSE_EXPIRED

    def test_inactive_key(self, harness: Harness) -> None:
        tenant = harness.create_tenant()
        tenant.license.active = False
        harness.run(harness.tenants.save_license, tenant.license)
        response = harness.client.post("/auth/license", json={"license_key": tenant.license_key})
        assert response.status_code == 401
        assert response.json()["message"] == MSG_LICENSE_INACTIVE

    def test_regenerated_key_replaces_old(self, harness: Harness) -> None:
        tenant = harness.create_tenant()
        old_key = tenant.license_key
        renewed = harness.run(harness.provisioning.regenerate_license, tenant.tenant_id, 30)
        assert renewed.key != old_key

        old = harness.client.post("/auth/license", json={"license_key": old_key})
        new = harness.client.post("/auth/license", json={"license_key": renewed.key})
        assert old.status_code == 401
        assert new.status_code == 200


class TestSelfService:
    def test_me(self, harness: Harness) -> None:
        school = harness.create_school("a")
        headers = harness.login("student@a.test")
        response = harness.client.get("/auth/me", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == school.student.id
        assert data["role"] == "student"
        assert "password_hash" not in data

    def test_no_token(self, harness: Harness) -> None:
        response = harness.client.get("/auth/me")
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized."}

    def test_garbage_token(self, harness: Harness) -> None:
        response = harness.client.get("/auth/me", headers={"Authorization": "Bearer a.b.c"})
        assert response.status_code == 401

    def test_deactivation_applies_to_live_token(self, harness: Harness) -> None:
        school = harness.create_school("a")
        headers = harness.login("teacher@a.test")
        harness.run(AccountRepository(harness.engine).update, replace(school.teacher, active=False))
        response = harness.client.get("/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["message"] == MSG_ACCOUNT_INACTIVE

    def test_change_password(self, harness: Harness) -> None:
        harness.create_school("a")
        headers = harness.login("teacher@a.test")
        response = harness.client.post(
            "/auth/password",
            json={"current_password": PASSWORD, "new_password": "new-pass-123"},
            headers=headers,
        )
        assert response.status_code == 204
        harness.login("teacher@a.test", "new-pass-123")
        old = harness.client.post(
            "/auth/login", json={"email": "teacher@a.test", "password": PASSWORD}
        )
        assert old.status_code == 401

    def test_change_password_wrong_current(self, harness: Harness) -> None:
        harness.create_school("a")
        headers = harness.login("teacher@a.test")
        response = harness.client.post(
            "/auth/password",
            json={"current_password": "nope", "new_password": "new-pass-123"},
            headers=headers,
        )
        assert response.status_code == 401

    def test_change_password_missing_fields(self, harness: Harness) -> None:
        harness.create_school("a")
        headers = harness.login("teacher@a.test")
        response = harness.client.post("/auth/password", json={}, headers=headers)
        assert response.status_code == 400


class TestHealth:
    def test_health(self, harness: Harness) -> None:
        response = harness.client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": "0.1.0", "environment": "dev"}
