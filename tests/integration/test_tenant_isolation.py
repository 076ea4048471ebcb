"""Integration tests for tenant isolation and role rules across resources."""

from __future__ import annotations

from edutrack.core.constants import MSG_CANNOT_DELETE_SELF
from edutrack.saas.license import LicenseType

from support import Harness


class TestAccountIsolation:
    def test_list_only_own_tenant(self, harness: Harness) -> None:
        a = harness.create_school("a")
        b = harness.create_school("b")
        headers = harness.login("sec@a.test")

        response = harness.client.get("/accounts", headers=headers)
        assert response.status_code == 200
        ids = {row["id"] for row in response.json()}
        assert ids == {a.secretary.id, a.teacher.id, a.student.id}
        assert b.secretary.id not in ids

    def test_list_filters(self, harness: Harness) -> None:
        harness.create_school("a")
        headers = harness.login("sec@a.test")
        response = harness.client.get("/accounts", params={"email": "teacher@"}, headers=headers)
        assert [row["email"] for row in response.json()] == ["teacher@a.test"]

    def test_foreign_record_is_forbidden(self, harness: Harness) -> None:
        harness.create_school("a")
        b = harness.create_school("b")
        headers = harness.login("sec@a.test")
        response = harness.client.get(f"/accounts/{b.teacher.id}", headers=headers)
        assert response.status_code == 403

    def test_missing_record_is_not_found(self, harness: Harness) -> None:
        harness.create_school("a")
        headers = harness.login("sec@a.test")
        response = harness.client.get("/accounts/999999", headers=headers)
        assert response.status_code == 404

    def test_foreign_update_and_delete_forbidden(self, harness: Harness) -> None:
        harness.create_school("a")
        b = harness.create_school("b")
        headers = harness.login("sec@a.test")
        update = harness.client.put(
            f"/accounts/{b.teacher.id}", json={"name": "hijacked"}, headers=headers
        )
        delete = harness.client.delete(f"/accounts/{b.teacher.id}", headers=headers)
        assert update.status_code == 403
        assert delete.status_code == 403


class TestAccountRoles:
    def test_teacher_cannot_list(self, harness: Harness) -> None:
        harness.create_school("a")
        response = harness.client.get("/accounts", headers=harness.login("teacher@a.test"))
        assert response.status_code == 403

    def test_teacher_cannot_delete(self, harness: Harness) -> None:
        a = harness.create_school("a")
        headers = harness.login("teacher@a.test")
        response = harness.client.delete(f"/accounts/{a.student.id}", headers=headers)
        assert response.status_code == 403

    def test_secretary_cannot_delete_self(self, harness: Harness) -> None:
        a = harness.create_school("a")
        headers = harness.login("sec@a.test")
        response = harness.client.delete(f"/accounts/{a.secretary.id}", headers=headers)
        assert response.status_code == 400
        assert response.json()["message"] == MSG_CANNOT_DELETE_SELF

    def test_secretary_deletes_teacher(self, harness: Harness) -> None:
        a = harness.create_school("a")
        headers = harness.login("sec@a.test")
        response = harness.client.delete(f"/accounts/{a.teacher.id}", headers=headers)
        assert response.status_code == 204
        again = harness.client.get(f"/accounts/{a.teacher.id}", headers=headers)
        assert again.status_code == 404

    def test_student_sees_only_self(self, harness: Harness) -> None:
        a = harness.create_school("a")
        headers = harness.login("student@a.test")
        own = harness.client.get(f"/accounts/{a.student.id}", headers=headers)
        other = harness.client.get(f"/accounts/{a.teacher.id}", headers=headers)
        assert own.status_code == 200
        assert other.status_code == 403

    def test_holder_updates_own_profile(self, harness: Harness) -> None:
        a = harness.create_school("a")
        headers = harness.login("teacher@a.test")
        response = harness.client.put(
            f"/accounts/{a.teacher.id}", json={"name": "Profe"}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Profe"

    def test_holder_cannot_escalate(self, harness: Harness) -> None:
        a = harness.create_school("a")
        headers = harness.login("teacher@a.test")
        role = harness.client.put(
            f"/accounts/{a.teacher.id}", json={"role": "secretary"}, headers=headers
        )
        active = harness.client.put(
            f"/accounts/{a.teacher.id}", json={"active": False}, headers=headers
        )
        assert role.status_code == 403
        assert active.status_code == 403

    def test_holder_cannot_edit_others(self, harness: Harness) -> None:
        a = harness.create_school("a")
        headers = harness.login("teacher@a.test")
        response = harness.client.put(
            f"/accounts/{a.student.id}", json={"name": "x"}, headers=headers
        )
        assert response.status_code == 403

    def test_secretary_deactivates_account(self, harness: Harness) -> None:
        a = harness.create_school("a")
        teacher_headers = harness.login("teacher@a.test")
        response = harness.client.put(
            f"/accounts/{a.teacher.id}",
            json={"active": False},
            headers=harness.login("sec@a.test"),
        )
        assert response.status_code == 200
        assert response.json()["active"] is False
        assert harness.client.get("/auth/me", headers=teacher_headers).status_code == 401


class TestAccountCreation:
    def test_create(self, harness: Harness) -> None:
        a = harness.create_school("a")
        response = harness.client.post(
            "/accounts",
            json={"name": "New", "email": "new@a.test", "password": "pw-123", "role": "teacher"},
            headers=harness.login("sec@a.test"),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["tenant_id"] == a.tenant.tenant_id
        assert data["role"] == "teacher"
        harness.login("new@a.test", "pw-123")

    def test_missing_fields(self, harness: Harness) -> None:
        harness.create_school("a")
        response = harness.client.post(
            "/accounts",
            json={"name": "New", "email": "new@a.test"},
            headers=harness.login("sec@a.test"),
        )
        assert response.status_code == 400

    def test_unknown_role(self, harness: Harness) -> None:
        harness.create_school("a")
        response = harness.client.post(
            "/accounts",
            json={"name": "New", "email": "new@a.test", "password": "pw", "role": "admin"},
            headers=harness.login("sec@a.test"),
        )
        assert response.status_code == 400

    def test_duplicate_email(self, harness: Harness) -> None:
        harness.create_school("a")
        harness.create_school("b")
        response = harness.client.post(
            "/accounts",
            json={"name": "Dup", "email": "teacher@b.test", "password": "pw", "role": "teacher"},
            headers=harness.login("sec@a.test"),
        )
        assert response.status_code == 409

    def test_user_cap(self, harness: Harness) -> None:
        harness.create_school("a", license_type=LicenseType.TRIAL)
        response = harness.client.post(
            "/accounts",
            json={"name": "Four", "email": "four@a.test", "password": "pw", "role": "teacher"},
            headers=harness.login("sec@a.test"),
        )
        assert response.status_code == 422


class TestCareerIsolation:
    def _career(self, harness: Harness, headers: dict[str, str], code: str) -> int:
        response = harness.client.post(
            "/careers", json={"name": f"Career {code}", "code": code}, headers=headers
        )
        assert response.status_code == 201, response.text
        return response.json()["id"]

    def test_foreign_career(self, harness: Harness) -> None:
        harness.create_school("a")
        harness.create_school("b")
        b_career = self._career(harness, harness.login("sec@b.test"), "MAT")

        headers = harness.login("sec@a.test")
        assert harness.client.get(f"/careers/{b_career}", headers=headers).status_code == 403
        assert harness.client.delete(f"/careers/{b_career}", headers=headers).status_code == 403
        assert harness.client.get("/careers/424242", headers=headers).status_code == 404
        assert harness.client.get("/careers", headers=headers).json() == []

    def test_same_code_in_two_tenants(self, harness: Harness) -> None:
        harness.create_school("a")
        harness.create_school("b")
        self._career(harness, harness.login("sec@a.test"), "MAT")
        self._career(harness, harness.login("sec@b.test"), "MAT")

    def test_duplicate_code_in_one_tenant(self, harness: Harness) -> None:
        harness.create_school("a")
        headers = harness.login("sec@a.test")
        self._career(harness, headers, "MAT")
        response = harness.client.post(
            "/careers", json={"name": "Other", "code": "MAT"}, headers=headers
        )
        assert response.status_code == 409

    def test_any_role_reads_only_secretary_writes(self, harness: Harness) -> None:
        harness.create_school("a")
        career_id = self._career(harness, harness.login("sec@a.test"), "MAT")
        student = harness.login("student@a.test")
        teacher = harness.login("teacher@a.test")

        assert harness.client.get("/careers", headers=student).status_code == 200
        assert harness.client.get(f"/careers/{career_id}", headers=teacher).status_code == 200
        denied = harness.client.post("/careers", json={"name": "X", "code": "X"}, headers=teacher)
        assert denied.status_code == 403

    def test_update(self, harness: Harness) -> None:
        harness.create_school("a")
        headers = harness.login("sec@a.test")
        career_id = self._career(harness, headers, "MAT")
        response = harness.client.put(
            f"/careers/{career_id}", json={"duration": 8, "active": False}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["duration"] == 8
        assert response.json()["active"] is False


class TestTenantOverview:
    def test_secretary(self, harness: Harness) -> None:
        a = harness.create_school("a")
        response = harness.client.get("/tenant", headers=harness.login("sec@a.test"))
        assert response.status_code == 200
        data = response.json()
        assert data["tenant_id"] == a.tenant.tenant_id
        assert data["license"]["valid"] is True
        assert data["license"]["key"] == a.tenant.license_key
        assert data["stats"]["account_count"] == 3
        assert data["stats"]["secretary_count"] == 1

    def test_teacher_forbidden(self, harness: Harness) -> None:
        harness.create_school("a")
        response = harness.client.get("/tenant", headers=harness.login("teacher@a.test"))
        assert response.status_code == 403

    def test_role_check_runs_after_license_check(self, harness: Harness) -> None:
        a = harness.create_school("a")
        headers = harness.login("teacher@a.test")
        a.tenant.license.active = False
        harness.run(harness.tenants.save_license, a.tenant.license)
        response = harness.client.get("/tenant", headers=headers)
        assert response.status_code == 401
