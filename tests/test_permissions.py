"""
Access control tests: department course visibility, role and owner gates.
"""

import pytest

from oasis.auth.permissions import UserContext, can_access_course
from tests.conftest import auth


def user(role, department):
    return UserContext("USR_1", {"role": role, "department": department})


class TestCourseVisibility:

    @pytest.mark.parametrize("role, department, course_department, allowed", [
        ("admin", "HR", "Engineering", True),
        ("manager", "Engineering", "Engineering", True),
        ("manager", "Sales", "Engineering", False),
        ("employee", "Engineering", "Engineering", True),
        ("employee", "Sales", "Engineering", False),
        ("employee", "Sales", "All", True),
        ("manager", "Sales", "All", True),
    ])
    def test_table(self, role, department, course_department, allowed):
        assert can_access_course(user(role, department), {"department": course_department}) is allowed


class TestGates:

    def test_no_token(self, client):
        response = client.get("/api/users/profile")
        assert response.status_code == 401
        assert response.json() == {"message": "Access denied. No token provided."}

    def test_garbage_token(self, client):
        response = client.get("/api/users/profile", headers=auth("garbage"))
        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. Invalid token."

    def test_role_gate_message(self, client, register):
        _, token = register()
        response = client.get("/api/users", headers=auth(token))
        assert response.status_code == 403
        assert response.json()["message"] == (
            "Access denied. Required roles: admin, manager. Your role: employee"
        )

    def test_manager_lists_users(self, client, register):
        register()
        _, token = register(role="manager")
        response = client.get("/api/users", headers=auth(token))
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert all("password_hash" not in u for u in body["users"])

    def test_inactive_account_rejected(self, client, register, admin):
        user_id, token = register()
        response = client.delete(f"/api/users/{user_id}", headers=auth(admin[1]))
        assert response.status_code == 200

        response = client.get("/api/users/profile", headers=auth(token))
        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. Account is inactive."

    def test_owner_or_admin(self, client, register, admin):
        user_id, token = register()
        other_id, _ = register()

        assert client.get(f"/api/progress?user_id={user_id}", headers=auth(token)).status_code == 200
        denied = client.get(f"/api/progress?user_id={other_id}", headers=auth(token))
        assert denied.status_code == 403
        assert client.get(f"/api/progress?user_id={other_id}", headers=auth(admin[1])).status_code == 200
