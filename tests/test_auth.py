"""Tests for /auth endpoints."""

from conftest import login, register
from extensions import db
from models import User


class TestRegister:
    def test_register_student(self, app):
        client = app.test_client()
        response = register(client, "carol")
        assert response.status_code == 201
        user = response.get_json()["user"]
        assert user["username"] == "carol"
        assert user["role"] == "STUDENT"
        assert user["hackerrankCookieStatus"] == "NOT_LINKED"

    def test_register_teacher_role_case_insensitive(self, app):
        client = app.test_client()
        response = register(client, "dave", role="teacher")
        assert response.status_code == 201
        assert response.get_json()["user"]["role"] == "TEACHER"

    def test_duplicate_username(self, app):
        client = app.test_client()
        register(client, "carol")
        response = register(client, "carol")
        assert response.status_code == 409
        assert "already taken" in response.get_json()["error"]

    def test_validation_error(self, app):
        client = app.test_client()
        response = client.post("/auth/register", json={
            "username": "x",
            "email": "not-an-email",
            "password": "123",
        })
        assert response.status_code == 400
        data = response.get_json()
        assert data["error"] == "Validation failed"
        fields = {tuple(d["loc"]) for d in data["details"]}
        assert ("username",) in fields
        assert ("password",) in fields


class TestLogin:
    def test_login_and_me(self, app):
        client = app.test_client()
        register(client, "carol")
        response = login(client, "carol")
        assert response.status_code == 200

        me = client.get("/auth/me")
        assert me.status_code == 200
        assert me.get_json()["user"]["username"] == "carol"

    def test_bad_password(self, app):
        client = app.test_client()
        register(client, "carol")
        response = login(client, "carol", password="wrong-password")
        assert response.status_code == 401

    def test_inactive_account_cannot_login(self, app):
        client = app.test_client()
        register(client, "carol")
        with app.app_context():
            User.query.filter_by(username="carol").first().is_active = False
            db.session.commit()

        response = login(client, "carol")
        assert response.status_code == 401
        assert client.get("/auth/me").status_code == 401

    def test_me_requires_login(self, app):
        response = app.test_client().get("/auth/me")
        assert response.status_code == 401
        assert response.get_json()["error"] == "Authentication required"

    def test_logout(self, student_client):
        assert student_client.post("/auth/logout").status_code == 200
        assert student_client.get("/auth/me").status_code == 401


class TestPlatformLinks:
    def test_link_and_unlink_hackerrank(self, student_client):
        response = student_client.post("/auth/hackerrank", json={
            "username": "bob_hr",
            "session_cookie": "_hrank_session=abc123",
        })
        assert response.status_code == 200
        user = response.get_json()["user"]
        assert user["hackerrankUsername"] == "bob_hr"
        assert user["hackerrankCookieStatus"] == "LINKED"

        response = student_client.delete("/auth/hackerrank")
        assert response.get_json()["user"]["hackerrankCookieStatus"] == "NOT_LINKED"

    def test_link_hackerrank_strips_cookie_name(self, app, student_client):
        from models import User

        student_client.post("/auth/hackerrank", json={
            "username": "bob_hr",
            "session_cookie": "_hrank_session=abc123",
        })
        with app.app_context():
            assert User.query.filter_by(username="bob").first().hackerrank_cookie == "abc123"

    def test_link_leetcode(self, student_client):
        response = student_client.post("/auth/leetcode", json={"username": "bob_lc"})
        assert response.status_code == 200
        assert response.get_json()["user"]["leetcodeUsername"] == "bob_lc"
