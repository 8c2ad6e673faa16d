"""API tests through FastAPI TestClient against in-memory SQLite and the memory cache."""

import unittest
from datetime import timedelta
from unittest.mock import patch

from tests.support import TEST_PASSWORD, add_user, clear_overrides, make_client
from userservice.core.security import create_access_token
from userservice.schemas.user import SEARCH_MAX_PAGE

PREFIX = "/api/v1"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.client, self.session_factory, self.cache = make_client()

    def tearDown(self) -> None:
        clear_overrides()

    def add_user(self, username: str, role: str = "user", email: str | None = None) -> int:
        db = self.session_factory()
        try:
            return add_user(db, username, role=role, email=email).id
        finally:
            db.close()

    def login(self, username: str, password: str = TEST_PASSWORD) -> dict:
        response = self.client.post(
            f"{PREFIX}/auth/login", json={"username": username, "password": password}
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def auth(self, username: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.login(username)['access_token']}"}


class TestAuthEndpoints(ApiTestCase):
    def test_register_login_refresh(self) -> None:
        response = self.client.post(
            f"{PREFIX}/auth/register",
            json={"username": "alice", "password": TEST_PASSWORD, "email": "alice@example.com"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        registered = response.json()
        self.assertEqual(registered["token_type"], "bearer")

        logged_in = self.login("alice")
        self.assertEqual(logged_in["refresh_token"], registered["refresh_token"])

        response = self.client.post(
            f"{PREFIX}/auth/refresh", json={"refresh_token": logged_in["refresh_token"]}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["refresh_token"], logged_in["refresh_token"])

    def test_register_duplicate_conflicts(self) -> None:
        self.add_user("alice")
        response = self.client.post(
            f"{PREFIX}/auth/register", json={"username": "alice", "password": TEST_PASSWORD}
        )
        self.assertEqual(response.status_code, 409)

    def test_register_validation(self) -> None:
        response = self.client.post(
            f"{PREFIX}/auth/register", json={"username": "a b", "password": "short"}
        )
        self.assertEqual(response.status_code, 422)

    def test_login_bad_credentials(self) -> None:
        self.add_user("alice")
        response = self.client.post(
            f"{PREFIX}/auth/login", json={"username": "alice", "password": "wrong-password"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.headers.get("www-authenticate"), "Bearer")

    def test_refresh_with_invalid_token(self) -> None:
        response = self.client.post(f"{PREFIX}/auth/refresh", json={"refresh_token": "nope"})
        self.assertEqual(response.status_code, 401)


class TestAuthentication(ApiTestCase):
    def test_missing_token(self) -> None:
        response = self.client.get(f"{PREFIX}/users/me")
        self.assertEqual(response.status_code, 401)

    def test_expired_token(self) -> None:
        user_id = self.add_user("alice")
        token = create_access_token(user_id, "alice", "user", expires_delta=timedelta(seconds=-1))
        response = self.client.get(
            f"{PREFIX}/users/me", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Token has expired")

    def test_token_of_deleted_user(self) -> None:
        self.add_user("alice")
        headers = self.auth("alice")
        self.assertEqual(self.client.delete(f"{PREFIX}/users/me", headers=headers).status_code, 204)
        self.assertEqual(self.client.get(f"{PREFIX}/users/me", headers=headers).status_code, 401)

    def test_non_admin_forbidden(self) -> None:
        self.add_user("alice")
        response = self.client.get(f"{PREFIX}/users", headers=self.auth("alice"))
        self.assertEqual(response.status_code, 403)


class TestSelfService(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user_id = self.add_user("alice", email="alice@example.com")
        self.headers = self.auth("alice")

    def test_read_me(self) -> None:
        response = self.client.get(f"{PREFIX}/users/me", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["username"], "alice")
        self.assertNotIn("password_hash", body)

    def test_update_username_returns_new_tokens(self) -> None:
        response = self.client.patch(
            f"{PREFIX}/users/me", headers=self.headers, json={"username": "alice2"}
        )
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["user"]["username"], "alice2")
        self.assertIsNotNone(body["tokens"]["refresh_token"])

        me = self.client.get(f"{PREFIX}/users/me", headers=self.headers)
        self.assertEqual(me.json()["username"], "alice2")

    def test_update_without_changes(self) -> None:
        response = self.client.patch(f"{PREFIX}/users/me", headers=self.headers, json={})
        self.assertEqual(response.status_code, 400)

    def test_update_to_taken_username(self) -> None:
        self.add_user("bob")
        response = self.client.patch(
            f"{PREFIX}/users/me", headers=self.headers, json={"username": "bob"}
        )
        self.assertEqual(response.status_code, 409)

    def test_add_phone(self) -> None:
        response = self.client.post(
            f"{PREFIX}/users/me/phone", headers=self.headers, json={"phone": "+1 555 123 4567"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["phone"], "+1 555 123 4567")

    def test_add_invalid_phone(self) -> None:
        response = self.client.post(
            f"{PREFIX}/users/me/phone", headers=self.headers, json={"phone": "call me"}
        )
        self.assertEqual(response.status_code, 422)

    def test_verify_email_without_code(self) -> None:
        response = self.client.post(
            f"{PREFIX}/users/me/email/verify", headers=self.headers, json={"code": "ABC123"}
        )
        self.assertEqual(response.status_code, 404)

    @patch("userservice.services.verification.generate_code", return_value="ABC123")
    def test_add_email_then_wrong_code(self, _gen) -> None:
        response = self.client.post(
            f"{PREFIX}/users/me/email", headers=self.headers, json={"email": "new@example.com"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["email_verified"])
        response = self.client.post(
            f"{PREFIX}/users/me/email/verify", headers=self.headers, json={"code": "ZZZ999"}
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            f"{PREFIX}/users/me/email/verify", headers=self.headers, json={"code": "abc123"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["email_verified"])

    def test_verify_rejects_codes_outside_alphabet(self) -> None:
        self.client.post(
            f"{PREFIX}/users/me/email", headers=self.headers, json={"email": "new@example.com"}
        )
        for code in ("ÄÄÄÄÄÄ", "------", "ABC12"):
            response = self.client.post(
                f"{PREFIX}/users/me/email/verify", headers=self.headers, json={"code": code}
            )
            self.assertEqual(response.status_code, 422, code)

    @patch("userservice.services.verification.generate_code", return_value="XY34ZW")
    def test_patch_email_sends_code(self, _gen) -> None:
        response = self.client.patch(
            f"{PREFIX}/users/me", headers=self.headers, json={"email": "alice@example.org"}
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertIsNone(response.json()["tokens"])
        response = self.client.post(
            f"{PREFIX}/users/me/email/verify", headers=self.headers, json={"code": "XY34ZW"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["email_verified"])


class TestLookup(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice_id = self.add_user("alice")
        self.add_user("albert")
        self.add_user("bob")
        self.headers = self.auth("alice")

    def test_read_user_public_view(self) -> None:
        response = self.client.get(f"{PREFIX}/users/{self.alice_id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"id": self.alice_id, "username": "alice"})

    def test_read_missing_user(self) -> None:
        response = self.client.get(f"{PREFIX}/users/9999", headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_search(self) -> None:
        response = self.client.get(
            f"{PREFIX}/users/search", headers=self.headers, params={"q": "AL", "size": 1}
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total_items"], 2)
        self.assertEqual(body["total_pages"], 2)
        self.assertEqual(body["current_page"], 0)
        self.assertEqual(len(body["users"]), 1)

    def test_search_without_match(self) -> None:
        response = self.client.get(
            f"{PREFIX}/users/search", headers=self.headers, params={"q": "zzz"}
        )
        self.assertEqual(response.status_code, 404)

    def test_search_blank_prefix(self) -> None:
        response = self.client.get(
            f"{PREFIX}/users/search", headers=self.headers, params={"q": "   "}
        )
        self.assertEqual(response.status_code, 400)

    def test_search_page_size_bounds(self) -> None:
        response = self.client.get(
            f"{PREFIX}/users/search", headers=self.headers, params={"q": "al", "size": 0}
        )
        self.assertEqual(response.status_code, 422)

    def test_search_page_number_bounds(self) -> None:
        for page in (10**19, SEARCH_MAX_PAGE + 1, -1):
            response = self.client.get(
                f"{PREFIX}/users/search", headers=self.headers, params={"q": "al", "page": page}
            )
            self.assertEqual(response.status_code, 422, page)

    def test_search_past_last_page(self) -> None:
        response = self.client.get(
            f"{PREFIX}/users/search",
            headers=self.headers,
            params={"q": "al", "page": SEARCH_MAX_PAGE},
        )
        self.assertEqual(response.status_code, 404)


class TestAdmin(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.add_user("root", role="admin")
        self.headers = self.auth("root")

    def test_create_list_update_delete(self) -> None:
        response = self.client.post(
            f"{PREFIX}/users",
            headers=self.headers,
            json={"username": "carol", "password": TEST_PASSWORD, "role": "admin"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        carol_id = response.json()["id"]
        self.assertEqual(response.json()["role"], "admin")

        listed = self.client.get(f"{PREFIX}/users", headers=self.headers).json()["users"]
        self.assertEqual([u["username"] for u in listed], ["root", "carol"])

        response = self.client.patch(
            f"{PREFIX}/users/{carol_id}", headers=self.headers, json={"role": "user"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "user")
        self.assertNotIn("tokens", response.json())

        self.assertEqual(
            self.client.delete(f"{PREFIX}/users/{carol_id}", headers=self.headers).status_code,
            204,
        )
        self.assertEqual(
            self.client.delete(f"{PREFIX}/users/{carol_id}", headers=self.headers).status_code,
            204,
        )

    def test_create_duplicate(self) -> None:
        response = self.client.post(
            f"{PREFIX}/users",
            headers=self.headers,
            json={"username": "root", "password": TEST_PASSWORD},
        )
        self.assertEqual(response.status_code, 409)

    def test_update_missing_user(self) -> None:
        response = self.client.patch(
            f"{PREFIX}/users/9999", headers=self.headers, json={"role": "admin"}
        )
        self.assertEqual(response.status_code, 404)

    def test_demoted_admin_loses_access(self) -> None:
        self.add_user("second", role="admin")
        second_headers = self.auth("second")
        self.assertEqual(self.client.get(f"{PREFIX}/users", headers=second_headers).status_code, 200)
        db = self.session_factory()
        try:
            from userservice.models import User

            second_id = db.query(User.id).filter(User.username == "second").scalar()
        finally:
            db.close()
        self.client.patch(f"{PREFIX}/users/{second_id}", headers=self.headers, json={"role": "user"})
        self.assertEqual(self.client.get(f"{PREFIX}/users", headers=second_headers).status_code, 403)


class TestHealth(ApiTestCase):
    def test_health(self) -> None:
        response = self.client.get(f"{PREFIX}/health/")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")
        self.assertEqual(body["cache"], "connected")

    def test_root(self) -> None:
        self.assertEqual(self.client.get("/").json(), {"message": "User Service API"})


if __name__ == "__main__":
    unittest.main()
