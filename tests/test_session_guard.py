import unittest
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from fakes import AppTestCase


class TestSessionGuard(AppTestCase):
    def setUp(self):
        super().setUp()
        from messageboard.views.session_guard import SessionGuard
        self.guard = SessionGuard(self.backend)

    def test_check_without_token_returns_none(self):
        self.assertIsNone(self.guard.check(None))
        self.assertIsNone(self.guard.check(""))

    def test_check_with_garbage_token_returns_none(self):
        self.assertIsNone(self.guard.check("not-a-jwt"))

    def test_check_with_valid_token_returns_user(self):
        registered = self._register("alice@example.com")
        user = self.guard.check(self._token("alice@example.com"))

        self.assertIsNotNone(user)
        self.assertEqual(user.id, registered.id)
        self.assertEqual(user.email, "alice@example.com")

    def test_check_rejects_refresh_token(self):
        self._register("alice@example.com")
        refresh = self.backend.auth.login("alice@example.com", "pass123")["refresh_token"]
        self.assertIsNone(self.guard.check(refresh))

    def test_check_rejects_signed_out_token(self):
        self._register("alice@example.com")
        token = self._token("alice@example.com")
        self.backend.auth.sign_out(token)

        self.assertIsNone(self.guard.check(token))

    def test_protected_routes_redirect_without_session(self):
        for path in ("/posts", "/new-post"):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 302)
            self.assertTrue(response.headers["Location"].endswith("/login"))
            self.assertNotIn(b"\"status\"", response.data)

    def test_protected_route_redirects_with_invalid_token(self):
        response = self.client.get(
            "/posts",
            headers={"Authorization": "Bearer invalid.token.value"},
        )
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.headers["Location"].endswith("/login"))

    def test_failed_user_lookup_redirects_to_login(self):
        self._register("alice@example.com")
        headers = self._auth_header("alice@example.com")
        outage = OperationalError("SELECT user_data", {}, Exception("database is locked"))

        with patch(
            "messageboard.services.auth_service.user_repository.get_by_id",
            side_effect=outage,
        ):
            self.assertIsNone(self.guard.check(headers["Authorization"][7:]))
            response = self.client.get("/posts", headers=headers)

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.headers["Location"].endswith("/login"))

    def test_protected_route_renders_with_session(self):
        self._register("alice@example.com")
        response = self.client.get("/posts", headers=self._auth_header("alice@example.com"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "loaded")

    def test_login_cookie_opens_protected_route(self):
        self._register("alice@example.com")
        login_response = self.client.post(
            "/login",
            json={"email": "alice@example.com", "password": "pass123"},
        )
        self.assertEqual(login_response.status_code, 200)

        response = self.client.get("/new-post")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["user"], "alice@example.com")


if __name__ == "__main__":
    unittest.main()
