import io
import unittest
from unittest.mock import patch

from fakes import AppTestCase, FakeMinio


class TestApiRoutes(AppTestCase):
    def _refresh_header(self, email, password="pass123"):
        token = self.backend.auth.login(email, password)["refresh_token"]
        return {"Authorization": f"Bearer {token}"}

    def test_auth_register_and_login_success(self):
        register_response = self.client.post(
            "/register",
            json={"email": "api_user@example.com", "password": "pass123"},
        )
        self.assertEqual(register_response.status_code, 201)
        user_id = register_response.get_json()["id"]

        login_response = self.client.post(
            "/login",
            json={"email": "api_user@example.com", "password": "pass123"},
        )
        self.assertEqual(login_response.status_code, 200)
        body = login_response.get_json()
        self.assertIn("access_token", body)
        self.assertIn("refresh_token", body)
        self.assertEqual(body["user"], {"id": user_id, "email": "api_user@example.com"})
        cookies = " ".join(login_response.headers.getlist("Set-Cookie"))
        self.assertIn("access_token_cookie", cookies)

    def test_login_accepts_form_body(self):
        self._register("form@example.com")
        response = self.client.post(
            "/login",
            data={"email": "form@example.com", "password": "pass123"},
        )
        self.assertEqual(response.status_code, 200)

    def test_login_rejects_wrong_password(self):
        self._register("alice@example.com")
        response = self.client.post(
            "/login",
            json={"email": "alice@example.com", "password": "nope"},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["error"], "Invalid credentials")

    def test_auth_rejects_invalid_json(self):
        response = self.client.post(
            "/register",
            data="not-json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Invalid JSON body")

    def test_login_page_is_public(self):
        response = self.client.get("/login")
        self.assertEqual(response.status_code, 200)

    def test_auth_refresh_returns_access_token(self):
        user = self._register("alice@example.com")
        headers = self._refresh_header("alice@example.com")

        response = self.client.post("/refresh", headers=headers)
        self.assertEqual(response.status_code, 200)
        token = response.get_json()["access_token"]
        self.assertEqual(self.backend.auth.get_current_user(token).id, user.id)

    def test_auth_refresh_rejects_access_token(self):
        self._register("alice@example.com")
        response = self.client.post("/refresh", headers=self._auth_header("alice@example.com"))
        self.assertEqual(response.status_code, 422)

    def test_create_and_list_post_with_image(self):
        user = self._register("alice@example.com")
        headers = self._auth_header("alice@example.com")

        response = self.client.post(
            "/new-post",
            data={
                "content": "post with image",
                "picture": (io.BytesIO(b"fake-image-bytes"), "pic.jpg", "image/jpeg"),
            },
            headers=headers,
            content_type="multipart/form-data",
        )
        self.assertEqual(response.status_code, 303)

        post = self.client.get("/posts", headers=headers).get_json()["posts"][0]
        self.assertEqual(post["content"], "post with image")
        self.assertEqual(
            post["image_url"],
            f"http://storage.test/images/{user.id}/{post['image_id']}",
        )
        self.assertIn(("images", f"{user.id}/{post['image_id']}"), self.fake_minio.objects)

    def test_storage_creates_missing_bucket_once(self):
        storage = self.backend.storage
        minio = FakeMinio()

        with patch.object(storage, "_client", minio), patch.object(storage, "_ready_buckets", set()):
            storage.upload("fresh-bucket", "a/b", b"1")
            storage.upload("fresh-bucket", "a/c", b"2")

        self.assertEqual(minio.buckets, {"fresh-bucket"})
        self.assertEqual(len(minio.uploads), 2)

    def test_storage_public_url_quotes_path(self):
        url = self.backend.storage.get_public_url("images", "user 1/img")
        self.assertEqual(url, "http://storage.test/images/user%201/img")

    def test_store_rejects_unknown_table_and_column(self):
        from messageboard.errors import PersistenceError

        with self.assertRaises(PersistenceError):
            self.backend.store.insert("comments", {"text": "x"})
        with self.assertRaises(PersistenceError):
            self.backend.store.insert("posts", {"content": "x", "bogus": 1})
        with self.assertRaises(PersistenceError):
            self.backend.store.select("posts", order_by=("-bogus",))
        with self.assertRaises(PersistenceError):
            self.backend.store.delete("posts", {})

    def test_store_rejects_row_violating_constraints(self):
        from messageboard.errors import PersistenceError

        with self.assertRaises(PersistenceError):
            self.backend.store.insert("posts", {"content": None, "user_id": "someone"})
        self.assertEqual(self.backend.store.select("posts"), [])


if __name__ == "__main__":
    unittest.main()
