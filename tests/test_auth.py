import unittest
from datetime import timedelta

import jwt
from bson import ObjectId

import config
from auth import (
    bearer_token,
    hash_password,
    issue_token,
    optional_auth,
    require_admin,
    verify_password,
    verify_token,
)
from errors import ExpiredToken, Forbidden, InvalidToken
from support import ApiTestCase


class PasswordAndTokenTestCase(unittest.TestCase):
    def test_password_hash_is_salted_and_verifiable(self):
        first = hash_password("secret123")
        second = hash_password("secret123")
        self.assertNotEqual(first, second)
        self.assertTrue(verify_password("secret123", first))
        self.assertFalse(verify_password("wrong", first))
        self.assertFalse(verify_password("secret123", "garbage"))

    def test_issue_and_verify_round_trip(self):
        user_id = ObjectId()
        self.assertEqual(verify_token(issue_token(user_id)), str(user_id))

    def test_expired_token(self):
        token = issue_token(ObjectId(), ttl=timedelta(seconds=-5))
        with self.assertRaises(ExpiredToken):
            verify_token(token)

    def test_tampered_and_malformed_tokens(self):
        token = issue_token(ObjectId())
        with self.assertRaises(InvalidToken):
            verify_token(token[:-10] + ("A" if token[-10] != "A" else "B") + token[-9:])
        with self.assertRaises(InvalidToken):
            verify_token("not-a-token")
        foreign = jwt.encode({"id": str(ObjectId())}, "another-secret-0123456789abcdef012345", algorithm="HS256")
        with self.assertRaises(InvalidToken):
            verify_token(foreign)

    def test_token_without_user_id_is_invalid(self):
        token = jwt.encode({"sub": "x"}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
        with self.assertRaises(InvalidToken):
            verify_token(token)

    def test_parse_duration(self):
        self.assertEqual(config.parse_duration("7d"), timedelta(days=7))
        self.assertEqual(config.parse_duration("12h"), timedelta(hours=12))
        self.assertEqual(config.parse_duration("30m"), timedelta(minutes=30))
        self.assertEqual(config.parse_duration("90"), timedelta(seconds=90))
        self.assertEqual(config.parse_duration("soon"), timedelta(days=7))

    def test_env_flag(self):
        for value in ("1", "true", "TRUE", " yes ", "on"):
            self.assertTrue(config.env_flag(value), value)
        for value in (None, "", "0", "false", "False", "no", "off"):
            self.assertFalse(config.env_flag(value), value)

    def test_bearer_token_extraction(self):
        self.assertEqual(bearer_token("Bearer abc"), "abc")
        self.assertIsNone(bearer_token("Basic abc"))
        self.assertIsNone(bearer_token("Bearer"))
        self.assertIsNone(bearer_token(None))

    def test_optional_auth_never_blocks(self):
        self.assertIsNone(optional_auth(None))
        self.assertIsNone(optional_auth("Bearer not-a-token"))

    def test_require_admin(self):
        admin = {"_id": ObjectId(), "role": "admin"}
        self.assertIs(require_admin(admin), admin)
        with self.assertRaises(Forbidden):
            require_admin({"_id": ObjectId(), "role": "user"})


class AuthApiTestCase(ApiTestCase):
    def test_register_returns_token_and_public_user(self):
        token, user = self.register()
        self.assertEqual(verify_token(token), user["id"])
        self.assertEqual(user["email"], "alice@example.com")
        self.assertEqual(user["role"], "user")
        self.assertEqual(user["favorites"], [])
        self.assertNotIn("password_hash", user)
        self.assertNotIn("password", user)
        stored = self.db["user"].find_one({"email": "alice@example.com"})
        self.assertNotEqual(stored["password_hash"], "secret123")

    def test_register_duplicate_email_is_conflict(self):
        self.register()
        res = self.client.post(
            "/auth/register",
            json={"name": "Other", "email": "ALICE@example.com", "password": "secret123"},
        )
        self.assertEqual(res.status_code, 409)
        self.assertFalse(res.json()["success"])
        self.assertEqual(self.db["user"].count_documents({}), 1)

    def test_register_validation(self):
        res = self.client.post("/auth/register", json={"name": "A", "email": "a@example.com", "password": "secret123"})
        self.assertEqual(res.status_code, 400)
        self.assertFalse(res.json()["success"])
        res = self.client.post("/auth/register", json={"name": "Alice", "email": "nope", "password": "secret123"})
        self.assertEqual(res.status_code, 400)
        res = self.client.post("/auth/register", json={"name": "Alice", "email": "a@example.com", "password": "123"})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(self.db["user"].count_documents({}), 0)

    def test_login(self):
        self.register()
        res = self.client.post("/auth/login", json={"email": "alice@example.com", "password": "secret123"})
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["user"]["name"], "Alice")

        res = self.client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"})
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["message"], "Invalid email or password")
        res = self.client.post("/auth/login", json={"email": "bob@example.com", "password": "secret123"})
        self.assertEqual(res.status_code, 401)

    def test_me_requires_valid_token(self):
        res = self.client.get("/auth/me")
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json(), {"success": False, "message": "Access denied. No token provided."})

        res = self.client.get("/auth/me", headers=self.auth("garbage"))
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["message"], "Invalid token.")

        _, user = self.register()
        expired = issue_token(user["id"], ttl=timedelta(seconds=-5))
        res = self.client.get("/auth/me", headers=self.auth(expired))
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["message"], "Token expired.")

    def test_token_for_missing_user_is_rejected(self):
        token = issue_token(ObjectId())
        res = self.client.get("/auth/me", headers=self.auth(token))
        self.assertEqual(res.status_code, 401)
        self.assertFalse(res.json()["success"])

    def test_me_and_profile_update(self):
        token, _ = self.register()
        res = self.client.get("/auth/me", headers=self.auth(token))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["data"]["user"]["email"], "alice@example.com")

        res = self.client.put("/auth/me", json={"name": "Alice Cooper"}, headers=self.auth(token))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["data"]["user"]["name"], "Alice Cooper")

        res = self.client.put("/auth/me", json={"name": "A"}, headers=self.auth(token))
        self.assertEqual(res.status_code, 400)
        self.assertEqual(self.db["user"].find_one({})["name"], "Alice Cooper")

    def test_optional_auth_route_ignores_bad_token(self):
        res = self.client.get("/products", headers=self.auth("garbage"))
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.json()["success"])

    def test_unknown_route_uses_envelope(self):
        res = self.client.get("/nope")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json(), {"success": False, "message": "Route not found"})


if __name__ == "__main__":
    unittest.main()
