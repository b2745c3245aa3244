import unittest
from unittest import mock

from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

import config
import database
from main import app
from support import ApiTestCase


class ErrorEnvelopeTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.client = TestClient(app, raise_server_exceptions=False)

    def test_unhandled_error_hides_details(self):
        with mock.patch("catalog.query_products", side_effect=RuntimeError("boom")):
            res = self.client.get("/products")
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json(), {"success": False, "message": "Internal Server Error"})

    def test_unhandled_error_details_in_debug(self):
        with mock.patch("catalog.query_products", side_effect=RuntimeError("boom")), \
                mock.patch.object(config, "DEBUG", True):
            res = self.client.get("/products")
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json(), {"success": False, "message": "Internal Server Error", "error": "boom"})

    def test_duplicate_key_is_conflict(self):
        body = {"name": "Alice", "email": "alice@example.com", "password": "secret123"}
        with mock.patch("users.register", side_effect=DuplicateKeyError("E11000 duplicate key")):
            res = self.client.post("/auth/register", json=body)
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.json(), {"success": False, "message": "Duplicate value"})

    def test_register_race_hits_unique_index(self):
        self.register()
        with mock.patch("users.get_user_by_email", return_value=None):
            res = self.client.post(
                "/auth/register",
                json={"name": "Alice", "email": "alice@example.com", "password": "secret123"},
            )
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.json(), {"success": False, "message": "Email already in use"})
        self.assertEqual(self.db["user"].count_documents({}), 1)

    def test_database_not_configured(self):
        database.db = None
        res = self.client.get("/products")
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json(), {"success": False, "message": "Database not configured"})

    def test_failed_requests_are_logged(self):
        with mock.patch("catalog.query_products", side_effect=RuntimeError("boom")), \
                self.assertLogs("api", level="INFO") as logs:
            self.client.get("/products")
        self.assertTrue(any("GET /products 500 " in line for line in logs.output), logs.output)

    def test_requests_are_logged(self):
        with self.assertLogs("api", level="INFO") as logs:
            self.client.get("/health")
        self.assertTrue(any("GET /health 200 " in line for line in logs.output), logs.output)


if __name__ == "__main__":
    unittest.main()
