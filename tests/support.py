import unittest

import mongomock
from fastapi.testclient import TestClient

import database
from main import app

PRODUCT = {
    "title": "Desk Lamp",
    "price": "10.00",
    "description": "A warm LED desk lamp with adjustable arm.",
    "category": "Electronics",
    "stock": "5",
    "tags": "lighting, desk",
}


class ApiTestCase(unittest.TestCase):
    """Runs the app against a fresh in-memory database per test."""

    def setUp(self):
        self.db = database.init_db(mongomock.MongoClient().marketplace)
        self.client = TestClient(app)

    def tearDown(self):
        database.db = None

    def register(self, name="Alice", email="alice@example.com", password="secret123"):
        res = self.client.post("/auth/register", json={"name": name, "email": email, "password": password})
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()["data"]
        return data["token"], data["user"]

    def auth(self, token):
        return {"Authorization": f"Bearer {token}"}

    def make_admin(self, user):
        self.db["user"].update_one({"email": user["email"]}, {"$set": {"role": "admin"}})

    def create_product(self, token, **overrides):
        data = {**PRODUCT, **overrides}
        res = self.client.post("/products", data=data, headers=self.auth(token))
        self.assertEqual(res.status_code, 201, res.text)
        return res.json()["data"]["product"]
