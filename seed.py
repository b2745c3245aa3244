"""Reset the database to a demo state: an admin, a regular user and sample products."""

from auth import hash_password
from database import collection, create_document, get_documents, init_db, to_object_id
from logger import get_logger
from schemas import Product, User
from users import default_avatar

_logger = get_logger("seed")

USERS = [
    {"name": "Alice Johnson", "email": "alice@marketplace.com", "password": "password123", "role": "admin"},
    {"name": "Bob Smith", "email": "bob@marketplace.com", "password": "password123", "role": "user"},
]

PRODUCTS = [
    {
        "title": "Sony WH-1000XM5 Headphones",
        "price": 349.99,
        "description": "Industry-leading noise canceling headphones with 30-hour battery life and crystal clear hands-free calling.",
        "category": "Electronics",
        "stock": 25,
        "rating": 4.8,
        "num_reviews": 2847,
        "image": "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=500&q=80",
        "tags": ["headphones", "noise-canceling", "wireless", "sony", "audio"],
    },
    {
        "title": "Minimalist Leather Wallet",
        "price": 49.99,
        "description": "Slim genuine leather bifold wallet with RFID blocking. Holds up to 8 cards and cash.",
        "category": "Clothing",
        "stock": 100,
        "rating": 4.6,
        "num_reviews": 1203,
        "image": "https://images.unsplash.com/photo-1627123424574-724758594e93?w=500&q=80",
        "tags": ["wallet", "leather", "minimalist", "rfid", "accessories"],
    },
    {
        "title": "MacBook Pro M3 Stand",
        "price": 89.99,
        "description": "Adjustable aluminum laptop stand with ergonomic height adjustment. Improves airflow and posture.",
        "category": "Electronics",
        "stock": 60,
        "rating": 4.7,
        "num_reviews": 876,
        "image": "https://images.unsplash.com/photo-1527443224154-c4a3942d3acf?w=500&q=80",
        "tags": ["laptop-stand", "ergonomic", "aluminum", "desk", "productivity"],
    },
    {
        "title": "Organic Cotton Yoga Mat",
        "price": 68.0,
        "description": "Non-slip yoga mat woven from organic cotton with a natural rubber base, 6mm thick.",
        "category": "Sports",
        "stock": 40,
        "rating": 4.5,
        "num_reviews": 412,
        "tags": ["yoga", "fitness", "organic", "mat"],
    },
    {
        "title": "Pour-Over Coffee Set",
        "price": 39.5,
        "description": "Glass carafe and stainless steel dripper for a clean, balanced cup every morning.",
        "category": "Home & Garden",
        "stock": 75,
        "rating": 4.4,
        "num_reviews": 530,
        "tags": ["coffee", "kitchen", "pour-over"],
    },
    {
        "title": "The Pragmatic Programmer",
        "price": 42.0,
        "description": "20th anniversary edition of the classic guide to becoming a better software developer.",
        "category": "Books",
        "stock": 30,
        "rating": 4.9,
        "num_reviews": 3120,
        "tags": ["programming", "software", "career"],
    },
]


def seed(database=None):
    init_db(database)
    collection("user").delete_many({})
    collection("product").delete_many({})

    user_ids = []
    for data in USERS:
        user = User(
            name=data["name"],
            email=data["email"],
            password_hash=hash_password(data["password"]),
            role=data["role"],
            avatar=default_avatar(data["name"]),
        )
        user_ids.append(to_object_id(create_document("user", user)))
    _logger.info(f"Created {len(user_ids)} users")

    for i, data in enumerate(PRODUCTS):
        product = Product(seller=user_ids[i % len(user_ids)], **data)
        create_document("product", product)
    _logger.info(f"Created {len(get_documents('product'))} products")

    for data in USERS:
        _logger.info(f"Login: {data['email']} / {data['password']} ({data['role']})")


if __name__ == "__main__":
    seed()
