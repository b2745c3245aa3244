"""
Database Schemas

MongoDB collection schemas and request payloads as Pydantic models.
Each collection schema's class name, lowercased, is its collection name:
- User -> "user" collection
- Product -> "product" collection
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

CATEGORIES = [
    "Electronics",
    "Clothing",
    "Home & Garden",
    "Sports",
    "Books",
    "Toys",
    "Beauty",
    "Automotive",
    "Food",
    "Other",
]

Category = Literal[
    "Electronics",
    "Clothing",
    "Home & Garden",
    "Sports",
    "Books",
    "Toys",
    "Beauty",
    "Automotive",
    "Food",
    "Other",
]

Role = Literal["user", "admin"]


def split_tags(value):
    if value is None:
        return value
    if isinstance(value, str):
        value = value.split(",")
    return [str(t).strip() for t in value if str(t).strip()]


class User(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, description="Display name")
    email: EmailStr
    password_hash: str = Field(..., description="Salted password hash")
    role: Role = Field("user", description="user role: user | admin")
    avatar: str = ""
    favorites: List[Any] = Field(default_factory=list, description="Favorited product ObjectIds")


class ProductCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=3, max_length=100)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    description: str = Field(..., min_length=10, max_length=1000)
    category: Category = "Other"
    stock: int = Field(0, ge=0)
    tags: List[str] = Field(default_factory=list)
    image: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value):
        return split_tags(value)


class ProductUpdate(BaseModel):
    """Partial update; only supplied fields are validated and applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=3, max_length=100)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    category: Optional[Category] = None
    stock: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    image: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value):
        return split_tags(value)


class Product(ProductCreate):
    seller: Any = Field(..., description="Owning user ObjectId")
    rating: float = Field(0, ge=0, le=5)
    num_reviews: int = Field(0, ge=0)
    is_active: bool = True


# Request payloads

class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=50)
