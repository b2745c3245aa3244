import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

import catalog
import config
import database
import favorites
import users
from auth import optional_auth, require_auth
from errors import AppError, ValidationError
from logger import get_logger
from schemas import LoginRequest, ProductCreate, ProductUpdate, ProfileUpdate, RegisterRequest
from uploads import save_image

_logger = get_logger("api")

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is None:
        database.init_db()
    yield


app = FastAPI(title="Micro Marketplace API", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
)

os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")


def ok(data: Optional[dict] = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def fail(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    body = {"success": False, "message": message}
    if error:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body)


def _first_error(errors) -> str:
    if not errors:
        return "Validation failed"
    err = errors[0]
    field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
    return f"{field}: {err.get('msg')}" if field else err.get("msg", "Validation failed")


# Error envelopes

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc, AppError):
        return fail(exc.status_code, exc.message)
    if exc.status_code == 404:
        return fail(404, "Route not found")
    return fail(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return fail(400, _first_error(exc.errors()))


@app.exception_handler(PydanticValidationError)
async def model_validation_handler(request: Request, exc: PydanticValidationError):
    return fail(400, _first_error(exc.errors()))


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return fail(409, "Duplicate value")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    _logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return fail(500, "Internal Server Error", str(exc) if config.DEBUG else None)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        elapsed = (time.perf_counter() - started) * 1000
        _logger.info(f"{request.method} {request.url.path} {status_code} {elapsed:.1f} ms")


@app.get("/")
def read_root():
    return {"success": True, "message": "Micro Marketplace API is running!", "version": VERSION}


@app.get("/health")
def health():
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_url": "Set" if config.DATABASE_URL else "Not Set",
        "database_name": config.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }
    if database.db is not None:
        try:
            response["collections"] = database.db.list_collection_names()[:10]
            response["database"] = "Connected"
            response["connection_status"] = "Connected"
        except Exception as e:
            response["database"] = f"Connected but Error: {str(e)[:80]}"
    return response


# Auth endpoints

@app.post("/auth/register", status_code=201)
def register(payload: RegisterRequest):
    return ok(users.register(payload), "Registration successful!")


@app.post("/auth/login")
def login(payload: LoginRequest):
    return ok(users.login(payload), "Login successful!")


@app.get("/auth/me")
def get_me(user: dict = Depends(require_auth)):
    return ok({"user": users.profile(user)})


@app.put("/auth/me")
def update_me(payload: ProfileUpdate, user: dict = Depends(require_auth)):
    return ok({"user": users.update_profile(user, payload)}, "Profile updated successfully")


# Products endpoints

async def read_product_fields(request: Request):
    """Collect product fields from a JSON or multipart body.

    Returns the field dict (blank values dropped) and the uploaded image, if any.
    """
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Malformed JSON body")
        if not isinstance(body, dict):
            raise ValidationError("Expected a JSON object")
        return {k: v for k, v in body.items() if v not in (None, "")}, None

    form = await request.form()
    fields, upload = {}, None
    for key in ("title", "price", "description", "category", "stock", "image"):
        for value in form.getlist(key):
            if isinstance(value, UploadFile):
                if key == "image" and value.filename:
                    upload = value
            elif value != "":
                fields[key] = value
    tags = [t for t in form.getlist("tags") if isinstance(t, str)]
    if tags:
        fields["tags"] = tags if len(tags) > 1 else tags[0]
    return fields, upload


@app.get("/products/categories")
def list_categories():
    return ok({"categories": catalog.categories()})


@app.get("/products")
def list_products(
    search: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    user: Optional[dict] = Depends(optional_auth),
):
    query = catalog.CatalogQuery.from_params(
        search=search,
        page=page,
        limit=limit,
        category=category,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok(catalog.query_products(query))


@app.get("/products/{product_id}")
def get_product(product_id: str, user: Optional[dict] = Depends(optional_auth)):
    return ok({"product": catalog.get_product(product_id)})


@app.post("/products", status_code=201)
async def create_product(request: Request, user: dict = Depends(require_auth)):
    fields, upload = await read_product_fields(request)
    payload = ProductCreate.model_validate(fields)
    if upload is not None:
        payload.image = await run_in_threadpool(save_image, upload, request)
    product = await run_in_threadpool(catalog.create_product, payload, user)
    return ok({"product": product}, "Product created successfully")


@app.put("/products/{product_id}")
async def update_product(product_id: str, request: Request, user: dict = Depends(require_auth)):
    fields, upload = await read_product_fields(request)
    payload = ProductUpdate.model_validate(fields)
    if upload is not None:
        await run_in_threadpool(catalog.load_editable, product_id, user, "update")
        payload.image = await run_in_threadpool(save_image, upload, request)
    product = await run_in_threadpool(catalog.update_product, product_id, payload, user)
    return ok({"product": product}, "Product updated successfully")


@app.delete("/products/{product_id}")
def delete_product(product_id: str, user: dict = Depends(require_auth)):
    catalog.soft_delete_product(product_id, user)
    return ok(message="Product deleted successfully")


# Favorites endpoints

@app.get("/favorites")
def get_favorites(user: dict = Depends(require_auth)):
    return ok(favorites.list_favorites(user))


@app.post("/favorites/{product_id}")
def add_favorite(product_id: str, user: dict = Depends(require_auth)):
    return ok(favorites.add_favorite(user, product_id), "Added to favorites!")


@app.delete("/favorites/{product_id}")
def remove_favorite(product_id: str, user: dict = Depends(require_auth)):
    return ok(favorites.remove_favorite(user, product_id), "Removed from favorites!")


@app.post("/favorites/{product_id}/toggle")
def toggle_favorite(product_id: str, user: dict = Depends(require_auth)):
    result = favorites.toggle_favorite(user, product_id)
    message = "Added to favorites!" if result["isFavorited"] else "Removed from favorites!"
    return ok(result, message)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
