import os
import uuid
from typing import Optional

from fastapi import Request, UploadFile

import config
from errors import ValidationError
from logger import get_logger

_logger = get_logger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def allowed_file(filename: Optional[str]) -> bool:
    return bool(filename) and "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def save_image(file: UploadFile, request: Request) -> str:
    """Store an uploaded image and return the URL it is served from."""
    if not allowed_file(file.filename):
        raise ValidationError("Only png, jpg, jpeg, gif and webp images are allowed")
    content = file.file.read(config.MAX_UPLOAD_SIZE + 1)
    if len(content) > config.MAX_UPLOAD_SIZE:
        raise ValidationError("Image exceeds the maximum upload size")

    ext = file.filename.rsplit(".", 1)[1].lower()
    filename = f"{uuid.uuid4().hex}.{ext}"
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(config.UPLOAD_DIR, filename), "wb") as f:
        f.write(content)
    _logger.info(f"Stored upload {file.filename!r} as {filename}")
    return f"{request.base_url}uploads/{filename}"
