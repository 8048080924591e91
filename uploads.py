"""
Image upload storage.

Two backends: local disk (served back by the app under ``/uploads``) and
Cloudinary.
"""

import logging
import os
import shutil
import time
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional

import cloudinary.exceptions
import cloudinary.uploader

from config import Settings

logger = logging.getLogger(__name__)

NAME_ATTEMPTS = 1000


class UploadError(Exception):
    pass


def stored_name(field_name: str, original_filename: Optional[str], now_ms: Optional[int] = None) -> str:
    """``product_1718000000000.jpg`` style name: field, epoch millis, original extension."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    ext = os.path.splitext(original_filename or "")[1].lower()
    return f"{field_name}_{now_ms}{ext}"


class Storage(ABC):
    @abstractmethod
    def save(self, field_name: str, filename: Optional[str], fileobj: BinaryIO, content_type: Optional[str] = None) -> str:
        """Store the file and return a publicly resolvable URL."""


class LocalStorage(Storage):
    def __init__(self, directory: str, base_url: str):
        self.directory = directory
        self.base_url = base_url.rstrip("/")
        os.makedirs(self.directory, exist_ok=True)

    def save(self, field_name, filename, fileobj, content_type=None):
        now_ms = int(time.time() * 1000)
        for offset in range(NAME_ATTEMPTS):
            name = stored_name(field_name, filename, now_ms + offset)
            try:
                out = open(os.path.join(self.directory, name), "xb")
            except FileExistsError:
                continue
            with out:
                shutil.copyfileobj(fileobj, out)
            logger.info("Stored upload %s on disk", name)
            return f"{self.base_url}/uploads/{name}"
        raise UploadError(f"No free file name for {field_name} upload")


class CloudinaryStorage(Storage):
    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "products"):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder

    def save(self, field_name, filename, fileobj, content_type=None):
        name = stored_name(field_name, filename)
        try:
            result = cloudinary.uploader.upload(
                fileobj,
                folder=self.folder,
                public_id=os.path.splitext(name)[0],
                resource_type="image",
                cloud_name=self.cloud_name,
                api_key=self.api_key,
                api_secret=self.api_secret,
            )
        except cloudinary.exceptions.Error as e:
            raise UploadError(f"Cloudinary upload failed: {e}")
        secure_url = result.get("secure_url")
        if not secure_url:
            raise UploadError("Cloudinary response did not include a URL")
        logger.info("Stored upload %s in Cloudinary folder %s", name, self.folder)
        return secure_url


def build_storage(settings: Settings) -> Storage:
    if settings.upload_backend == "cloudinary":
        missing = [
            key for key in ("cloudinary_cloud_name", "cloudinary_api_key", "cloudinary_api_secret")
            if not getattr(settings, key)
        ]
        if missing:
            raise ValueError(f"Cloudinary upload backend needs {', '.join(k.upper() for k in missing)}")
        return CloudinaryStorage(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            settings.cloudinary_folder,
        )
    if settings.upload_backend != "local":
        raise ValueError(f"Unknown upload backend: {settings.upload_backend}")
    return LocalStorage(settings.upload_dir, settings.base_url)
