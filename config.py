import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "clothing_store"
    port: int = 4000
    jwt_secret: str = "dev-secret-change"
    public_url: Optional[str] = None
    upload_backend: str = "local"
    upload_dir: str = "./uploads"
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "products"
    bcrypt_rounds: int = 12
    log_level: str = "INFO"

    @property
    def base_url(self) -> str:
        return (self.public_url or f"http://localhost:{self.port}").rstrip("/")

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)
