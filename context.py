from dataclasses import dataclass

from fastapi import Request
from passlib.context import CryptContext
from pymongo.database import Database

from config import Settings
from uploads import Storage


@dataclass
class ServiceContext:
    """Everything a request handler needs, built once per app."""

    settings: Settings
    db: Database
    pwd_context: CryptContext
    storage: Storage


def get_context(request: Request) -> ServiceContext:
    return request.app.state.ctx
