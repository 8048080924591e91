"""
MongoDB access helpers.

The connection is opened once by ``connect`` and carried around in the
service context; every helper here takes the database handle explicitly.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import Settings
from schemas import Product, ProductIn

logger = logging.getLogger(__name__)

PRODUCT_ID_ATTEMPTS = 5

SortSpec = Sequence[Tuple[str, int]]


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.database_url, serverSelectionTimeoutMS=5000)
    logger.info("MongoDB client created for database %s", settings.database_name)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    db["product"].create_index("id", unique=True)
    db["product"].create_index("category")
    db["user"].create_index("email", unique=True)
    db["order"].create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_document(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    return dict(data)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with createdAt/updatedAt and return its id."""
    doc = _as_document(data)
    now = utcnow()
    doc["createdAt"] = now
    doc["updatedAt"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[SortSpec] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    return list(cursor)


def update_document(
    db: Database, collection_name: str, filter_dict: Dict[str, Any], changes: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Apply ``$set`` changes plus a fresh updatedAt; return the new document or None."""
    changes = dict(changes)
    changes["updatedAt"] = utcnow()
    return db[collection_name].find_one_and_update(
        filter_dict, {"$set": changes}, return_document=ReturnDocument.AFTER
    )


def next_product_id(db: Database) -> int:
    last = db["product"].find_one({}, sort=[("id", DESCENDING)], projection={"id": 1})
    if not last:
        return 1
    return int(last["id"]) + 1


def insert_product(db: Database, data: ProductIn) -> Dict[str, Any]:
    """
    Persist a new product under the next sequential catalog id.

    The unique index on ``id`` rejects a second writer that computed the same
    id; that writer recomputes and tries again.
    """
    for attempt in range(1, PRODUCT_ID_ATTEMPTS + 1):
        product = Product(id=next_product_id(db), **data.model_dump())
        try:
            inserted_id = create_document(db, "product", product)
        except DuplicateKeyError:
            logger.warning("Product id %s already taken (attempt %s)", product.id, attempt)
            continue
        return db["product"].find_one({"_id": ObjectId(inserted_id)})
    raise DuplicateKeyError(f"Could not allocate a product id after {PRODUCT_ID_ATTEMPTS} attempts")


def parse_object_id(value: str) -> Optional[ObjectId]:
    if not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def _plain(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Make a Mongo document JSON friendly.

    ``_id`` becomes the string ``id`` unless the document already carries its
    own ``id`` (products), in which case ``_id`` is dropped.
    """
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if "id" not in doc and _id is not None:
        doc["id"] = str(_id)
    return {k: _plain(v) for k, v in doc.items()}
