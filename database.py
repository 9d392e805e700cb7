"""
MongoDB access for the storefront.

The client is opened once per process by the app lifespan and shared by the
catalog and order accessors below.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database

from schemas import OrderCreate, OrderStatus

logger = structlog.get_logger(__name__)

PRODUCTS = "products"
ORDERS = "orders"

TRACKING_FIELDS = {"_id": 0, "status": 1, "customerName": 1, "date": 1, "total": 1}


class InvalidOrderId(ValueError):
    """The identifier is not a well-formed ObjectId."""


class OrderNotFound(LookupError):
    """No order exists with the given identifier."""


def connect(url: str, **kwargs: Any) -> MongoClient:
    logger.info("Connecting to database")
    kwargs.setdefault("tz_aware", True)
    return MongoClient(url, **kwargs)


def to_str_id(doc):
    if not doc:
        return doc
    if isinstance(doc, list):
        return [to_str_id(d) for d in doc]
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d["_id"])  # expose as id
        del d["_id"]
    return d


def parse_object_id(value: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise InvalidOrderId(value)
    return ObjectId(value)


class CatalogReader:
    """Read-only view over the product collection."""

    def __init__(self, db: Database):
        self.collection = db[PRODUCTS]

    def list_products(self) -> List[Dict[str, Any]]:
        return to_str_id(list(self.collection.find()))


class OrderStore:
    def __init__(self, db: Database):
        self.collection = db[ORDERS]

    def create(self, order: OrderCreate, now: Optional[datetime] = None) -> Dict[str, Any]:
        doc = order.to_document(now or datetime.now(timezone.utc))
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("Order stored", order_id=str(result.inserted_id), total=doc["total"])
        return to_str_id(doc)

    def track(self, order_id: str) -> Dict[str, Any]:
        """Public projection of an order: no address or contact fields."""
        doc = self.collection.find_one({"_id": parse_object_id(order_id)}, TRACKING_FIELDS)
        if doc is None:
            raise OrderNotFound(order_id)
        return doc

    def list_all(self) -> List[Dict[str, Any]]:
        return to_str_id(list(self.collection.find().sort("date", DESCENDING)))

    def update_status(self, order_id: str, status: OrderStatus) -> Dict[str, Any]:
        doc = self.collection.find_one_and_update(
            {"_id": parse_object_id(order_id)},
            {"$set": {"status": status}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise OrderNotFound(order_id)
        logger.info("Order status updated", order_id=order_id, status=status)
        return to_str_id(doc)
