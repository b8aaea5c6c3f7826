from __future__ import annotations
import logging
import os
from functools import cached_property
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket
from pydantic_settings import BaseSettings
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from errors import OrderNotFoundError
from schemas import Order, OrderItem, OrderStatus, Product, Vendor

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "print_on_demand")
    LOG_LEVEL: str = "INFO"
    MIN_QUANTITY: int = 1
    MAX_QUANTITY: int = 500
    DISCOUNT_POLICY: str = "v2"
    CORS_ORIGINS: list[str] = ["*"]

settings = Settings()

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None

async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(settings.DATABASE_URL, tz_aware=True)
        _db = _client[settings.DATABASE_NAME]
    return _db


def _oid(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


def _with_id(doc: dict[str, Any]) -> dict[str, Any]:
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoStore:
    """Products, vendors, orders and design files kept in MongoDB.

    An order embeds its items and its status timeline, so a status change and
    its timeline entry are a single document update.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    @cached_property
    def files(self) -> AsyncIOMotorGridFSBucket:
        return AsyncIOMotorGridFSBucket(self.db, bucket_name="designs")

    # Products / vendors

    async def get_product(self, product_id: str) -> Optional[Product]:
        oid = _oid(product_id)
        doc = await self.db["product"].find_one({"_id": oid}) if oid else None
        return Product(**_with_id(doc)) if doc else None

    async def list_products(self, active_only: bool = True, limit: int = 200) -> list[Product]:
        filt = {"active": True} if active_only else {}
        cursor = self.db["product"].find(filt).sort("created_at", ASCENDING).limit(limit)
        return [Product(**_with_id(d)) async for d in cursor]

    async def list_vendors(self) -> list[Vendor]:
        cursor = self.db["vendor"].find({}).sort("created_at", ASCENDING)
        return [Vendor(**_with_id(d)) async for d in cursor]

    async def first_vendor(self) -> Optional[Vendor]:
        doc = await self.db["vendor"].find_one({}, sort=[("created_at", ASCENDING)])
        return Vendor(**_with_id(doc)) if doc else None

    # Orders

    async def create_order(self, fields: dict[str, Any], items: Optional[list[OrderItem]] = None) -> Order:
        now = datetime.now(timezone.utc)
        doc = {
            **fields,
            "status": OrderStatus.NEW.value,
            "items": [item.model_dump() for item in items or []],
            "timeline": [{"status": OrderStatus.NEW.value, "timestamp": now}],
            "created_at": now,
            "updated_at": now,
        }
        result = await self.db["order"].insert_one(doc)
        inserted = await self.db["order"].find_one({"_id": result.inserted_id})
        return Order(**_with_id(inserted))

    async def create_order_item(self, order_id: str, item: OrderItem) -> OrderItem:
        oid = _oid(order_id)
        res = await self.db["order"].update_one({"_id": oid}, {"$push": {"items": item.model_dump()}}) if oid else None
        if res is None or res.matched_count == 0:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return item

    async def get_order(self, order_id: str) -> Optional[Order]:
        oid = _oid(order_id)
        doc = await self.db["order"].find_one({"_id": oid}) if oid else None
        return Order(**_with_id(doc)) if doc else None

    async def get_orders_for_vendor(self, vendor_id: str) -> list[Order]:
        cursor = self.db["order"].find({"vendor_id": vendor_id}).sort("created_at", DESCENDING)
        return [Order(**_with_id(d)) async for d in cursor]

    async def update_order_status(
        self,
        order_id: str,
        vendor_id: str,
        expected: OrderStatus,
        status: OrderStatus,
        at: datetime,
    ) -> Optional[Order]:
        """Set ``status`` and append its timeline entry if the order is still ``expected``.

        Returns None when no order matched (another write got there first).
        """
        oid = _oid(order_id)
        if oid is None:
            return None
        doc = await self.db["order"].find_one_and_update(
            {"_id": oid, "vendor_id": vendor_id, "status": expected.value},
            {
                "$set": {"status": status.value, "updated_at": at},
                "$push": {"timeline": {"status": status.value, "timestamp": at}},
            },
            return_document=ReturnDocument.AFTER,
        )
        return Order(**_with_id(doc)) if doc else None

    # Design files

    async def upload_file(self, data: bytes, filename: str, owner_id: str, content_type: Optional[str] = None) -> str:
        file_id = await self.files.upload_from_stream(
            filename,
            data,
            metadata={"owner_id": owner_id, "content_type": content_type},
        )
        logger.info("stored design %s (%d bytes) for owner=%s", file_id, len(data), owner_id)
        return f"/files/{file_id}"

    async def open_file(self, file_id: str) -> Optional[tuple[str, Optional[str], bytes]]:
        oid = _oid(file_id)
        if oid is None:
            return None
        try:
            grid_out = await self.files.open_download_stream(oid)
        except NoFile:
            return None
        metadata = grid_out.metadata or {}
        return grid_out.filename, metadata.get("content_type"), await grid_out.read()

    # Seeding

    async def seed(self, products: list[dict[str, Any]], vendors: list[dict[str, Any]]) -> int:
        if await self.db["product"].count_documents({}) > 0:
            return 0
        now = datetime.now(timezone.utc)
        await self.db["product"].insert_many([{**p, "created_at": now} for p in products])
        if await self.db["vendor"].count_documents({}) == 0:
            await self.db["vendor"].insert_many([{**v, "created_at": now} for v in vendors])
        return len(products)

    async def collection_names(self) -> list[str]:
        return await self.db.list_collection_names()


async def get_store() -> MongoStore:
    return MongoStore(await get_db())
