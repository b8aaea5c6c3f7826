"""Pytest fixtures: an in-memory store with the same interface as MongoStore."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from errors import OrderNotFoundError
from schemas import Order, OrderItem, OrderStatus, Product, QuantitySlab, TimelineEntry, TurnaroundOption, Vendor


class MemoryStore:
    def __init__(self) -> None:
        self.products: Dict[str, Product] = {}
        self.vendors: List[Vendor] = []
        self.orders: Dict[str, Order] = {}
        self.files: Dict[str, tuple] = {}
        self.status_writes: List[tuple] = []

    # Seed helpers
    def add_product(self, **fields: Any) -> Product:
        fields.setdefault("id", uuid.uuid4().hex)
        product = Product(**fields)
        self.products[product.id] = product
        return product

    def add_vendor(self, vendor_id: str, name: str = "PrintMaster Pro") -> Vendor:
        vendor = Vendor(id=vendor_id, name=name, email=f"{vendor_id.lower()}@vendor.com")
        self.vendors.append(vendor)
        return vendor

    def add_order(self, vendor_id: str, status: OrderStatus = OrderStatus.NEW, **fields: Any) -> Order:
        now = datetime.now(timezone.utc)
        order = Order(
            id=fields.pop("id", uuid.uuid4().hex),
            vendor_id=vendor_id,
            customer_name=fields.pop("customer_name", "John Smith"),
            total_price=fields.pop("total_price", 300),
            status=status,
            timeline=fields.pop("timeline", [TimelineEntry(status=status, timestamp=now)]),
            created_at=fields.pop("created_at", now),
            updated_at=now,
            **fields,
        )
        self.orders[order.id] = order
        return order

    # Store interface
    async def get_product(self, product_id: str) -> Optional[Product]:
        return self.products.get(product_id)

    async def list_products(self, active_only: bool = True, limit: int = 200) -> List[Product]:
        return [p for p in self.products.values() if p.active or not active_only][:limit]

    async def list_vendors(self) -> List[Vendor]:
        return list(self.vendors)

    async def first_vendor(self) -> Optional[Vendor]:
        return self.vendors[0] if self.vendors else None

    async def create_order(self, fields: Dict[str, Any], items: Optional[List[OrderItem]] = None) -> Order:
        now = datetime.now(timezone.utc)
        order = Order(
            id=uuid.uuid4().hex,
            items=list(items or []),
            status=OrderStatus.NEW,
            timeline=[TimelineEntry(status=OrderStatus.NEW, timestamp=now)],
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.orders[order.id] = order
        return order

    async def create_order_item(self, order_id: str, item: OrderItem) -> OrderItem:
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        self.orders[order_id] = order.model_copy(update={"items": [*order.items, item]})
        return item

    async def get_order(self, order_id: str) -> Optional[Order]:
        return self.orders.get(order_id)

    async def get_orders_for_vendor(self, vendor_id: str) -> List[Order]:
        return [o for o in self.orders.values() if o.vendor_id == vendor_id]

    async def update_order_status(self, order_id, vendor_id, expected, status, at) -> Optional[Order]:
        self.status_writes.append((order_id, expected, status))
        order = self.orders.get(order_id)
        if order is None or order.vendor_id != vendor_id or order.status != expected:
            return None
        updated = order.model_copy(update={
            "status": status,
            "updated_at": at,
            "timeline": [*order.timeline, TimelineEntry(status=status, timestamp=at)],
        })
        self.orders[order_id] = updated
        return updated

    async def upload_file(self, data: bytes, filename: str, owner_id: str, content_type: Optional[str] = None) -> str:
        file_id = uuid.uuid4().hex
        self.files[file_id] = (filename, content_type, data)
        return f"/files/{file_id}"

    async def open_file(self, file_id: str):
        return self.files.get(file_id)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def tee(store: MemoryStore) -> Product:
    return store.add_product(
        id="tee",
        name="Classic Cotton Tee",
        base_price=12,
        supported_print_types=["DTF", "DTG"],
        sizes=["S", "M", "L"],
        colors=["White", "Black"],
        quantity_slabs=[
            QuantitySlab(min=51, max=500, price_per_unit=7),
            QuantitySlab(min=11, max=50, price_per_unit=9),
            QuantitySlab(min=1, max=10, price_per_unit=12),
        ],
        turnaround_options=[
            TurnaroundOption(label="5-7 Days", days=7, price_multiplier=1.0),
            TurnaroundOption(label="24 Hours", days=1, price_multiplier=1.25),
        ],
    )


@pytest.fixture
def store() -> MemoryStore:
    store = MemoryStore()
    store.add_vendor("V1")
    store.add_vendor("V2", name="Second Shop")
    return store


@pytest.fixture
def client(store: MemoryStore):
    from database import get_store
    from main import app

    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
