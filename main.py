import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from pymongo.errors import PyMongoError

import lifecycle
import orders as order_service
from database import MongoStore, get_store, settings
from errors import OrderCoreError
from pricing import get_policy
from schemas import Order, OrderConfiguration, OrderRequest, OrderStatus, Product, Vendor

logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("pod")

app = FastAPI(title="Print On Demand API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

PRICING = {
    "min_quantity": settings.MIN_QUANTITY,
    "max_quantity": settings.MAX_QUANTITY,
    "policy": get_policy(settings.DISCOUNT_POLICY),
}

READY_MESSAGE = "Order Ready! Customer has been notified"


def _notify_customer(order: Order) -> None:
    logger.info("[order=%s] ready, notifying %s", order.id, order.customer_email or order.customer_phone or order.customer_name)


def _announce_order(order: Order) -> None:
    logger.info("[order=%s] new order for vendor=%s total=%s", order.id, order.vendor_id, order.total_price)


events = lifecycle.OrderEvents(created=[_announce_order], ready=[_notify_customer])


@app.exception_handler(OrderCoreError)
async def order_error_handler(request: Request, exc: OrderCoreError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error("store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Something went wrong, please try again"})


def vendor_session(x_vendor_id: Optional[str] = Header(None)) -> lifecycle.VendorSession:
    if not x_vendor_id:
        raise HTTPException(status_code=401, detail="Vendor login required")
    return lifecycle.VendorSession(vendor_id=x_vendor_id)


# Seed data: demo catalog and the demo vendor
SIZES = ["XS", "S", "M", "L", "XL", "XXL"]
COLORS = ["White", "Black", "Navy", "Gray", "Red", "Blue", "Green"]
TURNAROUNDS = [
    {"label": "5-7 Days", "days": 7, "price_multiplier": 1.0},
    {"label": "2-3 Days", "days": 3, "price_multiplier": 1.1},
    {"label": "24 Hours", "days": 1, "price_multiplier": 1.25},
    {"label": "Same Day", "days": 0, "price_multiplier": 1.5},
]

SEED_PRODUCTS: list[dict] = [
    {"name": "Classic Cotton Tee", "category": "T-Shirts", "base_price": 12.0, "image": "👕", "active": True, "supported_print_types": ["DTF", "DTG", "Screen Print"], "sizes": SIZES, "colors": COLORS, "quantity_slabs": [{"min": 1, "max": 10, "price_per_unit": 12.0}, {"min": 11, "max": 50, "price_per_unit": 9.0}, {"min": 51, "max": 500, "price_per_unit": 7.0}], "turnaround_options": TURNAROUNDS},
    {"name": "Premium Hoodie", "category": "Hoodies", "base_price": 28.0, "image": "🧥", "active": True, "supported_print_types": ["DTF", "DTG", "Embroidery"], "sizes": SIZES[1:5], "colors": ["Black", "Gray", "Navy"], "quantity_slabs": [{"min": 1, "max": 10, "price_per_unit": 35.0}, {"min": 11, "max": 50, "price_per_unit": 28.0}, {"min": 51, "max": 500, "price_per_unit": 22.0}], "turnaround_options": TURNAROUNDS[:3]},
    {"name": "Ceramic Mug 11oz", "category": "Mugs", "base_price": 8.0, "image": "☕", "active": True, "supported_print_types": ["Sublimation", "UV Print"], "sizes": ["11oz", "15oz"], "colors": ["White"], "quantity_slabs": [{"min": 1, "max": 10, "price_per_unit": 12.0}, {"min": 11, "max": 50, "price_per_unit": 9.0}, {"min": 51, "max": 200, "price_per_unit": 7.0}], "turnaround_options": TURNAROUNDS},
    {"name": "Die-Cut Sticker", "category": "Stickers", "base_price": 2.0, "image": "🏷️", "active": True, "supported_print_types": ["Vinyl", "UV Print"], "sizes": ['2"', '3"', '4"', '5"'], "colors": ["Full Color"]},
    {"name": "Glossy Poster", "category": "Posters", "base_price": 15.0, "image": "🖼️", "active": True, "supported_print_types": ["UV Print", "Sublimation"], "sizes": ['12x18"', '18x24"', '24x36"'], "colors": ["Full Color"], "turnaround_options": TURNAROUNDS[1:]},
    {"name": "Business Cards 100pk", "category": "Business Cards", "base_price": 25.0, "image": "📇", "active": True, "supported_print_types": ["UV Print"], "sizes": ["Standard", "Square"], "colors": ["Full Color"], "quantity_slabs": [], "turnaround_options": []},
]

SEED_VENDORS: list[dict] = [
    {"name": "PrintMaster Pro", "email": "demo@vendor.com", "city": "Los Angeles", "capabilities": ["DTF", "DTG", "Screen Print", "Sublimation"], "rush_fee": 25.0, "turnaround_days": 3, "onboarding_complete": True},
]


@app.get("/")
async def root():
    return {"message": "Print On Demand Backend Running"}


@app.get("/test")
async def test(store: MongoStore = Depends(get_store)):
    try:
        collections = await store.collection_names()
        return {
            "backend": "✅ Running",
            "database": "✅ Available",
            "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
            "database_name": settings.DATABASE_NAME,
            "connection_status": "Connected",
            "collections": collections,
        }
    except PyMongoError as e:
        return {"backend": "✅ Running", "database": "❌ Not Available", "error": str(e)[:80]}


class SeedResponse(BaseModel):
    inserted: int


@app.post("/seed", response_model=SeedResponse)
async def seed(store: MongoStore = Depends(get_store)):
    return SeedResponse(inserted=await store.seed(SEED_PRODUCTS, SEED_VENDORS))


@app.get("/products", response_model=List[Product])
async def list_products(store: MongoStore = Depends(get_store)):
    return await store.list_products(active_only=True)


@app.get("/products/{product_id}", response_model=Product)
async def get_product(product_id: str, store: MongoStore = Depends(get_store)):
    return await order_service.load_product(store, product_id)


@app.get("/vendors", response_model=List[Vendor])
async def list_vendors(store: MongoStore = Depends(get_store)):
    return await store.list_vendors()


class QuoteOut(BaseModel):
    product_id: str
    quantity: int
    unit_price: float
    subtotal: float
    discount_percent: int
    discount: float
    total: float
    policy: str


@app.post("/quote", response_model=QuoteOut)
async def quote(config: OrderConfiguration, store: MongoStore = Depends(get_store)):
    product, quantity, result = await order_service.quote(store, config, **PRICING)
    return QuoteOut(product_id=product.id, quantity=quantity, policy=PRICING["policy"].name, **result.as_dict())


@app.post("/orders", response_model=Order, status_code=201)
async def create_order(request: OrderRequest, store: MongoStore = Depends(get_store)):
    return await order_service.place_order(store, request, events, **PRICING)


class UploadOut(BaseModel):
    url: str


@app.post("/uploads", response_model=UploadOut, status_code=201)
async def upload_design(
    file: UploadFile = File(...),
    owner_id: str = Form("anonymous"),
    store: MongoStore = Depends(get_store),
):
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    url = await store.upload_file(data, file.filename or "design.png", owner_id, file.content_type)
    return UploadOut(url=url)


@app.get("/files/{file_id}")
async def download_design(file_id: str, store: MongoStore = Depends(get_store)):
    found = await store.open_file(file_id)
    if found is None:
        raise HTTPException(status_code=404, detail="File not found")
    filename, content_type, data = found
    return Response(
        content=data,
        media_type=content_type or "application/octet-stream",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


class VendorOrderOut(Order):
    next_action: Optional[str] = None


class VendorOrdersOut(BaseModel):
    orders: List[VendorOrderOut]
    counts: dict[str, int]
    new_count: int


@app.get("/vendor/orders", response_model=VendorOrdersOut)
async def vendor_orders(
    session: lifecycle.VendorSession = Depends(vendor_session),
    store: MongoStore = Depends(get_store),
):
    found = await order_service.list_vendor_orders(store, session)
    counts = order_service.status_counts(found)
    return VendorOrdersOut(
        orders=[VendorOrderOut(**o.model_dump(), next_action=lifecycle.next_action(o.status)) for o in found],
        counts=counts,
        new_count=counts[OrderStatus.NEW.value],
    )


class AdvanceOut(BaseModel):
    order: VendorOrderOut
    message: str


@app.post("/vendor/orders/{order_id}/advance", response_model=AdvanceOut)
async def advance_order(
    order_id: str,
    session: lifecycle.VendorSession = Depends(vendor_session),
    store: MongoStore = Depends(get_store),
):
    order = await lifecycle.advance(store, session, order_id, events)
    if order.status is OrderStatus.READY:
        message = READY_MESSAGE
    else:
        message = f"Order marked as {order.status.value}"
    return AdvanceOut(
        order=VendorOrderOut(**order.model_dump(), next_action=lifecycle.next_action(order.status)),
        message=message,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
