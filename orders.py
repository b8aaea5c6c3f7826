from __future__ import annotations

import logging
from typing import Dict, List, Optional

from errors import NoVendorAvailableError, OrderValidationError, ProductNotFoundError
from lifecycle import STATUS_FLOW, OrderEvents, VendorSession, reconcile_status
from pricing import DEFAULT_DISCOUNT_POLICY, DiscountPolicy, PricingResult, clamp_quantity, compute_price, find_turnaround
from schemas import PLACEMENTS, Order, OrderConfiguration, OrderItem, OrderRequest, Product

logger = logging.getLogger(__name__)

DEFAULT_DESIGN_FILE = "design.png"


def validate_configuration(product: Product, config: OrderConfiguration) -> None:
    """Reject a configuration that misses or invents a choice the product offers."""
    if not product.active:
        raise OrderValidationError(f"{product.name} is not available for ordering")

    missing = []
    invalid = []
    for label, value, choices in (
        ("size", config.size, product.sizes),
        ("color", config.color, product.colors),
        ("print type", config.print_type, product.supported_print_types),
    ):
        if not choices:
            continue
        if not value:
            missing.append(label)
        elif value not in choices:
            invalid.append(f"{label} {value!r} (choose from {', '.join(choices)})")

    if config.placement not in PLACEMENTS:
        invalid.append(f"placement {config.placement!r} (choose from {', '.join(PLACEMENTS)})")
    if config.turnaround and find_turnaround(product, config.turnaround) is None:
        invalid.append(f"turnaround {config.turnaround!r}")

    if missing:
        raise OrderValidationError(f"Please select: {', '.join(missing)}", missing=missing)
    if invalid:
        raise OrderValidationError(f"Invalid {'; '.join(invalid)}")


async def load_product(store, product_id: str) -> Product:
    product = await store.get_product(product_id)
    if product is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    return product


def price_configuration(
    product: Product,
    config: OrderConfiguration,
    min_quantity: int = 1,
    max_quantity: int = 500,
    policy: DiscountPolicy = DEFAULT_DISCOUNT_POLICY,
) -> tuple[int, PricingResult]:
    quantity = clamp_quantity(config.quantity, min_quantity, max_quantity)
    return quantity, compute_price(product, quantity, find_turnaround(product, config.turnaround), policy)


async def quote(store, config: OrderConfiguration, **pricing_kwargs) -> tuple[Product, int, PricingResult]:
    product = await load_product(store, config.product_id)
    quantity, result = price_configuration(product, config, **pricing_kwargs)
    return product, quantity, result


async def place_order(
    store,
    request: OrderRequest,
    events: Optional[OrderEvents] = None,
    **pricing_kwargs,
) -> Order:
    product = await load_product(store, request.product_id)
    if not request.customer_name.strip():
        raise OrderValidationError("Please enter the customer name", missing=["customer name"])
    validate_configuration(product, request)

    vendor = await store.first_vendor()
    if vendor is None:
        raise NoVendorAvailableError("No vendor is available to take this order")

    quantity, pricing = price_configuration(product, request, **pricing_kwargs)
    item = OrderItem(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        size=request.size,
        color=request.color,
        print_type=request.print_type,
        placement=request.placement,
        unit_price=float(pricing.unit_price),
    )
    # the first item is part of the insert so an order never exists without items
    order = await store.create_order({
        "vendor_id": vendor.id,
        "customer_name": request.customer_name.strip(),
        "customer_phone": request.customer_phone,
        "customer_email": request.customer_email,
        "notes": request.notes,
        "file_url": request.file_url or DEFAULT_DESIGN_FILE,
        "total_price": float(pricing.total),
    }, items=[item])
    logger.info("[order=%s] placed for vendor=%s product=%s qty=%s total=%s", order.id, vendor.id, product.id, quantity, pricing.total)

    if events is not None:
        events.order_created(order)
    return order


async def list_vendor_orders(store, session: VendorSession) -> List[Order]:
    orders = await store.get_orders_for_vendor(session.vendor_id)
    orders = [reconcile_status(o) for o in orders]
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


def status_counts(orders: List[Order]) -> Dict[str, int]:
    counts = {status.value: 0 for status in STATUS_FLOW}
    for order in orders:
        counts[order.status.value] += 1
    return counts