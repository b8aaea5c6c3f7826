from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

from schemas import Product, TurnaroundOption

CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    # floats come straight from the store; go through str to keep 9.99 as 9.99
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class DiscountPolicy:
    """Volume discount as a step function of quantity.

    ``tiers`` are ``(min_quantity, percent)`` pairs; the highest threshold the
    quantity reaches wins.
    """

    name: str
    tiers: Tuple[Tuple[int, int], ...]

    def percent_for(self, quantity: int) -> int:
        for threshold, percent in sorted(self.tiers, reverse=True):
            if quantity >= threshold:
                return percent
        return 0


VOLUME_DISCOUNT_V1 = DiscountPolicy(name="v1", tiers=((100, 10), (50, 5)))
VOLUME_DISCOUNT_V2 = DiscountPolicy(name="v2", tiers=((51, 20), (11, 10), (5, 5)))

DISCOUNT_POLICIES = {p.name: p for p in (VOLUME_DISCOUNT_V1, VOLUME_DISCOUNT_V2)}
DEFAULT_DISCOUNT_POLICY = VOLUME_DISCOUNT_V2


def get_policy(name: str) -> DiscountPolicy:
    try:
        return DISCOUNT_POLICIES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown discount policy {name!r}, expected one of {sorted(DISCOUNT_POLICIES)}")


@dataclass(frozen=True, slots=True)
class PricingResult:
    unit_price: Decimal
    subtotal: Decimal
    discount_percent: int
    discount: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "unit_price": float(self.unit_price),
            "subtotal": float(self.subtotal),
            "discount_percent": self.discount_percent,
            "discount": float(self.discount),
            "total": float(self.total),
        }


def clamp_quantity(quantity: int, low: int = 1, high: int = 500) -> int:
    return max(low, min(high, int(quantity)))


def find_turnaround(product: Product, label: Optional[str]) -> Optional[TurnaroundOption]:
    if not label or not product.turnaround_options:
        return None
    for option in product.turnaround_options:
        if option.label == label:
            return option
    return None


def resolve_unit_price(product: Product, quantity: int) -> Decimal:
    """Per-unit price of the first slab containing ``quantity``, else base price."""
    if product.quantity_slabs:
        for slab in sorted(product.quantity_slabs, key=lambda s: s.min):
            if slab.min <= quantity <= slab.max:
                return _money(slab.price_per_unit)
    return _money(product.base_price)


def compute_price(
    product: Product,
    quantity: int,
    turnaround: Optional[TurnaroundOption] = None,
    policy: DiscountPolicy = DEFAULT_DISCOUNT_POLICY,
) -> PricingResult:
    """Price ``quantity`` units of ``product``.

    Callers clamp ``quantity`` to at least 1 first; this is a calculator and
    does not validate the configuration.
    """
    multiplier = Decimal(str(turnaround.price_multiplier)) if turnaround is not None else Decimal("1")
    unit_price = (resolve_unit_price(product, quantity) * multiplier).quantize(CENTS, rounding=ROUND_HALF_UP)
    subtotal = (unit_price * quantity).quantize(CENTS, rounding=ROUND_HALF_UP)

    percent = policy.percent_for(quantity)
    discount = (subtotal * percent / Decimal(100)).quantize(CENTS, rounding=ROUND_HALF_UP)
    total = max(subtotal - discount, Decimal("0.00"))
    return PricingResult(
        unit_price=unit_price,
        subtotal=subtotal,
        discount_percent=percent,
        discount=discount,
        total=total,
    )
