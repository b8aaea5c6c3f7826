"""
Print-on-demand schemas

Product -> "product", Vendor -> "vendor", Order -> "order" collections.
Order items and the status timeline are embedded in the order document.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

PLACEMENTS = ["Front", "Back", "Left Sleeve", "Right Sleeve", "Full Body"]


class OrderStatus(str, Enum):
    NEW = "new"
    ACCEPTED = "accepted"
    PRINTING = "printing"
    READY = "ready"
    COMPLETED = "completed"


class QuantitySlab(BaseModel):
    min: int = Field(ge=1)
    max: int = Field(ge=1)
    price_per_unit: float = Field(gt=0)

    @model_validator(mode="after")
    def check_range(self) -> "QuantitySlab":
        if self.min > self.max:
            raise ValueError(f"slab min {self.min} is above max {self.max}")
        return self


class TurnaroundOption(BaseModel):
    label: str
    days: int = Field(ge=0)
    price_multiplier: float = Field(ge=1.0, default=1.0)


class Product(BaseModel):
    id: str
    name: str
    category: str = "T-Shirts"
    base_price: float = Field(gt=0)
    image: Optional[str] = None
    active: bool = True
    supported_print_types: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    # None means the product never declared slabs/options; [] means it declared none
    quantity_slabs: Optional[List[QuantitySlab]] = None
    turnaround_options: Optional[List[TurnaroundOption]] = None
    created_at: Optional[datetime] = None

    @field_validator("quantity_slabs")
    @classmethod
    def check_slabs_disjoint(cls, slabs: Optional[List[QuantitySlab]]) -> Optional[List[QuantitySlab]]:
        if slabs:
            ordered = sorted(slabs, key=lambda s: s.min)
            for prev, nxt in zip(ordered, ordered[1:]):
                if nxt.min <= prev.max:
                    raise ValueError(f"slabs {prev.min}-{prev.max} and {nxt.min}-{nxt.max} overlap")
        return slabs


class Vendor(BaseModel):
    id: str
    name: str
    email: str
    city: Optional[str] = None
    capabilities: List[str] = Field(default_factory=list)
    rush_fee: float = Field(ge=0, default=0)
    turnaround_days: int = Field(ge=0, default=3)
    onboarding_complete: bool = False
    created_at: Optional[datetime] = None


class OrderConfiguration(BaseModel):
    product_id: str
    quantity: int = 1
    size: Optional[str] = None
    color: Optional[str] = None
    print_type: Optional[str] = None
    placement: str = "Front"
    turnaround: Optional[str] = Field(None, description="Label of one of the product's turnaround options")


class OrderRequest(OrderConfiguration):
    customer_name: str = ""
    customer_phone: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    notes: Optional[str] = None
    file_url: Optional[str] = None


class OrderItem(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(ge=1)
    size: Optional[str] = None
    color: Optional[str] = None
    print_type: Optional[str] = None
    placement: str = "Front"
    unit_price: float = Field(ge=0)


class TimelineEntry(BaseModel):
    status: OrderStatus
    timestamp: datetime


class Order(BaseModel):
    id: str
    vendor_id: str
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    notes: Optional[str] = None
    file_url: Optional[str] = None
    total_price: float = Field(ge=0)
    status: OrderStatus = OrderStatus.NEW
    items: List[OrderItem] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
