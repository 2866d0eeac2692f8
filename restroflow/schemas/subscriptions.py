"""Subscription, restaurant and pricing schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from restroflow.schemas.invoices import InvoiceResponse


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    restaurant_id: int
    restaurant_name: str
    email: str
    plan: str
    price_per_month: Decimal | None = None
    price_per_table: Decimal
    total_tables: int
    locations: int
    status: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool


class RestaurantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_name: str
    email: str
    status: str
    approved_at: datetime | None = None
    price_per_month: Decimal | None = None
    subscription_start_date: datetime | None = None
    subscription_end_date: datetime | None = None
    subscription_is_active: bool


class ExtensionRequest(BaseModel):
    months: int = Field(ge=1, le=36)


class ExtraTablesRequest(BaseModel):
    location_deltas: dict[int, int] = Field(min_length=1)


class InvoiceRequestResponse(BaseModel):
    invoice: InvoiceResponse
    notified: bool


class PricingResponse(BaseModel):
    total_tables: int
    price_per_table: Decimal
    monthly_price: Decimal
    annual_price: Decimal
    plan: str
