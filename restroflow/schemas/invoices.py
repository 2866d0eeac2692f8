"""Invoice and payment request/response schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PaymentViewResponse(BaseModel):
    amount: Decimal
    currency: str
    description: str | None = None
    due_date: datetime
    status: str
    type: str
    is_payable: bool


class CreateOrderRequest(BaseModel):
    token: str = Field(min_length=1, max_length=128)


class CreateOrderResponse(BaseModel):
    order_id: str
    amount: Decimal
    currency: str
    key_id: str | None = None


class VerifyPaymentRequest(BaseModel):
    token: str = Field(min_length=1, max_length=128)
    razorpay_order_id: str = Field(min_length=1, max_length=64)
    razorpay_payment_id: str = Field(min_length=1, max_length=64)
    razorpay_signature: str = Field(min_length=1, max_length=256)


class VerifyPaymentResponse(BaseModel):
    status: str = "ok"
    invoice_id: int
    invoice_status: str
    subscription_end_date: datetime | None = None
    price_per_month: Decimal | None = None


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_id: int
    type: str
    amount: Decimal
    tables_added: int = 0
    months_added: int = 0
    prorated_days: int = 0
    description: str | None = None
    status: str
    payment_link: str
    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    due_date: datetime
    paid_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None


class InvoiceListResponse(BaseModel):
    items: list[InvoiceResponse]
    limit: int
    offset: int


class InvoiceCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)
