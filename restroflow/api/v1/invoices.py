"""Invoice endpoints: public payment flow and admin management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from restroflow.api.v1._authz import authorize_admin, map_auth_error
from restroflow.billing.events import EventPublisher
from restroflow.core.dependencies import get_db_session, get_event_publisher, get_payment_gateway
from restroflow.schemas.invoices import (
    CreateOrderRequest,
    CreateOrderResponse,
    InvoiceCancelRequest,
    InvoiceListResponse,
    InvoiceResponse,
    PaymentViewResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from restroflow.services.invoice_service import InvoiceService
from restroflow.services.payment_gateway import PaymentGateway
from restroflow.services.settlement_service import SubscriptionStateMachine

router = APIRouter(tags=["invoices"])


def require_admin(authorization: str | None) -> None:
    try:
        authorize_admin(authorization)
    except Exception as exc:
        code, detail = map_auth_error(exc)
        raise HTTPException(status_code=code, detail=detail) from exc


@router.get("/invoices/payment/{token}", response_model=PaymentViewResponse)
def get_payment_details(token: str, db: Session = Depends(get_db_session)) -> PaymentViewResponse:
    view = InvoiceService(db=db).get_payment_view(token)
    return PaymentViewResponse(
        amount=view.amount,
        currency=view.currency,
        description=view.description,
        due_date=view.due_date,
        status=view.status,
        type=view.invoice_type,
        is_payable=view.is_payable,
    )


@router.post("/invoices/payment/create-order", response_model=CreateOrderResponse)
def create_payment_order(
    payload: CreateOrderRequest,
    db: Session = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> CreateOrderResponse:
    service = InvoiceService(db=db, gateway=gateway, publisher=publisher)
    order = service.create_payment_order(payload.token)
    return CreateOrderResponse(
        order_id=order.order_id,
        amount=order.amount,
        currency=order.currency,
        key_id=order.key_id,
    )


@router.post("/invoices/payment/verify", response_model=VerifyPaymentResponse)
def verify_payment(
    payload: VerifyPaymentRequest,
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> VerifyPaymentResponse:
    machine = SubscriptionStateMachine(db=db, publisher=publisher)
    result = machine.verify_and_settle(
        token=payload.token,
        order_id=payload.razorpay_order_id,
        payment_id=payload.razorpay_payment_id,
        signature=payload.razorpay_signature,
    )
    restaurant = result.restaurant
    return VerifyPaymentResponse(
        invoice_id=result.invoice.id,
        invoice_status=result.invoice.status,
        subscription_end_date=restaurant.subscription_end_date if restaurant else None,
        price_per_month=restaurant.price_per_month if restaurant else None,
    )


@router.get("/invoices", response_model=InvoiceListResponse)
def list_invoices(
    restaurant_id: int | None = Query(default=None, ge=1),
    status: str | None = Query(default=None, max_length=20),
    invoice_type: str | None = Query(default=None, alias="type", max_length=20),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> InvoiceListResponse:
    require_admin(authorization)
    rows = InvoiceService(db=db).list_invoices(
        restaurant_id=restaurant_id,
        status=status,
        invoice_type=invoice_type,
        limit=limit,
        offset=offset,
    )
    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(row) for row in rows],
        limit=limit,
        offset=offset,
    )


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(
    invoice_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> InvoiceResponse:
    require_admin(authorization)
    return InvoiceResponse.model_validate(InvoiceService(db=db).get_invoice(invoice_id))


@router.post("/invoices/{invoice_id}/cancel", response_model=InvoiceResponse)
def cancel_invoice(
    invoice_id: int,
    payload: InvoiceCancelRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> InvoiceResponse:
    require_admin(authorization)
    invoice = SubscriptionStateMachine(db=db, publisher=publisher).cancel_invoice(invoice_id, reason=payload.reason)
    return InvoiceResponse.model_validate(invoice)
