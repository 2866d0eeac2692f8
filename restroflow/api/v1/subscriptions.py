"""Admin subscription endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from restroflow.api.v1.invoices import require_admin
from restroflow.billing.events import EventPublisher
from restroflow.billing.pricing import PricingCalculator, PricingConfig
from restroflow.core.dependencies import get_db_session, get_event_publisher, get_notifier, get_settings
from restroflow.core.exceptions import ValidationError
from restroflow.schemas.invoices import InvoiceResponse
from restroflow.schemas.subscriptions import (
    ExtensionRequest,
    ExtraTablesRequest,
    InvoiceRequestResponse,
    PricingResponse,
    RestaurantResponse,
    SubscriptionResponse,
)
from restroflow.services.notification_service import Notifier
from restroflow.services.subscription_service import InvoiceRequestResult, SubscriptionService

router = APIRouter(tags=["subscriptions"])


def _invoice_request_response(result: InvoiceRequestResult) -> InvoiceRequestResponse:
    return InvoiceRequestResponse(
        invoice=InvoiceResponse.model_validate(result.invoice),
        notified=result.notified,
    )


@router.get("/pricing", response_model=PricingResponse)
def get_pricing(
    tables: int = Query(ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> PricingResponse:
    require_admin(authorization)
    calculator = PricingCalculator(PricingConfig.from_settings(get_settings()))
    quote = calculator.quote(tables)
    if quote is None:
        raise ValidationError("Table count is below the billable minimum.", kind="no_billable_tables")
    return PricingResponse(
        total_tables=quote.total_tables,
        price_per_table=quote.price_per_table,
        monthly_price=quote.monthly_price,
        annual_price=quote.annual_price,
        plan=calculator.plan_for(quote.total_tables).value,
    )


@router.get("/subscriptions/{restaurant_id}", response_model=SubscriptionResponse)
def get_subscription(
    restaurant_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> SubscriptionResponse:
    require_admin(authorization)
    summary = SubscriptionService(db=db).get_subscription_summary(restaurant_id)
    return SubscriptionResponse(**{**asdict(summary), "status": summary.status.value})


@router.post("/subscriptions/{restaurant_id}/approve", response_model=RestaurantResponse)
def approve_restaurant(
    restaurant_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> RestaurantResponse:
    require_admin(authorization)
    restaurant = SubscriptionService(db=db, publisher=publisher).approve_restaurant(restaurant_id)
    return RestaurantResponse.model_validate(restaurant)


@router.post("/subscriptions/{restaurant_id}/extension", response_model=InvoiceRequestResponse)
def request_extension(
    restaurant_id: int,
    payload: ExtensionRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
    notifier: Notifier = Depends(get_notifier),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> InvoiceRequestResponse:
    require_admin(authorization)
    service = SubscriptionService(db=db, notifier=notifier, publisher=publisher)
    return _invoice_request_response(service.request_extension(restaurant_id, payload.months))


@router.post("/subscriptions/{restaurant_id}/extra-tables", response_model=InvoiceRequestResponse)
def request_extra_tables(
    restaurant_id: int,
    payload: ExtraTablesRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
    notifier: Notifier = Depends(get_notifier),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> InvoiceRequestResponse:
    require_admin(authorization)
    service = SubscriptionService(db=db, notifier=notifier, publisher=publisher)
    return _invoice_request_response(service.request_extra_tables(restaurant_id, payload.location_deltas))


@router.post("/subscriptions/{restaurant_id}/cancel", response_model=RestaurantResponse)
def cancel_subscription(
    restaurant_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> RestaurantResponse:
    require_admin(authorization)
    restaurant = SubscriptionService(db=db, publisher=publisher).cancel_subscription(restaurant_id)
    return RestaurantResponse.model_validate(restaurant)
