"""Billing core: pricing, proration, verification and invoice lifecycle."""

from restroflow.billing.payment_verifier import PaymentVerifier, compute_signature, verify_payment
from restroflow.billing.pricing import PriceQuote, PricingCalculator, PricingConfig, calculate_price, get_plan_name
from restroflow.billing.proration import calculate_prorated_amount, remaining_days
from restroflow.billing.state_machine import INVOICE_LIFECYCLE, InvalidTransitionError, StateMachine

__all__ = [
    "INVOICE_LIFECYCLE",
    "InvalidTransitionError",
    "PaymentVerifier",
    "PriceQuote",
    "PricingCalculator",
    "PricingConfig",
    "StateMachine",
    "calculate_price",
    "calculate_prorated_amount",
    "compute_signature",
    "get_plan_name",
    "remaining_days",
    "verify_payment",
]
