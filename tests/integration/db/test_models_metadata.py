from __future__ import annotations

from sqlalchemy import UniqueConstraint

from restroflow.database.models import Base
import restroflow.database.models  # noqa: F401


def test_billing_model_metadata_contains_target_tables():
    expected = {"restaurants", "locations", "invoices", "notification_logs"}
    assert expected.issubset(set(Base.metadata.tables.keys()))


def test_invoice_token_and_link_are_unique():
    invoices = Base.metadata.tables["invoices"]

    assert invoices.c.payment_link_token.unique is True
    assert invoices.c.payment_link.unique is True
    assert "metadata" in invoices.c


def test_gateway_payment_id_is_unique_per_invoice():
    invoices = Base.metadata.tables["invoices"]

    unique_columns = [
        tuple(column.name for column in constraint.columns)
        for constraint in invoices.constraints
        if isinstance(constraint, UniqueConstraint)
    ]
    assert ("razorpay_payment_id",) in unique_columns
