from __future__ import annotations

import pytest

from restroflow.billing.metadata import (
    ExtraTableMetadata,
    TermMetadata,
    dump_invoice_metadata,
    parse_invoice_metadata,
)
from restroflow.core.enums import InvoiceType
from restroflow.core.exceptions import ValidationError


def test_extra_table_metadata_parses_with_deltas():
    raw = {"kind": "extra_table", "basis_table_count": 14, "location_deltas": {"3": 4}}

    parsed = parse_invoice_metadata("EXTRA_TABLE", raw)

    assert isinstance(parsed, ExtraTableMetadata)
    assert parsed.basis_table_count == 14
    assert parsed.location_deltas == {"3": 4}


@pytest.mark.parametrize("invoice_type", [InvoiceType.RENEWAL, InvoiceType.EXTENSION, InvoiceType.MONTHLY])
def test_term_metadata_for_term_invoices(invoice_type):
    parsed = parse_invoice_metadata(invoice_type, {"kind": "term", "months_added": 3})

    assert isinstance(parsed, TermMetadata)
    assert parsed.months_added == 3


def test_variant_must_match_invoice_type():
    with pytest.raises(ValidationError) as exc:
        parse_invoice_metadata(InvoiceType.RENEWAL, {"kind": "extra_table", "basis_table_count": 2})
    assert exc.value.kind == "invalid_invoice_metadata"


@pytest.mark.parametrize(
    "raw",
    [
        None,
        {},
        {"kind": "term", "months_added": 0},
        {"kind": "term", "months_added": 1, "tables_added": 5},
        {"kind": "extra_table", "basis_table_count": 0},
    ],
)
def test_invalid_metadata_is_rejected(raw):
    with pytest.raises(ValidationError):
        parse_invoice_metadata(InvoiceType.EXTENSION if raw and raw.get("kind") == "term" else "EXTRA_TABLE", raw)


def test_dump_is_json_ready_and_tagged():
    dumped = dump_invoice_metadata(ExtraTableMetadata(basis_table_count=8))

    assert dumped == {"kind": "extra_table", "basis_table_count": 8, "location_deltas": {}}
