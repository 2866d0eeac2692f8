"""Typed invoice metadata, one variant per invoice family."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from restroflow.core.enums import InvoiceType
from restroflow.core.exceptions import ValidationError


class ExtraTableMetadata(BaseModel):
    """Billing basis captured when an extra-table invoice is issued."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["extra_table"] = "extra_table"
    basis_table_count: int = Field(ge=1)
    location_deltas: dict[str, int] = Field(default_factory=dict)


class TermMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["term"] = "term"
    months_added: int = Field(ge=1)


InvoiceMetadata = Annotated[Union[ExtraTableMetadata, TermMetadata], Field(discriminator="kind")]

_ADAPTER: TypeAdapter = TypeAdapter(InvoiceMetadata)

EXPECTED_VARIANT: dict[InvoiceType, type[BaseModel]] = {
    InvoiceType.EXTRA_TABLE: ExtraTableMetadata,
    InvoiceType.RENEWAL: TermMetadata,
    InvoiceType.EXTENSION: TermMetadata,
    InvoiceType.MONTHLY: TermMetadata,
}


def parse_invoice_metadata(invoice_type: InvoiceType | str, raw: dict[str, Any] | None) -> ExtraTableMetadata | TermMetadata:
    """Validate stored metadata and check it matches the invoice type."""
    resolved_type = InvoiceType(invoice_type)
    try:
        parsed = _ADAPTER.validate_python(raw or {})
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invoice metadata is invalid for {resolved_type.value}: {exc.errors()[0]['msg']}",
            kind="invalid_invoice_metadata",
        ) from exc

    expected = EXPECTED_VARIANT[resolved_type]
    if not isinstance(parsed, expected):
        raise ValidationError(
            f"{resolved_type.value} invoices require {expected.__name__}.",
            kind="invalid_invoice_metadata",
        )
    return parsed


def dump_invoice_metadata(metadata: ExtraTableMetadata | TermMetadata) -> dict[str, Any]:
    return metadata.model_dump(mode="json")
