"""Structured invoice field record produced once per document."""

from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import StrEnum


class ExtractionMethod(StrEnum):
    """Which pathway produced an :class:`InvoiceFields` record."""

    STRUCTURED_CODE = "structured-code"
    FREE_TEXT = "free-text"
    NONE = "none"


@dataclass
class InvoiceFields:
    """Fields read from an invoice; any of them may be missing."""

    total_value: Decimal | None = None
    invoice_number: str | None = None
    supplier_name: str | None = None
    customer_tax_id: str | None = None
    invoice_date: str | None = None
    currency: str | None = None
    extraction_method: ExtractionMethod = ExtractionMethod.NONE

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for key, value in asdict(self).items()
            if key != "extraction_method"
        )

    def to_dict(self) -> dict[str, object]:
        """Plain JSON-friendly representation (amount as a string)."""
        data = asdict(self)
        if self.total_value is not None:
            data["total_value"] = str(self.total_value)
        data["extraction_method"] = self.extraction_method.value
        return data
