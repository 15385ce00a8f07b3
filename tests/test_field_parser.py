"""Tests for structured payload parsing and free-text heuristics."""

from decimal import Decimal

import pytest

from src.extraction.field_parser import (
    extract_currency,
    extract_date,
    extract_invoice_number,
    extract_supplier_name,
    extract_total,
    is_structured_payload,
    normalize_comma_decimal,
    normalize_grouped_amount,
    normalize_locale_amount,
    parse_free_text,
    parse_payload,
    parse_structured_payload,
    split_segments,
)
from src.extraction.fields import ExtractionMethod, InvoiceFields


class TestAmountNormalization:
    """Tests for amount normalizers."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1.234,56", Decimal("1234.56")),
            ("1,234.56", Decimal("1234.56")),
            ("55,20", Decimal("55.20")),
            ("55.20", Decimal("55.20")),
            ("1.234.567,89", Decimal("1234567.89")),
        ],
    )
    def test_locale_amount(self, raw: str, expected: Decimal) -> None:
        assert normalize_locale_amount(raw) == expected

    def test_locale_amount_rejects_garbage(self) -> None:
        assert normalize_locale_amount("abc") is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1,234", Decimal("1234")),
            ("1.234.567", Decimal("1234567")),
            ("500", Decimal("500")),
            ("1,234.56", Decimal("1234.56")),
            ("55,20", Decimal("55.20")),
        ],
    )
    def test_grouped_amount(self, raw: str, expected: Decimal) -> None:
        assert normalize_grouped_amount(raw) == expected

    def test_comma_decimal(self) -> None:
        assert normalize_comma_decimal("55,20") == Decimal("55.20")
        assert normalize_comma_decimal("") is None
        assert normalize_comma_decimal("NaN") is None


class TestExtractTotal:
    """Tests for the ordered total amount patterns."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Total: Eur 1.234,56", "1234.56"),
            ("Total Amount Due: $1,234.56", "1234.56"),
            ("Pay $1,234.56 now", "1234.56"),
            ("Amount due: 1,234.56", "1234.56"),
            ("Valor total € 99,90", "99.90"),
            ("A pagar: 55,20", "55.20"),
            ("Valor 99,90 EUR", "99.90"),
            ("R$ 1.234,56", "1234.56"),
            ("Obrigado pela preferencia 12,50", "12.50"),
        ],
    )
    def test_patterns(self, text: str, expected: str) -> None:
        assert extract_total(text) == Decimal(expected)

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Total Amount Due: $500", "500"),
            ("Grand Total: $1,234", "1234"),
            ("Amount due: 1,234", "1234"),
            ("Balance due: 1.234", "1234"),
            ("Final total 75", "75"),
        ],
    )
    def test_labelled_whole_number_totals(self, text: str, expected: str) -> None:
        assert extract_total(text) == Decimal(expected)

    def test_zero_total_rejected(self) -> None:
        assert extract_total("Total: 0,00") is None

    def test_no_amount(self) -> None:
        assert extract_total("hello world") is None


class TestExtractCurrency:
    """Tests for currency detection."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Total $10.00", "USD"),
            ("€ 10,00", "EUR"),
            ("Total: Eur 55,20", "EUR"),
            ("R$ 10,00", "BRL"),
            ("10.00 usd", "USD"),
            ("£5.00", "GBP"),
        ],
    )
    def test_currency(self, text: str, expected: str) -> None:
        assert extract_currency(text) == expected

    def test_no_currency(self) -> None:
        assert extract_currency("nothing to see") is None


class TestExtractInvoiceNumber:
    """Tests for invoice number patterns."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Fatura-Recibo FR 2025/10", "FR 2025/10"),
            ("documento ft 123", "FT 123"),
            ("FTA 2025/001 emitida", "FTA 2025/001"),
            ("fatura nº 123/2025", "123/2025"),
            ("Invoice Number: INV-2024-001", "INV-2024-001"),
            ("Invoice #12345", "12345"),
            ("Nota Fiscal: 98765", "98765"),
        ],
    )
    def test_patterns(self, text: str, expected: str) -> None:
        assert extract_invoice_number(text) == expected

    def test_series_prefix_requires_digit(self) -> None:
        assert extract_invoice_number("FA bla") is None

    def test_no_number(self) -> None:
        assert extract_invoice_number("Nothing here") is None


class TestExtractSupplierName:
    """Tests for supplier name heuristics."""

    def test_first_line(self) -> None:
        assert extract_supplier_name("ACME Comércio Lda\nRua X 12") == "ACME Comércio Lda"

    def test_name_before_tax_id_marker(self) -> None:
        text = "#1\nLoja Central NIF: 500100200"
        assert extract_supplier_name(text) == "Loja Central"

    def test_empty_text(self) -> None:
        assert extract_supplier_name("") is None


class TestExtractDate:
    """Tests for date heuristics."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Data: 2025-09-29", "2025-09-29"),
            ("Emitida 15/01/2024", "2024-01-15"),
            ("Emitida 5.3.2024", "2024-03-05"),
        ],
    )
    def test_dates(self, text: str, expected: str) -> None:
        assert extract_date(text) == expected

    def test_invalid_calendar_date(self) -> None:
        assert extract_date("31/02/2024") is None

    def test_no_date(self) -> None:
        assert extract_date("no date") is None


class TestParseFreeText:
    """Tests for the free-text pathway."""

    def test_us_invoice(self) -> None:
        fields = parse_free_text("Globex Corp\nInvoice #A1234\nTotal Amount Due: $1,234.56")
        assert fields.total_value == Decimal("1234.56")
        assert fields.currency == "USD"
        assert fields.invoice_number == "A1234"
        assert fields.supplier_name == "Globex Corp"
        assert fields.extraction_method == ExtractionMethod.FREE_TEXT

    def test_partial_record_is_kept(self) -> None:
        fields = parse_free_text("   ")
        assert fields.total_value is None
        assert fields.extraction_method == ExtractionMethod.FREE_TEXT


class TestSegments:
    """Tests for structured payload splitting."""

    def test_split_on_first_separator(self) -> None:
        assert split_segments("A:1*B:2:3*junk*lower:x*A:9") == {"A": "1", "B": "2:3"}

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ("A:1*B:2", True),
            ("A:1", True),
            ("F:20250929*", True),
            ("Total: 10,00 EUR", False),
            ("hello*world", False),
            ("https://example.com/?a=1*2", False),
        ],
    )
    def test_is_structured(self, payload: str, expected: bool) -> None:
        assert is_structured_payload(payload) is expected


class TestParseStructuredPayload:
    """Tests for the ATCUD pathway."""

    def test_full_payload(self, atcud_payload: str) -> None:
        fields = parse_structured_payload(atcud_payload)
        assert fields.customer_tax_id == "123456789"
        assert fields.total_value == Decimal("55.20")
        assert fields.invoice_number == "FT A/2025/123"
        assert fields.invoice_date == "2025-09-29"
        assert fields.currency == "EUR"
        assert fields.extraction_method == ExtractionMethod.STRUCTURED_CODE

    def test_total_uses_comma_decimal(self) -> None:
        assert parse_structured_payload("G:FT 1*O:55,20").total_value == Decimal("55.20")

    @pytest.mark.parametrize("raw_date", ["2025099", "20251340", "2025-09-29"])
    def test_malformed_date_is_dropped(self, raw_date: str) -> None:
        fields = parse_structured_payload(f"G:FT 1*F:{raw_date}")
        assert fields.invoice_date is None
        assert fields.invoice_number == "FT 1"

    def test_non_positive_total_is_dropped(self) -> None:
        assert parse_structured_payload("G:FT 1*O:0,00").total_value is None

    def test_falls_back_to_text_heuristics(self) -> None:
        payload = "A:123456789*B:999999990*X:Total: Eur 12,50*Z:FT 2025/9"
        fields = parse_structured_payload(payload)
        assert fields.total_value == Decimal("12.50")
        assert fields.invoice_number == "FT 2025/9"
        assert fields.customer_tax_id == "123456789"
        assert fields.extraction_method == ExtractionMethod.STRUCTURED_CODE


class TestParsePayload:
    """Tests for pathway selection."""

    def test_structured(self, atcud_payload: str) -> None:
        assert parse_payload(atcud_payload).extraction_method == ExtractionMethod.STRUCTURED_CODE

    @pytest.mark.parametrize(
        ("payload", "field", "expected"),
        [
            ("F:20250929", "invoice_date", "2025-09-29"),
            ("F:20250929*", "invoice_date", "2025-09-29"),
            ("O:55,20", "total_value", Decimal("55.20")),
            ("A:123456789", "customer_tax_id", "123456789"),
        ],
    )
    def test_single_segment_code_is_structured(
        self, payload: str, field: str, expected: object
    ) -> None:
        fields = parse_payload(payload)
        assert getattr(fields, field) == expected
        assert fields.extraction_method == ExtractionMethod.STRUCTURED_CODE
        assert fields.supplier_name is None

    def test_free_text(self) -> None:
        fields = parse_payload("Fatura FT 2025/1 Total: 10,00 EUR")
        assert fields.extraction_method == ExtractionMethod.FREE_TEXT
        assert fields.total_value == Decimal("10.00")

    def test_blank(self) -> None:
        assert parse_payload("  ") == InvoiceFields()


class TestInvoiceFields:
    """Tests for the InvoiceFields record."""

    def test_empty(self) -> None:
        assert InvoiceFields().is_empty
        assert not InvoiceFields(currency="EUR").is_empty

    def test_to_dict(self) -> None:
        data = InvoiceFields(
            total_value=Decimal("55.20"), extraction_method=ExtractionMethod.FREE_TEXT
        ).to_dict()
        assert data["total_value"] == "55.20"
        assert data["extraction_method"] == "free-text"
        assert data["invoice_number"] is None
