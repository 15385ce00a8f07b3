"""Field parsing for decoded QR payloads and raw invoice text.

Two pathways:

* Structured payloads follow the Portuguese ATCUD QR schema, a ``*``-joined
  list of ``KEY:value`` segments (``A`` customer NIF, ``F`` date, ``G``
  invoice id, ``O`` total paid, ...).
* Everything else goes through ordered regex heuristics. Each table is
  tried top to bottom and the first usable match wins.

Nothing here raises; fields that cannot be read are left as ``None``.
"""

import re
from collections.abc import Callable
from datetime import date
from decimal import Decimal, InvalidOperation

from src.utils.logger import get_logger

from .fields import ExtractionMethod, InvoiceFields

logger = get_logger(__name__)

SEGMENT_DELIMITER = "*"
KEY_SEPARATOR = ":"
STRUCTURED_CURRENCY = "EUR"

_STRUCTURED_KEY = re.compile(r"^[A-Z][0-9]{0,2}$")

KEY_CUSTOMER_TAX_ID = "A"
KEY_INVOICE_DATE = "F"
KEY_INVOICE_ID = "G"
KEY_TOTAL_PAID = "O"


def normalize_locale_amount(raw: str) -> Decimal | None:
    """Parse an amount written with either separator convention.

    The value is comma-decimal (``1.234,56``) when its last comma comes
    after its last period; otherwise commas are thousands separators
    (``1,234.56``).

    Args:
        raw: Matched amount text.

    Returns:
        The amount, or ``None`` if it is not a number.
    """
    value = raw.strip()
    if "," in value and value.rfind(",") > value.rfind("."):
        value = value.replace(".", "").replace(",", ".")
    else:
        value = value.replace(",", "")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


_GROUPED_WHOLE_NUMBER = re.compile(r"\d{1,3}(?:[.,]\d{3})+")


def normalize_grouped_amount(raw: str) -> Decimal | None:
    """Parse an amount whose separators only group thousands when no decimals follow.

    ``1,234`` and ``1.234`` both read as ``1234``; anything else is handled
    by :func:`normalize_locale_amount`.
    """
    value = raw.strip()
    if _GROUPED_WHOLE_NUMBER.fullmatch(value):
        return Decimal(re.sub(r"[.,]", "", value))
    return normalize_locale_amount(value)


def normalize_comma_decimal(raw: str) -> Decimal | None:
    """Parse a plain amount that may use a comma as decimal separator."""
    try:
        amount = Decimal(raw.strip().replace(",", "."))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


# An amount with thousands grouping or a plain integer part, and two decimals.
_AMOUNT = r"(\d{1,3}(?:[.,]\d{3})+[.,]\d{2}|\d+[.,]\d{2})(?!\d)"
# Same shapes with the decimals optional, for labels that name a total outright.
_WHOLE_OR_DECIMAL_AMOUNT = r"(\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{2})?|\d+(?:[.,]\d{2})?)(?!\d)"
_CURRENCY_SIGN = r"(?:r\$|eur|€|usd|\$|gbp|£)"

_TOTAL_PATTERNS: list[tuple[re.Pattern[str], Callable[[str], Decimal | None]]] = [
    # TOTAL: Eur 55,20 / Valor total € 1.234,56
    (
        re.compile(
            r"(?:total\s*a\s*pagar|valor\s*total|total\s*incidencias|total)"
            rf"[\s:]*{_CURRENCY_SIGN}\s*{_AMOUNT}",
            re.IGNORECASE,
        ),
        normalize_locale_amount,
    ),
    # Eur 55,20 / $1,234.56 / R$ 1.234,56
    (re.compile(rf"{_CURRENCY_SIGN}\s*{_AMOUNT}", re.IGNORECASE), normalize_locale_amount),
    # Total Amount Due: $500 / Grand Total: 1,234 / Balance due: 1,234.56
    (
        re.compile(
            r"(?:total\s*amount\s*due|amount\s*due|balance\s*due|final\s*total"
            rf"|grand\s*total)[\s:]*(?:{_CURRENCY_SIGN}\s*)?{_WHOLE_OR_DECIMAL_AMOUNT}",
            re.IGNORECASE,
        ),
        normalize_grouped_amount,
    ),
    # Total: 55,20 / Valor total 1.234,56
    (
        re.compile(
            r"(?:total\s*a\s*pagar|valor\s*total|total\s*geral"
            rf"|montante|total)[\s:]*{_AMOUNT}",
            re.IGNORECASE,
        ),
        normalize_locale_amount,
    ),
    # A pagar: 55,20
    (
        re.compile(rf"(?:a\s*pagar|pagar)[\s:]*(?:eur|€)?\s*{_AMOUNT}", re.IGNORECASE),
        normalize_locale_amount,
    ),
    # 55,20 EUR / 1,234.56 USD
    (
        re.compile(rf"{_AMOUNT}\s*(?:usd|eur|brl|gbp|€)", re.IGNORECASE),
        normalize_locale_amount,
    ),
    # Last resort: a two-decimal number right at the end of the document.
    (
        re.compile(
            r"(\d{1,6}[.,]\d{2})(?=\s*(?:€|eur|usd|\$|gbp|£)?\s*$)", re.IGNORECASE
        ),
        normalize_locale_amount,
    ),
]

_CURRENCY_PATTERN = re.compile(
    r"(R\$|\$|€|£|\b(?:USD|EUR|GBP|BRL)\b)", re.IGNORECASE
)
_CURRENCY_SYMBOLS = {"$": "USD", "R$": "BRL", "€": "EUR", "£": "GBP"}

# Series prefix + number patterns have two groups and are joined with a space.
_INVOICE_NUMBER_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(FTA?|FR|FA)\s+([A-Z0-9/\-]*\d[A-Z0-9/\-]*)", re.IGNORECASE),
    re.compile(r"(?:fatura-recibo|fatura)\s*n[º°.:\-]?\s*([A-Z0-9/\-]+)", re.IGNORECASE),
    re.compile(r"invoice\s*number\s*[:\-]?\s*([A-Z0-9\-]+)", re.IGNORECASE),
    re.compile(r"invoice\s*#\s*[:\-]?\s*([A-Z0-9\-]+)", re.IGNORECASE),
    re.compile(r"invoice[:\-]\s*([A-Z0-9\-]+)", re.IGNORECASE),
    re.compile(r"nota\s*fiscal\s*[:\-]?\s*([A-Z0-9\-]+)", re.IGNORECASE),
    re.compile(r"#\s*([A-Z0-9\-]{5,})"),
    re.compile(r"\bINV[:\-\s]*([A-Z0-9\-]+)", re.IGNORECASE),
]

_SUPPLIER_PATTERNS: list[re.Pattern[str]] = [
    # Company name followed by an address or tax-id marker.
    re.compile(
        r"^([A-ZÀ-ÿ][A-Za-zÀ-ÿ\s&,.\-]+?)(?:\s+de:|NIF:|Urb\.|Rua|Av\.|Tel:|Email)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(r"^([A-ZÀ-ÿ][A-Za-zÀ-ÿ\s&,.\-]+?)$", re.MULTILINE),
    re.compile(r"\b(?:de|from)[\s:]+([A-ZÀ-ÿ][A-Za-zÀ-ÿ\s&,.\-]+)", re.IGNORECASE),
]

_SUPPLIER_MIN_LENGTH = 4
_SUPPLIER_MAX_LENGTH = 99

_DATE_PATTERNS: list[tuple[re.Pattern[str], tuple[int, int, int]]] = [
    # (pattern, (year group, month group, day group))
    (re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b"), (1, 2, 3)),
    (re.compile(r"\b(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})\b"), (3, 2, 1)),
]


def _iso_date(year: str, month: str, day: str) -> str | None:
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def extract_total(text: str) -> Decimal | None:
    """Find the invoice total in whitespace-normalized text."""
    for pattern, normalize in _TOTAL_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        value = normalize(match.group(1))
        if value is not None and value > 0:
            return value
    return None


def extract_currency(text: str) -> str | None:
    """Return the ISO code of the first currency marker in the text."""
    match = _CURRENCY_PATTERN.search(text)
    if not match:
        return None
    token = match.group(1)
    return _CURRENCY_SYMBOLS.get(token.upper(), token.upper())


def extract_invoice_number(text: str) -> str | None:
    """Find the invoice number, preferring series prefix + number."""
    for pattern in _INVOICE_NUMBER_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        if match.lastindex and match.lastindex >= 2:
            return f"{match.group(1).upper()} {match.group(2)}".strip()
        return match.group(1).strip()
    return None


def extract_supplier_name(text: str) -> str | None:
    """Guess the supplier name from the raw (not normalized) text."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if lines and _SUPPLIER_MIN_LENGTH <= len(lines[0]) <= _SUPPLIER_MAX_LENGTH:
        return lines[0]

    for pattern in _SUPPLIER_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_date(text: str) -> str | None:
    """Find the first valid calendar date and return it in ISO form."""
    for pattern, (y, m, d) in _DATE_PATTERNS:
        for match in pattern.finditer(text):
            iso = _iso_date(match.group(y), match.group(m), match.group(d))
            if iso:
                return iso
    return None


def parse_free_text(text: str) -> InvoiceFields:
    """Extract invoice fields from unstructured text.

    Args:
        text: Raw document text or a non-schema QR payload.

    Returns:
        Best partial record; missing fields are ``None``.
    """
    clean = re.sub(r"\s+", " ", text).strip()
    fields = InvoiceFields(
        total_value=extract_total(clean),
        currency=extract_currency(clean),
        invoice_number=extract_invoice_number(clean),
        invoice_date=extract_date(clean),
        supplier_name=extract_supplier_name(text),
        extraction_method=ExtractionMethod.FREE_TEXT,
    )
    logger.debug("Free-text parse: %s", fields)
    return fields


def split_segments(payload: str) -> dict[str, str]:
    """Split a structured payload into ``{key: value}``.

    Each segment is split on its first separator only, so values may
    themselves contain colons. Segments without a key are skipped.
    """
    segments: dict[str, str] = {}
    for segment in payload.split(SEGMENT_DELIMITER):
        key, sep, value = segment.partition(KEY_SEPARATOR)
        key = key.strip()
        if sep and _STRUCTURED_KEY.match(key):
            segments.setdefault(key, value.strip())
    return segments


def is_structured_payload(payload: str) -> bool:
    """Whether any segment of the payload is an ATCUD ``KEY:value`` pair.

    A single recognised segment is enough, so truncated codes such as
    ``F:20250929*`` still take the structured pathway.
    """
    return bool(split_segments(payload))


def parse_structured_payload(payload: str) -> InvoiceFields:
    """Read the recognised ATCUD keys from a structured payload.

    When neither the total nor the invoice id resolve, the payload is
    scanned with the free-text heuristics so that damaged codes still
    yield partial results.
    """
    segments = split_segments(payload)
    fields = InvoiceFields(
        currency=STRUCTURED_CURRENCY,
        extraction_method=ExtractionMethod.STRUCTURED_CODE,
    )

    if segments.get(KEY_CUSTOMER_TAX_ID):
        fields.customer_tax_id = segments[KEY_CUSTOMER_TAX_ID]

    if segments.get(KEY_INVOICE_ID):
        fields.invoice_number = segments[KEY_INVOICE_ID]

    total = normalize_comma_decimal(segments.get(KEY_TOTAL_PAID, ""))
    if total is not None and total > 0:
        fields.total_value = total

    raw_date = segments.get(KEY_INVOICE_DATE, "")
    if len(raw_date) == 8 and raw_date.isdigit():
        fields.invoice_date = _iso_date(raw_date[:4], raw_date[4:6], raw_date[6:])

    if fields.total_value is None and fields.invoice_number is None:
        logger.info("Structured code lacks total and invoice id, scanning as text")
        clean = re.sub(r"\s+", " ", payload).strip()
        fields.total_value = extract_total(clean)
        fields.invoice_number = extract_invoice_number(clean)

    return fields


def parse_payload(payload: str) -> InvoiceFields:
    """Parse a decoded QR payload with the pathway its format calls for."""
    if not payload.strip():
        return InvoiceFields()
    if is_structured_payload(payload):
        return parse_structured_payload(payload)
    return parse_free_text(payload)
