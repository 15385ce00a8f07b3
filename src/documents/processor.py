"""Single-document extraction: adapter, decode cascade, field parser."""

from dataclasses import dataclass
from pathlib import Path

from src.decoding.cascade import DecodeCascade, DecodeResult
from src.extraction.field_parser import parse_free_text, parse_payload
from src.extraction.fields import ExtractionMethod, InvoiceFields
from src.preprocessing.strategies import build_strategies
from src.utils.config import AppConfig
from src.utils.logger import get_logger

from .adapter import DocumentAdapter, is_text_document

logger = get_logger(__name__)


@dataclass
class ExtractionOutcome:
    """Fields read from one document plus the text they came from."""

    fields: InvoiceFields
    raw_text: str = ""
    decode: DecodeResult | None = None


class InvoiceProcessor:
    """Extracts invoice fields from a document file.

    Args:
        config: Application configuration object.
        adapter: Document adapter, built from ``config`` when omitted.
        cascade: Decode cascade, built from ``config`` when omitted.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        adapter: DocumentAdapter | None = None,
        cascade: DecodeCascade | None = None,
    ) -> None:
        config = config or AppConfig()
        self.adapter = adapter or DocumentAdapter(config.render)
        self.cascade = cascade or DecodeCascade(
            strategies=build_strategies(config.preprocessing)
        )

    def extract(self, path: Path | str, filename: str | None = None) -> ExtractionOutcome:
        """Extract fields from an image, PDF or plain-text document.

        Args:
            path: Location of the document on disk.
            filename: Display name used for logging. Defaults to the
                file name of ``path``; the format is detected from ``path``.

        Returns:
            The extracted fields; an empty record when no code was found.

        Raises:
            UnsupportedFormat: If the file type is not supported.
        """
        path = Path(path)
        filename = filename or path.name
        logger.info("Processing document: %s", filename)

        if is_text_document(path):
            text = path.read_text(encoding="utf-8", errors="replace")
            return ExtractionOutcome(fields=parse_free_text(text), raw_text=text)

        result = self.cascade.decode(self.adapter.adapt(path))

        if result is None:
            logger.warning("No QR code found in %s", filename)
            return ExtractionOutcome(
                fields=InvoiceFields(extraction_method=ExtractionMethod.NONE)
            )

        fields = parse_payload(result.payload)
        logger.info(
            "Extracted from %s via %s: total=%s invoice=%s",
            filename,
            fields.extraction_method,
            fields.total_value,
            fields.invoice_number,
        )
        return ExtractionOutcome(fields=fields, raw_text=result.payload, decode=result)
