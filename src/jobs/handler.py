"""Per-job flow: fetch the item's file, extract fields, update the board."""

from pathlib import Path
from typing import Protocol

from src.documents.processor import InvoiceProcessor
from src.extraction.fields import InvoiceFields
from src.integrations.monday import RemoteFile
from src.utils.logger import get_logger

from .queue import Job

logger = get_logger(__name__)


class DocumentSource(Protocol):
    def fetch_files(self, item_id: str) -> list[RemoteFile]: ...

    def download(self, remote_file: RemoteFile, target_dir: Path) -> Path: ...


class FieldSink(Protocol):
    def apply_fields(
        self, destination_ref: str, item_id: str, fields: InvoiceFields
    ) -> None: ...


class JobHandler:
    """Processes one queued job end to end.

    Only the first file of an item is read. A document without a readable
    code still produces a sink update with empty fields.

    Args:
        source: Where item files are listed and downloaded from.
        sink: Where extracted fields are written.
        processor: Single-document extraction pipeline.
        upload_dir: Scratch directory for downloads.
    """

    def __init__(
        self,
        source: DocumentSource,
        sink: FieldSink,
        processor: InvoiceProcessor,
        upload_dir: Path = Path("uploads"),
    ) -> None:
        self.source = source
        self.sink = sink
        self.processor = processor
        self.upload_dir = Path(upload_dir)

    def __call__(self, job: Job) -> None:
        files = self.source.fetch_files(job.document_ref)
        if not files:
            logger.warning("No files found for item %s", job.document_ref)
            return

        remote = files[0]
        local_path = self.source.download(remote, self.upload_dir)
        try:
            outcome = self.processor.extract(local_path, remote.name)
        finally:
            local_path.unlink(missing_ok=True)

        fields = outcome.fields
        logger.info(
            "Extracted: total=%s invoice=%s supplier=%s (%s)",
            fields.total_value,
            fields.invoice_number,
            fields.supplier_name,
            fields.extraction_method,
        )
        self.sink.apply_fields(job.destination_ref, job.document_ref, fields)
