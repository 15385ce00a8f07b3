"""FastAPI application for the invoice extraction service.

Receives board webhooks and turns trigger-column changes into queued jobs,
and offers a direct upload endpoint for extracting a single document.
"""

import tempfile
import time
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile

from src.documents.adapter import SUPPORTED_EXTENSIONS, document_extension
from src.documents.processor import InvoiceProcessor
from src.exceptions import UnsupportedFormat
from src.integrations.monday import MondayClient
from src.jobs.handler import JobHandler
from src.jobs.queue import JobQueue
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger

from .schemas import (
    ExtractionResponse,
    HealthResponse,
    InvoiceFieldsResponse,
    QueueStatsResponse,
    WebhookPayload,
    WebhookResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Invoice QR Extraction API",
    description="Decode fiscal QR codes from invoices and update board items",
    version=VERSION,
)


@lru_cache(maxsize=1)
def _get_config() -> AppConfig:
    return load_config()


@lru_cache(maxsize=1)
def _get_processor() -> InvoiceProcessor:
    return InvoiceProcessor(_get_config())


@lru_cache(maxsize=1)
def _get_queue() -> JobQueue:
    """Build the process-wide job queue and its collaborators."""
    config = _get_config()
    client = MondayClient(config.monday)
    handler = JobHandler(
        source=client,
        sink=client,
        processor=_get_processor(),
        upload_dir=Path(config.queue.upload_dir),
    )
    return JobQueue(
        handler,
        max_workers=config.queue.max_workers,
        inter_job_delay=config.queue.inter_job_delay_s,
    )


@app.post("/api/monday-webhook", response_model=None)
async def monday_webhook(payload: WebhookPayload) -> dict | WebhookResponse:
    """Handle board webhook calls.

    Answers the subscription handshake by echoing its challenge, and
    enqueues the item when one of the trigger columns changes.
    """
    if payload.challenge:
        return {"challenge": payload.challenge}

    event = payload.event
    if event and event.type == "update_column_value":
        item_id = event.pulseId or event.itemId
        if event.columnId in _get_config().monday.trigger_columns and item_id:
            _get_queue().enqueue(str(item_id), str(event.boardId))
            return WebhookResponse(message="Added to processing queue")

    return WebhookResponse()


@app.post("/extract", response_model=ExtractionResponse)
def extract_document(file: Annotated[UploadFile, File(...)]) -> ExtractionResponse:
    """Extract invoice fields from an uploaded document.

    Args:
        file: Uploaded image, PDF or plain-text document.

    Returns:
        The extracted fields and how they were read.
    """
    start_time = time.time()
    filename = file.filename or "document"
    extension = document_extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {extension}")

    with tempfile.NamedTemporaryFile(suffix=extension, delete=False) as tmp:
        tmp.write(file.file.read())
        tmp_path = Path(tmp.name)

    try:
        outcome = _get_processor().extract(tmp_path, filename)
    except UnsupportedFormat as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Extraction failed for %s: %s", filename, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        tmp_path.unlink(missing_ok=True)

    fields = outcome.fields
    return ExtractionResponse(
        success=True,
        filename=filename,
        fields=InvoiceFieldsResponse(
            total_value=float(fields.total_value) if fields.total_value is not None else None,
            invoice_number=fields.invoice_number,
            supplier_name=fields.supplier_name,
            customer_tax_id=fields.customer_tax_id,
            invoice_date=fields.invoice_date,
            currency=fields.currency,
            extraction_method=fields.extraction_method.value,
        ),
        raw_text=outcome.raw_text,
        decoder=outcome.decode.decoder if outcome.decode else None,
        strategy=outcome.decode.strategy if outcome.decode else None,
        processing_time_ms=(time.time() - start_time) * 1000,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return service status and queue counters."""
    stats = _get_queue().stats()
    return HealthResponse(
        status="ok",
        version=VERSION,
        queue=QueueStatsResponse(
            pending=stats.pending,
            active_workers=stats.active_workers,
            completed=stats.completed,
            failed=stats.failed,
            peak_workers=stats.peak_workers,
        ),
    )
