"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, ConfigDict


class WebhookEvent(BaseModel):
    """Column-change event sent by the board webhook."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str | None = None
    boardId: int | str | None = None
    pulseId: int | str | None = None
    itemId: int | str | None = None
    columnId: str | None = None


class WebhookPayload(BaseModel):
    """Body of a webhook call: a handshake challenge or an event."""

    model_config = ConfigDict(extra="ignore")

    challenge: str | None = None
    event: WebhookEvent | None = None


class WebhookResponse(BaseModel):
    """Acknowledgement returned to the webhook caller."""

    success: bool = True
    message: str | None = None


class InvoiceFieldsResponse(BaseModel):
    """Extracted invoice fields."""

    total_value: float | None = None
    invoice_number: str | None = None
    supplier_name: str | None = None
    customer_tax_id: str | None = None
    invoice_date: str | None = None
    currency: str | None = None
    extraction_method: str


class ExtractionResponse(BaseModel):
    """Response schema for a direct document extraction request."""

    success: bool
    filename: str
    fields: InvoiceFieldsResponse
    raw_text: str
    decoder: str | None = None
    strategy: str | None = None
    processing_time_ms: float


class QueueStatsResponse(BaseModel):
    """Job queue counters."""

    pending: int
    active_workers: int
    completed: int
    failed: int
    peak_workers: int


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    queue: QueueStatsResponse
