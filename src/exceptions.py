"""Exception hierarchy for the invoice extraction pipeline.

None of these cross a job boundary: the job queue catches them per job,
logs them, and moves on to the next job.
"""


class InvoiceExtractionError(Exception):
    """Base class for all pipeline errors."""


class UnsupportedFormat(InvoiceExtractionError):
    """The document's file type cannot be processed."""

    def __init__(self, extension: str) -> None:
        super().__init__(f"Unsupported file type: {extension or '<none>'}")
        self.extension = extension


class RenderFailure(InvoiceExtractionError):
    """Loading or rendering a raster candidate failed for one scale."""


class TransientNetworkFailure(InvoiceExtractionError):
    """A network call kept failing after all retry attempts."""


class SinkUpdateFailure(InvoiceExtractionError):
    """The downstream board rejected an update or query."""
