"""Normalizes input documents into lazy raster candidates.

Images yield one producer at native resolution. PDFs yield one producer
per render scale, highest first: small codes need resolution, but huge
pages may fail to render large, so lower scales act as fallbacks.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from src.exceptions import RenderFailure, UnsupportedFormat
from src.utils.config import RenderConfig
from src.utils.logger import get_logger

from .pdf_handler import PDFHandler

logger = get_logger(__name__)

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".bmp"})
PDF_EXTENSIONS = frozenset({".pdf"})
TEXT_EXTENSIONS = frozenset({".txt"})
SUPPORTED_EXTENSIONS = IMAGE_EXTENSIONS | PDF_EXTENSIONS | TEXT_EXTENSIONS


@dataclass
class RasterCandidate:
    """A decoded pixel buffer plus where it came from."""

    image: np.ndarray
    label: str
    scale: float | None = None

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def pixel_format(self) -> str:
        if self.image.ndim == 2:
            return "L"
        return "RGBA" if self.image.shape[2] == 4 else "RGB"


@dataclass(frozen=True)
class RasterProducer:
    """Lazily materializes one raster candidate when called.

    Attributes:
        label: Human-readable provenance, e.g. ``"native"`` or ``"pdf@3.5x"``.
        load: Callable performing the actual load or render.
        scale: Render scale for paginated sources, ``None`` for images.
    """

    label: str
    load: Callable[[], np.ndarray]
    scale: float | None = None

    def __call__(self) -> RasterCandidate:
        return RasterCandidate(image=self.load(), label=self.label, scale=self.scale)


def document_extension(path: Path | str) -> str:
    return Path(path).suffix.lower()


def is_text_document(path: Path | str) -> bool:
    """Whether the document is plain text and skips rasterization."""
    return document_extension(path) in TEXT_EXTENSIONS


def load_image(path: Path) -> np.ndarray:
    """Load a raster image file as an RGB array.

    Raises:
        RenderFailure: If the file cannot be opened or decoded.
    """
    try:
        with Image.open(path) as img:
            # GIFs decode their first frame only.
            img.seek(0)
            return np.array(img.convert("RGB"))
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise RenderFailure(f"Could not load image {path}: {exc}") from exc


class DocumentAdapter:
    """Turns a document path into ordered raster candidate producers.

    Args:
        config: Render configuration (PDF scales and timeout).
        pdf_handler: Renderer for paginated documents.
    """

    def __init__(
        self,
        config: RenderConfig | None = None,
        pdf_handler: PDFHandler | None = None,
    ) -> None:
        self.config = config or RenderConfig()
        self.pdf_handler = pdf_handler or PDFHandler(timeout=self.config.timeout_s)

    @property
    def pdf_scales(self) -> list[float]:
        return sorted(self.config.pdf_scales, reverse=True)

    def adapt(self, path: Path | str) -> list[RasterProducer]:
        """Produce raster candidate producers for a document.

        Args:
            path: Path to an image or PDF document.

        Returns:
            Producers in the order they should be tried.

        Raises:
            UnsupportedFormat: If the extension is neither image nor PDF.
        """
        path = Path(path)
        extension = document_extension(path)

        if extension in IMAGE_EXTENSIONS:
            return [RasterProducer(label="native", load=lambda: load_image(path))]

        if extension in PDF_EXTENSIONS:
            return [self._pdf_producer(path, scale) for scale in self.pdf_scales]

        raise UnsupportedFormat(extension)

    def _pdf_producer(self, path: Path, scale: float) -> RasterProducer:
        return RasterProducer(
            label=f"pdf@{scale}x",
            load=lambda: self.pdf_handler.render_first_page(path, scale),
            scale=scale,
        )
