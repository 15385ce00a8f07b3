"""PDF first-page rendering for QR detection.

Renders only the first page, at a caller-chosen scale, so the adapter can
walk down from high to low resolution when large surfaces fail.
"""

from pathlib import Path

import numpy as np
from pdf2image import convert_from_path

from src.exceptions import RenderFailure
from src.utils.logger import get_logger

logger = get_logger(__name__)

POINTS_PER_INCH = 72


class PDFHandler:
    """Renders PDF pages to numpy arrays through poppler.

    Args:
        timeout: Seconds allowed for a single render before it is abandoned.
    """

    def __init__(self, timeout: int | None = 120) -> None:
        self.timeout = timeout

    @staticmethod
    def scale_to_dpi(scale: float) -> int:
        """Convert a render scale (1.0 = 72 DPI) to a DPI value."""
        return round(POINTS_PER_INCH * scale)

    def render_first_page(self, pdf_path: Path, scale: float) -> np.ndarray:
        """Render page one of a PDF at the given scale.

        Args:
            pdf_path: Path to the PDF file.
            scale: Render scale; 1.0 corresponds to 72 DPI.

        Returns:
            The page as an RGB numpy array.

        Raises:
            RenderFailure: If the file is missing or poppler fails or times out.
        """
        path = Path(pdf_path)
        if not path.exists():
            raise RenderFailure(f"PDF file not found: {path}")

        dpi = self.scale_to_dpi(scale)
        try:
            pages = convert_from_path(
                str(path),
                dpi=dpi,
                first_page=1,
                last_page=1,
                timeout=self.timeout,
            )
        except Exception as exc:
            raise RenderFailure(f"PDF render at {scale}x failed: {exc}") from exc

        if not pages:
            raise RenderFailure(f"PDF render at {scale}x produced no pages")

        page = pages[0]
        try:
            image = np.array(page.convert("RGB"))
        finally:
            page.close()

        logger.info(
            "PDF rendered at %.1fx scale (%dx%dpx)", scale, image.shape[1], image.shape[0]
        )
        return image
