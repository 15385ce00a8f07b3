"""QR decoder engines tried by the decode cascade.

The classic OpenCV detector is fast and handles clean codes; it is tried
on the image as given and on its inverted polarity. The ArUco-based
detector is slower but tolerates damaged finder patterns, and is fed two
binarizations: adaptive (uneven lighting) and Otsu (even lighting).
"""

from collections.abc import Callable
from typing import Protocol

import cv2
import numpy as np

from src.preprocessing.binarize import binarize_adaptive, binarize_otsu, to_gray
from src.utils.logger import get_logger

logger = get_logger(__name__)


class DecoderEngine(Protocol):
    """Anything that can try to read a QR payload from an image."""

    name: str

    def decode(self, image: np.ndarray) -> str | None:
        """Return the decoded payload, or ``None`` when nothing was read."""
        ...


def _detect_and_decode(
    detector: "cv2.GraphicalCodeDetector", image: np.ndarray
) -> str | None:
    try:
        text, _points, _straight = detector.detectAndDecode(image)
    except cv2.error as exc:
        logger.debug("QR detector error: %s", exc)
        return None
    return text or None


class OpenCVQRDecoder:
    """Fast primary decoder based on ``cv2.QRCodeDetector``.

    Args:
        inverted: Decode the inverted image (light modules on dark ground).
    """

    def __init__(self, inverted: bool = False) -> None:
        self.inverted = inverted
        self.name = "opencv-qr-inverted" if inverted else "opencv-qr"

    def decode(self, image: np.ndarray) -> str | None:
        gray = to_gray(image)
        if self.inverted:
            gray = 255 - gray
        # Detectors keep internal state, so one per call keeps workers isolated.
        return _detect_and_decode(cv2.QRCodeDetector(), gray)


class ArucoQRDecoder:
    """Tolerant secondary decoder on a binarized image.

    Args:
        binarizer: Function turning the image into a 0/255 binary image.
        name: Engine name reported in decode results.
    """

    def __init__(self, binarizer: Callable[[np.ndarray], np.ndarray], name: str) -> None:
        self.binarizer = binarizer
        self.name = name

    def decode(self, image: np.ndarray) -> str | None:
        try:
            binary = self.binarizer(image)
        except cv2.error as exc:
            logger.debug("%s binarization failed: %s", self.name, exc)
            return None
        return _detect_and_decode(cv2.QRCodeDetectorAruco(), binary)


def default_engines() -> list[DecoderEngine]:
    """Return the decoder engines in the order the cascade tries them."""
    return [
        OpenCVQRDecoder(),
        OpenCVQRDecoder(inverted=True),
        ArucoQRDecoder(binarize_adaptive, "aruco-qr-adaptive"),
        ArucoQRDecoder(binarize_otsu, "aruco-qr-otsu"),
    ]
