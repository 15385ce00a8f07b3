"""Shared test fixtures for the invoice QR extraction test suite."""

from pathlib import Path

import cv2
import numpy as np
import pytest

ATCUD_PAYLOAD = (
    "A:123456789*B:999999990*C:PT*D:FT*E:N*F:20250929*G:FT A/2025/123"
    "*H:JFBX7K2M-123*I1:PT*N:10,33*O:55,20*Q:abcd*R:1234"
)


def make_qr_image(payload: str, module_px: int = 8, border_px: int = 40) -> np.ndarray:
    """Encode a payload as a clean RGB QR code image."""
    encoder = cv2.QRCodeEncoder.create()
    code = encoder.encode(payload)
    code = cv2.resize(
        code,
        (code.shape[1] * module_px, code.shape[0] * module_px),
        interpolation=cv2.INTER_NEAREST,
    )
    code = cv2.copyMakeBorder(
        code,
        border_px,
        border_px,
        border_px,
        border_px,
        cv2.BORDER_CONSTANT,
        value=255,
    )
    return cv2.cvtColor(code, cv2.COLOR_GRAY2RGB)


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def blank_image() -> np.ndarray:
    """A white page without any code on it."""
    return np.full((240, 240, 3), 255, dtype=np.uint8)


@pytest.fixture
def atcud_payload() -> str:
    return ATCUD_PAYLOAD


@pytest.fixture
def qr_image() -> np.ndarray:
    """A clean QR code carrying a structured ATCUD payload."""
    return make_qr_image(ATCUD_PAYLOAD)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
