"""Pure pixel transforms used by the preprocessing strategies.

Every transform takes a uint8 image and returns a new uint8 image; inputs
are never modified in place. Parameters follow the usual raster-editor
conventions (contrast and brightness in ``[-1, 1]``).
"""

from collections.abc import Callable
from functools import partial

import cv2
import numpy as np

from .binarize import to_gray

Transform = Callable[[np.ndarray], np.ndarray]

_MID_GREY = 127


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(values, 0, 255).astype(np.uint8)


def identity(image: np.ndarray) -> np.ndarray:
    """Return the image unchanged."""
    return image


def greyscale(image: np.ndarray) -> np.ndarray:
    """Convert to a single-channel luminance image."""
    return to_gray(image).copy()


def contrast(image: np.ndarray, amount: float) -> np.ndarray:
    """Scale pixel distance from mid-grey.

    Args:
        image: Input image.
        amount: Contrast change in ``[-1, 1]``; ``1`` collapses the image
            to a hard threshold at mid-grey.

    Returns:
        Contrast-adjusted image.
    """
    amount = max(-1.0, min(1.0, amount))
    if amount >= 1.0:
        result = np.full_like(image, _MID_GREY)
        result[image > _MID_GREY] = 255
        result[image < _MID_GREY] = 0
        return result

    factor = (amount + 1.0) / (1.0 - amount)
    values = np.floor(factor * (image.astype(np.float32) - _MID_GREY) + _MID_GREY)
    return _to_uint8(values)


def normalize(image: np.ndarray) -> np.ndarray:
    """Stretch each channel's intensity range to the full ``0..255`` span."""
    values = image.astype(np.float32)
    axes = (0, 1)
    low = values.min(axis=axes, keepdims=True)
    high = values.max(axis=axes, keepdims=True)
    span = np.where(high > low, high - low, 1.0)
    stretched = (values - low) * 255.0 / span
    stretched = np.where(high > low, stretched, values)
    return _to_uint8(np.round(stretched))


def invert(image: np.ndarray) -> np.ndarray:
    """Invert intensities."""
    return 255 - image


def brightness(image: np.ndarray, amount: float) -> np.ndarray:
    """Lighten (``amount > 0``) or darken (``amount < 0``) the image.

    Args:
        image: Input image.
        amount: Brightness change in ``[-1, 1]``.

    Returns:
        Brightness-adjusted image.
    """
    values = image.astype(np.float32)
    if amount < 0:
        values = values * (1.0 + amount)
    else:
        values = values + (255.0 - values) * amount
    return _to_uint8(np.round(values))


def posterize(image: np.ndarray, levels: int) -> np.ndarray:
    """Reduce each channel to ``levels`` intensity steps (minimum 2)."""
    levels = max(2, levels)
    steps = levels - 1
    values = np.floor(image.astype(np.float32) / 255.0 * steps) / steps * 255.0
    return _to_uint8(np.round(values))


def blur(image: np.ndarray, radius: int = 1) -> np.ndarray:
    """Box blur with the given radius in pixels."""
    size = 2 * radius + 1
    return cv2.blur(image, (size, size))


def resize_longest(image: np.ndarray, target: int) -> np.ndarray:
    """Resize so that the longer side equals ``target``, keeping aspect ratio."""
    h, w = image.shape[:2]
    if w >= h:
        new_w, new_h = target, max(1, round(h * target / w))
    else:
        new_w, new_h = max(1, round(w * target / h)), target
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)


def chain(*steps: Transform) -> Transform:
    """Compose transforms left to right into a single transform."""

    def run(image: np.ndarray) -> np.ndarray:
        for step in steps:
            image = step(image)
        return image

    return run


def contrast_by(amount: float) -> Transform:
    return partial(contrast, amount=amount)


def brightness_by(amount: float) -> Transform:
    return partial(brightness, amount=amount)


def posterize_to(levels: int) -> Transform:
    return partial(posterize, levels=levels)


def blur_by(radius: int) -> Transform:
    return partial(blur, radius=radius)


def resize_to(target: int) -> Transform:
    return partial(resize_longest, target=target)
