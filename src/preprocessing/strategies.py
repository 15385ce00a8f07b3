"""Ordered preprocessing strategies for QR detection.

The table is ordered by how often each correction has recovered a code
from real invoice scans: the untouched image first, then progressively
more aggressive corrections, and finally downscaling, which only applies
to oversized images where the detector struggles with huge modules.
"""

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from src.utils.config import PreprocessingConfig

from .transforms import (
    Transform,
    blur_by,
    brightness_by,
    chain,
    contrast_by,
    greyscale,
    identity,
    invert,
    normalize,
    posterize_to,
    resize_to,
)


def _always(image: np.ndarray) -> bool:
    return True


@dataclass(frozen=True)
class PreprocessingStrategy:
    """A named pixel transform applied to a raster candidate before decoding.

    Attributes:
        name: Stable identifier reported in decode results and logs.
        transform: Pure function producing the preprocessed variant.
        applies: Predicate deciding whether the strategy runs for an image.
    """

    name: str
    transform: Transform
    applies: Callable[[np.ndarray], bool] = _always

    def apply(self, image: np.ndarray) -> np.ndarray:
        return self.transform(image)


def _larger_than(threshold: int) -> Callable[[np.ndarray], bool]:
    def check(image: np.ndarray) -> bool:
        h, w = image.shape[:2]
        return w > threshold or h > threshold

    return check


def build_strategies(
    config: PreprocessingConfig | None = None,
) -> list[PreprocessingStrategy]:
    """Build the fixed, ordered strategy list.

    Args:
        config: Preprocessing configuration for the downscale steps.

    Returns:
        Strategies in the order the decode cascade must try them.
    """
    config = config or PreprocessingConfig()
    oversized = _larger_than(config.large_image_threshold)

    strategies = [
        PreprocessingStrategy("original", identity),
        PreprocessingStrategy(
            "greyscale-contrast", chain(greyscale, contrast_by(0.8))
        ),
        PreprocessingStrategy(
            "normalize-contrast", chain(greyscale, normalize, contrast_by(1.0))
        ),
        PreprocessingStrategy("invert", chain(greyscale, invert, contrast_by(0.8))),
        PreprocessingStrategy(
            "brightness", chain(greyscale, brightness_by(0.3), contrast_by(0.8))
        ),
        # Thermal receipts print the code with washed-out greys.
        PreprocessingStrategy(
            "posterize", chain(greyscale, posterize_to(2), contrast_by(0.5))
        ),
        PreprocessingStrategy("blur", chain(greyscale, blur_by(1), contrast_by(0.8))),
        PreprocessingStrategy("normalize-only", chain(greyscale, normalize)),
        PreprocessingStrategy(
            "posterize-aggressive", chain(greyscale, normalize, posterize_to(2))
        ),
        PreprocessingStrategy(
            "bright-normalize",
            chain(greyscale, brightness_by(0.4), normalize, contrast_by(0.8)),
        ),
        PreprocessingStrategy(
            "dark-contrast", chain(greyscale, brightness_by(-0.2), contrast_by(0.9))
        ),
        PreprocessingStrategy(
            "posterize-first",
            chain(greyscale, posterize_to(3), normalize, contrast_by(0.5)),
        ),
        PreprocessingStrategy(
            "double-contrast",
            chain(greyscale, contrast_by(0.5), normalize, contrast_by(0.8)),
        ),
        PreprocessingStrategy(
            "invert-normalize",
            chain(greyscale, invert, normalize, contrast_by(0.7)),
        ),
    ]

    for target in config.downscale_targets:
        strategies.append(
            PreprocessingStrategy(
                f"scale-{target}",
                chain(resize_to(target), greyscale, normalize, contrast_by(0.8)),
                applies=oversized,
            )
        )
    return strategies
