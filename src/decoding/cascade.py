"""Ordered decode cascade over raster candidates, strategies and engines.

Invoices arrive under wildly varying lighting, compression and DPI, and no
single preprocessing/decoder pair is reliably best. The cascade therefore
searches exhaustively in a fixed priority order and stops at the first
payload, which keeps the common case cheap.

Peak memory, not total work, is what limits concurrent jobs, so every
candidate and every preprocessed variant is dropped before the next one
is built.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import cv2
import numpy as np

from src.documents.adapter import RasterCandidate, RasterProducer
from src.exceptions import RenderFailure
from src.preprocessing.strategies import PreprocessingStrategy, build_strategies
from src.utils.logger import get_logger

from .engines import DecoderEngine, default_engines

logger = get_logger(__name__)


@dataclass(frozen=True)
class DecodeResult:
    """The first payload read by the cascade and how it was obtained."""

    payload: str
    decoder: str
    strategy: str
    scale: float | None
    attempts: int


class DecodeCascade:
    """Searches producers × strategies × engines for a QR payload.

    Args:
        strategies: Preprocessing strategies in priority order.
        engines: Decoder engines in priority order.
    """

    def __init__(
        self,
        strategies: Sequence[PreprocessingStrategy] | None = None,
        engines: Sequence[DecoderEngine] | None = None,
    ) -> None:
        self.strategies = list(strategies) if strategies is not None else build_strategies()
        self.engines = list(engines) if engines is not None else default_engines()

    def plan(
        self, candidate: RasterCandidate
    ) -> list[tuple[PreprocessingStrategy, DecoderEngine]]:
        """Return the ordered (strategy, engine) pairs for a candidate."""
        return [
            (strategy, engine)
            for strategy in self.strategies
            if strategy.applies(candidate.image)
            for engine in self.engines
        ]

    def decode(self, producers: Iterable[RasterProducer]) -> DecodeResult | None:
        """Try every producer in order until a payload is decoded.

        Args:
            producers: Lazy raster candidate producers, highest priority first.

        Returns:
            The first successful decode, or ``None`` when nothing was found.
        """
        tried = 0
        for producer in producers:
            tried += 1
            try:
                candidate = producer()
            except RenderFailure as exc:
                logger.warning("Skipping %s: %s", producer.label, exc)
                continue

            result = self.decode_candidate(candidate)
            del candidate
            if result is not None:
                logger.info(
                    "QR found (%s, strategy=%s, decoder=%s, %d attempts): %.50s",
                    producer.label,
                    result.strategy,
                    result.decoder,
                    result.attempts,
                    result.payload,
                )
                return result

        logger.info("QR code not detected after trying %d candidates", tried)
        return None

    def decode_candidate(self, candidate: RasterCandidate) -> DecodeResult | None:
        """Run the ordered plan on one candidate, stopping at the first hit."""
        attempts = 0
        current: PreprocessingStrategy | None = None
        variant: np.ndarray | None = None
        failed: PreprocessingStrategy | None = None

        for strategy, engine in self.plan(candidate):
            if strategy is failed:
                continue
            if strategy is not current:
                variant = None
                current = strategy
                try:
                    variant = strategy.apply(candidate.image)
                except (cv2.error, ValueError) as exc:
                    logger.debug("Strategy %s failed: %s", strategy.name, exc)
                    failed = strategy
                    continue

            attempts += 1
            payload = engine.decode(variant)
            logger.debug(
                "Attempt %d: %s/%s on %s -> %s",
                attempts,
                strategy.name,
                engine.name,
                candidate.label,
                "hit" if payload else "miss",
            )
            if payload:
                return DecodeResult(
                    payload=payload,
                    decoder=engine.name,
                    strategy=strategy.name,
                    scale=candidate.scale,
                    attempts=attempts,
                )
        return None
