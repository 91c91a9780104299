"""
Ensemble collector: scatter one image to every enabled analysis source and
gather whatever comes back.

Each source call runs as its own task, bounded by a timeout that covers
its retries. A failing source yields ``None`` plus a ``SourceError``
record; it never cancels its siblings. Results are keyed by source, so
the combination step sees the same layout regardless of which provider
answered first.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from artcurator.config import Settings, get_settings
from artcurator.core.retry import RetryConfig, retry_async
from artcurator.db.schemas import EnsembleConfig, SignalSource
from artcurator.services.signal_extractors import Signal, extract_signal

logger = logging.getLogger(__name__)


@runtime_checkable
class ImageAnalyzer(Protocol):
    """A provider client for one analysis source.

    ``analyze`` returns the source's typed payload or its raw JSON dict and
    raises on any failure.
    """

    source: SignalSource

    async def analyze(self, image: bytes) -> Any:
        ...


@dataclass(frozen=True)
class SourceError:
    """A failed source call, kept for status reporting."""

    source: SignalSource
    message: str
    timestamp: float  # Unix time
    retry_count: int = 0

    def to_dict(self) -> dict:
        return {
            "source": self.source.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "retry_count": self.retry_count,
        }


class EnsembleCollector:
    """Fan out to analyzers concurrently and collect a sparse signal set."""

    def __init__(
        self,
        analyzers: list[ImageAnalyzer],
        config: Optional[EnsembleConfig] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.config = config or self.settings.ensemble_config()
        self.timeout = self.settings.source_timeout_seconds
        self.retry_config = RetryConfig.from_settings(self.settings)
        self._errors: list[SourceError] = []

        self._analyzers: dict[SignalSource, ImageAnalyzer] = {}
        for analyzer in analyzers:
            if analyzer.source in self._analyzers:
                raise ValueError(f"Duplicate analyzer for source {analyzer.source.value}")
            self._analyzers[analyzer.source] = analyzer

    @property
    def errors(self) -> list[SourceError]:
        """
        Errors from whichever collect() call finished last.

        Concurrent callers should use collect_with_errors() instead.
        """
        return list(self._errors)

    def update_config(self, config: EnsembleConfig) -> None:
        self.config = config

    def active_sources(self, config: Optional[EnsembleConfig] = None) -> list[SignalSource]:
        """Sources that are both enabled and have an analyzer, in declaration order."""
        config = config or self.config
        return [source for source in config.enabled_sources() if source in self._analyzers]

    async def collect(
        self,
        image: bytes,
        config: Optional[EnsembleConfig] = None,
    ) -> dict[SignalSource, Optional[Signal]]:
        """
        Run every active source on ``image`` and wait for all of them to settle.

        Returns:
            A mapping with one entry per active source, ``None`` where the
            source failed. Inactive sources are absent.
        """
        signals, errors = await self.collect_with_errors(image, config)
        self._errors = errors
        return signals

    async def collect_with_errors(
        self,
        image: bytes,
        config: Optional[EnsembleConfig] = None,
    ) -> tuple[dict[SignalSource, Optional[Signal]], list[SourceError]]:
        """Like collect(), also returning this call's own source errors."""
        config = config or self.config
        errors: list[SourceError] = []

        sources = self.active_sources(config)
        if not sources:
            logger.warning("No analysis sources are enabled; returning an empty signal set")
            return {}, errors

        start = time.monotonic()
        results = await asyncio.gather(*(self._run_source(source, image, errors) for source in sources))
        signals = dict(zip(sources, results))

        succeeded = sum(1 for signal in results if signal is not None)
        logger.info(
            f"Ensemble collected {succeeded}/{len(sources)} signals "
            f"in {(time.monotonic() - start) * 1000:.0f}ms"
        )
        return signals, errors

    async def _run_source(
        self, source: SignalSource, image: bytes, errors: list[SourceError]
    ) -> Optional[Signal]:
        """Call one analyzer. Every failure becomes None plus an error record."""
        analyzer = self._analyzers[source]
        retries = 0

        def count_retry(attempt: int, exc: Exception) -> None:
            nonlocal retries
            retries = attempt

        try:
            async with asyncio.timeout(self.timeout):
                raw = await retry_async(
                    analyzer.analyze, image, config=self.retry_config, on_retry=count_retry
                )
            signal = extract_signal(source, raw)
        except asyncio.CancelledError:
            raise
        except TimeoutError:
            self._record_error(errors, source, f"timed out after {self.timeout}s", retries)
            return None
        except Exception as e:
            self._record_error(errors, source, f"{type(e).__name__}: {e}", retries)
            return None

        logger.debug(
            f"{source.value}: {len(signal.keywords)} keywords, {len(signal.colors)} colors, "
            f"embedding={'yes' if signal.embedding else 'no'}"
        )
        return signal

    def _record_error(
        self, errors: list[SourceError], source: SignalSource, message: str, retry_count: int
    ) -> None:
        errors.append(
            SourceError(source=source, message=message, timestamp=time.time(), retry_count=retry_count)
        )
        logger.warning(f"Analysis source {source.value} failed: {message}")

    def get_source_status(self) -> dict:
        """Configuration and last-run errors for every known source."""
        return {
            "sources": {
                source.value: {
                    "configured": source in self._analyzers,
                    "enabled": self.config.is_enabled(source),
                    "weight": self.config.weight(source),
                }
                for source in SignalSource
            },
            "errors": [error.to_dict() for error in self._errors],
        }
