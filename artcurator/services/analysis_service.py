"""Image analysis entry point: collect, combine, cache."""

import logging
from typing import Optional

from artcurator.core.cache import AnalysisCache
from artcurator.db.schemas import EnsembleConfig
from artcurator.services.ensemble_collector import EnsembleCollector
from artcurator.services.ensemble_combiner import CombinedAnalysis, combine_signals

logger = logging.getLogger(__name__)


class AnalysisService:
    """Runs the ensemble on an image and returns the combined analysis."""

    def __init__(self, collector: EnsembleCollector, cache: Optional[AnalysisCache] = None):
        self.collector = collector
        self.cache = cache

    async def analyze(self, image: bytes, config: Optional[EnsembleConfig] = None) -> CombinedAnalysis:
        """
        Analyze ``image`` with the given (or the collector's) source configuration.

        Results with at least one contributing source are cached per image
        and configuration. An all-failed analysis is returned but not cached.
        """
        config = config or self.collector.config
        key = AnalysisCache.analysis_key(image, config.fingerprint())

        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                try:
                    analysis = CombinedAnalysis.from_dict(cached)
                    logger.debug(f"Analysis cache hit for {key}")
                    return analysis
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Discarding malformed cached analysis {key}: {e}")

        signals = await self.collector.collect(image, config)
        analysis = combine_signals(signals, config)

        logger.info(
            f"Analysis from {len(analysis.sources)} sources: style={analysis.style}, "
            f"mood={analysis.mood}, {len(analysis.colors)} colors, confidence={analysis.confidence:.2f}"
        )

        if self.cache is not None and analysis.sources:
            await self.cache.set(key, analysis.to_dict())

        return analysis
