"""
Ensemble combiner: merge per-source signals into one CombinedAnalysis.

Keywords and colors are unions. Embeddings are summed with per-source
weights and not renormalized. Confidence is the mean of the contributing
sources' confidences. Style and mood come from lexicon voting over the
merged keywords, and colors are backfilled and corrected from keywords.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

import numpy as np

from artcurator.db.schemas import EnsembleConfig, SignalSource
from artcurator.services.color_inference import (
    apply_color_correction,
    extract_colors_from_keywords,
    infer_colors_from_context,
)
from artcurator.services.color_semantics import PaletteSummary
from artcurator.services.lexicons import (
    DEFAULT_MOOD,
    DEFAULT_STYLE,
    MOOD_LEXICON,
    STYLE_LEXICON,
    LexiconEntry,
)
from artcurator.services.signal_extractors import Signal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CombinedAnalysis:
    """The fused description of one image."""

    keywords: tuple[str, ...] = ()
    colors: tuple[str, ...] = ()
    style: str = DEFAULT_STYLE
    mood: str = DEFAULT_MOOD
    confidence: float = 0.0
    embedding: tuple[float, ...] = ()
    sources: tuple[SignalSource, ...] = ()  # Contributing sources, declaration order
    color_properties: Optional[PaletteSummary] = field(default=None)

    def to_dict(self) -> dict:
        return {
            "keywords": list(self.keywords),
            "colors": list(self.colors),
            "style": self.style,
            "mood": self.mood,
            "confidence": self.confidence,
            "embedding": list(self.embedding),
            "sources": [source.value for source in self.sources],
            "color_properties": self.color_properties.to_dict() if self.color_properties else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CombinedAnalysis":
        properties = data.get("color_properties")
        return cls(
            keywords=tuple(data.get("keywords", [])),
            colors=tuple(data.get("colors", [])),
            style=data.get("style", DEFAULT_STYLE),
            mood=data.get("mood", DEFAULT_MOOD),
            confidence=float(data.get("confidence", 0.0)),
            embedding=tuple(float(v) for v in data.get("embedding", [])),
            sources=tuple(SignalSource(s) for s in data.get("sources", [])),
            color_properties=PaletteSummary.from_dict(properties) if properties else None,
        )


def _union(groups: Iterable[Iterable[str]]) -> tuple[str, ...]:
    merged: dict[str, None] = {}
    for group in groups:
        for value in group:
            if value:
                merged.setdefault(value.lower(), None)
    return tuple(merged)


def fuse_embedding(
    accumulator: Optional[np.ndarray],
    embedding: Iterable[float],
    weight: float,
    source: Optional[SignalSource] = None,
) -> Optional[np.ndarray]:
    """
    Add ``embedding * weight`` into the running accumulator.

    The first embedding seeds the accumulator. A later embedding of a
    different length is dropped with a warning. The sum is deliberately not
    divided by the total weight.
    """
    vector = np.asarray(list(embedding), dtype=float)
    if vector.size == 0:
        return accumulator

    if accumulator is None:
        return vector * weight

    if vector.shape != accumulator.shape:
        label = source.value if source else "signal"
        logger.warning(
            f"Embedding dimension mismatch from {label}: "
            f"{vector.size} != {accumulator.size}, skipping contribution"
        )
        return accumulator

    return accumulator + vector * weight


def classify(keywords: Iterable[str], lexicon: tuple[LexiconEntry, ...], default: str) -> str:
    """
    Pick the lexicon label whose terms appear most often as substrings of the keywords.

    Ties go to the label declared first; no hits at all returns ``default``.
    """
    keyword_list = list(keywords)
    best_label = default
    best_score = 0

    for entry in lexicon:
        score = sum(
            1
            for term in entry.terms
            for keyword in keyword_list
            if term in keyword
        )
        if score > best_score:
            best_score = score
            best_label = entry.label

    return best_label


def classify_style(keywords: Iterable[str]) -> str:
    return classify(keywords, STYLE_LEXICON, DEFAULT_STYLE)


def classify_mood(keywords: Iterable[str]) -> str:
    return classify(keywords, MOOD_LEXICON, DEFAULT_MOOD)


def resolve_colors(keywords: tuple[str, ...], reported: tuple[str, ...]) -> tuple[str, ...]:
    """Reported colors, else keyword colors, else contextual colors; then corrected."""
    colors = reported
    if not colors:
        colors = extract_colors_from_keywords(keywords)
        if colors:
            logger.debug(f"Backfilled {len(colors)} colors from keywords: {', '.join(colors)}")
    if not colors:
        colors = infer_colors_from_context(keywords)
        if colors:
            logger.debug(f"Inferred {len(colors)} colors from context: {', '.join(colors)}")

    return apply_color_correction(keywords, colors)


def combine_signals(
    signals: Mapping[SignalSource, Optional[Signal]],
    config: EnsembleConfig,
) -> CombinedAnalysis:
    """Merge a sparse, source-keyed signal set into a CombinedAnalysis."""
    contributing = [
        signals[source]
        for source in SignalSource
        if signals.get(source) is not None
    ]

    keywords = _union(signal.keywords for signal in contributing)
    reported_colors = _union(signal.colors for signal in contributing)

    accumulator: Optional[np.ndarray] = None
    for signal in contributing:
        if signal.embedding:
            accumulator = fuse_embedding(
                accumulator, signal.embedding, config.weight(signal.source), signal.source
            )

    if contributing:
        confidence = sum(signal.confidence for signal in contributing) / len(contributing)
    else:
        confidence = 0.0
    confidence = max(0.0, min(confidence, 1.0))

    color_properties = next(
        (signal.color_properties for signal in contributing if signal.color_properties),
        None,
    )

    return CombinedAnalysis(
        keywords=keywords,
        colors=resolve_colors(keywords, reported_colors),
        style=classify_style(keywords),
        mood=classify_mood(keywords),
        confidence=confidence,
        embedding=tuple(float(v) for v in accumulator) if accumulator is not None else (),
        sources=tuple(signal.source for signal in contributing),
        color_properties=color_properties,
    )
