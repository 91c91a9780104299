"""
Signal extractors: one typed payload and one pure extractor per analysis source.

Providers return loosely shaped JSON. Each payload class decodes that
shape once (``from_dict``) and each extractor maps the decoded payload to
a normalized ``Signal``. Nothing downstream of this module looks at a raw
provider response.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from artcurator.db.schemas import SignalSource
from artcurator.services.color_semantics import (
    PaletteSummary,
    PaletteSwatch,
    color_bucket,
    color_name_from_hex,
    palette_keywords,
    summarize_palette,
)
from artcurator.services.lexicons import (
    CAPTION_ADJECTIVE_PATTERN,
    CAPTION_VOCABULARY,
    MAX_CAPTION_ADJECTIVES,
)

logger = logging.getLogger(__name__)


# Confidence thresholds for provider tags
LABEL_THRESHOLD = 0.5  # Object/label detections
CONCEPT_THRESHOLD = 0.3  # General concept tags
SWATCH_THRESHOLD = 0.1  # Minimum share for a color swatch to count

# Result caps applied before extraction
MAX_LABELS = 20
MAX_OBJECTS = 10
MAX_VISION_COLORS = 5
MAX_CONCEPTS = 30
MAX_CONCEPT_COLORS = 10

# Fixed confidence per source, used when the provider reports none
SOURCE_CONFIDENCE = {
    SignalSource.VISION: 0.8,
    SignalSource.CONCEPTS: 0.75,
    SignalSource.LOCAL_MODEL: 0.7,
    SignalSource.STYLE_TRANSFER: 0.85,
}
INTERROGATION_CONFIDENCE_WITH_EMBEDDING = 0.8
INTERROGATION_CONFIDENCE_WITHOUT_EMBEDDING = 0.3


class PayloadDecodeError(ValueError):
    """A provider response did not have the expected shape."""


@dataclass(frozen=True)
class Signal:
    """One source's normalized view of an image.

    ``keywords`` and ``colors`` are ordered and duplicate-free; callers should
    treat them as sets.
    """

    source: SignalSource
    keywords: tuple[str, ...] = ()
    colors: tuple[str, ...] = ()
    embedding: Optional[tuple[float, ...]] = None
    confidence: float = 0.0
    color_properties: Optional[PaletteSummary] = None


def _unique(values) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return tuple(seen)


def _clamp_confidence(value: float) -> float:
    return max(0.0, min(float(value), 1.0))


def _embedding(values) -> Optional[tuple[float, ...]]:
    if not values:
        return None
    return tuple(float(v) for v in values)


def _decode(payload_cls, data: Any, build: Callable[[dict], Any]):
    if not isinstance(data, dict):
        raise PayloadDecodeError(f"{payload_cls.__name__} expects a mapping, got {type(data).__name__}")
    try:
        return build(data)
    except (KeyError, TypeError, ValueError) as e:
        raise PayloadDecodeError(f"Malformed {payload_cls.__name__}: {e}") from e


# ============ Payloads ============

@dataclass(frozen=True)
class ScoredLabel:
    name: str
    score: float


@dataclass(frozen=True)
class RGBSwatch:
    red: int
    green: int
    blue: int
    score: float


@dataclass(frozen=True)
class HexSwatch:
    hex: str
    score: float


@dataclass(frozen=True)
class VisionPayload:
    """Label, object and dominant-color detections."""

    labels: list[ScoredLabel] = field(default_factory=list)
    objects: list[ScoredLabel] = field(default_factory=list)
    colors: list[RGBSwatch] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "VisionPayload":
        def build(d: dict) -> "VisionPayload":
            return cls(
                labels=[
                    ScoredLabel(str(item["description"]), float(item.get("score", 0)))
                    for item in d.get("labels", [])
                ],
                objects=[
                    ScoredLabel(str(item["name"]), float(item.get("score", 0)))
                    for item in d.get("objects", [])
                ],
                colors=[
                    RGBSwatch(
                        red=int(item["color"].get("red", 0)),
                        green=int(item["color"].get("green", 0)),
                        blue=int(item["color"].get("blue", 0)),
                        score=float(item.get("score", 0)),
                    )
                    for item in d.get("colors", [])
                ],
            )
        return _decode(cls, data, build)


@dataclass(frozen=True)
class ConceptsPayload:
    """General concept tags plus hex color swatches."""

    concepts: list[ScoredLabel] = field(default_factory=list)
    colors: list[HexSwatch] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ConceptsPayload":
        def build(d: dict) -> "ConceptsPayload":
            return cls(
                concepts=[
                    ScoredLabel(str(item["name"]), float(item.get("value", 0)))
                    for item in d.get("concepts", [])
                ],
                colors=[
                    HexSwatch(str(item["hex"]), float(item.get("value", 0)))
                    for item in d.get("colors", [])
                ],
            )
        return _decode(cls, data, build)


@dataclass(frozen=True)
class InterrogationPayload:
    """Free-text caption of the image, optionally with an image embedding."""

    text_description: str = ""
    embedding: list[float] = field(default_factory=list)
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> "InterrogationPayload":
        def build(d: dict) -> "InterrogationPayload":
            confidence = d.get("confidence")
            return cls(
                text_description=str(d.get("text_description") or ""),
                embedding=[float(v) for v in d.get("embeddings") or []],
                confidence=float(confidence) if confidence is not None else None,
            )
        return _decode(cls, data, build)


@dataclass(frozen=True)
class LocalModelPayload:
    """Output of an in-process CLIP-style model."""

    keywords: list[str] = field(default_factory=list)
    artistic_style: str = ""
    technique: str = ""
    embedding: list[float] = field(default_factory=list)
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> "LocalModelPayload":
        def build(d: dict) -> "LocalModelPayload":
            confidence = d.get("confidence")
            return cls(
                keywords=[str(k) for k in d.get("keywords", [])],
                artistic_style=str(d.get("artistic_style") or ""),
                technique=str(d.get("technique") or ""),
                embedding=[float(v) for v in d.get("embeddings") or []],
                confidence=float(confidence) if confidence is not None else None,
            )
        return _decode(cls, data, build)


@dataclass(frozen=True)
class StyleTransferPayload:
    """Style classification keywords plus a dominant-color palette."""

    keywords: list[str] = field(default_factory=list)
    palette: list[PaletteSwatch] = field(default_factory=list)
    embedding: list[float] = field(default_factory=list)
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> "StyleTransferPayload":
        def build(d: dict) -> "StyleTransferPayload":
            palette = [
                PaletteSwatch(
                    color=str(item["color"]),
                    percentage=float(item.get("percentage", 0)),
                    name=str(item.get("name") or ""),
                )
                for item in d.get("palette", [])
            ]
            # Bare hex lists share the image evenly
            if not palette and d.get("colors"):
                share = 100 / len(d["colors"])
                palette = [PaletteSwatch(color=str(c), percentage=share) for c in d["colors"]]

            confidence = d.get("confidence")
            return cls(
                keywords=[str(k) for k in d.get("keywords", [])],
                palette=palette,
                embedding=[float(v) for v in d.get("embeddings") or []],
                confidence=float(confidence) if confidence is not None else None,
            )
        return _decode(cls, data, build)


PAYLOAD_TYPES = {
    SignalSource.VISION: VisionPayload,
    SignalSource.CONCEPTS: ConceptsPayload,
    SignalSource.INTERROGATION: InterrogationPayload,
    SignalSource.LOCAL_MODEL: LocalModelPayload,
    SignalSource.STYLE_TRANSFER: StyleTransferPayload,
}


# ============ Extractors ============

def extract_vision_signal(payload: VisionPayload) -> Signal:
    keywords = [
        label.name.lower()
        for label in payload.labels[:MAX_LABELS]
        if label.score > LABEL_THRESHOLD
    ]
    keywords += [
        obj.name.lower()
        for obj in payload.objects[:MAX_OBJECTS]
        if obj.score > LABEL_THRESHOLD
    ]
    colors = [
        color_bucket(swatch.red, swatch.green, swatch.blue)
        for swatch in payload.colors[:MAX_VISION_COLORS]
        if swatch.score > SWATCH_THRESHOLD
    ]

    return Signal(
        source=SignalSource.VISION,
        keywords=_unique(keywords),
        colors=_unique(colors),
        confidence=SOURCE_CONFIDENCE[SignalSource.VISION],
    )


def extract_concepts_signal(payload: ConceptsPayload) -> Signal:
    keywords = [
        concept.name.lower()
        for concept in payload.concepts[:MAX_CONCEPTS]
        if concept.score > CONCEPT_THRESHOLD
    ]

    colors = []
    for swatch in payload.colors[:MAX_CONCEPT_COLORS]:
        if swatch.score <= SWATCH_THRESHOLD:
            continue
        try:
            colors.append(color_name_from_hex(swatch.hex))
        except ValueError:
            logger.debug(f"Skipping unparseable concept swatch {swatch.hex!r}")

    return Signal(
        source=SignalSource.CONCEPTS,
        keywords=_unique(keywords),
        colors=_unique(colors),
        confidence=SOURCE_CONFIDENCE[SignalSource.CONCEPTS],
    )


def extract_caption_keywords(description: str) -> list[str]:
    """Vocabulary terms found in a caption, then up to five "<adjective> painting/art/..." words."""
    text = description.lower()
    found = [term for term in CAPTION_VOCABULARY if term in text]
    adjectives = CAPTION_ADJECTIVE_PATTERN.findall(text)
    found.extend(adjectives[:MAX_CAPTION_ADJECTIVES])
    return list(_unique(found))


def extract_interrogation_signal(payload: InterrogationPayload) -> Signal:
    embedding = _embedding(payload.embedding)

    if payload.confidence is not None:
        confidence = payload.confidence
    elif embedding:
        confidence = INTERROGATION_CONFIDENCE_WITH_EMBEDDING
    else:
        confidence = INTERROGATION_CONFIDENCE_WITHOUT_EMBEDDING

    return Signal(
        source=SignalSource.INTERROGATION,
        keywords=tuple(extract_caption_keywords(payload.text_description)),
        embedding=embedding,
        confidence=_clamp_confidence(confidence),
    )


def extract_local_model_signal(payload: LocalModelPayload) -> Signal:
    keywords = [k.lower() for k in payload.keywords]
    keywords += [payload.artistic_style.lower(), payload.technique.lower()]

    confidence = payload.confidence
    if confidence is None:
        confidence = SOURCE_CONFIDENCE[SignalSource.LOCAL_MODEL]

    return Signal(
        source=SignalSource.LOCAL_MODEL,
        keywords=_unique(keywords),
        embedding=_embedding(payload.embedding),
        confidence=_clamp_confidence(confidence),
    )


def extract_style_transfer_signal(payload: StyleTransferPayload) -> Signal:
    summary = summarize_palette(payload.palette)
    keywords = [k.lower() for k in payload.keywords]
    keywords += palette_keywords(summary, payload.palette)

    colors = []
    for swatch in payload.palette:
        try:
            colors.append(color_name_from_hex(swatch.color))
        except ValueError:
            logger.debug(f"Skipping unparseable palette color {swatch.color!r}")

    confidence = payload.confidence
    if confidence is None:
        confidence = SOURCE_CONFIDENCE[SignalSource.STYLE_TRANSFER]

    return Signal(
        source=SignalSource.STYLE_TRANSFER,
        keywords=_unique(keywords),
        colors=_unique(colors),
        embedding=_embedding(payload.embedding),
        confidence=_clamp_confidence(confidence),
        color_properties=summary,
    )


EXTRACTORS: dict[SignalSource, Callable[[Any], Signal]] = {
    SignalSource.VISION: extract_vision_signal,
    SignalSource.CONCEPTS: extract_concepts_signal,
    SignalSource.INTERROGATION: extract_interrogation_signal,
    SignalSource.LOCAL_MODEL: extract_local_model_signal,
    SignalSource.STYLE_TRANSFER: extract_style_transfer_signal,
}


def decode_payload(source: SignalSource, raw: Any):
    """Accept either the typed payload for ``source`` or its provider JSON."""
    payload_cls = PAYLOAD_TYPES[source]
    if isinstance(raw, payload_cls):
        return raw
    if isinstance(raw, dict):
        return payload_cls.from_dict(raw)
    raise PayloadDecodeError(
        f"{source.value} returned {type(raw).__name__}, expected {payload_cls.__name__}"
    )


def extract_signal(source: SignalSource, raw: Any) -> Signal:
    """Decode a provider result and map it to a Signal."""
    return EXTRACTORS[source](decode_payload(source, raw))
