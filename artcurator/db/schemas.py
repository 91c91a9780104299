"""Pydantic schemas for configuration, catalog data and recommendation output."""

import hashlib
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictBool


# ============ Ensemble Schemas ============

class SignalSource(str, Enum):
    """Image analysis providers, in the order their signals are combined."""
    VISION = "vision"
    CONCEPTS = "concepts"
    INTERROGATION = "interrogation"
    LOCAL_MODEL = "local_model"
    STYLE_TRANSFER = "style_transfer"


class SourceSettings(BaseModel):
    """Per-source switch and embedding weight."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: StrictBool = True
    weight: float = Field(default=0.2, ge=0.0)


class EnsembleConfig(BaseModel):
    """Which sources take part in an analysis and how their embeddings are weighted."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    sources: dict[SignalSource, SourceSettings]

    def is_enabled(self, source: SignalSource) -> bool:
        settings = self.sources.get(source)
        return settings is not None and settings.enabled

    def weight(self, source: SignalSource) -> float:
        settings = self.sources.get(source)
        return settings.weight if settings else 0.0

    def enabled_sources(self) -> list[SignalSource]:
        """Enabled sources in declaration order (not dict order)."""
        return [source for source in SignalSource if self.is_enabled(source)]

    def fingerprint(self) -> str:
        """Short stable digest used in analysis cache keys."""
        parts = [
            f"{source.value}:{int(self.is_enabled(source))}:{self.weight(source):.4f}"
            for source in SignalSource
        ]
        return hashlib.sha256("|".join(parts).encode()).hexdigest()[:12]


# ============ Catalog Schemas ============

class InteractionType(str, Enum):
    """User actions recorded against an artwork."""
    VIEW = "view"
    CLICK = "click"
    FAVORITE = "favorite"
    PURCHASE_REQUEST = "purchase_request"


INTERACTION_WEIGHTS: dict[InteractionType, int] = {
    InteractionType.VIEW: 1,
    InteractionType.CLICK: 2,
    InteractionType.FAVORITE: 4,
    InteractionType.PURCHASE_REQUEST: 5,
}


class ArtworkFeatures(BaseModel):
    """Artwork description supplied by the catalog. Never mutated here."""
    model_config = ConfigDict(frozen=True)

    id: str
    keywords: list[str] = []
    style: str = "mixed"
    mood: str = "neutral"
    colors: list[str] = []
    embedding: list[float] = []
    brightness: float | None = None  # 0-100
    saturation: float | None = None  # 0-100
    contrast: float | None = None  # 0-100
    temperature: str | None = None  # warm / cool / neutral


# ============ Recommendation Schemas ============

class RecommendationMethod(str, Enum):
    """Scoring method that produced a recommendation."""
    CONTENT = "content"
    COLLABORATIVE = "collaborative"
    HYBRID = "hybrid"
    POPULARITY = "popularity"


class ExperimentBucket(str, Enum):
    """A/B test groups for recommendation methods."""
    CONTENT_ONLY = "content_only"
    COLLABORATIVE_ONLY = "collaborative_only"
    HYBRID = "hybrid"


class Recommendation(BaseModel):
    """A ranked artwork with a human-readable explanation."""
    artwork: ArtworkFeatures
    score: float
    reason: str
    method: RecommendationMethod
    confidence: float | None = None
    similar_users: list[str] = []


class EngagementSummary(BaseModel):
    """Interaction rates for one user over a trailing period."""
    total_interactions: int = 0
    click_through_rate: float = 0.0
    conversion_rate: float = 0.0
    average_rating: float = 0.0
