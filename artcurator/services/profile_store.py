"""
Preference profile store.

A profile is rebuilt from the most recent interactions on a cache miss and
updated incrementally as new interactions arrive. Each event adds
``weight * 0.1`` to the artwork's style and mood and ``weight * 0.05`` to
each of its colors, after which every preference map whose maximum exceeds
1 is scaled back down so that maximum is exactly 1.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from artcurator.config import Settings, get_settings
from artcurator.core.cache import ProfileCache
from artcurator.db.schemas import INTERACTION_WEIGHTS, ArtworkFeatures, InteractionType
from artcurator.services.interaction_store import Interaction, InteractionStore

logger = logging.getLogger(__name__)

STYLE_INCREMENT = 0.1
MOOD_INCREMENT = 0.1
COLOR_INCREMENT = 0.05

# Slots in the synthetic user embedding
EMBEDDING_STYLE_OFFSET = 0
EMBEDDING_COLOR_OFFSET = 100
EMBEDDING_SLOTS_PER_GROUP = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ColorPreferences:
    """Preferred palette properties on a 0-100 scale."""
    temperature: str = "neutral"
    brightness: float = 50.0
    saturation: float = 50.0
    contrast: float = 50.0


@dataclass
class UserProfile:
    user_id: str
    preferred_styles: dict[str, float] = field(default_factory=dict)
    preferred_moods: dict[str, float] = field(default_factory=dict)
    preferred_colors: dict[str, float] = field(default_factory=dict)
    color_preferences: ColorPreferences = field(default_factory=ColorPreferences)
    total_interactions: int = 0
    last_updated: datetime = field(default_factory=_utcnow)

    def copy(self) -> "UserProfile":
        return copy.deepcopy(self)


def _normalize_map(values: dict[str, float]) -> None:
    if not values:
        return
    peak = max(values.values())
    if peak > 1:
        for key in values:
            values[key] /= peak


def normalize_profile(profile: UserProfile) -> None:
    """Scale each preference map independently so no value exceeds 1."""
    _normalize_map(profile.preferred_styles)
    _normalize_map(profile.preferred_moods)
    _normalize_map(profile.preferred_colors)


def _accumulate(
    profile: UserProfile,
    style: str,
    mood: str,
    colors: Iterable[str],
    weight: float,
) -> None:
    profile.preferred_styles[style] = profile.preferred_styles.get(style, 0) + weight * STYLE_INCREMENT
    profile.preferred_moods[mood] = profile.preferred_moods.get(mood, 0) + weight * MOOD_INCREMENT
    for color in colors:
        profile.preferred_colors[color] = profile.preferred_colors.get(color, 0) + weight * COLOR_INCREMENT


def build_profile(user_id: str, history: Iterable[Interaction]) -> UserProfile:
    """Rebuild a profile from stored interactions."""
    profile = UserProfile(user_id=user_id)
    for interaction in history:
        _accumulate(profile, interaction.style, interaction.mood, interaction.colors, interaction.weight)
        profile.total_interactions += 1

    normalize_profile(profile)
    return profile


def apply_interaction(
    profile: UserProfile,
    artwork: ArtworkFeatures,
    interaction_type: InteractionType,
) -> UserProfile:
    """
    Fold one new interaction into ``profile`` in place.

    Palette properties move halfway toward the artwork's values
    (``(old + new) / 2``); temperature follows the latest artwork that has one.
    """
    weight = INTERACTION_WEIGHTS[interaction_type]
    _accumulate(profile, artwork.style, artwork.mood, artwork.colors, weight)

    prefs = profile.color_preferences
    if artwork.brightness is not None:
        prefs.brightness = (prefs.brightness + artwork.brightness) / 2
    if artwork.saturation is not None:
        prefs.saturation = (prefs.saturation + artwork.saturation) / 2
    if artwork.contrast is not None:
        prefs.contrast = (prefs.contrast + artwork.contrast) / 2
    if artwork.temperature:
        prefs.temperature = artwork.temperature

    profile.total_interactions += 1
    profile.last_updated = _utcnow()
    normalize_profile(profile)
    return profile


def build_user_embedding(profile: UserProfile, dim: int = 512) -> list[float]:
    """
    Project a profile into a fixed-size vector.

    Style preferences fill slots 0-99 and color preferences slots 100-199,
    each in the order the preference was first seen.
    """
    embedding = [0.0] * dim

    for index, score in enumerate(profile.preferred_styles.values()):
        if index >= EMBEDDING_SLOTS_PER_GROUP:
            break
        slot = EMBEDDING_STYLE_OFFSET + index
        if slot < dim:
            embedding[slot] = score

    for index, score in enumerate(profile.preferred_colors.values()):
        if index >= EMBEDDING_SLOTS_PER_GROUP:
            break
        slot = EMBEDDING_COLOR_OFFSET + index
        if slot < dim:
            embedding[slot] = score

    return embedding


class ProfileStore:
    """Loads, caches and updates user preference profiles."""

    def __init__(
        self,
        store: InteractionStore,
        cache: Optional[ProfileCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.cache = cache if cache is not None else ProfileCache()
        self.settings = settings or get_settings()

    async def get_or_build_profile(self, user_id: str) -> UserProfile:
        """Cached profile, or one rebuilt from recent history."""
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        async with self.cache.lock(user_id):
            profile, _ = await self._load_profile(user_id)
            return profile

    async def _load_profile(self, user_id: str) -> tuple[UserProfile, bool]:
        """The user's profile and whether it reflects their stored history."""
        # Caller holds the user's lock
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached, True

        try:
            history = await self.store.load_user_history(
                user_id, limit=self.settings.profile_history_limit
            )
        except Exception as e:
            logger.warning(f"Failed to load interaction history for {user_id}: {e}")
            # Not cached, so the next request retries the store
            return UserProfile(user_id=user_id), False

        profile = build_profile(user_id, history)
        self.cache.set(user_id, profile)
        logger.debug(f"Built profile for {user_id} from {len(history)} interactions")
        return profile, True

    async def record_interaction(
        self,
        user_id: str,
        artwork: ArtworkFeatures,
        interaction_type: InteractionType,
    ) -> Interaction:
        """Update the cached profile, then persist the event. Persistence failures are logged only."""
        interaction = Interaction.from_artwork(user_id, artwork, interaction_type)

        async with self.cache.lock(user_id):
            loaded, from_store = await self._load_profile(user_id)
            profile = loaded.copy()
            apply_interaction(profile, artwork, interaction_type)
            # A profile missing stored history must be rebuilt on the next read
            if from_store:
                self.cache.set(user_id, profile)

        try:
            await self.store.persist_interaction(interaction)
        except Exception as e:
            logger.warning(
                f"Failed to persist {interaction_type.value} by {user_id} on {artwork.id}: {e}"
            )

        return interaction
