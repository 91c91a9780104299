import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from artcurator.config import Settings
from artcurator.core.cache import ProfileCache
from artcurator.db.schemas import ArtworkFeatures, InteractionType
from artcurator.services.interaction_store import InMemoryInteractionStore, Interaction
from artcurator.services.profile_store import (
    ProfileStore,
    UserProfile,
    apply_interaction,
    build_profile,
    build_user_embedding,
    normalize_profile,
)

NOW = datetime(2026, 10, 1, tzinfo=timezone.utc)


class FailingStore:
    async def load_user_history(self, user_id, limit=None, since=None):
        raise OSError("database unavailable")

    async def load_interactions(self, since=None, exclude_user=None):
        raise OSError("database unavailable")

    async def persist_interaction(self, interaction):
        raise OSError("database unavailable")


class WriteFailingStore(InMemoryInteractionStore):
    async def persist_interaction(self, interaction):
        raise OSError("disk full")


class FlakyReadStore(InMemoryInteractionStore):
    """Fails the first history read, then behaves normally."""

    def __init__(self, interactions=None):
        super().__init__(interactions)
        self.failed = False

    async def load_user_history(self, user_id, limit=None, since=None):
        if not self.failed:
            self.failed = True
            raise OSError("connection reset")
        return await super().load_user_history(user_id, limit=limit, since=since)


def interaction(user_id, artwork_id, kind, style="abstract", mood="serene", colors=(), minutes=0):
    weights = {"view": 1, "click": 2, "favorite": 4, "purchase_request": 5}
    return Interaction(
        user_id=user_id,
        artwork_id=artwork_id,
        interaction_type=InteractionType(kind),
        rating=weights[kind],
        created_at=NOW + timedelta(minutes=minutes),
        style=style,
        mood=mood,
        colors=list(colors),
    )


def test_normalize_is_noop_when_all_values_at_most_one():
    profile = UserProfile("u1", preferred_styles={"abstract": 0.4, "modern": 1.0})
    normalize_profile(profile)
    assert profile.preferred_styles == {"abstract": 0.4, "modern": 1.0}


def test_normalize_scales_each_map_to_max_one():
    profile = UserProfile(
        "u1",
        preferred_styles={"abstract": 2.0, "modern": 1.0},
        preferred_moods={"serene": 0.5},
        preferred_colors={"red": 3.0, "blue": 1.5},
    )
    normalize_profile(profile)

    assert profile.preferred_styles == {"abstract": 1.0, "modern": 0.5}
    assert profile.preferred_moods == {"serene": 0.5}
    assert profile.preferred_colors == {"red": 1.0, "blue": 0.5}


def test_build_profile_accumulates_weighted_preferences():
    history = [
        interaction("u1", "a1", "favorite", colors=["blue"]),
        interaction("u1", "a2", "view", style="modern", mood="dramatic", colors=["blue", "red"]),
    ]
    profile = build_profile("u1", history)

    assert profile.preferred_styles == pytest.approx({"abstract": 0.4, "modern": 0.1})
    assert profile.preferred_moods == pytest.approx({"serene": 0.4, "dramatic": 0.1})
    assert profile.preferred_colors == pytest.approx({"blue": 0.25, "red": 0.05})
    assert profile.total_interactions == 2


def test_build_profile_normalizes_large_totals():
    history = [interaction("u1", f"a{i}", "purchase_request") for i in range(3)]
    profile = build_profile("u1", history)

    assert profile.preferred_styles["abstract"] == pytest.approx(1.0)
    assert max(profile.preferred_moods.values()) <= 1.0


def test_color_properties_move_halfway_to_each_observation():
    profile = UserProfile("u1")
    artwork = ArtworkFeatures(id="a1", brightness=90, saturation=10, temperature="warm")

    apply_interaction(profile, artwork, InteractionType.VIEW)
    assert profile.color_preferences.brightness == 70
    assert profile.color_preferences.saturation == 30
    assert profile.color_preferences.contrast == 50
    assert profile.color_preferences.temperature == "warm"

    apply_interaction(profile, artwork, InteractionType.VIEW)
    assert profile.color_preferences.brightness == 80
    assert profile.total_interactions == 2


def test_user_embedding_layout():
    profile = UserProfile(
        "u1",
        preferred_styles={"abstract": 0.9, "modern": 0.3},
        preferred_colors={"blue": 0.7},
    )
    embedding = build_user_embedding(profile, 512)

    assert len(embedding) == 512
    assert embedding[0] == 0.9
    assert embedding[1] == 0.3
    assert embedding[100] == 0.7
    assert sum(1 for v in embedding if v) == 3


def test_profile_is_built_once_and_cached():
    store = InMemoryInteractionStore([interaction("u1", "a1", "click")])
    cache = ProfileCache()
    profiles = ProfileStore(store, cache, Settings())

    first = asyncio.run(profiles.get_or_build_profile("u1"))
    second = asyncio.run(profiles.get_or_build_profile("u1"))

    assert first is second
    assert "u1" in cache
    assert first.preferred_styles == pytest.approx({"abstract": 0.2})


def test_history_is_limited_to_most_recent():
    history = [interaction("u1", "old", "view", style="classical", minutes=0)]
    history += [interaction("u1", f"a{i}", "view", minutes=10 + i) for i in range(3)]
    profiles = ProfileStore(InMemoryInteractionStore(history), settings=Settings(profile_history_limit=3))

    profile = asyncio.run(profiles.get_or_build_profile("u1"))

    assert "classical" not in profile.preferred_styles
    assert profile.total_interactions == 3


def test_read_failure_degrades_to_empty_profile():
    profiles = ProfileStore(FailingStore(), settings=Settings())

    profile = asyncio.run(profiles.get_or_build_profile("u1"))

    assert profile.total_interactions == 0
    assert profile.preferred_styles == {}
    assert "u1" not in profiles.cache


def test_record_interaction_updates_profile_and_persists():
    store = InMemoryInteractionStore()
    profiles = ProfileStore(store, settings=Settings())
    artwork = ArtworkFeatures(id="a1", style="modern", mood="joyful", colors=["red"])

    recorded = asyncio.run(profiles.record_interaction("u1", artwork, InteractionType.FAVORITE))
    profile = asyncio.run(profiles.get_or_build_profile("u1"))

    assert recorded.rating == 4
    assert len(store) == 1
    assert profile.preferred_styles == pytest.approx({"modern": 0.4})
    assert profile.preferred_colors == pytest.approx({"red": 0.2})


def test_write_failure_still_updates_profile():
    profiles = ProfileStore(WriteFailingStore(), settings=Settings())
    artwork = ArtworkFeatures(id="a1", style="modern")

    asyncio.run(profiles.record_interaction("u1", artwork, InteractionType.CLICK))

    assert profiles.cache.get("u1").preferred_styles == pytest.approx({"modern": 0.2})


def test_concurrent_updates_for_one_user_are_serialized():
    store = InMemoryInteractionStore()
    profiles = ProfileStore(store, settings=Settings())
    artwork = ArtworkFeatures(id="a1", style="modern")

    async def record_many():
        await asyncio.gather(*(
            profiles.record_interaction("u1", artwork, InteractionType.VIEW) for _ in range(5)
        ))

    asyncio.run(record_many())

    assert profiles.cache.get("u1").total_interactions == 5
    assert profiles.cache.get("u1").preferred_styles["modern"] == pytest.approx(0.5)


def test_update_after_read_failure_does_not_hide_stored_history():
    history = [
        interaction("u1", f"a{i}", "purchase_request", style="abstract", minutes=i) for i in range(10)
    ]
    store = FlakyReadStore(history)
    profiles = ProfileStore(store, settings=Settings())
    artwork = ArtworkFeatures(id="new", style="modern")

    asyncio.run(profiles.record_interaction("u1", artwork, InteractionType.VIEW))
    assert "u1" not in profiles.cache

    profile = asyncio.run(profiles.get_or_build_profile("u1"))

    assert profile.total_interactions == 11
    assert profile.preferred_styles["abstract"] == pytest.approx(1.0)
    assert "modern" in profile.preferred_styles


def test_write_failure_after_read_failure_leaves_cache_empty():
    profiles = ProfileStore(FailingStore(), settings=Settings())

    asyncio.run(profiles.record_interaction("u1", ArtworkFeatures(id="a1"), InteractionType.CLICK))

    assert "u1" not in profiles.cache
