"""
Recommendation rankers.

Content-based scoring with the following weights:
- Style preference (0.30)
- Mood preference (0.25)
- Color overlap (0.20)
- Palette property similarity (0.15) - brightness / saturation / contrast
- Embedding cosine (0.10)

Collaborative filtering finds users whose ratings agree with the target
user's on shared artworks and surfaces what they rated highly. Hybrid
scoring blends the two at 0.7 / 0.3. Popularity is the fallback when
there is nothing personal to go on.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from artcurator.config import Settings, get_settings
from artcurator.db.schemas import ArtworkFeatures, Recommendation, RecommendationMethod
from artcurator.services.interaction_store import Interaction, InteractionStore
from artcurator.services.profile_store import UserProfile, build_user_embedding
from artcurator.services.similarity import cosine_similarity

logger = logging.getLogger(__name__)

# Content-based weights
STYLE_WEIGHT = 0.30
MOOD_WEIGHT = 0.25
COLOR_OVERLAP_WEIGHT = 0.20
COLOR_PROPERTIES_WEIGHT = 0.15
EMBEDDING_WEIGHT = 0.10

MIN_CONTENT_SCORE = 0.1

# A sub-score above its threshold contributes a reason clause
STYLE_REASON_THRESHOLD = 0.5
MOOD_REASON_THRESHOLD = 0.5
COLOR_REASON_THRESHOLD = 0.5
COLOR_PROPERTIES_REASON_THRESHOLD = 0.7
EMBEDDING_REASON_THRESHOLD = 0.8

# Collaborative filtering
MIN_CONTRIBUTING_USERS = 2
FULL_CONFIDENCE_USERS = 5

# Hybrid blend
CONTENT_BLEND = 0.7
COLLABORATIVE_BLEND = 0.3

DISCOVERY_MAX_SCORE = 0.5


@dataclass
class ContentScore:
    """Breakdown of one artwork's content-based score."""
    score: float
    reasons: list[str] = field(default_factory=list)


def color_properties_similarity(profile: UserProfile, artwork: ArtworkFeatures) -> float:
    """Mean of ``1 - |pref - value| / 100`` over the properties the artwork has; 0 if none."""
    prefs = profile.color_preferences
    pairs = [
        (prefs.brightness, artwork.brightness),
        (prefs.saturation, artwork.saturation),
        (prefs.contrast, artwork.contrast),
    ]
    scores = [1 - abs(pref - value) / 100 for pref, value in pairs if value is not None]
    return sum(scores) / len(scores) if scores else 0.0


class ContentBasedRecommender:
    """Scores artworks against a user's preference profile."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def score(
        self,
        profile: UserProfile,
        artwork: ArtworkFeatures,
        query_embedding: Optional[Sequence[float]] = None,
        user_embedding: Optional[Sequence[float]] = None,
    ) -> ContentScore:
        reasons = []

        style_score = profile.preferred_styles.get(artwork.style, 0)
        if style_score > STYLE_REASON_THRESHOLD:
            reasons.append(f"preferred {artwork.style} style")

        mood_score = profile.preferred_moods.get(artwork.mood, 0)
        if mood_score > MOOD_REASON_THRESHOLD:
            reasons.append(f"preferred {artwork.mood} mood")

        color_score = 0.0
        if artwork.colors:
            total = sum(profile.preferred_colors.get(color, 0) for color in artwork.colors)
            color_score = min(total / len(artwork.colors), 1.0)
        if color_score > COLOR_REASON_THRESHOLD:
            reasons.append("preferred color palette")

        properties_score = color_properties_similarity(profile, artwork)
        if properties_score > COLOR_PROPERTIES_REASON_THRESHOLD:
            reasons.append("color properties match your taste")

        embedding_score = 0.0
        if artwork.embedding:
            if query_embedding and len(query_embedding) == len(artwork.embedding):
                reference = query_embedding
            else:
                reference = user_embedding or build_user_embedding(
                    profile, self.settings.user_embedding_dim
                )
            embedding_score = cosine_similarity(reference, artwork.embedding)
            if embedding_score > EMBEDDING_REASON_THRESHOLD:
                reasons.append("overall style similar to your taste")

        score = (
            style_score * STYLE_WEIGHT
            + mood_score * MOOD_WEIGHT
            + color_score * COLOR_OVERLAP_WEIGHT
            + properties_score * COLOR_PROPERTIES_WEIGHT
            + embedding_score * EMBEDDING_WEIGHT
        )
        return ContentScore(score=score, reasons=reasons)

    def recommend(
        self,
        profile: UserProfile,
        candidates: Sequence[ArtworkFeatures],
        limit: int,
        query_embedding: Optional[Sequence[float]] = None,
    ) -> list[Recommendation]:
        user_embedding = build_user_embedding(profile, self.settings.user_embedding_dim)
        recommendations = []

        for artwork in candidates:
            result = self.score(profile, artwork, query_embedding, user_embedding)
            if result.score < MIN_CONTENT_SCORE:
                continue
            recommendations.append(Recommendation(
                artwork=artwork,
                score=result.score,
                reason=", ".join(result.reasons) if result.reasons else "general recommendation",
                method=RecommendationMethod.CONTENT,
            ))

        recommendations.sort(key=lambda r: r.score, reverse=True)
        return recommendations[:limit]


def ratings_by_artwork(interactions: Sequence[Interaction]) -> dict[str, int]:
    """Highest rating per artwork."""
    ratings: dict[str, int] = {}
    for interaction in interactions:
        current = ratings.get(interaction.artwork_id)
        if current is None or interaction.rating > current:
            ratings[interaction.artwork_id] = interaction.rating
    return ratings


def user_similarity(ratings_a: dict[str, float], ratings_b: dict[str, float]) -> float:
    """Cosine similarity over the artworks both users rated; 0 when they share none."""
    common = [artwork_id for artwork_id in ratings_a if artwork_id in ratings_b]
    if not common:
        return 0.0
    return cosine_similarity(
        [ratings_a[artwork_id] for artwork_id in common],
        [ratings_b[artwork_id] for artwork_id in common],
    )


@dataclass
class SimilarUser:
    user_id: str
    similarity: float
    ratings: dict[str, int]


class CollaborativeRecommender:
    """User-user collaborative filtering over the interaction log."""

    def __init__(self, store: InteractionStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    async def find_similar_users(self, user_id: str) -> list[SimilarUser]:
        """
        Neighbours of ``user_id`` by rating similarity, best first.

        Returns an empty list when either side lacks history (cold start) or
        the store fails.
        """
        min_interactions = self.settings.cf_min_interactions

        try:
            own = await self.store.load_user_history(user_id)
            if len(own) < min_interactions:
                logger.debug(f"Collaborative cold start for {user_id}: {len(own)} interactions")
                return []
            others = await self.store.load_interactions(exclude_user=user_id)
        except Exception as e:
            logger.warning(f"Failed to load interactions for collaborative filtering: {e}")
            return []

        own_ratings = ratings_by_artwork(own)

        by_user: dict[str, list[Interaction]] = defaultdict(list)
        for interaction in others:
            by_user[interaction.user_id].append(interaction)

        similar = []
        for other_id, interactions in by_user.items():
            if len(interactions) < min_interactions:
                continue
            ratings = ratings_by_artwork(interactions)
            similarity = user_similarity(own_ratings, ratings)
            if similarity > self.settings.cf_min_similarity:
                similar.append(SimilarUser(other_id, similarity, ratings))

        similar.sort(key=lambda u: u.similarity, reverse=True)
        return similar[:self.settings.cf_max_similar_users]

    async def recommend(
        self,
        user_id: str,
        candidates: Sequence[ArtworkFeatures],
        limit: int,
    ) -> list[Recommendation]:
        """Artworks positively rated by at least two similar users, ranked by score x confidence."""
        similar = await self.find_similar_users(user_id)
        if not similar:
            return []

        by_id = {artwork.id: artwork for artwork in candidates}
        weighted_sums: dict[str, float] = defaultdict(float)
        contributors: dict[str, list[str]] = defaultdict(list)

        for neighbour in similar:
            for artwork_id, rating in neighbour.ratings.items():
                if rating < self.settings.cf_min_rating or artwork_id not in by_id:
                    continue
                weighted_sums[artwork_id] += rating * neighbour.similarity
                contributors[artwork_id].append(neighbour.user_id)

        recommendations = []
        for artwork_id, users in contributors.items():
            if len(users) < MIN_CONTRIBUTING_USERS:
                continue
            recommendations.append(Recommendation(
                artwork=by_id[artwork_id],
                score=weighted_sums[artwork_id] / len(users),
                reason=f"{len(users)} similar users liked this",
                method=RecommendationMethod.COLLABORATIVE,
                confidence=min(len(users) / FULL_CONFIDENCE_USERS, 1.0),
                similar_users=users,
            ))

        recommendations.sort(key=lambda r: r.score * r.confidence, reverse=True)
        logger.debug(
            f"Collaborative: {len(similar)} similar users, {len(recommendations)} candidates for {user_id}"
        )
        return recommendations[:limit]


def combine_hybrid(
    content: Sequence[Recommendation],
    collaborative: Sequence[Recommendation],
    limit: int,
) -> list[Recommendation]:
    """
    Blend both rankings: ``0.7 * content + 0.3 * collaborative * confidence``.

    Method is ``hybrid`` only when both rankers scored the artwork.
    """
    merged: dict[str, dict] = {}

    for rec in content:
        merged[rec.artwork.id] = {"artwork": rec.artwork, "content": rec, "collaborative": None}

    for rec in collaborative:
        entry = merged.setdefault(
            rec.artwork.id, {"artwork": rec.artwork, "content": None, "collaborative": None}
        )
        entry["collaborative"] = rec

    results = []
    for entry in merged.values():
        content_rec: Optional[Recommendation] = entry["content"]
        collab_rec: Optional[Recommendation] = entry["collaborative"]

        content_score = content_rec.score if content_rec else 0.0
        collab_score = collab_rec.score * (collab_rec.confidence or 0.0) if collab_rec else 0.0

        if content_rec and collab_rec:
            method = RecommendationMethod.HYBRID
            reason = " + ".join(r for r in (content_rec.reason, collab_rec.reason) if r)
        elif content_rec:
            method = RecommendationMethod.CONTENT
            reason = content_rec.reason
        else:
            method = RecommendationMethod.COLLABORATIVE
            reason = collab_rec.reason

        results.append(Recommendation(
            artwork=entry["artwork"],
            score=CONTENT_BLEND * content_score + COLLABORATIVE_BLEND * collab_score,
            reason=reason,
            method=method,
            confidence=collab_rec.confidence if collab_rec else None,
            similar_users=list(collab_rec.similar_users) if collab_rec else [],
        ))

    results.sort(key=lambda r: r.score, reverse=True)
    return results[:limit]


class PopularityRecommender:
    """Ranks candidates by recent mean rating; unseen artworks get a small random score."""

    def __init__(
        self,
        store: InteractionStore,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()

    async def recommend(
        self,
        candidates: Sequence[ArtworkFeatures],
        limit: int,
        now: Optional[datetime] = None,
    ) -> list[Recommendation]:
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=self.settings.popularity_window_days)

        try:
            interactions = await self.store.load_interactions(since=since)
        except Exception as e:
            logger.warning(f"Failed to load recent interactions for popularity ranking: {e}")
            interactions = []

        ratings: dict[str, list[int]] = defaultdict(list)
        for interaction in interactions:
            ratings[interaction.artwork_id].append(interaction.rating)

        recommendations = []
        for artwork in candidates:
            artwork_ratings = ratings.get(artwork.id)
            if artwork_ratings:
                score = sum(artwork_ratings) / len(artwork_ratings)
                reason = f"Trending: {len(artwork_ratings)} recent interactions"
            else:
                score = self.rng.random() * DISCOVERY_MAX_SCORE
                reason = "Discovery pick"
            recommendations.append(Recommendation(
                artwork=artwork,
                score=score,
                reason=reason,
                method=RecommendationMethod.POPULARITY,
            ))

        recommendations.sort(key=lambda r: r.score, reverse=True)
        return recommendations[:limit]
