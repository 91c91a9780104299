"""Recommendation service combining content, collaborative and popularity rankers."""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from artcurator.config import Settings, get_settings
from artcurator.db.schemas import (
    ArtworkFeatures,
    EngagementSummary,
    ExperimentBucket,
    InteractionType,
    Recommendation,
    RecommendationMethod,
)
from artcurator.services.ensemble_combiner import CombinedAnalysis
from artcurator.services.experiments import BUCKET_METHODS, get_experiment_bucket
from artcurator.services.interaction_store import Interaction, InteractionStore
from artcurator.services.profile_store import ProfileStore, UserProfile
from artcurator.services.recommenders import (
    CollaborativeRecommender,
    ContentBasedRecommender,
    PopularityRecommender,
    combine_hybrid,
)

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"


def overlay_analysis(profile: UserProfile, analysis: CombinedAnalysis) -> UserProfile:
    """
    A copy of ``profile`` that fully prefers the analyzed image's style, mood
    and colors. Palette properties are taken from the image when known.
    """
    overlaid = profile.copy()
    overlaid.preferred_styles[analysis.style] = 1.0
    overlaid.preferred_moods[analysis.mood] = 1.0
    for color in analysis.colors:
        overlaid.preferred_colors[color] = 1.0

    if analysis.color_properties is not None:
        prefs = overlaid.color_preferences
        prefs.brightness = analysis.color_properties.brightness
        prefs.saturation = analysis.color_properties.saturation
        prefs.contrast = analysis.color_properties.contrast
        prefs.temperature = analysis.color_properties.temperature

    return overlaid


class RecommendationService:
    """Main recommendation service."""

    def __init__(
        self,
        store: InteractionStore,
        profiles: Optional[ProfileStore] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.profiles = profiles or ProfileStore(store, settings=self.settings)
        self.content_recommender = ContentBasedRecommender(self.settings)
        self.cf_recommender = CollaborativeRecommender(store, self.settings)
        self.popularity_recommender = PopularityRecommender(store, self.settings, rng)

    def get_experiment_bucket(self, user_id: str) -> ExperimentBucket:
        return get_experiment_bucket(user_id)

    async def recommend(
        self,
        candidates: Sequence[ArtworkFeatures],
        user_id: Optional[str] = None,
        image_analysis: Optional[CombinedAnalysis] = None,
        limit: Optional[int] = None,
        method: Optional[RecommendationMethod] = None,
    ) -> list[Recommendation]:
        """
        Get recommendations for a user, an analyzed image, or both.

        Without a user the image alone drives content scoring; without either
        (or for a user with no history and no image) popularity is used. When
        ``method`` is omitted a known user gets the method of their experiment
        bucket. Empty personal results fall back to content, then popularity.
        """
        limit = limit or self.settings.default_recommendation_limit
        candidates = list(candidates)
        if not candidates:
            return []

        if user_id is None and image_analysis is None:
            return await self.popularity_recommender.recommend(candidates, limit)

        profile = None
        if user_id is not None:
            profile = await self.profiles.get_or_build_profile(user_id)
            if profile.total_interactions == 0 and image_analysis is None:
                logger.info(f"No history for {user_id}, using popularity")
                return await self.popularity_recommender.recommend(candidates, limit)

        if method is None:
            method = (
                BUCKET_METHODS[get_experiment_bucket(user_id)]
                if user_id is not None
                else RecommendationMethod.CONTENT
            )

        if method == RecommendationMethod.POPULARITY:
            return await self.popularity_recommender.recommend(candidates, limit)

        if profile is None:
            profile = UserProfile(user_id=ANONYMOUS_USER)

        query_embedding = None
        if image_analysis is not None:
            profile = overlay_analysis(profile, image_analysis)
            query_embedding = image_analysis.embedding or None

        recs: list[Recommendation] = []

        if method == RecommendationMethod.COLLABORATIVE:
            if user_id is not None:
                recs = await self.cf_recommender.recommend(user_id, candidates, limit)
            if not recs:
                logger.info(f"Collaborative filtering empty for {user_id}, falling back to content")
                method = RecommendationMethod.CONTENT

        elif method == RecommendationMethod.HYBRID:
            content = self.content_recommender.recommend(
                profile, candidates, limit, query_embedding
            )
            collaborative = []
            if user_id is not None:
                collaborative = await self.cf_recommender.recommend(user_id, candidates, limit)
            recs = combine_hybrid(content, collaborative, limit)

        if method == RecommendationMethod.CONTENT:
            recs = self.content_recommender.recommend(profile, candidates, limit, query_embedding)

        if not recs:
            logger.info(f"No personal recommendations for {user_id or ANONYMOUS_USER}, using popularity")
            return await self.popularity_recommender.recommend(candidates, limit)

        return recs

    async def run_experiment(
        self,
        user_id: str,
        candidates: Sequence[ArtworkFeatures],
        limit: Optional[int] = None,
    ) -> tuple[ExperimentBucket, list[Recommendation]]:
        """Recommend strictly with the user's bucket method, without fallbacks."""
        limit = limit or self.settings.default_recommendation_limit
        bucket = get_experiment_bucket(user_id)
        profile = await self.profiles.get_or_build_profile(user_id)

        if bucket == ExperimentBucket.CONTENT_ONLY:
            recs = self.content_recommender.recommend(profile, candidates, limit)
        elif bucket == ExperimentBucket.COLLABORATIVE_ONLY:
            recs = await self.cf_recommender.recommend(user_id, candidates, limit)
        else:
            content = self.content_recommender.recommend(profile, candidates, limit)
            collaborative = await self.cf_recommender.recommend(user_id, candidates, limit)
            recs = combine_hybrid(content, collaborative, limit)

        logger.info(f"Experiment {bucket.value} for {user_id}: {len(recs)} recommendations")
        return bucket, recs

    async def record_interaction(
        self,
        user_id: str,
        artwork: ArtworkFeatures,
        interaction_type: InteractionType,
    ) -> Interaction:
        return await self.profiles.record_interaction(user_id, artwork, interaction_type)

    async def analyze_engagement(
        self,
        user_id: str,
        period_days: int = 30,
        now: Optional[datetime] = None,
    ) -> EngagementSummary:
        """Click-through, conversion and mean rating over the trailing period."""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=period_days)

        try:
            interactions = await self.store.load_user_history(user_id, since=since)
        except Exception as e:
            logger.error(f"Failed to analyze engagement for {user_id}: {e}")
            return EngagementSummary()

        if not interactions:
            return EngagementSummary()

        total = len(interactions)
        clicks = sum(1 for i in interactions if i.interaction_type == InteractionType.CLICK)
        purchases = sum(1 for i in interactions if i.interaction_type == InteractionType.PURCHASE_REQUEST)

        return EngagementSummary(
            total_interactions=total,
            click_through_rate=clicks / total,
            conversion_rate=purchases / total,
            average_rating=sum(i.rating for i in interactions) / total,
        )
