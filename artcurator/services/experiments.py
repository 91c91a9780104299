"""A/B experiment assignment."""

from artcurator.db.schemas import ExperimentBucket, RecommendationMethod

_BUCKETS = (
    ExperimentBucket.CONTENT_ONLY,
    ExperimentBucket.COLLABORATIVE_ONLY,
    ExperimentBucket.HYBRID,
)

BUCKET_METHODS: dict[ExperimentBucket, RecommendationMethod] = {
    ExperimentBucket.CONTENT_ONLY: RecommendationMethod.CONTENT,
    ExperimentBucket.COLLABORATIVE_ONLY: RecommendationMethod.COLLABORATIVE,
    ExperimentBucket.HYBRID: RecommendationMethod.HYBRID,
}


def get_experiment_bucket(user_id: str) -> ExperimentBucket:
    """Stable bucket from the sum of the id's character codes, mod 3."""
    return _BUCKETS[sum(ord(ch) for ch in user_id) % len(_BUCKETS)]
