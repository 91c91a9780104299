import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from artcurator.config import Settings
from artcurator.db.schemas import (
    ArtworkFeatures,
    ExperimentBucket,
    InteractionType,
    Recommendation,
    RecommendationMethod,
)
from artcurator.services.experiments import get_experiment_bucket
from artcurator.services.interaction_store import InMemoryInteractionStore, Interaction
from artcurator.services.profile_store import ColorPreferences, UserProfile
from artcurator.services.recommenders import (
    CollaborativeRecommender,
    ContentBasedRecommender,
    PopularityRecommender,
    color_properties_similarity,
    combine_hybrid,
    user_similarity,
)

NOW = datetime(2026, 10, 1, tzinfo=timezone.utc)
RATING_TYPES = {1: "view", 2: "click", 4: "favorite", 5: "purchase_request"}


def rated(user_id, artwork_id, rating, days_ago=0):
    return Interaction(
        user_id=user_id,
        artwork_id=artwork_id,
        interaction_type=InteractionType(RATING_TYPES[rating]),
        rating=rating,
        created_at=NOW - timedelta(days=days_ago),
    )


def artworks(*ids):
    return [ArtworkFeatures(id=artwork_id) for artwork_id in ids]


# ============ User similarity ============

def test_identical_ratings_on_shared_artworks_give_similarity_one():
    ratings = {"A": 5, "B": 4, "C": 3}
    assert user_similarity(ratings, dict(ratings)) == pytest.approx(1.0)


def test_similarity_only_uses_shared_artworks():
    assert user_similarity({"A": 5, "B": 1}, {"A": 5, "C": 4}) == pytest.approx(1.0)
    assert user_similarity({"A": 5}, {"B": 5}) == 0.0


# ============ Content-based ============

def test_content_score_weights():
    profile = UserProfile(
        "u1",
        preferred_styles={"abstract": 1.0},
        preferred_moods={"serene": 1.0},
        preferred_colors={"blue": 1.0},
    )
    artwork = ArtworkFeatures(id="a1", style="abstract", mood="serene", colors=["blue", "red"])

    result = ContentBasedRecommender(Settings()).score(profile, artwork)

    assert result.score == pytest.approx(0.3 + 0.25 + 0.2 * 0.5)
    assert "preferred abstract style" in result.reasons
    assert "preferred serene mood" in result.reasons
    assert "preferred color palette" not in result.reasons


def test_color_properties_similarity_uses_available_values():
    profile = UserProfile("u1", color_preferences=ColorPreferences(brightness=80, saturation=20))
    artwork = ArtworkFeatures(id="a1", brightness=60, saturation=20)

    assert color_properties_similarity(profile, artwork) == pytest.approx((0.8 + 1.0) / 2)
    assert color_properties_similarity(profile, ArtworkFeatures(id="a2")) == 0.0


def test_query_embedding_is_used_when_lengths_match():
    profile = UserProfile("u1")
    artwork = ArtworkFeatures(id="a1", embedding=[1.0, 0.0])

    result = ContentBasedRecommender(Settings()).score(profile, artwork, query_embedding=[1.0, 0.0])

    assert result.score == pytest.approx(0.1)
    assert "overall style similar to your taste" in result.reasons


def test_content_recommend_filters_and_sorts():
    profile = UserProfile("u1", preferred_styles={"abstract": 1.0, "modern": 0.5})
    candidates = [
        ArtworkFeatures(id="weak", style="classical"),
        ArtworkFeatures(id="good", style="modern"),
        ArtworkFeatures(id="best", style="abstract"),
    ]

    recs = ContentBasedRecommender(Settings()).recommend(profile, candidates, limit=10)

    assert [r.artwork.id for r in recs] == ["best", "good"]
    assert all(r.method == RecommendationMethod.CONTENT for r in recs)
    assert recs[1].reason == "general recommendation"


# ============ Collaborative ============

def neighbourhood_store():
    interactions = [rated("me", a, r) for a, r in (("A", 5), ("B", 4), ("C", 4))]
    for neighbour in ("n1", "n2"):
        interactions += [rated(neighbour, a, r) for a, r in (("A", 5), ("B", 4), ("C", 4), ("D", 4))]
    # Too little history to count as a neighbour
    interactions += [rated("thin", "A", 5), rated("thin", "E", 5)]
    # Only one similar user rated F
    interactions += [rated("n1", "F", 5)]
    # Negative signal is ignored
    interactions += [rated("n1", "G", 1), rated("n2", "G", 2)]
    return InMemoryInteractionStore(interactions)


def test_collaborative_recommends_items_liked_by_two_similar_users():
    recommender = CollaborativeRecommender(neighbourhood_store(), Settings())

    recs = asyncio.run(recommender.recommend("me", artworks("D", "E", "F", "G"), limit=10))

    assert [r.artwork.id for r in recs] == ["D"]
    rec = recs[0]
    assert rec.method == RecommendationMethod.COLLABORATIVE
    assert rec.confidence == pytest.approx(0.4)
    assert set(rec.similar_users) == {"n1", "n2"}
    assert rec.reason == "2 similar users liked this"
    assert rec.score == pytest.approx(4 * rec_similarity(recommender))


def rec_similarity(recommender):
    similar = asyncio.run(recommender.find_similar_users("me"))
    return similar[0].similarity


def test_similar_users_need_enough_history():
    recommender = CollaborativeRecommender(neighbourhood_store(), Settings())

    similar = asyncio.run(recommender.find_similar_users("me"))

    assert {u.user_id for u in similar} == {"n1", "n2"}


def test_collaborative_cold_start_returns_empty():
    store = InMemoryInteractionStore([rated("new", "A", 5), rated("new", "B", 4)])
    recommender = CollaborativeRecommender(store, Settings())

    assert asyncio.run(recommender.recommend("new", artworks("A", "B"), limit=10)) == []


# ============ Hybrid ============

def make_rec(artwork_id, score, method, reason, confidence=None, users=()):
    return Recommendation(
        artwork=ArtworkFeatures(id=artwork_id),
        score=score,
        reason=reason,
        method=method,
        confidence=confidence,
        similar_users=list(users),
    )


def test_hybrid_blend_and_method_labels():
    content = [
        make_rec("both", 0.5, RecommendationMethod.CONTENT, "preferred abstract style"),
        make_rec("content", 0.6, RecommendationMethod.CONTENT, "preferred color palette"),
    ]
    collaborative = [
        make_rec("both", 4.0, RecommendationMethod.COLLABORATIVE, "2 similar users liked this", 0.4, ["n1", "n2"]),
        make_rec("collab", 5.0, RecommendationMethod.COLLABORATIVE, "3 similar users liked this", 0.6),
    ]

    recs = {r.artwork.id: r for r in combine_hybrid(content, collaborative, limit=10)}

    assert recs["both"].score == pytest.approx(0.7 * 0.5 + 0.3 * 4.0 * 0.4)
    assert recs["both"].method == RecommendationMethod.HYBRID
    assert recs["both"].reason == "preferred abstract style + 2 similar users liked this"
    assert recs["both"].similar_users == ["n1", "n2"]
    assert recs["content"].method == RecommendationMethod.CONTENT
    assert recs["content"].score == pytest.approx(0.42)
    assert recs["collab"].method == RecommendationMethod.COLLABORATIVE
    assert recs["collab"].score == pytest.approx(0.3 * 5.0 * 0.6)


def test_hybrid_respects_limit_and_order():
    content = [make_rec(f"a{i}", i / 10, RecommendationMethod.CONTENT, "") for i in range(1, 6)]

    recs = combine_hybrid(content, [], limit=2)

    assert [r.artwork.id for r in recs] == ["a5", "a4"]


# ============ Popularity ============

def test_popular_artworks_rank_above_unseen_ones():
    store = InMemoryInteractionStore([
        rated("u1", "hot", 5, days_ago=1),
        rated("u2", "hot", 4, days_ago=2),
        rated("u1", "warm", 1, days_ago=3),
        rated("u1", "stale", 5, days_ago=60),
    ])
    recommender = PopularityRecommender(store, Settings(), rng=random.Random(7))

    recs = asyncio.run(recommender.recommend(artworks("new", "stale", "warm", "hot"), limit=10, now=NOW))

    assert [r.artwork.id for r in recs[:2]] == ["hot", "warm"]
    assert recs[0].score == pytest.approx(4.5)
    assert all(r.method == RecommendationMethod.POPULARITY for r in recs)
    unseen = {r.artwork.id: r for r in recs[2:]}
    assert set(unseen) == {"new", "stale"}
    assert all(0 <= r.score < 0.5 for r in unseen.values())


def test_popularity_jitter_is_reproducible_with_seed():
    store = InMemoryInteractionStore()
    first = asyncio.run(PopularityRecommender(store, Settings(), random.Random(1)).recommend(artworks("a", "b", "c"), 3))
    second = asyncio.run(PopularityRecommender(store, Settings(), random.Random(1)).recommend(artworks("a", "b", "c"), 3))

    assert [(r.artwork.id, r.score) for r in first] == [(r.artwork.id, r.score) for r in second]


# ============ Experiments ============

def test_experiment_bucket_is_character_code_sum_mod_three():
    assert get_experiment_bucket("a") == ExperimentBucket.COLLABORATIVE_ONLY  # 97
    assert get_experiment_bucket("b") == ExperimentBucket.HYBRID  # 98
    assert get_experiment_bucket("abc") == ExperimentBucket.CONTENT_ONLY  # 294


def test_experiment_bucket_is_deterministic():
    buckets = {get_experiment_bucket("user-42") for _ in range(20)}
    assert len(buckets) == 1
