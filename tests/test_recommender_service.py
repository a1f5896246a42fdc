from __future__ import annotations

import pandas as pd
import pytest

from src.recommender.data.profiles import build_profiles
from src.recommender.domain.errors import RecommendationError, UnknownProfileError
from src.recommender.domain.pearson import PearsonSimilarity
from src.recommender.domain.profile import Movie
from src.recommender.domain.recommend_for_user import RecommendParams, recommend_for_user
from src.recommender.service.recommender_service import (
    PredictedRating,
    Recommendation,
    RecommenderService,
    SimilarUser,
)


@pytest.fixture()
def engine(small_ratings):
    movies = pd.DataFrame({"movieId": [102, 103], "title": ["Jumanji", "Heat"]})
    return PearsonSimilarity(build_profiles(small_ratings, movies))


@pytest.fixture()
def service(engine):
    return RecommenderService(engine)


# ---------------------------------------------------------------------------
# Domain: recommend_for_user
# ---------------------------------------------------------------------------

def test_recommend_for_user_ranks_unrated_movies(engine):
    user4 = next(p for p in engine.profiles if p.user_id == 4)
    df = recommend_for_user(engine, user4)

    # user 4's only neighbour is user 2 (deviations +1.6, -1.4, -2.4 on 102..104)
    assert df["movieId"].tolist() == [102, 103, 104]
    assert df["score"].tolist() == pytest.approx([4.6, 1.6, 0.6])
    assert df["support"].tolist() == [1, 1, 1]


def test_recommend_for_user_respects_top_k_and_candidates(engine):
    user4 = next(p for p in engine.profiles if p.user_id == 4)

    df = recommend_for_user(engine, user4, params=RecommendParams(top_k=1))
    assert df["movieId"].tolist() == [102]

    df = recommend_for_user(engine, user4, candidates=[Movie(103), Movie(101)])
    # 101 is already rated
    assert df["movieId"].tolist() == [103]


def test_recommend_for_user_skips_movies_without_evidence(engine):
    user1 = next(p for p in engine.profiles if p.user_id == 1)
    df = recommend_for_user(engine, user1)
    assert df["movieId"].tolist() == [105]


def test_recommend_for_user_min_support(engine):
    user1 = next(p for p in engine.profiles if p.user_id == 1)
    df = recommend_for_user(engine, user1, params=RecommendParams(min_support=2))
    assert df.empty
    assert list(df.columns) == ["movieId", "score", "support"]


@pytest.mark.parametrize(
    "params",
    [RecommendParams(top_k=0), RecommendParams(min_support=0)],
)
def test_recommend_for_user_invalid_params(engine, params):
    user1 = next(p for p in engine.profiles if p.user_id == 1)
    with pytest.raises(RecommendationError):
        recommend_for_user(engine, user1, params=params)


def test_recommend_for_user_unknown_profile(engine, make_profile):
    with pytest.raises(UnknownProfileError):
        recommend_for_user(engine, make_profile(77, 0, {101: 3}))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

def test_get_similarity_by_user_id(service, engine):
    users = {p.user_id: p for p in engine.profiles}
    assert service.get_similarity(1, 2) == engine.similarity(users[1], users[2])
    assert service.get_similarity(2, 1) == service.get_similarity(1, 2)


def test_unknown_user_id_raises(service):
    assert not service.has_user(404)
    with pytest.raises(UnknownProfileError, match="404"):
        service.get_similar_users(404)
    with pytest.raises(KeyError):
        service.get_predicted_rating(404, 101)


def test_get_similar_users(service):
    similar = service.get_similar_users(2)
    assert [s.user_id for s in similar] == [1, 4]
    assert all(isinstance(s, SimilarUser) for s in similar)
    assert similar[0].common_rated == 4
    assert similar[1].common_rated == 2

    assert service.get_similar_users(2, limit=1)[0].user_id == 1
    assert [s.user_id for s in service.get_similar_users(2, threshold=0.05)] == [1]


@pytest.mark.parametrize("limit", [0, -1, -10])
def test_get_similar_users_rejects_non_positive_limit(service, limit):
    with pytest.raises(RecommendationError, match="limit"):
        service.get_similar_users(2, limit=limit)


def test_get_predicted_rating(service):
    pred = service.get_predicted_rating(1, 105)
    assert isinstance(pred, PredictedRating)
    assert pred.has_evidence
    assert pred.rating == pytest.approx(4.6)
    assert pred.support == 1

    missing = service.get_predicted_rating(1, 106)
    assert not missing.has_evidence
    assert missing.rating is None

    # a movie nobody rated is not an error
    assert not service.get_predicted_rating(1, 999).has_evidence


def test_default_threshold_is_used(engine):
    strict = RecommenderService(engine, default_threshold=0.5)
    assert strict.get_similar_users(2) == []
    assert not strict.get_predicted_rating(1, 105).has_evidence
    # per-call threshold overrides the default
    assert strict.get_predicted_rating(1, 105, threshold=0.0).has_evidence


def test_get_recommendations_for_user(service):
    recs = service.get_recommendations_for_user(4, limit=2)
    assert all(isinstance(r, Recommendation) for r in recs)
    assert [r.movie_id for r in recs] == [102, 103]
    assert [r.title for r in recs] == ["Jumanji", "Heat"]
    assert recs[0].score == pytest.approx(4.6)
