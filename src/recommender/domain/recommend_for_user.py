from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import pandas as pd

from .errors import RecommendationError, UnknownProfileError
from .pearson import PearsonSimilarity
from .profile import Movie, Profile


_RESULT_COLUMNS = ["movieId", "score", "support"]


@dataclass(frozen=True)
class RecommendParams:
    """
    Hyperparameters for Pearson-based recommendations.

    This dataclass is part of the pure *Domain / Code Layer*:
    it only carries configuration values and has no side effects.
    """
    top_k: int = 10
    threshold: float = 0.0      # neighbours must be strictly more similar than this
    min_support: int = 1        # require at least N contributing neighbours


def _validate_params(params: RecommendParams) -> None:
    if params.top_k <= 0:
        raise RecommendationError("top_k must be > 0")
    if params.min_support < 1:
        raise RecommendationError("min_support must be >= 1")


def _default_candidates(engine: PearsonSimilarity) -> set:
    candidates = set()
    for p in engine.profiles:
        candidates.update(p.rated_movies())
    return candidates


def recommend_for_user(
    engine: PearsonSimilarity,
    profile: Profile,
    candidates: Optional[Iterable[Movie]] = None,
    params: Optional[RecommendParams] = None,
) -> pd.DataFrame:
    """
    Rank movies `profile` has not rated by their Pearson-predicted rating.

    Pure in-memory computation: no I/O, no logging.

    Parameters
    ----------
    engine:
        Similarity engine built over a profile set containing `profile`.
    profile:
        Target profile.
    candidates:
        Movies to score. Defaults to every movie rated by anyone in the
        engine's profile set.
    params:
        Recommendation hyperparameters. If None, defaults are used.

    Returns
    -------
    pd.DataFrame
        Columns movieId, score, support; sorted by score desc, movieId asc,
        at most `params.top_k` rows. Movies without predictive evidence are
        left out rather than scored 0.
    """
    params = params or RecommendParams()
    _validate_params(params)

    if profile not in engine:
        raise UnknownProfileError(f"user_id={profile.user_id} is not in the engine's profile set")

    pool = _default_candidates(engine) if candidates is None else set(candidates)

    rows = []
    for movie in pool:
        if profile.has_rated(movie):
            continue
        prediction = engine.predict(profile, movie, params.threshold)
        if not prediction.has_evidence or prediction.support < params.min_support:
            continue
        rows.append(
            {
                "movieId": int(movie.movie_id),
                "score": float(prediction.rating),
                "support": int(prediction.support),
            }
        )

    if not rows:
        return pd.DataFrame(columns=_RESULT_COLUMNS)

    return (
        pd.DataFrame(rows, columns=_RESULT_COLUMNS)
        .sort_values(["score", "movieId"], ascending=[False, True])
        .head(params.top_k)
        .reset_index(drop=True)
    )
