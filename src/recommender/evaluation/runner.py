from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error

from ..data.profiles import REQUIRED_RATING_COLUMNS, build_profiles, validate_schema
from ..domain.pearson import DAMPING_FLOOR, PearsonSimilarity
from ..domain.profile import Movie
from ..logging_utils import configure_logger

logger = configure_logger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    """
    Leave-one-out accuracy of the Pearson predictor.

    mae / rmse are computed over held-out ratings that received a
    prediction with evidence; they are NaN when none did. coverage is the
    share of held-out ratings that received one.
    """
    mae: float
    rmse: float
    coverage: float
    users_evaluated: int
    predictions: pd.DataFrame


def _build_per_user_holdout(ratings: pd.DataFrame, seed: int) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Leave-one-out per user:
    - test: one randomly chosen rating per user (deterministic for a seed)
    - train: every other rating
    Users with <2 ratings are excluded from the test split but stay in train.
    """
    counts = ratings.groupby("userId")["movieId"].transform("size")
    eligible = ratings[counts >= 2]

    test = eligible.groupby("userId", group_keys=False).sample(n=1, random_state=seed)
    train = ratings.drop(index=test.index)
    return train, test


def evaluate_predictions(
    ratings_df: pd.DataFrame,
    *,
    threshold: float = 0.0,
    damping_floor: int = DAMPING_FLOOR,
    seed: int = 42,
) -> EvaluationResult:
    """
    Hold out one rating per user, build the engine on the rest and predict
    the held-out ratings.

    Raises ValueError if no user has at least two ratings.
    """
    validate_schema(ratings_df, REQUIRED_RATING_COLUMNS, "ratings")
    ratings = ratings_df[list(REQUIRED_RATING_COLUMNS)].dropna().reset_index(drop=True)
    ratings["userId"] = ratings["userId"].astype(int)
    ratings["movieId"] = ratings["movieId"].astype(int)

    train, test = _build_per_user_holdout(ratings, seed)
    if test.empty:
        raise ValueError("No user has enough ratings (>= 2) for leave-one-out evaluation.")

    profiles = build_profiles(train)
    engine = PearsonSimilarity(profiles, damping_floor=damping_floor)
    by_user = {p.user_id: p for p in profiles}

    rows = []
    for user_id, movie_id, actual in test[["userId", "movieId", "rating"]].itertuples(index=False):
        prediction = engine.predict(by_user[int(user_id)], Movie(int(movie_id)), threshold)
        rows.append(
            {
                "userId": int(user_id),
                "movieId": int(movie_id),
                "actual": float(actual),
                "predicted": prediction.rating if prediction.has_evidence else np.nan,
                "support": prediction.support,
            }
        )

    predictions = pd.DataFrame(rows)
    scored = predictions.dropna(subset=["predicted"])

    if scored.empty:
        mae = rmse = float("nan")
    else:
        mae = float(mean_absolute_error(scored["actual"], scored["predicted"]))
        rmse = float(np.sqrt(mean_squared_error(scored["actual"], scored["predicted"])))

    coverage = len(scored) / len(predictions)

    logger.info(
        "evaluation_completed",
        extra={
            "event": "evaluation.completed",
            "users_evaluated": len(predictions),
            "threshold": threshold,
            "mae": mae,
            "rmse": rmse,
            "coverage": coverage,
        },
    )

    return EvaluationResult(
        mae=mae,
        rmse=rmse,
        coverage=coverage,
        users_evaluated=len(predictions),
        predictions=predictions,
    )
