"""
Turn long-form ratings data into the immutable Profile set the similarity
engine operates on.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from ..domain.profile import MAX_RATING, MIN_RATING, Movie, Profile
from ..logging_utils import configure_logger

logger = configure_logger(__name__)


REQUIRED_RATING_COLUMNS = ("userId", "movieId", "rating")


# ---------------------------------------------------------------------------
# Schema validation
# ---------------------------------------------------------------------------


def validate_schema(
    df: pd.DataFrame,
    required_columns: Sequence[str],
    source_name: str,
) -> None:
    missing = [c for c in required_columns if c not in df.columns]

    if missing:
        logger.error(
            "schema_validation_failed",
            extra={
                "event": "schema_validation_failed",
                "source": source_name,
                "missing_columns": missing,
            },
        )
        raise ValueError(f"Missing required columns in '{source_name}': {missing}")

    logger.info(
        "schema_validation_passed",
        extra={
            "event": "schema_validation_passed",
            "source": source_name,
            "columns": list(df.columns),
        },
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_ratings_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Read a ratings CSV (userId, movieId, rating[, ...]) and validate its columns."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ratings file not found: {path}")

    df = pd.read_csv(path)
    validate_schema(df, REQUIRED_RATING_COLUMNS, path.name)

    logger.info(
        "ratings_loaded",
        extra={"event": "ratings_loaded", "path": str(path), "rows": df.shape[0], "columns": df.shape[1]},
    )
    return df


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


def _titles_by_movie(movies_df: Optional[pd.DataFrame]) -> Dict[int, str]:
    if movies_df is None or "movieId" not in movies_df.columns or "title" not in movies_df.columns:
        return {}
    titles = movies_df[["movieId", "title"]].dropna().drop_duplicates("movieId")
    return dict(zip(titles["movieId"].astype(int), titles["title"].astype(str)))


def _clean_ratings(ratings_df: pd.DataFrame) -> pd.DataFrame:
    df = ratings_df[list(REQUIRED_RATING_COLUMNS)].dropna().copy()
    df["userId"] = df["userId"].astype(int)
    df["movieId"] = df["movieId"].astype(int)
    df["rating"] = df["rating"].astype(float)

    duplicated = df.duplicated(subset=["userId", "movieId"])
    if duplicated.any():
        raise ValueError(f"ratings contain {int(duplicated.sum())} duplicate (userId, movieId) pairs")

    out_of_range = ~df["rating"].between(MIN_RATING, MAX_RATING)
    if out_of_range.any():
        raise ValueError(
            f"ratings contain {int(out_of_range.sum())} values outside [{MIN_RATING}, {MAX_RATING}]"
        )
    return df


def build_profiles(
    ratings_df: pd.DataFrame,
    movies_df: Optional[pd.DataFrame] = None,
) -> List[Profile]:
    """
    Build one Profile per user from long-form ratings.

    Internal ids are assigned densely, 0..n-1, in ascending userId order,
    which is the precondition PearsonSimilarity relies on. Rows with missing
    values are dropped; duplicate (userId, movieId) pairs and ratings outside
    [MIN_RATING, MAX_RATING] raise ValueError.
    """
    validate_schema(ratings_df, REQUIRED_RATING_COLUMNS, "ratings")
    df = _clean_ratings(ratings_df)
    titles = _titles_by_movie(movies_df)

    movies = {mid: Movie(movie_id=mid, title=titles.get(mid)) for mid in df["movieId"].unique().tolist()}

    profiles: List[Profile] = []
    for internal_id, (user_id, grp) in enumerate(df.groupby("userId", sort=True)):
        ratings = {
            movies[mid]: rating
            for mid, rating in zip(grp["movieId"].tolist(), grp["rating"].tolist())
        }
        profiles.append(Profile(user_id=int(user_id), internal_id=internal_id, ratings=ratings))

    logger.info(
        "profiles_built",
        extra={"event": "profiles_built", "profiles": len(profiles), "rows": len(df)},
    )
    return profiles
