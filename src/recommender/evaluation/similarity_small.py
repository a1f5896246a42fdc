from __future__ import annotations

import numpy as np
import pandas as pd

from ..domain.pearson import DAMPING_FLOOR


def build_user_user_pearson_from_ratings(
    ratings: pd.DataFrame,
    *,
    damping_floor: int = DAMPING_FLOOR,
    user_col: str = "userId",
    item_col: str = "movieId",
    rating_col: str = "rating",
) -> pd.DataFrame:
    """
    Build the damped Pearson user-user similarity matrix from ratings in a
    single vectorised pass.

    Same formula as PearsonSimilarity.compute_similarity: deviations are
    taken from each user's overall mean, summed over co-rated movies only,
    and the correlation is scaled by overlap / damping_floor when fewer
    than `damping_floor` movies are co-rated.

    Returns a square DataFrame:
      index = userIds
      columns = userIds
      values = damped Pearson similarity in [-1, 1]

    Duplicate (user, item) rows raise ValueError, as build_profiles does.
    """
    if damping_floor <= 0:
        raise ValueError("damping_floor must be > 0")

    # same rule as build_profiles: one rating per (user, item)
    duplicated = ratings.duplicated(subset=[user_col, item_col])
    if duplicated.any():
        raise ValueError(f"ratings contain {int(duplicated.sum())} duplicate ({user_col}, {item_col}) pairs")

    # pivot to user x item, NaN where unrated
    pivot = ratings.pivot(
        index=user_col,
        columns=item_col,
        values=rating_col,
    ).astype(float)

    R = pivot.to_numpy()
    rated = ~np.isnan(R)
    M = rated.astype(float)

    means = np.nanmean(R, axis=1)
    D = np.where(rated, R - means[:, None], 0.0)
    D2 = D * D

    # D is zero off the rated cells, so products only accumulate over co-rated movies.
    numerator = D @ D.T
    bottom_a = D2 @ M.T
    bottom = np.sqrt(bottom_a * bottom_a.T)
    overlap = M @ M.T

    with np.errstate(divide="ignore", invalid="ignore"):
        sim = np.where(bottom > 0.0, numerator / bottom, 0.0)

    damping = np.where(overlap < damping_floor, overlap / float(damping_floor), 1.0)
    sim = sim * damping

    users = pivot.index.astype(int)
    return pd.DataFrame(sim, index=users, columns=users)
