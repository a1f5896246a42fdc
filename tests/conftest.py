from __future__ import annotations

from typing import Callable, Dict, List

import pandas as pd
import pytest

from src.recommender.domain.profile import Movie, Profile


def _make_profile(user_id: int, internal_id: int, ratings: Dict[int, float]) -> Profile:
    return Profile(
        user_id=user_id,
        internal_id=internal_id,
        ratings={Movie(mid): r for mid, r in ratings.items()},
    )


@pytest.fixture()
def make_profile() -> Callable[[int, int, Dict[int, float]], Profile]:
    """Build a Profile from {movieId: rating}."""
    return _make_profile


@pytest.fixture()
def abc_profiles() -> List[Profile]:
    """A {m1:5, m2:3}, B {m1:4, m2:2}, C {m1:1, m2:1}."""
    return [
        _make_profile(10, 0, {1: 5, 2: 3}),
        _make_profile(20, 1, {1: 4, 2: 2}),
        _make_profile(30, 2, {1: 1, 2: 1}),
    ]


@pytest.fixture()
def small_ratings() -> pd.DataFrame:
    """
    Five users, six movies.

    Users 1 and 2 agree, user 3 disagrees with both, user 4 agrees with
    user 2 on its two overlapping movies, user 5 has a single rating.
    """
    rows = [
        (1, 101, 5.0), (1, 102, 4.0), (1, 103, 1.0), (1, 104, 2.0),
        (2, 101, 4.0), (2, 102, 5.0), (2, 103, 2.0), (2, 104, 1.0), (2, 105, 5.0),
        (3, 101, 1.0), (3, 102, 2.0), (3, 103, 5.0), (3, 104, 4.0), (3, 105, 1.0),
        (4, 101, 3.0), (4, 105, 4.0), (4, 106, 2.0),
        (5, 106, 5.0),
    ]
    return pd.DataFrame(rows, columns=["userId", "movieId", "rating"])

