"""
Pearson user-user similarity with low-overlap damping, and a mean-centred
rating predictor built on top of it.

The engine precomputes a dense similarity cache over a fixed profile set
at construction time. After that every query is a read over immutable data.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from ..logging_utils import configure_logger
from .errors import InvalidProfileIndexError, UnknownProfileError
from .profile import Movie, Profile
from .similarity_metric import SimilarityMetric

logger = configure_logger(__name__)


# Co-rated movie count below which correlations are shrunk towards zero.
DAMPING_FLOOR = 50

# Returned by predict_rating when no neighbour contributes.
NO_PREDICTION = 0.0


def damp(correlation: float, overlap: int, floor: int = DAMPING_FLOOR) -> float:
    """
    Linearly shrink `correlation` towards 0 when fewer than `floor`
    co-rated movies back it up.
    """
    if overlap < floor:
        return (overlap / floor) * correlation
    return correlation


@dataclass(frozen=True)
class Prediction:
    """
    Outcome of a rating prediction.

    rating:
        Predicted rating, or None when no neighbour contributed.
    support:
        Number of neighbours that rated the movie.
    weight:
        Sum of the contributing neighbours' similarities.
    """
    rating: Optional[float]
    support: int = 0
    weight: float = 0.0

    @property
    def has_evidence(self) -> bool:
        return self.rating is not None


class PearsonSimilarity(SimilarityMetric):
    """
    Pearson correlation similarity over a fixed profile set.

    Example
    -------
    >>> engine = PearsonSimilarity(profiles)
    >>> engine.similarity(a, b)
    >>> engine.predict_rating(a, movie, 0.0)

    Every profile must carry a dense internal id in [0, len(profiles));
    anything else is rejected with InvalidProfileIndexError before the
    cache is touched.
    """

    def __init__(self, profiles: Iterable[Profile], *, damping_floor: int = DAMPING_FLOOR) -> None:
        if isinstance(damping_floor, bool) or not isinstance(damping_floor, int) or damping_floor <= 0:
            raise ValueError(f"damping_floor must be a positive int, got {damping_floor!r}")

        self._damping_floor = damping_floor
        self._by_index: List[Profile] = self._index_profiles(list(profiles))
        self._profile_set = frozenset(self._by_index)

        n = len(self._by_index)
        self._sim_matrix = np.zeros((n, n), dtype=np.float64)
        self._compute_all_similarity()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @staticmethod
    def _index_profiles(profiles: List[Profile]) -> List[Profile]:
        # Profile equality ignores ratings, so distinct objects are told apart
        # by identity; the same object passed twice counts once.
        distinct = list({id(p): p for p in profiles}.values())
        n = len(distinct)
        slots: List[Optional[Profile]] = [None] * n

        for profile in distinct:
            idx = profile.internal_id
            if isinstance(idx, bool) or not isinstance(idx, (int, np.integer)):
                problem = f"internal_id must be an int, got {type(idx).__name__}"
            elif not 0 <= idx < n:
                problem = f"internal_id {idx} outside [0, {n})"
            elif slots[idx] is not None:
                problem = f"internal_id {idx} shared with user_id={slots[idx].user_id}"
            else:
                slots[int(idx)] = profile
                continue

            logger.error(
                "invalid_profile_index",
                extra={
                    "event": "similarity.invalid_index",
                    "user_id": profile.user_id,
                    "internal_id": idx,
                    "profiles": n,
                },
            )
            raise InvalidProfileIndexError(f"user_id={profile.user_id}: {problem}")

        return slots  # type: ignore[return-value]

    def _compute_all_similarity(self) -> None:
        # Both (a, b) and (b, a) are computed; each write lands in both cells.
        n = len(self._by_index)
        logger.info(
            "similarity_precompute_start",
            extra={
                "event": "similarity.precompute.start",
                "profiles": n,
                "damping_floor": self._damping_floor,
            },
        )
        started = time.perf_counter()

        for a in self._by_index:
            for b in self._by_index:
                self._set_similarity(a, b, self.compute_similarity(a, b))

        logger.info(
            "similarity_precompute_done",
            extra={
                "event": "similarity.precompute.done",
                "profiles": n,
                "duration_ms": round((time.perf_counter() - started) * 1000.0, 3),
            },
        )

    def _set_similarity(self, a: Profile, b: Profile, value: float) -> None:
        self._sim_matrix[a.internal_id, b.internal_id] = value
        self._sim_matrix[b.internal_id, a.internal_id] = value

    def _get_similarity(self, a: Profile, b: Profile) -> float:
        return float(self._sim_matrix[a.internal_id, b.internal_id])

    def _is_known(self, profile: object) -> bool:
        idx = getattr(profile, "internal_id", None)
        return (
            isinstance(idx, (int, np.integer))
            and not isinstance(idx, bool)
            and 0 <= idx < len(self._by_index)
            and self._by_index[idx] is profile
        )

    def _require_known(self, profile: Profile) -> None:
        if not self._is_known(profile):
            idx = profile.internal_id
            raise UnknownProfileError(
                f"Profile user_id={profile.user_id} (internal_id={idx}) is not in this engine's profile set"
            )

    # ------------------------------------------------------------------
    # Similarity
    # ------------------------------------------------------------------

    @property
    def profiles(self) -> frozenset:
        return self._profile_set

    @property
    def damping_floor(self) -> int:
        return self._damping_floor

    def compute_similarity(self, a: Profile, b: Profile) -> float:
        """
        Damped Pearson correlation between two profiles over their
        co-rated movies, centred on each profile's overall mean.

        Returns 0.0 when there is no overlap or no variance on either side.
        """
        common = sorted(a.common_movies_with(b))
        a_mean = a.mean_rating
        b_mean = b.mean_rating

        top = 0.0
        bottom_a = 0.0
        bottom_b = 0.0
        for movie in common:
            ad = a.rating_for(movie) - a_mean
            bd = b.rating_for(movie) - b_mean
            top += ad * bd
            bottom_a += ad * ad
            bottom_b += bd * bd

        bottom = math.sqrt(bottom_a * bottom_b)
        # also catches NaN from non-finite ratings
        if not bottom > 0.0:
            return 0.0
        return damp(top / bottom, len(common), self._damping_floor)

    def similarity(self, a: Profile, b: Profile) -> float:
        """Cached similarity between two profiles of the universe."""
        self._require_known(a)
        self._require_known(b)
        return self._get_similarity(a, b)

    def similarity_matrix(self) -> np.ndarray:
        """Read-only copy of the cache, rows/columns ordered by internal id."""
        out = self._sim_matrix.copy()
        out.flags.writeable = False
        return out

    # ------------------------------------------------------------------
    # Neighbourhood
    # ------------------------------------------------------------------

    def neighbours(self, profile: Profile, threshold: float) -> frozenset:
        """
        Profiles other than `profile` whose similarity to it is strictly
        greater than `threshold`. No ranking, no cap.
        """
        self._require_known(profile)
        row = self._sim_matrix[profile.internal_id]
        return frozenset(
            p
            for p in self._by_index
            if p.internal_id != profile.internal_id and row[p.internal_id] > threshold
        )

    def ranked_neighbours(
        self,
        profile: Profile,
        threshold: float,
        limit: Optional[int] = None,
    ) -> List[Tuple[Profile, float]]:
        """Neighbours as (profile, similarity), most similar first."""
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
            raise ValueError(f"limit must be a non-negative int or None, got {limit!r}")
        pairs = [(p, self._get_similarity(profile, p)) for p in self.neighbours(profile, threshold)]
        pairs.sort(key=lambda item: (-item[1], item[0].user_id))
        return pairs if limit is None else pairs[:limit]

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(self, profile: Profile, movie: Movie, threshold: float) -> Prediction:
        """
        Mean-centred, similarity-weighted prediction over the neighbours
        of `profile` that rated `movie`.

            pred = mean(u) + sum(sim(u, v) * (r(v, m) - mean(v))) / sum(sim(u, v))

        The result carries rating=None when the weight sum is not positive.
        """
        first = 0.0
        second = 0.0
        support = 0
        for p in self.neighbours(profile, threshold):
            if p.has_rated(movie):
                sim = self._get_similarity(profile, p)
                first += sim * (p.rating_for(movie) - p.mean_rating)
                second += sim
                support += 1

        if second > 0:
            return Prediction(rating=profile.mean_rating + first / second, support=support, weight=second)
        return Prediction(rating=None, support=support, weight=second)

    def predict_rating(self, profile: Profile, movie: Movie, threshold: float) -> float:
        """
        Predicted rating, or NO_PREDICTION (0.0) when no neighbour
        contributes. Use `predict` to tell the two apart.
        """
        prediction = self.predict(profile, movie, threshold)
        return prediction.rating if prediction.has_evidence else NO_PREDICTION

    # ------------------------------------------------------------------
    # Universe accessors
    # ------------------------------------------------------------------

    def profile_for(self, internal_id: int) -> Profile:
        if not 0 <= internal_id < len(self._by_index):
            raise UnknownProfileError(f"No profile with internal_id={internal_id}")
        return self._by_index[internal_id]

    def __len__(self) -> int:
        return len(self._by_index)

    def __contains__(self, profile: object) -> bool:
        return self._is_known(profile)
