"""
Service layer for the Pearson similarity engine.

This module exposes the engine through external identifiers (userId,
movieId) and typed return models, for upper layers such as batch jobs or
an API.

Important:
    - This module does NOT perform any I/O (no DB, no CSV, no config loading).
    - This module does NOT own the similarity or prediction logic.

The engine is built elsewhere (see bootstrap.py) and injected.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..domain.errors import RecommendationError, UnknownProfileError
from ..domain.pearson import PearsonSimilarity
from ..domain.profile import Movie, Profile
from ..domain.recommend_for_user import RecommendParams, recommend_for_user


# ---------------------------------------------------------------------
# Typed Return Models
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class SimilarUser:
    user_id: int
    similarity: float
    common_rated: int


@dataclass(frozen=True)
class PredictedRating:
    """
    Predicted rating for a (user, movie) pair.

    rating is None when no neighbour above the threshold rated the movie;
    support counts the neighbours that did.
    """
    user_id: int
    movie_id: int
    rating: Optional[float]
    support: int

    @property
    def has_evidence(self) -> bool:
        return self.rating is not None


@dataclass(frozen=True)
class Recommendation:
    movie_id: int
    score: float
    support: int
    title: Optional[str] = None


# ---------------------------------------------------------------------
# Service Layer
# ---------------------------------------------------------------------


class RecommenderService:
    """
    Thin, stateless facade over a PearsonSimilarity engine.

    All methods are reads over the engine's immutable profile set, so one
    instance can serve concurrent callers.
    """

    def __init__(self, engine: PearsonSimilarity, default_threshold: float = 0.0) -> None:
        self._engine = engine
        self._default_threshold = float(default_threshold)
        self._by_user: Dict[int, Profile] = {p.user_id: p for p in engine.profiles}

        movies: Dict[int, Movie] = {}
        for p in engine.profiles:
            for movie in p.rated_movies():
                # keep a titled instance when one exists
                if movie.title is not None or movie.movie_id not in movies:
                    movies[movie.movie_id] = movie
        self._movies = movies

    @property
    def engine(self) -> PearsonSimilarity:
        return self._engine

    def _profile(self, user_id: int) -> Profile:
        try:
            return self._by_user[int(user_id)]
        except KeyError:
            raise UnknownProfileError(f"Unknown userId: {user_id}") from None

    def _movie(self, movie_id: int) -> Movie:
        return self._movies.get(int(movie_id), Movie(int(movie_id)))

    def _threshold(self, threshold: Optional[float]) -> float:
        return self._default_threshold if threshold is None else float(threshold)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def has_user(self, user_id: int) -> bool:
        return int(user_id) in self._by_user

    def get_similarity(self, user_a: int, user_b: int) -> float:
        return self._engine.similarity(self._profile(user_a), self._profile(user_b))

    def get_similar_users(
        self,
        user_id: int,
        threshold: Optional[float] = None,
        limit: int = 10,
    ) -> List[SimilarUser]:
        """Neighbours of `user_id` above the threshold, most similar first."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise RecommendationError("limit must be > 0")
        profile = self._profile(user_id)
        ranked = self._engine.ranked_neighbours(profile, self._threshold(threshold), limit=limit)
        return [
            SimilarUser(
                user_id=p.user_id,
                similarity=sim,
                common_rated=len(profile.common_movies_with(p)),
            )
            for p, sim in ranked
        ]

    def get_predicted_rating(
        self,
        user_id: int,
        movie_id: int,
        threshold: Optional[float] = None,
    ) -> PredictedRating:
        prediction = self._engine.predict(
            self._profile(user_id),
            self._movie(movie_id),
            self._threshold(threshold),
        )
        return PredictedRating(
            user_id=int(user_id),
            movie_id=int(movie_id),
            rating=prediction.rating,
            support=prediction.support,
        )

    def get_recommendations_for_user(
        self,
        user_id: int,
        limit: int = 10,
        threshold: Optional[float] = None,
        min_support: int = 1,
    ) -> List[Recommendation]:
        """
        Unrated movies ranked by predicted rating. Length is at most `limit`.
        """
        params = RecommendParams(
            top_k=limit,
            threshold=self._threshold(threshold),
            min_support=min_support,
        )
        domain_df = recommend_for_user(
            self._engine,
            self._profile(user_id),
            candidates=self._movies.values(),
            params=params,
        )

        return [
            Recommendation(
                movie_id=int(row.movieId),
                score=float(row.score),
                support=int(row.support),
                title=self._movie(row.movieId).title,
            )
            for row in domain_df.itertuples(index=False)
        ]
