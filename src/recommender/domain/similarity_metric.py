from __future__ import annotations

from abc import ABC, abstractmethod

from .profile import Movie, Profile


class SimilarityMetric(ABC):
    """
    Interface for profile-to-profile similarity metrics that can also
    predict ratings from a neighbourhood of similar profiles.
    """

    @property
    @abstractmethod
    def profiles(self) -> frozenset:
        """The profile set the metric operates on."""

    @abstractmethod
    def compute_similarity(self, a: Profile, b: Profile) -> float:
        """Similarity between two profiles, computed from their ratings."""

    @abstractmethod
    def predict_rating(self, profile: Profile, movie: Movie, threshold: float) -> float:
        """Predicted rating `profile` would give `movie`."""
