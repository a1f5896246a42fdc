"""
Exception types raised by the similarity engine and the layers built on it.

Numeric edge cases (zero variance, no co-rated movies, no contributing
neighbours) are never errors; they resolve to 0. Only structural problems
are raised.
"""


class SimilarityError(ValueError):
    """Base class for structural errors in the similarity engine."""


class InvalidProfileIndexError(SimilarityError):
    """
    Raised at construction when a profile's internal id is not an int,
    lies outside [0, n) or collides with another profile's id.
    """


class UnknownProfileError(SimilarityError, KeyError):
    """Raised when a query names a profile (or user id) outside the universe."""

    def __str__(self) -> str:
        # KeyError.__str__ repr()s the message; keep it readable.
        return str(self.args[0]) if self.args else ""


class RecommendationError(ValueError):
    """Raised when recommendation parameters are invalid."""
