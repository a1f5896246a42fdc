from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional


# Rating scale used by the ratings data this engine is built for.
MIN_RATING = 1.0
MAX_RATING = 5.0


@dataclass(frozen=True, order=True)
class Movie:
    """
    Opaque item identity used as a key into a profile's ratings.

    Only `movie_id` takes part in equality, hashing and ordering; the
    title is display metadata.
    """
    movie_id: int
    title: Optional[str] = field(default=None, compare=False)


@dataclass(frozen=True)
class Profile:
    """
    One user's rating history plus its derived mean rating.

    This class belongs to the pure *Domain / Code Layer*: it is immutable
    once built and carries no I/O.

    Attributes
    ----------
    user_id:
        External user identifier (e.g. `userId` in ratings data).
    internal_id:
        Dense, zero-based index of this profile within the profile set it
        belongs to. The similarity engine uses it to address its cache.
    ratings:
        Read-only mapping Movie -> rating.
    mean_rating:
        Mean of all ratings in `ratings` (0.0 for an empty history).
    """
    user_id: int
    internal_id: int
    ratings: Mapping[Movie, float] = field(default_factory=dict, compare=False, repr=False)
    mean_rating: float = field(init=False, compare=False)

    def __post_init__(self) -> None:
        frozen = MappingProxyType({movie: float(r) for movie, r in self.ratings.items()})
        object.__setattr__(self, "ratings", frozen)

        mean = sum(frozen.values()) / len(frozen) if frozen else 0.0
        object.__setattr__(self, "mean_rating", mean)

    def rating_for(self, movie: Movie) -> float:
        """Rating given to `movie`; raises KeyError if it was not rated."""
        return self.ratings[movie]

    def has_rated(self, movie: Movie) -> bool:
        return movie in self.ratings

    def rated_movies(self) -> frozenset:
        return frozenset(self.ratings)

    def common_movies_with(self, other: "Profile") -> frozenset:
        """Movies rated by both profiles (symmetric)."""
        return frozenset(self.ratings.keys() & other.ratings.keys())

    def __len__(self) -> int:
        return len(self.ratings)


def average_rating_for(profile: Profile, movies: Iterable[Movie]) -> float:
    """
    Mean rating `profile` gave over `movies`.

    Returns 0.0 for an empty set. Every movie must have been rated by the
    profile.
    """
    values = [profile.rating_for(movie) for movie in movies]
    if not values:
        return 0.0
    return sum(values) / len(values)
