from __future__ import annotations

import pytest

from src.recommender.domain.profile import Movie, Profile, average_rating_for


def test_mean_rating_over_all_ratings(make_profile):
    p = make_profile(1, 0, {1: 5, 2: 3, 3: 4})
    assert p.mean_rating == pytest.approx(4.0)


def test_empty_profile_has_zero_mean():
    p = Profile(user_id=7, internal_id=0)
    assert p.mean_rating == 0.0
    assert len(p) == 0
    assert p.rated_movies() == frozenset()


def test_rating_lookup(make_profile):
    p = make_profile(1, 0, {1: 5, 2: 3})
    assert p.has_rated(Movie(1))
    assert not p.has_rated(Movie(9))
    assert p.rating_for(Movie(2)) == 3.0
    with pytest.raises(KeyError):
        p.rating_for(Movie(9))


def test_common_movies_are_symmetric(make_profile):
    a = make_profile(1, 0, {1: 5, 2: 3, 3: 1})
    b = make_profile(2, 1, {2: 4, 3: 2, 4: 5})
    assert a.common_movies_with(b) == {Movie(2), Movie(3)}
    assert a.common_movies_with(b) == b.common_movies_with(a)


def test_ratings_are_read_only(make_profile):
    p = make_profile(1, 0, {1: 5})
    with pytest.raises(TypeError):
        p.ratings[Movie(2)] = 4.0
    with pytest.raises(AttributeError):
        p.user_id = 2


def test_source_mapping_changes_do_not_leak():
    source = {Movie(1): 5.0}
    p = Profile(user_id=1, internal_id=0, ratings=source)
    source[Movie(2)] = 1.0
    assert not p.has_rated(Movie(2))
    assert p.mean_rating == 5.0


def test_profile_equality_ignores_ratings(make_profile):
    assert make_profile(1, 0, {1: 5}) == make_profile(1, 0, {2: 1})
    assert make_profile(1, 0, {1: 5}) != make_profile(1, 1, {1: 5})
    assert len({make_profile(1, 0, {1: 5}), make_profile(1, 0, {})}) == 1


def test_movie_identity_ignores_title():
    assert Movie(1, "Toy Story") == Movie(1)
    assert hash(Movie(1, "Toy Story")) == hash(Movie(1))
    assert sorted([Movie(3), Movie(1, "b"), Movie(2, "a")]) == [Movie(1), Movie(2), Movie(3)]


def test_average_rating_for_subset(make_profile):
    p = make_profile(1, 0, {1: 5, 2: 3, 3: 1})
    assert average_rating_for(p, {Movie(1), Movie(2)}) == pytest.approx(4.0)
    assert average_rating_for(p, set()) == 0.0
    with pytest.raises(KeyError):
        average_rating_for(p, {Movie(8)})
