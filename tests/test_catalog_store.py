"""Tests for the in-memory catalog store: idempotent upserts, ranking and paging."""

import random

import pytest

from peanut_gallery.data.movie import Movie


def _movie(make_record, movie_id, score=7.0, popularity=50.0, release_date="2024-01-03"):
    return Movie.from_tmdb(
        make_record(movie_id, release_date=release_date, vote_average=score, popularity=popularity)
    )


def _read_all(store, bucket, dimension, page_size):
    movies, after_key, pages = [], None, 0
    while True:
        page = store.query_by_index(bucket, dimension, page_size, after_key)
        movies.extend(page.movies)
        pages += 1
        if page.last_key is None:
            return movies, pages
        after_key = page.last_key


def test_upserting_twice_equals_upserting_once(store, make_record):
    movie = _movie(make_record, "m1", score=8.5, popularity=120)

    store.upsert(movie)
    once = (store._items["m1"].copy(), store.query_by_index("2024-W01", "score", 10))
    store.upsert(movie)
    twice = (store._items["m1"].copy(), store.query_by_index("2024-W01", "score", 10))

    assert once == twice
    assert len(store) == 1


def test_overwrite_moves_the_index_entry(store, make_record):
    store.upsert(_movie(make_record, "m1", score=5.0))
    store.upsert(_movie(make_record, "m2", score=6.0))
    store.upsert(_movie(make_record, "m1", score=9.0))

    page = store.query_by_index("2024-W01", "score", 10)
    assert [m.id for m in page.movies] == ["m1", "m2"]
    assert store.get("m1").score == 9.0


def test_score_index_is_descending_with_id_tie_break(store, make_record):
    for movie_id, score in [("c", 7.0), ("a", 7.0), ("z", 9.5), ("b", 7.0), ("y", 1.0)]:
        store.upsert(_movie(make_record, movie_id, score=score))

    page = store.query_by_index("2024-W01", "score", 10)
    assert [m.id for m in page.movies] == ["z", "a", "b", "c", "y"]
    assert page.last_key is None


def test_popularity_index_is_independent_of_score(store, make_record):
    store.upsert(_movie(make_record, "m1", score=9.0, popularity=10))
    store.upsert(_movie(make_record, "m2", score=2.0, popularity=500))

    assert [m.id for m in store.query_by_index("2024-W01", "score", 10).movies] == ["m1", "m2"]
    assert [m.id for m in store.query_by_index("2024-W01", "popularity", 10).movies] == ["m2", "m1"]


def test_buckets_are_isolated(store, make_record):
    store.upsert(_movie(make_record, "w1", release_date="2024-01-03"))
    store.upsert(_movie(make_record, "w2", release_date="2024-01-10"))

    assert [m.id for m in store.query_by_index("2024-W01", "score", 10).movies] == ["w1"]
    assert [m.id for m in store.query_by_index("2024-W02", "score", 10).movies] == ["w2"]
    assert store.query_by_index("2024-W03", "score", 10).movies == []


@pytest.mark.parametrize("page_size", [1, 3, 7, 25])
def test_paging_reproduces_the_full_index_exactly_once(store, make_record, page_size):
    rng = random.Random(7)
    for i in range(25):
        # few distinct scores so ties are common
        store.upsert(_movie(make_record, f"m{i}", score=rng.choice([5.0, 6.5, 8.0]), popularity=rng.uniform(0, 300)))

    for dimension in ("score", "popularity"):
        paged, pages = _read_all(store, "2024-W01", dimension, page_size)
        full = store.query_by_index("2024-W01", dimension, 100).movies

        assert [m.id for m in paged] == [m.id for m in full]
        assert len({m.id for m in paged}) == 25
        assert pages == -(-25 // page_size)


def test_exact_multiple_of_page_size_has_no_trailing_cursor(store, make_record):
    for i in range(4):
        store.upsert(_movie(make_record, f"m{i}", score=float(i)))

    first = store.query_by_index("2024-W01", "score", 2)
    second = store.query_by_index("2024-W01", "score", 2, first.last_key)

    assert [m.id for m in first.movies] == ["m3", "m2"]
    assert [m.id for m in second.movies] == ["m1", "m0"]
    assert second.last_key is None
