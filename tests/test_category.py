import pytest

from s3warp.category import Categories, Category, new_categories


def test_empty_categories_split_to_nothing():
    cats = new_categories()
    assert int(cats) == 0
    assert cats.split() == []
    assert str(cats) == ""


@pytest.mark.parametrize("category", list(Category))
def test_single_category_round_trip(category):
    assert new_categories(category).split() == [category]


def test_several_categories_round_trip_in_order():
    cats = new_categories(Category.CACHE_HIT, Category.CACHE_MISS)
    assert cats.split() == [Category.CACHE_MISS, Category.CACHE_HIT]


def test_string_joins_names():
    cats = new_categories(Category.CACHE_HIT, Category.CACHE_MISS)
    assert str(cats) == "CacheMiss,CacheHit"


def test_duplicates_are_idempotent():
    once = new_categories(Category.CACHE_HIT)
    twice = new_categories(Category.CACHE_HIT, Category.CACHE_HIT)
    assert once == twice


def test_unknown_bits_are_ignored_by_split():
    cats = Categories((1 << 7) | 1)
    assert cats.split() == [Category.CACHE_MISS]


def test_categories_behave_as_int():
    cats = new_categories(Category.CACHE_MISS, Category.CACHE_HIT)
    assert Categories(int(cats)).split() == cats.split()
    assert int(cats) & (1 << Category.CACHE_HIT)