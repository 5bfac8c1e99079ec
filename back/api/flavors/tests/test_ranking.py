import random

import pytest

from flavors.models import Dish, Restaurant
from flavors.ranking import effective_rating, order_by_rank, rank_top


def _dish(pk, name, **kwargs):
    return Dish(pk=pk, name=name, **kwargs)


def test_featured_beats_higher_rating():
    d1 = _dish(1, "Ensaymada", featured=True, avg_rating=4.0)
    d2 = _dish(2, "Chicharon", featured=False, avg_rating=4.9)

    assert rank_top([d2, d1]) == [d1, d2]


def test_effective_rating_falls_back_to_legacy():
    assert effective_rating(_dish(1, "a", avg_rating=None, rating=3.5)) == 3.5
    assert effective_rating(_dish(2, "b", avg_rating=0.0, rating=3.5)) == 3.5
    assert effective_rating(_dish(3, "c", avg_rating=4.2, rating=3.5)) == 4.2
    assert effective_rating(_dish(4, "d")) == 0.0


def test_full_key_order():
    entities = [
        _dish(1, "popular", popularity=50),
        _dish(2, "many ratings", avg_rating=4.0, total_ratings=20),
        _dish(3, "few ratings", avg_rating=4.0, total_ratings=2),
        _dish(4, "signature", is_signature=True),
        _dish(5, "panel 2", panel_rank=2),
        _dish(6, "panel 1", panel_rank=1),
        _dish(7, "featured 2", featured=True, featured_rank=2),
        _dish(8, "featured 1", featured=True, featured_rank=1),
        _dish(9, "featured unranked", featured=True),
        _dish(10, "legacy", rating=4.5),
    ]

    ranked = rank_top(entities)

    assert [d.pk for d in ranked] == [8, 7, 9, 6, 5, 4, 10, 2, 3, 1]


def test_deterministic_under_input_order():
    entities = [_dish(i, f"dish {i % 3}", avg_rating=float(i % 2) + 3, total_ratings=i % 4) for i in range(1, 30)]
    expected = rank_top(entities)
    for seed in range(5):
        shuffled = entities[:]
        random.Random(seed).shuffle(shuffled)
        assert rank_top(shuffled) == expected


def test_renaming_tied_entities_only_reorders_ties():
    leader = _dish(1, "Zeta", avg_rating=4.8)
    tied_a = _dish(2, "Alpha", avg_rating=4.0, total_ratings=3)
    tied_b = _dish(3, "Beta", avg_rating=4.0, total_ratings=3)
    trailer = _dish(4, "Aardvark", avg_rating=2.0)

    assert rank_top([trailer, tied_b, tied_a, leader]) == [leader, tied_a, tied_b, trailer]

    tied_a.name = "Gamma"
    assert rank_top([trailer, tied_b, tied_a, leader]) == [leader, tied_b, tied_a, trailer]


def test_same_name_tie_broken_by_id():
    a = _dish(5, "Pastillas")
    b = _dish(3, "Pastillas")
    assert rank_top([a, b]) == [b, a]


def test_limit():
    entities = [_dish(i, f"dish {i}") for i in range(1, 11)]
    assert len(rank_top(entities, limit=3)) == 3
    assert rank_top([], limit=3) == []


def test_default_limit_from_settings(settings):
    settings.DEFAULT_LIST_LIMIT = 4
    entities = [_dish(i, f"dish {i}") for i in range(1, 11)]
    assert len(rank_top(entities)) == 4


def test_uncurated_ignores_featured_and_panel():
    featured = _dish(1, "featured", featured=True, featured_rank=1, panel_rank=1, avg_rating=3.0)
    best = _dish(2, "best", avg_rating=4.9)

    assert rank_top([featured, best], curated=False) == [best, featured]


def test_restaurants_skip_dish_only_keys():
    r1 = Restaurant(pk=1, name="Kamayan", avg_rating=4.1)
    r2 = Restaurant(pk=2, name="Bistro", avg_rating=4.6)
    assert rank_top([r1, r2]) == [r2, r1]


@pytest.mark.django_db
def test_order_by_rank_matches_in_memory_order(make_dish):
    make_dish("Inipit", avg_rating=4.2, total_ratings=5)
    make_dish("Burong Isda", rating=4.2, total_ratings=5)
    make_dish("Pancit Malabon", avg_rating=4.2, total_ratings=5, popularity=3)
    make_dish("Kalamay", featured=True, featured_rank=1, avg_rating=3.1)
    make_dish("Tinapa", featured=True, avg_rating=4.9)
    make_dish("Chicharon", panel_rank=1)
    make_dish("Longganisa", is_signature=True, avg_rating=0.0, rating=2.0)
    make_dish("Atchara")

    from_db = list(order_by_rank(Dish.objects.all()))
    in_memory = rank_top(Dish.objects.all())

    assert [d.pk for d in from_db] == [d.pk for d in in_memory]


@pytest.mark.django_db
def test_order_by_rank_uncurated_matches_in_memory_order(make_restaurant):
    make_restaurant("Bale Dutung", featured=True, featured_rank=1, avg_rating=3.5)
    make_restaurant("Cafe Lolita", avg_rating=4.5, total_ratings=10)
    make_restaurant("Everybody's Cafe", avg_rating=4.5, total_ratings=12)
    make_restaurant("Razon's", rating=4.0)

    from_db = list(order_by_rank(Restaurant.objects.all(), curated=False))
    in_memory = rank_top(Restaurant.objects.all(), curated=False)

    assert [r.pk for r in from_db] == [r.pk for r in in_memory]
    assert from_db[0].name == "Everybody's Cafe"


@pytest.mark.django_db
def test_order_by_rank_breaks_name_ties_by_code_point(make_dish):
    for name in ("ensaymada", "Ube Halaya", "buko pie", "Chicharon", "Éclair"):
        make_dish(name, avg_rating=4.0, total_ratings=2)

    from_db = [d.name for d in order_by_rank(Dish.objects.all())]

    assert from_db == [d.name for d in rank_top(Dish.objects.all())]
    assert from_db == ["Chicharon", "Ube Halaya", "buko pie", "ensaymada", "Éclair"]
