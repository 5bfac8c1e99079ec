import itertools

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from flavors.models import Dish, Municipality, Rating, Restaurant, UserProfile
from flavors.permissions import requester_from_user

User = get_user_model()

_seq = itertools.count(1)


@pytest.fixture
def municipality(db):
    return Municipality.objects.create(name="Malolos", slug="malolos", lat=14.8433, lng=120.8114)


@pytest.fixture
def other_municipality(db):
    return Municipality.objects.create(name="Baliuag", slug="baliuag", lat=14.9547, lng=120.8969)


@pytest.fixture
def make_dish(municipality):
    def _make(name=None, **kwargs):
        n = next(_seq)
        name = name or f"Dish {n}"
        kwargs.setdefault("municipality", municipality)
        kwargs.setdefault("slug", f"dish-{n}")
        return Dish.objects.create(name=name, **kwargs)

    return _make


@pytest.fixture
def make_restaurant(municipality):
    def _make(name=None, **kwargs):
        n = next(_seq)
        name = name or f"Restaurant {n}"
        kwargs.setdefault("municipality", municipality)
        kwargs.setdefault("slug", f"restaurant-{n}")
        kwargs.setdefault("address", "Paseo del Congreso, Malolos")
        kwargs.setdefault("lat", 14.84)
        kwargs.setdefault("lng", 120.81)
        return Restaurant.objects.create(name=name, **kwargs)

    return _make


@pytest.fixture
def make_user(db):
    def _make(role=UserProfile.ROLE_USER, **kwargs):
        n = next(_seq)
        email = kwargs.pop("email", f"user{n}@example.com")
        user = User.objects.create_user(username=email, email=email, password="tasty-Longganisa-42", **kwargs)
        UserProfile.objects.create(user=user, display_name=f"user{n}", role=role)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin_user(make_user):
    return make_user(UserProfile.ROLE_ADMIN)


@pytest.fixture
def owner_user(make_user):
    return make_user(UserProfile.ROLE_OWNER)


@pytest.fixture
def moderator_user(make_user):
    return make_user(UserProfile.ROLE_MODERATOR)


@pytest.fixture
def as_requester():
    return requester_from_user


@pytest.fixture
def add_rating(db):
    """集計を通さずに評価行を直接作る（重み指定のテスト用）。"""
    def _add(user, target, score, weight=1.0, **kwargs):
        return Rating.objects.create(
            user=user,
            rateable_type=target.rateable_type,
            rateable_id=target.pk,
            rating=score,
            weight=weight,
            **kwargs,
        )

    return _add


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client
