import pytest

from flavors.models import Favorite

pytestmark = pytest.mark.django_db


def test_add_list_and_remove(client_for, user, make_dish, make_restaurant):
    dish = make_dish("Inipit")
    restaurant = make_restaurant("Eurobake")
    client = client_for(user)

    resp = client.post("/api/user/favorites", {"item_type": "dish", "item_id": dish.pk}, format="json")
    assert resp.status_code == 201
    client.post("/api/user/favorites", {"item_type": "restaurant", "item_id": restaurant.pk}, format="json")

    items = client.get("/api/user/favorites").json()["items"]
    assert {(i["item_type"], i["item_name"]) for i in items} == {("dish", "Inipit"), ("restaurant", "Eurobake")}

    assert client.delete(f"/api/user/favorites/dish/{dish.pk}").status_code == 204
    assert list(Favorite.objects.values_list("item_type", flat=True)) == ["restaurant"]


def test_duplicate_favorite_conflicts(client_for, user, make_dish):
    dish = make_dish()
    client = client_for(user)
    client.post("/api/user/favorites", {"item_type": "dish", "item_id": dish.pk}, format="json")

    resp = client.post("/api/user/favorites", {"item_type": "dish", "item_id": dish.pk}, format="json")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONFLICT"


def test_favorite_missing_item(client_for, user):
    resp = client_for(user).post("/api/user/favorites", {"item_type": "dish", "item_id": 999}, format="json")
    assert resp.status_code == 404


def test_favorite_status(client_for, user, make_dish):
    liked = make_dish()
    other = make_dish()
    client = client_for(user)
    client.post("/api/user/favorites", {"item_type": "dish", "item_id": liked.pk}, format="json")

    resp = client.post(
        "/api/user/favorites/status",
        {"items": [{"item_type": "dish", "item_id": liked.pk}, {"item_type": "dish", "item_id": other.pk}]},
        format="json",
    )
    assert resp.json() == {f"dish-{liked.pk}": True, f"dish-{other.pk}": False}


def test_favorites_are_per_user(client_for, user, make_user, make_dish):
    dish = make_dish()
    client_for(user).post("/api/user/favorites", {"item_type": "dish", "item_id": dish.pk}, format="json")
    assert client_for(make_user()).get("/api/user/favorites").json()["items"] == []


def test_remove_invalid_type(client_for, user):
    assert client_for(user).delete("/api/user/favorites/drink/1").status_code == 400
