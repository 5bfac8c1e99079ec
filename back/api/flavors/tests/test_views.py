import pytest

from flavors.models import DishCategory, DishRestaurant

pytestmark = pytest.mark.django_db


def test_ping(api_client):
    assert api_client.get("/api/ping/").json() == {"pong": True}


def test_health(api_client):
    resp = api_client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_municipalities_list(api_client, municipality, other_municipality):
    resp = api_client.get("/api/municipalities")
    assert resp.status_code == 200
    assert [m["slug"] for m in resp.json()["items"]] == ["baliuag", "malolos"]


def test_dishes_ranked_with_featured_first(api_client, make_dish):
    make_dish("Chicharon", avg_rating=4.9, total_ratings=10)
    make_dish("Ensaymada", featured=True, avg_rating=4.0, total_ratings=1)

    resp = api_client.get("/api/dishes")

    assert resp.status_code == 200
    assert [d["name"] for d in resp.json()["items"]] == ["Ensaymada", "Chicharon"]


def test_dishes_filters(api_client, make_dish, municipality, other_municipality):
    food = DishCategory.objects.get(code="food")
    make_dish("Pancit Malabon", category=food, is_signature=True)
    make_dish("Inipit")
    make_dish("Chicharon", municipality=other_municipality, category=food)

    resp = api_client.get("/api/dishes", {"municipality_id": municipality.pk, "category": "food"})
    assert [d["name"] for d in resp.json()["items"]] == ["Pancit Malabon"]

    resp = api_client.get("/api/dishes", {"q": "inip"})
    assert [d["name"] for d in resp.json()["items"]] == ["Inipit"]

    resp = api_client.get("/api/dishes", {"signature": "true"})
    assert [d["name"] for d in resp.json()["items"]] == ["Pancit Malabon"]


@pytest.mark.parametrize("limit", ["abc", "0", "100000"])
def test_dishes_invalid_limit(api_client, limit):
    resp = api_client.get("/api/dishes", {"limit": limit})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["trace_id"].startswith("req_")


def test_dishes_limit(api_client, make_dish):
    for _ in range(5):
        make_dish()
    assert len(api_client.get("/api/dishes", {"limit": 2}).json()["items"]) == 2


def test_dish_detail_by_slug_and_id(api_client, make_dish, make_restaurant):
    dish = make_dish("Inipit", slug="inipit", flavor_profile=["sweet", "buttery"])
    restaurant = make_restaurant("Eurobake")
    DishRestaurant.objects.create(dish=dish, restaurant=restaurant)

    by_slug = api_client.get("/api/dishes/inipit").json()
    assert by_slug["id"] == dish.pk
    assert by_slug["flavor_profile"] == ["sweet", "buttery"]
    assert [r["name"] for r in by_slug["restaurants"]] == ["Eurobake"]

    assert api_client.get(f"/api/dishes/{dish.pk}").json()["slug"] == "inipit"


def test_dish_detail_not_found(api_client):
    resp = api_client.get("/api/dishes/no-such-dish")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


def test_restaurants_filters(api_client, make_dish, make_restaurant):
    dish = make_dish()
    stall = make_restaurant("Aling Nena", kind="stall")
    make_restaurant("Bale Dutung", featured=True)
    DishRestaurant.objects.create(dish=dish, restaurant=stall)

    assert [r["name"] for r in api_client.get("/api/restaurants", {"dish_id": dish.pk}).json()["items"]] == [
        "Aling Nena"
    ]
    assert [r["name"] for r in api_client.get("/api/restaurants", {"kind": "stall"}).json()["items"]] == [
        "Aling Nena"
    ]
    assert [r["name"] for r in api_client.get("/api/restaurants", {"featured": "1"}).json()["items"]] == [
        "Bale Dutung"
    ]


def test_restaurant_detail_lists_dishes(api_client, make_dish, make_restaurant):
    restaurant = make_restaurant("Eurobake", slug="eurobake", cuisine_types=["bakery"])
    DishRestaurant.objects.create(dish=make_dish("Ensaymada"), restaurant=restaurant)

    body = api_client.get("/api/restaurants/eurobake").json()
    assert body["cuisine_types"] == ["bakery"]
    assert [d["name"] for d in body["dishes"]] == ["Ensaymada"]


def test_dishes_summary(api_client, municipality, make_dish):
    make_dish("Unrated", featured=True)
    signature = make_dish("Inipit", is_signature=True, avg_rating=4.0, total_ratings=3)
    best = make_dish("Kalamay", avg_rating=4.8, total_ratings=2)
    make_dish("Tinapa", avg_rating=3.0, total_ratings=1)
    make_dish("Burong Isda", avg_rating=2.0, total_ratings=1)

    body = api_client.get(f"/api/municipalities/{municipality.pk}/dishes-summary").json()

    assert body["recommended_dish"]["id"] == signature.pk
    assert body["top_rated_dishes"][0]["id"] == best.pk
    assert [d["name"] for d in body["top_rated_dishes"]] == ["Kalamay", "Inipit", "Tinapa"]


def test_dishes_summary_prefers_configured_recommendation(api_client, municipality, make_dish):
    chosen = make_dish("Pastillas")
    make_dish("Kalamay", avg_rating=4.8, total_ratings=2)
    municipality.recommended_dish = chosen
    municipality.save()

    body = api_client.get(f"/api/municipalities/{municipality.pk}/dishes-summary").json()
    assert body["recommended_dish"]["id"] == chosen.pk


def test_dishes_summary_unknown_municipality(api_client, db):
    assert api_client.get("/api/municipalities/999/dishes-summary").status_code == 404


def test_top_restaurants(api_client, municipality, make_restaurant):
    for i in range(5):
        make_restaurant(f"Place {i}", avg_rating=float(i), total_ratings=1)
    featured = make_restaurant("Featured", featured=True, featured_rank=1)

    items = api_client.get(f"/api/municipalities/{municipality.pk}/top-restaurants").json()["items"]

    assert len(items) == 3
    assert items[0]["id"] == featured.pk
    assert [r["name"] for r in items[1:]] == ["Place 4", "Place 3"]


def test_top_rated_excludes_unrated_and_ignores_curation(api_client, make_dish, make_restaurant):
    make_dish("Unrated", featured=True, featured_rank=1)
    make_dish("Good", featured=True, avg_rating=3.5, total_ratings=2)
    make_dish("Best", avg_rating=4.5, total_ratings=2)
    make_restaurant("Rated", avg_rating=4.0, total_ratings=1)
    make_restaurant("Legacy only", rating=5.0)

    dishes = api_client.get("/api/top-rated/dishes").json()["items"]
    assert [d["name"] for d in dishes] == ["Best", "Good"]

    restaurants = api_client.get("/api/top-rated/restaurants").json()["items"]
    assert [r["name"] for r in restaurants] == ["Rated"]
