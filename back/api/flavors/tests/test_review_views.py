import pytest

from flavors.models import Rating

pytestmark = pytest.mark.django_db


def test_post_review_requires_auth(api_client, make_dish):
    dish = make_dish()
    resp = api_client.post(f"/api/reviews/dish/{dish.pk}", {"rating": 4}, format="json")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


def test_post_review_creates_then_updates(client_for, user, make_dish):
    dish = make_dish()
    client = client_for(user)

    resp = client.post(f"/api/reviews/dish/{dish.pk}", {"rating": 4, "comment": "masarap"}, format="json")
    assert resp.status_code == 201
    body = resp.json()
    assert body["review"]["rating"] == 4
    assert body["review"]["helpful_votes"] == 0
    assert body["stats"] == {"avg_rating": 4.0, "total_ratings": 1}

    resp = client.post(f"/api/reviews/dish/{dish.pk}", {"rating": 2}, format="json")
    assert resp.status_code == 200
    assert resp.json()["stats"] == {"avg_rating": 2.0, "total_ratings": 1}
    assert Rating.objects.count() == 1


@pytest.mark.parametrize("score", [0, 6, 3.5, "x"])
def test_post_review_invalid_score(client_for, user, make_dish, score):
    dish = make_dish()
    resp = client_for(user).post(f"/api/reviews/dish/{dish.pk}", {"rating": score}, format="json")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_RATING"
    assert not Rating.objects.exists()


def test_post_review_missing_score(client_for, user, make_dish):
    resp = client_for(user).post(f"/api/reviews/dish/{make_dish().pk}", {"comment": "no score"}, format="json")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_RATING"
    assert not Rating.objects.exists()


def test_post_review_unknown_type_and_target(client_for, user, make_dish):
    client = client_for(user)
    assert client.post("/api/reviews/drink/1", {"rating": 4}, format="json").json()["error"]["code"] == (
        "INVALID_RATING"
    )
    resp = client.post("/api/reviews/restaurant/999", {"rating": 4}, format="json")
    assert resp.status_code == 404


def test_list_reviews_paginates(api_client, make_user, make_restaurant):
    restaurant = make_restaurant()
    for score in (1, 2, 3):
        Rating.objects.create(
            user=make_user(), rateable_type="restaurant", rateable_id=restaurant.pk, rating=score
        )

    first = api_client.get(f"/api/reviews/restaurant/{restaurant.pk}", {"limit": 2}).json()
    assert len(first["items"]) == 2
    assert first["next_cursor"]

    second = api_client.get(
        f"/api/reviews/restaurant/{restaurant.pk}", {"limit": 2, "cursor": first["next_cursor"]}
    ).json()
    assert len(second["items"]) == 1
    assert second["next_cursor"] is None
    seen = {item["id"] for item in first["items"] + second["items"]}
    assert len(seen) == 3


def test_list_reviews_unknown_target(api_client):
    assert api_client.get("/api/reviews/dish/12345").status_code == 404


def test_patch_review_author_only(client_for, user, make_user, make_dish):
    dish = make_dish()
    entry_id = client_for(user).post(f"/api/reviews/dish/{dish.pk}", {"rating": 3}, format="json").json()["review"]["id"]

    resp = client_for(make_user()).patch(f"/api/reviews/{entry_id}", {"rating": 5}, format="json")
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"

    resp = client_for(user).patch(f"/api/reviews/{entry_id}", {"rating": 5}, format="json")
    assert resp.status_code == 200
    dish.refresh_from_db()
    assert dish.avg_rating == 5.0


def test_delete_review(client_for, user, make_user, moderator_user, make_dish):
    dish = make_dish()
    entry_id = client_for(user).post(f"/api/reviews/dish/{dish.pk}", {"rating": 3}, format="json").json()["review"]["id"]

    assert client_for(make_user()).delete(f"/api/reviews/{entry_id}").status_code == 403
    assert client_for(moderator_user).delete(f"/api/reviews/{entry_id}").status_code == 204
    assert client_for(user).delete(f"/api/reviews/{entry_id}").status_code == 404

    dish.refresh_from_db()
    assert dish.total_ratings == 0
    assert dish.avg_rating is None


def test_vote_toggle(client_for, user, make_user, make_dish):
    dish = make_dish()
    entry_id = client_for(user).post(f"/api/reviews/dish/{dish.pk}", {"rating": 5}, format="json").json()["review"]["id"]
    voter = client_for(make_user())

    assert voter.post(f"/api/reviews/{entry_id}/vote", {"vote_type": "helpful"}, format="json").json()["voted"] is True
    items = voter.get(f"/api/reviews/dish/{dish.pk}").json()["items"]
    assert items[0]["helpful_votes"] == 1
    assert voter.post(f"/api/reviews/{entry_id}/vote", {"vote_type": "helpful"}, format="json").json()["voted"] is False

    resp = voter.post(f"/api/reviews/{entry_id}/vote", {"vote_type": "like"}, format="json")
    assert resp.status_code == 400


def test_respond_and_verify(client_for, user, owner_user, make_restaurant):
    restaurant = make_restaurant()
    entry_id = client_for(user).post(
        f"/api/reviews/restaurant/{restaurant.pk}", {"rating": 4}, format="json"
    ).json()["review"]["id"]

    assert client_for(user).post(
        f"/api/reviews/{entry_id}/respond", {"response_text": "thanks"}, format="json"
    ).status_code == 403

    owner = client_for(owner_user)
    resp = owner.post(f"/api/reviews/{entry_id}/respond", {"response_text": "Salamat!"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["review"]["response_text"] == "Salamat!"

    resp = owner.post(f"/api/reviews/{entry_id}/verify")
    assert resp.status_code == 200
    assert resp.json()["review"]["is_verified_visit"] is True
    assert resp.json()["review"]["weight"] > 1.0


def test_rating_stats_endpoint(api_client, make_user, make_dish, make_restaurant, add_rating):
    dish = make_dish()
    add_rating(make_user(), dish, 5)
    add_rating(make_user(), dish, 4)

    body = api_client.get(f"/api/dishes/{dish.pk}/rating-stats").json()
    assert body["average"] == 4.5
    assert body["total"] == 2
    assert body["distribution"] == {"5": 1, "4": 1, "3": 0, "2": 0, "1": 0}

    assert api_client.get(f"/api/restaurants/{make_restaurant().pk}/rating-stats").json()["total"] == 0
    assert api_client.get("/api/restaurants/999/rating-stats").status_code == 404
