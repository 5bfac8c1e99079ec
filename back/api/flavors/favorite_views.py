from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from flavors.exceptions import Conflict, NotFound, error_response
from flavors.models import RATEABLE_MODELS, Favorite
from flavors.serializers import FavoriteCreateSerializer, FavoriteStatusSerializer


def _validation_error(serializer) -> Response:
    return error_response(code="VALIDATION_ERROR", message="invalid request body", details=serializer.errors)


def _item_names(favorites: list[Favorite]) -> dict:
    """(item_type, item_id) → (name, image_url)。削除済みの対象は含まない。"""
    found = {}
    for item_type, model in RATEABLE_MODELS.items():
        ids = [fav.item_id for fav in favorites if fav.item_type == item_type]
        if not ids:
            continue
        for pk, name, image_url in model.objects.filter(pk__in=ids).values_list("id", "name", "image_url"):
            found[(item_type, pk)] = (name, image_url)
    return found


class FavoritesView(APIView):
    """/user/favorites
    - GET: 自分のお気に入り（新しい順）
    - POST: 追加。既に登録済みなら 409
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        favorites = list(Favorite.objects.filter(user=request.user).order_by("-created_at", "-id"))
        names = _item_names(favorites)
        items = []
        for fav in favorites:
            name, image_url = names.get((fav.item_type, fav.item_id), (None, None))
            items.append(
                {
                    "id": fav.id,
                    "item_type": fav.item_type,
                    "item_id": fav.item_id,
                    "item_name": name,
                    "item_image_url": image_url,
                    "metadata": fav.metadata or {},
                    "created_at": fav.created_at,
                }
            )
        return Response({"items": items})

    def post(self, request):
        serializer = FavoriteCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer)
        data = serializer.validated_data
        model = RATEABLE_MODELS[data["item_type"]]
        if not model.objects.filter(pk=data["item_id"]).exists():
            raise NotFound(message=f"{data['item_type']} not found", details={"id": data["item_id"]})
        try:
            with transaction.atomic():
                fav = Favorite.objects.create(
                    user=request.user,
                    item_type=data["item_type"],
                    item_id=data["item_id"],
                    metadata=data.get("metadata") or {},
                )
        except IntegrityError:
            raise Conflict(message="item already favorited", details={"item_type": data["item_type"], "item_id": data["item_id"]})
        return Response({"id": fav.id, "item_type": fav.item_type, "item_id": fav.item_id}, status=status.HTTP_201_CREATED)


class FavoriteDeleteView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, item_type: str, item_id: int):
        if item_type not in RATEABLE_MODELS:
            return error_response(
                code="VALIDATION_ERROR",
                message="item type must be 'dish' or 'restaurant'",
                details={"item_type": item_type},
            )
        Favorite.objects.filter(user=request.user, item_type=item_type, item_id=item_id).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class FavoriteStatusView(APIView):
    """複数アイテムのお気に入り状態。
    入力: { items: [{ item_type, item_id }] }
    返却: { "dish-1": true, "restaurant-3": false, ... }
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = FavoriteStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer)
        items = serializer.validated_data["items"]
        saved = set(
            Favorite.objects.filter(
                user=request.user, item_id__in=[item["item_id"] for item in items]
            ).values_list("item_type", "item_id")
        )
        return Response(
            {f"{item['item_type']}-{item['item_id']}": (item["item_type"], item["item_id"]) in saved for item in items}
        )
