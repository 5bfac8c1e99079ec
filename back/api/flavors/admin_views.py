"""管理画面API（料理・店舗のCRUD、紐付け、集計）。

キュレーション項目（featured / featured_rank / is_signature / panel_rank）は
直接保存せず flavors.curation を通す（市町村内の順位の重複を追い出しで解消するため）。
"""
import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from flavors.curation import CURATION_FIELDS, apply_curation, move_to_municipality
from flavors.exceptions import Conflict, NotFound, error_response, translate_storage_errors
from flavors.models import Dish, DishRestaurant, Favorite, Municipality, Rating, Restaurant
from flavors.permissions import IsCurator, requester_from_user
from flavors.ranking import order_by_rank
from flavors.serializers import (
    DishLinkSerializer,
    DishRestaurantLinkSerializer,
    DishSerializer,
    DishWriteSerializer,
    RestaurantSerializer,
    RestaurantWriteSerializer,
)
from flavors.views import parse_int_param, parse_limit

logger = logging.getLogger(__name__)


def _validation_error(serializer) -> Response:
    return error_response(code="VALIDATION_ERROR", message="invalid request body", details=serializer.errors)


def _split_curation(data: dict) -> tuple[dict, dict]:
    fields = {k: v for k, v in data.items() if k not in CURATION_FIELDS}
    changes = {k: v for k, v in data.items() if k in CURATION_FIELDS}
    return fields, changes


def _get_entity(model, pk):
    try:
        return model.objects.get(pk=pk)
    except model.DoesNotExist:
        raise NotFound(message=f"{model._meta.model_name} not found", details={"id": pk})


@translate_storage_errors
def delete_entity(model, pk) -> None:
    """料理・店舗を削除する。対象を指す評価・お気に入り（汎用参照）も合わせて消す。"""
    kind = model.rateable_type
    with transaction.atomic():
        entity = _get_entity(model, pk)
        ratings, _ = Rating.objects.filter(rateable_type=kind, rateable_id=pk).delete()
        Favorite.objects.filter(item_type=kind, item_id=pk).delete()
        entity.delete()
    logger.info("%s %s deleted with %s ratings", kind, pk, ratings)


class AdminCatalogListView(APIView):
    """GET: 一覧（municipality_id, q, limit） / POST: 作成"""
    permission_classes = [IsCurator]
    model = Dish
    serializer_class = DishSerializer
    write_serializer_class = DishWriteSerializer

    def get(self, request):
        limit = parse_limit(request, settings.DEFAULT_LIST_LIMIT)
        municipality_id = parse_int_param(request, "municipality_id")
        qs = self.model.objects.select_related("municipality")
        if municipality_id is not None:
            qs = qs.in_municipality(municipality_id)
        q = request.query_params.get("q")
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(slug__icontains=q))
        return Response({"items": self.serializer_class(order_by_rank(qs)[:limit], many=True).data})

    def post(self, request):
        serializer = self.write_serializer_class(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer)
        fields, changes = _split_curation(serializer.validated_data)

        try:
            with transaction.atomic():
                entity = self.model.objects.create(**fields)
                if changes:
                    entity = apply_curation(
                        self.model.rateable_type, entity.pk, changes, requester_from_user(request.user)
                    )
        except IntegrityError:
            raise Conflict(message="slug already exists", details={"slug": fields.get("slug")})

        logger.info("%s %s created by user %s", self.model.rateable_type, entity.pk, request.user.pk)
        return Response(self.serializer_class(entity).data, status=status.HTTP_201_CREATED)


class AdminCatalogDetailView(APIView):
    """GET / PATCH（キュレーション項目を含む） / DELETE"""
    permission_classes = [IsCurator]
    model = Dish
    serializer_class = DishSerializer
    write_serializer_class = DishWriteSerializer

    def get(self, request, pk: int):
        return Response(self.serializer_class(_get_entity(self.model, pk)).data)

    def patch(self, request, pk: int):
        entity = _get_entity(self.model, pk)
        serializer = self.write_serializer_class(entity, data=request.data, partial=True)
        if not serializer.is_valid():
            return _validation_error(serializer)
        fields, changes = _split_curation(serializer.validated_data)
        municipality = fields.pop("municipality", None)
        requester = requester_from_user(request.user)

        try:
            with transaction.atomic():
                # 送られた列だけ書く（集計列・順位列は aggregation / curation が持つ）
                if fields:
                    for name, value in fields.items():
                        setattr(entity, name, value)
                    entity.save(update_fields=[*fields.keys(), "updated_at"])
                if municipality is not None:
                    move_to_municipality(self.model.rateable_type, pk, municipality, requester)
                if changes:
                    apply_curation(self.model.rateable_type, pk, changes, requester)
        except IntegrityError:
            raise Conflict(message="slug already exists", details={"slug": fields.get("slug")})

        entity.refresh_from_db()
        return Response(self.serializer_class(entity).data)

    def delete(self, request, pk: int):
        delete_entity(self.model, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminDishListView(AdminCatalogListView):
    model = Dish
    serializer_class = DishSerializer
    write_serializer_class = DishWriteSerializer


class AdminDishDetailView(AdminCatalogDetailView):
    model = Dish
    serializer_class = DishSerializer
    write_serializer_class = DishWriteSerializer


class AdminRestaurantListView(AdminCatalogListView):
    model = Restaurant
    serializer_class = RestaurantSerializer
    write_serializer_class = RestaurantWriteSerializer


class AdminRestaurantDetailView(AdminCatalogDetailView):
    model = Restaurant
    serializer_class = RestaurantSerializer
    write_serializer_class = RestaurantWriteSerializer


class AdminDishRestaurantsView(APIView):
    permission_classes = [IsCurator]

    def get(self, request, pk: int):
        _get_entity(Dish, pk)
        links = DishRestaurant.objects.filter(dish_id=pk).select_related(
            "dish__municipality", "restaurant__municipality"
        ).order_by("restaurant__name")
        return Response({"items": DishLinkSerializer(links, many=True).data})


class AdminRestaurantDishesView(APIView):
    permission_classes = [IsCurator]

    def get(self, request, pk: int):
        _get_entity(Restaurant, pk)
        links = DishRestaurant.objects.filter(restaurant_id=pk).select_related(
            "dish__municipality", "restaurant__municipality"
        ).order_by("dish__name")
        return Response({"items": DishLinkSerializer(links, many=True).data})


class AdminDishRestaurantLinkView(APIView):
    """料理と店舗の紐付け。
    - POST: 作成（既存なら price_note / availability を更新）
    - DELETE: 解除（body または query の dish_id / restaurant_id）
    """
    permission_classes = [IsCurator]

    def post(self, request):
        serializer = DishRestaurantLinkSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer)
        data = serializer.validated_data
        _get_entity(Dish, data["dish_id"])
        _get_entity(Restaurant, data["restaurant_id"])
        link, created = DishRestaurant.objects.update_or_create(
            dish_id=data["dish_id"],
            restaurant_id=data["restaurant_id"],
            defaults={"price_note": data.get("price_note") or None, "availability": data["availability"]},
        )
        return Response(
            {"id": link.id, "dish_id": link.dish_id, "restaurant_id": link.restaurant_id, "created": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def delete(self, request):
        params = request.query_params.dict()
        if hasattr(request.data, "dict"):
            params.update(request.data.dict())
        elif isinstance(request.data, dict):
            params.update(request.data)
        serializer = DishRestaurantLinkSerializer(data=params)
        if not serializer.is_valid():
            return _validation_error(serializer)
        data = serializer.validated_data
        DishRestaurant.objects.filter(dish_id=data["dish_id"], restaurant_id=data["restaurant_id"]).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminAnalyticsSummaryView(APIView):
    """件数・市町村別件数・パネル順の料理・featured 店舗。"""
    permission_classes = [IsCurator]

    def get(self, request):
        per_municipality = Municipality.objects.annotate(
            dish_count=Count("dishes", distinct=True),
            restaurant_count=Count("restaurants", distinct=True),
        ).order_by("slug")
        top_dishes = Dish.objects.filter(is_signature=True).order_by(
            F("panel_rank").asc(nulls_last=True), "municipality_id", "name"
        )[:5]
        top_restaurants = Restaurant.objects.filter(featured=True).order_by(
            F("featured_rank").asc(nulls_last=True), "municipality_id", "name"
        )[:5]
        return Response(
            {
                "counts": {
                    "dishes": Dish.objects.count(),
                    "restaurants": Restaurant.objects.count(),
                    "ratings": Rating.objects.count(),
                },
                "per_municipality": [
                    {
                        "id": m.id,
                        "name": m.name,
                        "slug": m.slug,
                        "dishes": m.dish_count,
                        "restaurants": m.restaurant_count,
                    }
                    for m in per_municipality
                ],
                "top_dishes": [
                    {"id": d.id, "name": d.name, "municipality_id": d.municipality_id, "panel_rank": d.panel_rank}
                    for d in top_dishes
                ],
                "top_restaurants": [
                    {"id": r.id, "name": r.name, "municipality_id": r.municipality_id, "featured_rank": r.featured_rank}
                    for r in top_restaurants
                ],
            }
        )
