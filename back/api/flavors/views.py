import logging

from django.conf import settings
from django.db import DatabaseError, connection
from django.db.models import Q
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from flavors.exceptions import NotFound, error_response
from flavors.models import Dish, Municipality, Restaurant
from flavors.ranking import order_by_rank
from flavors.serializers import DishSerializer, MunicipalitySerializer, RestaurantSerializer

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "True", "yes"}


def parse_limit(request, default: int, maximum: int | None = None) -> int:
    """?limit= を検証する（1〜maximum、未指定は default）。"""
    maximum = maximum or settings.DEFAULT_LIST_LIMIT
    value = request.query_params.get("limit")
    if value is None or value == "":
        return min(default, maximum)
    try:
        limit = int(value)
    except ValueError:
        raise ValidationError({"limit": "limit must be an integer"})
    if limit <= 0 or limit > maximum:
        raise ValidationError({"limit": f"limit must be between 1 and {maximum}"})
    return limit


def parse_int_param(request, name: str) -> int | None:
    value = request.query_params.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError({name: f"{name} must be an integer"})


def get_municipality(municipality_id) -> Municipality:
    try:
        return Municipality.objects.get(pk=municipality_id)
    except Municipality.DoesNotExist:
        raise NotFound(message="municipality not found", details={"municipality_id": municipality_id})


def get_by_slug_or_id(model, key: str):
    """slug で探し、数字なら id でも探す。"""
    queryset = model.objects.select_related("municipality")
    lookup = Q(slug=key)
    if key.isdigit():
        lookup |= Q(pk=int(key))
    entity = queryset.filter(lookup).first()
    if entity is None:
        raise NotFound(message=f"{model._meta.model_name} not found", details={"key": key})
    return entity


class PingView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({"pong": True})


class HealthView(APIView):
    """DB疎通確認。失敗時は 503 STORAGE_FAILURE。"""
    permission_classes = [AllowAny]

    def get(self, request):
        try:
            with connection.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        except DatabaseError as exc:
            logger.error("health check failed: %s", exc)
            return error_response(
                code="STORAGE_FAILURE", message="database unavailable", status_code=503
            )
        return Response({"ok": True, "database": connection.vendor})


class MunicipalitiesListView(APIView):
    """市町村一覧。
    返却: { items: [...] }
    """
    permission_classes = [AllowAny]

    def get(self, request):
        items = MunicipalitySerializer(Municipality.objects.order_by("name"), many=True).data
        return Response({"items": items})


class MunicipalityDishesSummaryView(APIView):
    """市町村の料理サマリ（地図のポップアップ用）。
    - recommended_dish: 市町村に設定された推奨料理。無ければ評価済み料理のランキング先頭
    - top_rated_dishes: 評価のみで並べた上位（既定3件）
    """
    permission_classes = [AllowAny]

    def get(self, request, municipality_id: int):
        municipality = get_municipality(municipality_id)
        dishes = Dish.objects.in_municipality(municipality.pk).select_related("municipality", "category")

        recommended = municipality.recommended_dish
        if recommended is None:
            recommended = order_by_rank(dishes.rated()).first()
        top_rated = order_by_rank(dishes.rated(), curated=False)[: settings.WIDGET_LIMIT]

        return Response(
            {
                "municipality": MunicipalitySerializer(municipality).data,
                "recommended_dish": DishSerializer(recommended).data if recommended else None,
                "top_rated_dishes": DishSerializer(top_rated, many=True).data,
            }
        )


class MunicipalityTopRestaurantsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, municipality_id: int):
        municipality = get_municipality(municipality_id)
        limit = parse_limit(request, settings.WIDGET_LIMIT)
        restaurants = order_by_rank(
            Restaurant.objects.in_municipality(municipality.pk).select_related("municipality")
        )[:limit]
        return Response({"items": RestaurantSerializer(restaurants, many=True).data})


class DishListView(APIView):
    """料理一覧（ランキング順）。
    任意: municipality_id, category(code), q, signature, limit
    """
    permission_classes = [AllowAny]

    def get(self, request):
        qp = request.query_params
        limit = parse_limit(request, settings.DEFAULT_LIST_LIMIT)
        municipality_id = parse_int_param(request, "municipality_id")

        qs = Dish.objects.select_related("municipality", "category")
        if municipality_id is not None:
            qs = qs.in_municipality(municipality_id)
        if qp.get("category"):
            qs = qs.filter(category__code=qp["category"])
        if qp.get("q"):
            qs = qs.filter(Q(name__icontains=qp["q"]) | Q(description__icontains=qp["q"]))
        if qp.get("signature") in TRUTHY:
            qs = qs.filter(is_signature=True)

        dishes = order_by_rank(qs)[:limit]
        return Response({"items": DishSerializer(dishes, many=True).data})


class DishDetailView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, key: str):
        dish = get_by_slug_or_id(Dish, key)
        data = DishSerializer(dish).data
        restaurants = order_by_rank(dish.restaurants.select_related("municipality"))
        data["restaurants"] = RestaurantSerializer(restaurants, many=True).data
        return Response(data)


class RestaurantListView(APIView):
    """店舗一覧（ランキング順）。
    任意: municipality_id, dish_id, kind, q, featured, limit
    """
    permission_classes = [AllowAny]

    def get(self, request):
        qp = request.query_params
        limit = parse_limit(request, settings.DEFAULT_LIST_LIMIT)
        municipality_id = parse_int_param(request, "municipality_id")
        dish_id = parse_int_param(request, "dish_id")

        qs = Restaurant.objects.select_related("municipality")
        if municipality_id is not None:
            qs = qs.in_municipality(municipality_id)
        if dish_id is not None:
            qs = qs.filter(dishes__id=dish_id).distinct()
        if qp.get("kind"):
            qs = qs.filter(kind=qp["kind"])
        if qp.get("q"):
            qs = qs.filter(Q(name__icontains=qp["q"]) | Q(address__icontains=qp["q"]))
        if qp.get("featured") in TRUTHY:
            qs = qs.filter(featured=True)

        restaurants = order_by_rank(qs)[:limit]
        return Response({"items": RestaurantSerializer(restaurants, many=True).data})


class RestaurantDetailView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, key: str):
        restaurant = get_by_slug_or_id(Restaurant, key)
        data = RestaurantSerializer(restaurant).data
        dishes = order_by_rank(restaurant.dishes.select_related("municipality", "category"))
        data["dishes"] = DishSerializer(dishes, many=True).data
        return Response(data)


class TopRatedView(APIView):
    """評価のみで並べたトップ（キュレーションは無視）。評価の無いものは含めない。
    任意: municipality_id, limit(既定5)
    """
    permission_classes = [AllowAny]
    model = Dish
    serializer_class = DishSerializer

    def get(self, request):
        limit = parse_limit(request, settings.TOP_RATED_LIMIT)
        municipality_id = parse_int_param(request, "municipality_id")
        qs = self.model.objects.rated().select_related("municipality")
        if municipality_id is not None:
            qs = qs.in_municipality(municipality_id)
        entities = order_by_rank(qs, curated=False)[:limit]
        return Response({"items": self.serializer_class(entities, many=True).data})
