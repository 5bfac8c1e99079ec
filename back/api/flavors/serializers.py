import json

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.utils.text import slugify
from rest_framework import serializers

from flavors.models import (
    RATEABLE_CHOICES,
    Dish,
    DishCategory,
    DishRestaurant,
    Municipality,
    Rating,
    Restaurant,
    ReviewVote,
)


User = get_user_model()

SLUG_MAX_LENGTH = 180


def make_slug(value: str) -> str:
    return slugify(value)[:SLUG_MAX_LENGTH]


class JsonListField(serializers.Field):
    """JSON配列カラムの入力。
    - list / JSON文字列 / カンマ区切り文字列のいずれも受け付け、list[str] に正規化する
    """

    default_error_messages = {"invalid": "must be a list, a JSON array string or a comma-separated string"}

    def to_internal_value(self, data):
        if data is None or data == "":
            return []
        if isinstance(data, str):
            text = data.strip()
            if text.startswith("["):
                try:
                    data = json.loads(text)
                except ValueError:
                    self.fail("invalid")
            else:
                data = text.split(",")
        if not isinstance(data, (list, tuple)):
            self.fail("invalid")
        return [str(item).strip() for item in data if str(item).strip()]

    def to_representation(self, value):
        if isinstance(value, str):
            return self.to_internal_value(value)
        return list(value or [])


class MunicipalitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Municipality
        fields = (
            "id", "name", "slug", "description", "province", "lat", "lng",
            "image_url", "osm_relation_id", "recommended_dish_id",
        )


class DishSerializer(serializers.ModelSerializer):
    category = serializers.CharField(source="category.code", default=None, read_only=True)
    municipality_name = serializers.CharField(source="municipality.name", read_only=True)
    flavor_profile = JsonListField(read_only=True)
    ingredients = JsonListField(read_only=True)

    class Meta:
        model = Dish
        fields = (
            "id", "municipality_id", "municipality_name", "category", "name", "slug",
            "description", "image_url", "flavor_profile", "ingredients", "history",
            "rating", "avg_rating", "total_ratings", "popularity",
            "featured", "featured_rank", "is_signature", "panel_rank",
            "created_at", "updated_at",
        )


class RestaurantSerializer(serializers.ModelSerializer):
    municipality_name = serializers.CharField(source="municipality.name", read_only=True)
    cuisine_types = JsonListField(read_only=True)

    class Meta:
        model = Restaurant
        fields = (
            "id", "municipality_id", "municipality_name", "name", "slug", "kind",
            "description", "address", "phone", "email", "website", "facebook",
            "instagram", "opening_hours", "price_range", "cuisine_types", "lat", "lng",
            "image_url", "rating", "avg_rating", "total_ratings", "popularity",
            "featured", "featured_rank", "created_at", "updated_at",
        )


class DishLinkSerializer(serializers.ModelSerializer):
    """店舗→料理 / 料理→店舗 の紐付け一覧用。"""
    dish = DishSerializer(read_only=True)
    restaurant = RestaurantSerializer(read_only=True)

    class Meta:
        model = DishRestaurant
        fields = ("id", "dish", "restaurant", "price_note", "availability")


class RatingSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()
    helpful_votes = serializers.IntegerField(read_only=True, default=0)
    report_votes = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Rating
        fields = (
            "id", "user", "rateable_type", "rateable_id", "rating", "weight", "comment",
            "is_verified_visit", "response_text", "response_date",
            "helpful_votes", "report_votes", "created_at", "updated_at",
        )

    def get_user(self, obj: Rating) -> dict:
        profile = getattr(obj.user, "profile", None)
        display_name = profile.display_name if profile and profile.display_name else obj.user.username
        return {"id": obj.user_id, "display_name": display_name}


class RatingWriteSerializer(serializers.Serializer):
    # 欠落・範囲外のチェックは flavors.aggregation.validate_score（INVALID_RATING）に任せる
    rating = serializers.JSONField(required=False, allow_null=True)
    comment = serializers.CharField(max_length=2000, required=False, allow_blank=True, allow_null=True)


class VoteSerializer(serializers.Serializer):
    vote_type = serializers.ChoiceField(choices=ReviewVote.VOTE_CHOICES)


class RespondSerializer(serializers.Serializer):
    response_text = serializers.CharField(max_length=2000)


class FavoriteCreateSerializer(serializers.Serializer):
    item_type = serializers.ChoiceField(choices=RATEABLE_CHOICES)
    item_id = serializers.IntegerField(min_value=1)
    metadata = serializers.DictField(required=False)


class FavoriteStatusSerializer(serializers.Serializer):
    items = FavoriteCreateSerializer(many=True)


class SignupSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    display_name = serializers.CharField(max_length=150, required=False, allow_blank=True)

    def validate_email(self, value: str) -> str:
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("this email is already registered")
        return value

    def validate_password(self, value: str) -> str:
        validate_password(value)
        return value


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class ProfileUpdateSerializer(serializers.Serializer):
    display_name = serializers.CharField(max_length=150, required=False, allow_blank=True)


class CatalogWriteMixin(serializers.Serializer):
    """料理・店舗の書き込み共通部分。
    - キュレーション項目は保存を flavors.curation に任せるため、検証のみ行う
    - is_signature / panel_rank は店舗でも受け取り、料理専用であることは apply_curation が判定する
    """
    featured = serializers.BooleanField(required=False)
    featured_rank = serializers.IntegerField(required=False, allow_null=True)
    is_signature = serializers.BooleanField(required=False)
    panel_rank = serializers.IntegerField(required=False, allow_null=True)

    def validate_rating(self, value):
        if value is not None and not (0 <= value <= 5):
            raise serializers.ValidationError("rating must be between 0 and 5")
        return value

    def validate(self, attrs):
        # slug は公開URLなので作成時だけ name から作る。更新で空なら現状維持
        if self.instance is None:
            if not attrs.get("slug") and attrs.get("name"):
                attrs["slug"] = make_slug(attrs["name"])
        elif "slug" in attrs and not attrs["slug"]:
            del attrs["slug"]
        return attrs


class DishWriteSerializer(CatalogWriteMixin, serializers.ModelSerializer):
    municipality_id = serializers.PrimaryKeyRelatedField(
        source="municipality", queryset=Municipality.objects.all()
    )
    category = serializers.SlugRelatedField(
        slug_field="code", queryset=DishCategory.objects.all(), required=False, allow_null=True
    )
    slug = serializers.SlugField(max_length=SLUG_MAX_LENGTH, required=False, allow_blank=True)
    flavor_profile = JsonListField(required=False)
    ingredients = JsonListField(required=False)

    class Meta:
        model = Dish
        fields = (
            "municipality_id", "category", "name", "slug", "description", "image_url",
            "flavor_profile", "ingredients", "history", "rating", "popularity",
            "featured", "featured_rank", "is_signature", "panel_rank",
        )
        # 順位の重複は flavors.curation が追い出しで解消する
        validators = []


class RestaurantWriteSerializer(CatalogWriteMixin, serializers.ModelSerializer):
    municipality_id = serializers.PrimaryKeyRelatedField(
        source="municipality", queryset=Municipality.objects.all()
    )
    slug = serializers.SlugField(max_length=SLUG_MAX_LENGTH, required=False, allow_blank=True)
    cuisine_types = JsonListField(required=False)

    class Meta:
        model = Restaurant
        fields = (
            "municipality_id", "name", "slug", "kind", "description", "address", "phone",
            "email", "website", "facebook", "instagram", "opening_hours", "price_range",
            "cuisine_types", "lat", "lng", "image_url", "rating", "popularity",
            "featured", "featured_rank", "is_signature", "panel_rank",
        )
        validators = []


class DishRestaurantLinkSerializer(serializers.Serializer):
    dish_id = serializers.IntegerField(min_value=1)
    restaurant_id = serializers.IntegerField(min_value=1)
    price_note = serializers.CharField(max_length=120, required=False, allow_blank=True, allow_null=True)
    availability = serializers.ChoiceField(
        choices=DishRestaurant.AVAILABILITY_CHOICES, required=False, default="regular"
    )
