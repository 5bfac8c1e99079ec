from django.conf import settings
from django.db import models
from django.db.models import Q


RATEABLE_DISH = "dish"
RATEABLE_RESTAURANT = "restaurant"
RATEABLE_CHOICES = (
    (RATEABLE_DISH, "Dish"),
    (RATEABLE_RESTAURANT, "Restaurant"),
)


class Municipality(models.Model):
    """市町村。料理・店舗の一覧とランキングのスコープになる。
    - osm_relation_id は地図側（OpenStreetMap）の relation ID
    """
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    description = models.TextField(blank=True, null=True)
    province = models.CharField(max_length=120, default="Bulacan")
    lat = models.FloatField(blank=True, null=True)
    lng = models.FloatField(blank=True, null=True)
    image_url = models.TextField(blank=True, null=True)
    osm_relation_id = models.BigIntegerField(blank=True, null=True, unique=True)
    recommended_dish = models.ForeignKey(
        "Dish", on_delete=models.SET_NULL, blank=True, null=True, related_name="+"
    )

    class Meta:
        db_table = "municipalities"
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class DishCategory(models.Model):
    """料理カテゴリ。
    - 例: food, delicacy, drink
    """
    code = models.CharField(max_length=50, unique=True)
    display_name = models.CharField(max_length=100)
    sort = models.IntegerField(default=100)

    class Meta:
        db_table = "dish_categories"

    def __str__(self) -> str:
        return f"{self.display_name}({self.code})"


class RateableQuerySet(models.QuerySet):
    def in_municipality(self, municipality_id):
        return self.filter(municipality_id=municipality_id)

    def rated(self):
        """集計済みの評価を持つものだけ（トップ評価ウィジェット用）。"""
        return self.filter(avg_rating__gt=0, total_ratings__gt=0)


class RateableEntity(models.Model):
    """評価対象（料理・店舗）の共通カラム。
    - avg_rating / total_ratings は ratings からの非正規化集計（flavors.aggregation が唯一の書き手）
    - rating はレガシーの手入力値。avg_rating が無い場合のランキングに使う
    - featured / featured_rank はキュレーション（管理者による上書き）
    """
    name = models.CharField(max_length=180)
    slug = models.SlugField(max_length=180, unique=True)
    description = models.TextField(blank=True, null=True)
    image_url = models.TextField(blank=True, null=True)
    rating = models.FloatField(blank=True, null=True)
    avg_rating = models.FloatField(blank=True, null=True)
    total_ratings = models.PositiveIntegerField(default=0)
    popularity = models.IntegerField(default=0)
    featured = models.BooleanField(default=False)
    featured_rank = models.PositiveIntegerField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RateableQuerySet.as_manager()

    rateable_type: str = ""

    class Meta:
        abstract = True

    def __str__(self) -> str:
        return self.name

    @property
    def effective_rating(self) -> float:
        return self.avg_rating or self.rating or 0.0


class Dish(RateableEntity):
    municipality = models.ForeignKey(Municipality, on_delete=models.CASCADE, related_name="dishes")
    category = models.ForeignKey(
        DishCategory, on_delete=models.SET_NULL, blank=True, null=True, related_name="dishes"
    )
    flavor_profile = models.JSONField(default=list, blank=True)
    ingredients = models.JSONField(default=list, blank=True)
    history = models.TextField(blank=True, null=True)
    is_signature = models.BooleanField(default=False)
    panel_rank = models.PositiveIntegerField(blank=True, null=True)
    restaurants = models.ManyToManyField(
        "Restaurant", through="DishRestaurant", related_name="dishes", blank=True
    )

    rateable_type = RATEABLE_DISH

    class Meta:
        db_table = "dishes"
        constraints = [
            models.UniqueConstraint(
                fields=["municipality", "panel_rank"],
                condition=Q(panel_rank__isnull=False),
                name="uniq_dish_panel_rank_per_municipality",
            ),
            models.UniqueConstraint(
                fields=["municipality", "featured_rank"],
                condition=Q(featured_rank__isnull=False),
                name="uniq_dish_featured_rank_per_municipality",
            ),
        ]
        indexes = [
            models.Index(fields=["municipality", "popularity"], name="idx_dishes_muni_popularity"),
        ]


class Restaurant(RateableEntity):
    KIND_CHOICES = (
        ("restaurant", "Restaurant"),
        ("stall", "Stall"),
        ("store", "Store"),
        ("dealer", "Dealer"),
        ("market", "Market"),
        ("home-based", "Home-based"),
    )
    PRICE_CHOICES = (
        ("budget", "Budget"),
        ("moderate", "Moderate"),
        ("expensive", "Expensive"),
    )

    municipality = models.ForeignKey(Municipality, on_delete=models.CASCADE, related_name="restaurants")
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, default="restaurant")
    address = models.CharField(max_length=300)
    phone = models.CharField(max_length=40, blank=True, null=True)
    email = models.CharField(max_length=120, blank=True, null=True)
    website = models.CharField(max_length=300, blank=True, null=True)
    facebook = models.CharField(max_length=300, blank=True, null=True)
    instagram = models.CharField(max_length=300, blank=True, null=True)
    opening_hours = models.CharField(max_length=240, blank=True, null=True)
    price_range = models.CharField(max_length=20, choices=PRICE_CHOICES, default="moderate")
    cuisine_types = models.JSONField(default=list, blank=True)
    lat = models.FloatField()
    lng = models.FloatField()

    rateable_type = RATEABLE_RESTAURANT

    class Meta:
        db_table = "restaurants"
        constraints = [
            models.UniqueConstraint(
                fields=["municipality", "featured_rank"],
                condition=Q(featured_rank__isnull=False),
                name="uniq_restaurant_featured_rank_per_municipality",
            ),
        ]


class DishRestaurant(models.Model):
    AVAILABILITY_CHOICES = (
        ("regular", "Regular"),
        ("seasonal", "Seasonal"),
        ("preorder", "Pre-order"),
    )

    dish = models.ForeignKey(Dish, on_delete=models.CASCADE, db_column="dish_id")
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, db_column="restaurant_id")
    price_note = models.CharField(max_length=120, blank=True, null=True)
    availability = models.CharField(max_length=16, choices=AVAILABILITY_CHOICES, default="regular")

    class Meta:
        db_table = "dish_restaurants"
        unique_together = ("dish", "restaurant")

    def __str__(self) -> str:
        return f"DishRestaurant({self.dish_id}, {self.restaurant_id})"


class UserProfile(models.Model):
    """ユーザーの拡張プロフィール。
    - role は権限判定（flavors.permissions）に使う。superuser は常に admin 扱い
    """
    ROLE_USER = "user"
    ROLE_MODERATOR = "moderator"
    ROLE_OWNER = "owner"
    ROLE_ADMIN = "admin"
    ROLE_CHOICES = (
        (ROLE_USER, "User"),
        (ROLE_MODERATOR, "Moderator"),
        (ROLE_OWNER, "Owner"),
        (ROLE_ADMIN, "Admin"),
    )

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    display_name = models.CharField(max_length=150, blank=True, null=True)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_USER)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "user_profiles"

    def __str__(self) -> str:
        return f"Profile({self.user_id}, {self.role})"


class Rating(models.Model):
    """評価（レビュー）。作成者×対象につき1件。
    - rateable_type / rateable_id で料理・店舗を指す（汎用参照）
    - weight は加重平均の重み（既定 1.0）。認証済み訪問・参考票で再計算される
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, db_column="user_id", related_name="ratings"
    )
    rateable_type = models.CharField(max_length=16, choices=RATEABLE_CHOICES)
    rateable_id = models.BigIntegerField()
    rating = models.PositiveSmallIntegerField()
    weight = models.FloatField(default=1.0)
    comment = models.TextField(blank=True, null=True)
    is_verified_visit = models.BooleanField(default=False)
    response_text = models.TextField(blank=True, null=True)
    response_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        db_column="response_by",
        related_name="rating_responses",
    )
    response_date = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "ratings"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "rateable_type", "rateable_id"], name="uniq_rating_per_author_target"
            ),
            models.CheckConstraint(condition=Q(rating__gte=1, rating__lte=5), name="rating_score_range"),
        ]
        indexes = [
            models.Index(fields=["rateable_type", "rateable_id", "created_at"], name="idx_ratings_target_created"),
        ]

    def __str__(self) -> str:
        return f"Rating({self.id}, {self.rateable_type}:{self.rateable_id}={self.rating})"


class ReviewVote(models.Model):
    VOTE_HELPFUL = "helpful"
    VOTE_REPORT = "report"
    VOTE_CHOICES = (
        (VOTE_HELPFUL, "Helpful"),
        (VOTE_REPORT, "Report"),
    )

    rating = models.ForeignKey(Rating, on_delete=models.CASCADE, db_column="review_id", related_name="votes")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, db_column="user_id")
    vote_type = models.CharField(max_length=16, choices=VOTE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "review_votes"
        unique_together = ("rating", "user", "vote_type")

    def __str__(self) -> str:
        return f"Vote({self.rating_id}, {self.vote_type})"


class Favorite(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, db_column="user_id", related_name="favorites"
    )
    item_type = models.CharField(max_length=16, choices=RATEABLE_CHOICES)
    item_id = models.BigIntegerField()
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "user_favorites"
        unique_together = ("user", "item_type", "item_id")
        indexes = [
            models.Index(fields=["user", "created_at"], name="idx_favorites_user_created"),
        ]

    def __str__(self) -> str:
        return f"Favorite({self.user_id}, {self.item_type}:{self.item_id})"


RATEABLE_MODELS = {
    RATEABLE_DISH: Dish,
    RATEABLE_RESTAURANT: Restaurant,
}
