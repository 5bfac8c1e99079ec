from django.contrib import admin
from flavors.models import (
    Dish,
    DishCategory,
    DishRestaurant,
    Favorite,
    Municipality,
    Rating,
    Restaurant,
    ReviewVote,
    UserProfile,
)


@admin.register(Municipality)
class MunicipalityAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "province", "osm_relation_id", "recommended_dish")
    search_fields = ("name", "slug")
    ordering = ("name",)


@admin.register(DishCategory)
class DishCategoryAdmin(admin.ModelAdmin):
    list_display = ("display_name", "code", "sort")
    ordering = ("sort", "code")


class DishRestaurantInline(admin.TabularInline):
    model = DishRestaurant
    extra = 0
    raw_id_fields = ("restaurant",)


@admin.register(Dish)
class DishAdmin(admin.ModelAdmin):
    list_display = (
        "name", "municipality", "category", "avg_rating", "total_ratings",
        "featured", "featured_rank", "is_signature", "panel_rank",
    )
    list_filter = ("municipality", "category", "featured", "is_signature")
    search_fields = ("name", "slug")
    # 集計カラムは ratings からのみ更新する
    readonly_fields = ("avg_rating", "total_ratings", "created_at", "updated_at")
    inlines = (DishRestaurantInline,)


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    list_display = ("name", "municipality", "kind", "avg_rating", "total_ratings", "featured", "featured_rank")
    list_filter = ("municipality", "kind", "featured")
    search_fields = ("name", "slug", "address")
    readonly_fields = ("avg_rating", "total_ratings", "created_at", "updated_at")


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "display_name", "role")
    list_filter = ("role",)
    search_fields = ("user__email", "display_name")


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ("id", "rateable_type", "rateable_id", "user", "rating", "weight", "is_verified_visit", "created_at")
    list_filter = ("rateable_type", "is_verified_visit")
    search_fields = ("user__email", "comment")


@admin.register(ReviewVote)
class ReviewVoteAdmin(admin.ModelAdmin):
    list_display = ("id", "rating", "user", "vote_type", "created_at")
    list_filter = ("vote_type",)


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "item_type", "item_id", "created_at")
    list_filter = ("item_type",)
