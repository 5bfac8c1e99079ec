from django.conf import settings
from django.db import migrations, models
from django.db.models import Q


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Municipality",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("slug", models.SlugField(max_length=140, unique=True)),
                ("description", models.TextField(blank=True, null=True)),
                ("province", models.CharField(default="Bulacan", max_length=120)),
                ("lat", models.FloatField(blank=True, null=True)),
                ("lng", models.FloatField(blank=True, null=True)),
                ("image_url", models.TextField(blank=True, null=True)),
                ("osm_relation_id", models.BigIntegerField(blank=True, null=True, unique=True)),
            ],
            options={
                "db_table": "municipalities",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="DishCategory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=50, unique=True)),
                ("display_name", models.CharField(max_length=100)),
                ("sort", models.IntegerField(default=100)),
            ],
            options={
                "db_table": "dish_categories",
            },
        ),
        migrations.CreateModel(
            name="Restaurant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=180)),
                ("slug", models.SlugField(max_length=180, unique=True)),
                ("description", models.TextField(blank=True, null=True)),
                ("image_url", models.TextField(blank=True, null=True)),
                ("rating", models.FloatField(blank=True, null=True)),
                ("avg_rating", models.FloatField(blank=True, null=True)),
                ("total_ratings", models.PositiveIntegerField(default=0)),
                ("popularity", models.IntegerField(default=0)),
                ("featured", models.BooleanField(default=False)),
                ("featured_rank", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("kind", models.CharField(choices=[("restaurant", "Restaurant"), ("stall", "Stall"), ("store", "Store"), ("dealer", "Dealer"), ("market", "Market"), ("home-based", "Home-based")], default="restaurant", max_length=20)),
                ("address", models.CharField(max_length=300)),
                ("phone", models.CharField(blank=True, max_length=40, null=True)),
                ("email", models.CharField(blank=True, max_length=120, null=True)),
                ("website", models.CharField(blank=True, max_length=300, null=True)),
                ("facebook", models.CharField(blank=True, max_length=300, null=True)),
                ("instagram", models.CharField(blank=True, max_length=300, null=True)),
                ("opening_hours", models.CharField(blank=True, max_length=240, null=True)),
                ("price_range", models.CharField(choices=[("budget", "Budget"), ("moderate", "Moderate"), ("expensive", "Expensive")], default="moderate", max_length=20)),
                ("cuisine_types", models.JSONField(blank=True, default=list)),
                ("lat", models.FloatField()),
                ("lng", models.FloatField()),
                ("municipality", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="restaurants", to="flavors.municipality")),
            ],
            options={
                "db_table": "restaurants",
            },
        ),
        migrations.CreateModel(
            name="Dish",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=180)),
                ("slug", models.SlugField(max_length=180, unique=True)),
                ("description", models.TextField(blank=True, null=True)),
                ("image_url", models.TextField(blank=True, null=True)),
                ("rating", models.FloatField(blank=True, null=True)),
                ("avg_rating", models.FloatField(blank=True, null=True)),
                ("total_ratings", models.PositiveIntegerField(default=0)),
                ("popularity", models.IntegerField(default=0)),
                ("featured", models.BooleanField(default=False)),
                ("featured_rank", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("flavor_profile", models.JSONField(blank=True, default=list)),
                ("ingredients", models.JSONField(blank=True, default=list)),
                ("history", models.TextField(blank=True, null=True)),
                ("is_signature", models.BooleanField(default=False)),
                ("panel_rank", models.PositiveIntegerField(blank=True, null=True)),
                ("category", models.ForeignKey(blank=True, null=True, on_delete=models.deletion.SET_NULL, related_name="dishes", to="flavors.dishcategory")),
                ("municipality", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="dishes", to="flavors.municipality")),
            ],
            options={
                "db_table": "dishes",
            },
        ),
        migrations.CreateModel(
            name="DishRestaurant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("price_note", models.CharField(blank=True, max_length=120, null=True)),
                ("availability", models.CharField(choices=[("regular", "Regular"), ("seasonal", "Seasonal"), ("preorder", "Pre-order")], default="regular", max_length=16)),
                ("dish", models.ForeignKey(db_column="dish_id", on_delete=models.deletion.CASCADE, to="flavors.dish")),
                ("restaurant", models.ForeignKey(db_column="restaurant_id", on_delete=models.deletion.CASCADE, to="flavors.restaurant")),
            ],
            options={
                "db_table": "dish_restaurants",
                "unique_together": {("dish", "restaurant")},
            },
        ),
        migrations.AddField(
            model_name="dish",
            name="restaurants",
            field=models.ManyToManyField(blank=True, related_name="dishes", through="flavors.DishRestaurant", to="flavors.restaurant"),
        ),
        migrations.AddField(
            model_name="municipality",
            name="recommended_dish",
            field=models.ForeignKey(blank=True, null=True, on_delete=models.deletion.SET_NULL, related_name="+", to="flavors.dish"),
        ),
        migrations.AddConstraint(
            model_name="dish",
            constraint=models.UniqueConstraint(condition=Q(panel_rank__isnull=False), fields=("municipality", "panel_rank"), name="uniq_dish_panel_rank_per_municipality"),
        ),
        migrations.AddConstraint(
            model_name="dish",
            constraint=models.UniqueConstraint(condition=Q(featured_rank__isnull=False), fields=("municipality", "featured_rank"), name="uniq_dish_featured_rank_per_municipality"),
        ),
        migrations.AddIndex(
            model_name="dish",
            index=models.Index(fields=["municipality", "popularity"], name="idx_dishes_muni_popularity"),
        ),
        migrations.AddConstraint(
            model_name="restaurant",
            constraint=models.UniqueConstraint(condition=Q(featured_rank__isnull=False), fields=("municipality", "featured_rank"), name="uniq_restaurant_featured_rank_per_municipality"),
        ),
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("display_name", models.CharField(blank=True, max_length=150, null=True)),
                ("role", models.CharField(choices=[("user", "User"), ("moderator", "Moderator"), ("owner", "Owner"), ("admin", "Admin")], default="user", max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(on_delete=models.deletion.CASCADE, related_name="profile", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "user_profiles",
            },
        ),
        migrations.CreateModel(
            name="Rating",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("rateable_type", models.CharField(choices=[("dish", "Dish"), ("restaurant", "Restaurant")], max_length=16)),
                ("rateable_id", models.BigIntegerField()),
                ("rating", models.PositiveSmallIntegerField()),
                ("weight", models.FloatField(default=1.0)),
                ("comment", models.TextField(blank=True, null=True)),
                ("is_verified_visit", models.BooleanField(default=False)),
                ("response_text", models.TextField(blank=True, null=True)),
                ("response_date", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("response_by", models.ForeignKey(blank=True, db_column="response_by", null=True, on_delete=models.deletion.SET_NULL, related_name="rating_responses", to=settings.AUTH_USER_MODEL)),
                ("user", models.ForeignKey(db_column="user_id", on_delete=models.deletion.CASCADE, related_name="ratings", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "ratings",
            },
        ),
        migrations.AddConstraint(
            model_name="rating",
            constraint=models.UniqueConstraint(fields=("user", "rateable_type", "rateable_id"), name="uniq_rating_per_author_target"),
        ),
        migrations.AddConstraint(
            model_name="rating",
            constraint=models.CheckConstraint(condition=Q(rating__gte=1, rating__lte=5), name="rating_score_range"),
        ),
        migrations.AddIndex(
            model_name="rating",
            index=models.Index(fields=["rateable_type", "rateable_id", "created_at"], name="idx_ratings_target_created"),
        ),
        migrations.CreateModel(
            name="ReviewVote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("vote_type", models.CharField(choices=[("helpful", "Helpful"), ("report", "Report")], max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("rating", models.ForeignKey(db_column="review_id", on_delete=models.deletion.CASCADE, related_name="votes", to="flavors.rating")),
                ("user", models.ForeignKey(db_column="user_id", on_delete=models.deletion.CASCADE, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "review_votes",
                "unique_together": {("rating", "user", "vote_type")},
            },
        ),
        migrations.CreateModel(
            name="Favorite",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("item_type", models.CharField(choices=[("dish", "Dish"), ("restaurant", "Restaurant")], max_length=16)),
                ("item_id", models.BigIntegerField()),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.ForeignKey(db_column="user_id", on_delete=models.deletion.CASCADE, related_name="favorites", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "user_favorites",
                "unique_together": {("user", "item_type", "item_id")},
            },
        ),
        migrations.AddIndex(
            model_name="favorite",
            index=models.Index(fields=["user", "created_at"], name="idx_favorites_user_created"),
        ),
    ]
