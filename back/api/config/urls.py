from django.contrib import admin
from django.urls import path
from flavors.admin_views import (
    AdminAnalyticsSummaryView,
    AdminDishDetailView,
    AdminDishListView,
    AdminDishRestaurantLinkView,
    AdminDishRestaurantsView,
    AdminRestaurantDetailView,
    AdminRestaurantDishesView,
    AdminRestaurantListView,
)
from flavors.auth_views import (
    SignupView,
    LoginView,
    AdminLoginView,
    RefreshView,
    LogoutView,
    MeView,
)
from flavors.favorite_views import FavoritesView, FavoriteDeleteView, FavoriteStatusView
from flavors.models import Restaurant, RATEABLE_DISH, RATEABLE_RESTAURANT
from flavors.review_views import (
    RatingStatsView,
    ReviewDetailView,
    ReviewRespondView,
    ReviewVerifyView,
    ReviewVoteView,
    TargetReviewsView,
)
from flavors.serializers import RestaurantSerializer
from flavors.views import (
    PingView,
    HealthView,
    MunicipalitiesListView,
    MunicipalityDishesSummaryView,
    MunicipalityTopRestaurantsView,
    DishListView,
    DishDetailView,
    RestaurantListView,
    RestaurantDetailView,
    TopRatedView,
)
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/ping/', PingView.as_view(), name='ping'),
    path('api/health', HealthView.as_view(), name='health'),
    # 認証
    path('api/auth/signup', SignupView.as_view(), name='auth-signup'),
    path('api/auth/login', LoginView.as_view(), name='auth-login'),
    path('api/auth/admin/login', AdminLoginView.as_view(), name='auth-admin-login'),
    path('api/auth/refresh', RefreshView.as_view(), name='auth-refresh'),
    path('api/auth/logout', LogoutView.as_view(), name='auth-logout'),
    path('api/me', MeView.as_view(), name='me'),
    # 市町村
    path('api/municipalities', MunicipalitiesListView.as_view(), name='municipalities-list'),
    path(
        'api/municipalities/<int:municipality_id>/dishes-summary',
        MunicipalityDishesSummaryView.as_view(),
        name='municipality-dishes-summary',
    ),
    path(
        'api/municipalities/<int:municipality_id>/top-restaurants',
        MunicipalityTopRestaurantsView.as_view(),
        name='municipality-top-restaurants',
    ),
    # 料理・店舗（ランキング順）
    path('api/dishes', DishListView.as_view(), name='dishes-list'),
    path('api/dishes/<int:pk>/rating-stats', RatingStatsView.as_view(rateable_type=RATEABLE_DISH), name='dish-rating-stats'),
    path('api/dishes/<str:key>', DishDetailView.as_view(), name='dish-detail'),
    path('api/restaurants', RestaurantListView.as_view(), name='restaurants-list'),
    path(
        'api/restaurants/<int:pk>/rating-stats',
        RatingStatsView.as_view(rateable_type=RATEABLE_RESTAURANT),
        name='restaurant-rating-stats',
    ),
    path('api/restaurants/<str:key>', RestaurantDetailView.as_view(), name='restaurant-detail'),
    path('api/top-rated/dishes', TopRatedView.as_view(), name='top-rated-dishes'),
    path(
        'api/top-rated/restaurants',
        TopRatedView.as_view(model=Restaurant, serializer_class=RestaurantSerializer),
        name='top-rated-restaurants',
    ),
    # レビュー
    path('api/reviews/<int:review_id>', ReviewDetailView.as_view(), name='review-detail'),
    path('api/reviews/<int:review_id>/vote', ReviewVoteView.as_view(), name='review-vote'),
    path('api/reviews/<int:review_id>/respond', ReviewRespondView.as_view(), name='review-respond'),
    path('api/reviews/<int:review_id>/verify', ReviewVerifyView.as_view(), name='review-verify'),
    path('api/reviews/<str:rateable_type>/<int:rateable_id>', TargetReviewsView.as_view(), name='target-reviews'),
    # お気に入り
    path('api/user/favorites', FavoritesView.as_view(), name='favorites'),
    path('api/user/favorites/status', FavoriteStatusView.as_view(), name='favorites-status'),
    path('api/user/favorites/<str:item_type>/<int:item_id>', FavoriteDeleteView.as_view(), name='favorite-delete'),
    # 管理画面API
    path('api/admin/dishes', AdminDishListView.as_view(), name='admin-dishes'),
    path('api/admin/dishes/<int:pk>', AdminDishDetailView.as_view(), name='admin-dish-detail'),
    path('api/admin/dishes/<int:pk>/restaurants', AdminDishRestaurantsView.as_view(), name='admin-dish-restaurants'),
    path('api/admin/restaurants', AdminRestaurantListView.as_view(), name='admin-restaurants'),
    path('api/admin/restaurants/<int:pk>', AdminRestaurantDetailView.as_view(), name='admin-restaurant-detail'),
    path('api/admin/restaurants/<int:pk>/dishes', AdminRestaurantDishesView.as_view(), name='admin-restaurant-dishes'),
    path('api/admin/dish-restaurants', AdminDishRestaurantLinkView.as_view(), name='admin-dish-restaurants-link'),
    path('api/admin/analytics/summary', AdminAnalyticsSummaryView.as_view(), name='admin-analytics-summary'),
    # OpenAPI スキーマ（JSON）
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    # Swagger UI（/api/schema/ を参照）
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    # Redoc UI（/api/schema/ を参照）
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
