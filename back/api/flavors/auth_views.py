import logging

from django.contrib.auth import authenticate, get_user_model
from django.db import transaction
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.exceptions import TokenError, InvalidToken

from flavors.exceptions import error_response
from flavors.models import UserProfile
from flavors.permissions import CURATOR_ROLES, role_of
from flavors.serializers import (
    LoginSerializer,
    ProfileUpdateSerializer,
    SignupSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def _serialize_user(user: User) -> dict:
    profile, _ = UserProfile.objects.get_or_create(user=user)
    return {
        "id": str(user.id),
        "email": user.email,
        "role": role_of(user),
        "display_name": profile.display_name,
    }


def _invalid_body(serializer) -> Response:
    return error_response(
        code="VALIDATION_ERROR",
        message="invalid request body",
        details=serializer.errors,
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def _token_response(user: User) -> Response:
    refresh = RefreshToken.for_user(user)
    data = {
        "user": _serialize_user(user),
        "access_token": str(refresh.access_token),
        "refresh_token": str(refresh),
    }
    return Response(data, status=status.HTTP_200_OK)


def _authenticate(request):
    """email/password を検証し (user, エラーレスポンス) を返す。"""
    serializer = LoginSerializer(data=request.data)
    if not serializer.is_valid():
        return None, _invalid_body(serializer)
    data = serializer.validated_data
    user = authenticate(request, username=data["email"], password=data["password"])
    if not user:
        return None, error_response(
            code="UNAUTHORIZED",
            message="invalid email or password",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return user, None


class SignupView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid_body(serializer)
        data = serializer.validated_data
        with transaction.atomic():
            user = User.objects.create_user(
                username=data["email"],
                email=data["email"],
                password=data["password"],
            )
            UserProfile.objects.create(
                user=user,
                display_name=data.get("display_name") or data["email"].split("@")[0],
            )
        logger.info("user %s signed up", user.pk)
        response = _token_response(user)
        response.status_code = status.HTTP_201_CREATED
        return response


class LoginView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        user, error = _authenticate(request)
        if error:
            return error
        return _token_response(user)


class AdminLoginView(APIView):
    """管理画面用ログイン。admin / owner 以外は 403。"""
    permission_classes = [AllowAny]

    def post(self, request):
        user, error = _authenticate(request)
        if error:
            return error
        if role_of(user) not in CURATOR_ROLES:
            logger.warning("admin login rejected for user %s", user.pk)
            return error_response(
                code="FORBIDDEN",
                message="admin access required",
                status_code=status.HTTP_403_FORBIDDEN,
            )
        return _token_response(user)


def _refresh_token_missing() -> Response:
    return error_response(
        code="VALIDATION_ERROR",
        message="refresh_token is required",
        details={"field": "refresh_token"},
    )


def _refresh_token_rejected(exc: Exception) -> Response:
    return error_response(
        code="UNAUTHORIZED",
        message="refresh token is invalid or expired",
        details={"detail": exc.args[0] if exc.args else str(exc)},
        status_code=status.HTTP_401_UNAUTHORIZED,
    )


class RefreshView(APIView):
    """refresh_token から新しい access_token を発行する（ローテーション時は refresh_token も返す）。"""
    permission_classes = [AllowAny]

    def post(self, request):
        refresh_token = request.data.get("refresh_token")
        if not refresh_token:
            return _refresh_token_missing()
        serializer = TokenRefreshSerializer(data={"refresh": refresh_token})
        try:
            serializer.is_valid(raise_exception=True)
        except (TokenError, InvalidToken) as exc:
            return _refresh_token_rejected(exc)
        tokens = {"access_token": serializer.validated_data["access"]}
        if "refresh" in serializer.validated_data:
            tokens["refresh_token"] = serializer.validated_data["refresh"]
        return Response(tokens, status=status.HTTP_200_OK)


class LogoutView(APIView):
    """refresh_token をブラックリストに入れる。"""
    permission_classes = [AllowAny]

    def post(self, request):
        refresh_token = request.data.get("refresh_token")
        if not refresh_token:
            return _refresh_token_missing()
        try:
            RefreshToken(refresh_token).blacklist()
        except (TokenError, InvalidToken) as exc:
            return _refresh_token_rejected(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({"user": _serialize_user(request.user)}, status=status.HTTP_200_OK)

    def patch(self, request):
        serializer = ProfileUpdateSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return _invalid_body(serializer)
        profile, _ = UserProfile.objects.get_or_create(user=request.user)
        if "display_name" in serializer.validated_data:
            profile.display_name = serializer.validated_data["display_name"] or None
            profile.save(update_fields=["display_name", "updated_at"])
        return Response({"user": _serialize_user(request.user)}, status=status.HTTP_200_OK)
