import base64
import json

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from flavors import aggregation
from flavors.exceptions import error_response
from flavors.models import Rating
from flavors.permissions import requester_from_user
from flavors.serializers import (
    RatingSerializer,
    RatingWriteSerializer,
    RespondSerializer,
    VoteSerializer,
)


def _validation_error(serializer) -> Response:
    return error_response(
        code="VALIDATION_ERROR",
        message="invalid request body",
        details=serializer.errors,
    )


def _decode_cursor(value: str | None) -> int:
    """base64 の cursor から offset を復元（無効時は0）。"""
    if not value:
        return 0
    try:
        payload = base64.urlsafe_b64decode(value.encode("utf-8"))
        return max(0, int(json.loads(payload.decode("utf-8")).get("offset", 0)))
    except Exception:
        return 0


def _encode_cursor(offset: int) -> str:
    return base64.urlsafe_b64encode(json.dumps({"offset": offset}).encode("utf-8")).decode("utf-8")


class TargetReviewsView(APIView):
    """/reviews/{type}/{id}
    - POST: 評価の登録（同じユーザーの既存評価は上書き）。集計を同期して返す
    - GET: 新しい順の一覧。limit(既定10, 最大50), cursor
    """

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsAuthenticated()]
        return [AllowAny()]

    def post(self, request, rateable_type: str, rateable_id: int):
        serializer = RatingWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer)
        data = serializer.validated_data

        entry, created = aggregation.upsert_rating(
            request.user.pk, rateable_type, rateable_id, data.get("rating"), data.get("comment")
        )
        target = aggregation.rateable_model(rateable_type).objects.get(pk=rateable_id)
        return Response(
            {
                "message": "review added" if created else "review updated",
                "review": RatingSerializer(entry).data,
                "stats": {"avg_rating": target.avg_rating, "total_ratings": target.total_ratings},
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def get(self, request, rateable_type: str, rateable_id: int):
        model = aggregation.rateable_model(rateable_type)
        if not model.objects.filter(pk=rateable_id).exists():
            return error_response(
                code="NOT_FOUND",
                message=f"{rateable_type} not found",
                details={"id": rateable_id},
                status_code=404,
            )

        limit_param = request.query_params.get("limit", "10")
        try:
            limit = max(1, min(int(limit_param), 50))
        except ValueError:
            return error_response(
                code="VALIDATION_ERROR",
                message="limit must be an integer",
                details={"field": "limit"},
            )
        offset = _decode_cursor(request.query_params.get("cursor"))

        qs = aggregation.with_vote_counts(
            Rating.objects.filter(rateable_type=rateable_type, rateable_id=rateable_id)
            .select_related("user", "user__profile")
        ).order_by("-created_at", "-id")

        entries = list(qs[offset : offset + limit + 1])
        next_cursor = None
        if len(entries) > limit:
            next_cursor = _encode_cursor(offset + limit)
            entries = entries[:limit]

        return Response({"items": RatingSerializer(entries, many=True).data, "next_cursor": next_cursor})


class ReviewDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request, review_id: int):
        serializer = RatingWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer)
        data = serializer.validated_data
        entry = aggregation.update_rating(
            review_id, requester_from_user(request.user), data.get("rating"), data.get("comment")
        )
        return Response({"review": RatingSerializer(entry).data})

    def delete(self, request, review_id: int):
        aggregation.delete_rating(review_id, requester_from_user(request.user))
        return Response(status=status.HTTP_204_NO_CONTENT)


class ReviewVoteView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, review_id: int):
        serializer = VoteSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer)
        recorded = aggregation.toggle_vote(review_id, request.user.pk, serializer.validated_data["vote_type"])
        return Response({"message": "vote recorded" if recorded else "vote removed", "voted": recorded})


class ReviewRespondView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, review_id: int):
        serializer = RespondSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_error(serializer)
        entry = aggregation.respond_to_rating(
            review_id, requester_from_user(request.user), serializer.validated_data["response_text"]
        )
        return Response({"review": RatingSerializer(entry).data})


class ReviewVerifyView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, review_id: int):
        entry = aggregation.verify_rating(review_id, requester_from_user(request.user))
        return Response({"review": RatingSerializer(entry).data})


class RatingStatsView(APIView):
    """平均（1桁）・件数・★ごとの分布。"""
    permission_classes = [AllowAny]
    rateable_type = ""

    def get(self, request, pk: int):
        return Response(aggregation.rating_stats(self.rateable_type, pk))
