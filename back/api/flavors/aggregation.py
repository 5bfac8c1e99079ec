"""評価の集計（料理・店舗の avg_rating / total_ratings）。

ratings への書き込みはすべてこのモジュールを通し、書き込み後に ``recompute`` で
対象の集計カラムを同期する（DBトリガや各ハンドラでの個別更新は行わない）。
"""
import logging
from collections import Counter
from typing import Iterable

from django.db import IntegrityError, transaction
from django.db.models import Count, F, FloatField, Q, Sum
from django.utils import timezone

from flavors.exceptions import Forbidden, InvalidRating, NotFound, translate_storage_errors
from flavors.models import RATEABLE_MODELS, Rating, ReviewVote
from flavors.permissions import (
    RATING_DELETE_ANY,
    RATING_RESPOND,
    RATING_VERIFY,
    Requester,
    require,
)

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 5
DEFAULT_WEIGHT = 1.0
MIN_WEIGHT = 0.5
MAX_WEIGHT = 2.0


def rateable_model(target_kind: str):
    model = RATEABLE_MODELS.get(target_kind)
    if model is None:
        raise InvalidRating(
            message="rateable type must be 'dish' or 'restaurant'",
            details={"rateable_type": target_kind},
        )
    return model


def validate_score(score) -> int:
    """1〜5 の整数に正規化する。範囲外・非整数は InvalidRating。"""
    if score is None or isinstance(score, bool):
        raise InvalidRating(details={"rating": score})
    if isinstance(score, float) and not score.is_integer():
        raise InvalidRating(details={"rating": score})
    try:
        value = int(score)
    except (TypeError, ValueError):
        raise InvalidRating(details={"rating": score})
    if not (MIN_SCORE <= value <= MAX_SCORE):
        raise InvalidRating(details={"rating": score})
    return value


def weighted_average(entries: Iterable[tuple[int, float]]) -> float | None:
    """(score, weight) の列から加重平均を求める。空なら None。"""
    weighted_sum = 0.0
    weight_sum = 0.0
    for score, weight in entries:
        weighted_sum += score * weight
        weight_sum += weight
    if not weight_sum:
        return None
    return weighted_sum / weight_sum


def compute_weight(helpful_votes: int, total_ratings: int, days_since_review: int, is_verified: bool) -> float:
    """評価1件の重み。参考票・件数で加点、経過日数で減点し、0.5〜2.0 に丸める。"""
    weight = (
        1.0
        + min(helpful_votes * 0.1, 0.3)
        + min(total_ratings * 0.05, 0.2)
        - min(days_since_review / 365, 0.3)
        + (0.2 if is_verified else 0.0)
    )
    return max(MIN_WEIGHT, min(MAX_WEIGHT, weight))


def _target_ratings(target_kind: str, target_id):
    return Rating.objects.filter(rateable_type=target_kind, rateable_id=target_id)


def with_vote_counts(queryset):
    return queryset.annotate(
        helpful_votes=Count("votes", filter=Q(votes__vote_type=ReviewVote.VOTE_HELPFUL)),
        report_votes=Count("votes", filter=Q(votes__vote_type=ReviewVote.VOTE_REPORT)),
    )


def _get_entry(entry_id) -> Rating:
    try:
        return Rating.objects.get(pk=entry_id)
    except Rating.DoesNotExist:
        raise NotFound(message="review not found", details={"review_id": entry_id})


@translate_storage_errors
def recompute(target_kind: str, target_id) -> tuple[float | None, int]:
    """対象の avg_rating / total_ratings を ratings から再計算して保存する。
    - average = Σ(rating·weight) / Σ(weight)、0件なら None
    - 保存は対象IDで絞った UPDATE 1文（同一対象の同時実行は後勝ち）
    """
    model = rateable_model(target_kind)
    agg = _target_ratings(target_kind, target_id).aggregate(
        total=Count("id"),
        weighted_sum=Sum(F("rating") * F("weight"), output_field=FloatField()),
        weight_sum=Sum("weight"),
    )
    total = agg["total"] or 0
    average = None
    if total and agg["weight_sum"]:
        average = agg["weighted_sum"] / agg["weight_sum"]

    updated = model.objects.filter(pk=target_id).update(avg_rating=average, total_ratings=total)
    if not updated:
        raise NotFound(message=f"{target_kind} not found", details={"id": target_id})
    logger.debug("recomputed %s:%s avg=%s total=%s", target_kind, target_id, average, total)
    return average, total


def _refresh_after_write(target_kind: str, target_id) -> None:
    try:
        recompute(target_kind, target_id)
    except NotFound:
        # 対象が既に削除済み（孤立した評価の削除など）
        logger.warning("skip recompute for missing %s:%s", target_kind, target_id)


@translate_storage_errors
def upsert_rating(author_id, target_kind: str, target_id, score, comment: str | None = None) -> tuple[Rating, bool]:
    """評価の登録・更新。同じ作成者×対象の評価があれば上書きする。
    返却: (票数つきの評価, 新規作成か)
    """
    # 1) 書き込み前の検証
    score = validate_score(score)
    model = rateable_model(target_kind)
    if not model.objects.filter(pk=target_id).exists():
        raise NotFound(message=f"{target_kind} not found", details={"id": target_id})

    # 2) 書き込み（既存なら上書き）
    lookup = {"user_id": author_id, "rateable_type": target_kind, "rateable_id": target_id}
    entry = Rating.objects.filter(**lookup).first()
    created = False
    if entry is None:
        try:
            with transaction.atomic():
                entry = Rating.objects.create(
                    **lookup, rating=score, comment=comment or None, weight=DEFAULT_WEIGHT
                )
            created = True
        except IntegrityError:
            # 同一作成者の同時投稿。先に入った行を上書きする
            entry = Rating.objects.get(**lookup)
    if not created:
        entry.rating = score
        entry.comment = comment or None
        entry.save(update_fields=["rating", "comment", "updated_at"])

    logger.info(
        "rating %s by user %s on %s:%s score=%s",
        "created" if created else "updated", author_id, target_kind, target_id, score,
    )

    # 3) 集計の同期
    recompute(target_kind, target_id)
    return with_vote_counts(Rating.objects.filter(pk=entry.pk)).get(), created


@translate_storage_errors
def update_rating(entry_id, requester: Requester, score, comment: str | None = None) -> Rating:
    """作成者本人による評価の編集。"""
    entry = _get_entry(entry_id)
    if entry.user_id != requester.id:
        raise Forbidden(message="only the author can edit this review")
    entry.rating = validate_score(score)
    entry.comment = comment or None
    entry.save(update_fields=["rating", "comment", "updated_at"])
    recompute(entry.rateable_type, entry.rateable_id)
    return with_vote_counts(Rating.objects.filter(pk=entry.pk)).get()


@translate_storage_errors
def delete_rating(entry_id, requester: Requester) -> None:
    """評価の削除。作成者本人か rating.delete_any を持つロールのみ。"""
    entry = _get_entry(entry_id)
    require(requester, RATING_DELETE_ANY, entry)
    target_kind, target_id = entry.rateable_type, entry.rateable_id
    entry.delete()
    logger.info("rating %s deleted by user %s (%s)", entry_id, requester.id, requester.role)
    _refresh_after_write(target_kind, target_id)


@translate_storage_errors
def refresh_weights(target_kind: str, target_id) -> tuple[float | None, int]:
    """対象の全評価の weight を再計算し、集計を同期する。"""
    entries = list(
        _target_ratings(target_kind, target_id).annotate(
            helpful=Count("votes", filter=Q(votes__vote_type=ReviewVote.VOTE_HELPFUL))
        )
    )
    now = timezone.now()
    total = len(entries)
    for entry in entries:
        entry.weight = compute_weight(
            entry.helpful, total, (now - entry.created_at).days, entry.is_verified_visit
        )
    if entries:
        Rating.objects.bulk_update(entries, ["weight"])
    return recompute(target_kind, target_id)


@translate_storage_errors
def verify_rating(entry_id, requester: Requester) -> Rating:
    """訪問確認済みにする（admin / owner）。重みと集計を更新する。"""
    require(requester, RATING_VERIFY)
    entry = _get_entry(entry_id)
    entry.is_verified_visit = True
    entry.save(update_fields=["is_verified_visit", "updated_at"])
    refresh_weights(entry.rateable_type, entry.rateable_id)
    entry.refresh_from_db()
    return entry


@translate_storage_errors
def respond_to_rating(entry_id, requester: Requester, text: str) -> Rating:
    require(requester, RATING_RESPOND)
    entry = _get_entry(entry_id)
    entry.response_text = text
    entry.response_by_id = requester.id
    entry.response_date = timezone.now()
    entry.save(update_fields=["response_text", "response_by", "response_date"])
    return entry


@translate_storage_errors
def toggle_vote(entry_id, user_id, vote_type: str) -> bool:
    """参考票・通報のトグル。返却: True=記録, False=取り消し。"""
    entry = _get_entry(entry_id)
    deleted, _ = ReviewVote.objects.filter(rating=entry, user_id=user_id, vote_type=vote_type).delete()
    if deleted:
        return False
    ReviewVote.objects.create(rating=entry, user_id=user_id, vote_type=vote_type)
    return True


@translate_storage_errors
def rating_stats(target_kind: str, target_id) -> dict:
    model = rateable_model(target_kind)
    if not model.objects.filter(pk=target_id).exists():
        raise NotFound(message=f"{target_kind} not found", details={"id": target_id})
    rows = list(_target_ratings(target_kind, target_id).values_list("rating", "weight"))
    counts = Counter(score for score, _ in rows)
    average = weighted_average(rows)
    return {
        "average": round(average, 1) if average is not None else 0.0,
        "total": len(rows),
        "distribution": {score: counts.get(score, 0) for score in range(MAX_SCORE, MIN_SCORE - 1, -1)},
    }
