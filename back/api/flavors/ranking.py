"""料理・店舗の表示順（トップN・おすすめ）。

並び順（前のキーの同順位を次のキーで決める）:
  1. featured 降順
  2. featured_rank 昇順（NULL は最後）
  3. 料理のみ: panel_rank 昇順（NULL は最後）→ is_signature 優先
  4. 評価（avg_rating、無ければレガシー rating）降順。NULL/0 は最下位
  5. total_ratings 降順
  6. popularity 降順
  7. name 昇順（コードポイント順） → id 昇順（決定的なタイブレーク）

curated=False のときは 1〜3 を使わない（「評価順トップ」用）。
"""
import math
from typing import Iterable, Sequence

from django.conf import settings
from django.db import connections
from django.db.models import F, FloatField, Value
from django.db.models.functions import Coalesce, Collate, NullIf

from flavors.models import Dish


def _rank_or_last(value) -> float:
    return value if value is not None else math.inf


def effective_rating(entity) -> float:
    return getattr(entity, "avg_rating", None) or getattr(entity, "rating", None) or 0.0


def rank_key(entity, curated: bool = True) -> tuple:
    key: list = []
    if curated:
        key.append(0 if getattr(entity, "featured", False) else 1)
        key.append(_rank_or_last(getattr(entity, "featured_rank", None)))
        if hasattr(entity, "panel_rank"):
            key.append(_rank_or_last(entity.panel_rank))
            key.append(0 if getattr(entity, "is_signature", False) else 1)
    key.extend(
        [
            -effective_rating(entity),
            -(getattr(entity, "total_ratings", None) or 0),
            -(getattr(entity, "popularity", None) or 0),
            getattr(entity, "name", None) or "",
            getattr(entity, "pk", None) or 0,
        ]
    )
    return tuple(key)


def rank_top(entities: Iterable, limit: int | None = None, curated: bool = True) -> list:
    """同一市町村に絞り込み済みの料理・店舗を並べ、先頭 limit 件を返す。
    - 同じ入力に対して常に同じ順序を返す
    """
    if limit is None:
        limit = settings.DEFAULT_LIST_LIMIT
    return sorted(entities, key=lambda entity: rank_key(entity, curated))[:limit]


# name をコードポイント順で比べる照合順序（Python の str 比較と一致させる）
BINARY_COLLATIONS = {"postgresql": "C", "sqlite": "BINARY", "mysql": "utf8mb4_bin"}


def _name_ordering(queryset):
    collation = BINARY_COLLATIONS.get(connections[queryset.db].vendor)
    if collation is None:
        return F("name").asc()
    return Collate(F("name"), collation).asc()


def _ordering(queryset, curated: bool) -> Sequence:
    model = queryset.model
    ordering = []
    if curated:
        ordering.extend([F("featured").desc(), F("featured_rank").asc(nulls_last=True)])
        if model is Dish:
            ordering.extend([F("panel_rank").asc(nulls_last=True), F("is_signature").desc()])
    ordering.extend(
        [
            F("rank_rating").desc(),
            F("total_ratings").desc(),
            F("popularity").desc(),
            _name_ordering(queryset),
            F("pk").asc(),
        ]
    )
    return ordering


def order_by_rank(queryset, curated: bool = True):
    """rank_key と同じ順序を ORDER BY で表す（DB側で LIMIT するため）。"""
    rank_rating = Coalesce(
        NullIf(F("avg_rating"), Value(0.0)),
        F("rating"),
        Value(0.0),
        output_field=FloatField(),
    )
    return queryset.annotate(rank_rating=rank_rating).order_by(*_ordering(queryset, curated))
