"""キュレーション（管理者による手動順位）の設定。

featured_rank / panel_rank は市町村ごとに1枠1件。新しい保持者を設定する前に、
同じ枠を持つ他の行を同一トランザクション内でロックして空ける（追い出し）。
"""
import logging

from django.db import transaction

from flavors.exceptions import InvalidCuration, NotFound, translate_storage_errors
from flavors.models import RATEABLE_DISH, RATEABLE_MODELS, Dish
from flavors.permissions import CURATION_UPDATE, Requester, require

logger = logging.getLogger(__name__)


def validate_rank(rank) -> int | None:
    """正の整数か None。"""
    if rank is None:
        return None
    if isinstance(rank, bool) or (isinstance(rank, float) and not rank.is_integer()):
        raise InvalidCuration(details={"rank": rank})
    try:
        value = int(rank)
    except (TypeError, ValueError):
        raise InvalidCuration(details={"rank": rank})
    if value < 1:
        raise InvalidCuration(details={"rank": rank})
    return value


def _curated_model(kind: str):
    model = RATEABLE_MODELS.get(kind)
    if model is None:
        raise InvalidCuration(message="kind must be 'dish' or 'restaurant'", details={"kind": kind})
    return model


def _lock(model, entity_id):
    try:
        return model.objects.select_for_update().get(pk=entity_id)
    except model.DoesNotExist:
        raise NotFound(message=f"{model._meta.model_name} not found", details={"id": entity_id})


def _assign_rank(model, field: str, entity_id, rank: int | None, **extra):
    """rank を entity に設定する。rank が非NULLなら同じ市町村の他の保持者を先に空ける。"""
    with transaction.atomic():
        entity = _lock(model, entity_id)
        if rank is not None:
            holders = list(
                model.objects.select_for_update()
                .filter(municipality_id=entity.municipality_id, **{field: rank})
                .exclude(pk=entity.pk)
            )
            if holders:
                model.objects.filter(pk__in=[holder.pk for holder in holders]).update(**{field: None})
                logger.info(
                    "evicted %s=%s from %s %s in municipality %s",
                    field, rank, model._meta.model_name, [holder.pk for holder in holders], entity.municipality_id,
                )
        setattr(entity, field, rank)
        for name, value in extra.items():
            setattr(entity, name, value)
        entity.save(update_fields=[field, *extra.keys(), "updated_at"])
    return entity


@translate_storage_errors
def set_panel_rank(dish_id, rank, requester: Requester) -> Dish:
    """料理の panel_rank を設定する（None で解除）。admin / owner のみ。"""
    require(requester, CURATION_UPDATE)
    return _assign_rank(Dish, "panel_rank", dish_id, validate_rank(rank))


@translate_storage_errors
def set_featured_rank(kind: str, entity_id, rank, requester: Requester, featured: bool | None = None):
    """料理・店舗の featured_rank を設定する（None で解除）。
    - rank を設定するときは featured も True にする（featured の明示指定が優先）
    """
    require(requester, CURATION_UPDATE)
    model = _curated_model(kind)
    rank = validate_rank(rank)
    extra = {}
    if featured is not None:
        extra["featured"] = bool(featured)
    elif rank is not None:
        extra["featured"] = True
    return _assign_rank(model, "featured_rank", entity_id, rank, **extra)


CURATION_FIELDS = ("featured", "featured_rank", "is_signature", "panel_rank")
RANK_FIELDS = ("featured_rank", "panel_rank")


@translate_storage_errors
def move_to_municipality(kind: str, entity_id, municipality, requester: Requester):
    """料理・店舗を別の市町村へ移す。
    順位は元の市町村の枠なので外す（移動先の保持者は追い出さない）。
    """
    require(requester, CURATION_UPDATE)
    model = _curated_model(kind)
    with transaction.atomic():
        entity = _lock(model, entity_id)
        if entity.municipality_id == municipality.pk:
            return entity
        released = [field for field in RANK_FIELDS if getattr(entity, field, None) is not None]
        entity.municipality = municipality
        for field in released:
            setattr(entity, field, None)
        entity.save(update_fields=["municipality", *released, "updated_at"])
    if released:
        logger.info("released %s of %s %s on move to municipality %s", released, kind, entity_id, municipality.pk)
    return entity


@translate_storage_errors
def apply_curation(kind: str, entity_id, changes: dict, requester: Requester):
    """管理画面の PATCH に含まれるキュレーション項目をまとめて反映する。"""
    require(requester, CURATION_UPDATE)
    model = _curated_model(kind)
    if kind != RATEABLE_DISH and ({"is_signature", "panel_rank"} & changes.keys()):
        raise InvalidCuration(
            message="is_signature and panel_rank apply to dishes only",
            details={"fields": sorted({"is_signature", "panel_rank"} & changes.keys())},
        )

    with transaction.atomic():
        if "featured_rank" in changes:
            set_featured_rank(kind, entity_id, changes["featured_rank"], requester, featured=changes.get("featured"))
        elif "featured" in changes:
            entity = _lock(model, entity_id)
            entity.featured = bool(changes["featured"])
            entity.save(update_fields=["featured", "updated_at"])
        if "is_signature" in changes:
            entity = _lock(model, entity_id)
            entity.is_signature = bool(changes["is_signature"])
            entity.save(update_fields=["is_signature", "updated_at"])
        if "panel_rank" in changes:
            set_panel_rank(entity_id, changes["panel_rank"], requester)
        entity = _lock(model, entity_id)
    return entity
