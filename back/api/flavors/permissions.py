"""ロール × 操作 の権限判定。

ハンドラごとに role 文字列を比較せず、``can(requester, action, resource)`` に集約する。
"""
from dataclasses import dataclass

from rest_framework.permissions import BasePermission

from flavors.exceptions import Forbidden
from flavors.models import UserProfile


RATING_DELETE_ANY = "rating.delete_any"
RATING_RESPOND = "rating.respond"
RATING_VERIFY = "rating.verify"
CURATION_UPDATE = "curation.update"
CATALOG_MANAGE = "catalog.manage"

CAPABILITIES: dict[str, frozenset[str]] = {
    UserProfile.ROLE_USER: frozenset(),
    UserProfile.ROLE_MODERATOR: frozenset({RATING_DELETE_ANY}),
    UserProfile.ROLE_OWNER: frozenset({RATING_RESPOND, RATING_VERIFY, CURATION_UPDATE, CATALOG_MANAGE}),
    UserProfile.ROLE_ADMIN: frozenset(
        {RATING_DELETE_ANY, RATING_RESPOND, RATING_VERIFY, CURATION_UPDATE, CATALOG_MANAGE}
    ),
}

CURATOR_ROLES = frozenset(role for role, caps in CAPABILITIES.items() if CURATION_UPDATE in caps)


@dataclass(frozen=True)
class Requester:
    """認証済みの操作主体。認証層から渡される値をそのまま信頼する。"""
    id: int
    role: str = UserProfile.ROLE_USER


def role_of(user) -> str:
    if user.is_superuser:
        return UserProfile.ROLE_ADMIN
    profile = getattr(user, "profile", None)
    if profile is None:
        return UserProfile.ROLE_USER
    return profile.role


def requester_from_user(user) -> Requester:
    return Requester(id=user.pk, role=role_of(user))


def can(requester: Requester, action: str, resource=None) -> bool:
    """requester が resource に対して action を実行できるか。
    - resource が author を持つ（user_id 属性）場合は作成者本人も許可
    """
    if action in CAPABILITIES.get(requester.role, frozenset()):
        return True
    if resource is not None and action == RATING_DELETE_ANY:
        return getattr(resource, "user_id", None) == requester.id
    return False


def require(requester: Requester, action: str, resource=None) -> None:
    if not can(requester, action, resource):
        raise Forbidden(details={"action": action, "role": requester.role})


class IsCurator(BasePermission):
    """管理API用。admin / owner のみ。"""

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return can(requester_from_user(user), CATALOG_MANAGE)
