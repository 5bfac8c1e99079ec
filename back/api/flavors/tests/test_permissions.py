from types import SimpleNamespace

import pytest

from flavors.exceptions import Forbidden
from flavors.models import UserProfile
from flavors.permissions import (
    CATALOG_MANAGE,
    CURATION_UPDATE,
    RATING_DELETE_ANY,
    RATING_RESPOND,
    RATING_VERIFY,
    Requester,
    can,
    require,
    role_of,
)


@pytest.mark.parametrize(
    "role, action, allowed",
    [
        ("user", RATING_DELETE_ANY, False),
        ("user", CURATION_UPDATE, False),
        ("moderator", RATING_DELETE_ANY, True),
        ("moderator", RATING_RESPOND, False),
        ("moderator", CURATION_UPDATE, False),
        ("owner", RATING_DELETE_ANY, False),
        ("owner", RATING_RESPOND, True),
        ("owner", RATING_VERIFY, True),
        ("owner", CURATION_UPDATE, True),
        ("owner", CATALOG_MANAGE, True),
        ("admin", RATING_DELETE_ANY, True),
        ("admin", RATING_VERIFY, True),
        ("admin", CURATION_UPDATE, True),
        ("unknown", CURATION_UPDATE, False),
    ],
)
def test_capability_table(role, action, allowed):
    assert can(Requester(id=1, role=role), action) is allowed


def test_author_may_delete_own_entry():
    entry = SimpleNamespace(user_id=7)
    assert can(Requester(id=7), RATING_DELETE_ANY, entry) is True
    assert can(Requester(id=8), RATING_DELETE_ANY, entry) is False


def test_author_match_does_not_grant_other_actions():
    entry = SimpleNamespace(user_id=7)
    assert can(Requester(id=7), RATING_RESPOND, entry) is False


def test_require_raises_forbidden():
    with pytest.raises(Forbidden) as excinfo:
        require(Requester(id=1, role="user"), CURATION_UPDATE)
    assert excinfo.value.details == {"action": CURATION_UPDATE, "role": "user"}


def test_role_of_user(make_user, admin_user, django_user_model):
    assert role_of(make_user()) == UserProfile.ROLE_USER
    assert role_of(admin_user) == UserProfile.ROLE_ADMIN
    bare = django_user_model.objects.create_user(username="bare", password="x")
    assert role_of(bare) == UserProfile.ROLE_USER
    root = django_user_model.objects.create_superuser(username="root", password="x", email="root@example.com")
    assert role_of(root) == UserProfile.ROLE_ADMIN
