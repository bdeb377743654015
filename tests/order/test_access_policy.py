"""Tests for the ownership-based access control policy."""

import pytest
from order_service.auth import Claims
from order_service.errors import Forbidden
from order_service.policy import Action, Decision, authorize, ensure_allowed

from tests.helpers import ADMIN_ID, OTHER_USER_ID, OWNER_ID


@pytest.mark.parametrize("action", list(Action))
class TestAuthorize:
    def test_owner_allowed(self, action, owner):
        assert authorize(owner, OWNER_ID, action) is Decision.ALLOW

    def test_non_owner_denied(self, action, other_user):
        assert authorize(other_user, OWNER_ID, action) is Decision.DENY

    def test_admin_allowed_on_any_order(self, action, admin):
        assert authorize(admin, OWNER_ID, action) is Decision.ALLOW

    def test_no_roles_means_no_privilege(self, action):
        claims = Claims(user_id=OTHER_USER_ID)
        assert authorize(claims, OWNER_ID, action) is Decision.DENY

    def test_admin_matched_exactly(self, action):
        claims = Claims(user_id=ADMIN_ID, roles=frozenset({"administrator", "Admin"}))
        assert authorize(claims, OWNER_ID, action) is Decision.DENY


def test_ensure_allowed_raises_forbidden(other_user):
    with pytest.raises(Forbidden):
        ensure_allowed(other_user, OWNER_ID, Action.READ)


def test_ensure_allowed_passes_for_owner(owner):
    ensure_allowed(owner, OWNER_ID, Action.CANCEL)
