"""Tests for the authorization guard (pure decisions plus principal resolution)."""

import pytest
from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import PermissionDenied

from bookings.access import (
    Decision,
    Principal,
    authorize,
    authorize_user_deletion,
    is_admin,
    is_owner,
    principal_from_user,
    require,
)


ADMIN = Principal(id="1", roles=frozenset({"Admin"}))
USER = Principal(id="2")
OTHER = Principal(id="3", roles=frozenset({"Staff"}))


class TestAuthorize:
    def test_missing_principal_is_always_denied(self):
        assert authorize(None) is Decision.DENY
        assert authorize(None, resource_owner_id="2") is Decision.DENY
        assert authorize(None, required_role="Admin") is Decision.DENY

    def test_authenticated_principal_allowed_without_requirements(self):
        assert authorize(USER) is Decision.ALLOW

    def test_required_role_missing_is_denied(self):
        assert authorize(USER, required_role="Admin") is Decision.DENY
        assert authorize(OTHER, required_role="Admin") is Decision.DENY

    def test_required_role_present_is_allowed(self):
        assert authorize(ADMIN, required_role="Admin") is Decision.ALLOW

    def test_owner_is_allowed(self):
        assert authorize(USER, resource_owner_id="2") is Decision.ALLOW
        # Integer primary keys compare against the string identity.
        assert authorize(USER, resource_owner_id=2) is Decision.ALLOW

    def test_non_owner_is_denied(self):
        assert authorize(USER, resource_owner_id="3") is Decision.DENY
        assert authorize(OTHER, resource_owner_id=2) is Decision.DENY

    def test_admin_is_allowed_on_any_resource(self):
        assert authorize(ADMIN, resource_owner_id="99") is Decision.ALLOW

    def test_role_and_ownership_both_apply(self):
        assert authorize(USER, resource_owner_id="2", required_role="Admin") is Decision.DENY


class TestUserDeletion:
    def test_self_deletion_is_flagged(self):
        assert authorize_user_deletion(ADMIN, "1") is Decision.SELF
        assert authorize_user_deletion(ADMIN, 1) is Decision.SELF

    def test_admin_may_delete_others(self):
        assert authorize_user_deletion(ADMIN, "2") is Decision.ALLOW

    def test_non_admin_is_denied(self):
        assert authorize_user_deletion(USER, "3") is Decision.DENY
        assert authorize_user_deletion(USER, "2") is Decision.DENY

    def test_missing_principal_is_denied(self):
        assert authorize_user_deletion(None, "2") is Decision.DENY


class TestPredicates:
    def test_is_owner_requires_both_sides(self):
        assert not is_owner(None, "2")
        assert not is_owner(USER, None)
        assert is_owner(USER, "2")

    def test_is_admin(self):
        assert is_admin(ADMIN)
        assert not is_admin(USER)
        assert not is_admin(None)

    def test_require_raises_only_on_deny(self):
        require(Decision.ALLOW)
        require(Decision.SELF)
        with pytest.raises(PermissionDenied):
            require(Decision.DENY, "nope")


@pytest.mark.django_db
class TestPrincipalFromUser:
    def test_anonymous_user_has_no_principal(self):
        assert principal_from_user(AnonymousUser()) is None
        assert principal_from_user(None) is None

    def test_roles_come_from_groups(self, admin_user, alice):
        assert principal_from_user(admin_user).roles == frozenset({"Admin"})
        assert principal_from_user(alice).roles == frozenset()
        assert principal_from_user(alice).id == str(alice.pk)

    def test_superuser_is_admin(self, django_user_model):
        root = django_user_model.objects.create_superuser("root", "root@example.com", "pw-root-123")
        assert is_admin(principal_from_user(root))
