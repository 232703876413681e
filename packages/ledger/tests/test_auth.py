"""Tests for the local role policy."""

import pytest

from maintup_ledger.auth import (
    InvalidPasswordError,
    PermissionDeniedError,
    can_mutate,
    demote,
    elevate,
    require_admin,
)
from maintup_ledger.models import UserRole, default_user


def test_only_admin_can_mutate(admin_user):
    assert can_mutate(admin_user)
    assert not can_mutate(default_user())
    assert not can_mutate(None)


def test_require_admin_raises_for_viewer():
    viewer = default_user()

    with pytest.raises(PermissionDeniedError) as exc_info:
        require_admin(viewer, "delete a client")

    assert "delete a client" in str(exc_info.value)
    assert exc_info.value.user is viewer


def test_elevate_with_correct_password():
    admin = elevate(default_user(), "letmein", "letmein")

    assert admin.role == UserRole.ADMIN
    assert admin.email == "admin@maintup.fr"


def test_elevate_with_wrong_password():
    with pytest.raises(InvalidPasswordError):
        elevate(default_user(), "guess", "letmein")


def test_elevate_without_configured_password():
    with pytest.raises(InvalidPasswordError):
        elevate(default_user(), "", None)


def test_elevate_admin_is_noop(admin_user):
    assert elevate(admin_user, None, None) is admin_user


def test_demote(admin_user):
    viewer = demote(admin_user)

    assert viewer.role == UserRole.VIEWER
    assert admin_user.role == UserRole.ADMIN
