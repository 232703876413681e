"""Role policy for the local session user.

Only admins may mutate ledger data. The check lives on the client side; the
API never sees the user, so this is an affordance rule, not a security
boundary.
"""

import hmac

import structlog

from maintup_ledger.models import User, UserRole

logger = structlog.get_logger(__name__)


class PermissionDeniedError(Exception):
    """The current user may not perform this action."""

    def __init__(self, message: str, user: User | None = None):
        super().__init__(message)
        self.user = user


class InvalidPasswordError(Exception):
    """The admin password did not match."""

    pass


def can_mutate(user: User | None) -> bool:
    """Whether ``user`` may create, update or delete entities."""
    return user is not None and user.role == UserRole.ADMIN


def require_admin(user: User | None, action: str = "modify data") -> None:
    if not can_mutate(user):
        raise PermissionDeniedError(f"Admin role required to {action}", user=user)


def elevate(user: User, password: str | None, admin_password: str | None) -> User:
    """Return an admin copy of ``user`` when ``password`` matches.

    Raises:
        InvalidPasswordError: no admin password is configured or it differs.
    """
    if user.role == UserRole.ADMIN:
        return user
    if not admin_password or password is None or not hmac.compare_digest(
        password.encode(), admin_password.encode()
    ):
        logger.warning("admin_elevation_rejected", user_id=user.id)
        raise InvalidPasswordError("Incorrect admin password")
    logger.info("admin_elevation_granted", user_id=user.id)
    return user.model_copy(update={"role": UserRole.ADMIN})


def demote(user: User) -> User:
    return user.model_copy(update={"role": UserRole.VIEWER})
