"""Bearer token gate for mutating routes."""

import hmac
from collections.abc import Callable

from fastapi import Header, HTTPException, status

from maintup_ledger.config.settings import FlatSettings


def bearer_token_guard(settings: FlatSettings) -> Callable[..., None]:
    """Build a dependency comparing the Authorization header to the API token.

    When no token is configured every request passes.
    """
    token = settings.token_value()

    def verify(authorization: str | None = Header(default=None)) -> None:
        if token is None:
            return
        expected = f"Bearer {token}"
        if authorization is None or not hmac.compare_digest(
            authorization.encode(), expected.encode()
        ):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Bearer"},
            )

    return verify
