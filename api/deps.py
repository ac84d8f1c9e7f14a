"""Request-scoped dependencies shared by the API routers."""

from fastapi import Header

from core.exceptions import InvalidRequestError


def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """Caller identity, set by the authenticating gateway in front of the service."""
    user_id = x_user_id.strip()
    if not user_id:
        raise InvalidRequestError("X-User-Id header must not be empty", field="X-User-Id")
    return user_id
