"""
Authentication dependencies for FastAPI routes.

``get_current_principal`` resolves the bearer token of a request;
``require_principal`` narrows it to the account kinds a route accepts.
"""

from typing import Callable, Optional

from fastapi import Depends, Header

from formapro.common.auth.exceptions import (
    InsufficientPermissionsError,
    MissingTokenError,
)
from formapro.common.auth.jwt import principal_from_token
from formapro.common.auth.principal import Principal, PrincipalKind
from formapro.common.error_handling import AuthorizationError


def extract_token_from_header(auth_header: Optional[str]) -> Optional[str]:
    """
    Extract a JWT token from an Authorization header.

    Returns:
        The JWT token or None if not found
    """
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        return None

    return parts[1]


async def get_current_principal(authorization: Optional[str] = Header(None)) -> Principal:
    """
    Resolve the principal behind the Authorization header.

    Raises:
        MissingTokenError: If no bearer token is provided
        InvalidTokenError: If the token is invalid
        ExpiredTokenError: If the token has expired
    """
    token = extract_token_from_header(authorization)
    if not token:
        raise MissingTokenError()

    return principal_from_token(token)


def require_principal(*kinds: PrincipalKind) -> Callable:
    """
    Create a dependency accepting only the given account kinds.

    Args:
        *kinds: Accepted kinds

    Returns:
        FastAPI dependency returning the principal
    """
    accepted = set(kinds)

    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.kind not in accepted:
            raise InsufficientPermissionsError()
        return principal

    return dependency


def ensure_employe_access(
    principal: Principal, employe_id: int, employe_entreprise_id: Optional[int] = None
) -> None:
    """Reject a principal acting for an employee outside its reach."""
    if not principal.can_act_as_employe(employe_id, employe_entreprise_id):
        raise AuthorizationError("Access denied", resource=f"employe:{employe_id}")
