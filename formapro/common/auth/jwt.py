"""
JWT Authentication Module

Token creation and validation for the three account kinds. Every token is
an access token carrying the account kind in its ``type`` claim.
"""

import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Using PyJWT for JWT operations
import jwt

from formapro.common.auth.exceptions import InvalidTokenError, ExpiredTokenError
from formapro.common.auth.principal import Principal, PrincipalKind
from formapro.config import settings


@dataclass
class JWTConfig:
    """
    Configuration for JWT tokens.

    Attributes:
        secret_key: Secret key used for signing tokens
        algorithm: Algorithm used for signing tokens
        access_token_expires: Access token expiration time in minutes
        token_issuer: Issuer of the tokens
    """
    secret_key: str
    algorithm: str = "HS256"
    access_token_expires: int = 24 * 60
    token_issuer: str = "formapro-api"


_jwt_config = JWTConfig(
    secret_key=settings.JWT_SECRET_KEY,
    algorithm=settings.JWT_ALGORITHM,
    access_token_expires=settings.JWT_EXPIRE_MINUTES,
)


def set_jwt_config(config: JWTConfig) -> None:
    """Set the global JWT configuration."""
    global _jwt_config
    _jwt_config = config


def get_jwt_config() -> JWTConfig:
    """Get the current JWT configuration."""
    return _jwt_config


def create_access_token(
    principal: Principal,
    additional_claims: Optional[Dict[str, Any]] = None,
    expires_in: Optional[int] = None
) -> str:
    """
    Create a new JWT access token for a principal.

    Args:
        principal: The account the token is issued to
        additional_claims: Additional claims to include in the token
        expires_in: Token expiration time in minutes (overrides config)

    Returns:
        The JWT access token as a string
    """
    config = get_jwt_config()

    now = datetime.datetime.now(datetime.timezone.utc)
    exp = now + datetime.timedelta(
        minutes=expires_in if expires_in is not None else config.access_token_expires
    )

    subject = principal.username if principal.is_admin else principal.id
    payload: Dict[str, Any] = {
        "sub": str(subject),
        "type": principal.kind.value,
        "exp": exp,
        "iat": now,
        "iss": config.token_issuer,
    }
    if principal.id is not None:
        payload["id"] = principal.id
    if principal.email:
        payload["email"] = principal.email
    if principal.username:
        payload["username"] = principal.username
    if principal.entreprise_id is not None:
        payload["entreprise_id"] = principal.entreprise_id

    if additional_claims:
        payload.update(additional_claims)

    return jwt.encode(payload, config.secret_key, algorithm=config.algorithm)


def validate_token(token: str) -> Dict[str, Any]:
    """
    Validate a JWT token and return its payload.

    Raises:
        InvalidTokenError: If the token is invalid or malformed
        ExpiredTokenError: If the token has expired
    """
    config = get_jwt_config()

    try:
        return jwt.decode(
            token,
            config.secret_key,
            algorithms=[config.algorithm],
            issuer=config.token_issuer,
            options={"require": ["exp", "iat", "sub", "type"]}
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError()
    except jwt.PyJWTError as e:
        raise InvalidTokenError(f"Invalid token: {str(e)}")


def principal_from_token(token: str) -> Principal:
    """Validate a token and build the principal it names."""
    payload = validate_token(token)

    try:
        kind = PrincipalKind(payload["type"])
    except ValueError:
        raise InvalidTokenError(f"Unknown account type: {payload['type']}")

    if kind != PrincipalKind.ADMIN and payload.get("id") is None:
        raise InvalidTokenError("Token does not identify an account")

    return Principal(
        kind=kind,
        id=payload.get("id"),
        email=payload.get("email"),
        username=payload.get("username"),
        entreprise_id=payload.get("entreprise_id"),
    )
