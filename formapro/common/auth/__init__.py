"""
Authentication Framework

JWT bearer tokens for the three account kinds (admin, entreprise, employe),
password hashing, and the FastAPI dependencies guarding routes.
"""

from formapro.common.auth.jwt import (
    create_access_token,
    validate_token,
    principal_from_token,
    JWTConfig,
    set_jwt_config,
    get_jwt_config,
)

from formapro.common.auth.principal import (
    Principal,
    PrincipalKind,
)

from formapro.common.auth.password import (
    hash_password,
    verify_password,
)

from formapro.common.auth.dependencies import (
    get_current_principal,
    require_principal,
    ensure_employe_access,
)

from formapro.common.auth.exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
    InvalidCredentialsError,
    InsufficientPermissionsError,
)

__all__ = [
    'create_access_token',
    'validate_token',
    'principal_from_token',
    'JWTConfig',
    'set_jwt_config',
    'get_jwt_config',

    'Principal',
    'PrincipalKind',

    'hash_password',
    'verify_password',

    'get_current_principal',
    'require_principal',
    'ensure_employe_access',

    'InvalidTokenError',
    'ExpiredTokenError',
    'MissingTokenError',
    'InvalidCredentialsError',
    'InsufficientPermissionsError',
]
