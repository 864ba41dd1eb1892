"""
Authentication Exceptions

Token and credential failures map to 401, principal mismatches to 403.
"""

from formapro.common.error_handling import AuthenticationError, AuthorizationError


class InvalidTokenError(AuthenticationError):
    """Exception raised when a token is invalid."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class ExpiredTokenError(AuthenticationError):
    """Exception raised when a token has expired."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)


class MissingTokenError(AuthenticationError):
    """Exception raised when a required token is missing."""

    def __init__(self, message: str = "Access denied. Token missing."):
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    """Exception raised when credentials are invalid."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class InsufficientPermissionsError(AuthorizationError):
    """Exception raised when a principal does not have sufficient permissions."""

    def __init__(self, message: str = "Access denied. Wrong account type."):
        super().__init__(message)
