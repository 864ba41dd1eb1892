"""
Accounts Router

Login endpoints for the platform administrator, companies and employees,
and the identity of the current token. Failed logins are throttled per
client IP through the limiter attached to ``app.state``.
"""

import secrets
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import async_sessionmaker

from formapro.common.auth import (
    InvalidCredentialsError,
    Principal,
    PrincipalKind,
    create_access_token,
    get_current_principal,
    verify_password,
)
from formapro.common.db.session import session_factory
from formapro.common.logger import get_logger
from formapro.common.rate_limiter import LoginThrottle
from formapro.config import settings
from formapro.training.repository import EmployeRepository, EntrepriseRepository

logger = get_logger("accounts.router")

router = APIRouter(tags=["auth"])


class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)


def get_login_throttle(request: Request) -> LoginThrottle:
    return request.app.state.login_throttle


async def _guarded_login(request: Request, throttle: LoginThrottle, authenticate) -> Dict[str, Any]:
    """
    Run ``authenticate`` behind the failed-login throttle.

    A refused client gets a 429 before credentials are looked at; a failed
    attempt is counted; a successful one clears the counter.
    """
    key = throttle.client_key(request)
    await throttle.ensure_allowed(key)

    try:
        result = await authenticate()
    except InvalidCredentialsError:
        failures = await throttle.register_failure(key)
        logger.warning(f"Failed login from {key} ({failures} in window)")
        raise

    await throttle.reset(key)
    return result


@router.post("/admin/login")
async def admin_login(
    body: AdminLoginRequest,
    request: Request,
    throttle: LoginThrottle = Depends(get_login_throttle),
) -> Dict[str, Any]:
    async def authenticate() -> Dict[str, Any]:
        valid = (
            secrets.compare_digest(body.username, settings.ADMIN_USERNAME)
            and secrets.compare_digest(body.password, settings.ADMIN_PASSWORD)
        )
        if not valid:
            raise InvalidCredentialsError("Invalid credentials")

        principal = Principal(kind=PrincipalKind.ADMIN, username=body.username)
        logger.info(f"Admin {body.username} logged in")
        return {"success": True, "token": create_access_token(principal), "username": body.username}

    return await _guarded_login(request, throttle, authenticate)


@router.post("/entreprise/login")
async def entreprise_login(
    body: LoginRequest,
    request: Request,
    throttle: LoginThrottle = Depends(get_login_throttle),
    factory: async_sessionmaker = Depends(session_factory),
) -> Dict[str, Any]:
    async def authenticate() -> Dict[str, Any]:
        entreprise = await EntrepriseRepository(factory).get_by_email(body.email)
        if entreprise is None or not verify_password(
            body.password, entreprise.password_hash, entreprise.password_salt
        ):
            raise InvalidCredentialsError()

        principal = Principal(
            kind=PrincipalKind.ENTREPRISE,
            id=entreprise.id,
            email=entreprise.email,
            entreprise_id=entreprise.id,
        )
        logger.info(f"Entreprise {entreprise.id} logged in")
        return {
            "success": True,
            "entreprise": entreprise.to_dict(),
            "token": create_access_token(principal),
            "message": "Login successful",
        }

    return await _guarded_login(request, throttle, authenticate)


@router.post("/employe/login")
async def employe_login(
    body: LoginRequest,
    request: Request,
    throttle: LoginThrottle = Depends(get_login_throttle),
    factory: async_sessionmaker = Depends(session_factory),
) -> Dict[str, Any]:
    async def authenticate() -> Dict[str, Any]:
        employe = await EmployeRepository(factory).get_by_email(body.email)
        if employe is None or not verify_password(
            body.password, employe.password_hash, employe.password_salt
        ):
            raise InvalidCredentialsError()

        principal = Principal(
            kind=PrincipalKind.EMPLOYE,
            id=employe.id,
            email=employe.email,
            entreprise_id=employe.entreprise_id,
        )
        logger.info(f"Employe {employe.id} logged in")
        return {
            "success": True,
            "employe": employe.to_dict(),
            "token": create_access_token(principal),
            "message": "Login successful",
        }

    return await _guarded_login(request, throttle, authenticate)


@router.get("/auth/me")
async def current_account(principal: Principal = Depends(get_current_principal)) -> Dict[str, Any]:
    return {"success": True, "principal": principal.to_dict()}


__all__ = ["router"]
