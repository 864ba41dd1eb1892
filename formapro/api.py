"""
Central API router for the Formapro platform.

Collects the routers of every module under one router that the
application mounts at the API prefix.
"""

import logging
from typing import Dict

from fastapi import APIRouter

from formapro.accounts.router import router as accounts_router
from formapro.evaluations.router import router as evaluations_router
from formapro.training.router import router as training_router

logger = logging.getLogger(__name__)

# Create main API router
main_router = APIRouter()

# Modules registered on the main router, by name
registered_modules: Dict[str, APIRouter] = {}


def register_module(name: str, router: APIRouter) -> None:
    """
    Register a module router with the main API router.

    Args:
        name: Name of the module
        router: FastAPI router for the module
    """
    if name in registered_modules:
        logger.warning(f"Module '{name}' already registered, overwriting")

    main_router.include_router(router)
    registered_modules[name] = router
    logger.info(f"Registered module: {name} with {len(router.routes)} routes")


register_module("accounts", accounts_router)
register_module("training", training_router)
register_module("evaluations", evaluations_router)


@main_router.get("/health", tags=["health"])
async def health() -> Dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}
