"""Dependency injection utilities for FastAPI"""

import logging

import asyncpg
from fastapi import Depends, HTTPException, Request

from api.core.config import get_settings
from api.core.database import get_database_manager
from api.services import ProxyAuthenticator, TimerDeliveryService, ViewService
from shared.errors import ProxyAuthError
from shared.repositories import ShopRepository, TimerRepository, TimerViewRepository

logger = logging.getLogger(__name__)


# ============================================
# Infrastructure Dependencies
# ============================================


def get_db_pool() -> asyncpg.Pool:
    db_manager = get_database_manager()
    if not db_manager.is_connected:
        raise HTTPException(status_code=503, detail="Database not ready")
    return db_manager.pool


# ============================================
# Service Dependencies
# ============================================


def get_proxy_authenticator() -> ProxyAuthenticator:
    """Get ProxyAuthenticator configured from settings"""
    settings = get_settings()
    return ProxyAuthenticator(
        settings.shopify_api_secret,
        allow_unsigned=settings.is_development,
    )


def get_delivery_service(pool: asyncpg.Pool = Depends(get_db_pool)) -> TimerDeliveryService:
    return TimerDeliveryService(TimerRepository(pool))


def get_view_service(pool: asyncpg.Pool = Depends(get_db_pool)) -> ViewService:
    return ViewService(
        TimerRepository(pool),
        TimerViewRepository(pool),
        ShopRepository(pool),
    )


# ============================================
# Authentication Dependencies
# ============================================


async def require_proxy_shop(
    request: Request,
    authenticator: ProxyAuthenticator = Depends(get_proxy_authenticator),
) -> str:
    """Return the verified shop domain of an app proxy request (401 otherwise)"""
    try:
        return authenticator.authenticate(str(request.url), request.url.query)
    except ProxyAuthError as e:
        raise HTTPException(
            status_code=401,
            detail=e.reason.value,
            headers={"Cache-Control": "no-store"},
        ) from e
