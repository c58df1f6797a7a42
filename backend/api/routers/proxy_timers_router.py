"""App proxy route serving eligible timers to the storefront.

The storefront calls ``/apps/urgency-timer/timers``; the app proxy forwards it
here with ``shop`` and ``signature`` added. Context parameters sent by the
storefront script: ``type``, ``pageType``, ``productId``, ``collectionIds``
and ``productTags`` (comma-joined), ``pageUrl``, ``country``.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.core.dependencies import get_delivery_service, require_proxy_shop
from api.services.delivery_service import TimerDeliveryService, context_from_query
from shared.models.payload import TimerListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proxy", tags=["storefront"])

CACHE_CONTROL_SUCCESS = "public, max-age=60"


@router.get("/timers")
async def get_storefront_timers(
    request: Request,
    shop: str = Depends(require_proxy_shop),
    service: TimerDeliveryService = Depends(get_delivery_service),
) -> JSONResponse:
    """Timers eligible for the visitor described by the query string."""
    params = request.query_params
    ctx = context_from_query(shop, params)

    try:
        timers = await service.eligible_timers(ctx, params.get("type", ""))
    except Exception as e:
        logger.exception(f"Error fetching timers for {shop} (pageType={ctx.page_type}): {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch timers") from e

    body = TimerListResponse(timers=timers).model_dump(mode="json", by_alias=True)
    return JSONResponse(body, headers={"Cache-Control": CACHE_CONTROL_SUCCESS})
