"""App proxy route recording timer views from the storefront."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from api.core.dependencies import get_view_service, require_proxy_shop
from api.services.view_service import ViewService, build_view
from shared.errors import MissingFieldError, TimerNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proxy", tags=["storefront"])


class ViewRecordedResponse(BaseModel):
    success: bool = True
    id: str


async def _read_payload(request: Request) -> dict[str, Any]:
    """JSON or form-encoded body as a dict (400 if it cannot be parsed)."""
    content_type = request.headers.get("content-type", "")
    try:
        if "application/json" in content_type:
            payload = await request.json()
        else:
            form = await request.form()
            payload = {key: value for key, value in form.items() if isinstance(value, str)}
    except (ValueError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail="Invalid request body") from e

    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid request body")
    return payload


@router.post("/views", response_model=ViewRecordedResponse)
async def record_timer_view(
    request: Request,
    shop: str = Depends(require_proxy_shop),
    service: ViewService = Depends(get_view_service),
) -> ViewRecordedResponse:
    """Record one impression of a timer owned by the calling shop."""
    payload = await _read_payload(request)

    try:
        view = build_view(shop, payload, request.headers)
    except MissingFieldError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        view_id = await service.record(view)
    except TimerNotFoundError as e:
        raise HTTPException(status_code=404, detail="Timer not found for this shop") from e
    except Exception as e:
        logger.exception(f"Error recording view of timer {view.timer_id} for {shop}: {e}")
        raise HTTPException(status_code=500, detail="Failed to record view") from e

    return ViewRecordedResponse(id=view_id)
