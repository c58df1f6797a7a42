"""API Routers package

Storefront-facing app proxy routes.
"""

from . import proxy_timers_router, proxy_views_router

__all__ = [
    "proxy_timers_router",
    "proxy_views_router",
]
