"""Services layer - Business logic

Services are initialized with their collaborators and accessed through
dependency injection (see ``api.core.dependencies``).
"""

from .delivery_service import TimerDeliveryService
from .proxy_auth import ProxyAuthenticator, ProxyValidationResult, verify_proxy_request
from .view_service import ViewService

__all__ = [
    "ProxyAuthenticator",
    "ProxyValidationResult",
    "TimerDeliveryService",
    "ViewService",
    "verify_proxy_request",
]
