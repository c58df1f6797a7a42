"""Domain exceptions shared by the delivery API and the storefront client."""

from __future__ import annotations

from enum import Enum


class AuthFailure(str, Enum):
    """Why an app-proxy request was rejected. The value is the client-facing message."""

    MISSING_SIGNATURE = "Missing signature parameter"
    MISSING_SHOP = "Missing shop parameter"
    SECRET_NOT_CONFIGURED = "API secret not configured"
    INVALID_SIGNATURE = "Invalid signature"


class ProxyAuthError(Exception):
    """Request could not be verified as coming from the app proxy."""

    def __init__(self, reason: AuthFailure) -> None:
        super().__init__(reason.value)
        self.reason = reason


class TimerNotFoundError(Exception):
    """Timer id does not exist or belongs to another shop."""

    def __init__(self, timer_id: str, shop: str) -> None:
        super().__init__(f"Timer {timer_id} not found for shop {shop}")
        self.timer_id = timer_id
        self.shop = shop


class MissingFieldError(ValueError):
    """A required field is absent from a write request."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required field: {field}")
        self.field = field


class InvalidTimerConfigError(ValueError):
    """A stored timer record cannot be turned into a valid TimerConfig."""
