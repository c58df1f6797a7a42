"""Shared data models for the storefront timer services."""

from .design import DesignConfig
from .payload import PlacementPayload, TimerListResponse, TimerPayload
from .timer import (
    CtaType,
    ExpiryPolicy,
    Geolocation,
    PageSelection,
    ProductSelection,
    Targeting,
    TimerConfig,
    TimerKind,
    TimingMode,
)
from .visitor import TimerView, VisitorContext

__all__ = [
    "CtaType",
    "DesignConfig",
    "ExpiryPolicy",
    "Geolocation",
    "PageSelection",
    "PlacementPayload",
    "ProductSelection",
    "Targeting",
    "TimerConfig",
    "TimerKind",
    "TimerListResponse",
    "TimerPayload",
    "TimerView",
    "TimingMode",
    "VisitorContext",
]
