"""Storefront side of the urgency timers: context detection, fetch, render."""

from .client import TimerProxyClient
from .dom import Element, StorefrontPage
from .renderer import CountdownWidget, StorefrontRenderer, WidgetState
from .storage import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "CountdownWidget",
    "Element",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "StorefrontPage",
    "StorefrontRenderer",
    "TimerProxyClient",
    "WidgetState",
]
