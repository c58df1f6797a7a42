"""Shared repository layer (asyncpg)."""

from .shop import ShopRepository
from .timer import TimerRepository
from .timer_view import TimerViewRepository

__all__ = [
    "ShopRepository",
    "TimerRepository",
    "TimerViewRepository",
]
