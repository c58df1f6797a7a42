"""Visitor context and view telemetry models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class VisitorContext:
    """What is known about the storefront visitor for one page load.

    Built fresh per delivery request / render cycle and never mutated.
    """

    shop: str
    page_type: str = ""
    product_id: str = ""
    collection_ids: tuple[str, ...] = ()
    product_tags: tuple[str, ...] = ()
    page_url: str = ""
    country: str = ""
    timer_id: str = ""

    @classmethod
    def build(
        cls,
        shop: str,
        *,
        page_type: str = "",
        product_id: str = "",
        collection_ids: list[str] | tuple[str, ...] = (),
        product_tags: list[str] | tuple[str, ...] = (),
        page_url: str = "",
        country: str = "",
        timer_id: str = "",
    ) -> VisitorContext:
        """Normalise raw request/page values (case, blanks)."""
        return cls(
            shop=shop.strip(),
            page_type=page_type.strip().lower(),
            product_id=product_id.strip(),
            collection_ids=tuple(c.strip() for c in collection_ids if c.strip()),
            product_tags=tuple(t.strip().lower() for t in product_tags if t.strip()),
            page_url=page_url.strip(),
            country=country.strip().upper(),
            timer_id=timer_id.strip(),
        )


@dataclass
class TimerView:
    """One recorded storefront impression of a timer."""

    timer_id: str
    shop: str
    visitor_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    country: str | None = None
    page_url: str | None = None
    page_type: str | None = None
    product_id: str | None = None
    id: str | None = None
    created_at: datetime | None = field(default=None)
