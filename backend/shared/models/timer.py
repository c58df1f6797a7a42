"""Storefront timer configuration model.

Records are owned by the merchant admin and consumed read-only here. Mode
columns are plain strings in the database; ``TimerConfig.from_record`` turns
them into closed enumerations so a mistyped mode is rejected before it can
reach the eligibility filter. JSON columns and the design config are validated
there as well.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import ValidationError

from shared.errors import InvalidTimerConfigError
from shared.models.design import DesignConfig

E = TypeVar("E", bound=Enum)


class TimerKind(str, Enum):
    PRODUCT = "product-page"
    BAR = "top-bottom-bar"


class TimingMode(str, Enum):
    DEADLINE = "countdown"
    SESSION = "fixed"


class ExpiryPolicy(str, Enum):
    UNPUBLISH = "unpublish"
    KEEP = "keep"
    HIDE = "hide"


class CtaType(str, Enum):
    NONE = "no"
    BUTTON = "button"
    CLICKABLE = "clickable"


class ProductSelection(str, Enum):
    ALL = "all"
    SPECIFIC = "specific"
    COLLECTIONS = "collections"
    TAGS = "tags"
    CUSTOM = "custom"


class PageSelection(str, Enum):
    EVERY_PAGE = "every-page"
    HOME = "home-page"
    ALL_PRODUCTS = "all-product-pages"
    ALL_COLLECTIONS = "all-collection-pages"
    CART = "cart-page"
    SPECIFIC_PAGES = "specific-pages"
    SPECIFIC_PRODUCTS = "specific-product-pages"
    SPECIFIC_COLLECTIONS = "specific-collection-pages"
    CUSTOM = "custom"

    @property
    def is_specific(self) -> bool:
        return self.value.startswith("specific-")


class Geolocation(str, Enum):
    ALL_WORLD = "all-world"
    SPECIFIC_COUNTRIES = "specific-countries"


DEFAULT_LABELS = {"days": "Days", "hours": "Hrs", "minutes": "Mins", "seconds": "Secs"}


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _parse_enum(enum_cls: type[E], raw: Any, column: str, default: E | None) -> E | None:
    if raw is None or raw == "":
        return default
    try:
        return enum_cls(str(raw).strip().lower())
    except ValueError:
        raise InvalidTimerConfigError(f"{column}: unknown mode {raw!r}") from None


def _string_list(record: Mapping[str, Any], column: str) -> list[str]:
    raw = record.get(column)
    if not raw:
        return []
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, (list, tuple)):
        raise InvalidTimerConfigError(f"{column}: expected a list, got {type(raw).__name__}")
    return [str(v) for v in raw if v is not None and str(v) != ""]


def _json_object(record: Mapping[str, Any], column: str) -> dict[str, Any]:
    raw = record.get(column)
    if not raw:
        return {}
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, Mapping):
        raise InvalidTimerConfigError(f"{column}: expected an object, got {type(raw).__name__}")
    return dict(raw)


@dataclass
class Targeting:
    """Who and where a timer is shown to."""

    product_selection: ProductSelection = ProductSelection.ALL
    selected_products: list[str] = field(default_factory=list)
    selected_collections: list[str] = field(default_factory=list)
    excluded_products: list[str] = field(default_factory=list)
    product_tags: list[str] = field(default_factory=list)
    page_selection: PageSelection | None = None
    specific_pages: list[str] = field(default_factory=list)
    geolocation: Geolocation = Geolocation.ALL_WORLD
    countries: list[str] = field(default_factory=list)


@dataclass
class TimerConfig:
    id: str
    shop: str
    kind: TimerKind
    title: str
    timing_mode: TimingMode
    name: str = ""
    subheading: str | None = None
    end_date: datetime | None = None
    fixed_minutes: int | None = None
    days_label: str = DEFAULT_LABELS["days"]
    hours_label: str = DEFAULT_LABELS["hours"]
    minutes_label: str = DEFAULT_LABELS["minutes"]
    seconds_label: str = DEFAULT_LABELS["seconds"]
    starts_at: datetime | None = None
    on_expiry: ExpiryPolicy = ExpiryPolicy.UNPUBLISH
    cta_type: CtaType = CtaType.NONE
    button_text: str | None = None
    button_link: str | None = None
    design_config: DesignConfig = field(default_factory=DesignConfig)
    targeting: Targeting = field(default_factory=Targeting)
    is_published: bool = False
    is_active: bool = True
    view_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.timing_mode is TimingMode.DEADLINE and self.end_date is None:
            raise InvalidTimerConfigError(f"timer {self.id}: countdown timer without end date")
        if self.timing_mode is TimingMode.SESSION and not self.fixed_minutes:
            raise InvalidTimerConfigError(f"timer {self.id}: fixed timer without duration")
        if isinstance(self.design_config, Mapping):
            try:
                self.design_config = DesignConfig.model_validate(self.design_config)
            except ValidationError as e:
                raise InvalidTimerConfigError(
                    f"timer {self.id}: invalid design_config ({e.error_count()} errors)"
                ) from e

    def has_started(self, now: datetime) -> bool:
        return self.starts_at is None or as_utc(self.starts_at) <= as_utc(now)

    def is_ended(self, now: datetime) -> bool:
        """Deadline timers end at their end instant; fixed timers end per visitor."""
        if self.timing_mode is not TimingMode.DEADLINE or self.end_date is None:
            return False
        return as_utc(self.end_date) <= as_utc(now)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> TimerConfig:
        """Build from a ``timers`` row, rejecting unknown modes."""
        targeting = Targeting(
            product_selection=_parse_enum(
                ProductSelection, record.get("product_selection"), "product_selection",
                ProductSelection.ALL,
            ),
            selected_products=_string_list(record, "selected_products"),
            selected_collections=_string_list(record, "selected_collections"),
            excluded_products=_string_list(record, "excluded_products"),
            product_tags=_string_list(record, "product_tags"),
            page_selection=_parse_enum(
                PageSelection, record.get("page_selection"), "page_selection", None
            ),
            specific_pages=_string_list(record, "specific_pages"),
            geolocation=_parse_enum(
                Geolocation, record.get("geolocation"), "geolocation", Geolocation.ALL_WORLD
            ),
            countries=_string_list(record, "countries"),
        )
        kind = _parse_enum(TimerKind, record.get("type"), "type", None)
        timing_mode = _parse_enum(TimingMode, record.get("timer_type"), "timer_type", None)
        if kind is None or timing_mode is None:
            raise InvalidTimerConfigError(f"timer {record.get('id')}: missing type or timer_type")

        return cls(
            id=str(record["id"]),
            shop=record["shop"],
            name=record.get("name") or "",
            kind=kind,
            title=record.get("title") or "",
            subheading=record.get("subheading"),
            timing_mode=timing_mode,
            end_date=record.get("end_date"),
            fixed_minutes=record.get("fixed_minutes"),
            days_label=record.get("days_label") or DEFAULT_LABELS["days"],
            hours_label=record.get("hours_label") or DEFAULT_LABELS["hours"],
            minutes_label=record.get("minutes_label") or DEFAULT_LABELS["minutes"],
            seconds_label=record.get("seconds_label") or DEFAULT_LABELS["seconds"],
            starts_at=record.get("starts_at"),
            on_expiry=_parse_enum(
                ExpiryPolicy, record.get("on_expiry"), "on_expiry", ExpiryPolicy.UNPUBLISH
            ),
            cta_type=_parse_enum(CtaType, record.get("cta_type"), "cta_type", CtaType.NONE),
            button_text=record.get("button_text"),
            button_link=record.get("button_link"),
            design_config=_json_object(record, "design_config"),
            targeting=targeting,
            is_published=bool(record.get("is_published", False)),
            is_active=bool(record.get("is_active", True)),
            view_count=int(record.get("view_count") or 0),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )
