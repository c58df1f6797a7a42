"""Wire payloads exchanged between the delivery endpoint and the storefront."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from shared.models.design import CamelModel, DesignConfig
from shared.models.timer import (
    DEFAULT_LABELS,
    CtaType,
    ExpiryPolicy,
    PageSelection,
    ProductSelection,
    Targeting,
    TimerConfig,
    TimerKind,
    TimingMode,
)


class PlacementPayload(CamelModel):
    """Product/page selection sent so the storefront can re-check eligibility.

    Geolocation is not included; it is only decided server-side.
    """

    product_selection: ProductSelection = ProductSelection.ALL
    selected_products: list[str] = Field(default_factory=list)
    selected_collections: list[str] = Field(default_factory=list)
    excluded_products: list[str] = Field(default_factory=list)
    product_tags: list[str] = Field(default_factory=list)
    page_selection: PageSelection | None = None
    specific_pages: list[str] = Field(default_factory=list)

    def to_targeting(self) -> Targeting:
        return Targeting(
            product_selection=self.product_selection,
            selected_products=list(self.selected_products),
            selected_collections=list(self.selected_collections),
            excluded_products=list(self.excluded_products),
            product_tags=list(self.product_tags),
            page_selection=self.page_selection,
            specific_pages=list(self.specific_pages),
        )


class TimerPayload(CamelModel):
    id: str
    type: TimerKind
    name: str = ""

    title: str = ""
    subheading: str | None = None

    timer_type: TimingMode
    end_date: datetime | None = None
    fixed_minutes: int | None = None

    days_label: str = DEFAULT_LABELS["days"]
    hours_label: str = DEFAULT_LABELS["hours"]
    minutes_label: str = DEFAULT_LABELS["minutes"]
    seconds_label: str = DEFAULT_LABELS["seconds"]

    starts_at: datetime | None = None
    on_expiry: ExpiryPolicy = ExpiryPolicy.UNPUBLISH
    ended: bool = False

    cta_type: CtaType | None = None
    button_text: str | None = None
    button_link: str | None = None

    design_config: DesignConfig = Field(default_factory=DesignConfig)
    placement: PlacementPayload = Field(default_factory=PlacementPayload)

    @classmethod
    def from_config(cls, timer: TimerConfig, now: datetime) -> TimerPayload:
        t = timer.targeting
        return cls(
            id=timer.id,
            type=timer.kind,
            name=timer.name,
            title=timer.title,
            subheading=timer.subheading,
            timer_type=timer.timing_mode,
            end_date=timer.end_date,
            fixed_minutes=timer.fixed_minutes,
            days_label=timer.days_label,
            hours_label=timer.hours_label,
            minutes_label=timer.minutes_label,
            seconds_label=timer.seconds_label,
            starts_at=timer.starts_at,
            on_expiry=timer.on_expiry,
            ended=timer.is_ended(now),
            cta_type=timer.cta_type,
            button_text=timer.button_text,
            button_link=timer.button_link,
            design_config=timer.design_config,
            placement=PlacementPayload(
                product_selection=t.product_selection,
                selected_products=t.selected_products,
                selected_collections=t.selected_collections,
                excluded_products=t.excluded_products,
                product_tags=t.product_tags,
                page_selection=t.page_selection,
                specific_pages=t.specific_pages,
            ),
        )


class TimerListResponse(CamelModel):
    timers: list[TimerPayload] = Field(default_factory=list)
