"""Mount countdown widgets on a storefront page and keep them ticking.

Each mounted widget owns one asyncio task that redraws it every tick until
its countdown ends or it is unmounted. Product timers go into the
``.urgency-timer-root`` anchors placed by the theme; bar timers are appended
to the page body.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from shared.eligibility import matches_page_selection, matches_product_selection
from shared.models.design import DesignConfig
from shared.models.payload import TimerPayload
from shared.models.timer import CtaType, ExpiryPolicy, TimerKind
from shared.models.visitor import VisitorContext
from storefront.client import TimerProxyClient
from storefront.context import ROOT_CLASS, detect_context
from storefront.countdown import Countdown, SessionClock, remaining_seconds
from storefront.dom import ClickEvent, Element, StorefrontPage
from storefront.storage import KeyValueStore, dismiss_key

logger = logging.getLogger(__name__)

UNITS = ("days", "hours", "minutes", "seconds")

STYLE_ELEMENT_ID = "utimer-minimal-style"
BAR_BACKGROUND = "#f9fafb"
BAR_TEXT_COLOR = "#111827"

MINIMAL_CSS = """
.utimer-container { padding: 12px; border: 1px solid #e5e5e5; border-radius: 6px; background: #fff; color: #1f2937; max-width: 720px; }
.utimer-title { font-size: 18px; font-weight: 600; margin-bottom: 4px; }
.utimer-sub { font-size: 14px; color: #4b5563; margin-bottom: 8px; }
.utimer-countdown { display: flex; gap: 12px; align-items: center; }
.utimer-unit { display: flex; flex-direction: column; align-items: center; min-width: 56px; }
.utimer-number { font-size: 22px; font-weight: 700; }
.utimer-label { font-size: 12px; color: #6b7280; }
.utimer-cta { margin-top: 10px; }
.utimer-button { display: inline-block; padding: 8px 12px; background: #111827; color: #fff; border-radius: 4px; text-decoration: none; }
.utimer-bar { position: fixed; left: 0; right: 0; padding: 10px 16px; display: flex; justify-content: center; align-items: center; gap: 16px; z-index: 2147483000; }
.utimer-bar.top { top: 0; }
.utimer-bar.bottom { bottom: 0; }
.utimer-bar .utimer-close { position: absolute; right: 12px; top: 8px; cursor: pointer; font-size: 18px; line-height: 1; }
""".strip()


class WidgetState(str, Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    ENDED_HIDDEN = "ended_hidden"
    ENDED_VISIBLE = "ended_visible"


def px(value: float) -> str:
    return f"{value:g}px"


@dataclass
class WidgetParts:
    container: Element
    title: Element
    subheading: Element | None
    numbers: dict[str, Element]
    labels: dict[str, Element]
    button: Element | None = None

    def digits(self) -> str:
        return ":".join(self.numbers[unit].text for unit in UNITS)


def _font(el: Element, size: float | None, color: str | None, weight: str | None, family: str | None) -> None:
    if size is not None:
        el.style["font-size"] = px(size)
    if color:
        el.style["color"] = color
    if weight:
        el.style["font-weight"] = weight
    if family:
        el.style["font-family"] = family


def background_css(design: DesignConfig) -> str | None:
    if design.background_type == "gradient" and design.gradient_start_color and design.gradient_end_color:
        return f"linear-gradient(90deg, {design.gradient_start_color}, {design.gradient_end_color})"
    return design.background_color


def style_button(button: Element, design: DesignConfig) -> None:
    _font(button, design.button_font_size, design.button_color, None, None)
    if design.button_background_color:
        button.style["background"] = design.button_background_color
    if design.button_corner_radius is not None:
        button.style["border-radius"] = px(design.button_corner_radius)
    if design.button_border_size:
        button.style["border"] = f"{px(design.button_border_size)} solid {design.button_border_color or 'transparent'}"


def apply_design(parts: WidgetParts, design: DesignConfig) -> None:
    """Apply merchant style parameters to an already built widget."""
    box = parts.container

    if background := background_css(design):
        box.style["background"] = background
    if design.border_size is not None:
        box.style["border"] = f"{px(design.border_size)} solid {design.border_color or 'transparent'}"
    if design.border_radius is not None:
        box.style["border-radius"] = px(design.border_radius)
    for prop, value in (
        ("padding-top", design.padding_top),
        ("padding-bottom", design.padding_bottom),
        ("margin-top", design.margin_top),
        ("margin-bottom", design.margin_bottom),
    ):
        if value is not None:
            box.style[prop] = px(value)

    _font(parts.title, design.title_size, design.title_color, design.title_font_weight, design.title_font_family)
    if parts.subheading is not None:
        _font(
            parts.subheading,
            design.subheading_size,
            design.subheading_color,
            design.subheading_font_weight,
            design.subheading_font_family,
        )
    for el in parts.numbers.values():
        _font(el, design.timer_size, design.timer_color, design.timer_font_weight, design.timer_font_family)
    for el in parts.labels.values():
        _font(el, design.legend_size, design.legend_color, design.legend_font_weight, design.legend_font_family)
    if parts.button is not None:
        style_button(parts.button, design)


def _button_element(timer: TimerPayload) -> Element | None:
    if timer.cta_type is CtaType.BUTTON and timer.button_text and timer.button_link:
        return Element("a", ["utimer-button"], text=timer.button_text, attrs={"href": timer.button_link})
    return None


def build_countdown_element(timer: TimerPayload, *, with_button: bool = True) -> WidgetParts:
    container = Element("div", ["utimer-container"])
    title = container.append(Element("div", ["utimer-title"], text=timer.title))

    subheading = None
    if timer.subheading:
        subheading = container.append(Element("div", ["utimer-sub"], text=timer.subheading))

    countdown = container.append(Element("div", ["utimer-countdown"]))
    label_text = {
        "days": timer.days_label,
        "hours": timer.hours_label,
        "minutes": timer.minutes_label,
        "seconds": timer.seconds_label,
    }
    numbers: dict[str, Element] = {}
    labels: dict[str, Element] = {}
    for unit in UNITS:
        unit_el = countdown.append(Element("div", ["utimer-unit"]))
        numbers[unit] = unit_el.append(Element("span", ["utimer-number"], text="00"))
        labels[unit] = unit_el.append(Element("span", ["utimer-label"], text=label_text[unit]))

    button = _button_element(timer) if with_button else None
    if button is not None:
        container.append(Element("div", ["utimer-cta"])).append(button)

    parts = WidgetParts(container, title, subheading, numbers, labels, button)
    apply_design(parts, timer.design_config)
    return parts


def ensure_stylesheet(page: StorefrontPage) -> None:
    if page.head.find_by_id(STYLE_ELEMENT_ID) is None:
        page.head.append(Element("style", text=MINIMAL_CSS, attrs={"id": STYLE_ELEMENT_ID}))


class CountdownWidget:
    """One mounted timer and the task that ticks it."""

    def __init__(
        self,
        timer: TimerPayload,
        parts: WidgetParts,
        mount: Element,
        clock: SessionClock,
        now: Callable[[], datetime],
        tick_interval: float = 1.0,
    ) -> None:
        self.timer = timer
        self.parts = parts
        self.mount = mount
        self.clock = clock
        self.now = now
        self.tick_interval = tick_interval
        self.state = WidgetState.INITIALIZING
        self.remaining = 0
        self._task: asyncio.Task | None = None
        self._stopped = False

    @property
    def ended(self) -> bool:
        return self.state in (WidgetState.ENDED_HIDDEN, WidgetState.ENDED_VISIBLE)

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def tick(self) -> WidgetState:
        """Recompute remaining time and redraw; ends the widget at zero."""
        if self.ended or self._stopped:
            return self.state

        self.remaining = 0 if self.timer.ended else remaining_seconds(self.timer, self.now(), self.clock)
        for unit, text in Countdown.from_seconds(self.remaining).padded().items():
            self.parts.numbers[unit].text = text

        if self.state is WidgetState.INITIALIZING:
            self.state = WidgetState.RUNNING
        if self.remaining <= 0:
            self._end()
        return self.state

    def start(self) -> None:
        self.tick()
        if self.state is WidgetState.RUNNING:
            self._task = asyncio.create_task(self._run(), name=f"utimer-{self.timer.id}")

    async def _run(self) -> None:
        while not (self.ended or self._stopped):
            await asyncio.sleep(self.tick_interval)
            self.tick()

    def _end(self) -> None:
        if self.timer.on_expiry is ExpiryPolicy.KEEP:
            self.state = WidgetState.ENDED_VISIBLE
        else:
            self.state = WidgetState.ENDED_HIDDEN
            self.mount.remove()
        logger.debug(f"Timer {self.timer.id} ended ({self.state.value})")
        self.stop()

    def stop(self) -> None:
        """Cancel the tick task; later calls are no-ops."""
        if self._stopped:
            return
        self._stopped = True
        task = self._task
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            # Ending from inside the tick loop: the loop exits on its own
            if task is not current:
                task.cancel()

    def unmount(self) -> None:
        self.stop()
        self.mount.remove()


def client_filter(timers: list[TimerPayload], ctx: VisitorContext) -> list[TimerPayload]:
    """Re-check placement locally; the server has already applied the full rules."""
    eligible = []
    for timer in timers:
        targeting = timer.placement.to_targeting()
        if timer.type is TimerKind.PRODUCT:
            if not matches_product_selection(targeting, ctx):
                continue
        elif timer.type is TimerKind.BAR:
            if not matches_page_selection(targeting, ctx.page_type, ctx.page_url):
                continue
            if ctx.page_type == "product" and ctx.product_id and not matches_product_selection(targeting, ctx):
                continue
        eligible.append(timer)
    return eligible


@dataclass
class StorefrontRenderer:
    """Detects context, fetches timers once and mounts them on *page*."""

    page: StorefrontPage
    client: TimerProxyClient
    store: KeyValueStore
    now: Callable[[], datetime] = field(default=lambda: datetime.now(UTC))
    tick_interval: float = 1.0
    widgets: list[CountdownWidget] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.clock = SessionClock(self.store)

    async def run(self) -> list[CountdownWidget]:
        ctx = detect_context(self.page)
        if not ctx.shop:
            logger.debug("Shop domain not available; timers will not load")
            return []

        timers = await self.client.fetch_timers(ctx)
        if not timers:
            logger.debug("No timers available for this context")
            return []

        eligible = client_filter(timers, ctx)
        logger.debug(f"{len(eligible)} of {len(timers)} timer(s) left after client-side filtering")

        mounted = self.mount_product_timers(eligible) + self.mount_bars(eligible)
        await asyncio.gather(*(self.client.track_view(ctx, w.timer) for w in mounted))
        return mounted

    def _widget(self, timer: TimerPayload, parts: WidgetParts, mount: Element) -> CountdownWidget:
        ensure_stylesheet(self.page)
        widget = CountdownWidget(timer, parts, mount, self.clock, self.now, self.tick_interval)
        self.widgets.append(widget)
        return widget

    def mount_product_timers(self, timers: list[TimerPayload]) -> list[CountdownWidget]:
        mounted = []
        for root in self.page.body.find_all(ROOT_CLASS):
            candidates = [t for t in timers if t.type is TimerKind.PRODUCT]
            if wanted := root.data("timer-id"):
                candidates = [t for t in candidates if t.id == wanted]
            if not candidates:
                logger.debug("No product timer for this anchor")
                continue

            timer = candidates[0]
            parts = build_countdown_element(timer)
            mount = parts.container
            if timer.cta_type is CtaType.CLICKABLE and timer.button_link:
                mount = Element(
                    "a",
                    attrs={"href": timer.button_link},
                    style={"text-decoration": "none", "color": "inherit"},
                )
                mount.append(parts.container)

            root.clear()
            root.append(mount)
            widget = self._widget(timer, parts, mount)
            widget.start()
            mounted.append(widget)
        return mounted

    def mount_bars(self, timers: list[TimerPayload]) -> list[CountdownWidget]:
        mounted = []
        for timer in timers:
            if timer.type is not TimerKind.BAR:
                continue
            if self.store.get(dismiss_key(timer.id)):
                logger.debug(f"Bar timer {timer.id} was dismissed, skipping")
                continue

            bar, parts = self._build_bar(timer)
            self.page.body.append(bar)
            widget = self._widget(timer, parts, bar)
            self._wire_bar(widget)
            widget.start()
            mounted.append(widget)
        return mounted

    def _build_bar(self, timer: TimerPayload) -> tuple[Element, WidgetParts]:
        design = timer.design_config
        position = "bottom" if (design.positioning or "top").lower() == "bottom" else "top"
        bar = Element(
            "div",
            ["utimer-bar", position],
            attrs={"data-timer-id": timer.id},
            style={
                "background": background_css(design) or BAR_BACKGROUND,
                "color": design.timer_color or BAR_TEXT_COLOR,
            },
        )
        bar.append(Element("span", ["utimer-close"], text="×"))

        parts = build_countdown_element(timer, with_button=False)
        parts.container.style.update(
            {"box-shadow": "none", "border": "none", "background": "transparent", "margin": "0"}
        )
        bar.append(parts.container)

        if (button := _button_element(timer)) is not None:
            style_button(button, design)
            bar.append(button)
            parts.button = button
        return bar, parts

    def _wire_bar(self, widget: CountdownWidget) -> None:
        timer, bar = widget.timer, widget.mount
        close = bar.find("utimer-close")

        def on_close(event: ClickEvent) -> None:
            self.store.set(dismiss_key(timer.id), "1")
            widget.unmount()

        close.on_click(on_close)

        if timer.cta_type is CtaType.CLICKABLE and timer.button_link:
            bar.style["cursor"] = "pointer"
            link = timer.button_link

            def on_bar_click(event: ClickEvent) -> None:
                if event.target.has_class("utimer-close"):
                    return
                self.page.navigate(link)

            bar.on_click(on_bar_click)

    def stop(self) -> None:
        for widget in self.widgets:
            widget.stop()
