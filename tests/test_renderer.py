"""
Tests for mounting and ticking countdown widgets
"""

import asyncio
from datetime import timedelta

import pytest

from fakes import NOW, SHOP, FakeClock, FakeProxyClient, make_timer, payload, targeting
from shared.models.design import DesignConfig
from shared.models.timer import CtaType, ExpiryPolicy, PageSelection, TimerKind, TimingMode
from storefront.context import ROOT_CLASS
from storefront.dom import Element, StorefrontPage
from storefront.renderer import (
    STYLE_ELEMENT_ID,
    StorefrontRenderer,
    WidgetState,
    apply_design,
    build_countdown_element,
)
from storefront.storage import MemoryStore, dismiss_key

HOME = "https://demo.myshop.test/"


def home_page():
    return StorefrontPage(url=HOME, globals={"Shopify": {"shop": SHOP}})


def product_page(**anchor_data):
    page = StorefrontPage(url="https://demo.myshop.test/products/mug")
    attrs = {"data-shop-domain": SHOP, "data-product-id": "p1"}
    attrs.update({f"data-{k.replace('_', '-')}": v for k, v in anchor_data.items()})
    page.body.append(Element("div", [ROOT_CLASS], attrs=attrs))
    return page


def bar(**overrides):
    overrides.setdefault("kind", TimerKind.BAR)
    overrides.setdefault("id", "bar1")
    return payload(make_timer(**overrides))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
async def render(clock, store):
    """Run a renderer; widgets are stopped at teardown."""
    renderers = []

    async def _render(page, timers, client=None):
        client = client or FakeProxyClient(timers)
        renderer = StorefrontRenderer(page, client, store, now=clock, tick_interval=0.01)
        renderers.append(renderer)
        widgets = await renderer.run()
        return renderer, widgets

    yield _render
    for renderer in renderers:
        renderer.stop()
    await asyncio.sleep(0)


class TestBars:
    async def test_running_bar_mounted_with_digits(self, render):
        page = home_page()
        _, widgets = await render(page, [bar(end_date=NOW + timedelta(hours=1, seconds=5))])

        widget = widgets[0]
        assert widget.state is WidgetState.RUNNING
        assert widget.parts.digits() == "00:01:00:05"
        assert widget.mount in page.body.children
        assert widget.mount.has_class("top")
        assert widget.mount.style["background"] == "#f9fafb"
        assert widget.mount.style["color"] == "#111827"

    async def test_ended_keep_frozen_and_visible(self, render):
        page = home_page()
        timer = bar(end_date=NOW - timedelta(hours=2), on_expiry=ExpiryPolicy.KEEP)
        _, widgets = await render(page, [timer])

        widget = widgets[0]
        assert widget.state is WidgetState.ENDED_VISIBLE
        assert widget.parts.digits() == "00:00:00:00"
        assert widget.mount in page.body.children
        assert widget.task is None

    async def test_ended_flag_wins_over_clock(self, render):
        timer = bar(end_date=NOW + timedelta(hours=1), on_expiry=ExpiryPolicy.KEEP)
        timer = timer.model_copy(update={"ended": True})
        _, widgets = await render(home_page(), [timer])
        assert widgets[0].state is WidgetState.ENDED_VISIBLE
        assert widgets[0].parts.digits() == "00:00:00:00"

    @pytest.mark.parametrize("policy", [ExpiryPolicy.HIDE, ExpiryPolicy.UNPUBLISH])
    async def test_ended_hide_removed(self, render, policy):
        page = home_page()
        _, widgets = await render(page, [bar(end_date=NOW - timedelta(seconds=1), on_expiry=policy)])

        assert widgets[0].state is WidgetState.ENDED_HIDDEN
        assert page.body.find("utimer-bar") is None

    async def test_bottom_position_and_design(self, render):
        design = {"positioning": "bottom", "backgroundColor": "#000000", "timerColor": "#ffffff"}
        _, widgets = await render(home_page(), [bar(design_config=design)])
        mount = widgets[0].mount
        assert mount.has_class("bottom")
        assert mount.style["background"] == "#000000"
        assert mount.style["color"] == "#ffffff"

    async def test_dismiss_persisted_and_suppresses_remount(self, render, store):
        page = home_page()
        _, widgets = await render(page, [bar()])
        widget = widgets[0]

        page.click(widget.mount.find("utimer-close"))

        assert store.get(dismiss_key("bar1")) == "1"
        assert page.body.find("utimer-bar") is None
        assert widget.task.cancelling() == 1

        client = FakeProxyClient([bar()])
        next_page = home_page()
        _, remounted = await render(next_page, [], client=client)
        assert remounted == []
        assert next_page.body.find("utimer-bar") is None
        assert client.views == []

    async def test_clickable_bar_navigates_except_close(self, render):
        page = home_page()
        timer = bar(cta_type=CtaType.CLICKABLE, button_link="/collections/sale")
        _, widgets = await render(page, [timer])
        mount = widgets[0].mount

        page.click(mount.find("utimer-number"))
        assert page.location == "/collections/sale"

        page.location = HOME
        page.click(mount.find("utimer-close"))
        assert page.location == HOME

    async def test_button_cta_appended_once(self, render):
        timer = bar(cta_type=CtaType.BUTTON, button_text="Shop now", button_link="/sale")
        _, widgets = await render(home_page(), [timer])
        buttons = widgets[0].mount.find_all("utimer-button")
        assert len(buttons) == 1
        assert buttons[0].attrs["href"] == "/sale"

    async def test_page_selection_rechecked_client_side(self, render):
        timer = bar(targeting=targeting(page_selection=PageSelection.CART))
        client = FakeProxyClient([timer])
        _, widgets = await render(home_page(), [], client=client)
        assert widgets == []
        assert client.views == []


class TestProductAnchors:
    async def test_first_eligible_timer_mounted(self, render):
        page = product_page()
        timers = [payload(make_timer(id="first")), payload(make_timer(id="second"))]
        _, widgets = await render(page, timers)

        assert [w.timer.id for w in widgets] == ["first"]
        root = page.body.find(ROOT_CLASS)
        assert root.children == [widgets[0].mount]

    async def test_anchor_timer_id_selects_timer(self, render):
        page = product_page(timer_id="second")
        timers = [payload(make_timer(id="first")), payload(make_timer(id="second"))]
        _, widgets = await render(page, timers)
        assert [w.timer.id for w in widgets] == ["second"]

    async def test_excluded_product_not_mounted(self, render):
        timer = payload(make_timer(targeting=targeting(excluded_products=["p1"])))
        _, widgets = await render(product_page(), [timer])
        assert widgets == []

    async def test_clickable_wraps_in_link(self, render):
        page = product_page()
        timer = payload(make_timer(cta_type=CtaType.CLICKABLE, button_link="/products/mug#buy"))
        _, widgets = await render(page, [timer])

        link = page.body.find(ROOT_CLASS).children[0]
        assert link.tag == "a"
        assert link.attrs["href"] == "/products/mug#buy"
        page.click(widgets[0].parts.numbers["seconds"])
        assert page.location == "/products/mug#buy"

    async def test_session_timer_counts_from_first_visit(self, render, clock, store):
        timer = payload(make_timer(timing_mode=TimingMode.SESSION, fixed_minutes=10, end_date=None))
        await render(product_page(), [timer])

        clock.advance(300)
        _, widgets = await render(product_page(), [timer])
        assert widgets[0].remaining == 300


class TestWidgetLifecycle:
    async def test_tick_loop_ends_widget(self, render, clock):
        page = home_page()
        _, widgets = await render(page, [bar(end_date=NOW + timedelta(seconds=2), on_expiry=ExpiryPolicy.KEEP)])
        widget = widgets[0]
        assert widget.state is WidgetState.RUNNING

        clock.advance(3)
        await asyncio.wait_for(widget.task, timeout=2)

        assert widget.state is WidgetState.ENDED_VISIBLE
        assert widget.parts.digits() == "00:00:00:00"
        assert not widget.task.cancelled()

    async def test_external_end_cancels_task_once(self, render, clock):
        page = home_page()
        _, widgets = await render(page, [bar(end_date=NOW + timedelta(seconds=2))])
        widget = widgets[0]
        task = widget.task

        clock.advance(3)
        widget.tick()
        widget.stop()
        await asyncio.gather(task, return_exceptions=True)

        assert widget.state is WidgetState.ENDED_HIDDEN
        assert task.cancelled()
        assert page.body.find("utimer-bar") is None

    async def test_digits_redrawn_each_tick(self, render, clock):
        _, widgets = await render(home_page(), [bar(end_date=NOW + timedelta(seconds=30))])
        widget = widgets[0]
        clock.advance(10)
        widget.tick()
        assert widget.parts.digits() == "00:00:00:20"


class TestPage:
    async def test_no_shop_means_no_fetch(self, render):
        client = FakeProxyClient([bar()])
        _, widgets = await render(StorefrontPage(url=HOME), [], client=client)
        assert widgets == []
        assert client.fetches == []

    async def test_stylesheet_injected_once_and_views_sent(self, render):
        page = product_page()
        client = FakeProxyClient([payload(make_timer(id="p")), bar(id="b1"), bar(id="b2")])
        _, widgets = await render(page, [], client=client)

        styles = [el for el in page.head.iter() if el.attrs.get("id") == STYLE_ELEMENT_ID]
        assert len(styles) == 1
        assert sorted(timer_id for _, timer_id in client.views) == ["b1", "b2", "p"]
        assert len(widgets) == 3


class TestDesign:
    def test_style_parameters_applied(self):
        timer = payload(make_timer(subheading="Today only"))
        parts = build_countdown_element(timer)
        apply_design(
            parts,
            DesignConfig(
                title_color="#ff0000",
                subheading_size=12,
                timer_size=30,
                legend_color="#999999",
                background_type="gradient",
                gradient_start_color="#000000",
                gradient_end_color="#ffffff",
                border_size=2,
                border_color="#333333",
                padding_top=8,
            ),
        )
        assert parts.title.style["color"] == "#ff0000"
        assert parts.subheading.style["font-size"] == "12px"
        assert parts.numbers["days"].style["font-size"] == "30px"
        assert parts.labels["seconds"].style["color"] == "#999999"
        assert parts.container.style["background"] == "linear-gradient(90deg, #000000, #ffffff)"
        assert parts.container.style["border"] == "2px solid #333333"
        assert parts.container.style["padding-top"] == "8px"

    def test_labels_and_no_subheading(self):
        parts = build_countdown_element(payload(make_timer(days_label="D")))
        assert parts.labels["days"].text == "D"
        assert parts.subheading is None
        assert parts.container.find("utimer-sub") is None
