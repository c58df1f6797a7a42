"""
Unit tests for TimerConfig record loading and the wire payload
"""

import json
from datetime import timedelta

import pytest

from fakes import NOW, SHOP, make_timer, payload, targeting
from shared.errors import InvalidTimerConfigError
from shared.models.payload import TimerPayload
from shared.models.timer import (
    CtaType,
    ExpiryPolicy,
    Geolocation,
    PageSelection,
    ProductSelection,
    TimerConfig,
    TimerKind,
    TimingMode,
)


def record(**overrides):
    row = {
        "id": "t1",
        "shop": SHOP,
        "type": "top-bottom-bar",
        "title": "Flash sale",
        "timer_type": "countdown",
        "end_date": NOW + timedelta(hours=1),
        "on_expiry": "keep",
        "cta_type": "button",
        "button_text": "Shop now",
        "button_link": "/collections/sale",
        "design_config": json.dumps({"positioning": "bottom", "titleColor": "#ff0000"}),
        "product_selection": "all",
        "page_selection": "every-page",
        "geolocation": "all-world",
        "is_published": True,
        "is_active": True,
    }
    row.update(overrides)
    return row


class TestFromRecord:
    def test_parses_modes_into_enums(self):
        timer = TimerConfig.from_record(record())
        assert timer.kind is TimerKind.BAR
        assert timer.timing_mode is TimingMode.DEADLINE
        assert timer.on_expiry is ExpiryPolicy.KEEP
        assert timer.cta_type is CtaType.BUTTON
        assert timer.targeting.page_selection is PageSelection.EVERY_PAGE
        assert timer.design_config.positioning == "bottom"
        assert timer.design_config.title_color == "#ff0000"

    def test_mode_strings_case_insensitive(self):
        timer = TimerConfig.from_record(record(page_selection="Home-Page", on_expiry="HIDE"))
        assert timer.targeting.page_selection is PageSelection.HOME
        assert timer.on_expiry is ExpiryPolicy.HIDE

    def test_defaults_for_missing_columns(self):
        row = record()
        for column in ("on_expiry", "cta_type", "product_selection", "page_selection", "geolocation"):
            row.pop(column)
        timer = TimerConfig.from_record(row)
        assert timer.on_expiry is ExpiryPolicy.UNPUBLISH
        assert timer.cta_type is CtaType.NONE
        assert timer.targeting.product_selection is ProductSelection.ALL
        assert timer.targeting.page_selection is None
        assert timer.targeting.geolocation is Geolocation.ALL_WORLD
        assert timer.days_label == "Days"

    def test_list_columns_from_arrays_or_json(self):
        timer = TimerConfig.from_record(
            record(selected_products=["p1", None, ""], countries='["US", "CA"]')
        )
        assert timer.targeting.selected_products == ["p1"]
        assert timer.targeting.countries == ["US", "CA"]

    @pytest.mark.parametrize(
        "column,value",
        [
            ("page_selection", "evry-page"),
            ("product_selection", "some"),
            ("geolocation", "mars"),
            ("on_expiry", "explode"),
            ("type", "popup"),
        ],
    )
    def test_unknown_mode_rejected(self, column, value):
        with pytest.raises(InvalidTimerConfigError, match=column):
            TimerConfig.from_record(record(**{column: value}))

    def test_countdown_without_end_date_rejected(self):
        with pytest.raises(InvalidTimerConfigError):
            TimerConfig.from_record(record(end_date=None))

    def test_fixed_without_duration_rejected(self):
        with pytest.raises(InvalidTimerConfigError):
            TimerConfig.from_record(record(timer_type="fixed", end_date=None, fixed_minutes=None))

    def test_design_config_validated_on_load(self):
        with pytest.raises(InvalidTimerConfigError, match="design_config"):
            TimerConfig.from_record(record(design_config=json.dumps({"titleFontWeight": 700})))

    @pytest.mark.parametrize("value", ["null", "[]", '"bottom"', "5", ["positioning"]])
    def test_design_config_must_be_object(self, value):
        with pytest.raises(InvalidTimerConfigError, match="design_config"):
            TimerConfig.from_record(record(design_config=value))

    @pytest.mark.parametrize("value", ["5", '"p1"', '{"a": 1}', "null", 7])
    def test_list_column_must_be_list(self, value):
        with pytest.raises(InvalidTimerConfigError, match="selected_products"):
            TimerConfig.from_record(record(selected_products=value))

    def test_design_config_dict_coerced_when_built_directly(self):
        timer = make_timer(design_config={"positioning": "bottom", "timerSize": 30})
        assert timer.design_config.positioning == "bottom"
        assert timer.design_config.timer_size == 30


class TestPayload:
    """camelCase wire shape"""

    def test_camel_case_dump(self):
        timer = TimerConfig.from_record(record())
        body = TimerPayload.from_config(timer, NOW).model_dump(mode="json", by_alias=True)
        assert body["type"] == "top-bottom-bar"
        assert body["timerType"] == "countdown"
        assert body["onExpiry"] == "keep"
        assert body["ctaType"] == "button"
        assert body["buttonLink"] == "/collections/sale"
        assert body["designConfig"]["titleColor"] == "#ff0000"
        assert body["placement"]["pageSelection"] == "every-page"
        assert body["ended"] is False

    def test_geolocation_never_sent(self):
        t = targeting(geolocation=Geolocation.SPECIFIC_COUNTRIES, countries=["US"])
        body = payload(make_timer(targeting=t)).model_dump(mode="json", by_alias=True)
        assert "geolocation" not in body["placement"]
        assert "countries" not in json.dumps(body)

    def test_round_trip_through_validation(self):
        original = payload(make_timer(kind=TimerKind.BAR, on_expiry=ExpiryPolicy.KEEP))
        parsed = TimerPayload.model_validate(original.model_dump(mode="json", by_alias=True))
        assert parsed.type is TimerKind.BAR
        assert parsed.on_expiry is ExpiryPolicy.KEEP
        assert parsed.end_date == original.end_date
