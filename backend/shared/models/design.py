"""Merchant style parameters stored with each timer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class DesignConfig(CamelModel):
    """Style parameters applied by the renderer."""

    positioning: str | None = None

    background_type: str | None = None
    background_color: str | None = None
    gradient_start_color: str | None = None
    gradient_end_color: str | None = None

    border_radius: float | None = None
    border_size: float | None = None
    border_color: str | None = None

    padding_top: float | None = None
    padding_bottom: float | None = None
    margin_top: float | None = None
    margin_bottom: float | None = None

    title_size: float | None = None
    title_color: str | None = None
    title_font_weight: str | None = None
    title_font_family: str | None = None

    subheading_size: float | None = None
    subheading_color: str | None = None
    subheading_font_weight: str | None = None
    subheading_font_family: str | None = None

    timer_size: float | None = None
    timer_color: str | None = None
    timer_font_weight: str | None = None
    timer_font_family: str | None = None

    legend_size: float | None = None
    legend_color: str | None = None
    legend_font_weight: str | None = None
    legend_font_family: str | None = None

    button_font_size: float | None = None
    button_corner_radius: float | None = None
    button_color: str | None = None
    button_background_color: str | None = None
    button_border_color: str | None = None
    button_border_size: float | None = None
