"""A small element tree standing in for the storefront page DOM.

Only what the timer widgets need: classes, attributes, inline style, text,
click handlers with bubbling, removal, and HTML serialisation.
"""

from __future__ import annotations

import html
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit


@dataclass
class ClickEvent:
    target: Element


ClickHandler = Callable[[ClickEvent], None]


@dataclass(eq=False)
class Element:
    tag: str = "div"
    classes: list[str] = field(default_factory=list)
    text: str = ""
    attrs: dict[str, str] = field(default_factory=dict)
    style: dict[str, str] = field(default_factory=dict)
    children: list[Element] = field(default_factory=list)
    parent: Element | None = field(default=None, repr=False)
    click_handlers: list[ClickHandler] = field(default_factory=list, repr=False)

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def data(self, name: str) -> str:
        """Value of ``data-<name>``, empty when absent."""
        return self.attrs.get(f"data-{name}", "")

    def append(self, child: Element) -> Element:
        child.remove()
        child.parent = self
        self.children.append(child)
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def clear(self) -> None:
        for child in list(self.children):
            child.remove()

    def on_click(self, handler: ClickHandler) -> None:
        self.click_handlers.append(handler)

    def iter(self) -> Iterator[Element]:
        yield self
        for child in self.children:
            yield from child.iter()

    def find_all(self, class_name: str) -> list[Element]:
        return [el for el in self.iter() if el.has_class(class_name)]

    def find(self, class_name: str) -> Element | None:
        return next((el for el in self.iter() if el.has_class(class_name)), None)

    def find_by_id(self, element_id: str) -> Element | None:
        return next((el for el in self.iter() if el.attrs.get("id") == element_id), None)

    def contains(self, other: Element) -> bool:
        node: Element | None = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def to_html(self) -> str:
        attrs = dict(self.attrs)
        if self.classes:
            attrs["class"] = " ".join(self.classes)
        if self.style:
            attrs["style"] = "; ".join(f"{k}: {v}" for k, v in self.style.items())
        rendered = "".join(f' {k}="{html.escape(str(v), quote=True)}"' for k, v in attrs.items())
        inner = html.escape(self.text) + "".join(c.to_html() for c in self.children)
        return f"<{self.tag}{rendered}>{inner}</{self.tag}>"


@dataclass
class StorefrontPage:
    """One loaded storefront page: URL, page globals, meta tags, head and body."""

    url: str
    globals: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, str] = field(default_factory=dict)
    head: Element = field(default_factory=lambda: Element("head"))
    body: Element = field(default_factory=lambda: Element("body"))
    location: str = ""

    def __post_init__(self) -> None:
        if not self.location:
            self.location = self.url

    @property
    def origin(self) -> str:
        parts = urlsplit(self.url)
        return f"{parts.scheme}://{parts.netloc}"

    def navigate(self, url: str) -> None:
        self.location = url

    def click(self, target: Element) -> ClickEvent:
        """Dispatch a click: handlers bubble from *target* upward, then links navigate."""
        event = ClickEvent(target=target)
        node: Element | None = target
        while node is not None:
            for handler in list(node.click_handlers):
                handler(event)
            node = node.parent

        node = target
        while node is not None:
            if node.tag == "a" and node.attrs.get("href"):
                self.navigate(node.attrs["href"])
                break
            node = node.parent
        return event
