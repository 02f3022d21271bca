"""
Gold Bottom Ent. Portal — Presentation collaborators.

The router, loader and access controller talk to the page through these
narrow interfaces only. Anything not supplied at composition time is replaced
by a null object, so callers never have to check for presence.

The headless implementations keep the visible state in memory; they back
server-side use of the core and the test-suite.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from portal.route_table import Layout, Theme

logger = logging.getLogger(__name__)


@dataclass
class ScriptElement:
    """An embedded ``<script>`` found in injected markup."""
    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ""


@dataclass
class DialogConfig:
    title: str
    kind: str                                   # "login", "pending", "error"
    body: str = ""
    actions: dict[str, Callable] = field(default_factory=dict)
    on_cancel: Optional[Callable[[], None]] = None


# ── Interfaces ──────────────────────────────────────────


class Notifier(Protocol):
    def show(self, message: str, kind: str = "info") -> None: ...


class Dialog(Protocol):
    @property
    def is_open(self) -> bool: ...

    def open(self, config: DialogConfig) -> None: ...

    def close(self) -> None: ...


class Analytics(Protocol):
    def track_page_view(self, path: str) -> None: ...


class ContentContainer(Protocol):
    async def fade_out(self, duration: float) -> None: ...

    def replace(self, markup: str) -> None: ...

    def activate_scripts(self, scripts: list[ScriptElement]) -> None: ...

    async def fade_in(self, duration: float) -> None: ...

    def reset_scroll(self) -> None: ...

    def show_error(self, message: str, on_retry: Callable) -> None: ...


class Shell(Protocol):
    def container(self, layout: Layout) -> Optional[ContentContainer]: ...

    def show_layout(self, layout: Layout) -> None: ...

    def set_theme(self, theme: Theme) -> None: ...

    def close_overlays(self) -> None: ...

    def set_loading(self, loading: bool) -> None: ...

    def highlight(self, route: str) -> None: ...

    def set_breadcrumb(self, label: str) -> None: ...


class History(Protocol):
    def current_hash(self) -> str: ...

    def push(self, route: str) -> None: ...


# ── Null objects ────────────────────────────────────────


class NullNotifier:
    def show(self, message: str, kind: str = "info") -> None:
        logger.debug(f"[{kind}] {message}")


class NullDialog:
    is_open = False

    def open(self, config: DialogConfig) -> None:
        logger.debug(f"Dialog '{config.title}' requested but no dialog is available")

    def close(self) -> None:
        pass


class NullAnalytics:
    def track_page_view(self, path: str) -> None:
        pass


# ── Headless implementations ────────────────────────────


class HeadlessContainer:
    """In-memory content container."""

    def __init__(self, name: str):
        self.name = name
        self.markup = ""
        self.opacity = 1.0
        self.scroll_top = 0
        self.activated: list[ScriptElement] = []
        self.error: Optional[str] = None
        self.retry: Optional[Callable] = None

    async def fade_out(self, duration: float) -> None:
        self.opacity = 0.0
        await asyncio.sleep(duration)

    def replace(self, markup: str) -> None:
        self.markup = markup
        self.error = None
        self.retry = None

    def activate_scripts(self, scripts: list[ScriptElement]) -> None:
        self.activated.extend(scripts)

    async def fade_in(self, duration: float) -> None:
        self.opacity = 1.0
        await asyncio.sleep(duration)

    def reset_scroll(self) -> None:
        self.scroll_top = 0

    def show_error(self, message: str, on_retry: Callable) -> None:
        self.markup = ""
        self.error = message
        self.retry = on_retry


class HeadlessShell:
    """In-memory page chrome: two layouts, theme, overlays, active link, breadcrumb."""

    def __init__(self):
        self.containers = {
            Layout.PUBLIC: HeadlessContainer("public-content"),
            Layout.DASHBOARD: HeadlessContainer("dashboard-content"),
        }
        self.visible_layout: Optional[Layout] = None
        self.theme = Theme.DEFAULT
        self.overlays_open = False
        self.loading = False
        self.active_route: Optional[str] = None
        self.breadcrumb = ""

    def container(self, layout: Layout) -> Optional[HeadlessContainer]:
        return self.containers.get(layout)

    def show_layout(self, layout: Layout) -> None:
        self.visible_layout = layout

    def set_theme(self, theme: Theme) -> None:
        self.theme = theme

    def close_overlays(self) -> None:
        self.overlays_open = False

    def set_loading(self, loading: bool) -> None:
        self.loading = loading

    def highlight(self, route: str) -> None:
        self.active_route = route

    def set_breadcrumb(self, label: str) -> None:
        self.breadcrumb = label


class MemoryHistory:
    """Hash history kept in a list; ``back``/``forward`` return the hash to replay."""

    def __init__(self, initial: str = ""):
        self.entries: list[str] = [initial.lstrip("#")]
        self.index = 0

    def current_hash(self) -> str:
        return self.entries[self.index]

    def push(self, route: str) -> None:
        del self.entries[self.index + 1:]
        self.entries.append(route)
        self.index += 1

    def back(self) -> str:
        self.index = max(0, self.index - 1)
        return self.current_hash()

    def forward(self) -> str:
        self.index = min(len(self.entries) - 1, self.index + 1)
        return self.current_hash()
