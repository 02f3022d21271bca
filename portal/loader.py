"""
Gold Bottom Ent. Portal — Content loader.

Fetches a route's markup fragment (cached per route name), swaps it into the
active layout's container with a fade, re-activates embedded scripts and runs
any post-load hooks registered for the route.
"""

import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

from bs4 import BeautifulSoup

from portal.config import Settings, settings as default_settings
from portal.errors import ContentFetchError
from portal.route_table import Layout
from portal.ui import ScriptElement, Shell

logger = logging.getLogger(__name__)

RESTRICTED_LOCATION_PREFIX = "dashboard/"

PostLoadHook = Callable[[str], Optional[Awaitable[Any]]]


class ContentFetcher(Protocol):
    async def fetch(self, location: str, headers: Optional[dict] = None) -> str: ...


class LoadResult(str, Enum):
    LOADED = "loaded"
    FAILED = "failed"
    STALE = "stale"


def extract_scripts(markup: str) -> list[ScriptElement]:
    """Every ``<script>`` in document order, with attributes and inline code."""
    if "<script" not in markup.lower():
        return []
    soup = BeautifulSoup(markup, "lxml")
    scripts = []
    for tag in soup.find_all("script"):
        attrs = {
            name: " ".join(value) if isinstance(value, list) else value
            for name, value in tag.attrs.items()
        }
        scripts.append(ScriptElement(attrs=attrs, text=tag.get_text()))
    return scripts


def _always_current() -> bool:
    return True


class ContentLoader:
    def __init__(
        self,
        fetcher: ContentFetcher,
        shell: Shell,
        *,
        session_token: Callable[[], Optional[str]] = lambda: None,
        config: Settings = default_settings,
    ):
        self._fetcher = fetcher
        self._shell = shell
        self._session_token = session_token
        self._config = config
        self._cache: dict[str, str] = {}
        self._hooks: list[tuple[str, bool, PostLoadHook]] = []

    # ── Cache ───────────────────────────────────────────

    def is_cached(self, name: str) -> bool:
        return name in self._cache

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("🗑️ Page cache cleared")

    async def _get_content(self, name: str, location: str) -> str:
        if name in self._cache:
            return self._cache[name]

        headers = {}
        token = self._session_token()
        if location.startswith(RESTRICTED_LOCATION_PREFIX) and token:
            headers[self._config.session_header] = token

        markup = await self._fetcher.fetch(location, headers=headers)
        self._cache[name] = markup
        return markup

    async def preload_page(self, name: str, location: str) -> None:
        """Warm the cache without touching the page."""
        if name in self._cache:
            return
        try:
            await self._get_content(name, location)
            logger.info(f"⏳ Preloaded: {name}")
        except ContentFetchError as e:
            logger.error(f"Failed to preload {name}: {e}")

    # ── Hooks ───────────────────────────────────────────

    def register_hook(self, route: str, hook: PostLoadHook, prefix: bool = False) -> None:
        """Run ``hook(route_name)`` after ``route`` loads (or any route starting with it)."""
        self._hooks.append((route, prefix, hook))

    async def _run_hooks(self, name: str) -> None:
        for key, is_prefix, hook in self._hooks:
            if not (name.startswith(key) if is_prefix else name == key):
                continue
            try:
                result = hook(name)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Post-load hook for {name} failed")

    # ── Load ────────────────────────────────────────────

    async def load_page(
        self,
        name: str,
        location: str,
        layout: Layout,
        *,
        is_current: Callable[[], bool] = _always_current,
        on_retry: Optional[Callable] = None,
    ) -> LoadResult:
        container = self._shell.container(layout)
        if container is None:
            logger.error(f"No content container for {layout.value} layout")
            return LoadResult.FAILED

        self._shell.set_loading(True)
        try:
            try:
                markup = await self._get_content(name, location)
            except ContentFetchError as e:
                if not is_current():
                    return LoadResult.STALE
                logger.error(f"Error loading page {name}: {e}")
                container.show_error(
                    f'Failed to load page "{name}". Please try again.',
                    on_retry or (lambda: None),
                )
                return LoadResult.FAILED

            if not is_current():
                logger.debug(f"Discarded stale content for {name}")
                return LoadResult.STALE

            duration = self._config.transition_duration
            await container.fade_out(duration)
            if not is_current():
                return LoadResult.STALE

            container.replace(markup)
            container.activate_scripts(extract_scripts(markup))
            await container.fade_in(duration)
            container.reset_scroll()

            await self._run_hooks(name)
            logger.info(f"📄 Loaded: {name}")
            return LoadResult.LOADED
        finally:
            self._shell.set_loading(False)
