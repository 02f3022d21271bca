"""
Gold Bottom Ent. Portal — Navigation router.

Hash-based routing across two layouts: routes prefixed ``dashboard-`` render
in the dashboard layout, everything else in the public layout. The ``ent-`` /
``biz-`` prefixes switch the themed navigation chrome.
"""

import logging
from functools import partial
from typing import Optional

from portal.access import AccessController, AuthState
from portal.loader import ContentLoader, LoadResult
from portal.route_table import Layout, RouteTable, Theme
from portal.ui import Analytics, History, MemoryHistory, NullAnalytics, Shell

logger = logging.getLogger(__name__)


class NavigationRouter:
    def __init__(
        self,
        routes: RouteTable,
        access: AccessController,
        loader: ContentLoader,
        shell: Shell,
        *,
        history: Optional[History] = None,
        analytics: Optional[Analytics] = None,
    ):
        self._routes = routes
        self._access = access
        self._loader = loader
        self._shell = shell
        self._history = history or MemoryHistory()
        self._analytics = analytics or NullAnalytics()

        self.current_route: Optional[str] = None
        self.current_layout: Optional[Layout] = None
        self.current_theme = Theme.DEFAULT
        self._generation = 0
        self._unsubscribe = None

    @property
    def generation(self) -> int:
        """Incremented by every navigation that reaches the content load."""
        return self._generation

    def _canonical(self, name: Optional[str]) -> str:
        name = self._routes.resolve(name)
        if not self._routes.exists(name):
            logger.warning(f'Route "{name}" not found, loading default')
            return self._routes.default_route
        return name

    # ── Navigation ──────────────────────────────────────

    async def navigate(self, name: Optional[str], force_reload: bool = False) -> bool:
        """
        Go to ``name``. Returns True when the route was rendered (content or
        error view); False when blocked, redirected away, a no-op, or superseded
        by a newer navigation.
        """
        name = self._canonical(name)

        if not self._access.guard(name):
            return False

        if not self._access.check_role(name) or not self._access.check_environment(name):
            if name == self._routes.admin_home:
                return False
            await self.navigate(self._routes.admin_home)
            return False

        if name == self.current_route and not force_reload:
            return False

        self._generation += 1
        generation = self._generation

        layout = self._routes.layout_for(name)
        if layout != self.current_layout:
            self._shell.show_layout(layout)
            self.current_layout = layout
            logger.info(f"🔀 Layout switched to: {layout.value}")

        self.current_theme = self._routes.theme_for(name)
        self._shell.set_theme(self.current_theme)
        self._shell.close_overlays()

        result = await self._loader.load_page(
            name,
            self._routes.location(name),
            layout,
            is_current=lambda: generation == self._generation,
            on_retry=partial(self.navigate, name, True),
        )
        if result is LoadResult.STALE:
            return False

        if self._history.current_hash() != name:
            self._history.push(name)
        self.current_route = name
        self._shell.highlight(name)
        if layout is Layout.DASHBOARD:
            self._shell.set_breadcrumb(self._routes.breadcrumb(name))
        self._analytics.track_page_view(f"/#{name}")
        return True

    async def start(self, initial_hash: Optional[str] = None) -> None:
        """Hook into auth changes and render the initial route."""
        if self._unsubscribe is None:
            self._unsubscribe = await self._access.subscribe(self._on_auth_change)
        if initial_hash is None:
            initial_hash = self._history.current_hash()
        await self.navigate(self._canonical(initial_hash), force_reload=True)
        logger.info("✅ Router started")

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def handle_pop_state(self, hash_value: Optional[str]) -> None:
        """Browser back/forward."""
        await self.navigate(self._canonical(hash_value), force_reload=True)

    async def preload_page(self, name: str) -> None:
        name = self._routes.resolve(name)
        if self._routes.exists(name):
            await self._loader.preload_page(name, self._routes.location(name))

    # ── Auth changes ────────────────────────────────────

    async def _on_auth_change(self, access: AccessController) -> None:
        if access.state is AuthState.INITIALIZING:
            return

        queued = access.take_queued_route()
        if queued:
            await self.navigate(queued, force_reload=True)
            return

        if access.is_authenticated:
            route = access.take_pending_route()
            if route:
                await self.navigate(route, force_reload=True)
        elif self.current_route and self._routes.is_restricted(self.current_route):
            await self.navigate(self._routes.default_route)
