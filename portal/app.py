"""
Gold Bottom Ent. Portal — Composition root.

``build_portal`` wires the store, repository, access controller, content
loader and router once at startup. Collaborators not passed in get the
default implementation for the configured environment, or a null object.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy.engine import Engine

from portal.access import AccessController, IdentityProvider, LocalSessionService, RegistrationStore, is_private_host
from portal.config import Settings, settings as default_settings
from portal.database import close_db, init_db, make_engine, make_session_factory
from portal.loader import ContentFetcher, ContentLoader
from portal.repository import EntityRepository
from portal.route_table import RouteTable
from portal.router import NavigationRouter
from portal.services.content import ContentServer
from portal.services.firebase import (
    FirebaseAnalytics, FirebaseIdentityProvider, FirebaseRegistrationStore, TokenSource, init_firebase,
)
from portal.services.local_session import LocalSessionClient
from portal.storage import KeyValueStore, PersistentStore, SqlPersistentStore
from portal.ui import Analytics, Dialog, HeadlessShell, History, Notifier, Shell

logging.basicConfig(
    level=logging.DEBUG if default_settings.debug_mode else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)

logger = logging.getLogger(__name__)


@dataclass
class Portal:
    config: Settings
    store: KeyValueStore
    repository: EntityRepository
    routes: RouteTable
    access: AccessController
    loader: ContentLoader
    router: NavigationRouter
    shell: Shell
    engine: Optional[Engine] = None
    _unsubscribe: Optional[Callable[[], None]] = field(default=None, repr=False)

    async def start(self, initial_hash: Optional[str] = None) -> None:
        """Verify credentials, seed data for the resulting tier, then render the first route."""
        await self.access.initialize()
        self.repository.seed_if_empty(local_tier=self.access.is_local_tier)
        # Ahead of the router: a replayed dashboard route must find its data seeded
        self._unsubscribe = await self.access.subscribe(self._on_auth_change)
        await self.router.start(initial_hash)
        logger.info(f"🚀 {self.config.company_name} portal started")

    def _on_auth_change(self, access: AccessController) -> None:
        if access.is_local_tier:
            self.repository.seed_sensitive()

    def handle_uncaught(self, exc: BaseException) -> None:
        """Last-resort handler: the current view stays as it is."""
        logger.error(f"Unhandled error: {exc}", exc_info=exc)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.router.stop()
        if self.engine is not None:
            close_db(self.engine)


def build_portal(
    config: Settings = default_settings,
    *,
    backend: Optional[PersistentStore] = None,
    identity_provider: Optional[IdentityProvider] = None,
    token_source: Optional[TokenSource] = None,
    registrations: Optional[RegistrationStore] = None,
    local_service: Optional[LocalSessionService] = None,
    fetcher: Optional[ContentFetcher] = None,
    shell: Optional[Shell] = None,
    history: Optional[History] = None,
    notifier: Optional[Notifier] = None,
    dialog: Optional[Dialog] = None,
    analytics: Optional[Analytics] = None,
) -> Portal:
    engine = None
    if backend is None:
        engine = make_engine(config.database_url)
        init_db(engine)
        backend = SqlPersistentStore(make_session_factory(engine), quota_bytes=config.storage_quota_bytes)

    store = KeyValueStore(backend)
    repository = EntityRepository(store, prefix=config.storage_prefix, activity_limit=config.activity_limit)
    routes = RouteTable()

    if init_firebase(config.firebase_cred_path, config.firebase_db_url):
        if identity_provider is None:
            identity_provider = FirebaseIdentityProvider(
                token_source, store=store, token_key=f"{config.storage_prefix}firebase-id-token",
            )
        if registrations is None:
            registrations = FirebaseRegistrationStore()
        if analytics is None and config.enable_analytics:
            analytics = FirebaseAnalytics()

    if local_service is None and is_private_host(config.site_host, config.private_hosts):
        local_service = LocalSessionClient(config.local_auth_url, timeout=config.http_timeout)

    shell = shell or HeadlessShell()
    access = AccessController(
        store,
        routes,
        identity_provider=identity_provider,
        registrations=registrations,
        local_service=local_service,
        notifier=notifier,
        dialog=dialog,
        config=config,
    )
    loader = ContentLoader(
        fetcher or ContentServer(config.content_base_url, timeout=config.http_timeout),
        shell,
        session_token=lambda: access.session_token,
        config=config,
    )
    router = NavigationRouter(routes, access, loader, shell, history=history, analytics=analytics)

    logger.info(
        f"Portal wired (registrations={'on' if registrations is not None else 'off'}, "
        f"local tier={'available' if access.local_sign_in_available else 'unavailable'})"
    )
    return Portal(
        config=config,
        store=store,
        repository=repository,
        routes=routes,
        access=access,
        loader=loader,
        router=router,
        shell=shell,
        engine=engine,
    )
