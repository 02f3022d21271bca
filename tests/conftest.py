"""
Shared test fixtures — in-memory store, fake collaborators, wired controller/loader/router.
"""

import asyncio
from typing import Optional

import pytest

from portal.access import AccessController
from portal.config import Settings
from portal.database import close_db, init_db, make_engine, make_session_factory
from portal.errors import ContentFetchError, IdentityError, LocalAuthError
from portal.loader import ContentLoader
from portal.repository import EntityRepository
from portal.route_table import ROUTES, RouteTable
from portal.router import NavigationRouter
from portal.schemas import FederatedIdentity
from portal.storage import KeyValueStore, SqlPersistentStore
from portal.ui import DialogConfig, HeadlessShell, MemoryHistory


TEST_DB_URL = "sqlite:///:memory:"
LOCAL_SECRET = "8675"


# ── Settings ────────────────────────────────────────────

@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        database_url=TEST_DB_URL,
        site_host="localhost",
        firebase_cred_path="",
        transition_duration=0,
        enable_analytics=False,
    )


# ── Store (SQLite in-memory) ────────────────────────────

@pytest.fixture
def db_engine():
    engine = make_engine(TEST_DB_URL)
    init_db(engine)
    yield engine
    close_db(engine)


@pytest.fixture
def backend(db_engine):
    return SqlPersistentStore(make_session_factory(db_engine))


@pytest.fixture
def store(backend):
    return KeyValueStore(backend)


@pytest.fixture
def repo(store):
    return EntityRepository(store)


# ── Fake Collaborators ──────────────────────────────────

class FakeIdentityProvider:
    """Popup stand-in: returns ``identity`` or raises ``error``."""

    def __init__(self):
        self.identity = FederatedIdentity(
            uid="uid-123",
            display_name="Dana Booker",
            email="Dana@Example.com",
            photo_url="https://example.com/dana.png",
            provider_id="google.com",
        )
        self.error: Optional[IdentityError] = None
        self.restored: Optional[FederatedIdentity] = None
        self.sign_in_calls: list[str] = []
        self.sign_out_calls = 0

    async def sign_in(self, provider_id: str) -> FederatedIdentity:
        self.sign_in_calls.append(provider_id)
        if self.error is not None:
            raise self.error
        return self.identity

    async def current_identity(self) -> Optional[FederatedIdentity]:
        return self.restored

    async def sign_out(self) -> None:
        self.sign_out_calls += 1


class FakeRegistrations:
    def __init__(self):
        self.records: dict[str, dict] = {}
        self.created: list[tuple[str, dict]] = []
        self.logins: list[tuple[str, dict]] = []
        self.fail = False

    async def get_registration(self, uid):
        if self.fail:
            raise ConnectionError("registration backend offline")
        return self.records.get(uid)

    async def create_registration(self, uid, record):
        self.created.append((uid, record))
        self.records[uid] = dict(record)

    async def update_last_login(self, uid, fields=None):
        self.logins.append((uid, fields or {}))
        return True


class FakeLocalService:
    def __init__(self, secret: str = LOCAL_SECRET):
        self.secret = secret
        self.tokens: set[str] = set()
        self.invalidated: list[str] = []
        self.unreachable = False
        self._counter = 0

    def _check_reachable(self):
        if self.unreachable:
            raise LocalAuthError("connection refused", unreachable=True)

    async def exchange(self, secret):
        self._check_reachable()
        if secret != self.secret:
            raise LocalAuthError("Incorrect PIN")
        self._counter += 1
        token = f"local-token-{self._counter}"
        self.tokens.add(token)
        return token

    async def verify(self, token):
        self._check_reachable()
        if token in self.tokens:
            return True, {"displayName": "Owner", "email": "owner@goldbottoment.com"}
        return False, None

    async def invalidate(self, token):
        self._check_reachable()
        self.tokens.discard(token)
        self.invalidated.append(token)


class FakeFetcher:
    """Content server stand-in keyed by location; every route serves a small fragment."""

    def __init__(self):
        self.pages = {
            location: f"<section data-page=\"{name}\"><h1>{name}</h1></section>"
            for name, location in ROUTES.items()
        }
        self.calls: list[tuple[str, dict]] = []
        self.failing: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}

    def hold(self, location: str) -> asyncio.Event:
        """Block fetches of ``location`` until the returned event is set."""
        self.gates[location] = asyncio.Event()
        return self.gates[location]

    async def fetch(self, location, headers=None):
        self.calls.append((location, dict(headers or {})))
        if location in self.gates:
            await self.gates[location].wait()
        if location in self.failing:
            raise ContentFetchError(location, "HTTP 404", status=404)
        return self.pages[location]

    def fetched(self, location: str) -> int:
        return sum(1 for loc, _ in self.calls if loc == location)


class RecordingNotifier:
    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def show(self, message, kind="info"):
        self.messages.append((message, kind))

    def kinds(self) -> list[str]:
        return [k for _, k in self.messages]


class RecordingDialog:
    def __init__(self):
        self.opened: list[DialogConfig] = []
        self.is_open = False

    def open(self, config):
        self.opened.append(config)
        self.is_open = True

    def close(self):
        self.is_open = False

    @property
    def last(self) -> Optional[DialogConfig]:
        return self.opened[-1] if self.opened else None


class RecordingAnalytics:
    def __init__(self):
        self.paths: list[str] = []

    def track_page_view(self, path):
        self.paths.append(path)


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def registrations():
    return FakeRegistrations()


@pytest.fixture
def local_service():
    return FakeLocalService()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dialog():
    return RecordingDialog()


@pytest.fixture
def analytics():
    return RecordingAnalytics()


@pytest.fixture
def shell():
    return HeadlessShell()


@pytest.fixture
def history():
    return MemoryHistory()


@pytest.fixture
def routes():
    return RouteTable()


# ── Wired Components ────────────────────────────────────

@pytest.fixture
def access(store, routes, identity_provider, registrations, local_service, notifier, dialog, test_settings):
    return AccessController(
        store,
        routes,
        identity_provider=identity_provider,
        registrations=registrations,
        local_service=local_service,
        notifier=notifier,
        dialog=dialog,
        config=test_settings,
    )


@pytest.fixture
def loader(fetcher, shell, access, test_settings):
    return ContentLoader(
        fetcher,
        shell,
        session_token=lambda: access.session_token,
        config=test_settings,
    )


@pytest.fixture
def router(routes, access, loader, shell, history, analytics):
    return NavigationRouter(routes, access, loader, shell, history=history, analytics=analytics)
