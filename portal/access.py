"""
Gold Bottom Ent. Portal — Access controller.

Two sign-in tiers:
  * local secret: the owner's PIN, exchanged with a verification service that
    is only reachable on the private network. Grants the administrator role
    and unlocks the sensitive (local-only) dashboard areas.
  * federated: Google / Apple / Microsoft sign-in, then an approval record
    in the remote registration store decides member, admin, pending or denied.

The router consults ``guard`` before every navigation and ``check_role`` /
``check_environment`` for the restricted subsets.
"""

import hashlib
import inspect
import ipaddress
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Optional, Protocol

from portal.config import Settings, settings as default_settings
from portal.errors import IdentityError, LocalAuthError
from portal.route_table import RouteTable
from portal.schemas import FederatedIdentity, Registration, RegistrationStatus, Role
from portal.storage import KeyValueStore
from portal.ui import Dialog, DialogConfig, Notifier, NullDialog, NullNotifier

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INITIALIZING = "initializing"
    PENDING_APPROVAL = "pending-approval"
    AUTHENTICATED_MEMBER = "authenticated-member"
    AUTHENTICATED_ADMIN = "authenticated-admin"


PROVIDERS = {
    "google": "google.com",
    "apple": "apple.com",
    "microsoft": "microsoft.com",
}

SIGN_IN_ERRORS = {
    "popup-blocked": "Popup was blocked by your browser. Please allow popups for this site.",
    "account-conflict": "An account already exists with this email using a different sign-in method.",
    "domain-unauthorized": "This domain is not authorized for sign-in.",
    "user-disabled": "This account has been disabled.",
    "network-failure": "Network error. Check your connection.",
}
DEFAULT_SIGN_IN_ERROR = "Sign in failed. Please try again."
DENIED_MESSAGE = "Your access request has been denied."


# ── Collaborators ───────────────────────────────────────


class IdentityProvider(Protocol):
    async def sign_in(self, provider_id: str) -> FederatedIdentity: ...

    async def current_identity(self) -> Optional[FederatedIdentity]: ...

    async def sign_out(self) -> None: ...


class RegistrationStore(Protocol):
    async def get_registration(self, uid: str) -> Optional[dict]: ...

    async def create_registration(self, uid: str, record: dict) -> None: ...

    async def update_last_login(self, uid: str, fields: Optional[dict] = None) -> bool: ...


class LocalSessionService(Protocol):
    async def exchange(self, secret: str) -> str: ...

    async def verify(self, token: str) -> tuple[bool, Optional[dict]]: ...

    async def invalidate(self, token: str) -> None: ...


Listener = Callable[["AccessController"], Optional[Awaitable[Any]]]


# ── Helpers ─────────────────────────────────────────────


def hash_email(email: Optional[str]) -> str:
    """SHA-256 hex of the trimmed, lower-cased address. Emails are never stored in plain text."""
    normalized = (email or "").strip().lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def is_private_host(host: str, extra: tuple[str, ...] | list[str] = ()) -> bool:
    """True for localhost, ``*.local``, loopback / RFC 1918 addresses and any configured host."""
    host = (host or "").strip().lower()
    if host.startswith("["):
        host = host[1:host.find("]")]
    elif host.count(":") == 1:
        host = host.split(":", 1)[0]

    if host in extra or host == "localhost" or host.endswith(".local"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_private or address.is_loopback


def _parse_status(value) -> RegistrationStatus:
    try:
        return RegistrationStatus(value or RegistrationStatus.PENDING)
    except ValueError:
        return RegistrationStatus.PENDING


class AccessController:
    """Owns the session state machine; one instance per running portal."""

    def __init__(
        self,
        store: KeyValueStore,
        routes: RouteTable,
        *,
        identity_provider: Optional[IdentityProvider] = None,
        registrations: Optional[RegistrationStore] = None,
        local_service: Optional[LocalSessionService] = None,
        notifier: Optional[Notifier] = None,
        dialog: Optional[Dialog] = None,
        config: Settings = default_settings,
    ):
        self._store = store
        self._routes = routes
        self._identity_provider = identity_provider
        self._registrations = registrations
        self._local_service = local_service
        self._notifier = notifier or NullNotifier()
        self._dialog = dialog or NullDialog()
        self._config = config

        self._state = AuthState.UNAUTHENTICATED
        self._identity: Optional[FederatedIdentity] = None
        self._registration_status: Optional[RegistrationStatus] = None
        self._role: Optional[Role] = None
        self._local_token: Optional[str] = None
        self._local_identity: dict = {}
        self._pending_route: Optional[str] = None
        self._queued_route: Optional[str] = None
        self._listeners: list[Listener] = []
        self.initialized = False

    # ── Read-only view ──────────────────────────────────

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def identity(self) -> Optional[FederatedIdentity]:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._state in (AuthState.AUTHENTICATED_MEMBER, AuthState.AUTHENTICATED_ADMIN)

    @property
    def is_admin(self) -> bool:
        return self._state is AuthState.AUTHENTICATED_ADMIN

    @property
    def is_private_network(self) -> bool:
        return is_private_host(self._config.site_host, self._config.private_hosts)

    @property
    def is_local_tier(self) -> bool:
        """Signed in with the local secret on the private network."""
        return self._local_token is not None

    @property
    def session_token(self) -> Optional[str]:
        return self._local_token

    @property
    def role(self) -> Optional[Role]:
        return self._role

    @property
    def registration_status(self) -> Optional[RegistrationStatus]:
        return self._registration_status

    @property
    def display_name(self) -> str:
        if self._local_token is not None:
            return self._local_identity.get("displayName") or "Owner"
        if self._identity is None:
            return "Guest"
        return self._identity.display_name or self._identity.email.split("@")[0] or "User"

    @property
    def email(self) -> str:
        if self._local_token is not None:
            return self._local_identity.get("email", "")
        return self._identity.email if self._identity else ""

    @property
    def photo_url(self) -> str:
        return self._identity.photo_url if self._identity else ""

    @property
    def local_sign_in_available(self) -> bool:
        return self._local_service is not None and self.is_private_network

    # ── Listeners ───────────────────────────────────────

    async def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register ``callback``; it runs now and after every state change. Returns an unsubscribe."""
        self._listeners.append(callback)
        await self._call_listener(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _call_listener(self, callback: Listener) -> None:
        try:
            result = callback(self)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Auth listener {getattr(callback, '__name__', callback)!r} failed")

    async def _set_state(self, state: AuthState) -> None:
        self._state = state
        logger.debug(f"Auth state → {state.value}")
        for callback in list(self._listeners):
            await self._call_listener(callback)

    # ── Startup ─────────────────────────────────────────

    async def initialize(self) -> AuthState:
        """Restore a local session if possible, then any federated sign-in."""
        await self._set_state(AuthState.INITIALIZING)

        if not await self._restore_local_session():
            identity = None
            if self._identity_provider is not None:
                try:
                    identity = await self._identity_provider.current_identity()
                except IdentityError as e:
                    logger.warning(f"Could not restore federated sign-in: {e}")
            if identity is not None:
                await self._apply_identity(identity)
            else:
                await self._set_state(AuthState.UNAUTHENTICATED)

        self.initialized = True
        logger.info(f"🔐 Access initialized ({self._state.value})")
        return self._state

    def _token_expired(self, issued_at: Optional[str]) -> bool:
        ttl = self._config.local_session_ttl_hours
        if not ttl:
            return False
        try:
            issued = datetime.fromisoformat(issued_at)
        except (TypeError, ValueError):
            return True
        if issued.tzinfo is None:
            issued = issued.replace(tzinfo=timezone.utc)
        age = datetime.now(timezone.utc) - issued
        # future-dated tokens count as expired
        return age < timedelta(0) or age > timedelta(hours=ttl)

    async def _restore_local_session(self) -> bool:
        if not self.local_sign_in_available:
            return False

        saved = self._store.get(self._config.session_token_key)
        if not isinstance(saved, dict) or not saved.get("token"):
            return False

        if self._token_expired(saved.get("issuedAt")):
            logger.info("Local session token expired — cleared")
            self._store.remove(self._config.session_token_key)
            return False

        try:
            valid, identity = await self._local_service.verify(saved["token"])
        except LocalAuthError as e:
            # token kept for the next attempt; federated check decides this run
            logger.warning(f"Local session not verified: {e}")
            return False

        if not valid:
            logger.info("Local session token rejected — cleared")
            self._store.remove(self._config.session_token_key)
            return False

        self._grant_local(saved["token"], identity or {})
        await self._set_state(AuthState.AUTHENTICATED_ADMIN)
        logger.info("🏠 Local session restored")
        return True

    def _grant_local(self, token: str, identity: dict) -> None:
        self._local_token = token
        self._local_identity = identity
        self._role = Role.ADMIN
        self._registration_status = RegistrationStatus.APPROVED

    # ── Local secret tier ───────────────────────────────

    async def login_with_secret(self, secret: str) -> bool:
        """Exchange the owner's secret for a session token. False leaves state unchanged."""
        if not self.local_sign_in_available:
            self._notifier.show("Local sign-in is only available on the private network.", "error")
            return False

        try:
            token = await self._local_service.exchange(secret)
        except LocalAuthError as e:
            message = "Local auth server unreachable. Try again shortly." if e.unreachable else str(e)
            self._notifier.show(message, "error")
            logger.warning(f"Local sign-in failed: {e}")
            return False

        self._store.set(self._config.session_token_key, {
            "token": token,
            "issuedAt": datetime.now(timezone.utc).isoformat(),
        })
        self._grant_local(token, {})
        if self._dialog.is_open:
            self._dialog.close()
        await self._set_state(AuthState.AUTHENTICATED_ADMIN)
        self._notifier.show(f"Welcome, {self.display_name}", "success")
        logger.info("🏠 Signed in with local secret")
        return True

    # ── Federated tier ──────────────────────────────────

    async def login_with_provider(self, name: str) -> bool:
        """Run the provider sign-in. Returns True only when the session ends up authenticated."""
        provider_id = PROVIDERS.get(name)
        if provider_id is None:
            raise ValueError(f"Unknown provider: {name}")

        if self._identity_provider is None:
            self._notifier.show("Sign-in is not available right now.", "error")
            return False

        try:
            identity = await self._identity_provider.sign_in(provider_id)
        except IdentityError as e:
            self._show_sign_in_error(e, name)
            return False

        await self._apply_identity(identity)
        return self.is_authenticated

    async def _apply_identity(self, identity: FederatedIdentity) -> None:
        self._identity = identity
        status = await self._check_registration(identity)
        self._registration_status = status

        if status is None:
            self._identity = None
            self._notifier.show("Could not verify your access. Please try again.", "error")
            await self._set_state(AuthState.UNAUTHENTICATED)
        elif status is RegistrationStatus.APPROVED:
            admin = self._role is Role.ADMIN
            if self._dialog.is_open:
                self._dialog.close()
            await self._set_state(
                AuthState.AUTHENTICATED_ADMIN if admin else AuthState.AUTHENTICATED_MEMBER
            )
            self._notifier.show(f"Welcome, {self.display_name}", "success")
            logger.info(f"Signed in (approved): {self.display_name}")
        elif status is RegistrationStatus.PENDING:
            await self._set_state(AuthState.PENDING_APPROVAL)
            self._show_pending()
            logger.info(f"Signed in (pending approval): {identity.uid}")
        else:
            logger.warning(f"Access denied: {identity.uid}")
            await self._end_federated_session()
            self._clear()
            await self._set_state(AuthState.UNAUTHENTICATED)
            self._show_login(error=DENIED_MESSAGE)

    async def _check_registration(self, identity: FederatedIdentity) -> Optional[RegistrationStatus]:
        """Look up or create ``users/{uid}``; sets the role. None means unverifiable."""
        if self._registrations is None:
            logger.warning("No registration store — allowing access")
            self._role = Role.MEMBER
            return RegistrationStatus.APPROVED

        try:
            record = await self._registrations.get_registration(identity.uid)
            if record:
                self._role = Role.ADMIN if record.get("role") == Role.ADMIN.value else Role.MEMBER
                try:
                    await self._registrations.update_last_login(identity.uid, {
                        "displayName": identity.display_name or record.get("displayName", ""),
                        "photoURL": identity.photo_url or record.get("photoURL", ""),
                    })
                except Exception as e:
                    logger.warning(f"Failed to update last login: {e}")
                return _parse_status(record.get("status"))

            registration = Registration(
                display_name=identity.display_name or identity.email.split("@")[0],
                email_hash=hash_email(identity.email),
                photo_url=identity.photo_url,
                provider=identity.provider_id,
            )
            await self._registrations.create_registration(
                identity.uid,
                registration.model_dump(by_alias=True, mode="json", exclude={"uid"}, exclude_none=True),
            )
            self._role = Role.MEMBER
            return RegistrationStatus.PENDING

        except Exception as e:
            logger.warning(f"Registration check failed: {e}")
            if self._config.registration_fail_open:
                self._role = Role.ADMIN
                return RegistrationStatus.APPROVED
            self._role = None
            return None

    def _show_sign_in_error(self, error: IdentityError, provider: str) -> None:
        if error.code == "popup-closed":
            return
        self._notifier.show(SIGN_IN_ERRORS.get(error.code, DEFAULT_SIGN_IN_ERROR), "error")
        logger.warning(f"{provider} sign-in failed: {error}")

    # ── Sign-out ────────────────────────────────────────

    async def _end_federated_session(self) -> None:
        if self._identity_provider is None:
            return
        try:
            await self._identity_provider.sign_out()
        except IdentityError as e:
            logger.warning(f"Provider sign-out failed: {e}")

    def _clear(self) -> None:
        self._identity = None
        self._registration_status = None
        self._role = None
        self._local_token = None
        self._local_identity = {}

    async def sign_out(self) -> None:
        """End whichever session is active and clear every local credential."""
        if self._local_token is not None and self._local_service is not None:
            try:
                await self._local_service.invalidate(self._local_token)
            except LocalAuthError as e:
                logger.warning(f"Local session invalidate failed: {e}")
        self._store.remove(self._config.session_token_key)

        if self._identity is not None:
            await self._end_federated_session()

        self._clear()
        self._pending_route = None
        if self._dialog.is_open:
            self._dialog.close()
        await self._set_state(AuthState.UNAUTHENTICATED)
        logger.info("Signed out")

    # ── Route checks ────────────────────────────────────

    def guard(self, route: str) -> bool:
        """May the session enter ``route``? False means the guard already showed why."""
        if not self._config.enable_auth or not self._routes.is_restricted(route):
            return True
        if self.is_authenticated:
            return True

        if self._state is AuthState.INITIALIZING:
            self._queued_route = route
            logger.info(f"Navigation to {route} queued until sign-in is verified")
            return False

        if self._state is AuthState.PENDING_APPROVAL:
            self._show_pending()
            return False

        self._pending_route = route
        self._show_login()
        return False

    def check_role(self, route: str) -> bool:
        if not self._config.enable_auth or not self._routes.is_admin_only(route):
            return True
        if self.is_admin:
            return True
        self._notifier.show("Administrator access required.", "error")
        logger.warning(f"Non-admin session blocked from {route}")
        return False

    def check_environment(self, route: str) -> bool:
        if not self._routes.is_local_only(route) or self.is_local_tier:
            return True
        self._notifier.show("This area is only available on the local dashboard.", "warning")
        logger.warning(f"Remote session blocked from local-only {route}")
        return False

    def take_queued_route(self) -> Optional[str]:
        """Route requested while verification was in flight; cleared on read."""
        route, self._queued_route = self._queued_route, None
        return route

    def take_pending_route(self) -> Optional[str]:
        """Route remembered at the login prompt; cleared on read."""
        route, self._pending_route = self._pending_route, None
        return route

    @property
    def pending_route(self) -> Optional[str]:
        return self._pending_route

    # ── Prompts ─────────────────────────────────────────

    def _show_login(self, error: str = "") -> None:
        actions: dict[str, Callable] = {
            name: partial(self.login_with_provider, name) for name in PROVIDERS
        }
        if self.local_sign_in_available:
            actions["local"] = self.login_with_secret
        self._dialog.open(DialogConfig(
            title=f"Sign in to {self._config.company_short_name} Dashboard",
            kind="login",
            body=error or "Sign in to access the dashboard.",
            actions=actions,
            on_cancel=self._cancel_login,
        ))

    def _cancel_login(self) -> None:
        self._pending_route = None

    def _show_pending(self) -> None:
        self._dialog.open(DialogConfig(
            title="Awaiting Approval",
            kind="pending",
            body=(
                f"Thanks for signing in, {self.display_name}. An administrator must "
                "approve your account before you can access the dashboard."
            ),
            actions={"sign-out": self.sign_out},
        ))
