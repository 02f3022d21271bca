"""
Gold Bottom Ent. Portal — Firebase bridge service.

Registration records live in RTDB under ``users/{uid}``; page views are
appended to ``analytics/pageviews``. Federated sign-in tokens are verified
with the Admin SDK.

Requires a service account key (``FIREBASE_CRED_PATH``).
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

import firebase_admin
from firebase_admin import auth as firebase_auth, credentials, db as firebase_db
from firebase_admin import exceptions as firebase_exceptions

from portal.errors import IdentityError
from portal.schemas import FederatedIdentity
from portal.storage import KeyValueStore

logger = logging.getLogger(__name__)

_initialized = False


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def init_firebase(cred_path: str = "", db_url: str = "") -> bool:
    """
    Initialize Firebase Admin SDK.

    Args:
        cred_path: Path to the service account JSON key file.
        db_url: Firebase RTDB URL.

    Returns True if init succeeded, False otherwise.
    """
    global _initialized

    if _initialized:
        return True

    if not cred_path:
        logger.warning("FIREBASE_CRED_PATH not set — registrations and analytics disabled")
        return False

    try:
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred, {"databaseURL": db_url})
        _initialized = True
        logger.info("✅ Firebase Admin SDK initialized")
        return True
    except Exception as e:
        logger.error(f"Firebase init failed: {e}")
        return False


def is_initialized() -> bool:
    """Check if Firebase Admin SDK is initialized."""
    return _initialized


# ── Registrations ───────────────────────────────────────


def get_registration(uid: str) -> Optional[dict]:
    """
    Read ``users/{uid}``.

    Raises on any backend failure so the caller can apply its outage policy;
    an absent record returns None.
    """
    if not _initialized:
        raise RuntimeError("Firebase not initialized")

    snapshot = firebase_db.reference(f"users/{uid}").get()
    return snapshot or None


def create_registration(uid: str, record: dict) -> None:
    """Write a new registration record. Raises on failure."""
    if not _initialized:
        raise RuntimeError("Firebase not initialized")

    stamp = _now()
    firebase_db.reference(f"users/{uid}").set({
        **record,
        "registeredAt": stamp,
        "lastLoginAt": stamp,
    })
    logger.info(f"New registration created for {record.get('displayName') or uid}")


def update_last_login(uid: str, fields: Optional[dict] = None) -> bool:
    """
    Stamp ``lastLoginAt`` (plus any refreshed profile fields).

    Returns True on success, False on failure.
    """
    if not _initialized:
        return False

    try:
        update = {"lastLoginAt": _now()}
        if fields:
            update.update(fields)
        firebase_db.reference(f"users/{uid}").update(update)
        return True
    except Exception as e:
        logger.warning(f"Failed to update last login for {uid}: {e}")
        return False


# ── Analytics ───────────────────────────────────────────


def track_page_view(path: str) -> bool:
    """Append one page view. Returns True on success, False on failure."""
    if not _initialized:
        return False

    try:
        firebase_db.reference("analytics/pageviews").push({
            "path": path,
            "timestamp": _now(),
        })
        return True
    except Exception as e:
        logger.error(f"Firebase track_page_view failed: {e}")
        return False


class FirebaseRegistrationStore:
    """Async facade over the blocking RTDB calls."""

    async def get_registration(self, uid: str) -> Optional[dict]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, get_registration, uid)

    async def create_registration(self, uid: str, record: dict) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, create_registration, uid, record)

    async def update_last_login(self, uid: str, fields: Optional[dict] = None) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, update_last_login, uid, fields)


class FirebaseAnalytics:
    """Fire-and-forget page views; never blocks navigation."""

    def track_page_view(self, path: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            track_page_view(path)
            return
        loop.run_in_executor(None, track_page_view, path)


# ── Federated identity ──────────────────────────────────

# provider id → sign-in popup that resolves to a Firebase ID token
TokenSource = Callable[[str], Awaitable[str]]

ID_TOKEN_KEY = "firebase-id-token"


def _identity_error(exc: Exception) -> IdentityError:
    """Map Admin SDK failures onto the sign-in error categories."""
    if isinstance(exc, firebase_auth.UserDisabledError):
        return IdentityError("user-disabled", str(exc))
    if isinstance(exc, (
        firebase_auth.CertificateFetchError,
        firebase_exceptions.UnavailableError,
        firebase_exceptions.DeadlineExceededError,
    )):
        return IdentityError("network-failure", str(exc))
    return IdentityError("unknown", str(exc))


def identity_from_claims(claims: dict) -> FederatedIdentity:
    firebase_claims = claims.get("firebase") or {}
    return FederatedIdentity(
        uid=claims.get("uid") or claims.get("sub", ""),
        display_name=claims.get("name", ""),
        email=claims.get("email", ""),
        photo_url=claims.get("picture", ""),
        provider_id=firebase_claims.get("sign_in_provider", "unknown"),
    )


class FirebaseIdentityProvider:
    """
    Verifies the ID token produced by the client-side popup.

    The most recent token is kept in the key-value store so a reload can
    restore the identity without another popup.
    """

    def __init__(self, token_source: Optional[TokenSource] = None,
                 store: Optional[KeyValueStore] = None, token_key: str = ID_TOKEN_KEY):
        self._token_source = token_source
        self._store = store
        self._token_key = token_key

    async def _verify(self, id_token: str) -> FederatedIdentity:
        loop = asyncio.get_running_loop()
        try:
            claims = await loop.run_in_executor(
                None, lambda: firebase_auth.verify_id_token(id_token, check_revoked=True)
            )
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise _identity_error(e) from e
        return identity_from_claims(claims)

    async def sign_in(self, provider_id: str) -> FederatedIdentity:
        if self._token_source is None:
            raise IdentityError("popup-blocked", "No sign-in client available")
        id_token = await self._token_source(provider_id)
        identity = await self._verify(id_token)
        if self._store is not None:
            self._store.set(self._token_key, id_token)
        logger.info(f"Verified {provider_id} identity for {identity.email or identity.uid}")
        return identity

    async def current_identity(self) -> Optional[FederatedIdentity]:
        if self._store is None:
            return None
        id_token = self._store.get(self._token_key)
        if not id_token:
            return None
        try:
            return await self._verify(id_token)
        except IdentityError as e:
            if e.code == "network-failure":
                logger.warning(f"Could not verify stored sign-in: {e}")
                return None
            logger.info(f"Stored sign-in no longer valid ({e.code}) — cleared")
            self._store.remove(self._token_key)
            return None

    async def sign_out(self) -> None:
        if self._store is not None:
            self._store.remove(self._token_key)
