"""
Gold Bottom Ent. Portal — Exceptions raised by the network-facing services.

Storage failures never surface (see ``portal.storage``); guard rejections are
plain booleans. Only the errors below cross a module boundary, and the
router / access controller turn each of them into a user-visible message.
"""


class PortalError(Exception):
    """Base class for portal errors."""


class ContentFetchError(PortalError):
    """The content server returned non-2xx, or the request never completed."""

    def __init__(self, location: str, reason: str, status: int | None = None):
        super().__init__(f"Failed to fetch {location}: {reason}")
        self.location = location
        self.reason = reason
        self.status = status


class LocalAuthError(PortalError):
    """The local verification service rejected the request or could not be reached."""

    def __init__(self, message: str, unreachable: bool = False):
        super().__init__(message)
        self.unreachable = unreachable


IDENTITY_ERROR_CODES = (
    "popup-closed",
    "popup-blocked",
    "network-failure",
    "account-conflict",
    "domain-unauthorized",
    "user-disabled",
    "unknown",
)


class IdentityError(PortalError):
    """Federated sign-in failed; ``code`` is one of ``IDENTITY_ERROR_CODES``."""

    def __init__(self, code: str, message: str = ""):
        if code not in IDENTITY_ERROR_CODES:
            code = "unknown"
        super().__init__(message or code)
        self.code = code
