"""
Gold Bottom Ent. Portal — Pydantic record schemas.

Stored records are plain JSON objects with camelCase keys; these models give
each collection a typed view over the same shape.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ActivityAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class Role(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


# ── Entity records ──────────────────────────────────────


class EntityRecord(_CamelModel):
    """Shared base: every stored record carries these system fields."""
    id: str
    created_at: str = ""
    updated_at: str = ""


class Talent(EntityRecord):
    name: str = ""
    category: str = ""          # artist, creative, developer
    status: str = "prospect"    # active, prospect, inactive
    commission: float = 0


class Contract(EntityRecord):
    name: str = ""
    type: str = ""
    status: str = "draft"       # draft, sent, signed, active, expired
    value: float = 0
    talent_id: str = ""


class RevenueEntry(EntityRecord):
    date: str = ""
    source: str = ""
    amount: float | str = 0
    category: str = ""


class Expense(EntityRecord):
    date: str = ""
    description: str = ""
    amount: float | str = 0
    category: str = ""


class Invoice(EntityRecord):
    invoice_number: str = ""
    client: str = ""
    amount: float | str = 0
    status: str = "draft"       # draft, sent, overdue, paid
    due_date: str = ""


class Event(EntityRecord):
    title: str = ""
    date: str = ""
    end_date: str = ""
    type: str = ""


class Booking(EntityRecord):
    name: str = ""
    venue: str = ""
    date: str = ""
    stage: str = "lead"


class IPRight(EntityRecord):
    title: str = ""
    type: str = ""
    ownership_pct: float = 0
    registration_status: str = ""


class MerchProduct(EntityRecord):
    name: str = ""
    price: float = 0
    status: str = ""


class MerchOrder(EntityRecord):
    name: str = ""
    total: float | str = 0


class Trip(EntityRecord):
    name: str = ""
    date: str = ""
    return_date: str = ""
    city: str = ""


class Release(EntityRecord):
    title: str = ""
    artist: str = ""
    release_date: str = ""
    status: str = ""
    platforms: list[str] = Field(default_factory=list)


class Document(EntityRecord):
    name: str = ""
    category: str = ""
    status: str = "missing"


class VenueLead(EntityRecord):
    name: str = ""
    category: str = ""
    city: str = ""
    state: str = ""
    outreach_status: str = "not-contacted"


class Credential(EntityRecord):
    name: str = ""
    category: str = ""
    login_url: str = ""
    username: str = ""


class Server(EntityRecord):
    name: str = ""
    provider: str = ""
    category: str = ""
    status: str = ""
    monthly_cost: float | str = 0


class ActivityRecord(_CamelModel):
    id: str
    action: ActivityAction
    entity_type: str
    entity_name: str
    timestamp: str


# ── Identity ────────────────────────────────────────────


class FederatedIdentity(_CamelModel):
    """What the identity provider hands back after a successful sign-in."""
    uid: str
    display_name: str = ""
    email: str = ""
    photo_url: str = Field("", alias="photoURL")
    provider_id: str = "unknown"


class Registration(_CamelModel):
    """Remote registration record, keyed by provider uid."""
    uid: str = ""
    display_name: str = ""
    email_hash: str = ""
    photo_url: str = Field("", alias="photoURL")
    provider: str = "unknown"
    status: RegistrationStatus = RegistrationStatus.PENDING
    role: Role = Role.MEMBER
    registered_at: datetime | str | None = None
    last_login_at: datetime | str | None = None
