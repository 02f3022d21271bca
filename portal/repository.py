"""
Gold Bottom Ent. Portal — Entity repository.

Generic create/read/update/delete over named collections held in the
key-value store. Every mutation stamps timestamps and appends an entry to the
activity ring buffer. On first run the repository seeds the default dataset,
holding back sensitive collections unless the session is the local tier.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Type

from portal import schemas
from portal.fixtures import seed_data
from portal.schemas import ActivityAction, ActivityRecord, EntityRecord
from portal.storage import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    label: str                          # activity-log entity type
    record_type: Type[EntityRecord]
    sensitive: bool = False             # seeded only for the local tier


COLLECTIONS: dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (
        CollectionSpec("roster", "talent", schemas.Talent),
        CollectionSpec("contracts", "contract", schemas.Contract),
        CollectionSpec("revenue", "revenue", schemas.RevenueEntry, sensitive=True),
        CollectionSpec("expenses", "expense", schemas.Expense, sensitive=True),
        CollectionSpec("invoices", "invoice", schemas.Invoice, sensitive=True),
        CollectionSpec("events", "event", schemas.Event),
        CollectionSpec("bookings", "booking", schemas.Booking),
        CollectionSpec("ip-rights", "IP entry", schemas.IPRight),
        CollectionSpec("merch-products", "product", schemas.MerchProduct),
        CollectionSpec("merch-orders", "order", schemas.MerchOrder),
        CollectionSpec("travel", "itinerary", schemas.Trip),
        CollectionSpec("distribution", "release", schemas.Release),
        CollectionSpec("documents", "document", schemas.Document, sensitive=True),
        CollectionSpec("venue-leads", "venue lead", schemas.VenueLead),
        CollectionSpec("it-credentials", "credential", schemas.Credential, sensitive=True),
        CollectionSpec("it-servers", "server", schemas.Server),
    )
}

# Singleton documents (not collections, never activity-logged)
ACTIVITY = "activity"
INTEGRATIONS = "integrations"
SETTINGS = "settings"
CHECKLIST = "checklist"

SENSITIVE_DOCUMENTS = (SETTINGS, CHECKLIST)
SEED_SENTINEL = "roster"
REMOTE_TIER_MARKER = "data-v2"

# Non-sensitive collections seeded on the first run of any tier
_PUBLIC_SEED_ORDER = (
    "roster", "contracts", "events", "bookings", "ip-rights", "merch-products",
    "merch-orders", "travel", "distribution", "venue-leads", "it-servers",
)


def generate_id() -> str:
    """High-resolution timestamp plus a random suffix, e.g. ``gbe_1708000000000123456_a3f2``."""
    return f"gbe_{time.time_ns()}_{secrets.token_hex(2)}"


class EntityRepository:
    """CRUD over the store's named collections."""

    def __init__(self, store: KeyValueStore, prefix: str = "gbe-", activity_limit: int = 50):
        self._store = store
        self._prefix = prefix
        self._activity_limit = activity_limit
        self._last_stamp: Optional[datetime] = None

    # ── keys & timestamps ───────────────────────────────

    def key(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def _timestamp(self) -> str:
        """UTC ISO timestamp, strictly increasing within this repository."""
        now = datetime.now(timezone.utc)
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now.isoformat(timespec="microseconds")

    @staticmethod
    def _spec(collection: str) -> CollectionSpec:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    # ── generic CRUD ────────────────────────────────────

    def get_all(self, collection: str) -> list[dict]:
        self._spec(collection)
        return self._store.get(self.key(collection), [])

    def get_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        return next((r for r in self.get_all(collection) if r.get("id") == record_id), None)

    def records(self, collection: str) -> list[EntityRecord]:
        """Typed view of a collection."""
        record_type = self._spec(collection).record_type
        return [record_type.model_validate(r) for r in self.get_all(collection)]

    def add(self, collection: str, record: dict) -> dict:
        items = self.get_all(collection)
        taken = {r.get("id") for r in items}

        item = dict(record)
        if item.get("id") in taken:
            logger.warning(f"id {item['id']} already in {collection} — assigning a new one")
            item["id"] = None
        if not item.get("id"):
            new_id = generate_id()
            while new_id in taken:
                new_id = generate_id()
            item["id"] = new_id

        stamp = self._timestamp()
        item["createdAt"] = item.get("createdAt") or stamp
        item["updatedAt"] = stamp

        items.append(item)
        self._store.set(self.key(collection), items)
        self._log_activity(ActivityAction.CREATE, collection, item)
        return item

    def update(self, collection: str, record_id: str, patch: dict) -> Optional[dict]:
        items = self.get_all(collection)
        index = next((i for i, r in enumerate(items) if r.get("id") == record_id), None)
        if index is None:
            return None

        merged = {**items[index], **patch}
        merged["id"] = record_id
        merged["createdAt"] = items[index].get("createdAt")
        merged["updatedAt"] = self._timestamp()
        items[index] = merged

        self._store.set(self.key(collection), items)
        self._log_activity(ActivityAction.UPDATE, collection, merged)
        return merged

    def delete(self, collection: str, record_id: str) -> list[dict]:
        items = self.get_all(collection)
        removed = next((r for r in items if r.get("id") == record_id), None)
        remaining = [r for r in items if r.get("id") != record_id]

        if removed is not None:
            self._store.set(self.key(collection), remaining)
            self._log_activity(ActivityAction.DELETE, collection, removed)
        return remaining

    # ── activity log ────────────────────────────────────

    def _log_activity(self, action: ActivityAction, collection: str, entity: dict) -> None:
        label = COLLECTIONS[collection].label if collection in COLLECTIONS else "item"
        name = entity.get("name") or entity.get("title") or entity.get("description") or "Unknown"

        activities = self._store.get(self.key(ACTIVITY), [])
        entry = ActivityRecord(
            id=generate_id(),
            action=action,
            entity_type=label,
            entity_name=str(name),
            timestamp=self._timestamp(),
        )
        activities.insert(0, entry.model_dump(by_alias=True, mode="json"))
        del activities[self._activity_limit:]
        self._store.set(self.key(ACTIVITY), activities)

    def get_activity(self, limit: int = 10) -> list[dict]:
        """Most recent activity, newest first."""
        return self._store.get(self.key(ACTIVITY), [])[:limit]

    # ── singleton documents ─────────────────────────────

    def get_integrations(self) -> dict:
        return self._store.get(self.key(INTEGRATIONS), {})

    def update_integration(self, service: str, data: dict) -> dict:
        integrations = self.get_integrations()
        integrations[service] = {
            **integrations.get(service, {}),
            **data,
            "updatedAt": self._timestamp(),
        }
        self._store.set(self.key(INTEGRATIONS), integrations)
        return integrations[service]

    def get_settings(self) -> dict:
        return self._store.get(self.key(SETTINGS), {})

    def update_settings(self, data: dict) -> dict:
        current = self.get_settings()
        current.update(data)
        current["updatedAt"] = self._timestamp()
        self._store.set(self.key(SETTINGS), current)
        return current

    def get_checklist(self) -> list[dict]:
        return self._store.get(self.key(CHECKLIST), [])

    def update_checklist_item(self, item_id: str, checked: bool) -> list[dict]:
        checklist = self.get_checklist()
        item = next((c for c in checklist if c.get("id") == item_id), None)
        if item is not None:
            item["checked"] = checked
            item["updatedAt"] = self._timestamp()
            self._store.set(self.key(CHECKLIST), checklist)
        return checklist

    # ── seeding ─────────────────────────────────────────

    def _seed(self, name: str) -> None:
        data = seed_data(name)
        if name == SETTINGS:
            data["updatedAt"] = self._timestamp()
        self._store.set(self.key(name), data)

    def seed_sensitive(self) -> list[str]:
        """
        Backfill every sensitive collection and document whose key is absent.

        Local tier only. Existing keys, even empty ones, are left alone.
        """
        seeded = [name for name in self.sensitive_keys() if not self._store.has(self.key(name))]
        for name in seeded:
            self._seed(name)
        if seeded:
            logger.info(f"🔑 Seeded local-tier data: {', '.join(seeded)}")
        return seeded

    def seed_if_empty(self, local_tier: bool = False) -> bool:
        """
        Populate default data on first run.

        Returns True when the full seed ran, False when existing data was found.
        Sensitive collections are seeded only for the local tier.
        """
        # Remote tier migration: clear sensitive data provisioned before tiering existed
        if not local_tier and not self._store.has(self.key(REMOTE_TIER_MARKER)):
            for name in self.sensitive_keys():
                self._store.remove(self.key(name))
            self._store.set(self.key(REMOTE_TIER_MARKER), "remote")
            logger.info("🔒 Cleared sensitive data for remote tier")

        # One-time migrations for collections added after first release
        if not self._store.has(self.key("venue-leads")):
            self._seed("venue-leads")
            logger.info("🏛️ Migrated venue leads")
        if not self._store.has(self.key("it-servers")):
            self._seed("it-servers")
            logger.info("🖥️ Migrated IT servers")
        if local_tier:
            self.seed_sensitive()

        if self._store.has(self.key(SEED_SENTINEL)):
            logger.info("📦 Existing data found — skipping seed")
            return False

        logger.info(f"🌱 Seeding initial data ({'full' if local_tier else 'remote-safe'})...")
        for name in _PUBLIC_SEED_ORDER:
            self._seed(name)
        self._seed(ACTIVITY)

        logger.info("✅ Seed complete")
        return True

    @staticmethod
    def sensitive_keys() -> list[str]:
        return [s.name for s in COLLECTIONS.values() if s.sensitive] + list(SENSITIVE_DOCUMENTS)

    def reset_all(self, local_tier: bool = False) -> None:
        """Clear every key and re-seed."""
        for name in [*COLLECTIONS, ACTIVITY, INTEGRATIONS, SETTINGS, CHECKLIST]:
            self._store.remove(self.key(name))
        self.seed_if_empty(local_tier=local_tier)
        logger.info("🔄 Data reset and re-seeded")
