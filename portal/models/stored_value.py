"""
Gold Bottom Ent. Portal — Stored value model.
One row per store key; the value is an opaque serialized string.
"""

from sqlalchemy import Column, String, Text, DateTime, func

from portal.database import Base


class StoredValue(Base):
    """A single key/value entry of the persistent store."""
    __tablename__ = "stored_values"

    key = Column(String(200), primary_key=True)
    value = Column(Text, nullable=False, default="")

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<StoredValue {self.key} ({len(self.value or '')} chars)>"
