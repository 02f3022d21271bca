"""Gold Bottom Ent. portal — routing, access control and local data layer."""

__version__ = "1.1.0"
