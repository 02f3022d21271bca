from portal.models.stored_value import StoredValue  # noqa: F401
