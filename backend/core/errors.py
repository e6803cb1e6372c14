"""
Data Access Errors

Every failure surfaced by the tenant-scoped store is one of these types.
Cross-tenant rows surface as NotFoundError so callers cannot probe for
other tenants' data.
"""


class DataAccessError(Exception):
    """Base class for all data-layer failures."""

    def __init__(self, message: str, *, model: str | None = None):
        super().__init__(message)
        self.model = model


class PreconditionError(DataAccessError):
    """An operation was attempted without its required context."""


class TenantRequiredError(PreconditionError):
    def __init__(self, model: str | None = None, action: str | None = None):
        message = (
            "Tenant ID required for database access. "
            "Use set_active_tenant() or tenant_scope() before database operations."
        )
        super().__init__(message, model=model)
        self.action = action


class NotFoundError(DataAccessError):
    """No row matched inside the active tenant's partition."""

    def __init__(self, model: str, where: dict | None = None):
        super().__init__(f"{model} not found", model=model)
        self.where = dict(where or {})


class AmbiguousMatchError(DataAccessError):
    """A single-row operation matched more than one row; its filter must hit a unique key."""


class ConstraintViolationError(DataAccessError):
    """Uniqueness, foreign-key or check constraint rejected the write."""

    def __init__(self, message: str, *, model: str | None = None, constraint: str | None = None):
        super().__init__(message, model=model)
        self.constraint = constraint


class StorageConnectionError(DataAccessError):
    """Transient storage failure. Never retried by this layer."""
