"""
Active Tenant Context

Holds the tenant on whose behalf the current logical operation runs.
Backed by a ContextVar, so each asyncio task (and each thread) sees its
own value: concurrent requests for different tenants never observe or
overwrite each other's tenant.
"""

import inspect
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

import structlog

from core.errors import TenantRequiredError

T = TypeVar("T")

_active_tenant: ContextVar[str | None] = ContextVar("active_tenant_id", default=None)


def set_active_tenant(tenant_id: str) -> None:
    """Replace the active tenant for the current execution context."""
    _active_tenant.set(tenant_id)


def get_active_tenant() -> str | None:
    return _active_tenant.get()


def clear_active_tenant() -> None:
    _active_tenant.set(None)


def require_active_tenant(model: str | None = None, action: str | None = None) -> str:
    tenant_id = _active_tenant.get()
    if not tenant_id:
        raise TenantRequiredError(model=model, action=action)
    return tenant_id


@contextmanager
def tenant_scope(tenant_id: str) -> Iterator[str]:
    """
    Activate tenant_id for the duration of the block.

    The previous tenant (or none) is restored on every exit path,
    including when the block raises.
    """
    token = _active_tenant.set(tenant_id)
    try:
        with structlog.contextvars.bound_contextvars(tenant_id=tenant_id):
            yield tenant_id
    finally:
        _active_tenant.reset(token)


async def run_with_tenant(
    tenant_id: str,
    fn: Callable[..., Awaitable[T] | T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Run fn with tenant_id active and restore the previous tenant afterwards.

    Accepts both coroutine functions and plain callables.

    Example:
        suppliers = await run_with_tenant("tenant-123", service.find_all)
    """
    with tenant_scope(tenant_id):
        result = fn(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
