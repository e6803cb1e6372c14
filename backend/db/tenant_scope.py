"""
Tenant Isolation Interceptor

Every entity operation is described as a QueryParams value and passed
through apply_tenant_scope() before it reaches storage. The rewrite:

  1. Requires an active tenant (raw queries excepted).
  2. ANDs tenant_id into the filter of every read, count, aggregate,
     group-by, update and delete.
  3. Stamps tenant_id onto every created record, overriding whatever
     the caller supplied.
  4. Leaves models outside TENANT_SCOPED_MODELS untouched.

The function is pure: it never touches storage, so a tenant failure is
raised before any round-trip.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import structlog

from core.errors import TenantRequiredError

logger = structlog.get_logger()

TENANT_FIELD = "tenant_id"

TENANT_SCOPED_MODELS = frozenset(
    {
        "Supplier",
        "Product",
        "Location",
        "ShipmentRoute",
        "RiskEvent",
        "Inventory",
        "User",
        "RiskEventSupplier",
        "RiskEventProduct",
        "RiskEventLocation",
        "RiskEventRoute",
    }
)


class Action(str, Enum):
    """Operation kinds understood by the interceptor."""

    FIND_UNIQUE = "find_unique"
    FIND_FIRST = "find_first"
    FIND_MANY = "find_many"
    COUNT = "count"
    AGGREGATE = "aggregate"
    GROUP_BY = "group_by"
    CREATE = "create"
    CREATE_MANY = "create_many"
    UPDATE = "update"
    UPDATE_MANY = "update_many"
    UPSERT = "upsert"
    DELETE = "delete"
    DELETE_MANY = "delete_many"
    QUERY_RAW = "query_raw"
    EXECUTE_RAW = "execute_raw"


RAW_ACTIONS = frozenset({Action.QUERY_RAW, Action.EXECUTE_RAW})

FILTERED_ACTIONS = frozenset(
    {
        Action.FIND_UNIQUE,
        Action.FIND_FIRST,
        Action.FIND_MANY,
        Action.COUNT,
        Action.AGGREGATE,
        Action.GROUP_BY,
        Action.UPDATE,
        Action.UPDATE_MANY,
        Action.DELETE,
        Action.DELETE_MANY,
    }
)

UPDATE_ACTIONS = frozenset({Action.UPDATE, Action.UPDATE_MANY})


@dataclass(frozen=True)
class QueryParams:
    """
    One storage operation before execution.

    where:  equality filter (column name -> value)
    data:   payload for create/update; a list of payloads for create_many
    create: insert payload of an upsert (update payload goes in data)
    """

    model: str | None
    action: Action
    where: dict[str, Any] = field(default_factory=dict)
    data: dict[str, Any] | list[dict[str, Any]] | None = None
    create: dict[str, Any] | None = None


def is_tenant_scoped(model: str | None) -> bool:
    return model is not None and model in TENANT_SCOPED_MODELS


def _stamp(record: dict[str, Any] | None, tenant_id: str) -> dict[str, Any]:
    return {**(record or {}), TENANT_FIELD: tenant_id}


def _pin(data, tenant_id: str):
    """Keep an update payload from moving rows to another tenant."""
    if isinstance(data, dict) and TENANT_FIELD in data:
        return {**data, TENANT_FIELD: tenant_id}
    return data


def apply_tenant_scope(params: QueryParams, tenant_id: str | None) -> QueryParams:
    """Return params rewritten so the operation only touches tenant_id's rows."""
    if params.action in RAW_ACTIONS:
        return params

    if not tenant_id:
        logger.warning("tenant.required", model=params.model, action=params.action.value)
        raise TenantRequiredError(model=params.model, action=params.action.value)

    if not is_tenant_scoped(params.model):
        return params

    if params.action in UPDATE_ACTIONS:
        return replace(params, where=_stamp(params.where, tenant_id), data=_pin(params.data, tenant_id))

    if params.action in FILTERED_ACTIONS:
        return replace(params, where=_stamp(params.where, tenant_id))

    if params.action is Action.CREATE:
        return replace(params, data=_stamp(params.data, tenant_id))

    if params.action is Action.CREATE_MANY:
        if isinstance(params.data, list):
            return replace(params, data=[_stamp(record, tenant_id) for record in params.data])
        return replace(params, data=_stamp(params.data, tenant_id))

    if params.action is Action.UPSERT:
        return replace(
            params,
            where=_stamp(params.where, tenant_id),
            data=_pin(params.data, tenant_id),
            create=_stamp(params.create, tenant_id),
        )

    return params
