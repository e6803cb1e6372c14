"""
Tenant-Bound Store

The single entry point from entity services to storage. Every method
describes its operation as QueryParams, runs it through
apply_tenant_scope(), and only then builds SQL from the rewritten
params. Services are handed a TenantScopedStore, never a raw session,
so no entity operation can reach storage unscoped.

Writes run inside a SAVEPOINT: a constraint violation rolls back that
single operation and leaves the surrounding unit of work usable.
"""

import uuid
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar

import structlog
from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, MultipleResultsFound, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import with_loader_criteria

from core.errors import (
    AmbiguousMatchError,
    ConstraintViolationError,
    NotFoundError,
    StorageConnectionError,
)
from core.tenancy import get_active_tenant
from db.models import TenantScoped, utcnow
from db.session import Base
from db.tenant_scope import TENANT_FIELD, Action, QueryParams, apply_tenant_scope, is_tenant_scoped

logger = structlog.get_logger()

M = TypeVar("M", bound=Base)

AGGREGATES = {"sum": func.sum, "avg": func.avg, "min": func.min, "max": func.max}


def _constraint_name(exc: DBAPIError) -> str | None:
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
    return None


@contextmanager
def storage_errors(model: str | None) -> Iterator[None]:
    """Translate SQLAlchemy failures into the data-layer error types."""
    try:
        yield
    except MultipleResultsFound as exc:
        logger.warning("store.ambiguous_match", model=model)
        raise AmbiguousMatchError(f"{model} filter matched more than one row", model=model) from exc
    except IntegrityError as exc:
        constraint = _constraint_name(exc)
        logger.warning("store.constraint_violation", model=model, constraint=constraint, error=str(exc.orig))
        raise ConstraintViolationError(str(exc.orig), model=model, constraint=constraint) from exc
    except (OperationalError, InterfaceError) as exc:
        logger.error("store.connection_error", model=model, error=str(exc.orig))
        raise StorageConnectionError(str(exc.orig), model=model) from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            logger.error("store.connection_invalidated", model=model, error=str(exc.orig))
            raise StorageConnectionError(str(exc.orig), model=model) from exc
        raise


class TenantScopedStore:
    """
    Storage handle bound to one tenant.

    With an explicit tenant_id the handle is pinned to that tenant;
    otherwise it resolves the active tenant from core.tenancy on every
    call, so it follows whatever tenant_scope() the caller is in.
    """

    def __init__(self, session: AsyncSession, tenant_id: str | None = None):
        self._session = session
        self._tenant_id = tenant_id

    @property
    def tenant_id(self) -> str | None:
        return self._tenant_id or get_active_tenant()

    # ── Scoping helpers ────────────────────────────────────────────────────

    def _scope(self, model: type[Base] | None, action: Action, **kwargs: Any) -> QueryParams:
        params = QueryParams(model=model.__name__ if model is not None else None, action=action, **kwargs)
        return apply_tenant_scope(params, self.tenant_id)

    def require_tenant(self, model: type[Base] | None, action: Action) -> str:
        """Fail with TenantRequiredError unless a tenant is resolvable, without touching storage."""
        self._scope(model, action)
        return self.tenant_id

    @staticmethod
    def _check_columns(model: type[M], keys: Iterable[str]) -> None:
        columns = model.__table__.c
        for key in keys:
            if key not in columns:
                raise ValueError(f"{model.__name__} has no column {key!r}")

    @classmethod
    def _clauses(cls, model: type[M], where: dict[str, Any]) -> list:
        cls._check_columns(model, where)
        clauses = []
        for key, value in where.items():
            column = getattr(model, key)
            clauses.append(column.is_(None) if value is None else column == value)
        return clauses

    def _select(self, model: type[M], params: QueryParams, criteria: Iterable = (), options: Iterable = ()):
        stmt = select(model).where(*self._clauses(model, params.where), *criteria)
        if is_tenant_scoped(params.model):
            tenant_id = params.where[TENANT_FIELD]
            # Eager-loaded relationships are filtered to the same tenant.
            stmt = stmt.options(
                with_loader_criteria(TenantScoped, lambda cls: cls.tenant_id == tenant_id, include_aliases=True)
            )
        return stmt.options(*options).execution_options(populate_existing=True)

    async def _check_references(self, model: type[M], data: dict[str, Any]) -> None:
        """Every foreign key in data must point at a row of the active tenant."""
        tenant_id = data.get(TENANT_FIELD) or self.tenant_id
        for column in model.__table__.columns:
            value = data.get(column.key)
            if value is None or not column.foreign_keys:
                continue
            target_table = next(iter(column.foreign_keys)).column.table
            target = _model_for_table(target_table)
            if target is None or not is_tenant_scoped(target.__name__):
                continue
            with storage_errors(model.__name__):
                found = await self._session.scalar(
                    select(func.count()).select_from(target).where(target.id == value, target.tenant_id == tenant_id)
                )
            if not found:
                logger.warning(
                    "store.foreign_key_outside_tenant",
                    model=model.__name__,
                    column=column.key,
                    target=target.__name__,
                )
                raise ConstraintViolationError(
                    f"{model.__name__}.{column.key} references a {target.__name__} that does not exist",
                    model=model.__name__,
                    constraint=next(iter(column.foreign_keys)).name,
                )

    def savepoint(self):
        """Group several writes so they commit or roll back together."""
        return self._session.begin_nested()

    # ── Reads ──────────────────────────────────────────────────────────────

    async def find_unique(self, model: type[M], where: dict[str, Any], *, options: Iterable = ()) -> M | None:
        params = self._scope(model, Action.FIND_UNIQUE, where=dict(where))
        with storage_errors(params.model):
            result = await self._session.execute(self._select(model, params, options=options))
            return result.scalar_one_or_none()

    async def find_first(
        self,
        model: type[M],
        where: dict[str, Any] | None = None,
        *criteria,
        order_by: Sequence = (),
        options: Iterable = (),
    ) -> M | None:
        params = self._scope(model, Action.FIND_FIRST, where=dict(where or {}))
        stmt = self._select(model, params, criteria, options).order_by(*order_by).limit(1)
        with storage_errors(params.model):
            result = await self._session.execute(stmt)
            return result.scalars().first()

    async def find_many(
        self,
        model: type[M],
        where: dict[str, Any] | None = None,
        *criteria,
        order_by: Sequence = (),
        offset: int | None = None,
        limit: int | None = None,
        options: Iterable = (),
    ) -> list[M]:
        params = self._scope(model, Action.FIND_MANY, where=dict(where or {}))
        stmt = self._select(model, params, criteria, options).order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        with storage_errors(params.model):
            result = await self._session.execute(stmt)
            return list(result.scalars().unique().all())

    async def count(self, model: type[M], where: dict[str, Any] | None = None, *criteria) -> int:
        params = self._scope(model, Action.COUNT, where=dict(where or {}))
        stmt = select(func.count()).select_from(model).where(*self._clauses(model, params.where), *criteria)
        with storage_errors(params.model):
            return int(await self._session.scalar(stmt) or 0)

    async def aggregate(
        self,
        model: type[M],
        where: dict[str, Any] | None = None,
        *criteria,
        sum: Sequence[str] = (),
        avg: Sequence[str] = (),
        min: Sequence[str] = (),
        max: Sequence[str] = (),
    ) -> dict[str, Any]:
        """
        Count plus per-field aggregates over the tenant's matching rows.

        Returns {"count": n, "sum": {field: value}, "avg": {...}, ...}
        with only the requested aggregate keys present.
        """
        params = self._scope(model, Action.AGGREGATE, where=dict(where or {}))
        requested = {"sum": sum, "avg": avg, "min": min, "max": max}
        columns = [func.count().label("count")]
        for kind, fields in requested.items():
            columns.extend(AGGREGATES[kind](getattr(model, f)).label(f"{kind}__{f}") for f in fields)
        stmt = select(*columns).select_from(model).where(*self._clauses(model, params.where), *criteria)
        with storage_errors(params.model):
            row = (await self._session.execute(stmt)).mappings().one()

        result: dict[str, Any] = {"count": row["count"]}
        for kind, fields in requested.items():
            if fields:
                result[kind] = {f: row[f"{kind}__{f}"] for f in fields}
        return result

    async def group_by(
        self,
        model: type[M],
        by: Sequence[str],
        where: dict[str, Any] | None = None,
        *criteria,
        sum: Sequence[str] = (),
        avg: Sequence[str] = (),
        min: Sequence[str] = (),
        max: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        params = self._scope(model, Action.GROUP_BY, where=dict(where or {}))
        requested = {"sum": sum, "avg": avg, "min": min, "max": max}
        keys = [getattr(model, f) for f in by]
        columns = [*keys, func.count().label("count")]
        for kind, fields in requested.items():
            columns.extend(AGGREGATES[kind](getattr(model, f)).label(f"{kind}__{f}") for f in fields)
        stmt = (
            select(*columns)
            .select_from(model)
            .where(*self._clauses(model, params.where), *criteria)
            .group_by(*keys)
            .order_by(*keys)
        )
        with storage_errors(params.model):
            rows = (await self._session.execute(stmt)).mappings().all()

        groups = []
        for row in rows:
            group: dict[str, Any] = {f: row[f] for f in by}
            group["count"] = row["count"]
            for kind, fields in requested.items():
                if fields:
                    group[kind] = {f: row[f"{kind}__{f}"] for f in fields}
            groups.append(group)
        return groups

    # ── Writes ─────────────────────────────────────────────────────────────

    async def create(self, model: type[M], data: dict[str, Any]) -> M:
        params = self._scope(model, Action.CREATE, data=dict(data))
        return (await self._insert(model, [params.data]))[0]

    async def create_many(self, model: type[M], records: Sequence[dict[str, Any]]) -> list[M]:
        params = self._scope(model, Action.CREATE_MANY, data=[dict(r) for r in records])
        return await self._insert(model, params.data)

    async def _insert(self, model: type[M], records: list[dict[str, Any]]) -> list[M]:
        for record in records:
            await self._check_references(model, record)
        instances = [model(**record) for record in records]
        with storage_errors(model.__name__):
            async with self._session.begin_nested():
                self._session.add_all(instances)
                await self._session.flush()
        logger.info("store.create", model=model.__name__, count=len(instances))
        return instances

    async def update(self, model: type[M], where: dict[str, Any], data: dict[str, Any]) -> M:
        """Update the single matching row; NotFoundError when the tenant has none."""
        params = self._scope(model, Action.UPDATE, where=dict(where), data=dict(data))
        with storage_errors(params.model):
            result = await self._session.execute(self._select(model, params))
            instance = result.scalar_one_or_none()
        if instance is None:
            raise NotFoundError(params.model, where)
        return await self._apply_update(model, instance, params.data)

    async def _apply_update(self, model: type[M], instance: M, data: dict[str, Any]) -> M:
        self._check_columns(model, data)
        await self._check_references(model, data)
        with storage_errors(model.__name__):
            async with self._session.begin_nested():
                for key, value in data.items():
                    setattr(instance, key, value)
                await self._session.flush()
        logger.info("store.update", model=model.__name__, id=str(instance.id), fields=sorted(data))
        return instance

    async def update_many(self, model: type[M], where: dict[str, Any], data: dict[str, Any], *criteria) -> int:
        params = self._scope(model, Action.UPDATE_MANY, where=dict(where), data=dict(data))
        values = dict(params.data)
        self._check_columns(model, values)
        await self._check_references(model, values)
        if "updated_at" in model.__table__.c:
            values.setdefault("updated_at", utcnow())
        stmt = update(model).where(*self._clauses(model, params.where), *criteria).values(**values)
        with storage_errors(params.model):
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
        logger.info("store.update_many", model=params.model, count=result.rowcount)
        return result.rowcount

    async def upsert(
        self,
        model: type[M],
        where: dict[str, Any],
        create_data: dict[str, Any],
        update_data: dict[str, Any],
    ) -> M:
        params = self._scope(
            model, Action.UPSERT, where=dict(where), create=dict(create_data), data=dict(update_data)
        )
        with storage_errors(params.model):
            result = await self._session.execute(self._select(model, params))
            instance = result.scalar_one_or_none()
        if instance is None:
            return (await self._insert(model, [params.create]))[0]
        return await self._apply_update(model, instance, params.data)

    async def delete(self, model: type[M], where: dict[str, Any]) -> M:
        """Delete the single matching row and return it; NotFoundError when absent."""
        params = self._scope(model, Action.DELETE, where=dict(where))
        with storage_errors(params.model):
            result = await self._session.execute(self._select(model, params))
            instance = result.scalar_one_or_none()
        if instance is None:
            raise NotFoundError(params.model, where)

        # Core DELETE so the database applies its RESTRICT / CASCADE rules.
        stmt = delete(model).where(*self._clauses(model, {**params.where, "id": instance.id}))
        with storage_errors(params.model):
            async with self._session.begin_nested():
                await self._session.execute(stmt)
        logger.info("store.delete", model=params.model, id=str(instance.id))
        return instance

    async def delete_many(self, model: type[M], where: dict[str, Any] | None = None, *criteria) -> int:
        params = self._scope(model, Action.DELETE_MANY, where=dict(where or {}))
        stmt = delete(model).where(*self._clauses(model, params.where), *criteria)
        with storage_errors(params.model):
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
        logger.info("store.delete_many", model=params.model, count=result.rowcount)
        return result.rowcount

    # ── Raw access (operational tooling only, never tenant-scoped) ─────────

    async def execute_raw(self, sql: str, parameters: dict[str, Any] | None = None) -> int:
        self._scope(None, Action.EXECUTE_RAW)
        with storage_errors(None):
            result = await self._session.execute(text(sql), parameters or {})
        logger.info("store.execute_raw", rowcount=result.rowcount)
        return result.rowcount

    async def query_raw(self, sql: str, parameters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        self._scope(None, Action.QUERY_RAW)
        with storage_errors(None):
            result = await self._session.execute(text(sql), parameters or {})
            return [dict(row) for row in result.mappings().all()]


def _model_for_table(table) -> type[Base] | None:
    for mapper in Base.registry.mappers:
        if mapper.local_table is table:
            return mapper.class_
    return None


def as_uuid(value: uuid.UUID | str | None) -> uuid.UUID | None:
    """Parse an id; malformed ids return None and read as "not found"."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None
