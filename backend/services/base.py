"""
Entity Service Base

Thin CRUD wrapper shared by every entity service. A service is built
from a TenantScopedStore and never sees a raw session, so every call
runs inside whatever tenant the store resolves.
"""

from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel

from core.errors import NotFoundError
from db.session import Base
from db.store import TenantScopedStore, as_uuid
from db.tenant_scope import Action

M = TypeVar("M", bound=Base)

Payload = BaseModel | dict[str, Any]


class EntityService(Generic[M]):
    model: ClassVar[type[Base]]

    def __init__(self, store: TenantScopedStore):
        self.store = store

    def includes(self) -> tuple:
        """Loader options applied to every read. Override to eager-load relations."""
        return ()

    @staticmethod
    def _payload(data: Payload, *, partial: bool = False) -> dict[str, Any]:
        if isinstance(data, BaseModel):
            return data.model_dump(exclude_unset=partial)
        return dict(data)

    async def create(self, data: Payload) -> M:
        return await self.store.create(self.model, self._payload(data))

    async def find_by_id(self, id: UUID | str) -> M | None:
        self.store.require_tenant(self.model, Action.FIND_UNIQUE)
        ident = as_uuid(id)
        if ident is None:
            return None
        return await self.store.find_unique(self.model, {"id": ident}, options=self.includes())

    async def find_all(self, where: dict[str, Any] | None = None, *criteria, **kwargs) -> list[M]:
        kwargs.setdefault("order_by", (self.model.created_at,))
        return await self.store.find_many(self.model, where, *criteria, options=self.includes(), **kwargs)

    async def count(self, where: dict[str, Any] | None = None, *criteria) -> int:
        return await self.store.count(self.model, where, *criteria)

    async def update(self, id: UUID | str, data: Payload) -> M:
        self.store.require_tenant(self.model, Action.UPDATE)
        ident = as_uuid(id)
        if ident is None:
            raise NotFoundError(self.model.__name__, {"id": id})
        return await self.store.update(self.model, {"id": ident}, self._payload(data, partial=True))

    async def delete(self, id: UUID | str) -> M:
        self.store.require_tenant(self.model, Action.DELETE)
        ident = as_uuid(id)
        if ident is None:
            raise NotFoundError(self.model.__name__, {"id": id})
        return await self.store.delete(self.model, {"id": ident})
