"""
Supplier Service — CRUD for suppliers.

A supplier cannot be deleted while products reference it; the delete
surfaces as ConstraintViolationError.
"""

from db.models import Supplier
from services.base import EntityService


class SupplierService(EntityService[Supplier]):
    model = Supplier

    async def find_by_code(self, code: str) -> Supplier | None:
        return await self.store.find_unique(Supplier, {"code": code})
