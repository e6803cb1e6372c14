"""
Inventory Service — stock of a product held at a location.
"""

from typing import Any

from sqlalchemy.orm import selectinload

from db.models import Inventory
from services.base import EntityService


class InventoryService(EntityService[Inventory]):
    model = Inventory

    def includes(self) -> tuple:
        return (selectinload(Inventory.product), selectinload(Inventory.location))

    async def totals_by_location(self, where: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """On-hand and reserved quantities summed per location."""
        return await self.store.group_by(
            Inventory,
            ["location_id"],
            where,
            sum=("quantity_on_hand", "quantity_reserved"),
        )
