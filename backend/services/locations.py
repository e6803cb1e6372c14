"""
Location Service — CRUD for warehouses, factories, DCs, ports and supplier sites.
"""

from db.models import Location
from services.base import EntityService


class LocationService(EntityService[Location]):
    model = Location

    async def find_by_code(self, code: str) -> Location | None:
        return await self.store.find_unique(Location, {"code": code})
