"""
Shipment Route Service — CRUD for lanes between two locations.
"""

from sqlalchemy.orm import selectinload

from db.models import ShipmentRoute
from services.base import EntityService


class ShipmentRouteService(EntityService[ShipmentRoute]):
    model = ShipmentRoute

    def includes(self) -> tuple:
        return (
            selectinload(ShipmentRoute.origin_location),
            selectinload(ShipmentRoute.destination_location),
        )
