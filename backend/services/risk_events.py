"""
Risk Event Service — CRUD for risk events and their associations.

A risk event links to any number of suppliers, products, locations and
shipment routes through four junction tables. Links are stamped with
the active tenant like every other row, a duplicate link is a
ConstraintViolationError, and deleting either side removes the link.
"""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.orm import selectinload

from core.errors import NotFoundError
from db.models import (
    RiskEvent,
    RiskEventLocation,
    RiskEventProduct,
    RiskEventRoute,
    RiskEventSupplier,
)
from db.store import as_uuid
from db.tenant_scope import Action
from services.base import EntityService, Payload

logger = structlog.get_logger()

# kind -> (junction model, column holding the other side's id)
ASSOCIATIONS: dict[str, tuple[type, str]] = {
    "supplier": (RiskEventSupplier, "supplier_id"),
    "product": (RiskEventProduct, "product_id"),
    "location": (RiskEventLocation, "location_id"),
    "route": (RiskEventRoute, "route_id"),
}


class RiskEventService(EntityService[RiskEvent]):
    model = RiskEvent

    def includes(self) -> tuple:
        return (
            selectinload(RiskEvent.suppliers).selectinload(RiskEventSupplier.supplier),
            selectinload(RiskEvent.products).selectinload(RiskEventProduct.product),
            selectinload(RiskEvent.locations).selectinload(RiskEventLocation.location),
            selectinload(RiskEvent.routes).selectinload(RiskEventRoute.route),
        )

    async def create(self, data: Payload) -> RiskEvent:
        """Create the event and link any supplier/product/location/route ids in one savepoint."""
        payload = self._payload(data)
        links = {kind: payload.pop(f"{kind}_ids", None) or [] for kind in ASSOCIATIONS}

        async with self.store.savepoint():
            event = await self.store.create(RiskEvent, payload)
            for kind, other_ids in links.items():
                for other_id in other_ids:
                    await self.add_association(kind, event.id, other_id)
        return event

    # ── Associations ───────────────────────────────────────────────────────

    async def add_association(self, kind: str, risk_event_id: UUID | str, other_id: UUID | str) -> Any:
        junction, column = ASSOCIATIONS[kind]
        self.store.require_tenant(junction, Action.CREATE)
        link = await self.store.create(
            junction,
            {"risk_event_id": _require_id(junction, risk_event_id), column: _require_id(junction, other_id)},
        )
        logger.info("risk_event.linked", kind=kind, risk_event_id=str(risk_event_id), other_id=str(other_id))
        return link

    async def remove_association(self, kind: str, risk_event_id: UUID | str, other_id: UUID | str) -> int:
        """Delete matching links in the active tenant; returns how many were removed."""
        junction, column = ASSOCIATIONS[kind]
        self.store.require_tenant(junction, Action.DELETE_MANY)
        risk_event_uuid, other_uuid = as_uuid(risk_event_id), as_uuid(other_id)
        if risk_event_uuid is None or other_uuid is None:
            return 0
        return await self.store.delete_many(junction, {"risk_event_id": risk_event_uuid, column: other_uuid})

    async def add_supplier(self, risk_event_id, supplier_id) -> RiskEventSupplier:
        return await self.add_association("supplier", risk_event_id, supplier_id)

    async def remove_supplier(self, risk_event_id, supplier_id) -> int:
        return await self.remove_association("supplier", risk_event_id, supplier_id)

    async def add_product(self, risk_event_id, product_id) -> RiskEventProduct:
        return await self.add_association("product", risk_event_id, product_id)

    async def remove_product(self, risk_event_id, product_id) -> int:
        return await self.remove_association("product", risk_event_id, product_id)

    async def add_location(self, risk_event_id, location_id) -> RiskEventLocation:
        return await self.add_association("location", risk_event_id, location_id)

    async def remove_location(self, risk_event_id, location_id) -> int:
        return await self.remove_association("location", risk_event_id, location_id)

    async def add_route(self, risk_event_id, route_id) -> RiskEventRoute:
        return await self.add_association("route", risk_event_id, route_id)

    async def remove_route(self, risk_event_id, route_id) -> int:
        return await self.remove_association("route", risk_event_id, route_id)


def _require_id(junction: type, value: UUID | str) -> UUID:
    ident = as_uuid(value)
    if ident is None:
        raise NotFoundError(junction.__name__, {"id": value})
    return ident
