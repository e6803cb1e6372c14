"""
Entity services, one per table, all built on a TenantScopedStore.
"""

from dataclasses import dataclass

from db.store import TenantScopedStore
from services.inventory import InventoryService
from services.locations import LocationService
from services.products import ProductService
from services.risk_events import RiskEventService
from services.routes import ShipmentRouteService
from services.suppliers import SupplierService
from services.users import UserService


@dataclass(frozen=True)
class Services:
    suppliers: SupplierService
    products: ProductService
    locations: LocationService
    routes: ShipmentRouteService
    risk_events: RiskEventService
    inventory: InventoryService
    users: UserService

    @classmethod
    def from_store(cls, store: TenantScopedStore) -> "Services":
        return cls(
            suppliers=SupplierService(store),
            products=ProductService(store),
            locations=LocationService(store),
            routes=ShipmentRouteService(store),
            risk_events=RiskEventService(store),
            inventory=InventoryService(store),
            users=UserService(store),
        )


__all__ = [
    "InventoryService",
    "LocationService",
    "ProductService",
    "RiskEventService",
    "Services",
    "ShipmentRouteService",
    "SupplierService",
    "UserService",
]
