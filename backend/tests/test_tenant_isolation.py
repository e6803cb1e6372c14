"""
Tenant Isolation Integration Tests

Data created under one tenant is never visible to, modified by, or
deleted by another tenant, across every entity and junction table.
"""

from datetime import datetime

import pytest

from core.errors import ConstraintViolationError, NotFoundError, TenantRequiredError
from core.tenancy import set_active_tenant, tenant_scope
from db.enums import LocationType, UserRole
from db.models import (
    Inventory,
    Location,
    Product,
    RiskEvent,
    RiskEventSupplier,
    ShipmentRoute,
    Supplier,
    User,
)
from db.store import TenantScopedStore
from services import Services
from tests.factories import TENANT_A, TENANT_B

ENTITY_MODELS = [Supplier, Product, Location, ShipmentRoute, RiskEvent, Inventory]


@pytest.mark.asyncio
class TestReadIsolation:
    async def test_find_all_suppliers_per_tenant(self, services):
        set_active_tenant(TENANT_A)
        await services.suppliers.create({"code": "SUP-A", "name": "Tenant A Supplier", "country": "USA"})
        set_active_tenant(TENANT_B)
        await services.suppliers.create({"code": "SUP-B", "name": "Tenant B Supplier", "country": "USA"})

        set_active_tenant(TENANT_A)
        suppliers_a = await services.suppliers.find_all()
        assert [s.code for s in suppliers_a] == ["SUP-A"]
        assert suppliers_a[0].tenant_id == TENANT_A

        set_active_tenant(TENANT_B)
        suppliers_b = await services.suppliers.find_all()
        assert [s.code for s in suppliers_b] == ["SUP-B"]
        assert suppliers_b[0].tenant_id == TENANT_B

    @pytest.mark.parametrize("model", ENTITY_MODELS, ids=lambda m: m.__name__)
    async def test_every_entity_listing_is_scoped(self, store, seeded, model):
        for tenant_id in (TENANT_A, TENANT_B):
            with tenant_scope(tenant_id):
                rows = await store.find_many(model)
                assert rows
                assert {row.tenant_id for row in rows} == {tenant_id}

    async def test_find_by_id_across_tenants_is_not_found(self, services, seeded):
        supplier_a = seeded[TENANT_A]["supplier"]
        with tenant_scope(TENANT_B):
            assert await services.suppliers.find_by_id(supplier_a.id) is None
        with tenant_scope(TENANT_A):
            found = await services.suppliers.find_by_id(supplier_a.id)
            assert found is not None and found.code == "SUP-A"

    async def test_business_key_lookup_is_scoped(self, services, seeded):
        with tenant_scope(TENANT_B):
            assert await services.products.find_by_sku("PROD-A") is None
            assert (await services.products.find_by_sku("PROD-B")).name == "Product B"

    async def test_filter_cannot_smuggle_other_tenant(self, store, seeded):
        with tenant_scope(TENANT_A):
            rows = await store.find_many(Supplier, {"tenant_id": TENANT_B})
        assert [r.tenant_id for r in rows] == [TENANT_A]

    async def test_counts_and_aggregates_are_scoped(self, store, seeded):
        with tenant_scope(TENANT_A):
            assert await store.count(Location) == 2
            totals = await store.aggregate(Inventory, sum=["quantity_on_hand"])
        assert totals["count"] == 1
        assert totals["sum"] == {"quantity_on_hand": 100}

    async def test_risk_event_links_are_scoped(self, services, seeded):
        with tenant_scope(TENANT_A):
            event = seeded[TENANT_A]["event"]
            await services.risk_events.add_supplier(event.id, seeded[TENANT_A]["supplier"].id)
        with tenant_scope(TENANT_B):
            assert await services.risk_events.store.count(RiskEventSupplier) == 0
        with tenant_scope(TENANT_A):
            assert await services.risk_events.store.count(RiskEventSupplier) == 1


@pytest.mark.asyncio
class TestWriteIsolation:
    async def test_cross_tenant_update_is_not_found(self, services_a, services_b):
        location = await services_a.locations.create(
            {"code": "LOC-1", "name": "Original Name", "type": LocationType.WAREHOUSE, "country": "USA"}
        )

        with pytest.raises(NotFoundError):
            await services_b.locations.update(location.id, {"name": "Hacked Name"})

        unchanged = await services_a.locations.find_by_id(location.id)
        assert unchanged.name == "Original Name"

    async def test_cross_tenant_delete_is_not_found(self, services_a, services_b):
        location = await services_a.locations.create(
            {"code": "LOC-DEL", "name": "Delete Test", "type": LocationType.WAREHOUSE, "country": "USA"}
        )

        with pytest.raises(NotFoundError):
            await services_b.locations.delete(location.id)

        assert (await services_a.locations.find_by_id(location.id)) is not None

    async def test_bulk_writes_only_touch_active_tenant(self, store, seeded):
        with tenant_scope(TENANT_B):
            updated = await store.update_many(Supplier, {}, {"rating": 1})
            deleted = await store.delete_many(RiskEvent)
        assert updated == 1
        assert deleted == 1

        with tenant_scope(TENANT_A):
            supplier = await store.find_unique(Supplier, {"code": "SUP-A"})
            assert supplier.rating == 4
            assert await store.count(RiskEvent) == 1

    async def test_create_ignores_caller_tenant(self, services_a):
        user = await services_a.users.create(
            {"email": "a@tenant-a.com", "name": "A", "role": UserRole.ANALYST, "tenant_id": TENANT_B}
        )
        assert user.tenant_id == TENANT_A

    async def test_update_cannot_reassign_tenant(self, services_a, services_b):
        user = await services_a.users.create({"email": "a@tenant-a.com", "name": "A", "role": UserRole.VIEWER})
        await services_a.users.update(user.id, {"tenant_id": TENANT_B, "name": "Renamed"})

        assert (await services_b.users.find_all()) == []
        reloaded = await services_a.users.find_by_id(user.id)
        assert reloaded.tenant_id == TENANT_A
        assert reloaded.name == "Renamed"

    async def test_foreign_key_to_other_tenant_is_rejected(self, services_a, services_b):
        supplier_a = await services_a.suppliers.create({"code": "SUP-1", "name": "A", "country": "USA"})

        with pytest.raises(ConstraintViolationError, match="Supplier"):
            await services_b.products.create(
                {
                    "sku": "PROD-1",
                    "name": "Borrowed",
                    "category": "Misc",
                    "lead_time_days": 5,
                    "supplier_id": supplier_a.id,
                }
            )

    async def test_cannot_link_other_tenants_entities(self, services_a, services_b):
        supplier_a = await services_a.suppliers.create({"code": "SUP-1", "name": "A", "country": "USA"})
        event_b = await services_b.risk_events.create(
            {
                "event_type": "POLITICAL",
                "severity": "MEDIUM",
                "start_date": datetime(2025, 3, 1),
                "title": "Sanctions",
                "description": "New export controls",
            }
        )

        with pytest.raises(ConstraintViolationError):
            await services_b.risk_events.add_supplier(event_b.id, supplier_a.id)

    async def test_business_keys_are_unique_per_tenant_only(self, services_a, services_b):
        await services_a.suppliers.create({"code": "SUP-001", "name": "A", "country": "USA"})
        other = await services_b.suppliers.create({"code": "SUP-001", "name": "B", "country": "USA"})
        assert other.tenant_id == TENANT_B


@pytest.mark.asyncio
class TestTenantRequired:
    async def test_service_calls_without_tenant_fail(self, services):
        with pytest.raises(TenantRequiredError, match="Tenant ID required"):
            await services.suppliers.create({"code": "SUP-X", "name": "No Tenant", "country": "USA"})
        with pytest.raises(TenantRequiredError):
            await services.suppliers.find_all()

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.find_unique(User, {"email": "x@y.com"}),
            lambda s: s.find_first(User),
            lambda s: s.find_many(User),
            lambda s: s.count(User),
            lambda s: s.aggregate(User),
            lambda s: s.group_by(User, ["role"]),
            lambda s: s.create(User, {"email": "x@y.com", "name": "X", "role": "ADMIN"}),
            lambda s: s.create_many(User, [{"email": "x@y.com", "name": "X", "role": "ADMIN"}]),
            lambda s: s.update(User, {"email": "x@y.com"}, {"name": "Y"}),
            lambda s: s.update_many(User, {}, {"name": "Y"}),
            lambda s: s.upsert(User, {"email": "x@y.com"}, {"email": "x@y.com"}, {}),
            lambda s: s.delete(User, {"email": "x@y.com"}),
            lambda s: s.delete_many(User),
        ],
        ids=[
            "find_unique",
            "find_first",
            "find_many",
            "count",
            "aggregate",
            "group_by",
            "create",
            "create_many",
            "update",
            "update_many",
            "upsert",
            "delete",
            "delete_many",
        ],
    )
    async def test_every_store_operation_requires_tenant(self, store, call):
        with pytest.raises(TenantRequiredError):
            await call(store)
        with tenant_scope(TENANT_A):
            assert await store.count(User) == 0

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.suppliers.find_by_id("not-a-uuid"),
            lambda s: s.suppliers.update("not-a-uuid", {"name": "x"}),
            lambda s: s.suppliers.delete("not-a-uuid"),
            lambda s: s.risk_events.add_supplier("not-a-uuid", "also-bad"),
            lambda s: s.risk_events.remove_supplier("not-a-uuid", "also-bad"),
            lambda s: s.risk_events.remove_route("not-a-uuid", "also-bad"),
        ],
        ids=["find_by_id", "update", "delete", "add_supplier", "remove_supplier", "remove_route"],
    )
    async def test_malformed_ids_still_require_tenant(self, services, call):
        with pytest.raises(TenantRequiredError):
            await call(services)

    async def test_raw_queries_do_not_require_tenant(self, store, seeded):
        rows = await store.query_raw("SELECT tenant_id, COUNT(*) AS n FROM suppliers GROUP BY tenant_id ORDER BY tenant_id")
        assert rows == [{"tenant_id": TENANT_A, "n": 1}, {"tenant_id": TENANT_B, "n": 1}]

    async def test_pinned_store_ignores_active_context(self, test_db):
        pinned = TenantScopedStore(test_db, TENANT_A)
        with tenant_scope(TENANT_B):
            services = Services.from_store(pinned)
            supplier = await services.suppliers.create({"code": "SUP-P", "name": "Pinned", "country": "USA"})
        assert supplier.tenant_id == TENANT_A
