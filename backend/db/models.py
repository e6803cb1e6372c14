"""
Supply Chain Database Models

11 tables for the supply-chain risk platform.
Multi-tenant via tenant_id on every table; business keys are unique per tenant.

Tables:
  Core (1-7):
  1. suppliers             - Vendors supplying products
  2. products              - Product catalog (one supplier each)
  3. locations             - Warehouses, factories, DCs, ports, supplier sites
  4. shipment_routes       - Lanes between two locations for one transport mode
  5. risk_events           - Disruptions affecting the network
  6. inventory             - Stock of a product held at a location
  7. users                 - Platform users

  Risk associations (8-11):
  8.  risk_event_suppliers
  9.  risk_event_products
  10. risk_event_locations
  11. risk_event_routes

Deletion rules:
  products -> suppliers                 RESTRICT
  shipment_routes -> locations          RESTRICT
  inventory -> products, locations      CASCADE
  risk_event_* -> both sides            CASCADE
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    types,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship

from db.enums import (
    EventType,
    LocationStatus,
    LocationType,
    RiskSeverity,
    RiskStatus,
    TransportMode,
    UserRole,
    UserStatus,
)
from db.session import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum(enum_cls, name: str) -> Enum:
    return Enum(enum_cls, name=name, create_constraint=True, validate_strings=True)


class TenantScoped:
    """Columns shared by every tenant-owned table."""

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ─── 1. Suppliers ───────────────────────────────────────────────────────────


class Supplier(TenantScoped, Base):
    __tablename__ = "suppliers"

    code = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    country = Column(String(100), nullable=False)
    contact_email = Column(String(255))
    contact_phone = Column(String(50))
    address = Column(String(500))
    rating = Column(Integer, nullable=False, default=3)
    notes = Column(Text)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_supplier_code_per_tenant"),
        Index("ix_suppliers_tenant", "tenant_id"),
        Index("ix_suppliers_country", "country"),
        Index("ix_suppliers_rating", "rating"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_supplier_rating_range"),
    )

    products = relationship("Product", back_populates="supplier", passive_deletes="all")
    risk_links = relationship("RiskEventSupplier", back_populates="supplier", passive_deletes=True)


# ─── 2. Products ────────────────────────────────────────────────────────────


class Product(TenantScoped, Base):
    __tablename__ = "products"

    sku = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(100), nullable=False)
    unit_of_measure = Column(String(50), nullable=False, default="unit")
    lead_time_days = Column(Integer, nullable=False)
    supplier_id = Column(GUID(), ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_product_sku_per_tenant"),
        Index("ix_products_tenant", "tenant_id"),
        Index("ix_products_supplier", "supplier_id"),
        Index("ix_products_category", "category"),
        CheckConstraint("lead_time_days >= 1", name="ck_product_lead_time_positive"),
    )

    supplier = relationship("Supplier", back_populates="products")
    inventory = relationship("Inventory", back_populates="product", passive_deletes=True)
    risk_links = relationship("RiskEventProduct", back_populates="product", passive_deletes=True)


# ─── 3. Locations ───────────────────────────────────────────────────────────


class Location(TenantScoped, Base):
    __tablename__ = "locations"

    code = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(_enum(LocationType, "location_type"), nullable=False)
    address = Column(String(500))
    city = Column(String(100))
    state = Column(String(100))
    country = Column(String(100), nullable=False)
    postal_code = Column(String(20))
    latitude = Column(Float)
    longitude = Column(Float)
    capacity = Column(Integer)
    status = Column(_enum(LocationStatus, "location_status"), nullable=False, default=LocationStatus.ACTIVE)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_location_code_per_tenant"),
        Index("ix_locations_tenant", "tenant_id"),
        Index("ix_locations_type", "type"),
        Index("ix_locations_country", "country"),
        Index("ix_locations_status", "status"),
        CheckConstraint("latitude IS NULL OR (latitude >= -90 AND latitude <= 90)", name="ck_location_latitude_range"),
        CheckConstraint(
            "longitude IS NULL OR (longitude >= -180 AND longitude <= 180)", name="ck_location_longitude_range"
        ),
        CheckConstraint("capacity IS NULL OR capacity > 0", name="ck_location_capacity_positive"),
    )

    outbound_routes = relationship(
        "ShipmentRoute",
        foreign_keys="ShipmentRoute.origin_location_id",
        back_populates="origin_location",
        passive_deletes="all",
    )
    inbound_routes = relationship(
        "ShipmentRoute",
        foreign_keys="ShipmentRoute.destination_location_id",
        back_populates="destination_location",
        passive_deletes="all",
    )
    inventory = relationship("Inventory", back_populates="location", passive_deletes=True)
    risk_links = relationship("RiskEventLocation", back_populates="location", passive_deletes=True)


# ─── 4. Shipment Routes ─────────────────────────────────────────────────────


class ShipmentRoute(TenantScoped, Base):
    __tablename__ = "shipment_routes"

    origin_location_id = Column(GUID(), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False)
    destination_location_id = Column(GUID(), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False)
    transit_time_days = Column(Integer, nullable=False)
    transport_mode = Column(_enum(TransportMode, "transport_mode"), nullable=False)
    distance = Column(Float)  # km
    cost = Column(Float)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "origin_location_id",
            "destination_location_id",
            "transport_mode",
            name="uq_route_lane_per_tenant",
        ),
        Index("ix_routes_tenant", "tenant_id"),
        Index("ix_routes_origin", "origin_location_id"),
        Index("ix_routes_destination", "destination_location_id"),
        Index("ix_routes_mode", "transport_mode"),
        CheckConstraint("origin_location_id != destination_location_id", name="ck_route_distinct_endpoints"),
        CheckConstraint("transit_time_days >= 1", name="ck_route_transit_positive"),
        CheckConstraint("distance IS NULL OR distance > 0", name="ck_route_distance_positive"),
        CheckConstraint("cost IS NULL OR cost > 0", name="ck_route_cost_positive"),
    )

    origin_location = relationship("Location", foreign_keys=[origin_location_id], back_populates="outbound_routes")
    destination_location = relationship(
        "Location", foreign_keys=[destination_location_id], back_populates="inbound_routes"
    )
    risk_links = relationship("RiskEventRoute", back_populates="route", passive_deletes=True)


# ─── 5. Risk Events ─────────────────────────────────────────────────────────


class RiskEvent(TenantScoped, Base):
    __tablename__ = "risk_events"

    event_type = Column(_enum(EventType, "event_type"), nullable=False)
    severity = Column(_enum(RiskSeverity, "risk_severity"), nullable=False)
    status = Column(_enum(RiskStatus, "risk_status"), nullable=False, default=RiskStatus.ACTIVE)
    start_date = Column(DateTime, nullable=False)
    resolution_date = Column(DateTime)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    impact_assessment = Column(Text)
    mitigation_plan = Column(Text)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_risk_events_tenant", "tenant_id"),
        Index("ix_risk_events_type", "event_type"),
        Index("ix_risk_events_severity", "severity"),
        Index("ix_risk_events_status", "status"),
        Index("ix_risk_events_start", "start_date"),
        CheckConstraint(
            "resolution_date IS NULL OR resolution_date >= start_date", name="ck_risk_event_dates_valid"
        ),
    )

    suppliers = relationship("RiskEventSupplier", back_populates="risk_event", passive_deletes=True)
    products = relationship("RiskEventProduct", back_populates="risk_event", passive_deletes=True)
    locations = relationship("RiskEventLocation", back_populates="risk_event", passive_deletes=True)
    routes = relationship("RiskEventRoute", back_populates="risk_event", passive_deletes=True)


# ─── 6. Inventory ───────────────────────────────────────────────────────────


class Inventory(TenantScoped, Base):
    __tablename__ = "inventory"

    product_id = Column(GUID(), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(GUID(), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    quantity_on_hand = Column(Integer, nullable=False, default=0, server_default="0")
    quantity_reserved = Column(Integer, nullable=False, default=0, server_default="0")
    reorder_point = Column(Integer, nullable=False, default=0, server_default="0")
    last_count_date = Column(DateTime)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "product_id", "location_id", name="uq_inventory_product_location"),
        Index("ix_inventory_tenant", "tenant_id"),
        Index("ix_inventory_product", "product_id"),
        Index("ix_inventory_location", "location_id"),
        Index("ix_inventory_on_hand", "quantity_on_hand"),
        CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_on_hand_positive"),
        CheckConstraint("quantity_reserved >= 0", name="ck_inventory_reserved_positive"),
        CheckConstraint("reorder_point >= 0", name="ck_inventory_reorder_point_positive"),
    )

    product = relationship("Product", back_populates="inventory")
    location = relationship("Location", back_populates="inventory")


# ─── 7. Users ───────────────────────────────────────────────────────────────


class User(TenantScoped, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(_enum(UserRole, "user_role"), nullable=False)
    status = Column(_enum(UserStatus, "user_status"), nullable=False, default=UserStatus.ACTIVE)
    last_login_at = Column(DateTime)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_user_email_per_tenant"),
        Index("ix_users_tenant", "tenant_id"),
        Index("ix_users_role", "role"),
        Index("ix_users_status", "status"),
    )


# ─── 8-11. Risk Event Associations ──────────────────────────────────────────
# Immutable link rows: no updated_at.


class RiskEventSupplier(TenantScoped, Base):
    __tablename__ = "risk_event_suppliers"

    risk_event_id = Column(GUID(), ForeignKey("risk_events.id", ondelete="CASCADE"), nullable=False)
    supplier_id = Column(GUID(), ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("risk_event_id", "supplier_id", name="uq_risk_event_supplier"),
        Index("ix_risk_event_suppliers_tenant", "tenant_id"),
    )

    risk_event = relationship("RiskEvent", back_populates="suppliers")
    supplier = relationship("Supplier", back_populates="risk_links")


class RiskEventProduct(TenantScoped, Base):
    __tablename__ = "risk_event_products"

    risk_event_id = Column(GUID(), ForeignKey("risk_events.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(GUID(), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("risk_event_id", "product_id", name="uq_risk_event_product"),
        Index("ix_risk_event_products_tenant", "tenant_id"),
    )

    risk_event = relationship("RiskEvent", back_populates="products")
    product = relationship("Product", back_populates="risk_links")


class RiskEventLocation(TenantScoped, Base):
    __tablename__ = "risk_event_locations"

    risk_event_id = Column(GUID(), ForeignKey("risk_events.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(GUID(), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("risk_event_id", "location_id", name="uq_risk_event_location"),
        Index("ix_risk_event_locations_tenant", "tenant_id"),
    )

    risk_event = relationship("RiskEvent", back_populates="locations")
    location = relationship("Location", back_populates="risk_links")


class RiskEventRoute(TenantScoped, Base):
    __tablename__ = "risk_event_routes"

    risk_event_id = Column(GUID(), ForeignKey("risk_events.id", ondelete="CASCADE"), nullable=False)
    route_id = Column(GUID(), ForeignKey("shipment_routes.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("risk_event_id", "route_id", name="uq_risk_event_route"),
        Index("ix_risk_event_routes_tenant", "tenant_id"),
    )

    risk_event = relationship("RiskEvent", back_populates="routes")
    route = relationship("ShipmentRoute", back_populates="risk_links")


TENANT_SCOPED_MODELS = (
    Supplier,
    Product,
    Location,
    ShipmentRoute,
    RiskEvent,
    Inventory,
    User,
    RiskEventSupplier,
    RiskEventProduct,
    RiskEventLocation,
    RiskEventRoute,
)
