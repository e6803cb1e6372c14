"""
Entity Validation Schemas

Boundary validation for entity payloads: field formats, ranges, closed
enum sets and cross-field rules. Services accept these models or plain
dicts; dicts are assumed to be validated already.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

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

# ─── Suppliers ──────────────────────────────────────────────────────────────


class SupplierCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    country: str = Field(..., min_length=2, max_length=100)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=500)
    rating: int = Field(3, ge=1, le=5)
    notes: str | None = None


class SupplierUpdate(BaseModel):
    code: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=255)
    country: str | None = Field(None, min_length=2, max_length=100)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=500)
    rating: int | None = Field(None, ge=1, le=5)
    notes: str | None = None


# ─── Products ───────────────────────────────────────────────────────────────


class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str = Field(..., min_length=1, max_length=100)
    unit_of_measure: str = Field("unit", min_length=1, max_length=50)
    lead_time_days: int = Field(..., ge=1, le=365)
    supplier_id: UUID


class ProductUpdate(BaseModel):
    """sku is the business key and cannot change."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, min_length=1, max_length=100)
    unit_of_measure: str | None = Field(None, min_length=1, max_length=50)
    lead_time_days: int | None = Field(None, ge=1, le=365)
    supplier_id: UUID | None = None

    model_config = {"extra": "forbid"}


# ─── Locations ──────────────────────────────────────────────────────────────


class LocationCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    type: LocationType
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    country: str = Field(..., min_length=2, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    capacity: int | None = Field(None, gt=0)
    status: LocationStatus = LocationStatus.ACTIVE


class LocationUpdate(BaseModel):
    """code is the business key and cannot change."""

    name: str | None = Field(None, min_length=1, max_length=255)
    type: LocationType | None = None
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    country: str | None = Field(None, min_length=2, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    capacity: int | None = Field(None, gt=0)
    status: LocationStatus | None = None

    model_config = {"extra": "forbid"}


# ─── Shipment Routes ────────────────────────────────────────────────────────


class _RouteEndpoints(BaseModel):
    @model_validator(mode="after")
    def _distinct_endpoints(self):
        origin = getattr(self, "origin_location_id", None)
        destination = getattr(self, "destination_location_id", None)
        if origin is not None and origin == destination:
            raise ValueError("Origin and destination must be different locations")
        return self


class ShipmentRouteCreate(_RouteEndpoints):
    origin_location_id: UUID
    destination_location_id: UUID
    transit_time_days: int = Field(..., ge=1, le=365)
    transport_mode: TransportMode
    distance: float | None = Field(None, gt=0)
    cost: float | None = Field(None, gt=0)


class ShipmentRouteUpdate(_RouteEndpoints):
    origin_location_id: UUID | None = None
    destination_location_id: UUID | None = None
    transit_time_days: int | None = Field(None, ge=1, le=365)
    transport_mode: TransportMode | None = None
    distance: float | None = Field(None, gt=0)
    cost: float | None = Field(None, gt=0)


# ─── Risk Events ────────────────────────────────────────────────────────────


class _RiskEventDates(BaseModel):
    @model_validator(mode="after")
    def _resolution_after_start(self):
        start = getattr(self, "start_date", None)
        resolution = getattr(self, "resolution_date", None)
        if start is not None and resolution is not None and resolution < start:
            raise ValueError("Resolution date must be after start date")
        return self


class RiskEventCreate(_RiskEventDates):
    event_type: EventType
    severity: RiskSeverity
    status: RiskStatus = RiskStatus.ACTIVE
    start_date: datetime
    resolution_date: datetime | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    impact_assessment: str | None = None
    mitigation_plan: str | None = None

    # Affected entities, linked in the same unit of work
    supplier_ids: list[UUID] = Field(default_factory=list)
    product_ids: list[UUID] = Field(default_factory=list)
    location_ids: list[UUID] = Field(default_factory=list)
    route_ids: list[UUID] = Field(default_factory=list)


class RiskEventUpdate(_RiskEventDates):
    event_type: EventType | None = None
    severity: RiskSeverity | None = None
    status: RiskStatus | None = None
    start_date: datetime | None = None
    resolution_date: datetime | None = None
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, min_length=1)
    impact_assessment: str | None = None
    mitigation_plan: str | None = None


# ─── Inventory ──────────────────────────────────────────────────────────────


class InventoryCreate(BaseModel):
    product_id: UUID
    location_id: UUID
    quantity_on_hand: int = Field(0, ge=0)
    quantity_reserved: int = Field(0, ge=0)
    reorder_point: int = Field(0, ge=0)
    last_count_date: datetime | None = None


class InventoryUpdate(BaseModel):
    quantity_on_hand: int | None = Field(None, ge=0)
    quantity_reserved: int | None = Field(None, ge=0)
    reorder_point: int | None = Field(None, ge=0)
    last_count_date: datetime | None = None


# ─── Users ──────────────────────────────────────────────────────────────────


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    role: UserRole | None = None
    status: UserStatus | None = None
    last_login_at: datetime | None = None
