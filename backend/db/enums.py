"""
Closed value sets for enumerated columns.

Shared by the ORM models and the validation schemas so both sides of the
boundary reject the same values.
"""

from enum import Enum


class LocationType(str, Enum):
    WAREHOUSE = "WAREHOUSE"
    FACTORY = "FACTORY"
    DISTRIBUTION_CENTER = "DISTRIBUTION_CENTER"
    PORT = "PORT"
    SUPPLIER_SITE = "SUPPLIER_SITE"


class LocationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"


class TransportMode(str, Enum):
    AIR = "AIR"
    SEA = "SEA"
    RAIL = "RAIL"
    TRUCK = "TRUCK"
    MULTIMODAL = "MULTIMODAL"


class EventType(str, Enum):
    WEATHER = "WEATHER"
    POLITICAL = "POLITICAL"
    SUPPLIER_FAILURE = "SUPPLIER_FAILURE"
    DEMAND_SURGE = "DEMAND_SURGE"
    TRANSPORTATION_DISRUPTION = "TRANSPORTATION_DISRUPTION"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    REGULATORY_CHANGE = "REGULATORY_CHANGE"
    NATURAL_DISASTER = "NATURAL_DISASTER"
    LABOR_STRIKE = "LABOR_STRIKE"
    CYBER_ATTACK = "CYBER_ATTACK"


class RiskSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RiskStatus(str, Enum):
    ACTIVE = "ACTIVE"
    MONITORING = "MONITORING"
    MITIGATED = "MITIGATED"
    RESOLVED = "RESOLVED"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    ANALYST = "ANALYST"
    VIEWER = "VIEWER"
    PLANNER = "PLANNER"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
