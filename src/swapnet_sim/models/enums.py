"""Closed enumerations shared by the engine, the snapshot and the HTTP surface.

Every status / type field in the data model is one of these ``str``-valued
enums, so JSON payloads carry the plain wire strings (``"low_inventory"``,
``"en_route"``, ...) while engine code matches on members.
"""

from __future__ import annotations

from enum import Enum


class StationStatus(str, Enum):
    """Derived station status (see ``engine.station.derive_status``)."""

    OPERATIONAL = "operational"
    LOW_INVENTORY = "low_inventory"
    OVERLOADED = "overloaded"
    OFFLINE = "offline"
    FIRE = "fire"
    POWER_OUTAGE = "power_outage"
    MAINTENANCE = "maintenance"


DOWN_STATUSES = frozenset({
    StationStatus.OFFLINE,
    StationStatus.FIRE,
    StationStatus.POWER_OUTAGE,
    StationStatus.MAINTENANCE,
})
"""Statuses in which a station neither serves drivers nor accepts new ones."""

UNPOWERED_STATUSES = frozenset({
    StationStatus.OFFLINE,
    StationStatus.FIRE,
    StationStatus.POWER_OUTAGE,
})
"""Statuses in which batteries stop charging."""


class DriverStatus(str, Enum):
    SEEKING = "seeking"
    EN_ROUTE = "en_route"
    SWAPPING = "swapping"
    COMPLETE = "complete"
    REROUTING = "rerouting"
    ABANDONED = "abandoned"


TERMINAL_DRIVER_STATUSES = frozenset({DriverStatus.COMPLETE, DriverStatus.ABANDONED})
MOVING_DRIVER_STATUSES = frozenset({DriverStatus.EN_ROUTE, DriverStatus.REROUTING})


class BatteryLevel(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    CRITICAL = "critical"


class InterventionType(str, Enum):
    ADD_STATION = "add_station"
    REMOVE_STATION = "remove_station"
    MODIFY_CHARGERS = "modify_chargers"
    CHANGE_POLICY = "change_policy"
    TRIGGER_EMERGENCY = "trigger_emergency"
    DEMAND_SHIFT = "demand_shift"
    PRICING_CHANGE = "pricing_change"
    SCHEDULE_MAINTENANCE = "schedule_maintenance"


class EmergencyType(str, Enum):
    """Payload of a ``trigger_emergency`` intervention."""

    FIRE = "fire"
    POWER_OUTAGE = "power_outage"
    OFFLINE = "offline"
    CHARGER_FAILURE = "charger_failure"
    NO_BATTERY = "no_battery"


class FailureReason(str, Enum):
    """Why a driver left the network without a swap."""

    CRITICAL_BATTERY = "critical_battery"        # critical battery, nothing within range
    LOW_BATTERY = "low_battery"
    STATION_TOO_FAR = "station_too_far"          # serviceable stations exist, none within range
    NO_STATIONS_AVAILABLE = "no_stations_available"
    NO_INVENTORY = "no_inventory"
    NETWORK_CONGESTION = "network_congestion"    # every up station is over the queue threshold
    EXCESSIVE_QUEUE = "excessive_queue"
    REROUTING_FAILED = "rerouting_failed"
    MULTIPLE_REROUTES = "multiple_reroutes"
    DESTINATION_FAILED = "destination_failed"
    STRANDED = "stranded"                        # battery ran out mid-route


class AlertLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


class ScenarioType(str, Enum):
    BASELINE = "baseline"
    STATION_OPS = "station_ops"
    CAPACITY = "capacity"
    INVENTORY = "inventory"
    DEMAND = "demand"
    NETWORK = "network"
    PRICING = "pricing"
    FAILURES = "failures"
    GROWTH = "growth"
