"""Data contracts — network entities, enums and engine snapshots."""

from swapnet_sim.models.enums import (
    AlertLevel,
    BatteryLevel,
    DriverStatus,
    EmergencyType,
    FailureReason,
    InterventionType,
    ScenarioType,
    StationStatus,
)
from swapnet_sim.models.network import (
    CarbonData,
    Driver,
    GeoPosition,
    Intervention,
    OperatingHours,
    Position,
    RoutingMatrix,
    Station,
    WeatherData,
)
from swapnet_sim.models.results import (
    ActiveScenario,
    FailedRide,
    KPIMetrics,
    NearbyStationSnapshot,
    SimulationAlert,
    SimulationState,
    TimeSeriesPoint,
)

__all__ = [
    "ActiveScenario",
    "AlertLevel",
    "BatteryLevel",
    "CarbonData",
    "Driver",
    "DriverStatus",
    "EmergencyType",
    "FailedRide",
    "FailureReason",
    "GeoPosition",
    "Intervention",
    "InterventionType",
    "KPIMetrics",
    "NearbyStationSnapshot",
    "OperatingHours",
    "Position",
    "RoutingMatrix",
    "ScenarioType",
    "SimulationAlert",
    "SimulationState",
    "Station",
    "StationStatus",
    "TimeSeriesPoint",
    "WeatherData",
]
