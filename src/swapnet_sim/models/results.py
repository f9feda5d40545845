"""Result types — the contract between the engine, the HTTP surface and storage.

``SimulationState`` is the full snapshot returned by every ``step()``.
``FailedRide`` and ``SimulationAlert`` are append-only audit records and are
frozen so nothing downstream can rewrite history.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from swapnet_sim.models.enums import (
    AlertLevel,
    BatteryLevel,
    FailureReason,
    ScenarioType,
    StationStatus,
)
from swapnet_sim.models.network import (
    CarbonData,
    Driver,
    GeoPosition,
    Intervention,
    Station,
    WeatherData,
)


# ═══════════════════════════════════════════════════════════════════════════
# KPIs
# ═══════════════════════════════════════════════════════════════════════════

class KPIMetrics(BaseModel):
    """Network KPIs, recomputed from scratch every tick (never accumulated)."""

    avg_wait_time: float = 0.0
    """Mean of station rolling wait times across up stations (minutes)."""

    lost_swaps: int = 0
    """Drivers that abandoned the network this tick."""

    idle_inventory: int = 0
    """Charged batteries not spoken for by a queued driver."""

    charger_utilization: float = 0.0
    """Charger-weighted mean utilization across up stations (0–1)."""

    operational_cost: float = 0.0
    """Daily running-cost rate of the stations still in service (₹/day)."""

    city_throughput: int = 0
    """Swaps completed network-wide during the last 60 simulated minutes."""

    rerouted_drivers: int = 0
    """Reroutes since the current scenario was activated."""

    emergency_events: int = 0
    """Emergencies triggered since the current scenario was activated."""

    revenue: float = 0.0
    """Cumulative swap revenue (₹)."""

    active_drivers: int = 0
    total_stations: int = 0
    operational_stations: int = 0
    total_inventory: int = 0
    total_capacity: int = 0
    peak_wait_time: float = 0.0
    total_failed_rides: int = 0


class TimeSeriesPoint(BaseModel):
    """Periodic KPI sample for charting."""

    time: int
    day: int
    hour: int
    avg_wait_time: float
    throughput: int
    lost_swaps: int
    utilization: float
    cost: float
    revenue: float
    active_drivers: int
    baseline_avg_wait_time: float
    baseline_throughput: int


# ═══════════════════════════════════════════════════════════════════════════
# Audit records
# ═══════════════════════════════════════════════════════════════════════════

class NearbyStationSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    station_id: str
    station_name: str
    distance_km: float
    status: StationStatus
    current_inventory: int
    queue_length: int
    avg_wait_time: float


class FailedRide(BaseModel):
    """One driver that left the network without a swap, with full context."""

    model_config = ConfigDict(frozen=True)

    id: str
    time: int
    day: int
    hour: int

    # --- Driver ---
    driver_id: str
    battery_pct: float
    battery_level: BatteryLevel
    failure_position: GeoPosition
    origin_position: GeoPosition
    travel_time: int
    wait_time: int

    # --- Classification ---
    reason: FailureReason
    target_station_id: str | None = None
    target_station_name: str | None = None
    target_station_distance_km: float | None = None

    # --- Environment ---
    weather_condition: str | None = None
    weather_multiplier: float | None = None
    temperature: float | None = None

    # --- Network state ---
    operational_stations: int = 0
    total_network_inventory: int = 0
    network_utilization: float = 0.0
    avg_network_wait_time: float = 0.0

    # --- Search context ---
    nearby_stations: tuple[NearbyStationSnapshot, ...] = ()
    nearby_station_count: int = 0
    was_rerouted: bool = False
    reroute_attempts: int = 0


class SimulationAlert(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    level: AlertLevel
    message: str
    time: int
    station_id: str | None = None


# ═══════════════════════════════════════════════════════════════════════════
# Snapshot
# ═══════════════════════════════════════════════════════════════════════════

class ActiveScenario(BaseModel):
    type: ScenarioType = ScenarioType.BASELINE
    activated_at: int = 0


class SimulationState(BaseModel):
    """Full engine snapshot after a tick."""

    time: int
    day: int
    hour: int
    is_running: bool = False
    speed: float = 1.0
    seed: int

    stations: list[Station] = Field(default_factory=list)
    drivers: list[Driver] = Field(default_factory=list)
    baseline_kpis: KPIMetrics = Field(default_factory=KPIMetrics)
    scenario_kpis: KPIMetrics = Field(default_factory=KPIMetrics)
    time_series: list[TimeSeriesPoint] = Field(default_factory=list)

    active_scenario: ActiveScenario = Field(default_factory=ActiveScenario)
    interventions: list[Intervention] = Field(default_factory=list)
    alerts: list[SimulationAlert] = Field(default_factory=list)
    failed_rides: list[FailedRide] = Field(default_factory=list)

    weather: WeatherData | None = None
    carbon: CarbonData | None = None


__all__ = [
    "ActiveScenario",
    "FailedRide",
    "KPIMetrics",
    "NearbyStationSnapshot",
    "SimulationAlert",
    "SimulationState",
    "TimeSeriesPoint",
]
