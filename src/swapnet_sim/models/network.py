"""Network entities — stations, drivers, interventions and external inputs.

These are the mutable records the engine works on.  The engine hands out deep
copies inside ``SimulationState`` so callers can never mutate live state.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, computed_field, model_validator

from swapnet_sim.models.enums import (
    BatteryLevel,
    DriverStatus,
    EmergencyType,
    InterventionType,
    StationStatus,
)

CRITICAL_BATTERY_PCT = 15.0
"""At or below this state of charge a driver is ``critical``."""

LOW_BATTERY_PCT = 25.0
"""At or below this state of charge a driver is ``low``."""


# ═══════════════════════════════════════════════════════════════════════════
# Positions
# ═══════════════════════════════════════════════════════════════════════════

class Position(BaseModel):
    """Map position in percent of the city bounding box (0–100 on both axes)."""

    x: float
    y: float


class GeoPosition(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class OperatingHours(BaseModel):
    """Daily opening window, ``start ≤ hour < end``.  ``0–24`` means always open."""

    start: int = Field(default=0, ge=0, le=24)
    end: int = Field(default=24, ge=0, le=24)

    def is_open(self, hour: int) -> bool:
        if self.start == self.end or (self.start == 0 and self.end == 24):
            return True
        if self.start < self.end:
            return self.start <= hour < self.end
        # Window wraps past midnight, e.g. 20 → 6.
        return hour >= self.start or hour < self.end


# ═══════════════════════════════════════════════════════════════════════════
# Station
# ═══════════════════════════════════════════════════════════════════════════

class Station(BaseModel):
    """One swap station.  Counters are cumulative since the last reset."""

    id: str
    name: str
    location: str = ""
    position: Position
    geo_position: GeoPosition

    chargers: int = Field(ge=0, description="Installed chargers")
    active_chargers: int = Field(ge=0, description="Chargers currently working")
    bays: int = Field(default=0, ge=0, description="Physical swap bays")

    inventory_cap: int = Field(ge=0, description="Battery slots at the station")
    current_inventory: int = Field(ge=0, description="Charged batteries ready to swap")
    charging_batteries: int = Field(default=0, ge=0, description="Batteries on a charger right now")

    queue_length: int = Field(default=0, ge=0)
    utilization_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    avg_wait_time: float = Field(default=0.0, ge=0.0, description="Rolling average wait (minutes)")
    total_swaps: int = Field(default=0, ge=0)
    lost_swaps: int = Field(default=0, ge=0, description="Failed rides attributed to this station")
    peak_queue_length: int = Field(default=0, ge=0)
    revenue: float = Field(default=0.0, ge=0.0, description="Swap revenue collected (₹)")

    status: StationStatus = StationStatus.OPERATIONAL
    operating_hours: OperatingHours = Field(default_factory=OperatingHours)
    coverage_radius: float = Field(default=3.0, gt=0, description="Catchment radius (km)")

    # --- Directory metadata (Open Charge Map) ---
    address: str | None = None
    operator: str | None = None
    usage_cost: str | None = None
    max_power_kw: float | None = None
    is_real_station: bool = False

    @model_validator(mode="after")
    def _check_capacity(self) -> "Station":
        if self.current_inventory > self.inventory_cap:
            raise ValueError(
                f"current_inventory ({self.current_inventory}) exceeds "
                f"inventory_cap ({self.inventory_cap}) for station {self.id}"
            )
        if self.active_chargers > self.chargers:
            raise ValueError(
                f"active_chargers ({self.active_chargers}) exceeds "
                f"chargers ({self.chargers}) for station {self.id}"
            )
        return self

    @property
    def inventory_ratio(self) -> float:
        return self.current_inventory / self.inventory_cap if self.inventory_cap > 0 else 0.0


# ═══════════════════════════════════════════════════════════════════════════
# Driver
# ═══════════════════════════════════════════════════════════════════════════

class Driver(BaseModel):
    """A vehicle looking for a swap.

    ``origin_station_id`` is the station the driver spawned next to; it is the
    row used when looking up travel times in a station routing matrix.
    """

    id: str
    position: Position
    geo_position: GeoPosition
    origin_geo_position: GeoPosition
    origin_station_id: str | None = None
    target_station_id: str | None = None
    original_station_id: str | None = None

    battery_pct: float = Field(ge=0.0, le=100.0)
    status: DriverStatus = DriverStatus.SEEKING
    eta: int = Field(default=0, ge=0, description="Minutes until arrival")
    route_km: float = Field(default=0.0, ge=0.0, description="Remaining route length (km)")
    wait_time: int = Field(default=0, ge=0, description="Minutes spent in a station queue")
    travel_time: int = Field(default=0, ge=0, description="Minutes spent driving")
    reroute_attempts: int = Field(default=0, ge=0)
    spawned_at: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def battery_level(self) -> BatteryLevel:
        if self.battery_pct <= CRITICAL_BATTERY_PCT:
            return BatteryLevel.CRITICAL
        if self.battery_pct <= LOW_BATTERY_PCT:
            return BatteryLevel.LOW
        return BatteryLevel.NORMAL


# ═══════════════════════════════════════════════════════════════════════════
# Intervention
# ═══════════════════════════════════════════════════════════════════════════

class Intervention(BaseModel):
    """A scenario mutation with an optional time window.

    The last four fields are the scheduled-revert record.  They are filled in
    by the engine when the intervention is applied and must not be supplied
    by callers (they are reset whenever the schedule is (re)loaded).
    """

    id: str
    type: InterventionType
    station_id: str | None = None
    value: float | str | None = None
    position: GeoPosition | None = None
    emergency_type: EmergencyType | None = None
    params: dict[str, float | int | str] = Field(default_factory=dict)
    activation_time: int | None = Field(
        default=None, ge=0,
        description="Absolute simulation minute.  None = when the schedule is loaded.",
    )
    duration: int | None = Field(default=None, gt=0, description="Minutes in effect.  None = permanent.")

    # --- Scheduled-revert record ---
    applied_at: int | None = None
    revert_at: int | None = None
    prior: dict[str, Any] = Field(default_factory=dict)
    reverted: bool = False

    @property
    def is_active(self) -> bool:
        return self.applied_at is not None and not self.reverted

    def fresh(self) -> "Intervention":
        """Copy with an empty scheduled-revert record."""
        return self.model_copy(
            deep=True,
            update={"applied_at": None, "revert_at": None, "prior": {}, "reverted": False},
        )


# ═══════════════════════════════════════════════════════════════════════════
# External inputs (owned by collaborators, consumed as-is)
# ═══════════════════════════════════════════════════════════════════════════

class WeatherData(BaseModel):
    multiplier: float = Field(default=1.0, ge=0.0, description="Demand multiplier")
    condition: str = "unknown"
    description: str = ""
    temperature: float = 30.0
    is_fallback: bool = True


class CarbonData(BaseModel):
    """Grid carbon intensity.  Display only; the engine never reads it."""

    carbon_intensity: float = Field(default=720.0, ge=0.0, description="gCO₂eq/kWh")
    zone: str = "IN-NO"
    is_fallback: bool = True


class RoutingMatrix(BaseModel):
    """Station-to-station road matrix (``distances`` in metres, ``durations`` in seconds)."""

    distances: list[list[float]] | None = None
    durations: list[list[float]] | None = None
    station_ids: list[str] = Field(default_factory=list)
    fallback: bool = True

    @model_validator(mode="after")
    def _check_shape(self) -> "RoutingMatrix":
        n = len(self.station_ids)
        for name in ("distances", "durations"):
            matrix = getattr(self, name)
            if matrix is None:
                continue
            if len(matrix) != n or any(len(row) != n for row in matrix):
                raise ValueError(f"{name} must be a {n}×{n} matrix matching station_ids")
        return self

    @property
    def usable(self) -> bool:
        return not self.fallback and self.durations is not None and len(self.station_ids) > 1

    def lookup(self, from_id: str, to_id: str) -> tuple[float | None, float | None]:
        """Return ``(distance_m, duration_s)`` between two stations, or ``(None, None)``."""
        if not self.usable:
            return None, None
        try:
            i = self.station_ids.index(from_id)
            j = self.station_ids.index(to_id)
        except ValueError:
            return None, None
        distance = self.distances[i][j] if self.distances is not None else None
        return distance, self.durations[i][j]


__all__ = [
    "CRITICAL_BATTERY_PCT",
    "LOW_BATTERY_PCT",
    "CarbonData",
    "Driver",
    "GeoPosition",
    "Intervention",
    "OperatingHours",
    "Position",
    "RoutingMatrix",
    "Station",
    "WeatherData",
]
