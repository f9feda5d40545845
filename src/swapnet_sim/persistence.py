"""Snapshot persistence — database row shapes and a JSON-lines sink.

The row models mirror the ``stations``, ``drivers`` and ``simulation_state``
tables of the hosted database, so a JSON-lines file written by
``JsonlSnapshotSink`` can be bulk-loaded as-is.  The sink is a plain
``SimulationEngine.subscribe`` listener.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from swapnet_sim.engine.geo import geo_to_percent
from swapnet_sim.models.enums import StationStatus
from swapnet_sim.models.network import Driver, GeoPosition, OperatingHours, Station
from swapnet_sim.models.results import SimulationState

logger = logging.getLogger(__name__)

_OCM_PREFIX = "real-station-"


# ═══════════════════════════════════════════════════════════════════════════
# Row shapes
# ═══════════════════════════════════════════════════════════════════════════

class StationRecord(BaseModel):
    id: str
    ocm_id: int | None
    name: str
    location: str
    address: str | None
    operator: str | None
    latitude: float
    longitude: float
    chargers: int
    active_chargers: int
    max_power_kw: float | None
    inventory_cap: int
    current_inventory: int
    charging_batteries: int
    bays: int
    queue_length: int
    utilization_rate: float
    avg_wait_time: float
    total_swaps: int
    lost_swaps: int
    peak_queue_length: int
    status: StationStatus
    operating_hours_start: int
    operating_hours_end: int
    coverage_radius: float
    usage_cost: str | None
    is_real_station: bool


class DriverRecord(BaseModel):
    id: str
    latitude: float
    longitude: float
    state: str
    target_station_id: str | None
    battery_level: float
    wait_time: int
    travel_time: int


class StateRecord(BaseModel):
    is_running: bool
    speed: float
    simulation_time: int
    day: int
    active_scenario_type: str
    weather_data: dict | None
    carbon_data: dict | None


def station_to_record(station: Station) -> StationRecord:
    ocm_id = None
    if station.id.startswith(_OCM_PREFIX):
        suffix = station.id[len(_OCM_PREFIX):]
        ocm_id = int(suffix) if suffix.isdigit() else None
    return StationRecord(
        id=station.id,
        ocm_id=ocm_id,
        name=station.name,
        location=station.location,
        address=station.address,
        operator=station.operator,
        latitude=station.geo_position.lat,
        longitude=station.geo_position.lng,
        chargers=station.chargers,
        active_chargers=station.active_chargers,
        max_power_kw=station.max_power_kw,
        inventory_cap=station.inventory_cap,
        current_inventory=station.current_inventory,
        charging_batteries=station.charging_batteries,
        bays=station.bays,
        queue_length=station.queue_length,
        utilization_rate=station.utilization_rate,
        avg_wait_time=station.avg_wait_time,
        total_swaps=station.total_swaps,
        lost_swaps=station.lost_swaps,
        peak_queue_length=station.peak_queue_length,
        status=station.status,
        operating_hours_start=station.operating_hours.start,
        operating_hours_end=station.operating_hours.end,
        coverage_radius=station.coverage_radius,
        usage_cost=station.usage_cost,
        is_real_station=station.is_real_station,
    )


def record_to_station(record: StationRecord) -> Station:
    """Inverse of :func:`station_to_record` (map position is recomputed)."""
    return Station(
        id=record.id,
        name=record.name,
        location=record.location,
        position=geo_to_percent(record.latitude, record.longitude),
        geo_position=GeoPosition(lat=record.latitude, lng=record.longitude),
        chargers=record.chargers,
        active_chargers=record.active_chargers,
        bays=record.bays,
        inventory_cap=record.inventory_cap,
        current_inventory=record.current_inventory,
        charging_batteries=record.charging_batteries,
        queue_length=record.queue_length,
        utilization_rate=record.utilization_rate,
        avg_wait_time=record.avg_wait_time,
        total_swaps=record.total_swaps,
        lost_swaps=record.lost_swaps,
        peak_queue_length=record.peak_queue_length,
        status=record.status,
        operating_hours=OperatingHours(start=record.operating_hours_start, end=record.operating_hours_end),
        coverage_radius=record.coverage_radius,
        address=record.address,
        operator=record.operator,
        usage_cost=record.usage_cost,
        max_power_kw=record.max_power_kw,
        is_real_station=record.is_real_station,
    )


def driver_to_record(driver: Driver) -> DriverRecord:
    return DriverRecord(
        id=driver.id,
        latitude=driver.geo_position.lat,
        longitude=driver.geo_position.lng,
        state=driver.status.value,
        target_station_id=driver.target_station_id,
        battery_level=driver.battery_pct,
        wait_time=driver.wait_time,
        travel_time=driver.travel_time,
    )


def state_to_record(state: SimulationState) -> StateRecord:
    return StateRecord(
        is_running=state.is_running,
        speed=state.speed,
        simulation_time=state.time,
        day=state.day,
        active_scenario_type=state.active_scenario.type.value,
        weather_data=state.weather.model_dump() if state.weather else None,
        carbon_data=state.carbon.model_dump() if state.carbon else None,
    )


# ═══════════════════════════════════════════════════════════════════════════
# JSON-lines sink
# ═══════════════════════════════════════════════════════════════════════════

class SnapshotLine(BaseModel):
    table: Literal["stations", "drivers", "simulation_state"]
    time: int
    row: StationRecord | DriverRecord | StateRecord


class JsonlSnapshotSink:
    """Append station, driver and state rows every ``every_n_ticks`` ticks.

    Usage::

        sink = JsonlSnapshotSink("snapshots.jsonl", every_n_ticks=15)
        unsubscribe = engine.subscribe(sink)
    """

    def __init__(self, path: str | Path, every_n_ticks: int = 10) -> None:
        if every_n_ticks < 1:
            raise ValueError(f"every_n_ticks must be ≥ 1, got {every_n_ticks}")
        self.path = Path(path)
        self.every_n_ticks = every_n_ticks
        self.lines_written = 0
        self._ticks = 0

    def __call__(self, state: SimulationState) -> None:
        self._ticks += 1
        if self._ticks % self.every_n_ticks != 0:
            return
        self.write(state)

    def write(self, state: SimulationState) -> int:
        """Write one full snapshot now.  Returns the number of lines written."""
        lines = [SnapshotLine(table="simulation_state", time=state.time, row=state_to_record(state))]
        lines += [SnapshotLine(table="stations", time=state.time, row=station_to_record(s)) for s in state.stations]
        lines += [SnapshotLine(table="drivers", time=state.time, row=driver_to_record(d)) for d in state.drivers]

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            for line in lines:
                fh.write(line.model_dump_json() + "\n")
        self.lines_written += len(lines)
        logger.debug("wrote %d snapshot rows at t=%d to %s", len(lines), state.time, self.path)
        return len(lines)


__all__ = [
    "DriverRecord",
    "JsonlSnapshotSink",
    "SnapshotLine",
    "StateRecord",
    "StationRecord",
    "driver_to_record",
    "record_to_station",
    "state_to_record",
    "station_to_record",
]
