"""Network world — all mutable state of one simulation track.

The engine runs two worlds side by side: the *baseline* (never touched by
interventions) and the *scenario*.  A world is plain data plus its own random
generator, so forking a scenario from the baseline is a ``copy.deepcopy``.
"""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field

import numpy as np

from swapnet_sim.config.scenario import EngineConfig
from swapnet_sim.models.enums import DOWN_STATUSES, UNPOWERED_STATUSES, StationStatus
from swapnet_sim.models.network import Driver, RoutingMatrix, Station, WeatherData
from swapnet_sim.models.results import FailedRide

INITIAL_STATUS_KEY = "initial-status"


# ═══════════════════════════════════════════════════════════════════════════
# Per-station runtime (not part of the snapshot)
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class StationRuntime:
    """Queue, charger and history bookkeeping behind one ``Station``."""

    queue: deque[str] = field(default_factory=deque)
    """Driver ids waiting at the station, FIFO."""

    charge_progress: list[int] = field(default_factory=list)
    """Minutes of charge accumulated by each battery sitting on a charger."""

    depleted: int = 0
    """Empty batteries waiting for a free charger."""

    busy_window: deque[tuple[int, int]] = field(default_factory=deque)
    """(busy chargers, available chargers) for each of the last N ticks."""

    swap_times: deque[int] = field(default_factory=deque)
    """Completion minute of recent swaps (for city throughput)."""

    overrides: list[tuple[str, StationStatus]] = field(default_factory=list)
    """Forced statuses keyed by their source (intervention id or manual toggle); last wins."""

    charger_faults: list[str] = field(default_factory=list)
    """Keys of active charger failures; each one halves the working chargers."""

    out_of_service: int = 0
    """Installed chargers that were not working in the supplied station data."""

    def forced_status(self) -> StationStatus | None:
        return self.overrides[-1][1] if self.overrides else None

    def is_unpowered(self) -> bool:
        return any(status in UNPOWERED_STATUSES for _, status in self.overrides)

    def working_chargers(self, installed: int) -> int:
        """Chargers that work given the outages and faults currently in force."""
        if self.is_unpowered():
            return 0
        working = max(0, installed - self.out_of_service)
        for _ in self.charger_faults:
            working //= 2
        return working

    def push_override(self, key: str, status: StationStatus) -> None:
        self.drop_override(key)
        self.overrides.append((key, status))

    def drop_override(self, key: str) -> bool:
        before = len(self.overrides)
        self.overrides = [(k, s) for k, s in self.overrides if k != key]
        return len(self.overrides) != before


# ═══════════════════════════════════════════════════════════════════════════
# World
# ═══════════════════════════════════════════════════════════════════════════

class NetworkWorld:
    """Stations, drivers and environment for one track.

    Policy sections (station rules, driver behaviour, pricing) are private
    copies so ``change_policy`` / ``pricing_change`` only affect this track.
    """

    def __init__(
        self,
        stations: list[Station],
        config: EngineConfig,
        rng: np.random.Generator,
        time: int,
    ) -> None:
        self.time = time
        self.rng = rng
        self.config = config
        self.rules = config.station.model_copy(deep=True)
        self.driver_cfg = config.driver.model_copy(deep=True)
        self.pricing = config.pricing.model_copy(deep=True)
        self.demand_shift = 1.0

        self.weather = WeatherData()
        self.routing: RoutingMatrix | None = None

        self.stations: dict[str, Station] = {}
        self.runtime: dict[str, StationRuntime] = {}
        for s in stations:
            self.add_station(s.model_copy(deep=True))

        self.drivers: dict[str, Driver] = {}
        self.failed_rides: list[FailedRide] = []
        self.failed_this_tick = 0

        self.next_driver_seq = 1
        self.total_arrivals = 0
        self.rerouted_drivers = 0
        self.emergency_events = 0

    # ── Stations ────────────────────────────────────────────────────────

    def add_station(self, station: Station) -> None:
        """Register a station and seed its charger queue.

        Batteries already charging get a random head start so they do not all
        finish on the same tick.  A station supplied in a down status stays
        down until that override is dropped.
        """
        rt = StationRuntime()
        if station.status in DOWN_STATUSES:
            rt.push_override(INITIAL_STATUS_KEY, station.status)
        if not rt.is_unpowered():
            rt.out_of_service = station.chargers - station.active_chargers
        duration = self.rules.charge_duration_minutes
        if station.charging_batteries > 0:
            rt.charge_progress = [
                int(p) for p in self.rng.integers(0, duration, size=station.charging_batteries)
            ]
        self.stations[station.id] = station
        self.runtime[station.id] = rt

    def station(self, station_id: str | None) -> Station | None:
        if station_id is None:
            return None
        return self.stations.get(station_id)

    # ── Drivers ─────────────────────────────────────────────────────────

    def next_driver_id(self) -> str:
        driver_id = f"driver-{self.next_driver_seq}"
        self.next_driver_seq += 1
        return driver_id

    def driver(self, driver_id: str) -> Driver | None:
        return self.drivers.get(driver_id)

    # ── Clock ───────────────────────────────────────────────────────────

    @property
    def day(self) -> int:
        return self.time // 1440 + 1

    @property
    def hour(self) -> int:
        return (self.time // 60) % 24

    def fork(self) -> "NetworkWorld":
        """Independent copy, random generator state included."""
        return copy.deepcopy(self)
