"""Simulation engine — clock, dual-track stepping and the public control surface.

Two ``NetworkWorld``s advance in lock-step:

  baseline   the network as configured; never sees interventions or
             manual failures.
  scenario   forked from the baseline whenever a scenario or intervention
             list is activated, then mutated by the intervention applier.

Because the fork copies the random generator state too, an empty
intervention list keeps both tracks identical tick for tick.

Per tick, for each world:
  clock → purge finished drivers → arrivals → interventions (scenario only)
  → drivers → stations
then KPIs for both tracks → time-series sample → alerts → listeners.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

import numpy as np

from swapnet_sim.config.network import default_stations
from swapnet_sim.config.scenario import EngineConfig
from swapnet_sim.engine.demand import generate_arrivals
from swapnet_sim.engine.driver import step_drivers
from swapnet_sim.engine.interventions import InterventionApplier
from swapnet_sim.engine.kpi import TimeSeriesBuffer, compute_kpis
from swapnet_sim.engine.recorder import AlertEmitter
from swapnet_sim.engine.station import step_stations
from swapnet_sim.engine.world import NetworkWorld
from swapnet_sim.models.enums import TERMINAL_DRIVER_STATUSES, AlertLevel, ScenarioType
from swapnet_sim.models.network import (
    CarbonData,
    Intervention,
    RoutingMatrix,
    Station,
    WeatherData,
)
from swapnet_sim.models.results import (
    ActiveScenario,
    KPIMetrics,
    SimulationAlert,
    SimulationState,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[SimulationState], None]

_MAX_SEED = 2**63 - 1


def _resolve_seed(config: EngineConfig, rng: np.random.Generator | None) -> int:
    if rng is not None:
        return int(rng.integers(0, _MAX_SEED))
    if config.random_seed is not None:
        return config.random_seed
    return int(np.random.SeedSequence().entropy % _MAX_SEED)


def _validate_stations(stations: Iterable[Station | dict[str, Any]]) -> list[Station]:
    validated = [Station.model_validate(s) if isinstance(s, dict) else s.model_copy(deep=True) for s in stations]
    seen: set[str] = set()
    for s in validated:
        if s.id in seen:
            raise ValueError(f"duplicate station id {s.id!r}")
        seen.add(s.id)
    return validated


class SimulationEngine:
    """Step-driven digital twin of a battery-swap network.

    ``step()`` is the only way simulated time moves.  ``start()`` / ``pause()``
    and ``speed`` are flags for whatever external timer calls ``step()``.
    """

    def __init__(
        self,
        stations: list[Station] | None = None,
        config: EngineConfig | None = None,
        rng: np.random.Generator | None = None,
        on_state_changed: StateListener | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.seed = _resolve_seed(self.config, rng)
        self.is_running = False
        self.speed = 1.0

        self._template = _validate_stations(stations if stations is not None else default_stations())
        self._interventions: list[Intervention] = []
        self._schedule: list[Intervention] = []
        self._scenario = ActiveScenario(activated_at=self.config.start_time)

        self._weather: WeatherData | None = None
        self._carbon: CarbonData | None = None
        self._routing: RoutingMatrix | None = None

        self._alerts = AlertEmitter(self.config.alerts)
        self._applier = InterventionApplier(self._alerts)
        self._series = TimeSeriesBuffer(self.config.time_series)
        self._listeners: list[StateListener] = []
        if on_state_changed is not None:
            self._listeners.append(on_state_changed)

        self._build_worlds()

    # ═══════════════════════════════════════════════════════════════════
    # World lifecycle
    # ═══════════════════════════════════════════════════════════════════

    def _build_worlds(self) -> None:
        rng = np.random.default_rng(self.seed)
        self.baseline = NetworkWorld(self._template, self.config, rng, self.config.start_time)
        if self._weather is not None:
            self.baseline.weather = self._weather.model_copy()
        if self._routing is not None:
            self.baseline.routing = self._routing.model_copy(deep=True)
        self._alerts.clear()
        self._series.clear()
        self._scenario.activated_at = self.baseline.time
        self._fork_scenario()

    def _fork_scenario(self) -> None:
        """Fork the scenario track from the baseline and load a fresh schedule."""
        self.baseline.rerouted_drivers = 0
        self.baseline.emergency_events = 0
        self.world = self.baseline.fork()
        self._schedule = [iv.fresh() for iv in self._interventions]
        self._alerts.prime(self.world)
        self._applier.tick(self.world, self._schedule)
        self._baseline_kpis = compute_kpis(self.baseline, self.config.cost)
        self._scenario_kpis = compute_kpis(self.world, self.config.cost)

    # ═══════════════════════════════════════════════════════════════════
    # Control
    # ═══════════════════════════════════════════════════════════════════

    def start(self) -> None:
        self.is_running = True

    def pause(self) -> None:
        self.is_running = False

    def set_speed(self, speed: float) -> None:
        """Set the external timer's rate multiplier.  Raises ``ValueError`` if ``speed <= 0``."""
        if speed <= 0:
            raise ValueError(f"speed must be > 0, got {speed}")
        self.speed = float(speed)

    def reset(self) -> SimulationState:
        """Back to the start time with the same seed, stations and schedule."""
        self.is_running = False
        self._build_worlds()
        logger.info("engine reset (seed=%d, %d stations, %d interventions)",
                    self.seed, len(self._template), len(self._interventions))
        return self.get_state()

    def set_scenario(
        self,
        scenario_type: ScenarioType,
        interventions: Iterable[Intervention] | None = None,
    ) -> SimulationState:
        self._scenario = ActiveScenario(type=scenario_type, activated_at=self.baseline.time)
        self.apply_interventions(interventions or [])
        self._alerts.emit(AlertLevel.INFO, f"Scenario '{scenario_type.value}' activated", self.world.time)
        logger.info("scenario %s activated at t=%d", scenario_type.value, self.world.time)
        return self.get_state()

    def apply_interventions(self, interventions: Iterable[Intervention]) -> SimulationState:
        """Replace the intervention schedule and re-fork the scenario track.

        Duplicate ids keep their first occurrence.  Interventions without an
        activation time take effect immediately.
        """
        unique: list[Intervention] = []
        seen: set[str] = set()
        for iv in interventions:
            if iv.id in seen:
                logger.warning("duplicate intervention id %r ignored", iv.id)
                continue
            seen.add(iv.id)
            unique.append(iv.fresh())
        self._interventions = unique
        self._scenario.activated_at = self.baseline.time
        self._fork_scenario()
        logger.info("%d interventions scheduled at t=%d", len(unique), self.world.time)
        return self.get_state()

    def set_stations(self, stations: Iterable[Station | dict[str, Any]]) -> SimulationState:
        """Replace the network template and reset both tracks."""
        self._template = _validate_stations(stations)
        logger.info("station template replaced (%d stations)", len(self._template))
        return self.reset()

    def set_weather(self, weather: WeatherData) -> None:
        self._weather = weather.model_copy()
        for world in (self.baseline, self.world):
            world.weather = weather.model_copy()

    def set_routing_matrix(self, matrix: RoutingMatrix | None) -> None:
        self._routing = matrix.model_copy(deep=True) if matrix is not None else None
        for world in (self.baseline, self.world):
            world.routing = matrix.model_copy(deep=True) if matrix is not None else None

    def set_carbon(self, carbon: CarbonData) -> None:
        self._carbon = carbon.model_copy()

    def toggle_station_failure(self, station_id: str) -> bool:
        """Flip a manual failure on a scenario station.  False if the id is unknown."""
        if station_id not in self.world.stations:
            self._alerts.emit(AlertLevel.INFO, f"Unknown station {station_id!r}", self.world.time)
            logger.warning("toggle_station_failure: unknown station %r", station_id)
            return False
        self._applier.toggle_failure(self.world, station_id)
        return True

    # ═══════════════════════════════════════════════════════════════════
    # Stepping
    # ═══════════════════════════════════════════════════════════════════

    def _advance_world(self, world: NetworkWorld, schedule: list[Intervention] | None) -> None:
        world.time += 1
        world.drivers = {
            did: d for did, d in world.drivers.items() if d.status not in TERMINAL_DRIVER_STATUSES
        }
        world.failed_this_tick = 0

        generate_arrivals(world, self.config.demand)
        if schedule is not None:
            self._applier.tick(world, schedule)
        step_drivers(world)
        step_stations(world)

    def step(self) -> SimulationState:
        """Advance both tracks by one simulated minute."""
        self._advance_world(self.baseline, None)
        self._advance_world(self.world, self._schedule)

        self._baseline_kpis = compute_kpis(self.baseline, self.config.cost)
        self._scenario_kpis = compute_kpis(self.world, self.config.cost)
        self._series.maybe_sample(self.world, self._scenario_kpis, self._baseline_kpis)
        self._alerts.observe(self.world, self._scenario_kpis)

        state = self.get_state()
        self._notify(state)
        return state

    def advance(self, ticks: int) -> SimulationState:
        if ticks < 1:
            raise ValueError(f"ticks must be ≥ 1, got {ticks}")
        state = None
        for _ in range(ticks):
            state = self.step()
        return state

    # ═══════════════════════════════════════════════════════════════════
    # Observation
    # ═══════════════════════════════════════════════════════════════════

    @property
    def alerts(self) -> tuple[SimulationAlert, ...]:
        return self._alerts.alerts

    @property
    def baseline_kpis(self) -> KPIMetrics:
        return self._baseline_kpis.model_copy()

    @property
    def scenario_kpis(self) -> KPIMetrics:
        return self._scenario_kpis.model_copy()

    def get_state(self) -> SimulationState:
        """Deep-copied snapshot; mutating it never touches the engine."""
        world = self.world
        return SimulationState(
            time=world.time,
            day=world.day,
            hour=world.hour,
            is_running=self.is_running,
            speed=self.speed,
            seed=self.seed,
            stations=[s.model_copy(deep=True) for s in world.stations.values()],
            drivers=[d.model_copy(deep=True) for d in world.drivers.values()],
            baseline_kpis=self._baseline_kpis.model_copy(),
            scenario_kpis=self._scenario_kpis.model_copy(),
            time_series=self._series.points,
            active_scenario=self._scenario.model_copy(),
            interventions=[iv.model_copy(deep=True) for iv in self._schedule],
            alerts=list(self._alerts.alerts),
            failed_rides=list(world.failed_rides),
            weather=self._weather.model_copy() if self._weather is not None else None,
            carbon=self._carbon.model_copy() if self._carbon is not None else None,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener(state)`` after every tick.  Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, state: SimulationState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("state listener %r failed", listener)


__all__ = ["SimulationEngine", "StateListener"]
