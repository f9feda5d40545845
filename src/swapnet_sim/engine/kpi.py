"""KPI aggregator — recomputes network KPIs from scratch every tick.

Nothing here accumulates: every figure is derived from the current stations,
drivers and rolling windows of a world, so baseline and scenario KPIs are
directly comparable.
"""

from __future__ import annotations

from collections import deque

from swapnet_sim.config.pricing import CostConfig
from swapnet_sim.config.scenario import TimeSeriesConfig
from swapnet_sim.engine.world import NetworkWorld
from swapnet_sim.models.enums import DOWN_STATUSES, TERMINAL_DRIVER_STATUSES, DriverStatus, StationStatus
from swapnet_sim.models.results import KPIMetrics, TimeSeriesPoint


def compute_kpis(world: NetworkWorld, cost: CostConfig) -> KPIMetrics:
    """Snapshot KPIs for one world."""
    stations = list(world.stations.values())
    up = [s for s in stations if s.status not in DOWN_STATUSES]
    in_service = [s for s in stations if s.status is not StationStatus.OFFLINE]

    avg_wait = sum(s.avg_wait_time for s in up) / len(up) if up else 0.0
    chargers = sum(s.chargers for s in up)
    utilization = sum(s.utilization_rate * s.chargers for s in up) / chargers if chargers else 0.0

    operational_cost = sum(
        cost.base_per_station
        + cost.per_charger * s.chargers
        + cost.per_inventory_slot * s.inventory_cap
        + cost.per_active_charger * s.active_chargers
        for s in in_service
    )

    drivers = list(world.drivers.values())
    queued_waits = [d.wait_time for d in drivers if d.status is DriverStatus.SWAPPING]

    return KPIMetrics(
        avg_wait_time=round(avg_wait, 2),
        # Terminal drivers are purged at the start of each tick.
        lost_swaps=sum(1 for d in drivers if d.status is DriverStatus.ABANDONED),
        idle_inventory=sum(max(0, s.current_inventory - s.queue_length) for s in up),
        charger_utilization=round(utilization, 4),
        operational_cost=round(operational_cost, 2),
        city_throughput=sum(len(world.runtime[s.id].swap_times) for s in stations),
        rerouted_drivers=world.rerouted_drivers,
        emergency_events=world.emergency_events,
        revenue=round(sum(s.revenue for s in stations), 2),
        active_drivers=sum(1 for d in drivers if d.status not in TERMINAL_DRIVER_STATUSES),
        total_stations=len(stations),
        operational_stations=len(up),
        total_inventory=sum(s.current_inventory for s in stations),
        total_capacity=sum(s.inventory_cap for s in stations),
        peak_wait_time=float(max(queued_waits, default=0)),
        total_failed_rides=len(world.failed_rides),
    )


class TimeSeriesBuffer:
    """Rolling KPI samples taken every ``sample_interval_minutes``."""

    def __init__(self, config: TimeSeriesConfig) -> None:
        self._config = config
        self._points: deque[TimeSeriesPoint] = deque(maxlen=config.max_points)

    @property
    def points(self) -> list[TimeSeriesPoint]:
        return [p.model_copy() for p in self._points]

    def clear(self) -> None:
        self._points.clear()

    def maybe_sample(
        self,
        world: NetworkWorld,
        scenario: KPIMetrics,
        baseline: KPIMetrics,
    ) -> TimeSeriesPoint | None:
        if world.time % self._config.sample_interval_minutes != 0:
            return None
        point = TimeSeriesPoint(
            time=world.time,
            day=world.day,
            hour=world.hour,
            avg_wait_time=scenario.avg_wait_time,
            throughput=scenario.city_throughput,
            lost_swaps=scenario.lost_swaps,
            utilization=scenario.charger_utilization,
            cost=scenario.operational_cost,
            revenue=scenario.revenue,
            active_drivers=scenario.active_drivers,
            baseline_avg_wait_time=baseline.avg_wait_time,
            baseline_throughput=baseline.city_throughput,
        )
        self._points.append(point)
        return point


__all__ = ["TimeSeriesBuffer", "compute_kpis"]
