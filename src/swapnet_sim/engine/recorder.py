"""Failure recorder & alert emitter — append-only logs observed by analytics.

``record_failure`` is the only way a driver becomes ``abandoned``: it flips
the status, detaches the driver from any station queue and appends exactly
one frozen ``FailedRide`` carrying the full context of the failure.

``AlertEmitter`` watches the scenario track after every tick and raises
alerts on status transitions and KPI threshold crossings.  Threshold alerts
are edge-triggered so a sustained condition produces one alert, not one per
minute.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from swapnet_sim.config.alerts import AlertConfig
from swapnet_sim.engine.geo import distance_km
from swapnet_sim.engine.world import NetworkWorld
from swapnet_sim.models.enums import (
    DOWN_STATUSES,
    AlertLevel,
    DriverStatus,
    FailureReason,
    StationStatus,
)
from swapnet_sim.models.network import Driver, Station
from swapnet_sim.models.results import (
    FailedRide,
    KPIMetrics,
    NearbyStationSnapshot,
    SimulationAlert,
)

logger = logging.getLogger(__name__)

MAX_NEARBY_SNAPSHOTS = 5
"""Nearest stations stored on a FailedRide (the count covers all considered)."""


# ═══════════════════════════════════════════════════════════════════════════
# Failure recorder
# ═══════════════════════════════════════════════════════════════════════════

def _network_snapshot(world: NetworkWorld) -> tuple[int, int, float, float]:
    """(up stations, total inventory, charger-weighted utilization, mean wait)."""
    up = [s for s in world.stations.values() if s.status not in DOWN_STATUSES]
    inventory = sum(s.current_inventory for s in world.stations.values())
    chargers = sum(s.chargers for s in up)
    utilization = sum(s.utilization_rate * s.chargers for s in up) / chargers if chargers else 0.0
    wait = sum(s.avg_wait_time for s in up) / len(up) if up else 0.0
    return len(up), inventory, round(utilization, 4), round(wait, 4)


def _nearby_snapshots(
    driver: Driver,
    considered: Iterable[tuple[Station, float]],
) -> tuple[NearbyStationSnapshot, ...]:
    ranked = sorted(considered, key=lambda sd: (sd[1], sd[0].id))[:MAX_NEARBY_SNAPSHOTS]
    return tuple(
        NearbyStationSnapshot(
            station_id=s.id,
            station_name=s.name,
            distance_km=round(d, 3),
            status=s.status,
            current_inventory=s.current_inventory,
            queue_length=s.queue_length,
            avg_wait_time=s.avg_wait_time,
        )
        for s, d in ranked
    )


def record_failure(
    world: NetworkWorld,
    driver: Driver,
    reason: FailureReason,
    considered: list[tuple[Station, float]] | None = None,
) -> FailedRide:
    """Abandon ``driver`` and append its ``FailedRide``.

    ``considered`` is the list of (station, straight-line km) pairs the
    driver looked at during its last search, if any.
    """
    if driver.status is DriverStatus.ABANDONED:
        raise ValueError(f"driver {driver.id} already abandoned")

    target = world.station(driver.target_station_id)
    if target is not None:
        rt = world.runtime[target.id]
        if driver.id in rt.queue:
            rt.queue.remove(driver.id)
            target.queue_length = len(rt.queue)
        target.lost_swaps += 1

    considered = considered or []
    up, inventory, utilization, wait = _network_snapshot(world)
    weather = world.weather

    ride = FailedRide(
        id=f"failed-{len(world.failed_rides) + 1}",
        time=world.time,
        day=world.day,
        hour=world.hour,
        driver_id=driver.id,
        battery_pct=round(driver.battery_pct, 2),
        battery_level=driver.battery_level,
        failure_position=driver.geo_position,
        origin_position=driver.origin_geo_position,
        travel_time=driver.travel_time,
        wait_time=driver.wait_time,
        reason=reason,
        target_station_id=target.id if target else None,
        target_station_name=target.name if target else None,
        target_station_distance_km=(
            round(distance_km(driver.geo_position, target.geo_position), 3) if target else None
        ),
        weather_condition=weather.condition,
        weather_multiplier=weather.multiplier,
        temperature=weather.temperature,
        operational_stations=up,
        total_network_inventory=inventory,
        network_utilization=utilization,
        avg_network_wait_time=wait,
        nearby_stations=_nearby_snapshots(driver, considered),
        nearby_station_count=len(considered),
        was_rerouted=driver.original_station_id is not None,
        reroute_attempts=driver.reroute_attempts,
    )

    driver.status = DriverStatus.ABANDONED
    driver.eta = 0
    world.failed_rides.append(ride)
    world.failed_this_tick += 1
    return ride


# ═══════════════════════════════════════════════════════════════════════════
# Alert emitter
# ═══════════════════════════════════════════════════════════════════════════

_STATUS_ALERTS: dict[StationStatus, tuple[AlertLevel, str]] = {
    StationStatus.OVERLOADED: (AlertLevel.WARNING, "{name} is overloaded"),
    StationStatus.LOW_INVENTORY: (AlertLevel.WARNING, "{name} is running low on batteries"),
    StationStatus.OPERATIONAL: (AlertLevel.INFO, "{name} is back to normal operation"),
}
"""Derived transitions only.  Forced statuses (fire, outage, …) alert when applied."""


class AlertEmitter:
    """Rolling alert log for the scenario track."""

    def __init__(self, config: AlertConfig) -> None:
        self._config = config
        self._alerts: deque[SimulationAlert] = deque(maxlen=config.max_alerts)
        self._seq = 0
        self._last_status: dict[str, StationStatus] = {}
        self._utilization_high = False

    @property
    def alerts(self) -> tuple[SimulationAlert, ...]:
        return tuple(self._alerts)

    def clear(self) -> None:
        self._alerts.clear()
        self._seq = 0
        self._last_status = {}
        self._utilization_high = False

    def prime(self, world: NetworkWorld) -> None:
        """Adopt the current station statuses without alerting on them."""
        self._last_status = {sid: s.status for sid, s in world.stations.items()}

    def emit(
        self,
        level: AlertLevel,
        message: str,
        time: int,
        station_id: str | None = None,
    ) -> SimulationAlert:
        self._seq += 1
        alert = SimulationAlert(
            id=f"alert-{self._seq}",
            level=level,
            message=message,
            time=time,
            station_id=station_id,
        )
        self._alerts.append(alert)
        logger.debug("alert %s [%s] %s", alert.id, level.value, message)
        return alert

    def observe(self, world: NetworkWorld, kpis: KPIMetrics) -> None:
        """Compare the post-tick state with the previous tick."""
        for sid, station in world.stations.items():
            previous = self._last_status.get(sid)
            self._last_status[sid] = station.status
            if previous is None or previous is station.status:
                continue
            template = _STATUS_ALERTS.get(station.status)
            if template is None:
                continue
            level, text = template
            self.emit(level, text.format(name=station.name), world.time, sid)

        high = kpis.charger_utilization > self._config.utilization_threshold
        if high and not self._utilization_high:
            self.emit(
                AlertLevel.WARNING,
                f"Network charger utilization at {kpis.charger_utilization:.0%}",
                world.time,
            )
        self._utilization_high = high

        if world.failed_this_tick >= self._config.lost_swap_surge:
            self.emit(
                AlertLevel.DANGER,
                f"{world.failed_this_tick} drivers abandoned the network this minute",
                world.time,
            )


__all__ = ["AlertEmitter", "record_failure"]
