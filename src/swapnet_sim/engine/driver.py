"""Driver state machine — station selection, movement and rerouting.

    seeking ──select──▶ en_route ──arrive──▶ swapping ──(station SM)──▶ complete
       │                  │  ▲                  │
       │                  ▼  │ target down      │ station down
       │               rerouting ◀──────────────┘   or closed
       ▼                  │
    abandoned ◀───────────┘   (no station, too far, stranded, too many reroutes)

A moving driver whose battery drops into the critical band before arriving
gives up with ``critical_battery``; one that runs dry is ``stranded``.  Drivers
that set off already critical keep going until they arrive or run dry.

Selection considers stations that are up, open and have working chargers
within ``max_search_radius_km``, then filters by stock, queue length and
battery range.  The first filter that empties the candidate set names the
failure reason.  Survivors are ranked by estimated travel time, ties by id.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from swapnet_sim.engine.geo import distance_km, geo_to_percent, interpolate
from swapnet_sim.engine.recorder import record_failure
from swapnet_sim.engine.world import NetworkWorld
from swapnet_sim.models.enums import (
    DOWN_STATUSES,
    BatteryLevel,
    DriverStatus,
    FailureReason,
)
from swapnet_sim.models.network import CRITICAL_BATTERY_PCT, Driver, Station


@dataclass
class Selection:
    """Outcome of one station search."""

    station: Station | None = None
    reason: FailureReason | None = None
    minutes: float = 0.0
    route_km: float = 0.0
    considered: list[tuple[Station, float]] = field(default_factory=list)
    """(station, straight-line km) for every up station inside the search radius."""


def is_up(station: Station, hour: int) -> bool:
    """Station can take new drivers: not down, chargers working, open now."""
    return (
        station.status not in DOWN_STATUSES
        and station.active_chargers > 0
        and station.operating_hours.is_open(hour)
    )


def estimate_travel(
    world: NetworkWorld,
    driver: Driver,
    station: Station,
    anchor_id: str | None,
) -> tuple[float, float]:
    """Return ``(minutes, route_km)`` from the driver to ``station``.

    Uses the routing matrix row of ``anchor_id`` when a real matrix is loaded,
    otherwise straight-line distance × detour factor at the configured speed.
    """
    cfg = world.driver_cfg
    matrix = world.routing
    if matrix is not None and matrix.usable and anchor_id is not None and anchor_id != station.id:
        distance_m, duration_s = matrix.lookup(anchor_id, station.id)
        if duration_s is not None:
            if distance_m is not None:
                route_km = distance_m / 1000.0
            else:
                route_km = distance_km(driver.geo_position, station.geo_position) * cfg.detour_factor
            return duration_s / 60.0, route_km

    route_km = distance_km(driver.geo_position, station.geo_position) * cfg.detour_factor
    return route_km / cfg.speed_km_per_min, route_km


def _range_failure(driver: Driver) -> FailureReason:
    level = driver.battery_level
    if level is BatteryLevel.CRITICAL:
        return FailureReason.CRITICAL_BATTERY
    if level is BatteryLevel.LOW:
        return FailureReason.LOW_BATTERY
    return FailureReason.STATION_TOO_FAR


def select_station(
    world: NetworkWorld,
    driver: Driver,
    anchor_id: str | None,
    exclude: frozenset[str] = frozenset(),
) -> Selection:
    """Pick the best reachable station for ``driver`` or explain why none fits."""
    cfg = world.driver_cfg
    threshold = world.rules.overload_queue_threshold
    hour = world.hour

    up = [s for s in world.stations.values() if is_up(s, hour) and s.id not in exclude]
    considered = [(s, distance_km(driver.geo_position, s.geo_position)) for s in up]
    considered = [(s, d) for s, d in considered if d <= cfg.max_search_radius_km]
    selection = Selection(considered=considered)

    if not considered:
        selection.reason = FailureReason.NO_STATIONS_AVAILABLE
        return selection

    stocked = [s for s, _ in considered if s.current_inventory > 0]
    if not stocked:
        selection.reason = FailureReason.NO_INVENTORY
        return selection

    open_queue = [s for s in stocked if s.queue_length <= threshold]
    if not open_queue:
        congested = all(s.queue_length > threshold for s in up)
        selection.reason = (
            FailureReason.NETWORK_CONGESTION if congested else FailureReason.EXCESSIVE_QUEUE
        )
        return selection

    battery_range = driver.battery_pct / cfg.drain_pct_per_km
    reachable: list[tuple[float, str, float, Station]] = []
    for s in open_queue:
        minutes, route_km = estimate_travel(world, driver, s, anchor_id)
        if route_km <= battery_range:
            reachable.append((minutes, s.id, route_km, s))
    if not reachable:
        selection.reason = _range_failure(driver)
        return selection

    minutes, _, route_km, best = min(reachable, key=lambda r: (r[0], r[1]))
    selection.station = best
    selection.minutes = minutes
    selection.route_km = route_km
    return selection


def nearest_station_id(world: NetworkWorld, driver: Driver) -> str | None:
    if not world.stations:
        return None
    return min(
        world.stations.values(),
        key=lambda s: (distance_km(driver.geo_position, s.geo_position), s.id),
    ).id


# ═══════════════════════════════════════════════════════════════════════════
# Transitions
# ═══════════════════════════════════════════════════════════════════════════

def _dispatch(driver: Driver, selection: Selection, status: DriverStatus) -> None:
    driver.target_station_id = selection.station.id
    driver.eta = max(1, math.ceil(selection.minutes))
    driver.route_km = selection.route_km
    driver.status = status


def _seek(world: NetworkWorld, driver: Driver) -> None:
    selection = select_station(world, driver, driver.origin_station_id)
    if selection.station is None:
        record_failure(world, driver, selection.reason, selection.considered)
        return
    _dispatch(driver, selection, DriverStatus.EN_ROUTE)


def reroute(world: NetworkWorld, driver: Driver, from_queue: bool = False) -> None:
    """Send ``driver`` to another station, or abandon it."""
    old = world.station(driver.target_station_id)
    if old is not None:
        rt = world.runtime[old.id]
        if driver.id in rt.queue:
            rt.queue.remove(driver.id)
            old.queue_length = len(rt.queue)

    if driver.original_station_id is None:
        driver.original_station_id = driver.target_station_id
    driver.reroute_attempts += 1

    if driver.reroute_attempts > world.driver_cfg.max_reroutes:
        record_failure(world, driver, FailureReason.MULTIPLE_REROUTES)
        return

    exclude = frozenset({driver.target_station_id}) if driver.target_station_id else frozenset()
    selection = select_station(world, driver, nearest_station_id(world, driver), exclude)
    if selection.station is None:
        reason = FailureReason.DESTINATION_FAILED if from_queue else FailureReason.REROUTING_FAILED
        record_failure(world, driver, reason, selection.considered)
        return

    driver.wait_time = 0
    _dispatch(driver, selection, DriverStatus.REROUTING)
    world.rerouted_drivers += 1


def _move(world: NetworkWorld, driver: Driver) -> None:
    target = world.station(driver.target_station_id)
    if target is None or not is_up(target, world.hour):
        reroute(world, driver)
        return

    step_km = driver.route_km / driver.eta if driver.eta > 0 else driver.route_km
    before = driver.battery_pct
    driver.battery_pct = max(0.0, round(driver.battery_pct - step_km * world.driver_cfg.drain_pct_per_km, 4))
    driver.route_km = max(0.0, driver.route_km - step_km)
    fraction = 1.0 / driver.eta if driver.eta > 0 else 1.0
    driver.eta = max(0, driver.eta - 1)
    driver.travel_time += 1

    if driver.eta > 0:
        if driver.battery_pct <= 0:
            record_failure(world, driver, FailureReason.STRANDED)
            return
        if driver.battery_pct <= CRITICAL_BATTERY_PCT < before:
            record_failure(world, driver, FailureReason.CRITICAL_BATTERY)
            return
        geo = interpolate(driver.geo_position, target.geo_position, fraction)
        driver.geo_position = geo
        driver.position = geo_to_percent(geo.lat, geo.lng)
        return

    driver.geo_position = target.geo_position.model_copy()
    driver.position = target.position.model_copy()
    driver.route_km = 0.0
    driver.status = DriverStatus.SWAPPING
    rt = world.runtime[target.id]
    rt.queue.append(driver.id)
    target.queue_length = len(rt.queue)


def step_driver(world: NetworkWorld, driver: Driver) -> None:
    status = driver.status
    if status is DriverStatus.SEEKING:
        _seek(world, driver)
    elif status in (DriverStatus.EN_ROUTE, DriverStatus.REROUTING):
        _move(world, driver)
    elif status is DriverStatus.SWAPPING:
        station = world.station(driver.target_station_id)
        if station is None or not is_up(station, world.hour):
            reroute(world, driver, from_queue=True)
    elif status in (DriverStatus.COMPLETE, DriverStatus.ABANDONED):
        pass
    else:
        raise ValueError(f"unhandled driver status {status!r}")


def step_drivers(world: NetworkWorld) -> None:
    for driver in list(world.drivers.values()):
        step_driver(world, driver)


__all__ = [
    "Selection",
    "estimate_travel",
    "is_up",
    "nearest_station_id",
    "reroute",
    "select_station",
    "step_driver",
    "step_drivers",
]
