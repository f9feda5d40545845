"""Station state machine — service, replenishment, utilization and status.

One call to :func:`step_station` advances a single station by one minute:

  1. Service   — up to ``active_chargers`` queued drivers swap (FIFO) while
                 charged batteries are on hand.  Everyone still queued waits
                 one more minute and may renege.
  2. Charging  — depleted batteries take free powered chargers; finished
                 batteries move into inventory, bounded by ``inventory_cap``.
  3. Windows   — rolling utilization and throughput history are trimmed.
  4. Status    — re-derived from the forced override or the thresholds.

Down or closed stations skip service but keep their history windows moving.
"""

from __future__ import annotations

from swapnet_sim.config.station import StationRules
from swapnet_sim.engine.recorder import record_failure
from swapnet_sim.engine.world import NetworkWorld, StationRuntime
from swapnet_sim.models.enums import (
    DOWN_STATUSES,
    UNPOWERED_STATUSES,
    DriverStatus,
    FailureReason,
    StationStatus,
)
from swapnet_sim.models.network import Station


def derive_status(station: Station, rt: StationRuntime, rules: StationRules) -> StationStatus:
    """First match wins: override → empty → low inventory → long queue → operational."""
    forced = rt.forced_status()
    if forced is not None:
        return forced
    if station.current_inventory == 0:
        return StationStatus.OVERLOADED
    if station.inventory_ratio < rules.low_inventory_ratio:
        return StationStatus.LOW_INVENTORY
    if len(rt.queue) > rules.overload_queue_threshold:
        return StationStatus.OVERLOADED
    return StationStatus.OPERATIONAL


def refresh_status(world: NetworkWorld, station_id: str) -> None:
    station = world.stations[station_id]
    station.status = derive_status(station, world.runtime[station_id], world.rules)


def sync_chargers(world: NetworkWorld, station_id: str) -> None:
    """Recompute working chargers from the outages and faults now in force."""
    station = world.stations[station_id]
    station.active_chargers = min(world.runtime[station_id].working_chargers(station.chargers), station.chargers)


def is_serving(station: Station, hour: int) -> bool:
    return station.status not in DOWN_STATUSES and station.operating_hours.is_open(hour)


# ═══════════════════════════════════════════════════════════════════════════
# Per-tick phases
# ═══════════════════════════════════════════════════════════════════════════

def _serve_queue(world: NetworkWorld, station: Station, rt: StationRuntime) -> None:
    rules = world.rules
    alpha = rules.wait_time_ema_alpha
    price = world.pricing.effective_price

    served = 0
    while rt.queue and served < station.active_chargers and station.current_inventory > 0:
        driver = world.drivers[rt.queue.popleft()]
        station.current_inventory -= 1
        station.total_swaps += 1
        station.revenue = round(station.revenue + price, 2)
        station.avg_wait_time = round(alpha * driver.wait_time + (1 - alpha) * station.avg_wait_time, 4)
        rt.depleted += 1
        rt.swap_times.append(world.time)
        driver.status = DriverStatus.COMPLETE
        driver.battery_pct = 100.0
        served += 1

    limit = rules.max_queue_wait_minutes
    for driver_id in list(rt.queue):
        driver = world.drivers[driver_id]
        driver.wait_time += 1
        if limit is not None and driver.wait_time >= limit:
            record_failure(world, driver, FailureReason.EXCESSIVE_QUEUE)


def _charge(world: NetworkWorld, station: Station, rt: StationRuntime) -> int:
    """Advance charging by one minute.  Returns the number of busy chargers."""
    if station.status in UNPOWERED_STATUSES:
        return 0

    duration = world.rules.charge_duration_minutes
    active = station.active_chargers
    while rt.depleted > 0 and len(rt.charge_progress) < active:
        rt.charge_progress.append(0)
        rt.depleted -= 1

    busy = 0
    for i, progress in enumerate(rt.charge_progress):
        if busy >= active:
            break
        if progress < duration:
            rt.charge_progress[i] = progress + 1
            busy += 1

    # Finished batteries only leave the charger when a slot is free.
    still_charging: list[int] = []
    for progress in rt.charge_progress:
        if progress >= duration and station.current_inventory < station.inventory_cap:
            station.current_inventory += 1
        else:
            still_charging.append(progress)
    rt.charge_progress = still_charging
    return busy


def _trim_windows(world: NetworkWorld, station: Station, rt: StationRuntime, busy: int) -> None:
    rules = world.rules
    rt.busy_window.append((busy, station.active_chargers))
    while len(rt.busy_window) > rules.utilization_window_minutes:
        rt.busy_window.popleft()
    available = sum(a for _, a in rt.busy_window)
    used = sum(b for b, _ in rt.busy_window)
    station.utilization_rate = round(min(1.0, used / available), 4) if available else 0.0

    horizon = world.time - rules.throughput_window_minutes
    while rt.swap_times and rt.swap_times[0] <= horizon:
        rt.swap_times.popleft()


def step_station(world: NetworkWorld, station_id: str) -> None:
    """Advance one station by one minute."""
    station = world.stations[station_id]
    rt = world.runtime[station_id]

    if is_serving(station, world.hour):
        _serve_queue(world, station, rt)

    busy = _charge(world, station, rt)
    station.charging_batteries = len(rt.charge_progress)
    _trim_windows(world, station, rt, busy)

    station.queue_length = len(rt.queue)
    station.peak_queue_length = max(station.peak_queue_length, station.queue_length)
    station.status = derive_status(station, rt, world.rules)


def step_stations(world: NetworkWorld) -> None:
    for station_id in sorted(world.stations):
        step_station(world, station_id)


__all__ = [
    "derive_status",
    "is_serving",
    "refresh_status",
    "step_station",
    "step_stations",
    "sync_chargers",
]
