"""Demand generator — arrival intensity and new-driver spawning.

Per tick (one simulated minute):
  1. λ = hourly_curve[hour] × peak_arrivals_per_hour / 60
         × weather multiplier × demand shift × price effect × growth
  2. arrivals ~ Poisson(λ), capped at ``max_arrivals_per_tick``
  3. each arrival is anchored on a station drawn uniformly from the stations
     still on the network (denser areas have more stations, so they attract
     more drivers) and placed at a Gaussian offset scaled by that station's
     coverage radius
  4. state of charge ~ Beta(a, b) rescaled to [battery_min_pct, battery_max_pct]

Weather flagged ``is_fallback`` goes through the same math; the multiplier
supplied by the caller is used as-is.
"""

from __future__ import annotations

from swapnet_sim.config.demand import DemandConfig
from swapnet_sim.engine.geo import geo_to_percent, offset_km
from swapnet_sim.engine.world import NetworkWorld
from swapnet_sim.models.enums import DriverStatus, StationStatus
from swapnet_sim.models.network import Driver, Station


def growth_multiplier(demand: DemandConfig, day: int) -> float:
    """Static growth factor compounded by the daily growth rate."""
    return demand.growth_factor * (1.0 + demand.daily_growth_rate) ** max(0, day - 1)


def arrival_intensity(world: NetworkWorld, demand: DemandConfig) -> float:
    """Expected arrivals during the current minute (λ ≥ 0)."""
    base_per_minute = demand.hourly_curve[world.hour] * demand.peak_arrivals_per_hour / 60.0
    lam = (
        base_per_minute
        * world.weather.multiplier
        * world.demand_shift
        * world.pricing.demand_effect
        * growth_multiplier(demand, world.day)
    )
    return max(0.0, lam)


def _spawn_anchors(world: NetworkWorld) -> list[Station]:
    return [s for s in world.stations.values() if s.status is not StationStatus.OFFLINE]


def generate_arrivals(world: NetworkWorld, demand: DemandConfig) -> list[Driver]:
    """Spawn this tick's new drivers into ``world`` (status ``seeking``).

    Returns the new drivers.  No stations on the network → no arrivals (there
    is nowhere to place them).
    """
    anchors = _spawn_anchors(world)
    lam = arrival_intensity(world, demand)
    count = int(world.rng.poisson(lam))
    count = min(count, demand.max_arrivals_per_tick)
    if count == 0 or not anchors:
        return []

    anchor_idx = world.rng.integers(0, len(anchors), size=count)
    offsets = world.rng.normal(0.0, 1.0, size=(count, 2))
    socs = world.rng.beta(demand.battery_beta_a, demand.battery_beta_b, size=count)
    low, high = sorted((demand.battery_min_pct, demand.battery_max_pct))

    spawned: list[Driver] = []
    for i in range(count):
        anchor = anchors[int(anchor_idx[i])]
        spread = anchor.coverage_radius * demand.placement_spread
        geo = offset_km(
            anchor.geo_position,
            east_km=float(offsets[i, 0]) * spread,
            north_km=float(offsets[i, 1]) * spread,
        )
        battery = round(low + float(socs[i]) * (high - low), 2)
        driver = Driver(
            id=world.next_driver_id(),
            position=geo_to_percent(geo.lat, geo.lng),
            geo_position=geo,
            origin_geo_position=geo,
            origin_station_id=anchor.id,
            battery_pct=battery,
            status=DriverStatus.SEEKING,
            spawned_at=world.time,
        )
        world.drivers[driver.id] = driver
        spawned.append(driver)

    world.total_arrivals += len(spawned)
    return spawned


__all__ = [
    "arrival_intensity",
    "generate_arrivals",
    "growth_multiplier",
]
