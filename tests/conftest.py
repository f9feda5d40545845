"""Shared test fixtures — small Delhi networks, drivers and engine configs."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pytest

from swapnet_sim.config import DemandConfig, EngineConfig
from swapnet_sim.engine.geo import geo_to_percent, offset_km
from swapnet_sim.engine.world import NetworkWorld
from swapnet_sim.models import Driver, DriverStatus, GeoPosition, Station

CONNAUGHT_PLACE = GeoPosition(lat=28.6315, lng=77.2167)


@pytest.fixture
def station_factory() -> Callable[..., Station]:
    """Build a station ``east_km`` / ``north_km`` away from Connaught Place."""

    def make(
        station_id: str = "s1",
        east_km: float = 0.0,
        north_km: float = 0.0,
        **overrides,
    ) -> Station:
        geo = offset_km(CONNAUGHT_PLACE, east_km=east_km, north_km=north_km)
        fields = dict(
            id=station_id,
            name=f"Station {station_id}",
            position=geo_to_percent(geo.lat, geo.lng),
            geo_position=geo,
            chargers=4,
            active_chargers=4,
            bays=20,
            inventory_cap=20,
            current_inventory=15,
            coverage_radius=3.0,
        )
        fields.update(overrides)
        return Station(**fields)

    return make


@pytest.fixture
def driver_factory() -> Callable[..., Driver]:
    def make(
        driver_id: str = "d1",
        east_km: float = 0.0,
        north_km: float = 0.0,
        battery_pct: float = 40.0,
        **overrides,
    ) -> Driver:
        geo = offset_km(CONNAUGHT_PLACE, east_km=east_km, north_km=north_km)
        fields = dict(
            id=driver_id,
            position=geo_to_percent(geo.lat, geo.lng),
            geo_position=geo,
            origin_geo_position=geo,
            battery_pct=battery_pct,
            status=DriverStatus.SEEKING,
        )
        fields.update(overrides)
        return Driver(**fields)

    return make


@pytest.fixture
def config() -> EngineConfig:
    """Default engine settings with a fixed seed."""
    return EngineConfig(random_seed=42)


@pytest.fixture
def quiet_config() -> EngineConfig:
    """No spontaneous arrivals — tests place every driver by hand."""
    return EngineConfig(random_seed=7, demand=DemandConfig(peak_arrivals_per_hour=0))


@pytest.fixture
def world(quiet_config, station_factory) -> NetworkWorld:
    """Two stations 2 km apart (s1 at Connaught Place, s2 to the east), 08:00 day 1."""
    stations = [
        station_factory("s1"),
        station_factory("s2", east_km=2.0),
    ]
    return NetworkWorld(stations, quiet_config, np.random.default_rng(1), time=480)


@pytest.fixture
def enqueue(world) -> Callable[..., list[Driver]]:
    """Put ``n`` swapping drivers into a station queue of ``world``."""

    def put(station_id: str, n: int, wait_time: int = 0) -> list[Driver]:
        station = world.stations[station_id]
        rt = world.runtime[station_id]
        drivers = []
        for _ in range(n):
            driver = Driver(
                id=world.next_driver_id(),
                position=station.position,
                geo_position=station.geo_position,
                origin_geo_position=station.geo_position,
                origin_station_id=station_id,
                target_station_id=station_id,
                battery_pct=10.0,
                status=DriverStatus.SWAPPING,
                wait_time=wait_time,
            )
            world.drivers[driver.id] = driver
            rt.queue.append(driver.id)
            drivers.append(driver)
        station.queue_length = len(rt.queue)
        return drivers

    return put
