"""Tests for the Open Charge Map and weather adapters."""

from __future__ import annotations

import numpy as np
import pytest

from swapnet_sim.adapters import adapt_ocm_stations, weather_from_wmo
from swapnet_sim.adapters.open_charge_map import OCMRecord, adapt_ocm_station
from swapnet_sim.adapters.weather import classify_wmo, temperature_multiplier
from swapnet_sim.models import StationStatus


def _ocm(ocm_id: int = 101, lat: float = 28.6139, lng: float = 77.2090, **extra) -> dict:
    record = {
        "ID": ocm_id,
        "AddressInfo": {
            "Title": "Tata Power EZ Charge",
            "AddressLine1": "Janpath Road",
            "Town": "New Delhi",
            "StateOrProvince": "Delhi",
            "Latitude": lat,
            "Longitude": lng,
        },
        "NumberOfPoints": 6,
        "Connections": [{"PowerKW": 7.4, "Quantity": 4}, {"PowerKW": 50.0, "Quantity": 2}],
        "OperatorInfo": {"Title": "Tata Power"},
        "StatusType": {"IsOperational": True},
        "UsageCost": "₹18/kWh",
    }
    record.update(extra)
    return record


# ═══════════════════════════════════════════════════════════════════════════
# Open Charge Map
# ═══════════════════════════════════════════════════════════════════════════

class TestOpenChargeMap:

    def test_basic_conversion(self):
        (station,) = adapt_ocm_stations([_ocm()], rng=np.random.default_rng(0))
        assert station.id == "real-station-101"
        assert station.name == "Tata Power EZ Charge"
        assert station.location == "New Delhi, Delhi"
        assert station.chargers == 6
        assert station.active_chargers == 6
        assert station.bays == 30
        assert station.coverage_radius == 3.0
        assert station.max_power_kw == 50.0
        assert station.operator == "Tata Power"
        assert station.is_real_station
        assert station.status is StationStatus.OPERATIONAL

    def test_synthesised_inventory_in_range(self):
        for seed in range(20):
            (s,) = adapt_ocm_stations([_ocm()], rng=np.random.default_rng(seed))
            assert 24 <= s.inventory_cap <= 33
            assert s.inventory_cap * 0.5 - 1 <= s.current_inventory <= s.inventory_cap * 0.9
            assert s.charging_batteries == min(s.chargers, s.inventory_cap - s.current_inventory)

    def test_same_seed_same_stations(self):
        records = [_ocm(i, lat=28.5 + i / 100) for i in range(5)]
        a = adapt_ocm_stations(records, rng=np.random.default_rng(3))
        b = adapt_ocm_stations(records, rng=np.random.default_rng(3))
        assert [s.model_dump() for s in a] == [s.model_dump() for s in b]

    def test_chargers_from_connections(self):
        record = OCMRecord.model_validate(_ocm(NumberOfPoints=None))
        assert adapt_ocm_station(record, np.random.default_rng(0)).chargers == 6

    def test_connection_without_quantity_counts_once(self):
        record = OCMRecord.model_validate(_ocm(NumberOfPoints=None, Connections=[{"PowerKW": 3.3}] * 3))
        assert adapt_ocm_station(record, np.random.default_rng(0)).chargers == 3

    def test_random_chargers_without_data(self):
        record = OCMRecord.model_validate(_ocm(NumberOfPoints=None, Connections=None))
        station = adapt_ocm_station(record, np.random.default_rng(0))
        assert 4 <= station.chargers <= 9
        assert station.max_power_kw is None

    @pytest.mark.parametrize("points, radius", [(12, 4.0), (10, 4.0), (6, 3.0), (5, 2.0)])
    def test_coverage_radius_bands(self, points, radius):
        (s,) = adapt_ocm_stations([_ocm(NumberOfPoints=points)], rng=np.random.default_rng(0))
        assert s.coverage_radius == radius

    def test_non_operational_is_offline(self):
        (s,) = adapt_ocm_stations(
            [_ocm(StatusType={"IsOperational": False})], rng=np.random.default_rng(0),
        )
        assert s.status is StationStatus.OFFLINE
        assert s.active_chargers == 0

    def test_long_name_truncated(self):
        address = _ocm()["AddressInfo"] | {"Title": "A" * 40}
        (s,) = adapt_ocm_stations([_ocm(AddressInfo=address)], rng=np.random.default_rng(0))
        assert s.name == "A" * 30 + "..."

    def test_missing_town_falls_back_to_region(self):
        address = _ocm()["AddressInfo"] | {"Town": None, "StateOrProvince": None}
        (s,) = adapt_ocm_stations([_ocm(AddressInfo=address)], rng=np.random.default_rng(0))
        assert s.location == "Delhi NCR"

    def test_out_of_bounds_dropped(self):
        records = [_ocm(1), _ocm(2, lat=19.07, lng=72.87)]  # Mumbai
        assert [s.id for s in adapt_ocm_stations(records, rng=np.random.default_rng(0))] == [
            "real-station-1",
        ]

    def test_missing_coordinates_dropped(self):
        address = _ocm()["AddressInfo"] | {"Latitude": None}
        assert adapt_ocm_stations([_ocm(AddressInfo=address)], rng=np.random.default_rng(0)) == []

    def test_malformed_record_skipped(self, caplog):
        records = [{"AddressInfo": {"Title": "no id"}}, _ocm(7)]
        with caplog.at_level("WARNING"):
            stations = adapt_ocm_stations(records, rng=np.random.default_rng(0))
        assert [s.id for s in stations] == ["real-station-7"]
        assert "malformed" in caplog.text

    def test_duplicate_ids_kept_once(self):
        stations = adapt_ocm_stations([_ocm(5), _ocm(5)], rng=np.random.default_rng(0))
        assert len(stations) == 1


# ═══════════════════════════════════════════════════════════════════════════
# Weather
# ═══════════════════════════════════════════════════════════════════════════

class TestWeather:

    @pytest.mark.parametrize("code, condition, multiplier", [
        (0, "clear", 1.0),
        (2, "cloudy", 1.0),
        (45, "fog", 1.1),
        (53, "drizzle", 1.15),
        (63, "rain", 1.3),
        (81, "rain_showers", 1.35),
        (95, "thunderstorm", 1.5),
        (99, "thunderstorm_hail", 1.5),
        (150, "unknown", 1.0),
        (-1, "unknown", 1.0),
    ])
    def test_wmo_bands(self, code, condition, multiplier):
        assert classify_wmo(code)[0] == condition
        assert classify_wmo(code)[2] == multiplier

    @pytest.mark.parametrize("temp, multiplier", [
        (46.0, 1.3), (41.0, 1.2), (36.0, 1.1), (25.0, 1.0), (4.0, 1.15),
    ])
    def test_temperature_bands(self, temp, multiplier):
        assert temperature_multiplier(temp) == multiplier

    def test_larger_effect_wins(self):
        heatwave = weather_from_wmo(0, temperature=44.0)
        assert heatwave.multiplier == 1.2
        storm = weather_from_wmo(95, temperature=41.0)
        assert storm.multiplier == 1.5
        assert storm.condition == "thunderstorm"

    def test_live_reading_not_fallback(self):
        w = weather_from_wmo(61, temperature=28.0)
        assert not w.is_fallback
        assert w.temperature == 28.0
