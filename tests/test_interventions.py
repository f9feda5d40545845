"""Tests for the intervention applier — apply, scheduled revert, idempotence."""

from __future__ import annotations

import pytest

from swapnet_sim.config import AlertConfig
from swapnet_sim.engine.interventions import InterventionApplier
from swapnet_sim.engine.recorder import AlertEmitter
from swapnet_sim.models import (
    AlertLevel,
    EmergencyType,
    GeoPosition,
    Intervention,
    InterventionType,
    StationStatus,
)


@pytest.fixture
def alerts() -> AlertEmitter:
    return AlertEmitter(AlertConfig())


@pytest.fixture
def applier(alerts) -> InterventionApplier:
    return InterventionApplier(alerts)


def _emergency(kind: EmergencyType, **kw) -> Intervention:
    fields = dict(
        id=f"em-{kind.value}", type=InterventionType.TRIGGER_EMERGENCY,
        station_id="s1", emergency_type=kind,
    )
    fields.update(kw)
    return Intervention(**fields)


# ═══════════════════════════════════════════════════════════════════════════
# Scheduling
# ═══════════════════════════════════════════════════════════════════════════

class TestSchedule:

    def test_waits_for_activation_time(self, world, applier):
        iv = _emergency(EmergencyType.FIRE, activation_time=490, duration=30)
        applier.tick(world, [iv])
        assert iv.applied_at is None
        world.time = 490
        applier.tick(world, [iv])
        assert iv.applied_at == 490
        assert iv.revert_at == 520

    def test_reverts_at_window_end(self, world, applier):
        iv = _emergency(EmergencyType.FIRE, activation_time=480, duration=30)
        applier.tick(world, [iv])
        world.time = 519
        applier.tick(world, [iv])
        assert iv.is_active
        world.time = 520
        applier.tick(world, [iv])
        assert iv.reverted
        assert not iv.is_active

    def test_no_activation_time_means_now(self, world, applier):
        iv = Intervention(id="shift", type=InterventionType.DEMAND_SHIFT, value=2.0, duration=10)
        world.time = 600
        applier.tick(world, [iv])
        assert iv.applied_at == 600
        assert iv.revert_at == 610

    def test_permanent_without_duration(self, world, applier):
        iv = Intervention(id="shift", type=InterventionType.DEMAND_SHIFT, value=2.0)
        applier.apply(world, iv)
        assert iv.revert_at is None

    def test_apply_is_idempotent(self, world, applier):
        iv = _emergency(EmergencyType.FIRE)
        applier.apply(world, iv)
        applier.apply(world, iv)
        assert world.emergency_events == 1

    def test_revert_is_idempotent(self, world, applier):
        iv = _emergency(EmergencyType.CHARGER_FAILURE, duration=5)
        applier.apply(world, iv)
        applier.revert(world, iv)
        world.stations["s1"].active_chargers = 1
        applier.revert(world, iv)
        assert world.stations["s1"].active_chargers == 1

    def test_fresh_copy_clears_revert_record(self, world, applier):
        iv = _emergency(EmergencyType.FIRE, duration=5)
        applier.apply(world, iv)
        copy = iv.fresh()
        assert copy.applied_at is None
        assert copy.prior == {}
        assert iv.applied_at is not None


# ═══════════════════════════════════════════════════════════════════════════
# Emergencies
# ═══════════════════════════════════════════════════════════════════════════

class TestEmergencies:

    @pytest.mark.parametrize("kind, status", [
        (EmergencyType.FIRE, StationStatus.FIRE),
        (EmergencyType.POWER_OUTAGE, StationStatus.POWER_OUTAGE),
        (EmergencyType.OFFLINE, StationStatus.OFFLINE),
    ])
    def test_forced_down(self, world, applier, alerts, kind, status):
        iv = _emergency(kind, duration=30)
        applier.apply(world, iv)
        s1 = world.stations["s1"]
        assert s1.status is status
        assert s1.active_chargers == 0
        assert world.emergency_events == 1
        assert alerts.alerts[-1].level is AlertLevel.DANGER
        assert alerts.alerts[-1].station_id == "s1"

        applier.revert(world, iv)
        assert s1.status is StationStatus.OPERATIONAL
        assert s1.active_chargers == 4

    def test_charger_failure_halves(self, world, applier):
        iv = _emergency(EmergencyType.CHARGER_FAILURE, duration=30)
        applier.apply(world, iv)
        assert world.stations["s1"].active_chargers == 2
        applier.revert(world, iv)
        assert world.stations["s1"].active_chargers == 4

    def test_no_battery_moves_stock_to_charging(self, world, applier):
        iv = _emergency(EmergencyType.NO_BATTERY)
        applier.apply(world, iv)
        assert world.stations["s1"].current_inventory == 0
        assert world.runtime["s1"].depleted == 15
        assert world.stations["s1"].status is StationStatus.OVERLOADED

    def test_overlapping_outages(self, world, applier):
        fire = _emergency(EmergencyType.FIRE, id="fire", duration=30)
        outage = _emergency(EmergencyType.POWER_OUTAGE, id="outage", duration=60)
        applier.apply(world, fire)
        applier.apply(world, outage)

        applier.revert(world, fire)
        s1 = world.stations["s1"]
        assert s1.status is StationStatus.POWER_OUTAGE
        assert s1.active_chargers == 0

        applier.revert(world, outage)
        assert s1.status is StationStatus.OPERATIONAL
        assert s1.active_chargers == 4

    @pytest.mark.parametrize("first_out", ["fault", "fire"])
    def test_charger_failure_under_fire_recovers_fully(self, world, applier, first_out):
        fault = _emergency(EmergencyType.CHARGER_FAILURE, id="fault", duration=10)
        fire = _emergency(EmergencyType.FIRE, id="fire", duration=30)
        applier.apply(world, fault)
        applier.apply(world, fire)
        s1 = world.stations["s1"]
        assert s1.active_chargers == 0

        order = [fault, fire] if first_out == "fault" else [fire, fault]
        applier.revert(world, order[0])
        assert s1.active_chargers == (0 if first_out == "fault" else 2)
        applier.revert(world, order[1])
        assert s1.status is StationStatus.OPERATIONAL
        assert (s1.active_chargers, s1.chargers) == (4, 4)

    def test_fault_applied_during_outage_halves_after_it(self, world, applier):
        fire = _emergency(EmergencyType.FIRE, id="fire", duration=30)
        fault = _emergency(EmergencyType.CHARGER_FAILURE, id="fault", duration=60)
        applier.apply(world, fire)
        applier.apply(world, fault)
        applier.revert(world, fire)
        assert world.stations["s1"].active_chargers == 2

    def test_permanent_charger_change_survives_fire(self, world, applier):
        fire = _emergency(EmergencyType.FIRE, id="fire", duration=30)
        applier.apply(world, fire)
        applier.apply(world, Intervention(
            id="mod", type=InterventionType.MODIFY_CHARGERS, station_id="s1", value=8,
        ))
        assert world.stations["s1"].active_chargers == 0

        applier.revert(world, fire)
        s1 = world.stations["s1"]
        assert (s1.chargers, s1.active_chargers) == (8, 8)

    def test_no_battery_end_is_announced(self, world, applier, alerts):
        iv = _emergency(EmergencyType.NO_BATTERY, duration=15)
        applier.apply(world, iv)
        applier.revert(world, iv)
        assert alerts.alerts[-1].level is AlertLevel.INFO
        assert alerts.alerts[-1].message == "Station s1 recovered"
        assert world.stations["s1"].status is StationStatus.OVERLOADED


# ═══════════════════════════════════════════════════════════════════════════
# Network changes
# ═══════════════════════════════════════════════════════════════════════════

class TestNetworkChanges:

    def test_add_station(self, world, applier):
        iv = Intervention(
            id="new", type=InterventionType.ADD_STATION,
            position=GeoPosition(lat=28.60, lng=77.20),
            params={"chargers": 6, "inventory_cap": 24, "name": "Pop-up"},
            duration=60,
        )
        applier.apply(world, iv)
        station = world.stations["station-new"]
        assert station.name == "Pop-up"
        assert station.chargers == 6
        assert station.inventory_cap == 24
        assert station.current_inventory == 24  # default stock clipped to cap
        assert "station-new" in world.runtime

        applier.revert(world, iv)
        assert station.status is StationStatus.OFFLINE

    def test_add_station_needs_position(self, world, applier, alerts):
        iv = Intervention(id="new", type=InterventionType.ADD_STATION)
        applier.apply(world, iv)
        assert set(world.stations) == {"s1", "s2"}
        assert alerts.alerts[-1].level is AlertLevel.INFO

    def test_remove_station_is_permanent(self, world, applier):
        iv = Intervention(id="rm", type=InterventionType.REMOVE_STATION, station_id="s2", duration=10)
        applier.apply(world, iv)
        assert world.stations["s2"].status is StationStatus.OFFLINE
        assert iv.revert_at is None

    def test_modify_chargers(self, world, applier):
        iv = Intervention(
            id="mod", type=InterventionType.MODIFY_CHARGERS, station_id="s1", value=10, duration=60,
        )
        applier.apply(world, iv)
        s1 = world.stations["s1"]
        assert (s1.chargers, s1.active_chargers) == (10, 10)
        applier.revert(world, iv)
        assert (s1.chargers, s1.active_chargers) == (4, 4)

    def test_station_supplied_with_broken_chargers_keeps_them_broken(self, world, applier, station_factory):
        world.add_station(station_factory("s3", north_km=1.0, active_chargers=3))
        iv = _emergency(EmergencyType.POWER_OUTAGE, station_id="s3", duration=5)
        applier.apply(world, iv)
        applier.revert(world, iv)
        assert world.stations["s3"].active_chargers == 3

    def test_schedule_maintenance_default_window(self, world, applier):
        iv = Intervention(id="mnt", type=InterventionType.SCHEDULE_MAINTENANCE, station_id="s1")
        applier.apply(world, iv)
        assert world.stations["s1"].status is StationStatus.MAINTENANCE
        assert iv.revert_at == world.time + 120
        applier.revert(world, iv)
        assert world.stations["s1"].status is StationStatus.OPERATIONAL

    def test_unknown_station_is_a_noop(self, world, applier, alerts):
        iv = _emergency(EmergencyType.FIRE, station_id="nope", duration=10)
        applier.apply(world, iv)
        assert world.emergency_events == 0
        assert alerts.alerts[-1].level is AlertLevel.INFO
        assert "nope" in alerts.alerts[-1].message
        applier.revert(world, iv)
        assert all(s.status is StationStatus.OPERATIONAL for s in world.stations.values())


# ═══════════════════════════════════════════════════════════════════════════
# Policy, demand and pricing
# ═══════════════════════════════════════════════════════════════════════════

class TestPolicy:

    def test_change_policy_applies_and_reverts(self, world, applier):
        iv = Intervention(
            id="pol", type=InterventionType.CHANGE_POLICY,
            params={"overload_queue_threshold": 3, "max_search_radius_km": 5.0},
            duration=30,
        )
        applier.apply(world, iv)
        assert world.rules.overload_queue_threshold == 3
        assert world.driver_cfg.max_search_radius_km == 5.0
        applier.revert(world, iv)
        assert world.rules.overload_queue_threshold == 8
        assert world.driver_cfg.max_search_radius_km == 10.0

    def test_policy_change_does_not_leak_into_config(self, world, applier):
        iv = Intervention(id="pol", type=InterventionType.CHANGE_POLICY, params={"max_reroutes": 0})
        applier.apply(world, iv)
        assert world.driver_cfg.max_reroutes == 0
        assert world.config.driver.max_reroutes == 2

    def test_unknown_policy_key_alerts(self, world, applier, alerts):
        iv = Intervention(id="pol", type=InterventionType.CHANGE_POLICY, params={"warp_speed": 9})
        applier.apply(world, iv)
        assert alerts.alerts[-1].level is AlertLevel.INFO
        assert "warp_speed" in alerts.alerts[-1].message

    def test_invalid_policy_value_rejected(self, world, applier, alerts):
        iv = Intervention(id="pol", type=InterventionType.CHANGE_POLICY, params={"low_inventory_ratio": 3.0})
        applier.apply(world, iv)
        assert world.rules.low_inventory_ratio == 0.2
        assert alerts.alerts[-1].level is AlertLevel.INFO

    def test_stricter_threshold_refreshes_status(self, world, applier, enqueue):
        enqueue("s1", 4)
        iv = Intervention(id="pol", type=InterventionType.CHANGE_POLICY, params={"overload_queue_threshold": 3})
        applier.apply(world, iv)
        assert world.stations["s1"].status is StationStatus.OVERLOADED

    def test_demand_shift_sets_not_stacks(self, world, applier):
        first = Intervention(id="a", type=InterventionType.DEMAND_SHIFT, value=2.0)
        second = Intervention(id="b", type=InterventionType.DEMAND_SHIFT, value=1.5, duration=10)
        applier.apply(world, first)
        applier.apply(world, second)
        assert world.demand_shift == 1.5
        applier.revert(world, second)
        assert world.demand_shift == 2.0

    def test_pricing_change(self, world, applier):
        iv = Intervention(id="px", type=InterventionType.PRICING_CHANGE, value=1.5, duration=10)
        applier.apply(world, iv)
        assert world.pricing.effective_price == pytest.approx(225.0)
        assert world.pricing.demand_effect == pytest.approx(0.85)
        applier.revert(world, iv)
        assert world.pricing.peak_multiplier == 1.0


# ═══════════════════════════════════════════════════════════════════════════
# Manual failure toggle
# ═══════════════════════════════════════════════════════════════════════════

class TestToggleFailure:

    def test_toggle_on_and_off(self, world, applier):
        assert applier.toggle_failure(world, "s1") is True
        s1 = world.stations["s1"]
        assert s1.status is StationStatus.OFFLINE
        assert s1.active_chargers == 0

        assert applier.toggle_failure(world, "s1") is False
        assert s1.status is StationStatus.OPERATIONAL
        assert s1.active_chargers == 4

    def test_toggle_off_keeps_other_outage(self, world, applier):
        applier.toggle_failure(world, "s1")
        applier.apply(world, _emergency(EmergencyType.FIRE))
        applier.toggle_failure(world, "s1")
        assert world.stations["s1"].status is StationStatus.FIRE
        assert world.stations["s1"].active_chargers == 0
