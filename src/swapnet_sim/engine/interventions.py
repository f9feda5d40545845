"""Intervention applier — timed scenario mutations with scheduled reverts.

Every intervention goes through two idempotent steps:

  apply   (activation_time ≤ now, not yet applied)
          captures the values it overwrites in ``iv.prior`` and stamps
          ``applied_at`` / ``revert_at``.
  revert  (applied, now ≥ revert_at)
          restores ``iv.prior`` and sets ``reverted``.

Working charger counts are never restored from a snapshot.  Outages and
charger faults live on the station runtime, and ``active_chargers`` is
recomputed from whatever is still in force, so overlapping emergencies can
end in any order.

Permanent interventions (no duration, and ``remove_station`` always) have
``revert_at = None``.  A target station that does not exist turns the
intervention into a no-op plus an ``info`` alert.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pydantic import ValidationError

from swapnet_sim.config.driver import DriverConfig
from swapnet_sim.config.station import StationRules
from swapnet_sim.engine.geo import geo_to_percent
from swapnet_sim.engine.recorder import AlertEmitter
from swapnet_sim.engine.station import refresh_status, sync_chargers
from swapnet_sim.engine.world import NetworkWorld
from swapnet_sim.models.enums import (
    AlertLevel,
    EmergencyType,
    InterventionType,
    StationStatus,
)
from swapnet_sim.models.network import Intervention, Station

logger = logging.getLogger(__name__)

MANUAL_FAILURE_KEY = "manual-failure"

POLICY_KEYS: dict[str, str] = {
    "overload_queue_threshold": "rules",
    "low_inventory_ratio": "rules",
    "max_queue_wait_minutes": "rules",
    "charge_duration_minutes": "rules",
    "max_search_radius_km": "driver_cfg",
    "max_reroutes": "driver_cfg",
    "detour_factor": "driver_cfg",
    "speed_km_per_min": "driver_cfg",
}
"""Policy parameters ``change_policy`` may set, and the world section owning each."""

_POLICY_MODELS = {"rules": StationRules, "driver_cfg": DriverConfig}

_EMERGENCY_STATUS: dict[EmergencyType, StationStatus] = {
    EmergencyType.FIRE: StationStatus.FIRE,
    EmergencyType.POWER_OUTAGE: StationStatus.POWER_OUTAGE,
    EmergencyType.OFFLINE: StationStatus.OFFLINE,
}


class InterventionApplier:
    """Applies and reverts interventions against the scenario world."""

    def __init__(self, alerts: AlertEmitter) -> None:
        self._alerts = alerts
        self._apply: dict[InterventionType, Callable[[NetworkWorld, Intervention], None]] = {
            InterventionType.ADD_STATION: self._apply_add_station,
            InterventionType.REMOVE_STATION: self._apply_remove_station,
            InterventionType.MODIFY_CHARGERS: self._apply_modify_chargers,
            InterventionType.CHANGE_POLICY: self._apply_change_policy,
            InterventionType.TRIGGER_EMERGENCY: self._apply_emergency,
            InterventionType.DEMAND_SHIFT: self._apply_demand_shift,
            InterventionType.PRICING_CHANGE: self._apply_pricing_change,
            InterventionType.SCHEDULE_MAINTENANCE: self._apply_maintenance,
        }
        self._revert: dict[InterventionType, Callable[[NetworkWorld, Intervention], None]] = {
            InterventionType.ADD_STATION: self._revert_add_station,
            InterventionType.REMOVE_STATION: self._revert_nothing,
            InterventionType.MODIFY_CHARGERS: self._revert_modify_chargers,
            InterventionType.CHANGE_POLICY: self._revert_change_policy,
            InterventionType.TRIGGER_EMERGENCY: self._revert_emergency,
            InterventionType.DEMAND_SHIFT: self._revert_demand_shift,
            InterventionType.PRICING_CHANGE: self._revert_pricing_change,
            InterventionType.SCHEDULE_MAINTENANCE: self._revert_maintenance,
        }

    # ── Scheduling ──────────────────────────────────────────────────────

    def tick(self, world: NetworkWorld, schedule: Iterable[Intervention]) -> None:
        """Apply what is due and revert what has expired, in schedule order."""
        for iv in schedule:
            if iv.applied_at is None:
                if iv.activation_time is None or iv.activation_time <= world.time:
                    self.apply(world, iv)
            elif not iv.reverted and iv.revert_at is not None and world.time >= iv.revert_at:
                self.revert(world, iv)

    def apply(self, world: NetworkWorld, iv: Intervention) -> None:
        if iv.applied_at is not None:
            return
        iv.applied_at = world.time
        iv.revert_at = self._revert_at(world, iv)
        self._apply[iv.type](world, iv)
        logger.debug("applied %s (%s) at t=%d, revert_at=%s", iv.id, iv.type.value, world.time, iv.revert_at)

    def revert(self, world: NetworkWorld, iv: Intervention) -> None:
        if not iv.is_active:
            return
        iv.reverted = True
        if not iv.prior.get("ignored"):
            self._revert[iv.type](world, iv)
        logger.debug("reverted %s (%s) at t=%d", iv.id, iv.type.value, world.time)

    @staticmethod
    def _revert_at(world: NetworkWorld, iv: Intervention) -> int | None:
        if iv.type is InterventionType.REMOVE_STATION:
            return None
        duration = iv.duration
        if duration is None and iv.type is InterventionType.SCHEDULE_MAINTENANCE:
            duration = world.rules.maintenance_minutes
        if duration is None:
            return None
        start = iv.activation_time if iv.activation_time is not None else world.time
        return start + duration

    # ── Helpers ─────────────────────────────────────────────────────────

    def _target(self, world: NetworkWorld, iv: Intervention) -> Station | None:
        station = world.station(iv.station_id)
        if station is None:
            iv.prior = {"ignored": True}
            self._alerts.emit(
                AlertLevel.INFO,
                f"Intervention {iv.id} ignored: unknown station {iv.station_id!r}",
                world.time,
            )
            logger.warning("intervention %s targets unknown station %r", iv.id, iv.station_id)
        return station

    @staticmethod
    def _number(iv: Intervention, default: float | None = None) -> float | None:
        if isinstance(iv.value, (int, float)):
            return float(iv.value)
        if isinstance(iv.value, str):
            try:
                return float(iv.value)
            except ValueError:
                return default
        return default

    # ── add_station ─────────────────────────────────────────────────────

    def _apply_add_station(self, world: NetworkWorld, iv: Intervention) -> None:
        if iv.position is None:
            iv.prior = {"ignored": True}
            self._alerts.emit(AlertLevel.INFO, f"Intervention {iv.id} ignored: no position given", world.time)
            return
        rules = world.rules
        station_id = iv.station_id or f"station-{iv.id}"
        if station_id in world.stations:
            iv.prior = {"ignored": True}
            self._alerts.emit(AlertLevel.INFO, f"Intervention {iv.id} ignored: {station_id} already exists", world.time)
            return
        try:
            chargers = int(iv.params.get("chargers", rules.new_station_chargers))
            cap = int(iv.params.get("inventory_cap", rules.new_station_inventory_cap))
            inventory = min(cap, int(iv.params.get("inventory", rules.new_station_inventory)))
            station = Station(
                id=station_id,
                name=str(iv.params.get("name", f"New Station {iv.id}")),
                position=geo_to_percent(iv.position.lat, iv.position.lng),
                geo_position=iv.position,
                chargers=chargers,
                active_chargers=chargers,
                bays=chargers * 5,
                inventory_cap=cap,
                current_inventory=inventory,
                coverage_radius=rules.new_station_coverage_radius,
            )
        except ValueError:  # includes pydantic ValidationError
            iv.prior = {"ignored": True}
            self._alerts.emit(AlertLevel.INFO, f"Intervention {iv.id} ignored: invalid station parameters", world.time)
            return
        iv.station_id = station_id
        world.add_station(station)
        refresh_status(world, station_id)
        self._alerts.emit(AlertLevel.INFO, f"{station.name} opened with {chargers} chargers", world.time, station_id)

    def _revert_add_station(self, world: NetworkWorld, iv: Intervention) -> None:
        if iv.station_id in world.stations:
            world.runtime[iv.station_id].push_override(iv.id, StationStatus.OFFLINE)
            sync_chargers(world, iv.station_id)
            refresh_status(world, iv.station_id)

    # ── remove_station ──────────────────────────────────────────────────

    def _apply_remove_station(self, world: NetworkWorld, iv: Intervention) -> None:
        station = self._target(world, iv)
        if station is None:
            return
        world.runtime[station.id].push_override(iv.id, StationStatus.OFFLINE)
        sync_chargers(world, station.id)
        refresh_status(world, station.id)
        self._alerts.emit(AlertLevel.WARNING, f"{station.name} removed from the network", world.time, station.id)

    def _revert_nothing(self, world: NetworkWorld, iv: Intervention) -> None:
        return None

    # ── modify_chargers ─────────────────────────────────────────────────

    def _apply_modify_chargers(self, world: NetworkWorld, iv: Intervention) -> None:
        station = self._target(world, iv)
        if station is None:
            return
        count = self._number(iv)
        if count is None or count < 0:
            iv.prior = {"ignored": True}
            self._alerts.emit(AlertLevel.INFO, f"Intervention {iv.id} ignored: invalid charger count", world.time)
            return
        rt = world.runtime[station.id]
        iv.prior = {"chargers": station.chargers, "out_of_service": rt.out_of_service}
        station.chargers = int(count)
        rt.out_of_service = 0
        sync_chargers(world, station.id)
        refresh_status(world, station.id)

    def _revert_modify_chargers(self, world: NetworkWorld, iv: Intervention) -> None:
        station = world.station(iv.station_id)
        if station is None:
            return
        station.chargers = iv.prior["chargers"]
        world.runtime[station.id].out_of_service = iv.prior["out_of_service"]
        sync_chargers(world, station.id)
        refresh_status(world, station.id)

    # ── change_policy ───────────────────────────────────────────────────

    def _apply_change_policy(self, world: NetworkWorld, iv: Intervention) -> None:
        unknown = sorted(k for k in iv.params if k not in POLICY_KEYS)
        if unknown:
            self._alerts.emit(
                AlertLevel.INFO, f"Intervention {iv.id}: unknown policy keys {', '.join(unknown)}", world.time,
            )

        prior: dict[str, object] = {}
        for section, model in _POLICY_MODELS.items():
            updates = {k: v for k, v in iv.params.items() if POLICY_KEYS.get(k) == section}
            if not updates:
                continue
            current = getattr(world, section)
            try:
                validated = model.model_validate({**current.model_dump(), **updates})
            except ValidationError as exc:
                self._alerts.emit(
                    AlertLevel.INFO, f"Intervention {iv.id}: rejected {section} policy ({exc.error_count()} errors)",
                    world.time,
                )
                continue
            for key in updates:
                prior[key] = getattr(current, key)
            setattr(world, section, validated)
        iv.prior = prior
        for station_id in world.stations:
            refresh_status(world, station_id)

    def _revert_change_policy(self, world: NetworkWorld, iv: Intervention) -> None:
        for key, value in iv.prior.items():
            setattr(getattr(world, POLICY_KEYS[key]), key, value)
        for station_id in world.stations:
            refresh_status(world, station_id)

    # ── trigger_emergency ───────────────────────────────────────────────

    def _apply_emergency(self, world: NetworkWorld, iv: Intervention) -> None:
        station = self._target(world, iv)
        if station is None:
            return
        kind = iv.emergency_type or EmergencyType.OFFLINE
        rt = world.runtime[station.id]
        world.emergency_events += 1
        iv.prior = {}

        if kind in _EMERGENCY_STATUS:
            rt.push_override(iv.id, _EMERGENCY_STATUS[kind])
            sync_chargers(world, station.id)
            level = AlertLevel.DANGER
            message = f"{kind.value.replace('_', ' ').title()} at {station.name}"
        elif kind is EmergencyType.CHARGER_FAILURE:
            rt.charger_faults.append(iv.id)
            sync_chargers(world, station.id)
            level = AlertLevel.WARNING
            message = f"Charger failure at {station.name}: {station.active_chargers} chargers working"
        elif kind is EmergencyType.NO_BATTERY:
            rt.depleted += station.current_inventory
            station.current_inventory = 0
            level = AlertLevel.DANGER
            message = f"{station.name} has run out of charged batteries"
        else:
            raise ValueError(f"unhandled emergency type {kind!r}")

        refresh_status(world, station.id)
        self._alerts.emit(level, message, world.time, station.id)

    def _revert_emergency(self, world: NetworkWorld, iv: Intervention) -> None:
        station = world.station(iv.station_id)
        if station is None:
            return
        rt = world.runtime[station.id]
        rt.drop_override(iv.id)
        if iv.id in rt.charger_faults:
            rt.charger_faults.remove(iv.id)
        sync_chargers(world, station.id)
        refresh_status(world, station.id)
        self._alerts.emit(AlertLevel.INFO, f"{station.name} recovered", world.time, station.id)

    # ── demand_shift / pricing_change ───────────────────────────────────

    def _apply_demand_shift(self, world: NetworkWorld, iv: Intervention) -> None:
        iv.prior = {"demand_shift": world.demand_shift}
        world.demand_shift = max(0.0, self._number(iv, 1.0))

    def _revert_demand_shift(self, world: NetworkWorld, iv: Intervention) -> None:
        world.demand_shift = iv.prior["demand_shift"]

    def _apply_pricing_change(self, world: NetworkWorld, iv: Intervention) -> None:
        multiplier = self._number(iv, 1.0)
        if multiplier <= 0:
            self._alerts.emit(AlertLevel.INFO, f"Intervention {iv.id} ignored: price multiplier must be > 0", world.time)
            iv.prior = {"ignored": True}
            return
        iv.prior = {"peak_multiplier": world.pricing.peak_multiplier}
        world.pricing.peak_multiplier = multiplier

    def _revert_pricing_change(self, world: NetworkWorld, iv: Intervention) -> None:
        world.pricing.peak_multiplier = iv.prior["peak_multiplier"]

    # ── schedule_maintenance ────────────────────────────────────────────

    def _apply_maintenance(self, world: NetworkWorld, iv: Intervention) -> None:
        station = self._target(world, iv)
        if station is None:
            return
        world.runtime[station.id].push_override(iv.id, StationStatus.MAINTENANCE)
        refresh_status(world, station.id)
        self._alerts.emit(AlertLevel.WARNING, f"{station.name} down for maintenance", world.time, station.id)

    def _revert_maintenance(self, world: NetworkWorld, iv: Intervention) -> None:
        if iv.station_id in world.stations:
            world.runtime[iv.station_id].drop_override(iv.id)
            refresh_status(world, iv.station_id)

    # ── Manual failure toggle ───────────────────────────────────────────

    def toggle_failure(self, world: NetworkWorld, station_id: str) -> bool:
        """Flip a manual ``offline`` failure on a station.  Returns the new failed state."""
        station = world.stations[station_id]
        rt = world.runtime[station_id]
        if rt.drop_override(MANUAL_FAILURE_KEY):
            sync_chargers(world, station_id)
            refresh_status(world, station_id)
            self._alerts.emit(AlertLevel.INFO, f"{station.name} restored", world.time, station_id)
            return False

        rt.push_override(MANUAL_FAILURE_KEY, StationStatus.OFFLINE)
        sync_chargers(world, station_id)
        refresh_status(world, station_id)
        self._alerts.emit(AlertLevel.DANGER, f"{station.name} failed", world.time, station_id)
        return True


__all__ = ["MANUAL_FAILURE_KEY", "POLICY_KEYS", "InterventionApplier"]
