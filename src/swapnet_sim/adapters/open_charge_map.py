"""Open Charge Map → ``Station`` conversion.

OCM lists real charging sites but knows nothing about swap inventory, so the
battery-side fields are synthesised from the charger count:

  inventory_cap      = chargers × 4 + U{0..9}
  current_inventory  = ⌊cap × U(0.5, 0.9)⌋
  charging_batteries = min(chargers, cap − inventory)
  coverage_radius    = 4 km (≥ 10 chargers), 3 km (≥ 6), else 2 km

Records outside the Delhi NCR bounding box, or without coordinates, are
dropped.  Pass a seeded ``numpy.random.Generator`` for reproducible output.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from swapnet_sim.engine.geo import DELHI_NCR_BOUNDS, Bounds, geo_to_percent
from swapnet_sim.models.enums import StationStatus
from swapnet_sim.models.network import GeoPosition, Station

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 30


# ═══════════════════════════════════════════════════════════════════════════
# OCM record shape (only the fields we read)
# ═══════════════════════════════════════════════════════════════════════════

class _OCMModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OCMAddress(_OCMModel):
    title: str = Field(default="", alias="Title")
    address_line1: str | None = Field(default=None, alias="AddressLine1")
    town: str | None = Field(default=None, alias="Town")
    state_or_province: str | None = Field(default=None, alias="StateOrProvince")
    latitude: float | None = Field(default=None, alias="Latitude")
    longitude: float | None = Field(default=None, alias="Longitude")


class OCMConnection(_OCMModel):
    power_kw: float | None = Field(default=None, alias="PowerKW")
    quantity: int | None = Field(default=None, alias="Quantity")


class OCMOperator(_OCMModel):
    title: str = Field(default="", alias="Title")


class OCMStatusType(_OCMModel):
    is_operational: bool | None = Field(default=None, alias="IsOperational")


class OCMRecord(_OCMModel):
    id: int = Field(alias="ID")
    address: OCMAddress = Field(default_factory=OCMAddress, alias="AddressInfo")
    number_of_points: int | None = Field(default=None, alias="NumberOfPoints")
    connections: list[OCMConnection] | None = Field(default=None, alias="Connections")
    operator: OCMOperator | None = Field(default=None, alias="OperatorInfo")
    status_type: OCMStatusType | None = Field(default=None, alias="StatusType")
    usage_cost: str | None = Field(default=None, alias="UsageCost")


# ═══════════════════════════════════════════════════════════════════════════
# Conversion
# ═══════════════════════════════════════════════════════════════════════════

def _charger_count(record: OCMRecord, rng: np.random.Generator) -> int:
    if record.number_of_points and record.number_of_points > 0:
        return record.number_of_points
    if record.connections:
        total = sum(c.quantity or 1 for c in record.connections)
        if total > 0:
            return total
    return int(rng.integers(4, 10))


def _coverage_radius(chargers: int) -> float:
    if chargers >= 10:
        return 4.0
    if chargers >= 6:
        return 3.0
    return 2.0


def _display_name(record: OCMRecord, index: int) -> str:
    name = record.address.title or (record.operator.title if record.operator else "") or f"Station {index + 1}"
    return name if len(name) <= MAX_NAME_LENGTH else name[:MAX_NAME_LENGTH] + "..."


def _max_power(record: OCMRecord) -> float | None:
    powers = [c.power_kw for c in record.connections or [] if c.power_kw is not None]
    return max(powers) if powers else None


def adapt_ocm_station(record: OCMRecord, rng: np.random.Generator, index: int = 0) -> Station:
    """Build one simulated ``Station`` from a parsed OCM record."""
    lat, lng = record.address.latitude, record.address.longitude
    chargers = _charger_count(record, rng)
    cap = chargers * 4 + int(rng.integers(0, 10))
    inventory = int(cap * (0.5 + rng.random() * 0.4))
    location = ", ".join(p for p in (record.address.town, record.address.state_or_province) if p) or "Delhi NCR"
    offline = record.status_type is not None and record.status_type.is_operational is False

    return Station(
        id=f"real-station-{record.id}",
        name=_display_name(record, index),
        location=location,
        position=geo_to_percent(lat, lng),
        geo_position=GeoPosition(lat=lat, lng=lng),
        chargers=chargers,
        active_chargers=0 if offline else chargers,
        bays=chargers * 5,
        inventory_cap=cap,
        current_inventory=inventory,
        charging_batteries=min(chargers, cap - inventory),
        status=StationStatus.OFFLINE if offline else StationStatus.OPERATIONAL,
        coverage_radius=_coverage_radius(chargers),
        address=record.address.address_line1,
        operator=record.operator.title if record.operator else None,
        usage_cost=record.usage_cost,
        max_power_kw=_max_power(record),
        is_real_station=True,
    )


def adapt_ocm_stations(
    records: list[dict[str, Any]],
    rng: np.random.Generator | None = None,
    bounds: Bounds = DELHI_NCR_BOUNDS,
) -> list[Station]:
    """Convert raw OCM JSON records into stations inside ``bounds``.

    Malformed records and records without coordinates are skipped with a
    warning rather than failing the whole batch.
    """
    rng = rng if rng is not None else np.random.default_rng()
    stations: list[Station] = []
    seen: set[str] = set()
    for index, raw in enumerate(records):
        try:
            record = OCMRecord.model_validate(raw)
        except ValidationError as exc:
            logger.warning("skipping malformed OCM record #%d: %s", index, exc.error_count())
            continue
        lat, lng = record.address.latitude, record.address.longitude
        if not lat or not lng or not bounds.contains(lat, lng):
            continue
        station = adapt_ocm_station(record, rng, index)
        if station.id in seen:
            continue
        seen.add(station.id)
        stations.append(station)
    logger.info("adapted %d of %d OCM records", len(stations), len(records))
    return stations


__all__ = ["OCMRecord", "adapt_ocm_station", "adapt_ocm_stations"]
