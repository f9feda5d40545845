"""Station operating rules — thresholds, charging and queueing parameters."""

from pydantic import BaseModel, Field


class StationRules(BaseModel):
    """Rules shared by every station in the network.

    ``low_inventory_ratio`` and ``overload_queue_threshold`` are the single
    authoritative status thresholds used by the engine.
    """

    low_inventory_ratio: float = Field(
        default=0.2, ge=0, le=1.0,
        description="inventory / cap below this → low_inventory",
    )
    overload_queue_threshold: int = Field(
        default=8, ge=0,
        description="Queue longer than this → overloaded; drivers will not pick the station.",
    )
    charge_duration_minutes: int = Field(default=40, ge=1, description="Time to recharge one battery")
    wait_time_ema_alpha: float = Field(
        default=0.2, gt=0, le=1.0,
        description="Weight of the newest wait in the station's rolling average.",
    )
    utilization_window_minutes: int = Field(default=60, ge=1, description="Rolling utilization window")
    throughput_window_minutes: int = Field(default=60, ge=1, description="Window for city throughput")
    max_queue_wait_minutes: int | None = Field(
        default=60, ge=1,
        description="Queued drivers give up after this many minutes.  None = infinite patience.",
    )
    maintenance_minutes: int = Field(
        default=120, ge=1,
        description="Duration of schedule_maintenance when the intervention has none.",
    )

    # --- Defaults for stations created by add_station ---
    new_station_chargers: int = Field(default=8, ge=0)
    new_station_inventory_cap: int = Field(default=30, ge=0)
    new_station_inventory: int = Field(default=25, ge=0)
    new_station_coverage_radius: float = Field(default=3.0, gt=0)
