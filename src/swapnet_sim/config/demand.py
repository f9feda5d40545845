"""Demand model settings — arrival intensity and new-driver sampling."""

from pydantic import BaseModel, Field, field_validator

DEFAULT_HOURLY_CURVE: list[float] = [
    0.15, 0.10, 0.08, 0.08, 0.12, 0.25,   # 00–05
    0.45, 0.75, 0.95, 1.00, 0.85, 0.70,   # 06–11
    0.65, 0.60, 0.60, 0.65, 0.80, 0.95,   # 12–17
    1.00, 0.90, 0.70, 0.50, 0.35, 0.22,   # 18–23
]
"""Relative demand by hour of day (1.0 = peak).  Morning and evening commute peaks."""


class DemandConfig(BaseModel):
    """Arrival intensity λ(t) and the shape of new drivers.

    λ per minute = ``hourly_curve[hour] × peak_arrivals_per_hour / 60``
    × weather multiplier × demand shift × price effect × growth, where
    growth = ``growth_factor × (1 + daily_growth_rate)^(day − 1)``.
    Arrivals per tick are Poisson(λ), capped at ``max_arrivals_per_tick``.
    """

    hourly_curve: list[float] = Field(
        default_factory=lambda: list(DEFAULT_HOURLY_CURVE),
        description="24 relative demand weights, index = hour of day.",
    )
    peak_arrivals_per_hour: float = Field(
        default=30.0, ge=0,
        description="Network-wide arrivals per hour when the curve is at 1.0.",
    )
    growth_factor: float = Field(default=1.0, ge=0, description="Static demand scale")
    daily_growth_rate: float = Field(
        default=0.0, ge=-0.5, le=1.0,
        description="Compound growth per simulated day, e.g. 0.02 = +2%/day.",
    )
    max_arrivals_per_tick: int = Field(default=25, ge=0, description="Hard cap on spawns per minute")
    placement_spread: float = Field(
        default=0.5, gt=0, le=3.0,
        description="Std-dev of spawn offset from the anchor station, in units of its coverage radius.",
    )
    battery_beta_a: float = Field(default=2.0, gt=0, description="Beta(a, b) shape for initial SoC")
    battery_beta_b: float = Field(default=4.0, gt=0, description="Beta(a, b) shape for initial SoC")
    battery_min_pct: float = Field(default=5.0, ge=0, le=100, description="Lowest initial SoC (%)")
    battery_max_pct: float = Field(default=45.0, ge=0, le=100, description="Highest initial SoC (%)")

    @field_validator("hourly_curve")
    @classmethod
    def _twenty_four_hours(cls, v: list[float]) -> list[float]:
        if len(v) != 24:
            raise ValueError(f"hourly_curve needs 24 values, got {len(v)}")
        if any(w < 0 for w in v):
            raise ValueError("hourly_curve weights must be non-negative")
        return v
