"""Top-level engine configuration — bundles every config section."""

from pydantic import BaseModel, Field

from swapnet_sim.config.alerts import AlertConfig
from swapnet_sim.config.demand import DemandConfig
from swapnet_sim.config.driver import DriverConfig
from swapnet_sim.config.pricing import CostConfig, PricingConfig
from swapnet_sim.config.station import StationRules


class TimeSeriesConfig(BaseModel):
    sample_interval_minutes: int = Field(default=5, ge=1, description="Minutes between KPI samples")
    max_points: int = Field(default=288, ge=1, description="Rolling buffer size (288 × 5 min = 24 h)")


class EngineConfig(BaseModel):
    """Complete input bundle for one engine instance."""

    start_time: int = Field(default=480, ge=0, description="Simulation minute at reset (480 = 08:00, day 1)")
    random_seed: int | None = Field(
        default=None,
        description="Seed for the random source.  None = drawn from OS entropy once per engine.",
    )

    demand: DemandConfig = Field(default_factory=DemandConfig)
    station: StationRules = Field(default_factory=StationRules)
    driver: DriverConfig = Field(default_factory=DriverConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    cost: CostConfig = Field(default_factory=CostConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    time_series: TimeSeriesConfig = Field(default_factory=TimeSeriesConfig)
