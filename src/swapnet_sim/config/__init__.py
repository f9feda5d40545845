"""Configuration models — engine, demand, station, driver, pricing and alert inputs."""

from swapnet_sim.config.alerts import AlertConfig
from swapnet_sim.config.demand import DemandConfig
from swapnet_sim.config.driver import DriverConfig
from swapnet_sim.config.pricing import CostConfig, PricingConfig
from swapnet_sim.config.station import StationRules
from swapnet_sim.config.scenario import EngineConfig, TimeSeriesConfig

__all__ = [
    "AlertConfig",
    "CostConfig",
    "DemandConfig",
    "DriverConfig",
    "EngineConfig",
    "PricingConfig",
    "StationRules",
    "TimeSeriesConfig",
]
