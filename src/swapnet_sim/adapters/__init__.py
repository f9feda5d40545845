"""Adapters — turn external feeds into engine inputs."""

from swapnet_sim.adapters.open_charge_map import adapt_ocm_stations
from swapnet_sim.adapters.weather import weather_from_wmo

__all__ = ["adapt_ocm_stations", "weather_from_wmo"]
