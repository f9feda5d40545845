"""Engine — per-minute network simulation on a baseline and a scenario track."""

from swapnet_sim.engine.demand import arrival_intensity, generate_arrivals
from swapnet_sim.engine.driver import select_station, step_drivers
from swapnet_sim.engine.interventions import InterventionApplier
from swapnet_sim.engine.kpi import TimeSeriesBuffer, compute_kpis
from swapnet_sim.engine.recorder import AlertEmitter, record_failure
from swapnet_sim.engine.simulation import SimulationEngine
from swapnet_sim.engine.station import derive_status, step_stations
from swapnet_sim.engine.world import NetworkWorld, StationRuntime

__all__ = [
    "SimulationEngine",
    "NetworkWorld",
    "StationRuntime",
    # Components
    "arrival_intensity",
    "generate_arrivals",
    "select_station",
    "step_drivers",
    "derive_status",
    "step_stations",
    "InterventionApplier",
    "compute_kpis",
    "TimeSeriesBuffer",
    "AlertEmitter",
    "record_failure",
]
