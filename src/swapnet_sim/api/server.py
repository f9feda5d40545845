"""FastAPI server — live control surface for the SwapNet simulator.

Run with:
    uvicorn swapnet_sim.api.server:create_app --factory --port 8000

Or:
    swapnet-api

The engine lives on ``app.state.engine``.  A background task on the same
event loop calls ``engine.step()`` every ``1 / speed`` seconds while the
engine is running; endpoints are ``async`` so they never race the ticker.

Endpoints:
    GET  /health                         — liveness probe
    GET  /                               — welcome + endpoint map
    GET  /state                          — full snapshot
    GET  /state/kpis                     — baseline vs scenario KPIs
    GET  /failed-rides                   — failed-ride log (newest last)
    GET  /alerts                         — rolling alert log
    GET  /config/schema                  — JSON Schema + current engine config
    POST /control/{start,pause,reset}    — clock control
    POST /control/step?ticks=n           — advance n minutes
    POST /control/speed                  — ticker speed multiplier
    POST /scenario                       — activate a scenario (+ interventions)
    POST /interventions                  — replace the intervention schedule
    PUT  /stations                       — replace the network
    PUT  /weather | /carbon | /routing   — external inputs
    POST /stations/{id}/toggle-failure   — manual failure on/off
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from swapnet_sim import __version__
from swapnet_sim.config.scenario import EngineConfig
from swapnet_sim.engine.interventions import MANUAL_FAILURE_KEY
from swapnet_sim.engine.simulation import SimulationEngine
from swapnet_sim.models.enums import ScenarioType
from swapnet_sim.models.network import (
    CarbonData,
    Intervention,
    RoutingMatrix,
    Station,
    WeatherData,
)
from swapnet_sim.models.results import (
    FailedRide,
    KPIMetrics,
    SimulationAlert,
    SimulationState,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Request / response models
# ═══════════════════════════════════════════════════════════════════════════

class SpeedRequest(BaseModel):
    speed: float = Field(gt=0, le=100, description="Simulated minutes per wall-clock second")


class ScenarioRequest(BaseModel):
    """Request body for /scenario."""
    type: ScenarioType = ScenarioType.BASELINE
    interventions: list[Intervention] = Field(
        default_factory=list,
        description="Interventions for the new scenario. "
                    "Example: [{'id': 'fire-1', 'type': 'trigger_emergency', 'station_id': 'station-cp', "
                    "'emergency_type': 'fire', 'duration': 60}]",
    )


class InterventionsRequest(BaseModel):
    interventions: list[Intervention] = Field(default_factory=list)


class KPIResponse(BaseModel):
    time: int
    baseline: KPIMetrics
    scenario: KPIMetrics
    delta: dict[str, float] = Field(description="scenario − baseline for every numeric KPI")


class ToggleResponse(BaseModel):
    station_id: str
    failed: bool


# ═══════════════════════════════════════════════════════════════════════════
# Ticker
# ═══════════════════════════════════════════════════════════════════════════

async def _run_ticker(app: FastAPI) -> None:
    while True:
        engine: SimulationEngine = app.state.engine
        await asyncio.sleep(1.0 / engine.speed)
        if engine.is_running:
            try:
                engine.step()
            except Exception:
                logger.exception("tick failed at t=%d; pausing", engine.world.time)
                engine.pause()


@contextlib.asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    task = asyncio.create_task(_run_ticker(app))
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def get_engine(request: Request) -> SimulationEngine:
    return request.app.state.engine


# ═══════════════════════════════════════════════════════════════════════════
# Endpoints
# ═══════════════════════════════════════════════════════════════════════════

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok"}


@router.get("/")
async def root():
    """API root — welcome message and where to start."""
    return {
        "name": "SwapNet Battery Swap Network Simulator API",
        "version": __version__,
        "start_here": "GET /state",
        "docs": "GET /docs (interactive Swagger UI)",
    }


@router.get("/state", response_model=SimulationState)
async def get_state(engine: SimulationEngine = Depends(get_engine)):
    return engine.get_state()


@router.get("/state/kpis", response_model=KPIResponse)
async def get_kpis(engine: SimulationEngine = Depends(get_engine)):
    baseline = engine.baseline_kpis
    scenario = engine.scenario_kpis
    base_dump = baseline.model_dump()
    delta = {
        k: round(v - base_dump[k], 4)
        for k, v in scenario.model_dump().items()
        if isinstance(v, (int, float))
    }
    return KPIResponse(time=engine.world.time, baseline=baseline, scenario=scenario, delta=delta)


@router.get("/failed-rides", response_model=list[FailedRide])
async def get_failed_rides(
    limit: int | None = Query(default=None, ge=1, description="Only the newest N rides"),
    engine: SimulationEngine = Depends(get_engine),
):
    rides = engine.world.failed_rides
    return rides[-limit:] if limit else list(rides)


@router.get("/alerts", response_model=list[SimulationAlert])
async def get_alerts(engine: SimulationEngine = Depends(get_engine)):
    return list(engine.alerts)


@router.get("/config/schema")
async def get_config_schema(engine: SimulationEngine = Depends(get_engine)):
    """JSON Schema for every engine setting, plus the values in use."""
    return {
        "schema": EngineConfig.model_json_schema(),
        "config": engine.config.model_dump(),
    }


@router.post("/control/start", response_model=SimulationState)
async def control_start(engine: SimulationEngine = Depends(get_engine)):
    engine.start()
    return engine.get_state()


@router.post("/control/pause", response_model=SimulationState)
async def control_pause(engine: SimulationEngine = Depends(get_engine)):
    engine.pause()
    return engine.get_state()


@router.post("/control/reset", response_model=SimulationState)
async def control_reset(engine: SimulationEngine = Depends(get_engine)):
    return engine.reset()


@router.post("/control/step", response_model=SimulationState)
async def control_step(
    ticks: int = Query(default=1, ge=1, le=1440, description="Simulated minutes to advance"),
    engine: SimulationEngine = Depends(get_engine),
):
    return engine.advance(ticks)


@router.post("/control/speed", response_model=SimulationState)
async def control_speed(req: SpeedRequest, engine: SimulationEngine = Depends(get_engine)):
    engine.set_speed(req.speed)
    return engine.get_state()


@router.post("/scenario", response_model=SimulationState)
async def set_scenario(req: ScenarioRequest, engine: SimulationEngine = Depends(get_engine)):
    return engine.set_scenario(req.type, req.interventions)


@router.post("/interventions", response_model=SimulationState)
async def apply_interventions(req: InterventionsRequest, engine: SimulationEngine = Depends(get_engine)):
    return engine.apply_interventions(req.interventions)


@router.put("/stations", response_model=SimulationState)
async def put_stations(stations: list[Station], engine: SimulationEngine = Depends(get_engine)):
    try:
        return engine.set_stations(stations)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.put("/weather", response_model=WeatherData)
async def put_weather(weather: WeatherData, engine: SimulationEngine = Depends(get_engine)):
    engine.set_weather(weather)
    return weather


@router.put("/carbon", response_model=CarbonData)
async def put_carbon(carbon: CarbonData, engine: SimulationEngine = Depends(get_engine)):
    engine.set_carbon(carbon)
    return carbon


@router.put("/routing")
async def put_routing(matrix: RoutingMatrix, engine: SimulationEngine = Depends(get_engine)):
    engine.set_routing_matrix(matrix)
    return {"stations": len(matrix.station_ids), "usable": matrix.usable}


@router.post("/stations/{station_id}/toggle-failure", response_model=ToggleResponse)
async def toggle_failure(station_id: str, engine: SimulationEngine = Depends(get_engine)):
    if not engine.toggle_station_failure(station_id):
        raise HTTPException(status_code=404, detail=f"Unknown station {station_id!r}")
    failed = any(key == MANUAL_FAILURE_KEY for key, _ in engine.world.runtime[station_id].overrides)
    return ToggleResponse(station_id=station_id, failed=failed)


# ═══════════════════════════════════════════════════════════════════════════
# App setup
# ═══════════════════════════════════════════════════════════════════════════

def create_app(engine: SimulationEngine | None = None, **engine_kwargs: Any) -> FastAPI:
    """Build an app around ``engine`` (a fresh default engine if omitted)."""
    app = FastAPI(
        title="SwapNet Battery Swap Network Simulator API",
        version=__version__,
        description=(
            "Live digital twin of a city battery-swap network. Step the clock, "
            "activate scenarios and interventions, and compare scenario KPIs "
            "against the untouched baseline."
        ),
        lifespan=_lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.engine = engine if engine is not None else SimulationEngine(**engine_kwargs)
    app.include_router(router)
    return app


# ═══════════════════════════════════════════════════════════════════════════
# CLI entry point
# ═══════════════════════════════════════════════════════════════════════════

def main():
    """Run the API server."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "swapnet_sim.api.server:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )


if __name__ == "__main__":
    main()
