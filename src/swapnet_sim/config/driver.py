"""Driver behaviour — search radius, movement and rerouting limits."""

from pydantic import BaseModel, Field


class DriverConfig(BaseModel):
    """How drivers pick stations and move towards them."""

    max_search_radius_km: float = Field(default=10.0, gt=0, description="Stations further away are ignored")
    speed_km_per_min: float = Field(default=0.4, gt=0, description="Average urban speed (0.4 = 24 km/h)")
    detour_factor: float = Field(
        default=1.3, ge=1.0,
        description="Road distance / straight-line distance when no routing matrix is available.",
    )
    drain_pct_per_km: float = Field(default=1.2, gt=0, description="SoC consumed per km driven (%)")
    max_reroutes: int = Field(default=2, ge=0, description="Reroutes allowed before the driver gives up")
