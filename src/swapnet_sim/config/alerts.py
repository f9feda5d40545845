"""Alert thresholds."""

from pydantic import BaseModel, Field


class AlertConfig(BaseModel):
    utilization_threshold: float = Field(
        default=0.85, gt=0, le=1.0,
        description="Scenario charger utilization above this raises a warning.",
    )
    lost_swap_surge: int = Field(
        default=3, ge=1,
        description="This many failed rides in a single tick raises a danger alert.",
    )
    max_alerts: int = Field(default=100, ge=1, description="Rolling alert buffer size")
