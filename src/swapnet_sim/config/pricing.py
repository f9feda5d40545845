"""Pricing and running-cost inputs."""

from pydantic import BaseModel, Field


class PricingConfig(BaseModel):
    """Swap price and the demand response to price changes."""

    price_per_swap: float = Field(default=150.0, ge=0, description="Base swap price (₹)")
    peak_multiplier: float = Field(default=1.0, gt=0, description="Current price multiplier")
    demand_elasticity: float = Field(
        default=0.3, ge=0, le=2.0,
        description="Demand drop per unit of price increase: effect = 1 − (multiplier − 1) × elasticity.",
    )
    min_price_effect: float = Field(default=0.1, ge=0, le=1.0, description="Floor on the demand effect")

    @property
    def effective_price(self) -> float:
        return self.price_per_swap * self.peak_multiplier

    @property
    def demand_effect(self) -> float:
        return max(self.min_price_effect, 1.0 - (self.peak_multiplier - 1.0) * self.demand_elasticity)


class CostConfig(BaseModel):
    """Daily running-cost model for stations in service (₹/day)."""

    base_per_station: float = Field(default=5_000.0, ge=0, description="Rent, staff, auxiliary power")
    per_charger: float = Field(default=500.0, ge=0, description="Installed charger upkeep")
    per_inventory_slot: float = Field(default=100.0, ge=0, description="Battery holding cost")
    per_active_charger: float = Field(default=200.0, ge=0, description="Energy for working chargers")
