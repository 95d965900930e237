"""Pricing domain schemas - Pydantic models for validation"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

BookingFrequency = Literal[1, 2, 4, 8]
VALID_FREQUENCIES = (1, 2, 4, 8)


class PricingTierResponse(BaseModel):
    """Schema for a pricing tier"""

    id: str
    package_id: str
    area_min: int
    area_max: int
    required_staff: int
    estimated_hours: Optional[float] = None
    price_1_time: Optional[float] = None
    price_2_times: Optional[float] = None
    price_4_times: Optional[float] = None
    price_8_times: Optional[float] = None

    class Config:
        from_attributes = True


class PricingResult(BaseModel):
    """
    Combined pricing calculation.

    Callers must check ``found``: a price of 0 is also a valid business value.
    """

    price: float = 0
    required_staff: int = 1
    estimated_hours: Optional[float] = None
    tier: Optional[PricingTierResponse] = None
    found: bool = False


class PackageWithTiersResponse(BaseModel):
    """Package with its tiers and price range"""

    id: str
    name: str
    service_type: str
    pricing_model: str
    base_price: Optional[float] = None
    duration_minutes: Optional[int] = None
    is_active: bool
    tiers: list[PricingTierResponse] = Field(default_factory=list)
    tier_count: int = 0
    min_price: Optional[float] = None
    max_price: Optional[float] = None
