"""Pricing router - FastAPI endpoints for package pricing"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import PackageWithTiersResponse, PricingResult
from .service import PricingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing", tags=["Pricing"])


def get_pricing_service(db: Session = Depends(get_db)) -> PricingService:
    """Dependency injection for PricingService"""
    return PricingService(db)


@router.get("/packages/{package_id}", response_model=PackageWithTiersResponse)
async def get_package_with_tiers(
    package_id: str,
    service: PricingService = Depends(get_pricing_service),
):
    """Get a package with all its pricing tiers and price range"""
    return service.get_package_with_tiers(package_id)


@router.get("/packages/{package_id}/quote", response_model=PricingResult)
async def quote_package(
    package_id: str,
    area_sqm: float = Query(..., ge=0),
    frequency: int = Query(...),
    service: PricingService = Depends(get_pricing_service),
):
    """Resolve price and required staff for an area and frequency"""
    return service.calculate_pricing(package_id, area_sqm, frequency)
