"""Pricing service - Tiered pricing resolution"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import InvalidRequest, NotFound
from ...models import PricingTier
from ...shared.storage import storage_errors
from .repository import PricingRepository
from .schemas import VALID_FREQUENCIES, PackageWithTiersResponse, PricingResult, PricingTierResponse

logger = logging.getLogger(__name__)

_PRICE_FIELDS = {
    1: "price_1_time",
    2: "price_2_times",
    4: "price_4_times",
    8: "price_8_times",
}


def validate_frequency(frequency) -> int:
    if frequency not in VALID_FREQUENCIES:
        raise InvalidRequest(
            f"Invalid frequency: {frequency}. Must be one of {list(VALID_FREQUENCIES)}",
            frequency=frequency,
        )
    return int(frequency)


def price_for_frequency(tier: PricingTier, frequency: int) -> Optional[float]:
    """Price slot of a tier for the given frequency, or None if not offered"""
    field = _PRICE_FIELDS.get(frequency)
    if field is None:
        return None
    return getattr(tier, field)


def available_frequencies(tier: PricingTier) -> set[int]:
    """Frequencies with a non-null price on this tier"""
    return {freq for freq, field in _PRICE_FIELDS.items() if getattr(tier, field) is not None}


def pick_tier(tiers: list[PricingTier], package_id: str, area_sqm: float) -> Optional[PricingTier]:
    """
    Choose one tier out of the matches for an area.

    More than one match means the tier data overlaps. That is logged as a data
    integrity error and resolved deterministically: narrowest range, then lowest
    area_min, then lowest id.
    """
    if not tiers:
        return None
    if len(tiers) == 1:
        return tiers[0]

    ranked = sorted(tiers, key=lambda t: (t.area_max - t.area_min, t.area_min, t.id))
    logger.error(
        f"❌ Overlapping pricing tiers for package {package_id} at {area_sqm} sqm: "
        f"{[t.id for t in tiers]} - using narrowest tier {ranked[0].id}"
    )
    return ranked[0]


class PricingService:
    """Service layer for tiered pricing"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PricingRepository()

    def resolve_tier(self, package_id: str, area_sqm: float) -> Optional[PricingTier]:
        """Tier whose inclusive [area_min, area_max] contains area_sqm, or None"""
        with storage_errors(self.db, "resolve_tier", package_id=package_id):
            tiers = self.repo.get_tiers_for_area(self.db, package_id, area_sqm)
        return pick_tier(tiers, package_id, area_sqm)

    def calculate_price(self, package_id: str, area_sqm: float, frequency: int) -> float:
        """Price for area and frequency; 0 when no tier or slot matches"""
        return self.calculate_pricing(package_id, area_sqm, frequency).price

    def calculate_pricing(self, package_id: str, area_sqm: float, frequency: int) -> PricingResult:
        """
        Resolve price, required staff and estimated hours in one call.

        A missing tier, or a tier that does not offer the requested frequency,
        yields the not-found result (price 0, one staff member, found=False).
        In the second case ``tier`` is still set to the matched tier.
        """
        frequency = validate_frequency(frequency)
        tier = self.resolve_tier(package_id, area_sqm)
        if tier is None:
            logger.info(f"ℹ️ No pricing tier for package {package_id} at {area_sqm} sqm")
            return PricingResult()

        price = price_for_frequency(tier, frequency)
        if price is None:
            logger.info(
                f"ℹ️ Tier {tier.id} of package {package_id} does not offer frequency {frequency}"
            )
            return PricingResult(tier=PricingTierResponse.model_validate(tier))

        return PricingResult(
            price=price,
            required_staff=tier.required_staff,
            estimated_hours=tier.estimated_hours,
            tier=PricingTierResponse.model_validate(tier),
            found=True,
        )

    def get_package_tiers(self, package_id: str) -> list[PricingTier]:
        with storage_errors(self.db, "get_package_tiers", package_id=package_id):
            return self.repo.get_package_tiers(self.db, package_id)

    def get_package_with_tiers(self, package_id: str) -> PackageWithTiersResponse:
        """Package with its tiers and the min/max price across all frequency slots"""
        with storage_errors(self.db, "get_package_with_tiers", package_id=package_id):
            package = self.repo.get_package(self.db, package_id)
            if not package:
                raise NotFound("Package", package_id)
            tiers = self.repo.get_package_tiers(self.db, package_id)

        prices = [
            price
            for tier in tiers
            for price in (price_for_frequency(tier, freq) for freq in VALID_FREQUENCIES)
            if price is not None
        ]

        return PackageWithTiersResponse(
            id=package.id,
            name=package.name,
            service_type=package.service_type,
            pricing_model=package.pricing_model,
            base_price=package.base_price,
            duration_minutes=package.duration_minutes,
            is_active=package.is_active,
            tiers=[PricingTierResponse.model_validate(t) for t in tiers],
            tier_count=len(tiers),
            min_price=min(prices) if prices else None,
            max_price=max(prices) if prices else None,
        )

    def validate_area(self, package_id: str, area_sqm: float) -> bool:
        """True if some tier of the package covers area_sqm"""
        return self.resolve_tier(package_id, area_sqm) is not None
