"""Pricing repository - Database operations for packages and tiers"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import PricingTier, ServicePackage


class PricingRepository:
    """Repository for package and pricing tier reads"""

    @staticmethod
    def get_package(db: Session, package_id: str) -> Optional[ServicePackage]:
        """Get a service package by ID"""
        return db.query(ServicePackage).filter(ServicePackage.id == package_id).first()

    @staticmethod
    def get_tiers_for_area(db: Session, package_id: str, area_sqm: float) -> list[PricingTier]:
        """All tiers of a package whose inclusive bounds contain area_sqm"""
        return (
            db.query(PricingTier)
            .filter(
                PricingTier.package_id == package_id,
                PricingTier.area_min <= area_sqm,
                PricingTier.area_max >= area_sqm,
            )
            .all()
        )

    @staticmethod
    def get_package_tiers(db: Session, package_id: str) -> list[PricingTier]:
        """All tiers of a package ordered by area_min"""
        return (
            db.query(PricingTier)
            .filter(PricingTier.package_id == package_id)
            .order_by(PricingTier.area_min.asc())
            .all()
        )
