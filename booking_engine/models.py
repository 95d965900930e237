import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    Time,
    event,
    text,
)
from sqlalchemy.sql import func

from .database import Base
from .domain.bookings.status import ACTIVE_STATUS_VALUES


def generate_id():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


_ACTIVE_SLOT_PREDICATE = "status IN ({})".format(
    ", ".join(f"'{value}'" for value in ACTIVE_STATUS_VALUES)
)


class ServicePackage(Base):
    """A sellable service; tiered packages price from PricingTier rows"""

    __tablename__ = "service_packages"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    service_type = Column(String(50), nullable=False, default="cleaning")  # cleaning, training
    pricing_model = Column(String(20), nullable=False, default="fixed")  # fixed, tiered
    base_price = Column(Float, nullable=True)  # Used by fixed packages only
    duration_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class PricingTier(Base):
    """
    Area-bounded price band of a tiered package.

    Bounds are inclusive. Tiers of the same package are expected not to overlap,
    but that is not enforced here; see PricingService.resolve_tier.
    """

    __tablename__ = "package_pricing_tiers"

    id = Column(String(36), primary_key=True, default=generate_id)
    package_id = Column(String(36), nullable=False, index=True)

    area_min = Column(Integer, nullable=False)
    area_max = Column(Integer, nullable=False)

    required_staff = Column(Integer, nullable=False, default=1)
    estimated_hours = Column(Float, nullable=True)

    # Price per frequency package; null means the frequency is not offered
    price_1_time = Column(Float, nullable=True)
    price_2_times = Column(Float, nullable=True)
    price_4_times = Column(Float, nullable=True)
    price_8_times = Column(Float, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Booking(Base):
    """One scheduled occurrence of a service"""

    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), nullable=True, index=True)

    # Scheduling: end_date null means single-day
    booking_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=True)

    # Assignment: staff, team, both or neither
    staff_id = Column(String(36), nullable=True, index=True)
    team_id = Column(String(36), nullable=True, index=True)

    # Commercial snapshot taken at creation/edit time
    package_id = Column(String(36), nullable=True)
    area_sqm = Column(Integer, nullable=True)
    frequency = Column(Integer, nullable=True)  # 1, 2, 4 or 8
    total_price = Column(Float, nullable=False, default=0)
    required_staff = Column(Integer, nullable=False, default=1)

    # Status workflow: see domain/bookings/status.py
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="unpaid")
    payment_method = Column(String(50), nullable=True)  # cash, transfer, promptpay, ...
    payment_date = Column(Date, nullable=True)
    amount_paid = Column(Float, nullable=True)

    # Recurrence linkage
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_group_id = Column(String(36), nullable=True, index=True)
    recurring_sequence = Column(Integer, nullable=True)  # 1-based
    recurring_total = Column(Integer, nullable=True)
    recurring_pattern = Column(String(20), nullable=True)  # auto-weekly, auto-biweekly, custom
    parent_booking_id = Column(String(36), nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Storage-level guard against double booking: one active booking per
    # (staff|team, day, start time). NULL staff/team ids never collide.
    __table_args__ = (
        Index(
            "uq_bookings_active_staff_slot",
            "staff_id",
            "booking_date",
            "start_time",
            unique=True,
            sqlite_where=text(_ACTIVE_SLOT_PREDICATE),
            postgresql_where=text(_ACTIVE_SLOT_PREDICATE),
        ),
        Index(
            "uq_bookings_active_team_slot",
            "team_id",
            "booking_date",
            "start_time",
            unique=True,
            sqlite_where=text(_ACTIVE_SLOT_PREDICATE),
            postgresql_where=text(_ACTIVE_SLOT_PREDICATE),
        ),
        Index("ix_bookings_group_sequence", "recurring_group_id", "recurring_sequence"),
    )


class BookingStatusHistory(Base):
    """
    Append-only audit trail of status and payment status changes.

    booking_id has no foreign key so history outlives deleted bookings.
    """

    __tablename__ = "booking_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(36), nullable=False, index=True)
    field = Column(String(20), nullable=False, default="status")  # status, payment_status
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class HistoryImmutableError(RuntimeError):
    pass


@event.listens_for(BookingStatusHistory, "before_update")
def _reject_history_update(_mapper, _connection, target):
    raise HistoryImmutableError(f"Status history entry {target.id} is immutable")


@event.listens_for(BookingStatusHistory, "before_delete")
def _reject_history_delete(_mapper, _connection, target):
    raise HistoryImmutableError(f"Status history entry {target.id} cannot be deleted")
