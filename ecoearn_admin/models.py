from __future__ import annotations
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, Float, Boolean, Enum as SqlEnum
from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy.types import DateTime, Numeric

Base = declarative_base()

def utcnow():
    return datetime.now(timezone.utc)

def new_bin_id() -> str:
    return uuid.uuid4().hex

def _values(enum_cls):
    return [m.value for m in enum_cls]

class BinStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

class OccupancyTransition(str, Enum):
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    FORCE_RELEASED = "force_released"  # admin cleared another user's bin

class TransactionType(str, Enum):
    ADD = "add"
    WITHDRAW = "withdraw"

class Material(str, Enum):
    PLASTIC = "plastic"
    GLASS = "glass"  # labelled "Tin Cans" on the dashboard

class Bin(Base):
    __tablename__ = "bins"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_bin_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    image: Mapped[str | None] = mapped_column(Text)  # data URL
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[BinStatus] = mapped_column(
        SqlEnum(BinStatus, values_callable=_values, native_enum=False, length=16),
        default=BinStatus.INACTIVE,
        nullable=False,
    )
    occupant: Mapped[str | None] = mapped_column(String(128), nullable=True)
    qr_data: Mapped[str | None] = mapped_column(Text)
    qr_code_photo: Mapped[str | None] = mapped_column(Text)  # PNG data URL
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("level >= 0 AND level <= 100", name="ck_bin_level"),
        CheckConstraint(
            "(status = 'active' AND occupant IS NOT NULL AND occupant <> '') OR "
            "(status = 'inactive' AND occupant IS NULL)",
            name="ck_bin_occupancy",
        ),
        Index("ix_bins_status", "status"),
    )

# Append-only; rows are never updated
class BinOccupancyEvent(Base):
    __tablename__ = "bin_occupancy_events"
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    bin_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(128), nullable=False)
    transition: Mapped[OccupancyTransition] = mapped_column(
        SqlEnum(OccupancyTransition, values_callable=_values, native_enum=False, length=32),
        nullable=False,
    )
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_occupancy_bin", "bin_id", "occurred_at"),
    )

class Report(Base):
    __tablename__ = "reports"
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    image: Mapped[str | None] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_reports_ts", "timestamp"),
    )

class AdminTransaction(Base):
    __tablename__ = "admin_transactions"
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    type: Mapped[TransactionType] = mapped_column(
        SqlEnum(TransactionType, values_callable=_values, native_enum=False, length=16),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    user_email: Mapped[str | None] = mapped_column(String(255))
    user_id: Mapped[str | None] = mapped_column(String(128))
    points_redeemed: Mapped[int | None] = mapped_column(Integer)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_txn_amount"),
        Index("ix_txn_ts", "timestamp"),
    )

# Read-only aggregation sources (written by the mobile app backend)
class AppUser(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

class RecyclingRequest(Base):
    __tablename__ = "recycling_requests"
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str | None] = mapped_column(String(128))
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    profile_picture: Mapped[str | None] = mapped_column(Text)
    material_type: Mapped[Material] = mapped_column(
        SqlEnum(Material, values_callable=_values, native_enum=False, length=16),
        nullable=False,
    )
    weight_kg: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    bin_id: Mapped[str | None] = mapped_column(String(64))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_recycles_ts", "timestamp"),
    )
