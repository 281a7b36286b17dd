from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Annotated, Literal
from uuid import UUID
from datetime import datetime

Level = Annotated[int, Field(ge=0, le=100)]

# --- bins
class BinRead(BaseModel):
    id: str
    name: str
    image: str | None = None
    lat: float | None = None
    lng: float | None = None
    level: int
    status: Literal["active", "inactive"]
    occupant: str | None = None
    qr_data: str | None = None
    created_at: datetime

class BinLevelUpdate(BaseModel):
    level: Level

class ScanRequest(BaseModel):
    token: str  # raw text read from the printed QR code

class DeactivateRequest(BaseModel):
    force: bool = False  # admin override: release a bin held by another user

class OccupancyRead(BaseModel):
    bin_id: str
    status: Literal["active", "inactive"]
    occupant: str | None = None
    changed: bool
    transition: str | None = None

class OccupancyEventRead(BaseModel):
    id: UUID
    bin_id: str
    user_id: str
    actor_id: str
    transition: str
    occurred_at: datetime

class QRRead(BaseModel):
    bin_id: str
    qr_data: str
    qr_code_photo: str  # PNG data URL

# --- funds ledger
class TransactionCreate(BaseModel):
    type: Literal["add", "withdraw"]
    amount: float | str  # validated by the ledger so bad input maps to InvalidAmount
    description: str | None = Field(default=None, max_length=500)

class TransactionRead(BaseModel):
    id: UUID
    type: Literal["add", "withdraw"]
    amount: float
    description: str | None = None
    user_email: str | None = None
    user_id: str | None = None
    points_redeemed: int | None = None
    timestamp: datetime

class BalanceRead(BaseModel):
    balance: float

# --- user reports
class ReportRead(BaseModel):
    id: UUID
    user_name: str
    description: str
    location: str | None = None
    image: str | None = None
    timestamp: datetime

class ReportPageRead(BaseModel):
    items: list[ReportRead]
    total: int
    page: int
    pages: int

# --- dashboard
class UserStatsRead(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    user_reports: int

class BarRow(BaseModel):
    name: str
    value: float
    color: str

class SummaryRead(BaseModel):
    user_stats: UserStatsRead
    recycling_totals: dict[str, float]
    bar_chart: list[BarRow]

class MonthlyRow(BaseModel):
    month: str
    plastic: float
    glass: float

class RecycleRead(BaseModel):
    id: UUID
    user_name: str
    profile_picture: str | None = None
    material_type: Literal["plastic", "glass"]
    weight_kg: float
    timestamp: datetime
