from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select, func, extract
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import AppUser, RecyclingRequest, Material
from .reports import count_reports

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# dashboard labels and chart colours per material
MATERIAL_LABELS = {Material.PLASTIC: "Plastic", Material.GLASS: "Tin Cans"}
MATERIAL_COLORS = {Material.PLASTIC: "#7B61FF", Material.GLASS: "#FFA500"}


@dataclass
class UserStats:
    total_users: int
    active_users: int
    inactive_users: int
    user_reports: int


@dataclass
class DashboardData:
    selected_year: int
    user_stats: UserStats
    recycling_totals: dict[str, float]
    monthly: dict[str, list[float]]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


async def user_stats(db: AsyncSession) -> UserStats:
    total = int((await db.execute(select(func.count()).select_from(AppUser))).scalar_one())
    active = int((await db.execute(
        select(func.count()).select_from(AppUser).where(AppUser.is_active.is_(True))
    )).scalar_one())
    reports = await count_reports(db)
    return UserStats(total_users=total, active_users=active, inactive_users=total - active, user_reports=reports)

async def recycling_totals(db: AsyncSession) -> dict[str, float]:
    rows = (await db.execute(
        select(RecyclingRequest.material_type, func.coalesce(func.sum(RecyclingRequest.weight_kg), 0.0))
        .group_by(RecyclingRequest.material_type)
    )).all()
    totals = {m.value: 0.0 for m in Material}
    for material, kg in rows:
        totals[Material(material).value] = round(float(kg), 2)
    return totals

async def _rows_for_year(db: AsyncSession, year: int):
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    return (await db.execute(
        select(RecyclingRequest.material_type, RecyclingRequest.weight_kg, RecyclingRequest.timestamp)
        .where(RecyclingRequest.timestamp >= start, RecyclingRequest.timestamp < end)
    )).all()

async def monthly_recycling(db: AsyncSession, year: int) -> dict[str, list[float]]:
    """Twelve monthly kg totals per material for ``year`` (Jan first)."""
    by_material = {m.value: [0.0] * 12 for m in Material}
    for material, kg, ts in await _rows_for_year(db, year):
        by_material[Material(material).value][ts.month - 1] += float(kg or 0.0)
    return {k: [round(v, 2) for v in vals] for k, vals in by_material.items()}

async def available_years(db: AsyncSession) -> list[int]:
    year_col = extract("year", RecyclingRequest.timestamp)
    rows = (await db.execute(
        select(year_col).where(RecyclingRequest.timestamp.is_not(None)).distinct()
    )).scalars().all()
    years = {int(y) for y in rows if y is not None}
    if not years:
        years = {datetime.now(timezone.utc).year}
    return sorted(years, reverse=True)

async def recent_recycles(db: AsyncSession, limit: int = 5) -> list[RecyclingRequest]:
    rows = (await db.execute(
        select(RecyclingRequest).order_by(RecyclingRequest.timestamp.desc()).limit(limit)
    )).scalars().all()
    return list(rows)

async def dashboard_data(db: AsyncSession, year: int) -> DashboardData:
    return DashboardData(
        selected_year=year,
        user_stats=await user_stats(db),
        recycling_totals=await recycling_totals(db),
        monthly=await monthly_recycling(db, year),
    )
