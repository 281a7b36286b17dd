from __future__ import annotations
from dataclasses import asdict
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_db, require_admin
from ..models import Material
from ..schemas import SummaryRead, UserStatsRead, BarRow, MonthlyRow, RecycleRead
from ..services import stats
from ..services.pdf import generate_summary_pdf

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

def current_year() -> int:
    return datetime.now(timezone.utc).year

@router.get("/summary", response_model=SummaryRead)
async def summary(claims: dict = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    us = await stats.user_stats(db)
    totals = await stats.recycling_totals(db)
    bars = [
        BarRow(name=stats.MATERIAL_LABELS[m], value=totals.get(m.value, 0.0), color=stats.MATERIAL_COLORS[m])
        for m in Material
    ]
    return SummaryRead(
        user_stats=UserStatsRead(**asdict(us)),
        recycling_totals=totals,
        bar_chart=bars,
    )

@router.get("/monthly", response_model=list[MonthlyRow])
async def monthly(
    year: int | None = Query(None, ge=2000, le=2100),
    claims: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    data = await stats.monthly_recycling(db, year or current_year())
    return [
        MonthlyRow(month=m, plastic=data[Material.PLASTIC.value][i], glass=data[Material.GLASS.value][i])
        for i, m in enumerate(stats.MONTHS)
    ]

@router.get("/years", response_model=list[int])
async def years(claims: dict = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await stats.available_years(db)

@router.get("/recent", response_model=list[RecycleRead])
async def recent(
    limit: int = Query(5, ge=1, le=50),
    claims: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows = await stats.recent_recycles(db, limit=limit)
    return [RecycleRead(
        id=r.id, user_name=r.user_name, profile_picture=r.profile_picture,
        material_type=r.material_type.value, weight_kg=r.weight_kg, timestamp=r.timestamp,
    ) for r in rows]

@router.get("/report.pdf")
async def report_pdf(
    year: int | None = Query(None, ge=2000, le=2100),
    claims: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    ymv = year or current_year()
    pdf = generate_summary_pdf(await stats.dashboard_data(db, ymv))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="EcoEarn_Report_{ymv}.pdf"'},
    )
