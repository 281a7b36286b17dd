from __future__ import annotations
import uuid
from typing import Literal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..deps import get_db, require_admin
from ..models import Report
from ..schemas import ReportRead, ReportPageRead
from ..services import reports as report_service

settings = get_settings()
router = APIRouter(prefix="/reports", tags=["reports"])

def _report_read(r: Report) -> ReportRead:
    return ReportRead(
        id=r.id, user_name=r.user_name, description=r.description,
        location=r.location, image=r.image, timestamp=r.timestamp,
    )

@router.get("", response_model=ReportPageRead)
async def list_reports(
    search: str | None = None,
    order: Literal["newest", "oldest"] = Query("newest"),
    page: int = Query(1, ge=1),
    claims: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    res = await report_service.list_reports(
        db, search=search, order=order, page=page, per_page=settings.reports_page_size
    )
    return ReportPageRead(items=[_report_read(r) for r in res.items], total=res.total, page=res.page, pages=res.pages)

@router.get("/{report_id}", response_model=ReportRead)
async def get_report(report_id: uuid.UUID, claims: dict = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    r = await report_service.get_report(db, report_id)
    if not r:
        raise HTTPException(status_code=404, detail="Report not found")
    return _report_read(r)
