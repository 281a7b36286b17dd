from __future__ import annotations
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from ..models import Material
from .stats import DashboardData, MONTHS, MATERIAL_LABELS

_PAGE_SIZE = A4
_MARGIN = 48
_SECTION_GAP = 18
_FONT = "Helvetica"
_FONT_BOLD = "Helvetica-Bold"
_GREEN = (0.09, 0.5, 0.24)


def _heading(c: canvas.Canvas, text: str, y: float, size: int = 14) -> float:
    c.setFillColorRGB(*_GREEN)
    c.setFont(_FONT_BOLD, size)
    c.drawString(_MARGIN, y, text)
    c.setFillColorRGB(0, 0, 0)
    return y - (size + 6)

def _label_value(c: canvas.Canvas, label: str, value: str, y: float, size: int = 11) -> float:
    c.setFont(_FONT_BOLD, size)
    text = f"{label}: "
    c.drawString(_MARGIN + 12, y, text)
    c.setFont(_FONT, size)
    c.drawString(_MARGIN + 12 + pdfmetrics.stringWidth(text, _FONT_BOLD, size), y, value)
    return y - (size + 4)

def _monthly_table(c: canvas.Canvas, data: DashboardData, y: float) -> float:
    materials = list(Material)
    col_w = (_PAGE_SIZE[0] - 2 * _MARGIN) / (len(materials) + 1)
    row_h = 15

    c.setFont(_FONT_BOLD, 10)
    c.drawString(_MARGIN, y, "Month")
    for i, m in enumerate(materials, start=1):
        c.drawRightString(_MARGIN + col_w * (i + 1) - 6, y, f"{MATERIAL_LABELS[m]} (kg)")
    c.setLineWidth(0.5)
    c.line(_MARGIN, y - 4, _PAGE_SIZE[0] - _MARGIN, y - 4)
    y -= row_h

    c.setFont(_FONT, 10)
    for idx, month in enumerate(MONTHS):
        c.drawString(_MARGIN, y, month)
        for i, m in enumerate(materials, start=1):
            kg = data.monthly.get(m.value, [0.0] * 12)[idx]
            c.drawRightString(_MARGIN + col_w * (i + 1) - 6, y, f"{kg:,.2f}")
        y -= row_h
    return y


def generate_summary_pdf(data: DashboardData) -> bytes:
    """One-page yearly summary matching the dashboard's download button."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=_PAGE_SIZE)
    c.setTitle(f"EcoEarn Report {data.selected_year}")
    _, page_h = _PAGE_SIZE
    y = page_h - _MARGIN

    y = _heading(c, f"EcoEarn Admin Report - {data.selected_year}", y, size=20)
    c.setFont(_FONT, 9)
    c.drawString(_MARGIN, y, f"Generated {data.generated_at.strftime('%Y-%m-%d %H:%M UTC')}")
    y -= _SECTION_GAP * 1.5

    y = _heading(c, "User Statistics", y)
    us = data.user_stats
    y = _label_value(c, "Total Users", f"{us.total_users:,}", y)
    y = _label_value(c, "Active Users", f"{us.active_users:,}", y)
    y = _label_value(c, "Inactive Users", f"{us.inactive_users:,}", y)
    y = _label_value(c, "User Reports", f"{us.user_reports:,}", y)
    y -= _SECTION_GAP

    y = _heading(c, "Recycling Totals", y)
    for m in Material:
        y = _label_value(c, MATERIAL_LABELS[m], f"{data.recycling_totals.get(m.value, 0.0):,.2f} kg", y)
    y -= _SECTION_GAP

    y = _heading(c, f"Monthly Recycling ({data.selected_year})", y)
    _monthly_table(c, data, y)

    c.showPage()
    c.save()
    return buf.getvalue()
