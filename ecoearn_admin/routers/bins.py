from __future__ import annotations
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request, Response, UploadFile, File, Form, Query

from ..core import qr
from ..core.errors import EcoEarnError
from ..core.images import image_to_data_url
from ..core.nats import publish_occupancy
from ..core.redis import allow_request
from ..deps import get_claims, get_registry, require_admin, require_admin_or_service
from ..models import Bin, new_bin_id
from ..schemas import (
    BinRead, BinLevelUpdate, ScanRequest, DeactivateRequest, OccupancyRead, OccupancyEventRead, QRRead,
)
from ..services.activation import activate, deactivate, ActivationResult
from ..services.registry import SqlBinRegistry, Active

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bins", tags=["bins"])

def _now_iso():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

def _bin_read(b: Bin) -> BinRead:
    return BinRead(
        id=b.id, name=b.name, image=b.image, lat=b.lat, lng=b.lng, level=b.level,
        status=b.status.value, occupant=b.occupant, qr_data=b.qr_data, created_at=b.created_at,
    )

def _occupancy_read(r: ActivationResult) -> OccupancyRead:
    occupant = r.occupancy.occupant if isinstance(r.occupancy, Active) else None
    return OccupancyRead(
        bin_id=r.bin_id,
        status="active" if occupant else "inactive",
        occupant=occupant,
        changed=r.changed,
        transition=r.transition.value if r.transition else None,
    )

async def _load(registry: SqlBinRegistry, bin_id: str) -> Bin:
    b = await registry.get(bin_id)
    if not b:
        raise HTTPException(status_code=404, detail="Bin not found")
    return b

def _build_qr(bin_id: str) -> tuple[str, str]:
    text = qr.encode(bin_id)
    return text, qr.to_data_url(qr.render_png(text))

async def _issue_qr(registry: SqlBinRegistry, bin_id: str) -> QRRead:
    text, photo = _build_qr(bin_id)
    try:
        await registry.attach_qr(bin_id, qr_data=text, qr_code_photo=photo)
    except EcoEarnError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return QRRead(bin_id=bin_id, qr_data=text, qr_code_photo=photo)

async def _announce(r: ActivationResult, actor_id: str, user_id: str) -> None:
    if not r.changed or r.transition is None:
        return
    await publish_occupancy({
        "bin_id": r.bin_id,
        "user_id": user_id,
        "actor_id": actor_id,
        "transition": r.transition.value,
        "occurred_at": _now_iso(),
    })


# --- 1) Admin registers a bin: picture + name -> id, QR payload and QR image
@router.post("", response_model=BinRead, status_code=201)
async def create_bin(
    name: str = Form(...),
    image: UploadFile = File(...),
    claims: dict = Depends(require_admin),
    registry: SqlBinRegistry = Depends(get_registry),
):
    if not name.strip():
        raise HTTPException(status_code=422, detail="Please enter a bin name")
    try:
        data_url = image_to_data_url(await image.read())
    except ValueError:
        raise HTTPException(status_code=422, detail="Please select a valid image")
    # bin row and its QR label are written in one insert
    bin_id = new_bin_id()
    qr_data, qr_photo = _build_qr(bin_id)
    try:
        b = await registry.create(
            name=name.strip(), image=data_url, bin_id=bin_id, qr_data=qr_data, qr_code_photo=qr_photo,
        )
    except EcoEarnError as e:
        raise HTTPException(status_code=e.status_code, detail="Failed to create bin")
    return _bin_read(b)

@router.get("", response_model=list[BinRead])
async def list_bins(claims: dict = Depends(require_admin), registry: SqlBinRegistry = Depends(get_registry)):
    return [_bin_read(b) for b in await registry.list_all()]

@router.get("/{bin_id}", response_model=BinRead)
async def get_bin(bin_id: str, claims: dict = Depends(require_admin), registry: SqlBinRegistry = Depends(get_registry)):
    return _bin_read(await _load(registry, bin_id))

# --- 2) QR download / reprint
@router.get("/{bin_id}/qr.png")
async def download_qr(bin_id: str, claims: dict = Depends(require_admin), registry: SqlBinRegistry = Depends(get_registry)):
    b = await _load(registry, bin_id)
    if b.qr_code_photo:
        png = qr.from_data_url(b.qr_code_photo)
    elif b.qr_data:
        png = qr.render_png(b.qr_data)
    else:
        raise HTTPException(status_code=404, detail="No QR code issued for this bin")
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="bin-{bin_id}-qr-code.png"'},
    )

@router.post("/{bin_id}/qr", response_model=QRRead, status_code=201)
async def reissue_qr(bin_id: str, claims: dict = Depends(require_admin), registry: SqlBinRegistry = Depends(get_registry)):
    await _load(registry, bin_id)
    return await _issue_qr(registry, bin_id)

# --- 3) Fill level from sensors or field reports
@router.patch("/{bin_id}/level", response_model=BinRead)
async def update_level(
    bin_id: str,
    payload: BinLevelUpdate,
    claims: dict = Depends(require_admin_or_service),
    registry: SqlBinRegistry = Depends(get_registry),
):
    try:
        found = await registry.set_level(bin_id, payload.level)
    except EcoEarnError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not found:
        raise HTTPException(status_code=404, detail="Bin not found")
    return _bin_read(await _load(registry, bin_id))

# --- 4) Scan-to-activate and release
@router.post("/scan", response_model=OccupancyRead)
async def scan_bin(
    payload: ScanRequest,
    request: Request,
    claims: dict = Depends(get_claims),
    registry: SqlBinRegistry = Depends(get_registry),
):
    ip = request.client.host if request.client else "unknown"
    if not await allow_request(ip, "bins.scan"):
        raise HTTPException(status_code=429, detail="Too many requests")

    user_id = str(claims["sub"])
    try:
        token = qr.decode(payload.token)
        result = await activate(registry, token.bin_id, user_id)
    except EcoEarnError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    await _announce(result, actor_id=user_id, user_id=user_id)
    return _occupancy_read(result)

@router.post("/{bin_id}/deactivate", response_model=OccupancyRead)
async def deactivate_bin(
    bin_id: str,
    payload: DeactivateRequest | None = None,
    claims: dict = Depends(get_claims),
    registry: SqlBinRegistry = Depends(get_registry),
):
    force = bool(payload and payload.force)
    if force and claims.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin role required to release another user's bin")

    actor_id = str(claims["sub"])
    try:
        result = await deactivate(registry, bin_id, actor_id, force=force)
    except EcoEarnError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    released = result.previous.occupant if isinstance(result.previous, Active) else actor_id
    await _announce(result, actor_id=actor_id, user_id=released)
    return _occupancy_read(result)

@router.get("/{bin_id}/history", response_model=list[OccupancyEventRead])
async def occupancy_history(
    bin_id: str,
    limit: int = Query(50, ge=1, le=500),
    claims: dict = Depends(require_admin),
    registry: SqlBinRegistry = Depends(get_registry),
):
    await _load(registry, bin_id)
    rows = await registry.history(bin_id, limit=limit)
    return [OccupancyEventRead(
        id=r.id, bin_id=r.bin_id, user_id=r.user_id, actor_id=r.actor_id,
        transition=r.transition.value, occurred_at=r.occurred_at,
    ) for r in rows]
