from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Protocol, Union

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import StoreWriteFailed
from ..models import Bin, BinOccupancyEvent, BinStatus, OccupancyTransition, new_bin_id, utcnow

logger = logging.getLogger(__name__)


# --- occupancy as a single tagged value; (status, occupant) pairs map 1:1 onto it
@dataclass(frozen=True)
class Inactive:
    pass

@dataclass(frozen=True)
class Active:
    occupant: str

Occupancy = Union[Inactive, Active]

def occupancy_of(b: Bin) -> Occupancy:
    if b.status == BinStatus.ACTIVE:
        return Active(b.occupant)
    return Inactive()

def _columns(state: Occupancy) -> dict:
    if isinstance(state, Active):
        return {"status": BinStatus.ACTIVE, "occupant": state.occupant}
    return {"status": BinStatus.INACTIVE, "occupant": None}

def _matches(state: Occupancy):
    if isinstance(state, Active):
        return (Bin.status == BinStatus.ACTIVE, Bin.occupant == state.occupant)
    return (Bin.status == BinStatus.INACTIVE, Bin.occupant.is_(None))


class BinRegistry(Protocol):
    """What the activation protocol needs from a bin store."""

    async def get(self, bin_id: str) -> Bin | None: ...

    async def compare_and_set(self, bin_id: str, expected: Occupancy, new: Occupancy) -> bool: ...

    async def record_event(
        self, bin_id: str, *, user_id: str, actor_id: str, transition: OccupancyTransition
    ) -> BinOccupancyEvent: ...


class SqlBinRegistry:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, what: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("store write failed (%s): %s", what, e)
            raise StoreWriteFailed() from e

    async def get(self, bin_id: str) -> Bin | None:
        # populate_existing: conditional updates bypass the identity map
        stmt = select(Bin).where(Bin.id == bin_id).execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def list_all(self) -> list[Bin]:
        rows = (await self.db.execute(select(Bin).order_by(Bin.created_at.asc()))).scalars().all()
        return list(rows)

    async def create(
        self,
        *,
        name: str,
        image: str | None,
        lat: float | None = None,
        lng: float | None = None,
        bin_id: str | None = None,
        qr_data: str | None = None,
        qr_code_photo: str | None = None,
    ) -> Bin:
        b = Bin(
            id=bin_id or new_bin_id(), name=name, image=image, lat=lat, lng=lng, level=0,
            status=BinStatus.INACTIVE, occupant=None, qr_data=qr_data, qr_code_photo=qr_code_photo,
        )
        self.db.add(b)
        await self._commit("create bin")
        await self.db.refresh(b)
        logger.info("bin %s created (%s)", b.id, name)
        return b

    async def attach_qr(self, bin_id: str, *, qr_data: str, qr_code_photo: str) -> None:
        stmt = (
            update(Bin)
            .where(Bin.id == bin_id)
            .values(qr_data=qr_data, qr_code_photo=qr_code_photo, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreWriteFailed() from e
        await self._commit("attach qr")

    async def set_level(self, bin_id: str, level: int) -> bool:
        if not 0 <= level <= 100:
            raise ValueError("fill level must be between 0 and 100")
        stmt = (
            update(Bin)
            .where(Bin.id == bin_id)
            .values(level=level, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreWriteFailed() from e
        await self._commit("set level")
        return res.rowcount == 1

    async def compare_and_set(self, bin_id: str, expected: Occupancy, new: Occupancy) -> bool:
        """Single conditional UPDATE; False means another writer got there first."""
        stmt = (
            update(Bin)
            .where(Bin.id == bin_id, *_matches(expected))
            .values(updated_at=utcnow(), **_columns(new))
            .execution_options(synchronize_session=False)
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("occupancy update failed for bin %s: %s", bin_id, e)
            raise StoreWriteFailed() from e
        await self._commit("occupancy")
        return res.rowcount == 1

    async def record_event(
        self, bin_id: str, *, user_id: str, actor_id: str, transition: OccupancyTransition
    ) -> BinOccupancyEvent:
        evt = BinOccupancyEvent(bin_id=bin_id, user_id=user_id, actor_id=actor_id, transition=transition)
        self.db.add(evt)
        await self._commit("occupancy event")
        return evt

    async def history(self, bin_id: str, limit: int = 50) -> list[BinOccupancyEvent]:
        rows = (await self.db.execute(
            select(BinOccupancyEvent)
            .where(BinOccupancyEvent.bin_id == bin_id)
            .order_by(BinOccupancyEvent.occurred_at.desc())
            .limit(limit)
        )).scalars().all()
        return list(rows)
