from __future__ import annotations
import logging
from dataclasses import dataclass

from ..core.errors import BinNotFound, BinBusy, Conflict
from ..models import OccupancyTransition
from .registry import BinRegistry, Occupancy, Active, Inactive, occupancy_of

logger = logging.getLogger(__name__)


def _require_user(user_id: str) -> None:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValueError("user id must be a non-empty string")


@dataclass(frozen=True)
class ActivationResult:
    bin_id: str
    occupancy: Occupancy
    changed: bool
    transition: OccupancyTransition | None = None
    previous: Occupancy | None = None


async def activate(registry: BinRegistry, bin_id: str, user_id: str) -> ActivationResult:
    """Put ``bin_id`` in use by ``user_id``.

    Idempotent for the current occupant. A bin held by someone else raises
    ``BinBusy``; losing the conditional write to a concurrent scan raises
    ``Conflict``.
    """
    _require_user(user_id)
    b = await registry.get(bin_id)
    if b is None:
        raise BinNotFound(bin_id)

    current = occupancy_of(b)
    if isinstance(current, Active):
        if current.occupant != user_id:
            logger.info("bin %s busy: held by %s, requested by %s", bin_id, current.occupant, user_id)
            raise BinBusy(bin_id)
        return ActivationResult(bin_id=bin_id, occupancy=current, changed=False)

    target = Active(user_id)
    if not await registry.compare_and_set(bin_id, current, target):
        latest = await registry.get(bin_id)
        if latest is None:
            raise BinNotFound(bin_id)
        if occupancy_of(latest) == target:
            # a duplicate scan by the same user won the write
            return ActivationResult(bin_id=bin_id, occupancy=target, changed=False)
        logger.info("bin %s activation by %s lost to a concurrent update", bin_id, user_id)
        raise Conflict(bin_id)

    await registry.record_event(bin_id, user_id=user_id, actor_id=user_id, transition=OccupancyTransition.ACTIVATED)
    logger.info("bin %s activated by %s", bin_id, user_id)
    return ActivationResult(bin_id=bin_id, occupancy=target, changed=True, transition=OccupancyTransition.ACTIVATED)


async def deactivate(
    registry: BinRegistry,
    bin_id: str,
    user_id: str,
    *,
    force: bool = False,
) -> ActivationResult:
    """Release ``bin_id``.

    Only the occupant may release a bin unless ``force`` is set (administrator
    override, recorded as ``force_released``). Releasing an idle bin is a no-op.
    """
    _require_user(user_id)
    b = await registry.get(bin_id)
    if b is None:
        raise BinNotFound(bin_id)

    current = occupancy_of(b)
    if isinstance(current, Inactive):
        return ActivationResult(bin_id=bin_id, occupancy=current, changed=False)
    if current.occupant != user_id and not force:
        logger.info("bin %s release by %s refused: held by %s", bin_id, user_id, current.occupant)
        raise BinBusy(bin_id)

    if not await registry.compare_and_set(bin_id, current, Inactive()):
        logger.info("bin %s release by %s lost to a concurrent update", bin_id, user_id)
        raise Conflict(bin_id)

    transition = (
        OccupancyTransition.DEACTIVATED if current.occupant == user_id else OccupancyTransition.FORCE_RELEASED
    )
    await registry.record_event(bin_id, user_id=current.occupant, actor_id=user_id, transition=transition)
    logger.info("bin %s %s by %s", bin_id, transition.value, user_id)
    return ActivationResult(
        bin_id=bin_id, occupancy=Inactive(), changed=True, transition=transition, previous=current,
    )
