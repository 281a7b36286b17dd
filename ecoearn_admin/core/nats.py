from __future__ import annotations
import json
import logging
from typing import Sequence
from nats.aio.client import Client as NATS
from .config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()
_nats = NATS()

async def nats_connect():
    if not _settings.enable_nats:
        return
    if not _nats.is_connected:
        servers: Sequence[str] = [u.strip() for u in _settings.nats_urls.split(",") if u.strip()]
        await _nats.connect(servers=servers, allow_reconnect=True, max_reconnect_attempts=3)

async def nats_close():
    if _nats.is_connected:
        await _nats.drain()

async def publish_occupancy(evt: dict) -> bool:
    """
    Publish a bin occupancy transition. Returns False when the event was not sent.

    evt = {
      "bin_id": str,
      "user_id": str,
      "actor_id": str,
      "transition": "activated" | "deactivated" | "force_released",
      "occurred_at": iso8601,
    }
    """
    if not _settings.enable_nats:
        return False
    try:
        await nats_connect()
        await _nats.publish(_settings.nats_subject_occupancy, json.dumps(evt).encode("utf-8"))
    except Exception as e:
        logger.warning("occupancy event for bin %s not published: %s", evt.get("bin_id"), e)
        return False
    return True
