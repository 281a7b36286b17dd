from __future__ import annotations
import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from .config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()
_r: redis.Redis | None = None

def get_redis() -> redis.Redis:
    global _r
    if _r is None:
        _r = redis.from_url(_settings.redis_url, decode_responses=True)
    return _r

async def ping_redis() -> bool:
    try:
        return bool(await get_redis().ping())
    except (RedisError, OSError) as e:
        logger.warning("redis unreachable at %s: %s", _settings.redis_url, e)
        return False

async def close_redis() -> None:
    global _r
    if _r is not None:
        await _r.aclose()
        _r = None

# ---- fixed-window limiter for scan bursts (one counter per client and route)
async def allow_request(client_key: str, route_key: str) -> bool:
    if not _settings.rl_enabled:
        return True
    key = f"ecoearn:rl:{route_key}:{client_key}"
    try:
        pipe = get_redis().pipeline()
        pipe.incr(key)
        pipe.expire(key, _settings.rl_window_seconds)
        count, _ = await pipe.execute()
    except (RedisError, OSError) as e:
        # limiter is advisory; scanning keeps working without redis
        logger.warning("rate limiter unavailable, allowing %s: %s", route_key, e)
        return True
    return int(count) <= _settings.rl_max_reqs
