# reviewbridge/infrastructure/redis_cache.py
import redis.asyncio as aioredis

from ..config import get_settings

redis_client = aioredis.from_url(get_settings().REDIS_URL, decode_responses=True)
