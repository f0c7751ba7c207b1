import redis.asyncio as aioredis
from redis.exceptions import RedisError
from app.core.config import settings

# セッション用の接続プール (接続は最初のコマンド実行時)
redis_pool = aioredis.ConnectionPool.from_url(
    settings.REDIS_URL,
    max_connections=20,
    decode_responses=True,
)


async def get_redis() -> aioredis.Redis:
    """FastAPI依存関数"""
    return aioredis.Redis(connection_pool=redis_pool)


async def close_redis() -> None:
    await redis_pool.disconnect()


async def check_redis_connection() -> bool:
    try:
        r = await get_redis()
        return bool(await r.ping())
    except RedisError:
        return False
