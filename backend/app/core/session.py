"""Redisセッション

session:<id>        → ハッシュ (user_id / role / email / csrf_token / 時刻)
user_sessions:<uid> → そのユーザーのsession_id集合 (一括無効化用)
"""
import secrets
import time
from typing import Optional

import redis.asyncio as aioredis

from app.core.config import settings

SESSION_PREFIX = "session:"
USER_SESSIONS_PREFIX = "user_sessions:"
SESSION_TTL = settings.SESSION_TIMEOUT_MINUTES * 60


def _session_key(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


def _user_key(user_id: int) -> str:
    return f"{USER_SESSIONS_PREFIX}{user_id}"


async def create_session(r: aioredis.Redis, user_id: int, role: str, email: str) -> tuple[str, str]:
    """セッションを新規作成し (session_id, csrf_token) を返す"""
    session_id = secrets.token_hex(32)
    csrf_token = secrets.token_hex(32)
    now = str(int(time.time()))

    async with r.pipeline(transaction=True) as pipe:
        pipe.hset(_session_key(session_id), mapping={
            "user_id": str(user_id),
            "role": role,
            "email": email,
            "csrf_token": csrf_token,
            "created_at": now,
            "last_accessed": now,
        })
        pipe.expire(_session_key(session_id), SESSION_TTL)
        pipe.sadd(_user_key(user_id), session_id)
        pipe.expire(_user_key(user_id), SESSION_TTL)
        await pipe.execute()
    return session_id, csrf_token


async def get_session(r: aioredis.Redis, session_id: str) -> Optional[dict]:
    """セッション取得。アクセスごとにアイドルタイムアウトを延長"""
    if not session_id:
        return None
    key = _session_key(session_id)
    data = await r.hgetall(key)
    if not data:
        return None

    async with r.pipeline(transaction=False) as pipe:
        pipe.expire(key, SESSION_TTL)
        pipe.hset(key, "last_accessed", str(int(time.time())))
        pipe.expire(_user_key(int(data.get("user_id", 0))), SESSION_TTL)
        await pipe.execute()
    return data


async def get_csrf_token(r: aioredis.Redis, session_id: str) -> Optional[str]:
    if not session_id:
        return None
    return await r.hget(_session_key(session_id), "csrf_token")


async def destroy_session(r: aioredis.Redis, session_id: str) -> None:
    if not session_id:
        return
    user_id = await r.hget(_session_key(session_id), "user_id")
    await r.delete(_session_key(session_id))
    if user_id:
        await r.srem(_user_key(int(user_id)), session_id)


async def invalidate_user_sessions(r: aioredis.Redis, user_id: int) -> int:
    """ユーザーの全セッションを破棄 (ロール変更・無効化・削除時)。破棄した数を返す"""
    session_ids = await r.smembers(_user_key(user_id))
    if not session_ids:
        return 0
    deleted = await r.delete(*[_session_key(s) for s in session_ids])
    await r.delete(_user_key(user_id))
    return deleted
