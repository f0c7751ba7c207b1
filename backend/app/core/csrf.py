"""CSRF保護: ログイン時に発行したトークン (セッションに保存) とヘッダーを照合"""
import secrets

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging import get_logger
from app.core.redis import get_redis
from app.core.session import get_csrf_token

logger = get_logger(__name__)

CSRF_HEADER = "X-CSRF-Token"
CSRF_EXEMPT_PATHS = {"/api/auth/login"}
SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


class CSRFMiddleware(BaseHTTPMiddleware):
    """状態を変更するリクエストは X-CSRF-Token 必須"""

    async def dispatch(self, request: Request, call_next):
        if request.method in SAFE_METHODS or request.url.path in CSRF_EXEMPT_PATHS:
            return await call_next(request)

        session_id = request.cookies.get("session_id")
        sent = request.headers.get(CSRF_HEADER, "")
        # 未ログインは後段の認証で401にする
        if session_id:
            stored = await get_csrf_token(await get_redis(), session_id)
            if not stored or not sent or not secrets.compare_digest(stored, sent):
                logger.warning(f"CSRF検証失敗: {request.method} {request.url.path}")
                return JSONResponse(status_code=403, content={"detail": "Invalid CSRF token"})

        return await call_next(request)
