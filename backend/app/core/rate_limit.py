"""slowapi によるレート制限 (ログイン・CSV取り込み)"""
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

LOGIN_RATE_LIMIT = "5/minute"
IMPORT_RATE_LIMIT = "10/minute"


def client_key(request: Request) -> str:
    """リバースプロキシ配下では X-Forwarded-For の先頭"""
    forwarded = request.headers.get("X-Forwarded-For", "")
    first = forwarded.split(",")[0].strip()
    return first or get_remote_address(request)


limiter = Limiter(
    key_func=client_key,
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"レート制限超過: {client_key(request)} {request.method} {request.url.path}")
    return JSONResponse(
        status_code=429,
        content={"detail": f"Too many requests ({exc.detail}). Please wait and try again."},
    )
