from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import check_db_connection
from app.core.redis import check_redis_connection

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health_check():
    """DBとRedis (セッション) の疎通。どちらか落ちていれば503"""
    checks = {
        "db": check_db_connection(),
        "redis": await check_redis_connection(),
    }
    healthy = all(checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "service": settings.SITE_NAME,
            "env": settings.ENV,
            "status": "ok" if healthy else "degraded",
            **{name: "connected" if ok else "disconnected" for name, ok in checks.items()},
        },
    )
