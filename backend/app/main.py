from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from app.core.config import settings
from app.core.errors import AppError
from app.core.logging import setup_logging, get_logger
from app.core.csrf import CSRFMiddleware
from app.core.security_headers import SecurityHeadersMiddleware
from app.core.rate_limit import limiter, rate_limit_exceeded_handler
from app.core.redis import close_redis
from app.routers import health, auth, admin_users, questionnaires, facilities
from app.routers import import_export, admin_display_config

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """アプリケーションライフサイクル管理"""
    setup_logging(debug=settings.DEBUG)
    logger.info("アプリケーション起動")
    yield
    await close_redis()
    logger.info("アプリケーション終了")


app = FastAPI(
    title=settings.SITE_NAME,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# レート制限設定
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """サービス層のドメインエラー → {"detail": message}"""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message} ({request.method} {request.url.path})")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# --- 入力エラー (422) の英語メッセージ ---
_FIELD_LABELS = {
    "email": "Email",
    "password": "Password",
    "full_name": "Full name",
    "question_type": "Question type",
    "venue_name": "Venue name",
    "field_source": "Field source",
    "field_key": "Field key",
    "display_label": "Display label",
    "filter_type": "Filter type",
}

_MESSAGES = {
    "missing": "{label} is required",
    "string_too_short": "{label} must be at least {min_length} characters",
    "string_too_long": "{label} must be at most {max_length} characters",
    "int_parsing": "{label} must be a number",
    "int_type": "{label} must be a number",
    "float_parsing": "{label} must be a number",
    "float_type": "{label} must be a number",
    "bool_parsing": "{label} must be true or false",
    "literal_error": "{label} must be one of {expected}",
}


def _field_label(loc: tuple) -> str:
    names = [str(part) for part in loc if part not in ("body", "query", "path", "form")]
    if not names:
        return "Request"
    name = names[-1]
    return _FIELD_LABELS.get(name, name.replace("_", " ").capitalize())


def _validation_message(err: dict) -> str:
    ctx = err.get("ctx") or {}
    label = _field_label(tuple(err.get("loc", ())))
    if err.get("type") == "value_error":
        if "email" in str(err.get("msg", "")).lower() and "error" not in ctx:
            return f"{label} must be a valid email address"
        return str(ctx.get("error", err.get("msg", "")))
    template = _MESSAGES.get(err.get("type", ""), "{label}: invalid value")
    return template.format(label=label, **{k: v for k, v in ctx.items() if k != "label"})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": "; ".join(_validation_message(e) for e in exc.errors())},
    )


# ミドルウェア (登録順序: 後に登録したものが先に実行される)
# セキュリティヘッダー（最初に実行されるよう最後に登録）
app.add_middleware(SecurityHeadersMiddleware)

# CSRF保護
if settings.CSRF_ENABLED:
    app.add_middleware(CSRFMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-CSRF-Token"],
)

# ルーター登録
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(admin_users.router)
app.include_router(questionnaires.router)
app.include_router(questionnaires.admin_router)
app.include_router(facilities.router)
app.include_router(import_export.router)
app.include_router(admin_display_config.router)
