"""認証ルーター: ログイン、ログアウト、現在のユーザー"""
from fastapi import APIRouter, Depends, HTTPException, Response, Request
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import get_db
from app.core.redis import get_redis
from app.core.session import create_session, destroy_session
from app.core.config import settings
from app.core.logging import get_logger
from app.core.rate_limit import limiter, LOGIN_RATE_LIMIT
from app.schemas.auth import LoginRequest, AuthResponse, ProfileInfo
from app.services import auth_service, user_service
from app.routers.deps import require_login

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=AuthResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    req: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    r=Depends(get_redis),
):
    """ログイン"""
    user = auth_service.authenticate(db, req.email, req.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    profile = auth_service.get_profile(db, user.id)
    if not profile or not profile.is_active:
        raise HTTPException(status_code=403, detail="This account is disabled")

    # ログインごとに新しいセッションとCSRFトークン
    session_id, csrf_token = await create_session(r, profile.id, profile.role, profile.email)

    response.set_cookie(
        key="session_id",
        value=session_id,
        httponly=True,
        secure=not settings.DEBUG,  # 本番(DEBUG=False)ではTrue
        samesite="lax",
        max_age=settings.SESSION_TIMEOUT_MINUTES * 60,
    )
    response.headers["X-CSRF-Token"] = csrf_token
    logger.info(f"ログイン: {profile.email} ({profile.role})")

    return AuthResponse(message="Logged in", csrf_token=csrf_token)


@router.post("/logout")
async def logout(request: Request, response: Response, r=Depends(get_redis)):
    """ログアウト"""
    session_id = request.cookies.get("session_id")
    if session_id:
        await destroy_session(r, session_id)
    response.delete_cookie("session_id")
    return {"message": "Logged out"}


@router.get("/me", response_model=ProfileInfo)
async def get_me(actor: Actor = Depends(require_login), db: Session = Depends(get_db)):
    """現在のログインユーザー情報"""
    return ProfileInfo.model_validate(user_service.get_profile(db, actor.user_id))
