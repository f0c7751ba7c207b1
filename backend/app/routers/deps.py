"""共通依存関数: 認証・ロール制御"""
from typing import Optional
from fastapi import Request, HTTPException, Depends
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import get_db
from app.core.redis import get_redis
from app.core.session import get_session
from app.models.profile import Profile
from app.services.auth_service import actor_for


async def get_current_actor(
    request: Request,
    db: Session = Depends(get_db),
    r=Depends(get_redis),
) -> Optional[Actor]:
    """Cookie → Redis → DB で操作者を取得。未ログインならNone"""
    session_id = request.cookies.get("session_id")
    if not session_id:
        return None

    session_data = await get_session(r, session_id)
    if not session_data:
        return None

    user_id = int(session_data.get("user_id", 0))
    if not user_id:
        return None

    profile = db.query(Profile).filter(Profile.id == user_id, Profile.is_active == True).first()
    if profile is None:
        return None
    return actor_for(profile, session_id)


async def require_login(
    actor: Optional[Actor] = Depends(get_current_actor),
) -> Actor:
    """ログイン必須。未ログインなら401"""
    if actor is None:
        raise HTTPException(status_code=401, detail="Login required")
    return actor


async def require_admin(
    actor: Actor = Depends(require_login),
) -> Actor:
    """管理者権限必須 (admin / super_admin)"""
    if not actor.can_manage_users:
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor


async def require_questionnaire_admin(
    actor: Actor = Depends(require_login),
) -> Actor:
    """質問票の編集権限"""
    if not actor.can_configure_questionnaire:
        raise HTTPException(status_code=403, detail="Questionnaire admin access required")
    return actor


async def require_exporter(
    actor: Actor = Depends(require_login),
) -> Actor:
    """CSVテンプレート・エクスポート・取り込みの権限"""
    if not actor.can_export_data:
        raise HTTPException(status_code=403, detail="Export access required")
    return actor
