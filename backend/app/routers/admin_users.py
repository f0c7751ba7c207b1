"""管理画面: ユーザー管理"""
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import get_db
from app.core.errors import ParseError
from app.core.redis import get_redis
from app.core.session import invalidate_user_sessions
from app.core.logging import get_logger
from app.schemas.auth import ProfileInfo
from app.schemas.user import CreateUserRequest, UpdateUserRequest, UserImportResult
from app.services import user_service
from app.services.csv_service import read_csv
from app.routers.deps import require_admin

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["admin-users"])


@router.get("", response_model=list[ProfileInfo])
async def list_users(db: Session = Depends(get_db), actor: Actor = Depends(require_admin)):
    """ユーザー一覧"""
    return user_service.list_profiles(db, actor)


@router.post("", response_model=ProfileInfo, status_code=201)
async def create_user(
    data: CreateUserRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """ユーザー作成 (adminはauditorのみ作成可)"""
    return user_service.create_account(db, actor, data.email, data.password, data.full_name, data.role)


@router.post("/import", response_model=UserImportResult)
async def import_users(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """CSV一括登録 (email,password,full_name,role)"""
    header, rows = read_csv(await file.read())
    missing = [c for c in ("email", "password") if c not in header]
    if missing:
        raise ParseError(f"Missing required columns: {', '.join(missing)}")
    result = user_service.bulk_import_users(db, actor, rows)
    return UserImportResult(success=result.success, errors=result.errors)


@router.put("/{user_id}", response_model=ProfileInfo)
async def update_user(
    user_id: int,
    data: UpdateUserRequest,
    db: Session = Depends(get_db),
    r=Depends(get_redis),
    actor: Actor = Depends(require_admin),
):
    """表示名・ロール・有効状態の変更"""
    before = user_service.get_profile(db, user_id)
    old_role, old_active = before.role, before.is_active
    profile = user_service.update_account(db, actor, user_id, data.full_name, data.role, data.is_active)

    # ロール変更・無効化時は既存セッションを破棄
    if profile.role != old_role or profile.is_active != old_active:
        count = await invalidate_user_sessions(r, user_id)
        logger.info(f"セッション無効化: user={user_id}, sessions={count}")
    return profile


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    r=Depends(get_redis),
    actor: Actor = Depends(require_admin),
):
    """ユーザー削除"""
    user_service.delete_account(db, actor, user_id)
    await invalidate_user_sessions(r, user_id)
    return {"message": "User deleted"}
