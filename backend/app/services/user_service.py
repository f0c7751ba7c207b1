"""ユーザー管理: 作成 (補償削除つき)・更新・削除・CSV一括登録"""
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from app.core.actor import Actor, ROLES
from app.core.database import commit_or_raise
from app.core.errors import (
    AppError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    ValidationError,
)
from app.core.logging import get_logger, log_event
from app.models.profile import Profile
from app.models.user import User
from app.services import auth_service

logger = get_logger(__name__)

USER_IMPORT_HEADER = ("email", "password", "full_name", "role")


@dataclass
class BulkUserResult:
    success: int = 0
    errors: list[dict] = field(default_factory=list)


def _require_user_manager(actor: Actor) -> None:
    if not actor.can_manage_users:
        logger.warning(f"ユーザー管理拒否: user={actor.user_id} ({actor.role})")
        raise PermissionDeniedError("Admin access required")


def _check_assignable(actor: Actor, role: str) -> None:
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")
    if not actor.can_assign_role(role):
        logger.warning(f"ロール付与拒否: {role} by={actor.user_id} ({actor.role})")
        raise PermissionDeniedError("Only Super Admins can create admin users")


def _check_target(actor: Actor, profile: Profile) -> None:
    """adminが操作できるのはauditorのみ"""
    if not actor.can_manage_all_users and profile.role != "auditor":
        logger.warning(f"ユーザー操作拒否: target={profile.id} by={actor.user_id}")
        raise PermissionDeniedError("Admins can only manage auditor accounts")


def list_profiles(db: Session, actor: Actor) -> list[Profile]:
    _require_user_manager(actor)
    return db.query(Profile).order_by(Profile.created_at.desc(), Profile.id.desc()).all()


def get_profile(db: Session, user_id: int) -> Profile:
    profile = auth_service.get_profile(db, user_id)
    if not profile:
        raise NotFoundError("User not found")
    return profile


def _remove_identity(db: Session, user_id: int) -> None:
    """プロフィール作成失敗時に認証IDを削除"""
    db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    commit_or_raise(db, "Failed to roll back account creation")
    logger.info(f"補償削除: user={user_id}")


def create_account(
    db: Session,
    actor: Actor,
    email: str,
    password: str,
    full_name: Optional[str] = None,
    role: str = "auditor",
) -> Profile:
    """認証ID → プロフィールの順に作成。プロフィール失敗時は認証IDを削除"""
    _require_user_manager(actor)
    email = (email or "").strip().lower()
    if not email or not password:
        raise ValidationError("Email and password are required")
    role = (role or "auditor").strip().lower()
    _check_assignable(actor, role)
    if auth_service.get_user_by_email(db, email):
        raise ConflictError("A user with this email already exists")

    user = User(email=email, password_hash=auth_service.hash_password(password))
    db.add(user)
    commit_or_raise(db, "Failed to create user", conflict_message="A user with this email already exists")
    user_id = user.id

    db.add(Profile(id=user_id, email=email, full_name=(full_name or "").strip() or None, role=role))
    try:
        commit_or_raise(db, "Failed to create user profile")
    except (ConflictError, StoreError):
        _remove_identity(db, user_id)
        raise StoreError("Failed to create user profile")

    log_event(logger, f"ユーザー作成: {email}", user_id=user_id, role=role, created_by=actor.user_id)
    return get_profile(db, user_id)


def update_account(
    db: Session,
    actor: Actor,
    user_id: int,
    full_name: Optional[str] = None,
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Profile:
    _require_user_manager(actor)
    profile = get_profile(db, user_id)
    _check_target(actor, profile)

    if profile.id == actor.user_id and (
        (role is not None and role != profile.role) or is_active is False
    ):
        raise ValidationError("You cannot change your own role or deactivate yourself")

    if full_name is not None:
        profile.full_name = full_name.strip() or None
    if role is not None:
        _check_assignable(actor, role)
        profile.role = role
    if is_active is not None:
        profile.is_active = is_active

    commit_or_raise(db, "Failed to update user")
    db.refresh(profile)
    logger.info(f"ユーザー更新: {profile.email} (role={profile.role}, active={profile.is_active})")
    return profile


def delete_account(db: Session, actor: Actor, user_id: int) -> None:
    _require_user_manager(actor)
    if user_id == actor.user_id:
        raise ValidationError("You cannot delete your own account")
    profile = get_profile(db, user_id)
    _check_target(actor, profile)

    db.delete(profile)
    db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    commit_or_raise(db, "Failed to delete user")
    logger.info(f"ユーザー削除: user={user_id} by={actor.user_id}")


def bulk_import_users(db: Session, actor: Actor, rows: list[dict]) -> BulkUserResult:
    """CSV一括登録。行ごとにエラーを記録し、処理は継続する (1行目はヘッダー)"""
    _require_user_manager(actor)
    result = BulkUserResult()

    for index, row in enumerate(rows, start=2):
        email = (row.get("email") or "").strip()
        password = (row.get("password") or "").strip()
        role = (row.get("role") or "").strip().lower() or "auditor"

        if not email or not password:
            result.errors.append({"row": index, "message": "Email and password are required"})
            continue
        if role not in ROLES:
            result.errors.append({"row": index, "message": f"Invalid role: {role}"})
            continue
        if not actor.can_assign_role(role):
            result.errors.append({"row": index, "message": "Only Super Admins can create admin users"})
            continue
        try:
            auth_service.validate_password_strength(password)
            create_account(db, actor, email, password, row.get("full_name"), role)
        except ValueError as e:
            result.errors.append({"row": index, "message": str(e)})
            continue
        except AppError as e:
            result.errors.append({"row": index, "message": e.message})
            continue
        result.success += 1

    log_event(
        logger,
        "ユーザー一括登録完了",
        success=result.success,
        errors=len(result.errors),
        imported_by=actor.user_id,
    )
    return result
