"""認証ビジネスロジック"""
import re
from typing import Optional

import bcrypt
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.models.profile import Profile
from app.models.user import User
from app.core.logging import get_logger

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    """パスワードをbcryptでハッシュ化"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """パスワードを検証"""
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def validate_password_strength(password: str) -> str:
    """
    パスワード強度チェック
    - 8文字以上
    - 大文字、小文字、数字、記号のうち3種類以上を含む
    """
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters")

    categories = 0
    if re.search(r"[A-Z]", password):
        categories += 1
    if re.search(r"[a-z]", password):
        categories += 1
    if re.search(r"[0-9]", password):
        categories += 1
    if re.search(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>\/?~`]", password):
        categories += 1

    if categories < 3:
        raise ValueError(
            "Password must contain at least 3 of: uppercase, lowercase, digits, symbols"
        )

    return password


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_profile(db: Session, user_id: int) -> Optional[Profile]:
    return db.query(Profile).filter(Profile.id == user_id).first()


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    """メールアドレス + パスワードで認証。失敗時はNone"""
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"ログイン失敗: {email}")
        return None
    return user


def actor_for(profile: Profile, session_id: Optional[str] = None) -> Actor:
    """プロフィールから操作者コンテキストを作成"""
    return Actor(
        user_id=profile.id,
        email=profile.email,
        role=profile.role,
        full_name=profile.full_name,
        session_id=session_id,
    )
