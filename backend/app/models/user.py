from sqlalchemy import Column, Integer, String, DateTime, func
from app.core.database import Base


class User(Base):
    """認証ID (メール + パスワードハッシュ)。表示名・ロールは Profile 側"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
