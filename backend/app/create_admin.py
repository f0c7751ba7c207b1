"""初期super_adminアカウント作成スクリプト"""
import os

from app.core.database import SessionLocal
from app.models.profile import Profile
from app.models.user import User
from app.services.auth_service import hash_password

ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "Admin-pass1")
ADMIN_NAME = os.environ.get("ADMIN_NAME", "Super Admin")


def main():
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == ADMIN_EMAIL).first()
        if existing:
            print(f"既に存在します: {ADMIN_EMAIL}")
            return

        user = User(email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD))
        db.add(user)
        db.flush()
        db.add(Profile(id=user.id, email=ADMIN_EMAIL, full_name=ADMIN_NAME, role="super_admin", is_active=True))
        db.commit()
        print(f"super_admin作成完了: email={ADMIN_EMAIL}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
