import pytest

from app.core.errors import ConflictError, PermissionDeniedError, StoreError, ValidationError
from app.models.profile import Profile
from app.models.user import User
from app.services import auth_service, user_service
from conftest import make_actor

PASSWORD = "Passw0rd!"


def test_admin_creates_auditor(db, admin):
    profile = user_service.create_account(db, admin, " New@Example.com ", PASSWORD, "New User")

    assert (profile.email, profile.role, profile.full_name) == ("new@example.com", "auditor", "New User")
    user = db.query(User).filter(User.id == profile.id).one()
    assert auth_service.verify_password(PASSWORD, user.password_hash)


def test_only_super_admin_creates_admins(db, admin, super_admin):
    with pytest.raises(PermissionDeniedError, match="Only Super Admins can create admin users"):
        user_service.create_account(db, admin, "boss@example.com", PASSWORD, role="admin")
    assert user_service.create_account(db, super_admin, "boss@example.com", PASSWORD, role="admin").role == "admin"


def test_auditor_cannot_manage_users(db, auditor):
    with pytest.raises(PermissionDeniedError):
        user_service.create_account(db, auditor, "x@example.com", PASSWORD)
    with pytest.raises(PermissionDeniedError):
        user_service.list_profiles(db, auditor)


def test_invalid_input(db, admin, super_admin):
    with pytest.raises(ValidationError):
        user_service.create_account(db, super_admin, "", PASSWORD)
    with pytest.raises(ValidationError, match="Invalid role: owner"):
        user_service.create_account(db, super_admin, "x@example.com", PASSWORD, role="owner")
    with pytest.raises(ConflictError):
        user_service.create_account(db, super_admin, "ADMIN@example.com", PASSWORD)


def test_failed_profile_removes_identity(db, super_admin):
    # 認証IDのないプロフィールが同じメールを使っている
    db.add(Profile(id=999, email="orphan@example.com", role="auditor"))
    db.commit()
    users_before = db.query(User).count()

    with pytest.raises(StoreError, match="Failed to create user profile"):
        user_service.create_account(db, super_admin, "orphan@example.com", PASSWORD)

    assert db.query(User).count() == users_before
    assert auth_service.get_user_by_email(db, "orphan@example.com") is None


def test_bulk_import_records_row_errors(db, admin):
    rows = [
        {"email": "a@example.com", "password": PASSWORD, "full_name": "A", "role": ""},
        {"email": "", "password": PASSWORD},
        {"email": "b@example.com", "password": PASSWORD, "role": "admin"},
        {"email": "c@example.com", "password": PASSWORD, "role": "owner"},
        {"email": "d@example.com", "password": "short"},
        {"email": "A@example.com", "password": PASSWORD},
    ]
    result = user_service.bulk_import_users(db, admin, rows)

    assert result.success == 1
    assert result.errors == [
        {"row": 3, "message": "Email and password are required"},
        {"row": 4, "message": "Only Super Admins can create admin users"},
        {"row": 5, "message": "Invalid role: owner"},
        {"row": 6, "message": "Password must be at least 8 characters"},
        {"row": 7, "message": "A user with this email already exists"},
    ]
    assert auth_service.get_profile(db, auth_service.get_user_by_email(db, "a@example.com").id).role == "auditor"


def test_admin_manages_only_auditors(db, admin, auditor):
    other_admin = make_actor(db, "admin", "other@example.com")

    with pytest.raises(PermissionDeniedError):
        user_service.update_account(db, admin, other_admin.user_id, full_name="Renamed")
    with pytest.raises(PermissionDeniedError):
        user_service.delete_account(db, admin, other_admin.user_id)

    profile = user_service.update_account(db, admin, auditor.user_id, full_name="Field Auditor", is_active=False)
    assert (profile.full_name, profile.is_active) == ("Field Auditor", False)


def test_cannot_change_own_role_or_delete_self(db, super_admin):
    with pytest.raises(ValidationError):
        user_service.update_account(db, super_admin, super_admin.user_id, role="auditor")
    with pytest.raises(ValidationError):
        user_service.update_account(db, super_admin, super_admin.user_id, is_active=False)
    with pytest.raises(ValidationError):
        user_service.delete_account(db, super_admin, super_admin.user_id)

    assert user_service.update_account(db, super_admin, super_admin.user_id, full_name="Root").full_name == "Root"


def test_super_admin_promotes_and_deletes(db, super_admin, auditor):
    assert user_service.update_account(db, super_admin, auditor.user_id, role="admin").role == "admin"

    user_service.delete_account(db, super_admin, auditor.user_id)
    assert auth_service.get_profile(db, auditor.user_id) is None
    assert db.query(User).filter(User.id == auditor.user_id).count() == 0
