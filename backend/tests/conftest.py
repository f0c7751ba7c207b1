import os

# app をインポートする前にテスト用の設定を入れる
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CSRF_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.core.actor import Actor
from app.core.database import Base, SessionLocal, engine, get_db
from app.main import app
from app.models.facility import Facility
from app.models.profile import Profile
from app.models.user import User
from app.routers.deps import get_current_actor
from app.services import questionnaire_service


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def make_actor(db, role: str, email: str) -> Actor:
    user = User(email=email, password_hash="x")
    db.add(user)
    db.flush()
    db.add(Profile(id=user.id, email=email, full_name=email.split("@")[0], role=role))
    db.commit()
    return Actor(user_id=user.id, email=email, role=role, full_name=email.split("@")[0])


@pytest.fixture
def super_admin(db):
    return make_actor(db, "super_admin", "root@example.com")


@pytest.fixture
def admin(db):
    return make_actor(db, "admin", "admin@example.com")


@pytest.fixture
def auditor(db):
    return make_actor(db, "auditor", "auditor@example.com")


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """get_current_actor を差し替えて指定ロールとして振る舞う"""

    def _login(actor: Actor):
        app.dependency_overrides[get_current_actor] = lambda: actor

    return _login


@pytest.fixture
def published(db, admin):
    """temperature (string) / rating (list) / facilities (checkbox) を持つ公開版"""
    version = questionnaire_service.create_version(db, admin, "Audit v1")
    section = questionnaire_service.add_section(db, version.id, "General")
    questionnaire_service.add_question(db, section.id, "Temperature", "string")
    questionnaire_service.add_question(db, section.id, "Rating", "list", ["1", "2", "3"])
    questionnaire_service.add_question(db, section.id, "Facilities", "checkbox", ["Toilets", "Parking", "Canteen"])
    questionnaire_service.publish_version(db, admin, version.id)
    return questionnaire_service.get_published_tree(db)


@pytest.fixture
def qids(published) -> dict[str, int]:
    """question_key → question_id"""
    return {q.question_key: q.id for q in published.all_questions()}


@pytest.fixture
def facility(db, admin):
    f = Facility(venue_name="A", postcode="3000", state="VIC", town_suburb="Carlton", created_by=admin.user_id)
    db.add(f)
    db.commit()
    db.refresh(f)
    return f
