from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
from app.core.config import settings
from app.core.errors import ConflictError, StoreError
from app.core.logging import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    """接続URLごとのエンジン設定"""
    if url.startswith("sqlite"):
        # テスト用: 単一接続を共有
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "echo": settings.DEBUG,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """FastAPI依存関数: DBセッション取得"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session, error_message: str, conflict_message: str | None = None) -> None:
    """コミット。失敗時はロールバックしてドメインエラーに変換"""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"一意制約違反: {error_message}", exc_info=True)
        raise ConflictError(conflict_message or error_message)
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"コミット失敗: {error_message}", exc_info=True)
        raise StoreError(error_message)


def check_db_connection() -> bool:
    """DB接続チェック"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
