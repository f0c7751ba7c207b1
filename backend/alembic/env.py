import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

# alembic は backend/ で実行する
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import app.models  # noqa: F401,E402  テーブル定義の登録
from app.core.config import settings  # noqa: E402
from app.core.database import Base  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = settings.DATABASE_URL


def _options(url: str) -> dict:
    # SQLiteは ALTER TABLE が限られるのでバッチモード
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


if context.is_offline_mode():
    context.configure(url=DATABASE_URL, literal_binds=True, **_options(DATABASE_URL))
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **_options(DATABASE_URL))
        with context.begin_transaction():
            context.run_migrations()
