from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """アプリケーション設定"""

    # データベース
    DATABASE_URL: str = "mysql+pymysql://audituser:auditpassword@db:3306/facility_audit?charset=utf8mb4"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # サービス設定
    SITE_NAME: str = "Facility Audit Dashboard"
    ALLOWED_ORIGINS: str = "http://localhost:8000,http://localhost:3000"

    # セッション
    SESSION_TIMEOUT_MINUTES: int = 60
    CSRF_ENABLED: bool = True
    RATE_LIMIT_ENABLED: bool = True

    # 変更履歴・インポート
    CHANGE_LOG_PAGE_LIMIT: int = 100
    IMPORT_MAX_ROWS: int = 5000

    # 環境
    ENV: str = "development"
    DEBUG: bool = True

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
