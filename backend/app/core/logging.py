import json
import logging
import sys
from datetime import datetime, timezone

# 出力が多すぎるライブラリのロガー
QUIET_LOGGERS = ("sqlalchemy.engine", "multipart", "python_multipart")


class JSONFormatter(logging.Formatter):
    """1行1レコードのJSONログ"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}:{record.lineno}",
            "message": record.getMessage(),
        }
        data = getattr(record, "event_data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(debug: bool = False) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_event(logger: logging.Logger, message: str, level: int = logging.INFO, **data) -> None:
    """集計値などを data フィールドに載せて出力 (保存・取り込み・ユーザー操作)"""
    logger.log(level, message, extra={"event_data": data})
