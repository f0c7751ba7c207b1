"""回答値の正規化とcheckbox値のエンコード"""
import json
import math
from typing import Any, Optional


def encode_checkbox_value(values: list[str]) -> str:
    """選択値リスト → JSON配列文字列"""
    return json.dumps(list(values), ensure_ascii=False, separators=(",", ":"))


def decode_checkbox_value(value: Optional[str]) -> list[str]:
    """JSON配列文字列 → 選択値リスト。空・不正な値は空リスト"""
    if not value:
        return []
    try:
        decoded = json.loads(value)
    except (TypeError, ValueError):
        return []
    if not isinstance(decoded, list):
        return []
    return [str(v) for v in decoded]


def normalize_answer_value(raw: Any) -> str:
    """比較用の回答文字列。未回答は空文字"""
    if raw is None:
        return ""
    if isinstance(raw, (list, tuple)):
        return encode_checkbox_value([str(v) for v in raw]) if raw else ""
    return str(raw)


def stored_value(value: str) -> Optional[str]:
    """保存・変更履歴用。空文字はNULLにする"""
    return value if value != "" else None


def parse_number(value: Any) -> Optional[float]:
    """有限の数値に変換。変換できない値・nan/inf・桁区切りの _ はNone"""
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and "_" in value:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
