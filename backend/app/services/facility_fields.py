"""施設項目レジストリ

文字列キーで施設の属性を読み書きする箇所 (差分検出・CSV・絞り込み・ツールチップ) は
すべてこのレジストリ経由で行う。未登録のキーは設定保存時に弾く。
"""
from dataclasses import dataclass
from typing import Any, Optional

from app.core.errors import ValidationError
from app.models.facility import Facility
from app.services.answer_values import parse_number


@dataclass(frozen=True)
class FacilityField:
    name: str
    label: str
    numeric: bool = False
    required: bool = False

    def get(self, facility: Facility) -> Any:
        return getattr(facility, self.name)

    def set(self, facility: Facility, value: Any) -> None:
        setattr(facility, self.name, value)

    def parse(self, raw: Any) -> Any:
        """フォーム/CSVの入力値を保存用の値に変換 (空はNone)"""
        if raw is None:
            value = None
        elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
            value = raw
        else:
            value = str(raw).strip() or None

        if value is None:
            if self.required:
                raise ValidationError(f"{self.name} is required")
            return None
        if self.numeric:
            number = parse_number(value)
            if number is None:
                raise ValidationError(f"{self.name} must be a number")
            return number
        return value

    def to_text(self, value: Any) -> Optional[str]:
        """比較・変更履歴用の文字列表現 (空はNone)"""
        if value is None or value == "":
            return None
        if self.numeric:
            return str(float(value))
        return str(value)


FACILITY_FIELDS = (
    FacilityField("venue_name", "Venue Name", required=True),
    FacilityField("venue_address", "Venue Address"),
    FacilityField("town_suburb", "Town/Suburb"),
    FacilityField("postcode", "Postcode"),
    FacilityField("state", "State"),
    FacilityField("latitude", "Latitude", numeric=True),
    FacilityField("longitude", "Longitude", numeric=True),
)

FACILITY_FIELD_MAP = {f.name: f for f in FACILITY_FIELDS}

# 検索ボックスの対象項目
SEARCH_FIELDS = ("venue_name", "venue_address", "town_suburb", "state")


def get_field(name: str) -> FacilityField:
    field = FACILITY_FIELD_MAP.get(name)
    if field is None:
        raise ValidationError(f"Unknown facility field: {name}")
    return field


def _check_registry() -> None:
    columns = set(Facility.__table__.columns.keys())
    missing = [f.name for f in FACILITY_FIELDS if f.name not in columns]
    if missing:
        raise RuntimeError(f"facility field registry has unknown columns: {missing}")


_check_registry()
