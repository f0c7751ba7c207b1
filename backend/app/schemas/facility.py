from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel

from app.schemas.questionnaire import VersionDetail

# 数値項目は空文字 (クリア) も受け付ける
NumberInput = Optional[Union[float, str]]


class FacilityCreate(BaseModel):
    venue_name: str
    venue_address: Optional[str] = None
    town_suburb: Optional[str] = None
    postcode: Optional[str] = None
    state: Optional[str] = None
    latitude: NumberInput = None
    longitude: NumberInput = None


class FacilitySave(BaseModel):
    """施設項目は送信されたものだけ比較する"""

    venue_name: Optional[str] = None
    venue_address: Optional[str] = None
    town_suburb: Optional[str] = None
    postcode: Optional[str] = None
    state: Optional[str] = None
    latitude: NumberInput = None
    longitude: NumberInput = None
    # question_id → 回答 (checkboxは選択値のリスト)
    answers: dict[int, Union[list[str], str, None]] = {}
    audit_id: Optional[int] = None
    revision: Optional[int] = None


class FacilityInfo(BaseModel):
    id: str
    venue_name: str
    venue_address: Optional[str] = None
    town_suburb: Optional[str] = None
    postcode: Optional[str] = None
    state: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    revision: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FacilityListItem(FacilityInfo):
    answers: dict[str, str] = {}


class TooltipLine(BaseModel):
    label: str
    value: str


class MapMarkerInfo(BaseModel):
    id: str
    venue_name: str
    latitude: float
    longitude: float
    tooltip: list[TooltipLine]


class AuditInfo(BaseModel):
    id: int
    questionnaire_version_id: int
    audit_date: date
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    # question_id → 回答値
    answers: dict[int, Optional[str]] = {}

    model_config = {"from_attributes": True}


class FacilityDetailInfo(BaseModel):
    facility: FacilityInfo
    audits: list[AuditInfo]
    questionnaire: Optional[VersionDetail] = None
    visible_question_ids: list[int] = []


class ChangeLogInfo(BaseModel):
    id: int
    facility_id: Optional[str] = None
    audit_id: Optional[int] = None
    entity_type: str
    field_name: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: Optional[int] = None
    changed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SaveResponse(BaseModel):
    facility: FacilityInfo
    audit_id: Optional[int] = None
    changes: int
