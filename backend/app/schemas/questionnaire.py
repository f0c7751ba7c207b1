from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.services.questionnaire_service import VersionTree


class VersionCreate(BaseModel):
    name: str = Field(max_length=255)
    description: Optional[str] = None


class SectionRequest(BaseModel):
    name: str = Field(max_length=255)
    description: Optional[str] = None


class MoveRequest(BaseModel):
    direction: Literal["up", "down"]


class QuestionRequest(BaseModel):
    label: str = Field(max_length=255)
    question_type: Literal["string", "number", "list", "radio", "checkbox"] = "string"
    options: Optional[list[str]] = None
    description: Optional[str] = None
    is_required: bool = False


class VersionInfo(BaseModel):
    id: int
    version_number: int
    name: str
    description: Optional[str] = None
    status: str
    published_at: Optional[datetime] = None
    published_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class QuestionInfo(BaseModel):
    id: int
    section_id: int
    question_key: str
    label: str
    description: Optional[str] = None
    question_type: str
    options: Optional[list[str]] = None
    is_required: bool
    sort_order: int
    is_retired: bool
    retired_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SectionInfo(BaseModel):
    id: int
    questionnaire_version_id: int
    name: str
    description: Optional[str] = None
    sort_order: int
    questions: list[QuestionInfo] = []

    model_config = {"from_attributes": True}


class VersionDetail(VersionInfo):
    sections: list[SectionInfo] = []


def version_detail(tree: VersionTree) -> VersionDetail:
    """VersionTree → レスポンス"""
    detail = VersionDetail.model_validate(tree.version)
    detail.sections = [
        SectionInfo(
            id=s.section.id,
            questionnaire_version_id=s.section.questionnaire_version_id,
            name=s.section.name,
            description=s.section.description,
            sort_order=s.section.sort_order,
            questions=[QuestionInfo.model_validate(q) for q in s.questions],
        )
        for s in tree.sections
    ]
    return detail
