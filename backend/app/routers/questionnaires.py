"""質問票: 公開版の取得と管理画面での編集"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import get_db
from app.schemas.questionnaire import (
    MoveRequest,
    QuestionInfo,
    QuestionRequest,
    SectionInfo,
    SectionRequest,
    VersionCreate,
    VersionDetail,
    VersionInfo,
    version_detail,
)
from app.services import questionnaire_service
from app.routers.deps import require_login, require_questionnaire_admin

router = APIRouter(prefix="/api/questionnaires", tags=["questionnaires"])
admin_router = APIRouter(prefix="/api/admin/questionnaires", tags=["admin-questionnaires"])


@router.get("/published", response_model=VersionDetail)
async def get_published(db: Session = Depends(get_db), _: Actor = Depends(require_login)):
    """公開中の質問票"""
    tree = questionnaire_service.get_published_tree(db)
    if tree is None:
        raise HTTPException(status_code=404, detail="No published questionnaire")
    return version_detail(tree)


# --- 管理画面 ---
@admin_router.get("", response_model=list[VersionInfo])
async def list_versions(db: Session = Depends(get_db), _: Actor = Depends(require_questionnaire_admin)):
    return questionnaire_service.list_versions(db)


@admin_router.get("/{version_id}", response_model=VersionDetail)
async def get_version(
    version_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_questionnaire_admin),
):
    return version_detail(questionnaire_service.get_version_tree(db, version_id))


@admin_router.post("", response_model=VersionInfo, status_code=201)
async def create_version(
    data: VersionCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_questionnaire_admin),
):
    """新規バージョン (draft)"""
    return questionnaire_service.create_version(db, actor, data.name, data.description)


@admin_router.post("/{version_id}/publish", response_model=VersionInfo)
async def publish_version(
    version_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_questionnaire_admin),
):
    """公開 (既存の公開版はアーカイブ)"""
    return questionnaire_service.publish_version(db, actor, version_id)


@admin_router.post("/{version_id}/sections", response_model=SectionInfo, status_code=201)
async def add_section(
    version_id: int,
    data: SectionRequest,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_questionnaire_admin),
):
    return questionnaire_service.add_section(db, version_id, data.name, data.description)


@admin_router.put("/sections/{section_id}", response_model=SectionInfo)
async def edit_section(
    section_id: int,
    data: SectionRequest,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_questionnaire_admin),
):
    return questionnaire_service.edit_section(db, section_id, data.name, data.description)


@admin_router.delete("/sections/{section_id}")
async def delete_section(
    section_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_questionnaire_admin),
):
    questionnaire_service.delete_section(db, section_id)
    return {"message": "Section deleted"}


@admin_router.post("/sections/{section_id}/move", response_model=list[SectionInfo])
async def move_section(
    section_id: int,
    data: MoveRequest,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_questionnaire_admin),
):
    """隣のセクションと順序を入れ替え"""
    return questionnaire_service.move_section(db, section_id, data.direction)


@admin_router.post("/sections/{section_id}/questions", response_model=QuestionInfo, status_code=201)
async def add_question(
    section_id: int,
    data: QuestionRequest,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_questionnaire_admin),
):
    return questionnaire_service.add_question(
        db,
        section_id,
        label=data.label,
        question_type=data.question_type,
        options=data.options,
        description=data.description,
        is_required=data.is_required,
    )


@admin_router.put("/questions/{question_id}", response_model=QuestionInfo)
async def edit_question(
    question_id: int,
    data: QuestionRequest,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_questionnaire_admin),
):
    return questionnaire_service.edit_question(
        db,
        question_id,
        label=data.label,
        question_type=data.question_type,
        options=data.options,
        description=data.description,
        is_required=data.is_required,
    )


@admin_router.post("/questions/{question_id}/retire", response_model=QuestionInfo)
async def retire_question(
    question_id: int,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_questionnaire_admin),
):
    """質問の廃止 (取り消し不可)"""
    return questionnaire_service.retire_question(db, question_id)
