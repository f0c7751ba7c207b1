"""施設: 一覧・地図・詳細・作成・保存・削除・変更履歴"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import get_db
from app.schemas.facility import (
    ChangeLogInfo,
    FacilityCreate,
    FacilityDetailInfo,
    FacilityInfo,
    FacilityListItem,
    FacilitySave,
    MapMarkerInfo,
    SaveResponse,
    TooltipLine,
)
from app.schemas.display_config import FilterOption, FilterConfigInfo
from app.schemas.questionnaire import version_detail
from app.services import answer_service, facility_service, facility_view_service
from app.services.facility_fields import FACILITY_FIELD_MAP
from app.routers.deps import require_login

router = APIRouter(prefix="/api/facilities", tags=["facilities"])


def _filters(request: Request):
    """`<field_source>:<field_key>=<value>` 形式のクエリを取り出す"""
    return facility_view_service.parse_filter_params(dict(request.query_params))


@router.get("", response_model=list[FacilityListItem])
async def list_facilities(
    request: Request,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_login),
):
    """施設一覧 (検索 + 設定された絞り込み)"""
    rows = facility_view_service.list_facility_rows(db, search, _filters(request))
    return [
        FacilityListItem(**FacilityInfo.model_validate(r.facility).model_dump(), answers=r.answers)
        for r in rows
    ]


@router.get("/map", response_model=list[MapMarkerInfo])
async def facility_map(
    request: Request,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_login),
):
    """地図マーカー (座標のある施設のみ)"""
    return [
        MapMarkerInfo(
            id=m.facility.id,
            venue_name=m.facility.venue_name,
            latitude=m.facility.latitude,
            longitude=m.facility.longitude,
            tooltip=[TooltipLine(label=label, value=value) for label, value in m.tooltip],
        )
        for m in facility_view_service.map_markers(db, search, _filters(request))
    ]


@router.get("/filter-options", response_model=list[FilterOption])
async def filter_options(db: Session = Depends(get_db), _: Actor = Depends(require_login)):
    """有効な絞り込み項目と選択肢"""
    return [
        FilterOption(**FilterConfigInfo.model_validate(config).model_dump(), options=choices)
        for config, choices in facility_view_service.filter_options(db)
    ]


@router.post("", response_model=FacilityInfo, status_code=201)
async def create_facility(
    data: FacilityCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_login),
):
    return facility_service.create_facility(db, actor, data.model_dump())


@router.get("/{facility_id}", response_model=FacilityDetailInfo)
async def get_facility(facility_id: str, db: Session = Depends(get_db), _: Actor = Depends(require_login)):
    """施設詳細 + 監査履歴 + 公開中の質問票"""
    detail = facility_service.get_facility_detail(db, facility_id)
    return FacilityDetailInfo(
        facility=FacilityInfo.model_validate(detail.facility),
        audits=[
            {
                "id": a.audit.id,
                "questionnaire_version_id": a.audit.questionnaire_version_id,
                "audit_date": a.audit.audit_date,
                "notes": a.audit.notes,
                "created_by": a.audit.created_by,
                "created_at": a.audit.created_at,
                "answers": a.answers,
            }
            for a in detail.audits
        ],
        questionnaire=version_detail(detail.questionnaire) if detail.questionnaire else None,
        visible_question_ids=sorted(detail.visible_question_ids),
    )


@router.put("/{facility_id}", response_model=SaveResponse)
async def save_facility(
    facility_id: str,
    data: FacilitySave,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_login),
):
    """施設項目と回答の保存 (変更点のみ記録)"""
    facility = facility_service.get_facility(db, facility_id)
    facility_edits = data.model_dump(exclude_unset=True, include=set(FACILITY_FIELD_MAP))
    result = answer_service.save_facility(
        db,
        actor,
        facility,
        facility_edits,
        data.answers,
        audit_id=data.audit_id,
        revision=data.revision,
    )
    return SaveResponse(
        facility=FacilityInfo.model_validate(result.facility),
        audit_id=result.audit.id if result.audit else None,
        changes=len(result.changes),
    )


@router.delete("/{facility_id}")
async def delete_facility(facility_id: str, db: Session = Depends(get_db), actor: Actor = Depends(require_login)):
    """論理削除 (super_adminのみ)"""
    facility_service.delete_facility(db, actor, facility_id)
    return {"message": "Facility deleted"}


@router.get("/{facility_id}/change-logs", response_model=list[ChangeLogInfo])
async def change_logs(facility_id: str, db: Session = Depends(get_db), actor: Actor = Depends(require_login)):
    """変更履歴 (新しい順)"""
    if not actor.can_view_change_logs:
        raise HTTPException(status_code=403, detail="Admin access required")
    return facility_service.list_change_logs(db, facility_id)
