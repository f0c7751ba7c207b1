"""施設の取得・作成・論理削除・変更履歴"""
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.config import settings
from app.core.database import commit_or_raise
from app.core.errors import NotFoundError, PermissionDeniedError
from app.core.logging import get_logger
from app.models.audit import Audit
from app.models.audit_answer import AuditAnswer
from app.models.change_log import ChangeLog
from app.models.facility import Facility
from app.services import questionnaire_service
from app.services.facility_fields import FACILITY_FIELDS
from app.services.questionnaire_service import VersionTree

logger = get_logger(__name__)

CREATED_FIELD = "_created"


@dataclass
class AuditDetail:
    audit: Audit
    answers: dict[int, Optional[str]] = field(default_factory=dict)


@dataclass
class FacilityDetail:
    facility: Facility
    audits: list[AuditDetail]
    questionnaire: Optional[VersionTree]
    # 廃止済みでも回答がある質問は表示対象
    visible_question_ids: set[int] = field(default_factory=set)


def get_facility(db: Session, facility_id: str) -> Facility:
    facility = (
        db.query(Facility)
        .filter(Facility.id == facility_id, Facility.is_deleted == False)  # noqa: E712
        .first()
    )
    if not facility:
        raise NotFoundError("Facility not found")
    return facility


def list_facilities(db: Session) -> list[Facility]:
    return (
        db.query(Facility)
        .filter(Facility.is_deleted == False)  # noqa: E712
        .order_by(Facility.venue_name, Facility.id)
        .all()
    )


def build_facility(values: dict[str, Any], actor: Actor, facility_id: Optional[str] = None) -> Facility:
    """レジストリ経由で施設を組み立てる (venue_name必須)"""
    facility = Facility(id=facility_id, created_by=actor.user_id) if facility_id else Facility(created_by=actor.user_id)
    for facility_field in FACILITY_FIELDS:
        facility_field.set(facility, facility_field.parse(values.get(facility_field.name)))
    return facility


def created_log(facility: Facility, actor: Actor) -> ChangeLog:
    return ChangeLog(
        facility_id=facility.id,
        entity_type="facility",
        field_name=CREATED_FIELD,
        old_value=None,
        new_value=facility.venue_name,
        changed_by=actor.user_id,
    )


def create_facility(db: Session, actor: Actor, values: dict[str, Any]) -> Facility:
    facility = build_facility(values, actor)
    db.add(facility)
    db.flush()
    db.add(created_log(facility, actor))
    commit_or_raise(db, "Failed to create facility")
    db.refresh(facility)
    logger.info(f"施設作成: {facility.id} ({facility.venue_name}) by={actor.user_id}")
    return facility


def delete_facility(db: Session, actor: Actor, facility_id: str) -> None:
    """論理削除 (super_adminのみ)"""
    if not actor.can_delete_facilities:
        logger.warning(f"施設削除拒否: {facility_id} by={actor.user_id} ({actor.role})")
        raise PermissionDeniedError("Only Super Admins can delete facilities")

    facility = get_facility(db, facility_id)
    facility.is_deleted = True
    facility.revision = facility.revision + 1
    db.add(ChangeLog(
        facility_id=facility.id,
        entity_type="facility",
        field_name="is_deleted",
        old_value="false",
        new_value="true",
        changed_by=actor.user_id,
    ))
    commit_or_raise(db, "Failed to delete facility")
    logger.info(f"施設削除: {facility_id} by={actor.user_id}")


def list_change_logs(db: Session, facility_id: str, limit: Optional[int] = None) -> list[ChangeLog]:
    """変更履歴 (新しい順)"""
    get_facility(db, facility_id)
    return (
        db.query(ChangeLog)
        .filter(ChangeLog.facility_id == facility_id)
        .order_by(ChangeLog.changed_at.desc(), ChangeLog.id.desc())
        .limit(limit or settings.CHANGE_LOG_PAGE_LIMIT)
        .all()
    )


def get_facility_detail(db: Session, facility_id: str) -> FacilityDetail:
    """施設 + 監査一覧 (新しい順) + 公開中の質問票"""
    facility = get_facility(db, facility_id)
    audits = (
        db.query(Audit)
        .filter(Audit.facility_id == facility.id)
        .order_by(Audit.created_at.desc(), Audit.id.desc())
        .all()
    )
    audit_ids = [a.id for a in audits]
    rows = db.query(AuditAnswer).filter(AuditAnswer.audit_id.in_(audit_ids)).all() if audit_ids else []

    answers: dict[int, dict[int, Optional[str]]] = {}
    for row in rows:
        answers.setdefault(row.audit_id, {})[row.question_id] = row.value

    # 過去のどの監査でも回答のある質問
    answered = {qid for by_question in answers.values() for qid, value in by_question.items() if value}

    tree = questionnaire_service.get_published_tree(db)
    visible: set[int] = set()
    if tree is not None:
        for question in tree.all_questions():
            if not question.is_retired or question.id in answered:
                visible.add(question.id)

    return FacilityDetail(
        facility=facility,
        audits=[AuditDetail(audit=a, answers=answers.get(a.id, {})) for a in audits],
        questionnaire=tree,
        visible_question_ids=visible,
    )
