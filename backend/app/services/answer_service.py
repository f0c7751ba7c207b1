"""施設項目・監査回答の差分検出と変更履歴の記録"""
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import commit_or_raise
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger, log_event
from app.models.audit import Audit
from app.models.audit_answer import AuditAnswer
from app.models.change_log import ChangeLog
from app.models.facility import Facility
from app.models.question import Question
from app.services import questionnaire_service
from app.services.answer_values import decode_checkbox_value, normalize_answer_value, parse_number, stored_value
from app.services.facility_fields import get_field
from app.services.questionnaire_service import VersionTree

logger = get_logger(__name__)


@dataclass
class FieldChange:
    field_name: str
    old_value: Optional[str]
    new_value: Optional[str]


@dataclass
class AnswerChange:
    question: Question
    field_name: str
    old_value: str
    new_value: str
    row: Optional[AuditAnswer] = None


@dataclass
class SaveResult:
    facility: Facility
    audit: Optional[Audit]
    changes: list[ChangeLog] = field(default_factory=list)


# --- 施設項目 ---
def diff_facility(facility: Facility, edits: dict[str, Any]) -> tuple[dict[str, Any], list[FieldChange]]:
    """送信された項目のうち値が変わったものだけ返す (文字列比較、空はNone)"""
    updates: dict[str, Any] = {}
    changes: list[FieldChange] = []
    for name, raw in edits.items():
        facility_field = get_field(name)
        new_value = facility_field.parse(raw)
        old_text = facility_field.to_text(facility_field.get(facility))
        new_text = facility_field.to_text(new_value)
        if old_text != new_text:
            updates[name] = new_value
            changes.append(FieldChange(name, old_text, new_text))
    return updates, changes


# --- 監査 ---
def latest_audit(db: Session, facility_id: str, version_id: int) -> Optional[Audit]:
    """施設 × 質問票バージョンの最新監査 (作成日時順)"""
    return (
        db.query(Audit)
        .filter(Audit.facility_id == facility_id, Audit.questionnaire_version_id == version_id)
        .order_by(Audit.created_at.desc(), Audit.id.desc())
        .first()
    )


def get_facility_audit(db: Session, facility_id: str, audit_id: int) -> Audit:
    audit = db.query(Audit).filter(Audit.id == audit_id, Audit.facility_id == facility_id).first()
    if not audit:
        raise NotFoundError("Audit not found")
    return audit


def answers_by_question(db: Session, audit: Optional[Audit]) -> dict[int, AuditAnswer]:
    if audit is None:
        return {}
    rows = db.query(AuditAnswer).filter(AuditAnswer.audit_id == audit.id).all()
    return {row.question_id: row for row in rows}


def new_audit(db: Session, actor: Actor, facility_id: str, version_id: int) -> Audit:
    """監査を作成してIDを確定 (コミットはしない)"""
    audit = Audit(facility_id=facility_id, questionnaire_version_id=version_id, created_by=actor.user_id)
    db.add(audit)
    db.flush()
    logger.info(f"監査作成: facility={facility_id}, version={version_id}")
    return audit


# --- 回答 ---
def validate_answer(question: Question, value: str) -> None:
    """変更される回答値の検証"""
    if question.is_retired:
        raise ValidationError(f"Question '{question.question_key}' is retired")
    if value == "":
        return

    options = question.options or []
    if question.question_type == "number":
        if parse_number(value) is None:
            raise ValidationError(f"{question.label} must be a number")
    elif question.question_type in ("list", "radio"):
        if value not in options:
            raise ValidationError(f"{question.label}: '{value}' is not a valid option")
    elif question.question_type == "checkbox":
        selected = decode_checkbox_value(value)
        if not selected and value != "[]":
            raise ValidationError(f"{question.label}: invalid checkbox value")
        invalid = [v for v in selected if v not in options]
        if invalid:
            raise ValidationError(f"{question.label}: invalid options {', '.join(invalid)}")


def _resolve_question(db: Session, tree: VersionTree, question_id: int) -> tuple[Question, str]:
    """質問と変更履歴用のfield_nameを解決。ツリー外の質問はIDをそのまま使う"""
    question = tree.find_question(question_id)
    if question is not None:
        return question, question.question_key
    question = db.query(Question).filter(Question.id == question_id).first()
    if question is None:
        raise ValidationError(f"Unknown question: {question_id}")
    return question, str(question_id)


def diff_answers(
    db: Session,
    tree: VersionTree,
    existing: dict[int, AuditAnswer],
    answer_edits: dict[int, Any],
    validate: bool = True,
) -> list[AnswerChange]:
    """既存回答 (なければ空文字) と比較し、変わったものだけ返す。validate=Falseなら値の検証をしない"""
    changes: list[AnswerChange] = []
    for question_id, raw in answer_edits.items():
        question, field_name = _resolve_question(db, tree, int(question_id))
        row = existing.get(question.id)
        old_value = row.value if row is not None and row.value is not None else ""
        new_value = normalize_answer_value(raw)
        if old_value == new_value:
            continue
        if validate:
            validate_answer(question, new_value)
        changes.append(AnswerChange(question, field_name, old_value, new_value, row))
    return changes


def apply_answer_changes(db: Session, actor: Actor, audit: Audit, changes: list[AnswerChange]) -> list[ChangeLog]:
    """回答をupsertし変更履歴を追加 (コミットはしない)"""
    logs = []
    for change in changes:
        if change.row is not None:
            change.row.value = stored_value(change.new_value)
        else:
            db.add(AuditAnswer(
                audit_id=audit.id,
                question_id=change.question.id,
                value=stored_value(change.new_value),
            ))
        log = ChangeLog(
            facility_id=audit.facility_id,
            audit_id=audit.id,
            entity_type="audit_answer",
            field_name=change.field_name,
            old_value=stored_value(change.old_value),
            new_value=stored_value(change.new_value),
            changed_by=actor.user_id,
        )
        db.add(log)
        logs.append(log)
    return logs


def apply_facility_changes(
    db: Session,
    actor: Actor,
    facility: Facility,
    updates: dict[str, Any],
    changes: list[FieldChange],
    revision: Optional[int] = None,
) -> list[ChangeLog]:
    """施設を条件付き更新 (revision一致時のみ) し変更履歴を追加 (コミットはしない)"""
    query = db.query(Facility).filter(Facility.id == facility.id, Facility.is_deleted == False)  # noqa: E712
    if revision is not None:
        query = query.filter(Facility.revision == revision)
    values = dict(updates)
    values["revision"] = Facility.revision + 1
    matched = query.update(values, synchronize_session=False)
    if matched == 0:
        db.rollback()
        raise ConflictError("Facility was changed by another user. Reload and try again")

    logs = []
    for change in changes:
        log = ChangeLog(
            facility_id=facility.id,
            entity_type="facility",
            field_name=change.field_name,
            old_value=change.old_value,
            new_value=change.new_value,
            changed_by=actor.user_id,
        )
        db.add(log)
        logs.append(log)
    return logs


def save_facility(
    db: Session,
    actor: Actor,
    facility: Facility,
    facility_edits: dict[str, Any],
    answer_edits: dict[int, Any],
    audit_id: Optional[int] = None,
    revision: Optional[int] = None,
) -> SaveResult:
    """施設項目と回答を保存。変更がなければ何も書かない (1トランザクション)"""
    if revision is not None and facility.revision != revision:
        raise ConflictError("Facility was changed by another user. Reload and try again")

    updates, field_changes = diff_facility(facility, facility_edits)

    audit: Optional[Audit] = None
    answer_changes: list[AnswerChange] = []
    if audit_id is not None:
        audit = get_facility_audit(db, facility.id, audit_id)
        tree = questionnaire_service.get_version_tree(db, audit.questionnaire_version_id)
    else:
        tree = questionnaire_service.get_published_tree(db)
        if tree is None:
            if answer_edits:
                raise ValidationError("No published questionnaire")
        else:
            audit = latest_audit(db, facility.id, tree.version.id)

    if answer_edits:
        answer_changes = diff_answers(db, tree, answers_by_question(db, audit), answer_edits)

    if not field_changes and not answer_changes:
        return SaveResult(facility=facility, audit=audit)

    logs = apply_facility_changes(db, actor, facility, updates, field_changes, revision)
    if answer_changes:
        if audit is None:
            audit = new_audit(db, actor, facility.id, tree.version.id)
        logs.extend(apply_answer_changes(db, actor, audit, answer_changes))

    commit_or_raise(db, "Failed to save facility")
    db.refresh(facility)
    log_event(
        logger,
        f"施設保存: {facility.id}",
        facility_id=facility.id,
        audit_id=audit.id if audit else None,
        field_changes=len(field_changes),
        answer_changes=len(answer_changes),
        revision=facility.revision,
        changed_by=actor.user_id,
    )
    return SaveResult(facility=facility, audit=audit, changes=logs)
