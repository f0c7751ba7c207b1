"""施設CSVの一括取り込み

行ごとに施設の作成/更新と回答のupsertを行い、行単位でコミットする。
失敗した行はロールバックしてエラーに記録し、次の行へ進む。
"""
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.config import settings
from app.core.database import commit_or_raise
from app.core.errors import AppError, ParseError, ValidationError
from app.core.logging import get_logger, log_event
from app.models.facility import Facility
from app.models.question import Question
from app.services import answer_service, facility_service, questionnaire_service
from app.services.csv_service import FACILITY_ID_COLUMN, QUESTION_PREFIX, read_csv
from app.services.facility_fields import FACILITY_FIELDS
from app.services.questionnaire_service import VersionTree

logger = get_logger(__name__)


@dataclass
class ImportResult:
    created: int = 0
    updated: int = 0
    errors: list[dict] = field(default_factory=list)


def _question_columns(header: list[str], tree: Optional[VersionTree]) -> dict[str, Question]:
    """ヘッダーの q__<key> 列 → 有効な質問。該当しない列は無視"""
    if tree is None:
        return {}
    active = {q.question_key: q for q in tree.active_questions()}
    columns = {}
    for name in header:
        if name.startswith(QUESTION_PREFIX):
            question = active.get(name[len(QUESTION_PREFIX):])
            if question is not None:
                columns[name] = question
    return columns


def _import_row(
    db: Session,
    actor: Actor,
    row: dict[str, str],
    header: list[str],
    tree: Optional[VersionTree],
    question_columns: dict[str, Question],
) -> bool:
    """1行分を反映 (コミットはしない)。作成ならTrue"""
    values = {f.name: row.get(f.name) for f in FACILITY_FIELDS if f.name in header}
    facility_id = (row.get(FACILITY_ID_COLUMN) or "").strip()

    answer_edits = {}
    for column, question in question_columns.items():
        value = (row.get(column) or "").strip()
        if value:
            answer_edits[question.id] = value

    created = not facility_id
    if created:
        facility = facility_service.build_facility(values, actor)
        db.add(facility)
        db.flush()
        db.add(facility_service.created_log(facility, actor))
        existing = {}
        audit = None
    else:
        facility = (
            db.query(Facility)
            .filter(Facility.id == facility_id, Facility.is_deleted == False)  # noqa: E712
            .first()
        )
        if facility is None:
            raise ValidationError("facility not found")
        audit = answer_service.latest_audit(db, facility.id, tree.version.id) if tree and answer_edits else None
        existing = answer_service.answers_by_question(db, audit)

    updates, field_changes = ({}, []) if created else answer_service.diff_facility(facility, values)
    # CSVの回答はトリムした値をそのまま保存する (廃止済みの質問列は _question_columns で除外済み)
    answer_changes = (
        answer_service.diff_answers(db, tree, existing, answer_edits, validate=False) if answer_edits else []
    )

    if not created and (field_changes or answer_changes):
        answer_service.apply_facility_changes(db, actor, facility, updates, field_changes)
    if answer_changes:
        if audit is None:
            audit = answer_service.new_audit(db, actor, facility.id, tree.version.id)
        answer_service.apply_answer_changes(db, actor, audit, answer_changes)
    return created


def import_facilities(
    db: Session,
    actor: Actor,
    content: bytes,
    questionnaire_version_id: Optional[int] = None,
) -> ImportResult:
    header, rows = read_csv(content)
    if "venue_name" not in header:
        raise ParseError("Missing required column: venue_name")
    if len(rows) > settings.IMPORT_MAX_ROWS:
        raise ValidationError(f"Too many rows (max {settings.IMPORT_MAX_ROWS})")

    if questionnaire_version_id is not None:
        tree = questionnaire_service.get_version_tree(db, questionnaire_version_id)
    else:
        tree = questionnaire_service.get_published_tree(db)
    question_columns = _question_columns(header, tree)
    if tree is None and any(h.startswith(QUESTION_PREFIX) for h in header):
        logger.warning("質問票が未公開のため q__ 列を無視します")

    result = ImportResult()
    for index, row in enumerate(rows, start=2):
        if not (row.get("venue_name") or "").strip():
            result.errors.append({"row": index, "message": "venue_name is required"})
            continue
        try:
            created = _import_row(db, actor, row, header, tree, question_columns)
            commit_or_raise(db, f"Failed to save row {index}")
        except AppError as e:
            db.rollback()
            result.errors.append({"row": index, "message": e.message})
            continue
        except SQLAlchemyError:
            db.rollback()
            logger.error(f"取り込み失敗: row={index}", exc_info=True)
            result.errors.append({"row": index, "message": "Failed to save row"})
            continue

        if created:
            result.created += 1
        else:
            result.updated += 1

    log_event(
        logger,
        "施設CSV取り込み完了",
        created=result.created,
        updated=result.updated,
        errors=len(result.errors),
        questionnaire_version_id=tree.version.id if tree else None,
        imported_by=actor.user_id,
    )
    return result
