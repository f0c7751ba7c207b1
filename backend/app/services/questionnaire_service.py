"""質問票バージョン管理: draft → published → archived"""
import re
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import commit_or_raise
from app.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.question import Question, OPTION_TYPES, QUESTION_TYPES
from app.models.questionnaire_version import QuestionnaireVersion
from app.models.section import Section

logger = get_logger(__name__)

QUESTION_KEY_MAX_LENGTH = 50


@dataclass
class SectionTree:
    section: Section
    questions: list[Question] = field(default_factory=list)


@dataclass
class VersionTree:
    """質問票バージョン + セクション + 質問 (sort_order順)"""

    version: QuestionnaireVersion
    sections: list[SectionTree] = field(default_factory=list)

    def all_questions(self) -> list[Question]:
        return [q for s in self.sections for q in s.questions]

    def active_questions(self) -> list[Question]:
        """廃止されていない質問 (セクション順 → 質問順)"""
        return [q for q in self.all_questions() if not q.is_retired]

    def find_question(self, question_id: int) -> Optional[Question]:
        for q in self.all_questions():
            if q.id == question_id:
                return q
        return None


def generate_question_key(label: str) -> str:
    """ラベルからquestion_keyを生成 (小文字化・英数字以外除去・空白→_・50文字)"""
    key = label.strip().lower()
    key = re.sub(r"[^a-z0-9\s]", "", key)
    key = re.sub(r"\s+", "_", key.strip())
    return key[:QUESTION_KEY_MAX_LENGTH]


def normalize_options(question_type: str, options: Optional[list[str]]) -> Optional[list[str]]:
    """選択肢の整形。選択式以外はNone、選択式は1件以上必須"""
    if question_type not in QUESTION_TYPES:
        raise ValidationError(f"Invalid question type: {question_type}")
    if question_type not in OPTION_TYPES:
        return None
    cleaned = [o.strip() for o in (options or []) if o and o.strip()]
    if not cleaned:
        raise ValidationError(f"Options are required for {question_type} questions")
    return cleaned


# --- 取得 ---
def list_versions(db: Session) -> list[QuestionnaireVersion]:
    return db.query(QuestionnaireVersion).order_by(QuestionnaireVersion.version_number.desc()).all()


def get_version(db: Session, version_id: int) -> QuestionnaireVersion:
    version = db.query(QuestionnaireVersion).filter(QuestionnaireVersion.id == version_id).first()
    if not version:
        raise NotFoundError("Questionnaire version not found")
    return version


def get_published_version(db: Session) -> Optional[QuestionnaireVersion]:
    return (
        db.query(QuestionnaireVersion)
        .filter(QuestionnaireVersion.status == "published")
        .order_by(QuestionnaireVersion.published_at.desc())
        .first()
    )


def load_tree(db: Session, version: QuestionnaireVersion) -> VersionTree:
    sections = (
        db.query(Section)
        .filter(Section.questionnaire_version_id == version.id)
        .order_by(Section.sort_order, Section.id)
        .all()
    )
    section_ids = [s.id for s in sections]
    questions = (
        db.query(Question)
        .filter(Question.section_id.in_(section_ids))
        .order_by(Question.sort_order, Question.id)
        .all()
    ) if section_ids else []

    by_section: dict[int, list[Question]] = {}
    for q in questions:
        by_section.setdefault(q.section_id, []).append(q)

    return VersionTree(
        version=version,
        sections=[SectionTree(section=s, questions=by_section.get(s.id, [])) for s in sections],
    )


def get_version_tree(db: Session, version_id: int) -> VersionTree:
    return load_tree(db, get_version(db, version_id))


def get_published_tree(db: Session) -> Optional[VersionTree]:
    version = get_published_version(db)
    return load_tree(db, version) if version else None


# --- バージョン ---
def create_version(db: Session, actor: Actor, name: str, description: Optional[str] = None) -> QuestionnaireVersion:
    """新規draft作成 (version_number = 既存最大 + 1)"""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Version name is required")

    current_max = db.query(sa_func.max(QuestionnaireVersion.version_number)).scalar()
    version = QuestionnaireVersion(
        version_number=(current_max or 0) + 1,
        name=name,
        description=(description or "").strip() or None,
        status="draft",
        created_by=actor.user_id,
    )
    db.add(version)
    commit_or_raise(
        db,
        "Failed to create questionnaire version",
        conflict_message="Version number already taken, please retry",
    )
    db.refresh(version)
    logger.info(f"質問票バージョン作成: v{version.version_number} ({version.name})")
    return version


def publish_version(db: Session, actor: Actor, version_id: int) -> QuestionnaireVersion:
    """draftを公開。既存の公開版はarchivedへ (1トランザクション)"""
    version = get_version(db, version_id)
    if version.status != "draft":
        raise InvalidStateError("Only draft versions can be published")

    # 公開中の版のみ対象にする条件付き更新
    archived = (
        db.query(QuestionnaireVersion)
        .filter(QuestionnaireVersion.status == "published", QuestionnaireVersion.id != version.id)
        .update({"status": "archived", "published_slot": None}, synchronize_session=False)
    )
    published = (
        db.query(QuestionnaireVersion)
        .filter(QuestionnaireVersion.id == version.id, QuestionnaireVersion.status == "draft")
        .update(
            {
                "status": "published",
                "published_slot": True,
                "published_at": sa_func.now(),
                "published_by": actor.user_id,
            },
            synchronize_session=False,
        )
    )
    if published == 0:
        db.rollback()
        raise InvalidStateError("Version was changed by another user")

    commit_or_raise(
        db,
        "Failed to publish questionnaire version",
        conflict_message="Another version was published at the same time",
    )
    db.refresh(version)
    logger.info(f"質問票公開: v{version.version_number} (archived={archived}, by={actor.user_id})")
    return version


def _require_draft(version: QuestionnaireVersion) -> None:
    if version.status != "draft":
        raise InvalidStateError("Only draft versions can be edited")


# --- セクション ---
def get_section(db: Session, section_id: int) -> Section:
    section = db.query(Section).filter(Section.id == section_id).first()
    if not section:
        raise NotFoundError("Section not found")
    return section


def add_section(db: Session, version_id: int, name: str, description: Optional[str] = None) -> Section:
    version = get_version(db, version_id)
    _require_draft(version)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Section name is required")

    current_max = db.query(sa_func.max(Section.sort_order)).filter(
        Section.questionnaire_version_id == version.id
    ).scalar()
    section = Section(
        questionnaire_version_id=version.id,
        name=name,
        description=(description or "").strip() or None,
        sort_order=0 if current_max is None else current_max + 1,
    )
    db.add(section)
    commit_or_raise(db, "Failed to save section")
    db.refresh(section)
    return section


def edit_section(db: Session, section_id: int, name: str, description: Optional[str] = None) -> Section:
    section = get_section(db, section_id)
    _require_draft(get_version(db, section.questionnaire_version_id))
    name = (name or "").strip()
    if not name:
        raise ValidationError("Section name is required")

    section.name = name
    section.description = (description or "").strip() or None
    commit_or_raise(db, "Failed to save section")
    db.refresh(section)
    return section


def delete_section(db: Session, section_id: int) -> None:
    """セクションと配下の質問を削除 (draftのみ)"""
    section = get_section(db, section_id)
    _require_draft(get_version(db, section.questionnaire_version_id))

    db.query(Question).filter(Question.section_id == section.id).delete(synchronize_session=False)
    db.delete(section)
    commit_or_raise(db, "Failed to delete section")


def move_section(db: Session, section_id: int, direction: str) -> list[Section]:
    """隣接セクションとsort_orderを入れ替え。端では何もしない"""
    if direction not in ("up", "down"):
        raise ValidationError("direction must be 'up' or 'down'")

    section = get_section(db, section_id)
    _require_draft(get_version(db, section.questionnaire_version_id))

    siblings = (
        db.query(Section)
        .filter(Section.questionnaire_version_id == section.questionnaire_version_id)
        .order_by(Section.sort_order, Section.id)
        .all()
    )
    index = next(i for i, s in enumerate(siblings) if s.id == section.id)
    new_index = index - 1 if direction == "up" else index + 1
    if new_index < 0 or new_index >= len(siblings):
        return siblings

    other = siblings[new_index]
    section.sort_order, other.sort_order = other.sort_order, section.sort_order
    commit_or_raise(db, "Failed to move section")
    siblings[index], siblings[new_index] = siblings[new_index], siblings[index]
    return siblings


# --- 質問 ---
def get_question(db: Session, question_id: int) -> Question:
    question = db.query(Question).filter(Question.id == question_id).first()
    if not question:
        raise NotFoundError("Question not found")
    return question


def _key_taken(db: Session, version_id: int, question_key: str) -> bool:
    return (
        db.query(Question)
        .join(Section, Question.section_id == Section.id)
        .filter(Section.questionnaire_version_id == version_id, Question.question_key == question_key)
        .count()
        > 0
    )


def add_question(
    db: Session,
    section_id: int,
    label: str,
    question_type: str = "string",
    options: Optional[list[str]] = None,
    description: Optional[str] = None,
    is_required: bool = False,
) -> Question:
    section = get_section(db, section_id)
    version = get_version(db, section.questionnaire_version_id)
    _require_draft(version)

    label = (label or "").strip()
    if not label:
        raise ValidationError("Question label is required")
    question_key = generate_question_key(label)
    if not question_key:
        raise ValidationError("Question label must contain letters or numbers")
    if _key_taken(db, version.id, question_key):
        raise ConflictError(f"Question key '{question_key}' already exists in this version")

    current_max = db.query(sa_func.max(Question.sort_order)).filter(Question.section_id == section.id).scalar()
    question = Question(
        section_id=section.id,
        question_key=question_key,
        label=label,
        description=(description or "").strip() or None,
        question_type=question_type,
        options=normalize_options(question_type, options),
        is_required=is_required,
        sort_order=0 if current_max is None else current_max + 1,
    )
    db.add(question)
    commit_or_raise(db, "Failed to save question")
    db.refresh(question)
    return question


def edit_question(
    db: Session,
    question_id: int,
    label: str,
    question_type: str = "string",
    options: Optional[list[str]] = None,
    description: Optional[str] = None,
    is_required: bool = False,
) -> Question:
    """質問更新 (question_keyは作成時のまま)"""
    question = get_question(db, question_id)
    section = get_section(db, question.section_id)
    _require_draft(get_version(db, section.questionnaire_version_id))

    label = (label or "").strip()
    if not label:
        raise ValidationError("Question label is required")

    question.label = label
    question.description = (description or "").strip() or None
    question.question_type = question_type
    question.options = normalize_options(question_type, options)
    question.is_required = is_required
    commit_or_raise(db, "Failed to save question")
    db.refresh(question)
    return question


def retire_question(db: Session, question_id: int) -> Question:
    """質問を廃止 (公開中でも可、取り消し不可)"""
    question = get_question(db, question_id)
    if question.is_retired:
        return question

    question.is_retired = True
    question.retired_at = sa_func.now()
    commit_or_raise(db, "Failed to retire question")
    db.refresh(question)
    logger.info(f"質問廃止: {question.question_key} (id={question.id})")
    return question
