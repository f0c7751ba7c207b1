"""施設一覧・地図の検索/絞り込み/ツールチップ"""
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.models.audit import Audit
from app.models.audit_answer import AuditAnswer
from app.models.display_config import FIELD_SOURCES, FilterConfig, TooltipConfig
from app.models.facility import Facility
from app.services import facility_service, questionnaire_service
from app.services.answer_values import decode_checkbox_value
from app.services.facility_fields import SEARCH_FIELDS, get_field
from app.services.questionnaire_service import VersionTree


@dataclass(frozen=True)
class ActiveFilter:
    field_source: str
    field_key: str
    value: str


@dataclass
class FacilityRow:
    facility: Facility
    # question_key → 表示用の回答値
    answers: dict[str, str] = field(default_factory=dict)


@dataclass
class MapMarker:
    facility: Facility
    tooltip: list[tuple[str, str]]


def display_answer(question_type: str, value: Optional[str]) -> str:
    if not value:
        return ""
    if question_type == "checkbox":
        return ", ".join(decode_checkbox_value(value))
    return value


def latest_answers_by_key(db: Session, facility_ids: list[str], tree: Optional[VersionTree]) -> dict[str, dict[str, str]]:
    """施設ごとの最新監査 (公開版) の回答を question_key で引けるようにする"""
    if tree is None or not facility_ids:
        return {}

    audits = (
        db.query(Audit)
        .filter(Audit.facility_id.in_(facility_ids), Audit.questionnaire_version_id == tree.version.id)
        .order_by(Audit.created_at.desc(), Audit.id.desc())
        .all()
    )
    latest: dict[int, str] = {}
    seen: set[str] = set()
    for audit in audits:
        if audit.facility_id not in seen:
            seen.add(audit.facility_id)
            latest[audit.id] = audit.facility_id
    if not latest:
        return {}

    questions = {q.id: q for q in tree.all_questions()}
    result: dict[str, dict[str, str]] = {}
    rows = db.query(AuditAnswer).filter(AuditAnswer.audit_id.in_(list(latest))).all()
    for row in rows:
        question = questions.get(row.question_id)
        if question is None:
            continue
        value = display_answer(question.question_type, row.value)
        if value:
            result.setdefault(latest[row.audit_id], {})[question.question_key] = value
    return result


def parse_filter_params(params: dict[str, str]) -> list[ActiveFilter]:
    """`<field_source>:<field_key>=<value>` 形式のクエリを絞り込み条件に変換"""
    filters = []
    for name, value in params.items():
        if ":" not in name:
            continue
        source, key = name.split(":", 1)
        if source not in FIELD_SOURCES:
            raise ValidationError(f"Unknown filter source: {source}")
        if source == "facility":
            get_field(key)
        value = (value or "").strip()
        if value:
            filters.append(ActiveFilter(source, key, value))
    return filters


def _field_value(row: FacilityRow, source: str, key: str) -> str:
    if source == "facility":
        facility_field = get_field(key)
        return facility_field.to_text(facility_field.get(row.facility)) or ""
    return row.answers.get(key, "")


def matches_search(row: FacilityRow, search: Optional[str]) -> bool:
    """検索語が空、またはいずれかの検索対象項目に部分一致 (大文字小文字無視)"""
    query = (search or "").strip().lower()
    if not query:
        return True
    return any(query in _field_value(row, "facility", name).lower() for name in SEARCH_FIELDS)


def matches_filters(row: FacilityRow, filters: list[ActiveFilter]) -> bool:
    """すべての条件に部分一致 (AND)"""
    return all(
        f.value.lower() in _field_value(row, f.field_source, f.field_key).lower()
        for f in filters
    )


def list_facility_rows(db: Session, search: Optional[str] = None, filters: Optional[list[ActiveFilter]] = None) -> list[FacilityRow]:
    facilities = facility_service.list_facilities(db)
    tree = questionnaire_service.get_published_tree(db)
    answers = latest_answers_by_key(db, [f.id for f in facilities], tree)

    rows = [FacilityRow(facility=f, answers=answers.get(f.id, {})) for f in facilities]
    return [r for r in rows if matches_search(r, search) and matches_filters(r, filters or [])]


def active_tooltip_configs(db: Session) -> list[TooltipConfig]:
    return (
        db.query(TooltipConfig)
        .filter(TooltipConfig.is_active == True)  # noqa: E712
        .order_by(TooltipConfig.sort_order, TooltipConfig.id)
        .all()
    )


def tooltip_lines(row: FacilityRow, configs: list[TooltipConfig]) -> list[tuple[str, str]]:
    """ツールチップの (ラベル, 値)。値が空の行は出さない"""
    lines = []
    for config in configs:
        value = _field_value(row, config.field_source, config.field_key)
        if value:
            lines.append((config.display_label, value))
    return lines


def map_markers(db: Session, search: Optional[str] = None, filters: Optional[list[ActiveFilter]] = None) -> list[MapMarker]:
    """座標を持つ表示対象施設のマーカー"""
    configs = active_tooltip_configs(db)
    return [
        MapMarker(facility=row.facility, tooltip=tooltip_lines(row, configs))
        for row in list_facility_rows(db, search, filters)
        if row.facility.latitude is not None and row.facility.longitude is not None
    ]


def filter_options(db: Session) -> list[tuple[FilterConfig, list[str]]]:
    """有効な絞り込み定義と選択肢"""
    configs = (
        db.query(FilterConfig)
        .filter(FilterConfig.is_active == True)  # noqa: E712
        .order_by(FilterConfig.sort_order, FilterConfig.id)
        .all()
    )
    tree = questionnaire_service.get_published_tree(db)
    questions = {q.question_key: q for q in tree.all_questions()} if tree else {}
    facilities = facility_service.list_facilities(db)

    result = []
    for config in configs:
        if config.field_source == "facility":
            facility_field = get_field(config.field_key)
            values = {facility_field.to_text(facility_field.get(f)) for f in facilities}
            choices = sorted(v for v in values if v)
        else:
            question = questions.get(config.field_key)
            choices = list(question.options or []) if question else []
        result.append((config, choices))
    return result
