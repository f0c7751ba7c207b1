"""CSVの読み書き: テンプレート・全件エクスポート・エラーレポート"""
import csv
import io
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.errors import ParseError
from app.models.audit_answer import AuditAnswer
from app.services import facility_service
from app.services.answer_service import latest_audit
from app.services.facility_fields import FACILITY_FIELDS
from app.services.questionnaire_service import VersionTree

FACILITY_ID_COLUMN = "facility_id"
FACILITY_COLUMNS = [FACILITY_ID_COLUMN] + [f.name for f in FACILITY_FIELDS]
QUESTION_PREFIX = "q__"
ERROR_REPORT_HEADER = ["row", "error"]

FACILITY_TEMPLATE_FILENAME = "facility_template.csv"
ERROR_REPORT_FILENAME = "import_errors.csv"


def audit_template_filename(tree: VersionTree) -> str:
    return f"audit_template_v{tree.version.version_number}.csv"


def export_filename(tree: Optional[VersionTree]) -> str:
    if tree is None:
        return "facilities_export.csv"
    return f"facilities_export_v{tree.version.version_number}.csv"


def question_column(question_key: str) -> str:
    return f"{QUESTION_PREFIX}{question_key}"


def audit_columns(tree: Optional[VersionTree]) -> list[str]:
    """施設列 + 有効な質問の q__<key> 列 (セクション順 → 質問順)"""
    if tree is None:
        return list(FACILITY_COLUMNS)
    return FACILITY_COLUMNS + [question_column(q.question_key) for q in tree.active_questions()]


def write_csv(header: list[str], rows: Iterable[list]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return buf.getvalue()


def read_csv(content: bytes) -> tuple[list[str], list[dict[str, str]]]:
    """UTF-8 (BOM可) のCSVを (ヘッダー, 行dictのリスト) に変換"""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ParseError("CSV must be UTF-8 encoded")
    if not text.strip():
        raise ParseError("CSV file is empty")

    try:
        reader = csv.reader(io.StringIO(text))
        header = [h.strip() for h in next(reader, [])]
        if not any(header):
            raise ParseError("CSV header row is missing")
        rows = []
        for values in reader:
            if not values:
                continue
            rows.append({name: (values[i] if i < len(values) else "") for i, name in enumerate(header) if name})
    except csv.Error as e:
        raise ParseError(f"Malformed CSV: {e}")
    return header, rows


def facility_template() -> str:
    return write_csv(FACILITY_COLUMNS, [])


def audit_template(tree: VersionTree) -> str:
    return write_csv(audit_columns(tree), [])


def export_facilities(db: Session, tree: Optional[VersionTree]) -> str:
    """削除されていない全施設 + 指定版での最新監査の回答"""
    questions = tree.active_questions() if tree else []
    rows = []
    for facility in facility_service.list_facilities(db):
        row = [facility.id] + [f.to_text(f.get(facility)) for f in FACILITY_FIELDS]
        answers: dict[int, Optional[str]] = {}
        if questions:
            audit = latest_audit(db, facility.id, tree.version.id)
            if audit is not None:
                answers = {
                    a.question_id: a.value
                    for a in db.query(AuditAnswer).filter(AuditAnswer.audit_id == audit.id).all()
                }
        row.extend(answers.get(q.id) for q in questions)
        rows.append(row)
    return write_csv(audit_columns(tree), rows)


def error_report(errors: list[dict]) -> str:
    return write_csv(ERROR_REPORT_HEADER, [[e.get("row"), e.get("message")] for e in errors])
