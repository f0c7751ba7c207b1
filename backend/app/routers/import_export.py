"""管理画面: CSVテンプレート・エクスポート・取り込み"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import get_db
from app.core.rate_limit import limiter, IMPORT_RATE_LIMIT
from app.schemas.import_export import ErrorReportRequest, ImportResultInfo
from app.services import csv_service, import_service, questionnaire_service
from app.routers.deps import require_exporter

router = APIRouter(prefix="/api/admin/csv", tags=["admin-csv"])


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _tree(db: Session, version_id: Optional[int]):
    """指定版、未指定なら公開版"""
    if version_id is not None:
        return questionnaire_service.get_version_tree(db, version_id)
    return questionnaire_service.get_published_tree(db)


@router.get("/facility-template")
async def facility_template(_: Actor = Depends(require_exporter)):
    return _csv_response(csv_service.facility_template(), csv_service.FACILITY_TEMPLATE_FILENAME)


@router.get("/audit-template")
async def audit_template(
    questionnaire_version_id: Optional[int] = None,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_exporter),
):
    """施設列 + q__<question_key> 列"""
    tree = _tree(db, questionnaire_version_id)
    if tree is None:
        raise HTTPException(status_code=404, detail="No published questionnaire")
    return _csv_response(csv_service.audit_template(tree), csv_service.audit_template_filename(tree))


@router.get("/export")
async def export_facilities(
    questionnaire_version_id: Optional[int] = None,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_exporter),
):
    """全施設 + 最新監査の回答"""
    tree = _tree(db, questionnaire_version_id)
    return _csv_response(csv_service.export_facilities(db, tree), csv_service.export_filename(tree))


@router.post("/import", response_model=ImportResultInfo)
@limiter.limit(IMPORT_RATE_LIMIT)
async def import_facilities(
    request: Request,
    file: UploadFile = File(...),
    questionnaire_version_id: Optional[int] = Form(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_exporter),
):
    """施設CSV取り込み (行ごとに反映、失敗行はエラーに記録)"""
    result = import_service.import_facilities(db, actor, await file.read(), questionnaire_version_id)
    return ImportResultInfo(created=result.created, updated=result.updated, errors=result.errors)


@router.post("/error-report")
async def error_report(data: ErrorReportRequest, _: Actor = Depends(require_exporter)):
    """取り込みエラー一覧をCSVで返す"""
    errors = [e.model_dump() for e in data.errors]
    return _csv_response(csv_service.error_report(errors), csv_service.ERROR_REPORT_FILENAME)
