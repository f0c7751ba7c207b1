from pydantic import BaseModel

from app.schemas.user import RowError


class ImportResultInfo(BaseModel):
    created: int
    updated: int
    errors: list[RowError]


class ErrorReportRequest(BaseModel):
    errors: list[RowError]
