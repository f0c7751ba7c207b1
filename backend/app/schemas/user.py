from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional

from app.services.auth_service import validate_password_strength


class CreateUserRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    full_name: Optional[str] = Field(default=None, max_length=255)
    role: str = "auditor"

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        return validate_password_strength(v)


class UpdateUserRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = None
    is_active: Optional[bool] = None


class RowError(BaseModel):
    row: int
    message: str


class UserImportResult(BaseModel):
    success: int
    errors: list[RowError]
