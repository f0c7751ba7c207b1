"""リクエスト単位の操作者コンテキスト"""
from dataclasses import dataclass
from typing import Optional

ROLES = ("auditor", "admin", "super_admin")
ADMIN_ROLES = ("admin", "super_admin")


@dataclass(frozen=True)
class Actor:
    """ログイン中の操作者。サービス関数には明示的に渡す"""

    user_id: int
    email: str
    role: str
    full_name: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def can_manage_users(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def can_manage_all_users(self) -> bool:
        return self.role == "super_admin"

    @property
    def can_configure_questionnaire(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def can_export_data(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def can_delete_facilities(self) -> bool:
        return self.role == "super_admin"

    @property
    def can_view_change_logs(self) -> bool:
        return self.role in ADMIN_ROLES

    def can_assign_role(self, role: str) -> bool:
        """作成・変更時に付与できるロールか"""
        if self.can_manage_all_users:
            return role in ROLES
        return self.can_manage_users and role == "auditor"
