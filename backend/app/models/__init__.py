# 全モデルをインポート (Alembic autogenerate用)
from app.models.user import User
from app.models.profile import Profile
from app.models.facility import Facility
from app.models.questionnaire_version import QuestionnaireVersion
from app.models.section import Section
from app.models.question import Question
from app.models.audit import Audit
from app.models.audit_answer import AuditAnswer
from app.models.change_log import ChangeLog
from app.models.display_config import TooltipConfig, FilterConfig

__all__ = [
    "User",
    "Profile",
    "Facility",
    "QuestionnaireVersion",
    "Section",
    "Question",
    "Audit",
    "AuditAnswer",
    "ChangeLog",
    "TooltipConfig",
    "FilterConfig",
]
