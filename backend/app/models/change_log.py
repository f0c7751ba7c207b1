from sqlalchemy import Column, Integer, String, Text, DateTime, Enum as SAEnum, ForeignKey, func
from app.core.database import Base


class ChangeLog(Base):
    """変更履歴 (追記のみ。更新・削除しない)"""

    __tablename__ = "change_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    facility_id = Column(String(36), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=True, index=True)
    audit_id = Column(Integer, ForeignKey("audits.id", ondelete="SET NULL"), nullable=True)
    entity_type = Column(SAEnum("facility", "audit_answer", name="change_entity_type"), nullable=False)
    field_name = Column(String(100), nullable=False, comment="施設項目名 または question_key")
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    changed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    changed_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
