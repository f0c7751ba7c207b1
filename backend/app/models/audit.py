from datetime import date

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, func
from app.core.database import Base


class Audit(Base):
    __tablename__ = "audits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    facility_id = Column(String(36), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True)
    questionnaire_version_id = Column(
        Integer, ForeignKey("questionnaire_versions.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    audit_date = Column(Date, nullable=False, default=date.today)
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
