from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint, func
from app.core.database import Base


class AuditAnswer(Base):
    __tablename__ = "audit_answers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    audit_id = Column(Integer, ForeignKey("audits.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Text, nullable=True, comment="回答値 (checkboxはJSON配列文字列)")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("audit_id", "question_id", name="uq_audit_question"),
    )
