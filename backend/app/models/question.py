from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, Enum as SAEnum, JSON, ForeignKey, func
from app.core.database import Base

QUESTION_TYPES = ("string", "number", "list", "radio", "checkbox")
OPTION_TYPES = ("list", "radio", "checkbox")


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    section_id = Column(Integer, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True)
    question_key = Column(String(50), nullable=False, index=True, comment="ラベルから生成。作成後は変更不可")
    label = Column(String(255), nullable=False, comment="質問ラベル")
    description = Column(Text, nullable=True)
    question_type = Column(SAEnum(*QUESTION_TYPES, name="question_type"), nullable=False, default="string")
    options = Column(JSON, nullable=True, comment="選択肢 (list/radio/checkbox用)")
    is_required = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0, comment="表示順")
    is_retired = Column(Boolean, nullable=False, default=False, comment="廃止済み (戻せない)")
    retired_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
