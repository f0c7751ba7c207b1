from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, Enum as SAEnum, ForeignKey, func
from app.core.database import Base


class QuestionnaireVersion(Base):
    __tablename__ = "questionnaire_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version_number = Column(Integer, unique=True, nullable=False, comment="1からの連番")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        SAEnum("draft", "published", "archived", name="questionnaire_status"),
        nullable=False,
        default="draft",
        index=True,
    )
    # 公開中の行のみTrue、それ以外はNULL (UNIQUEで公開版を1件に制限)
    published_slot = Column(Boolean, nullable=True, unique=True, comment="公開中のみTrue")
    published_at = Column(DateTime, nullable=True)
    published_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
