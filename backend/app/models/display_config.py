from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SAEnum, func
from app.core.database import Base

FIELD_SOURCES = ("facility", "question")
FILTER_TYPES = ("select", "multi-select", "range", "text")


class TooltipConfig(Base):
    """地図マーカーのツールチップ表示項目"""

    __tablename__ = "tooltip_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    field_source = Column(SAEnum(*FIELD_SOURCES, name="tooltip_field_source"), nullable=False)
    field_key = Column(String(100), nullable=False)
    display_label = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class FilterConfig(Base):
    """施設一覧・地図の絞り込み項目"""

    __tablename__ = "filter_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    field_source = Column(SAEnum(*FIELD_SOURCES, name="filter_field_source"), nullable=False)
    field_key = Column(String(100), nullable=False)
    display_label = Column(String(255), nullable=False)
    filter_type = Column(SAEnum(*FILTER_TYPES, name="filter_type"), nullable=False, default="text")
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
