import uuid

from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, ForeignKey, func
from app.core.database import Base


def _new_facility_id() -> str:
    return str(uuid.uuid4())


class Facility(Base):
    __tablename__ = "facilities"

    id = Column(String(36), primary_key=True, default=_new_facility_id, comment="UUID (CSVのfacility_id)")
    venue_name = Column(String(255), nullable=False, index=True)
    venue_address = Column(String(500), nullable=True)
    town_suburb = Column(String(255), nullable=True)
    postcode = Column(String(20), nullable=True)
    state = Column(String(50), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, comment="論理削除")
    revision = Column(Integer, nullable=False, default=1, comment="楽観ロック用リビジョン")
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
