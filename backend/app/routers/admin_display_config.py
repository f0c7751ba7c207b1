"""管理画面: ツールチップ・絞り込み設定"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.database import get_db
from app.models.display_config import FilterConfig, TooltipConfig
from app.schemas.display_config import (
    FilterConfigInfo,
    FilterConfigRequest,
    TooltipConfigInfo,
    TooltipConfigRequest,
)
from app.services import display_config_service
from app.routers.deps import require_admin

router = APIRouter(prefix="/api/admin/display-config", tags=["admin-display-config"])


@router.get("/tooltips", response_model=list[TooltipConfigInfo])
async def list_tooltips(db: Session = Depends(get_db), _: Actor = Depends(require_admin)):
    return display_config_service.list_configs(db, TooltipConfig)


@router.post("/tooltips", response_model=TooltipConfigInfo, status_code=201)
async def create_tooltip(data: TooltipConfigRequest, db: Session = Depends(get_db), _: Actor = Depends(require_admin)):
    return display_config_service.save_config(db, TooltipConfig, data.model_dump())


@router.put("/tooltips/{config_id}", response_model=TooltipConfigInfo)
async def update_tooltip(
    config_id: int,
    data: TooltipConfigRequest,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_admin),
):
    return display_config_service.save_config(db, TooltipConfig, data.model_dump(), config_id)


@router.delete("/tooltips/{config_id}")
async def delete_tooltip(config_id: int, db: Session = Depends(get_db), _: Actor = Depends(require_admin)):
    display_config_service.delete_config(db, TooltipConfig, config_id)
    return {"message": "Tooltip config deleted"}


@router.get("/filters", response_model=list[FilterConfigInfo])
async def list_filters(db: Session = Depends(get_db), _: Actor = Depends(require_admin)):
    return display_config_service.list_configs(db, FilterConfig)


@router.post("/filters", response_model=FilterConfigInfo, status_code=201)
async def create_filter(data: FilterConfigRequest, db: Session = Depends(get_db), _: Actor = Depends(require_admin)):
    return display_config_service.save_config(db, FilterConfig, data.model_dump())


@router.put("/filters/{config_id}", response_model=FilterConfigInfo)
async def update_filter(
    config_id: int,
    data: FilterConfigRequest,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_admin),
):
    return display_config_service.save_config(db, FilterConfig, data.model_dump(), config_id)


@router.delete("/filters/{config_id}")
async def delete_filter(config_id: int, db: Session = Depends(get_db), _: Actor = Depends(require_admin)):
    display_config_service.delete_config(db, FilterConfig, config_id)
    return {"message": "Filter config deleted"}
