"""ツールチップ・絞り込み設定の管理"""
from typing import Optional, Type, Union

from sqlalchemy.orm import Session

from app.core.database import commit_or_raise
from app.core.errors import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.display_config import FIELD_SOURCES, FILTER_TYPES, FilterConfig, TooltipConfig
from app.services import questionnaire_service
from app.services.facility_fields import get_field

logger = get_logger(__name__)

ConfigModel = Union[TooltipConfig, FilterConfig]


def validate_field_key(db: Session, field_source: str, field_key: str) -> str:
    """facilityはレジストリ、questionは公開中の質問票に存在するキーのみ。既定の表示名を返す"""
    if field_source not in FIELD_SOURCES:
        raise ValidationError(f"Invalid field source: {field_source}")
    if field_source == "facility":
        return get_field(field_key).label

    tree = questionnaire_service.get_published_tree(db)
    labels = {q.question_key: q.label for q in tree.all_questions()} if tree else {}
    if field_key not in labels:
        raise ValidationError(f"Unknown question key: {field_key}")
    return labels[field_key]


def list_configs(db: Session, model: Type[ConfigModel]) -> list[ConfigModel]:
    return db.query(model).order_by(model.sort_order, model.id).all()


def get_config(db: Session, model: Type[ConfigModel], config_id: int) -> ConfigModel:
    config = db.query(model).filter(model.id == config_id).first()
    if not config:
        raise NotFoundError("Display config not found")
    return config


def save_config(
    db: Session,
    model: Type[ConfigModel],
    values: dict,
    config_id: Optional[int] = None,
) -> ConfigModel:
    """作成 (config_idなし) または更新"""
    default_label = validate_field_key(db, values["field_source"], values["field_key"])
    # 表示名が空なら項目名・質問文を使う
    values = {**values, "display_label": (values.get("display_label") or "").strip() or default_label}
    if model is FilterConfig and values.get("filter_type", "text") not in FILTER_TYPES:
        raise ValidationError(f"Invalid filter type: {values.get('filter_type')}")

    config = get_config(db, model, config_id) if config_id is not None else model()
    for key, value in values.items():
        setattr(config, key, value.strip() if isinstance(value, str) else value)
    if config_id is None:
        db.add(config)
    commit_or_raise(db, "Failed to save display config")
    db.refresh(config)
    logger.info(f"表示設定保存: {model.__tablename__} id={config.id} ({config.field_source}:{config.field_key})")
    return config


def delete_config(db: Session, model: Type[ConfigModel], config_id: int) -> None:
    config = get_config(db, model, config_id)
    db.delete(config)
    commit_or_raise(db, "Failed to delete display config")
    logger.info(f"表示設定削除: {model.__tablename__} id={config_id}")
