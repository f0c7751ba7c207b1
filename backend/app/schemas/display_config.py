from typing import Literal, Optional

from pydantic import BaseModel, Field

FieldSource = Literal["facility", "question"]
FilterType = Literal["select", "multi-select", "range", "text"]


class TooltipConfigRequest(BaseModel):
    field_source: FieldSource
    field_key: str = Field(min_length=1, max_length=100)
    display_label: Optional[str] = Field(default=None, max_length=255)
    sort_order: int = 0
    is_active: bool = True


class FilterConfigRequest(TooltipConfigRequest):
    filter_type: FilterType = "text"


class TooltipConfigInfo(BaseModel):
    id: int
    field_source: str
    field_key: str
    display_label: str
    sort_order: int
    is_active: bool

    model_config = {"from_attributes": True}


class FilterConfigInfo(TooltipConfigInfo):
    filter_type: str


class FilterOption(FilterConfigInfo):
    options: list[str] = []
