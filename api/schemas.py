from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ChartConfigModel(BaseModel):
    width: int = 932
    height: int = 932
    padding: float = 3.0
    duration: float = 750.0
    slow_duration: float = 7500.0
    root_name: str = "FOLIO"
    interpolation: str = "zoom"
    label_font_size: int = 10


class ModuleFiltersModel(BaseModel):
    selected_module: str = ""
    selected_application: str = ""


class ViewRequestModel(BaseModel):
    filters: ModuleFiltersModel = Field(default_factory=ModuleFiltersModel)
    chart: ChartConfigModel = Field(default_factory=ChartConfigModel)


class TransitionModel(BaseModel):
    source: int
    target: int
    start: List[float]
    end: List[float]
    duration: float
    method: Literal["zoom", "linear"] = "zoom"
    labels_from: List[List[float]] = Field(default_factory=list)


class FocusStateModel(BaseModel):
    focused: int
    viewport: List[float]
    transition: Optional[TransitionModel] = None


class FocusRequestModel(ViewRequestModel):
    state: Optional[FocusStateModel] = None
    node_id: Optional[int] = None
    sx: Optional[float] = None
    sy: Optional[float] = None
    t: Optional[float] = None
    slow: bool = False


class ChartRequestModel(ViewRequestModel):
    state: Optional[FocusStateModel] = None
    t: Optional[float] = None


class MetaListResponse(BaseModel):
    values: List[str]
