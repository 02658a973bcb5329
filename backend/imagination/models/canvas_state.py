"""
画布状态模型 - 保存/导出的 JSON 载荷

对外 JSON 使用驼峰字段（scaleX/gridEnabled 等），通过 pydantic alias 映射，
序列化时使用 model_dump(mode="json", by_alias=True)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .layer import Layer
from .sheet import PrintType, Sheet

CANVAS_STATE_VERSION = 1


class SaveStatus(str, Enum):
    """保存状态"""
    SAVED = "saved"
    SAVING = "saving"
    UNSAVED = "unsaved"


class Point(BaseModel):
    x: float = 0.0
    y: float = 0.0


class Viewport(BaseModel):
    """视口快照（缩放/平移/网格/吸附开关）"""
    zoom: float = Field(1.0, gt=0)
    position: Point = Field(default_factory=Point)
    grid_enabled: bool = True
    snap_enabled: bool = True


class StageState(BaseModel):
    """舞台尺寸（像素）"""
    width_px: float = Field(..., alias="widthPx")
    height_px: float = Field(..., alias="heightPx")
    scale: float = 1.0
    position: Point = Field(default_factory=Point)

    model_config = {"populate_by_name": True}


class LayerAttrs(BaseModel):
    """图层几何属性"""
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0
    scale_x: float = Field(1.0, alias="scaleX")
    scale_y: float = Field(1.0, alias="scaleY")

    model_config = {"populate_by_name": True}


class CanvasLayer(BaseModel):
    """画布状态中的单个图层（attrs 为舞台像素）"""
    id: str
    type: str
    attrs: LayerAttrs
    src: str | None = None
    text: str | None = None


class CanvasState(BaseModel):
    """画布状态（对外交换格式）"""
    version: int = CANVAS_STATE_VERSION
    timestamp: datetime = Field(default_factory=datetime.now)
    stage: StageState
    layers: list[CanvasLayer] = Field(default_factory=list)
    grid_enabled: bool = Field(True, alias="gridEnabled")
    snap_enabled: bool = Field(True, alias="snapEnabled")

    model_config = {"populate_by_name": True}


class SaveMetadata(BaseModel):
    """保存元信息"""
    layer_count: int = 0
    last_saved: datetime = Field(default_factory=datetime.now)
    print_type: PrintType


class SavePayload(BaseModel):
    """完整保存载荷（几何+视口+缩略图一起落盘，恢复时无需互相推导）"""
    sheet: Sheet
    canvas_state: CanvasState
    layers: list[Layer] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)
    thumbnail_base64: str | None = Field(None, description="PNG缩略图(base64)")
    metadata: SaveMetadata

    @property
    def sheet_id(self) -> str:
        return self.sheet.id
