"""
图层模型 - 图片/文字/形状三种图层的标记联合

公共几何字段放在 LayerBase，各类型的专属字段放在子类，
dpi_info 只存在于 ImageLayer（派生字段，由 LayerStore 在尺寸变化时同步重算）
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from .geometry import Rect, footprint_size


class MutationSource(str, Enum):
    """变更来源（撤销/重做回放的变更不再记录历史）"""
    USER = "user"
    REPLAY = "replay"


class DpiQuality(str, Enum):
    """打印质量等级"""
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


class CanvasSize(BaseModel):
    """画布上的渲染尺寸（英寸）"""
    width: float
    height: float


class DpiInfo(BaseModel):
    """DPI 计算结果"""
    model_config = {"frozen": True}

    dpi: float
    quality: DpiQuality
    original_width: int
    original_height: int
    canvas_size_inches: CanvasSize


class LayerBase(BaseModel):
    """图层公共字段"""
    id: str = Field(..., description="图层ID")
    sheet_id: str
    name: str = "Untitled"

    # 位置与尺寸（英寸，左上角原点）
    x: float = 0.0
    y: float = 0.0
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    rotation: float = Field(0.0, description="角度，归一化到[0,360)")
    scale_x: float = 1.0
    scale_y: float = 1.0

    # 绘制顺序（同一版面内唯一，允许空洞）
    z_index: int = 0

    visible: bool = True
    locked: bool = False
    opacity: float = Field(1.0, ge=0.0, le=1.0)

    # 存储中的图层只能整体替换（经 LayerStore 重算 dpi_info）
    model_config = {"frozen": True}

    @field_validator("rotation")
    @classmethod
    def _normalize_rotation(cls, value: float) -> float:
        value = float(value) % 360.0
        # -0.0 / 360.0 浮点边界
        return 0.0 if value >= 360.0 or value == 0.0 else value

    @property
    def render_width(self) -> float:
        return self.width * abs(self.scale_x)

    @property
    def render_height(self) -> float:
        return self.height * abs(self.scale_y)

    def bounding_box(self) -> Rect:
        """当前旋转下的外接矩形"""
        w, h = footprint_size(self.render_width, self.render_height, self.rotation)
        return Rect(x=self.x, y=self.y, width=w, height=h)


class ImageLayer(LayerBase):
    """图片图层"""
    kind: Literal["image"] = "image"
    source_url: str
    processed_url: str | None = Field(None, description="抠图/放大/增强后的地址")
    original_pixel_width: int = Field(..., gt=0)
    original_pixel_height: int = Field(..., gt=0)
    dpi_info: DpiInfo | None = None

    @property
    def display_url(self) -> str:
        return self.processed_url or self.source_url


class TextLayer(LayerBase):
    """文字图层"""
    kind: Literal["text"] = "text"
    text: str = ""
    font_family: str = "Arial"
    font_size: float = Field(24.0, gt=0)
    color: str = "#000000"


class ShapeLayer(LayerBase):
    """形状图层"""
    kind: Literal["shape"] = "shape"
    shape_kind: str = "rect"
    fill: str = "#cccccc"
    stroke: str | None = None
    stroke_width: float = 0.0


Layer = Annotated[Union[ImageLayer, TextLayer, ShapeLayer], Field(discriminator="kind")]

# 反序列化图层列表（按 kind 分派到具体类型）
LAYER_LIST_ADAPTER: TypeAdapter[list[Layer]] = TypeAdapter(list[Layer])
