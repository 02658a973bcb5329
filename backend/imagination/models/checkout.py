"""
结算交接模型 - 交给购物车子系统的不透明行项目
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .layer import DpiQuality


class DpiIssue(BaseModel):
    """单个DPI问题图层"""
    layer_id: str
    name: str
    dpi: float
    quality: DpiQuality


class DpiReport(BaseModel):
    """全部图片图层的DPI检查结果"""
    danger: list[DpiIssue] = Field(default_factory=list)
    warning: list[DpiIssue] = Field(default_factory=list)

    @property
    def is_blocked(self) -> bool:
        return bool(self.danger)

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.warning)


class CheckoutLineItem(BaseModel):
    """结算行项目"""
    sheet_id: str
    price: float
    width_inches: float
    height_inches: float
    layer_count: int
    thumbnail_url: str | None = None
    cutlines_flag: bool = False
    mirror_flag: bool = False
