"""
排版模型 - 自动排版/智能填充的输入输出结构
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class NestItem(BaseModel):
    """待排版条目"""
    id: str
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    rotation: float = 0.0


class NestPosition(BaseModel):
    """排版结果位置"""
    id: str
    x: float
    y: float
    rotation: float = 0.0


class NestResult(BaseModel):
    """自动排版结果（部分放置不算错误）"""
    positions: list[NestPosition] = Field(default_factory=list)
    unplaced: list[str] = Field(default_factory=list, description="放不下的图层ID")
    efficiency: int = Field(0, description="已放置面积占比(%)")
    wasted_area: float = 0.0

    @property
    def all_placed(self) -> bool:
        return not self.unplaced

    def position_of(self, item_id: str) -> NestPosition | None:
        for position in self.positions:
            if position.id == item_id:
                return position
        return None


class FillPlacement(BaseModel):
    """智能填充的一个复制位置"""
    x: float
    y: float


class FillResult(BaseModel):
    """智能填充结果"""
    duplicates: list[FillPlacement] = Field(default_factory=list)
    coverage: int = Field(0, description="填充后覆盖率(%)")

    @property
    def total_added(self) -> int:
        return len(self.duplicates)
