"""
版面模型 - 定义 Imagination Sheet 及其生命周期

宽度由打印类型固定，高度在创建时从预设列表中选定，之后不可修改
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PrintType(str, Enum):
    """打印类型"""
    DTF = "dtf"
    UV_DTF = "uv_dtf"
    SUBLIMATION = "sublimation"


class SheetStatus(str, Enum):
    """版面状态"""
    DRAFT = "draft"
    SUBMITTED = "submitted"      # 已交接结算
    PRODUCED = "produced"        # 已生产


class Sheet(BaseModel):
    """版面实体"""
    id: str = Field(..., description="UUID")
    print_type: PrintType
    name: str = "Untitled Sheet"

    # 尺寸（创建后冻结）
    width_inches: float = Field(..., gt=0, frozen=True, description="由打印类型决定")
    height_inches: float = Field(..., gt=0, frozen=True, description="预设高度之一")

    status: SheetStatus = SheetStatus.DRAFT

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def area_square_inches(self) -> float:
        return self.width_inches * self.height_inches

    def touch(self) -> None:
        """刷新更新时间"""
        self.updated_at = datetime.now()

    def mark_submitted(self) -> None:
        """标记为已交接结算"""
        self.status = SheetStatus.SUBMITTED
        self.touch()
