"""
外部服务请求/响应模型

AI生图、抠图/放大/增强都视为不透明的异步请求，
这里只定义合成引擎关心的字段
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class EnhancementOperation(str, Enum):
    """图像处理类型"""
    REMOVE_BACKGROUND = "remove_background"
    UPSCALE = "upscale"
    ENHANCE = "enhance"


class GeneratedImage(BaseModel):
    """AI生图结果"""
    image_url: str


class EnhancementRequest(BaseModel):
    """图像处理请求"""
    operation: EnhancementOperation
    image_url: str
    factor: float = Field(2.0, gt=0, description="仅放大时使用")


class EnhancementResult(BaseModel):
    """图像处理结果"""
    processed_url: str
    scale_factor: float = Field(1.0, gt=0, description="实际放大倍数，非放大操作为1")


class PendingImage(BaseModel):
    """通过导航参数传入、待添加到画布的图片（只消费一次）"""
    url: str
    name: str = "Product Image"
