"""
模块接口契约 - 定义外部协作方的抽象接口

设计原则：
1. 合成引擎只通过接口调用外部服务（AI生成/抠图/放大/存储）
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换

使用方式：
    from imagination.interfaces import IImageEnhancer

    class MyEnhancer(IImageEnhancer):
        async def process(self, request: EnhancementRequest) -> EnhancementResult:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import (
        EnhancementRequest,
        EnhancementResult,
        GeneratedImage,
        SavePayload,
    )


# ============================================================================
# AI 图像服务接口（异步，可能很慢）
# ============================================================================

class IImageGenerator(ABC):
    """AI 生图接口"""

    @abstractmethod
    async def generate(self, prompt: str, style: str) -> GeneratedImage:
        """
        根据提示词生成图片

        Args:
            prompt: 提示词
            style: 风格键（realistic/cartoon/...）

        Returns:
            生成结果（image_url）

        Raises:
            任意异常均视为失败，由会话层统一转换为 CollaboratorError
        """
        ...


class IImageEnhancer(ABC):
    """图像处理接口 - 抠图/放大/增强"""

    @abstractmethod
    async def process(self, request: EnhancementRequest) -> EnhancementResult:
        """
        处理单张图片

        Args:
            request: 处理请求（操作类型、图片URL、放大倍数）

        Returns:
            处理结果（processed_url；放大时附带实际倍数）
        """
        ...


class IImageProbe(ABC):
    """图片探测接口 - 读取远程图片的原始像素尺寸"""

    @abstractmethod
    async def probe(self, image_url: str) -> tuple[int, int]:
        """返回 (像素宽, 像素高)"""
        ...


# ============================================================================
# 持久化接口
# ============================================================================

class IProjectRepository(ABC):
    """工程存储接口"""

    @abstractmethod
    def save_project(self, payload: SavePayload) -> None:
        """
        保存工程（同步请求）

        Args:
            payload: 完整保存载荷（画布状态+图层+缩略图）

        Raises:
            任意异常表示保存失败
        """
        ...

    @abstractmethod
    def load_project(self, sheet_id: str) -> SavePayload | None:
        """读取工程，不存在时返回 None"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class CompositorError(Exception):
    """基础异常"""
    pass


class InvalidPresetError(CompositorError):
    """版型/高度组合不合法"""
    pass


class InvalidGeometryError(CompositorError):
    """几何参数不合法（尺寸<=0等）"""
    pass


class LayerNotFoundError(CompositorError):
    """图层不存在"""
    pass


class LayerStoreError(CompositorError):
    """图层集合结构约束被破坏（重复ID/重复z_index等）"""
    pass


class LayerBusyError(CompositorError):
    """图层正在处理中，禁止几何编辑"""
    pass


class LayerLockedError(CompositorError):
    """图层已锁定"""
    pass


class SaveError(CompositorError):
    """手动保存失败"""
    pass


class CollaboratorError(CompositorError):
    """外部服务调用失败（面向用户的单条错误信息）"""
    pass


class CheckoutError(CompositorError):
    """结算交接失败"""
    pass


class EmptySheetError(CheckoutError):
    """画布为空"""
    pass


class DpiCheckoutError(CheckoutError):
    """DPI 不达标（携带问题图层列表）"""

    def __init__(self, message: str, layers: list[tuple[str, str]]):
        super().__init__(message)
        self.layers = layers

    @property
    def layer_ids(self) -> list[str]:
        return [layer_id for layer_id, _ in self.layers]


class DpiBlockedError(DpiCheckoutError):
    """存在 danger 级图层，硬阻断"""
    pass


class DpiConfirmationRequired(DpiCheckoutError):
    """存在 warning 级图层，需要用户确认"""
    pass
