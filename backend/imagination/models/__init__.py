"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- Sheet: 版面与生命周期
- Layer: 图片/文字/形状图层（标记联合）
- HistoryEntry: 撤销/重做快照
- CanvasState/SavePayload: 保存载荷
- CheckoutLineItem: 结算交接
"""

from .canvas_state import (
    CANVAS_STATE_VERSION,
    CanvasLayer,
    CanvasState,
    LayerAttrs,
    Point,
    SaveMetadata,
    SavePayload,
    SaveStatus,
    StageState,
    Viewport,
)
from .checkout import CheckoutLineItem, DpiIssue, DpiReport
from .geometry import Rect, footprint_size
from .history import HistoryEntry
from .layer import (
    LAYER_LIST_ADAPTER,
    CanvasSize,
    DpiInfo,
    DpiQuality,
    ImageLayer,
    Layer,
    LayerBase,
    MutationSource,
    ShapeLayer,
    TextLayer,
)
from .layout import FillPlacement, FillResult, NestItem, NestPosition, NestResult
from .services import (
    EnhancementOperation,
    EnhancementRequest,
    EnhancementResult,
    GeneratedImage,
    PendingImage,
)
from .sheet import PrintType, Sheet, SheetStatus

__all__ = [
    "Sheet",
    "PrintType",
    "SheetStatus",
    "Layer",
    "LayerBase",
    "ImageLayer",
    "TextLayer",
    "ShapeLayer",
    "LAYER_LIST_ADAPTER",
    "MutationSource",
    "DpiInfo",
    "DpiQuality",
    "CanvasSize",
    "Rect",
    "footprint_size",
    "HistoryEntry",
    "NestItem",
    "NestPosition",
    "NestResult",
    "FillPlacement",
    "FillResult",
    "CANVAS_STATE_VERSION",
    "CanvasState",
    "CanvasLayer",
    "LayerAttrs",
    "StageState",
    "Point",
    "Viewport",
    "SaveStatus",
    "SaveMetadata",
    "SavePayload",
    "CheckoutLineItem",
    "DpiIssue",
    "DpiReport",
    "EnhancementOperation",
    "EnhancementRequest",
    "EnhancementResult",
    "GeneratedImage",
    "PendingImage",
]
