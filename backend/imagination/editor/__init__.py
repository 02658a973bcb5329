"""
编辑模块 - 单个版面编辑会话的状态容器

子模块：
- registry: 版型目录（预设校验/创建版面/定价）
- layer_store: 图层集合与结构约束
- history: 撤销/重做快照栈
- pending: 导航参数带入的一次性图片
"""

from .history import HistoryManager
from .layer_store import GEOMETRY_FIELDS, LayerStore
from .pending import PendingImageSlot
from .registry import SheetRegistry

__all__ = [
    "SheetRegistry",
    "LayerStore",
    "GEOMETRY_FIELDS",
    "HistoryManager",
    "PendingImageSlot",
]
