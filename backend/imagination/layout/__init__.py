"""
排版模块 - 纯同步计算，不修改输入

子模块：
- dpi: 打印分辨率计算与分级
- nesting: 自动排版（货架式装箱）
- smart_fill: 智能填充（复制种子图层填满空位）
"""

from .dpi import DpiValidator, classify_dpi, compute_dpi
from .nesting import AutoNestEngine
from .smart_fill import SmartFillEngine

__all__ = [
    "DpiValidator",
    "compute_dpi",
    "classify_dpi",
    "AutoNestEngine",
    "SmartFillEngine",
]
