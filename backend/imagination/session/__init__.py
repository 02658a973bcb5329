"""
会话模块 - 编辑会话编排、保存/自动保存、缩略图、结算交接

子模块：
- session: EditingSession（对外入口）
- persistence: 保存载荷与保存时机
- repository: 本地文件工程存储
- thumbnail: Pillow 线框缩略图
- checkout: 结算行项目编译
"""

from .checkout import CheckoutHandoff
from .persistence import PersistenceGateway
from .repository import FileProjectRepository
from .session import EditingSession
from .thumbnail import ThumbnailRenderer

__all__ = [
    "EditingSession",
    "PersistenceGateway",
    "FileProjectRepository",
    "ThumbnailRenderer",
    "CheckoutHandoff",
]
