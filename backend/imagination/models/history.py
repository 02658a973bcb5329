"""
历史快照模型
"""

from __future__ import annotations

from pydantic import BaseModel

from .layer import Layer


class HistoryEntry(BaseModel):
    """某一时刻整个图层集合的不可变快照"""
    sequence: int
    layers: tuple[Layer, ...] = ()

    model_config = {"frozen": True}
