"""
几何模型 - 轴对齐矩形与旋转占位计算

单位统一为英寸，原点在画布左上角，y 轴向下
"""

from __future__ import annotations

import math

from pydantic import BaseModel

# 浮点比较容差（英寸）
EPSILON = 1e-9


class Rect(BaseModel):
    """轴对齐矩形（x, y 为左上角）"""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def inflate(self, pad: float) -> Rect:
        """四周各外扩 pad"""
        return Rect(
            x=self.x - pad,
            y=self.y - pad,
            width=self.width + 2 * pad,
            height=self.height + 2 * pad,
        )

    def overlaps(self, other: Rect) -> bool:
        """判断内部是否重叠（仅边界接触不算重叠）"""
        return (
            self.x < other.right - EPSILON and
            other.x < self.right - EPSILON and
            self.y < other.bottom - EPSILON and
            other.y < self.bottom - EPSILON
        )

    def contains(self, other: Rect) -> bool:
        """判断 other 是否完全落在本矩形内"""
        return (
            other.x >= self.x - EPSILON and
            other.y >= self.y - EPSILON and
            other.right <= self.right + EPSILON and
            other.bottom <= self.bottom + EPSILON
        )


def footprint_size(width: float, height: float, rotation: float) -> tuple[float, float]:
    """
    计算旋转后的外接矩形尺寸

    直角旋转直接交换宽高（避免 cos(90°) 的浮点残差），
    其他角度取旋转矩形的外接框
    """
    r = rotation % 180.0
    if math.isclose(r, 0.0, abs_tol=1e-9) or math.isclose(r, 180.0, abs_tol=1e-9):
        return width, height
    if math.isclose(r, 90.0, abs_tol=1e-9):
        return height, width

    rad = math.radians(rotation)
    c = abs(math.cos(rad))
    s = abs(math.sin(rad))
    return width * c + height * s, width * s + height * c
