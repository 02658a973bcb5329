"""
智能填充引擎 - 用种子图层的副本填满版面剩余空间

填充策略：
1. 按行优先扫描候选原点，步长不大于 padding（坐标由索引乘步长得到，不累加）
2. 种子大小的候选框外扩 padding 后，与已占用区域（原有图层+本次已放副本）都不重叠才接受
3. 接受后立即把副本占位加入已占用区域
4. 被挡住的候选直接跳到挡块右边界+padding 之后（结果与逐点扫描相同）

只提出新副本位置，从不修改已有图层

测试要点：
- test_fill_empty_sheet: 空版面按网格铺满
- test_no_overlap_with_existing: 副本不与已有图层重叠（含padding）
- test_no_room_returns_empty: 没有空位返回空列表
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from ..config import get_config
from ..interfaces import InvalidGeometryError
from ..models import FillPlacement, FillResult, Rect
from ..models.geometry import EPSILON


class SmartFillEngine:
    """智能填充引擎"""

    def __init__(
        self,
        padding: float | None = None,
        scan_step: float | None = None,
    ) -> None:
        config = get_config()
        self.padding = config.layout.padding_inches if padding is None else padding
        self.scan_step = config.layout.scan_step_inches if scan_step is None else scan_step
        if self.scan_step <= 0:
            raise InvalidGeometryError(f"扫描步长必须为正: {self.scan_step}")

    def fill(
        self,
        sheet_width: float,
        sheet_height: float,
        occupied: Iterable[Rect],
        seed_width: float,
        seed_height: float,
        padding: float | None = None,
    ) -> FillResult:
        """
        计算副本位置

        Args:
            sheet_width: 版面宽度（英寸）
            sheet_height: 版面高度（英寸）
            occupied: 已占用区域（现有图层的外接框）
            seed_width: 种子外接框宽度
            seed_height: 种子外接框高度
            padding: 间距，缺省使用配置值

        Returns:
            FillResult（没有空位时 duplicates 为空）
        """
        padding = self.padding if padding is None else padding
        if seed_width <= 0 or seed_height <= 0:
            raise InvalidGeometryError(f"种子尺寸必须为正: {seed_width}x{seed_height}")
        if padding < 0:
            raise InvalidGeometryError(f"padding不能为负: {padding}")

        blockers = list(occupied)
        occupied_area = sum(r.area for r in blockers)
        sheet_area = sheet_width * sheet_height
        step = min(padding, self.scan_step) if padding > 0 else self.scan_step

        duplicates: list[FillPlacement] = []
        if seed_width > sheet_width + EPSILON or seed_height > sheet_height + EPSILON:
            return FillResult(coverage=self._coverage(occupied_area, sheet_area))

        max_col = math.floor((sheet_width - seed_width) / step + EPSILON)
        max_row = math.floor((sheet_height - seed_height) / step + EPSILON)

        for row in range(max_row + 1):
            y = round(row * step, 9)
            col = 0
            while col <= max_col:
                x = round(col * step, 9)
                candidate = Rect(x=x, y=y, width=seed_width, height=seed_height)
                blocker = self._first_overlap(candidate.inflate(padding), blockers)

                if blocker is None:
                    duplicates.append(FillPlacement(x=x, y=y))
                    blockers.append(candidate)
                    blocker = candidate

                # 候选左边界外扩后必须越过挡块右边界
                clear_x = blocker.right + padding
                col = max(col + 1, math.ceil((clear_x - EPSILON) / step))

        filled_area = occupied_area + len(duplicates) * seed_width * seed_height
        return FillResult(
            duplicates=duplicates,
            coverage=self._coverage(filled_area, sheet_area),
        )

    @staticmethod
    def _first_overlap(box: Rect, blockers: list[Rect]) -> Rect | None:
        for rect in blockers:
            if box.overlaps(rect):
                return rect
        return None

    @staticmethod
    def _coverage(area: float, sheet_area: float) -> int:
        if sheet_area <= 0:
            return 0
        return round(area / sheet_area * 100)
