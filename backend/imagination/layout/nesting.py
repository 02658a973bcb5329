"""
自动排版引擎 - 货架式装箱，重新摆放版面上所有图层以减少浪费

排版策略（确定性）：
1. 按外接框高度降序、宽度降序、ID升序排序（保证结果可复现）
2. 维护货架列表：货架高度 = 首个放入条目的高度 + padding，剩余宽度从版面宽度开始
3. 依次放入第一个剩余宽度 >= 宽度 + padding 的货架；都放不下则在
   y = 之前货架高度之和 处新开货架（版面剩余高度允许时）
4. 条目本身比版面还宽时，旋转90°按同样逻辑重试一次
5. 仍放不下则记入 unplaced，不返回其位置（原位置保持不变）

测试要点：
- test_three_squares_one_shelf: 22.5x24 版面三个6x6条目排在同一货架
- test_deterministic: 同一输入两次排版结果一致
- test_no_overlap_with_padding: 放置结果外扩padding后两两不重叠
- test_rotation_fallback: 过宽条目旋转后放入
- test_overflow_reports_unplaced: 超出面积时报告未放置条目
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..config import get_config
from ..interfaces import InvalidGeometryError
from ..models import NestItem, NestPosition, NestResult, footprint_size
from ..models.geometry import EPSILON

logger = logging.getLogger(__name__)


@dataclass
class _Shelf:
    """货架"""
    y: float
    height: float           # 含 padding
    remaining_width: float
    cursor: float = 0.0


class AutoNestEngine:
    """自动排版引擎"""

    def __init__(self, padding: float | None = None) -> None:
        config = get_config()
        self.padding = config.layout.padding_inches if padding is None else padding

    def nest(
        self,
        sheet_width: float,
        sheet_height: float,
        items: Iterable[NestItem],
        padding: float | None = None,
    ) -> NestResult:
        """
        排版

        Args:
            sheet_width: 版面宽度（英寸）
            sheet_height: 版面高度（英寸）
            items: 待排版条目（宽高为未旋转尺寸，rotation 为当前角度）
            padding: 间距，缺省使用配置值

        Returns:
            NestResult（只包含已放置条目的位置）
        """
        padding = self.padding if padding is None else padding
        if sheet_width <= 0 or sheet_height <= 0:
            raise InvalidGeometryError(f"版面尺寸必须为正: {sheet_width}x{sheet_height}")
        if padding < 0:
            raise InvalidGeometryError(f"padding不能为负: {padding}")

        sheet_area = sheet_width * sheet_height
        prepared = []
        for item in items:
            w, h = footprint_size(item.width, item.height, item.rotation)
            prepared.append((item, w, h))

        if not prepared:
            return NestResult(wasted_area=sheet_area)

        prepared.sort(key=lambda p: (-p[2], -p[1], p[0].id))

        shelves: list[_Shelf] = []
        positions: list[NestPosition] = []
        unplaced: list[str] = []
        placed_area = 0.0

        for item, w, h in prepared:
            rotation = item.rotation
            spot = self._place(shelves, w, h, sheet_width, sheet_height, padding)

            if spot is None and w + padding > sheet_width + EPSILON:
                # 比版面还宽：旋转90°再试一次
                spot = self._place(shelves, h, w, sheet_width, sheet_height, padding)
                if spot is not None:
                    w, h = h, w
                    rotation = (rotation + 90.0) % 360.0

            if spot is None:
                logger.info(f"图层放不下，保留原位置: {item.id} ({w:.2f}x{h:.2f})")
                unplaced.append(item.id)
                continue

            x, y = spot
            positions.append(NestPosition(id=item.id, x=x, y=y, rotation=rotation))
            placed_area += w * h

        return NestResult(
            positions=positions,
            unplaced=unplaced,
            efficiency=round(placed_area / sheet_area * 100),
            wasted_area=sheet_area - placed_area,
        )

    def _place(
        self,
        shelves: list[_Shelf],
        w: float,
        h: float,
        sheet_width: float,
        sheet_height: float,
        padding: float,
    ) -> tuple[float, float] | None:
        """放入现有货架或新开货架，返回左上角坐标"""
        need_w = w + padding
        need_h = h + padding

        for shelf in shelves:
            if shelf.remaining_width + EPSILON >= need_w and shelf.height + EPSILON >= need_h:
                return self._advance(shelf, need_w)

        y = sum(shelf.height for shelf in shelves)
        if sheet_height - y + EPSILON < need_h or sheet_width + EPSILON < need_w:
            return None

        shelf = _Shelf(y=y, height=need_h, remaining_width=sheet_width)
        shelves.append(shelf)
        return self._advance(shelf, need_w)

    @staticmethod
    def _advance(shelf: _Shelf, need_w: float) -> tuple[float, float]:
        x = shelf.cursor
        shelf.cursor += need_w
        shelf.remaining_width -= need_w
        return x, shelf.y
