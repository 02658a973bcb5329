"""
DPI 校验器 - 计算图片图层的打印分辨率

计算策略：
1. 每个轴的 DPI = 原始像素 / 渲染英寸
2. 有效 DPI 取两轴较小值（较差的轴决定打印质量）
3. 质量分级：>=150 good，[100,150) warning，<100 danger

dpi_info 是 (原始像素, 渲染尺寸) 的纯函数，尺寸变化后必须重算，不能信任旧值

测试要点：
- test_boundary_100_is_warning: 边界值100归入warning
- test_min_axis_rule: 非等比缩放取较小轴
- test_monotonic_in_render_size: 渲染尺寸增大时DPI不增
"""

from __future__ import annotations

from collections.abc import Iterable

from ..config import get_config
from ..interfaces import InvalidGeometryError
from ..models import (
    CanvasSize,
    DpiInfo,
    DpiIssue,
    DpiQuality,
    DpiReport,
    ImageLayer,
    Layer,
)

DPI_GOOD = 150.0
DPI_WARNING = 100.0


def classify_dpi(
    dpi: float,
    good_threshold: float = DPI_GOOD,
    warning_threshold: float = DPI_WARNING,
) -> DpiQuality:
    """DPI 分级"""
    if dpi >= good_threshold:
        return DpiQuality.GOOD
    if dpi >= warning_threshold:
        return DpiQuality.WARNING
    return DpiQuality.DANGER


def compute_dpi(
    original_width: int,
    original_height: int,
    render_width_inches: float,
    render_height_inches: float,
    *,
    good_threshold: float = DPI_GOOD,
    warning_threshold: float = DPI_WARNING,
) -> DpiInfo:
    """
    计算DPI

    Args:
        original_width: 原始像素宽
        original_height: 原始像素高
        render_width_inches: 渲染宽度（英寸）
        render_height_inches: 渲染高度（英寸）

    Returns:
        DpiInfo（分级基于未取整的值）

    Raises:
        InvalidGeometryError: 像素或尺寸 <= 0
    """
    if original_width <= 0 or original_height <= 0:
        raise InvalidGeometryError(
            f"原始像素必须为正: {original_width}x{original_height}"
        )
    if render_width_inches <= 0 or render_height_inches <= 0:
        raise InvalidGeometryError(
            f"渲染尺寸必须为正: {render_width_inches}x{render_height_inches}"
        )

    dpi_w = original_width / render_width_inches
    dpi_h = original_height / render_height_inches
    dpi = min(dpi_w, dpi_h)

    return DpiInfo(
        dpi=round(dpi, 2),
        quality=classify_dpi(dpi, good_threshold, warning_threshold),
        original_width=original_width,
        original_height=original_height,
        canvas_size_inches=CanvasSize(
            width=round(render_width_inches, 2),
            height=round(render_height_inches, 2),
        ),
    )


class DpiValidator:
    """DPI 校验器（阈值来自运行期配置）"""

    def __init__(
        self,
        good_threshold: float | None = None,
        warning_threshold: float | None = None,
    ) -> None:
        config = get_config()
        self.good_threshold = (
            config.dpi.good_threshold if good_threshold is None else good_threshold
        )
        self.warning_threshold = (
            config.dpi.warning_threshold if warning_threshold is None else warning_threshold
        )
        if self.warning_threshold < 0 or self.good_threshold < self.warning_threshold:
            raise ValueError(
                f"DPI阈值不合法: good={self.good_threshold}, warning={self.warning_threshold}"
            )

    def compute(
        self,
        original_width: int,
        original_height: int,
        render_width_inches: float,
        render_height_inches: float,
    ) -> DpiInfo:
        return compute_dpi(
            original_width,
            original_height,
            render_width_inches,
            render_height_inches,
            good_threshold=self.good_threshold,
            warning_threshold=self.warning_threshold,
        )

    def evaluate(self, layer: ImageLayer) -> DpiInfo:
        """按图层当前渲染尺寸计算"""
        return self.compute(
            layer.original_pixel_width,
            layer.original_pixel_height,
            layer.render_width,
            layer.render_height,
        )

    def scan(self, layers: Iterable[Layer]) -> DpiReport:
        """检查全部图片图层，按 danger / warning 归类"""
        report = DpiReport()
        for layer in layers:
            if not isinstance(layer, ImageLayer):
                continue

            info = self.evaluate(layer)
            issue = DpiIssue(
                layer_id=layer.id,
                name=layer.name,
                dpi=info.dpi,
                quality=info.quality,
            )
            if info.quality == DpiQuality.DANGER:
                report.danger.append(issue)
            elif info.quality == DpiQuality.WARNING:
                report.warning.append(issue)

        return report
