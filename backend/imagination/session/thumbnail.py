"""
缩略图渲染 - 版面线框预览（PNG, base64）

不加载图片内容，只按绘制顺序画出每个可见图层的外接矩形：
图片/文字/形状使用不同颜色，透明度取图层 opacity
"""

from __future__ import annotations

import base64
from collections.abc import Iterable
from io import BytesIO

from PIL import Image, ImageDraw

from ..config import get_config
from ..models import Layer, Sheet

BACKGROUND = (255, 255, 255, 255)
BORDER = (160, 160, 160, 255)

# 图层类型 -> RGB
KIND_COLORS = {
    "image": (66, 133, 244),
    "text": (52, 168, 83),
    "shape": (251, 188, 5),
}


class ThumbnailRenderer:
    """版面缩略图渲染器"""

    def __init__(self, max_px: int | None = None):
        self.max_px = get_config().canvas.thumbnail_max_px if max_px is None else max_px
        if self.max_px < 1:
            raise ValueError(f"缩略图尺寸必须 >= 1: {self.max_px}")

    def render(self, sheet: Sheet, layers: Iterable[Layer]) -> Image.Image:
        """渲染线框预览（最长边 = max_px）"""
        scale = self.max_px / max(sheet.width_inches, sheet.height_inches)
        size = (
            max(1, round(sheet.width_inches * scale)),
            max(1, round(sheet.height_inches * scale)),
        )
        canvas = Image.new("RGBA", size, BACKGROUND)

        for layer in sorted(layers, key=lambda item: item.z_index):
            if not layer.visible:
                continue
            box = layer.bounding_box()
            rgb = KIND_COLORS.get(layer.kind, (128, 128, 128))
            alpha = round(255 * layer.opacity)

            # 每个图层单独叠加，保证半透明图层按顺序混合
            x0, y0 = box.x * scale, box.y * scale
            x1 = max(x0, box.right * scale - 1)
            y1 = max(y0, box.bottom * scale - 1)

            overlay = Image.new("RGBA", size, (0, 0, 0, 0))
            draw = ImageDraw.Draw(overlay)
            draw.rectangle(
                [x0, y0, x1, y1],
                fill=(*rgb, alpha // 2),
                outline=(*rgb, alpha),
                width=1,
            )
            canvas = Image.alpha_composite(canvas, overlay)

        ImageDraw.Draw(canvas).rectangle(
            [0, 0, size[0] - 1, size[1] - 1], outline=BORDER, width=1
        )
        return canvas

    def render_base64(self, sheet: Sheet, layers: Iterable[Layer]) -> str:
        """PNG -> base64 字符串"""
        buffer = BytesIO()
        self.render(sheet, layers).save(buffer, format="PNG")
        return base64.b64encode(buffer.getvalue()).decode("ascii")

    def render_data_url(self, sheet: Sheet, layers: Iterable[Layer]) -> str:
        return f"data:image/png;base64,{self.render_base64(sheet, layers)}"
