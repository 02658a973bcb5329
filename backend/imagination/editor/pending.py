"""
待添加图片槽 - 导航参数带入的图片URL，只消费一次
"""

from __future__ import annotations

from ..models import PendingImage


class PendingImageSlot:
    """单槽位：take() 读取并清空"""

    def __init__(self) -> None:
        self._pending: PendingImage | None = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def offer(self, image: PendingImage) -> None:
        """放入待添加图片（覆盖尚未消费的旧值）"""
        self._pending = image

    def take(self) -> PendingImage | None:
        image, self._pending = self._pending, None
        return image
