"""
持久化网关 - 保存载荷构建与手动/自动保存时机

状态机（save_status）：
    任意已提交变更: saved|saving -> unsaved
    发起保存:       unsaved|saved -> saving
    保存成功:       saving -> saved（保存期间又有变更则保持 unsaved）
    保存失败:       saving -> unsaved

手动保存失败抛出 SaveError；自动保存失败只记录日志，下个合格周期重试。
状态检查与切换都在任何 await 之前同步完成，重叠保存靠状态而不是锁来避免。

测试要点：
- test_mutation_marks_unsaved: 变更后状态变为 unsaved
- test_save_failure_reverts: 保存失败回到 unsaved 并抛出 SaveError
- test_autosave_min_interval: 距上次成功保存不足30秒不触发
- test_autosave_swallows_errors: 自动保存失败不抛出
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime

from ..config import RuntimeConfig, get_config
from ..interfaces import IProjectRepository, SaveError
from ..models import (
    CanvasLayer,
    CanvasState,
    ImageLayer,
    Layer,
    LayerAttrs,
    MutationSource,
    SaveMetadata,
    SavePayload,
    SaveStatus,
    Sheet,
    StageState,
    TextLayer,
    Viewport,
)

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[], SavePayload]


class PersistenceGateway:
    """持久化网关"""

    def __init__(
        self,
        repository: IProjectRepository,
        config: RuntimeConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository = repository
        self.config = config or get_config()
        self.clock = clock

        self.save_status = SaveStatus.SAVED
        self.last_saved_at: float | None = None  # clock() 读数
        self._revision = 0

    # === 状态 ===

    @property
    def is_dirty(self) -> bool:
        return self.save_status == SaveStatus.UNSAVED

    def mark_dirty(self) -> None:
        """任意已提交变更后调用"""
        self._revision += 1
        self.save_status = SaveStatus.UNSAVED

    def on_layers_changed(self, layers: list[Layer], source: MutationSource) -> None:
        """LayerStore 监听回调（回放变更同样需要保存）"""
        self.mark_dirty()

    def mark_clean(self) -> None:
        """工程恢复后视为已保存"""
        self.save_status = SaveStatus.SAVED
        self.last_saved_at = self.clock()

    # === 载荷 ===

    def build_payload(
        self,
        sheet: Sheet,
        layers: Iterable[Layer],
        viewport: Viewport,
        thumbnail_base64: str | None = None,
    ) -> SavePayload:
        """构建完整保存载荷（画布状态 + 图层 + 视口 + 缩略图）"""
        layers = sorted(layers, key=lambda layer: layer.z_index)
        ppi = self.config.canvas.pixels_per_inch

        canvas_state = CanvasState(
            stage=StageState(
                width_px=sheet.width_inches * ppi,
                height_px=sheet.height_inches * ppi,
                scale=viewport.zoom,
                position=viewport.position.model_copy(),
            ),
            layers=[self._canvas_layer(layer, ppi) for layer in layers],
            grid_enabled=viewport.grid_enabled,
            snap_enabled=viewport.snap_enabled,
        )

        return SavePayload(
            sheet=sheet.model_copy(deep=True),
            canvas_state=canvas_state,
            layers=[layer.model_copy(deep=True) for layer in layers],
            viewport=viewport.model_copy(deep=True),
            thumbnail_base64=thumbnail_base64,
            metadata=SaveMetadata(
                layer_count=len(layers),
                last_saved=datetime.now(),
                print_type=sheet.print_type,
            ),
        )

    @staticmethod
    def _canvas_layer(layer: Layer, ppi: float) -> CanvasLayer:
        return CanvasLayer(
            id=layer.id,
            type=layer.kind,
            attrs=LayerAttrs(
                x=layer.x * ppi,
                y=layer.y * ppi,
                width=layer.width * ppi,
                height=layer.height * ppi,
                rotation=layer.rotation,
                scale_x=layer.scale_x,
                scale_y=layer.scale_y,
            ),
            src=layer.display_url if isinstance(layer, ImageLayer) else None,
            text=layer.text if isinstance(layer, TextLayer) else None,
        )

    # === 保存 ===

    def save(
        self,
        sheet: Sheet,
        layers: Iterable[Layer],
        viewport: Viewport,
        thumbnail_base64: str | None = None,
    ) -> SavePayload:
        """
        手动保存

        Raises:
            SaveError: 已有保存进行中，或存储失败（状态回到 unsaved）
        """
        payload = self.build_payload(sheet, layers, viewport, thumbnail_base64)
        self._commit(payload)
        return payload

    def save_payload(self, payload: SavePayload) -> None:
        """保存已构建的载荷（失败抛出 SaveError）"""
        self._commit(payload)

    def _commit(self, payload: SavePayload) -> None:
        if self.save_status == SaveStatus.SAVING:
            raise SaveError("已有保存正在进行")

        revision = self._revision
        self.save_status = SaveStatus.SAVING
        try:
            self.repository.save_project(payload)
        except Exception as e:
            self.save_status = SaveStatus.UNSAVED
            raise SaveError(f"保存失败: {e}") from e

        self.last_saved_at = self.clock()
        if self._revision == revision:
            self.save_status = SaveStatus.SAVED
        else:
            self.save_status = SaveStatus.UNSAVED
        logger.info(f"版面已保存: {payload.sheet_id} ({payload.metadata.layer_count} 个图层)")

    # === 自动保存 ===

    def autosave_due(self) -> bool:
        """是否满足自动保存条件"""
        if self.save_status != SaveStatus.UNSAVED:
            return False
        if self.last_saved_at is None:
            return True
        elapsed = self.clock() - self.last_saved_at
        return elapsed >= self.config.autosave.min_interval_sec

    def autosave_tick(self, snapshot_provider: SnapshotProvider) -> bool:
        """
        自动保存检查（周期调用）

        Returns:
            是否成功保存
        """
        if not self.autosave_due():
            return False

        try:
            self._commit(snapshot_provider())
        except Exception:
            logger.exception("自动保存失败，将在下个周期重试")
            return False
        return True

    async def run_autosave(
        self,
        snapshot_provider: SnapshotProvider,
        stop_event: asyncio.Event,
    ) -> None:
        """自动保存循环，直到 stop_event 被设置"""
        interval = self.config.autosave.check_interval_sec
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                self.autosave_tick(snapshot_provider)

    # === 恢复 ===

    def load(self, sheet_id: str) -> SavePayload | None:
        """从存储读取工程"""
        return self.repository.load_project(sheet_id)
