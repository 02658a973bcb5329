"""
图层集合 - 单个版面的有序可变图层集合

职责：
1. 维护结构约束（ID唯一、z_index唯一、sheet_id一致）
2. 尺寸相关变更后同步重算图片图层的 dpi_info
3. 处理中的图层禁止几何编辑
4. 每次提交变更后通知监听者 (layers, source)（历史记录、保存状态）

所有变更都以"整体替换图层对象"的方式提交：先校验新对象，再写入，
失败时集合保持不变；旧对象可能仍被历史快照引用，不做原地修改

测试要点：
- test_add_duplicate_z_index: z_index冲突报错
- test_resize_recomputes_dpi: 缩放后dpi同步更新
- test_processing_blocks_geometry: 处理中禁止几何编辑
- test_listener_receives_source: 监听者收到变更来源
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import ValidationError

from ..interfaces import (
    InvalidGeometryError,
    LayerBusyError,
    LayerLockedError,
    LayerNotFoundError,
    LayerStoreError,
)
from ..layout import DpiValidator
from ..models import (
    LAYER_LIST_ADAPTER,
    ImageLayer,
    Layer,
    MutationSource,
    NestPosition,
)

Listener = Callable[[list[Layer], MutationSource], None]

GEOMETRY_FIELDS = frozenset({"x", "y", "width", "height", "rotation", "scale_x", "scale_y"})
_IMMUTABLE_FIELDS = frozenset({"id", "sheet_id", "kind", "z_index", "dpi_info"})


class LayerStore:
    """图层集合"""

    def __init__(self, sheet_id: str, dpi_validator: DpiValidator | None = None):
        self.sheet_id = sheet_id
        self.dpi_validator = dpi_validator or DpiValidator()
        self._layers: dict[str, Layer] = {}
        self._processing: set[str] = set()
        self._listeners: list[Listener] = []

    # === 查询 ===

    @property
    def layers(self) -> list[Layer]:
        """按绘制顺序（z_index 升序）返回"""
        return sorted(self._layers.values(), key=lambda layer: layer.z_index)

    def get(self, layer_id: str) -> Layer:
        try:
            return self._layers[layer_id]
        except KeyError:
            raise LayerNotFoundError(f"图层不存在: {layer_id}") from None

    def __len__(self) -> int:
        return len(self._layers)

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._layers

    def __iter__(self) -> Iterator[Layer]:
        return iter(self.layers)

    def next_z_index(self) -> int:
        if not self._layers:
            return 0
        return max(layer.z_index for layer in self._layers.values()) + 1

    # === 监听 ===

    def subscribe(self, listener: Listener) -> None:
        """注册变更监听者（提交后同步调用）"""
        self._listeners.append(listener)

    def _notify(self, source: MutationSource) -> None:
        snapshot = self.layers
        for listener in self._listeners:
            listener(snapshot, source)

    # === 处理中标记 ===

    def is_processing(self, layer_id: str) -> bool:
        return layer_id in self._processing

    @property
    def has_processing(self) -> bool:
        return bool(self._processing)

    @contextmanager
    def processing(self, layer_id: str) -> Iterator[Layer]:
        """外部处理调用期间标记图层为处理中（成功或失败都会解除）"""
        layer = self.get(layer_id)
        if layer_id in self._processing:
            raise LayerBusyError(f"图层正在处理中: {layer_id}")
        self._processing.add(layer_id)
        try:
            yield layer
        finally:
            self._processing.discard(layer_id)

    def _ensure_editable(self, layer_id: str) -> None:
        if layer_id in self._processing:
            raise LayerBusyError(f"图层正在处理中，禁止几何编辑: {layer_id}")

    # === 变更 ===

    def add(self, layer: Layer, source: MutationSource = MutationSource.USER) -> Layer:
        """添加单个图层"""
        return self.add_many([layer], source)[0]

    def add_many(
        self,
        layers: Iterable[Layer],
        source: MutationSource = MutationSource.USER,
    ) -> list[Layer]:
        """批量添加（一次提交，一次通知）"""
        new_layers = [self._prepare(layer) for layer in layers]
        if not new_layers:
            return []

        merged = list(self._layers.values()) + new_layers
        self._check_structure(merged)

        for layer in new_layers:
            self._layers[layer.id] = layer
        self._notify(source)
        return new_layers

    def remove(self, layer_id: str, source: MutationSource = MutationSource.USER) -> Layer:
        """删除图层"""
        layer = self.get(layer_id)
        self._ensure_editable(layer_id)
        del self._layers[layer_id]
        self._notify(source)
        return layer

    def clear(self, source: MutationSource = MutationSource.USER) -> None:
        """清空画布"""
        if self._processing:
            raise LayerBusyError(f"存在处理中的图层: {sorted(self._processing)}")
        self._layers.clear()
        self._notify(source)

    def update_geometry(
        self,
        layer_id: str,
        source: MutationSource = MutationSource.USER,
        **changes: float,
    ) -> Layer:
        """
        修改几何属性（移动/缩放/旋转）

        Raises:
            LayerBusyError: 图层处理中
            LayerLockedError: 图层已锁定
        """
        unknown = set(changes) - GEOMETRY_FIELDS
        if unknown:
            raise LayerStoreError(f"非几何字段: {sorted(unknown)}")

        layer = self.get(layer_id)
        self._ensure_editable(layer_id)
        if layer.locked:
            raise LayerLockedError(f"图层已锁定: {layer_id}")

        updated = self._rebuild(layer, changes)
        self._layers[layer_id] = updated
        self._notify(source)
        return updated

    def update_properties(
        self,
        layer_id: str,
        source: MutationSource = MutationSource.USER,
        **changes: Any,
    ) -> Layer:
        """修改非几何属性（名称/可见/锁定/透明度/文字/颜色等）"""
        forbidden = set(changes) & (GEOMETRY_FIELDS | _IMMUTABLE_FIELDS)
        if forbidden:
            raise LayerStoreError(f"不允许通过属性更新修改: {sorted(forbidden)}")

        layer = self.get(layer_id)
        updated = self._rebuild(layer, changes)
        self._layers[layer_id] = updated
        self._notify(source)
        return updated

    def set_original_pixels(
        self,
        layer_id: str,
        pixel_width: int,
        pixel_height: int,
        processed_url: str | None = None,
        source: MutationSource = MutationSource.USER,
    ) -> ImageLayer:
        """更新图片原始像素（放大后），可同时写入处理后地址"""
        layer = self.get(layer_id)
        if not isinstance(layer, ImageLayer):
            raise LayerStoreError(f"不是图片图层: {layer_id}")

        changes: dict[str, Any] = {
            "original_pixel_width": pixel_width,
            "original_pixel_height": pixel_height,
        }
        if processed_url is not None:
            changes["processed_url"] = processed_url

        updated = self._rebuild(layer, changes)
        self._layers[layer_id] = updated
        self._notify(source)
        return updated

    def apply_positions(
        self,
        positions: Iterable[NestPosition],
        source: MutationSource = MutationSource.USER,
    ) -> list[Layer]:
        """批量写入排版结果（一次提交）"""
        updates: dict[str, Layer] = {}
        for position in positions:
            layer = self.get(position.id)
            self._ensure_editable(position.id)
            updates[position.id] = self._rebuild(
                layer, {"x": position.x, "y": position.y, "rotation": position.rotation}
            )

        if not updates:
            return []

        self._layers.update(updates)
        self._notify(source)
        return list(updates.values())

    def reorder(
        self,
        layer_id: str,
        to_front: bool = True,
        source: MutationSource = MutationSource.USER,
    ) -> Layer:
        """置顶/置底"""
        layer = self.get(layer_id)
        others = [other.z_index for other in self._layers.values() if other.id != layer_id]
        if not others:
            return layer

        z_index = max(others) + 1 if to_front else min(others) - 1
        updated = layer.model_copy(update={"z_index": z_index})
        self._layers[layer_id] = updated
        self._notify(source)
        return updated

    def replace_all(self, layers: Iterable[Layer], source: MutationSource) -> None:
        """整体替换（撤销/重做回放、工程恢复）"""
        if self._processing:
            raise LayerBusyError(f"存在处理中的图层: {sorted(self._processing)}")

        new_layers = [self._prepare(layer) for layer in layers]
        self._check_structure(new_layers)

        self._layers = {layer.id: layer for layer in new_layers}
        self._notify(source)

    # === 内部 ===

    def _prepare(self, layer: Layer) -> Layer:
        """复制外部传入的图层，校验归属并重算派生字段"""
        if layer.sheet_id != self.sheet_id:
            raise LayerStoreError(f"图层 {layer.id} 不属于版面 {self.sheet_id}")
        return self._with_dpi(layer.model_copy(deep=True))

    def _rebuild(self, layer: Layer, changes: dict[str, Any]) -> Layer:
        """按变更重建图层对象（走完整校验），再重算 dpi_info"""
        data = layer.model_dump()
        data.update(changes)
        data.pop("dpi_info", None)
        try:
            rebuilt = LAYER_LIST_ADAPTER.validate_python([data])[0]
        except ValidationError as e:
            raise InvalidGeometryError(f"图层参数不合法: {layer.id}: {e}") from e
        return self._with_dpi(rebuilt)

    def _with_dpi(self, layer: Layer) -> Layer:
        if isinstance(layer, ImageLayer):
            return layer.model_copy(update={"dpi_info": self.dpi_validator.evaluate(layer)})
        return layer

    @staticmethod
    def _check_structure(layers: list[Layer]) -> None:
        ids = [layer.id for layer in layers]
        if len(ids) != len(set(ids)):
            raise LayerStoreError("图层ID重复")

        z_values = [layer.z_index for layer in layers]
        if len(z_values) != len(set(z_values)):
            raise LayerStoreError("z_index重复")
