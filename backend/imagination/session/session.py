"""
编辑会话 - 单个版面的编排入口

一个会话独占一个版面的 LayerStore，并把 HistoryManager 与 PersistenceGateway
注册为图层变更监听者：
    用户/算法变更 -> LayerStore 提交 -> 历史快照 + 标记未保存
    撤销/重做     -> LayerStore.replace_all(source=REPLAY) -> 只标记未保存

外部图像服务（生图/抠图/放大/增强）为异步调用；失败统一转换为
CollaboratorError，图层状态保持不变

测试要点：
- test_auto_nest_commits_positions: 排版结果一次提交并可撤销
- test_smart_fill_adds_copies: 填充副本一次性加入
- test_upscale_clears_dpi_block: danger 图层放大2倍后可以结算
- test_collaborator_failure_leaves_layer: 外部服务失败图层不变
- test_pending_image_consumed_once: 待添加图片只消费一次
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

from ..config import RuntimeConfig, get_config
from ..editor import HistoryManager, LayerStore, PendingImageSlot, SheetRegistry
from ..interfaces import (
    CollaboratorError,
    IImageEnhancer,
    IImageGenerator,
    IImageProbe,
    IProjectRepository,
    LayerBusyError,
    LayerStoreError,
)
from ..layout import AutoNestEngine, DpiValidator, SmartFillEngine
from ..models import (
    CheckoutLineItem,
    EnhancementOperation,
    EnhancementRequest,
    FillResult,
    ImageLayer,
    Layer,
    MutationSource,
    NestItem,
    NestResult,
    PendingImage,
    Point,
    PrintType,
    SavePayload,
    SaveStatus,
    ShapeLayer,
    Sheet,
    TextLayer,
    Viewport,
)
from .checkout import CheckoutHandoff
from .persistence import PersistenceGateway
from .repository import FileProjectRepository
from .thumbnail import ThumbnailRenderer

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class EditingSession:
    """单个版面的编辑会话"""

    def __init__(
        self,
        sheet: Sheet,
        *,
        registry: SheetRegistry | None = None,
        repository: IProjectRepository | None = None,
        generator: IImageGenerator | None = None,
        enhancer: IImageEnhancer | None = None,
        probe: IImageProbe | None = None,
        config: RuntimeConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or get_config()
        self.sheet = sheet
        self.registry = registry or SheetRegistry()

        self.generator = generator
        self.enhancer = enhancer
        self.probe = probe

        self.dpi_validator = DpiValidator(
            self.config.dpi.good_threshold,
            self.config.dpi.warning_threshold,
        )
        self.store = LayerStore(sheet.id, self.dpi_validator)
        self.history = HistoryManager(self.config.history.limit)
        self.persistence = PersistenceGateway(
            repository or FileProjectRepository(self.config),
            self.config,
            clock,
        )
        self.nest_engine = AutoNestEngine(self.config.layout.padding_inches)
        self.fill_engine = SmartFillEngine(
            self.config.layout.padding_inches,
            self.config.layout.scan_step_inches,
        )
        self.thumbnails = ThumbnailRenderer(self.config.canvas.thumbnail_max_px)
        self.handoff = CheckoutHandoff(self.registry, self.dpi_validator)

        self.viewport = Viewport()
        self.pending = PendingImageSlot()

        self.history.reset(self.store.layers)
        self.store.subscribe(self.history.record)
        self.store.subscribe(self.persistence.on_layers_changed)

    # ========================================================================
    # 创建 / 恢复
    # ========================================================================

    @classmethod
    def create(
        cls,
        print_type: PrintType | str,
        height_inches: float,
        name: str | None = None,
        *,
        registry: SheetRegistry | None = None,
        **kwargs: Any,
    ) -> EditingSession:
        """按预设新建版面并开启会话"""
        registry = registry or SheetRegistry()
        sheet = registry.create_sheet(print_type, height_inches, name)
        logger.info(f"新建版面: {sheet.id} {sheet.width_inches}x{sheet.height_inches}in")
        return cls(sheet, registry=registry, **kwargs)

    @classmethod
    def restore(
        cls,
        sheet_id: str,
        *,
        repository: IProjectRepository | None = None,
        config: RuntimeConfig | None = None,
        **kwargs: Any,
    ) -> EditingSession | None:
        """
        从存储恢复会话

        Returns:
            会话；工程不存在时返回 None
        """
        config = config or get_config()
        repository = repository or FileProjectRepository(config)
        payload = repository.load_project(sheet_id)
        if payload is None:
            return None

        session = cls(payload.sheet, repository=repository, config=config, **kwargs)
        session.store.replace_all(payload.layers, MutationSource.REPLAY)
        session.history.reset(session.store.layers)
        session.viewport = payload.viewport.model_copy(deep=True)
        session.persistence.mark_clean()
        logger.info(f"版面已恢复: {sheet_id} ({len(session.store)} 个图层)")
        return session

    # ========================================================================
    # 查询
    # ========================================================================

    @property
    def layers(self) -> list[Layer]:
        return self.store.layers

    @property
    def save_status(self) -> SaveStatus:
        return self.persistence.save_status

    def get_layer(self, layer_id: str) -> Layer:
        return self.store.get(layer_id)

    # ========================================================================
    # 图层
    # ========================================================================

    def import_size(self, pixel_width: int, pixel_height: int) -> tuple[float, float]:
        """导入尺寸：像素 / 96 英寸，最长边不超过 max_import_inches"""
        canvas = self.config.canvas
        width = pixel_width / canvas.pixels_per_inch
        height = pixel_height / canvas.pixels_per_inch
        longest = max(width, height)
        if longest > canvas.max_import_inches:
            ratio = canvas.max_import_inches / longest
            width, height = width * ratio, height * ratio
        return width, height

    def add_image_layer(
        self,
        source_url: str,
        pixel_width: int,
        pixel_height: int,
        *,
        name: str = "Image",
        x: float = 0.0,
        y: float = 0.0,
        width: float | None = None,
        height: float | None = None,
    ) -> ImageLayer:
        """添加图片图层（未指定尺寸时按导入规则计算）"""
        if width is None or height is None:
            width, height = self.import_size(pixel_width, pixel_height)

        layer = ImageLayer(
            id=_new_id(),
            sheet_id=self.sheet.id,
            name=name,
            x=x,
            y=y,
            width=width,
            height=height,
            z_index=self.store.next_z_index(),
            source_url=source_url,
            original_pixel_width=pixel_width,
            original_pixel_height=pixel_height,
        )
        return self.store.add(layer)

    def add_text_layer(
        self,
        text: str,
        *,
        name: str = "Text",
        x: float = 0.0,
        y: float = 0.0,
        width: float = 4.0,
        height: float = 1.0,
        **style: Any,
    ) -> TextLayer:
        layer = TextLayer(
            id=_new_id(),
            sheet_id=self.sheet.id,
            name=name,
            x=x,
            y=y,
            width=width,
            height=height,
            z_index=self.store.next_z_index(),
            text=text,
            **style,
        )
        return self.store.add(layer)

    def add_shape_layer(
        self,
        shape_kind: str = "rect",
        *,
        name: str = "Shape",
        x: float = 0.0,
        y: float = 0.0,
        width: float = 2.0,
        height: float = 2.0,
        **style: Any,
    ) -> ShapeLayer:
        layer = ShapeLayer(
            id=_new_id(),
            sheet_id=self.sheet.id,
            name=name,
            x=x,
            y=y,
            width=width,
            height=height,
            z_index=self.store.next_z_index(),
            shape_kind=shape_kind,
            **style,
        )
        return self.store.add(layer)

    def move_layer(self, layer_id: str, x: float, y: float) -> Layer:
        return self.store.update_geometry(layer_id, x=x, y=y)

    def resize_layer(
        self,
        layer_id: str,
        width: float,
        height: float,
        scale_x: float | None = None,
        scale_y: float | None = None,
    ) -> Layer:
        """修改尺寸（图片图层同步重算DPI）"""
        changes = {"width": width, "height": height}
        if scale_x is not None:
            changes["scale_x"] = scale_x
        if scale_y is not None:
            changes["scale_y"] = scale_y
        return self.store.update_geometry(layer_id, **changes)

    def rotate_layer(self, layer_id: str, rotation: float) -> Layer:
        return self.store.update_geometry(layer_id, rotation=rotation)

    def update_layer(self, layer_id: str, **changes: Any) -> Layer:
        """修改非几何属性（名称/可见/锁定/透明度/文字样式等）"""
        return self.store.update_properties(layer_id, **changes)

    def bring_to_front(self, layer_id: str) -> Layer:
        return self.store.reorder(layer_id, to_front=True)

    def send_to_back(self, layer_id: str) -> Layer:
        return self.store.reorder(layer_id, to_front=False)

    def delete_layer(self, layer_id: str) -> Layer:
        return self.store.remove(layer_id)

    def reset_canvas(self) -> None:
        """清空全部图层（可撤销）"""
        self.store.clear()

    # ========================================================================
    # 排版
    # ========================================================================

    def auto_nest(self, padding: float | None = None) -> NestResult:
        """
        自动排版全部图层（已放置的一次提交，放不下的保持原位）

        Raises:
            LayerBusyError: 存在处理中的图层
        """
        if self.store.has_processing:
            raise LayerBusyError("存在处理中的图层，暂不能自动排版")

        items = [
            NestItem(
                id=layer.id,
                width=layer.render_width,
                height=layer.render_height,
                rotation=layer.rotation,
            )
            for layer in self.store.layers
        ]
        result = self.nest_engine.nest(
            self.sheet.width_inches,
            self.sheet.height_inches,
            items,
            padding,
        )
        self.store.apply_positions(result.positions)

        if result.unplaced:
            logger.info(f"自动排版: {len(result.unplaced)} 个图层放不下 {result.unplaced}")
        return result

    def smart_fill(
        self,
        seed_layer_id: str | None = None,
        padding: float | None = None,
    ) -> FillResult:
        """
        用种子图层的副本填满空位（缺省取面积最小的图层）

        Returns:
            FillResult；画布为空或没有空位时 duplicates 为空
        """
        layers = self.store.layers
        if not layers:
            return FillResult()

        if seed_layer_id is None:
            seed = min(layers, key=lambda layer: (layer.bounding_box().area, layer.z_index))
        else:
            seed = self.store.get(seed_layer_id)

        seed_box = seed.bounding_box()
        result = self.fill_engine.fill(
            self.sheet.width_inches,
            self.sheet.height_inches,
            [layer.bounding_box() for layer in layers],
            seed_box.width,
            seed_box.height,
            padding,
        )
        if not result.duplicates:
            return result

        z_index = self.store.next_z_index()
        copies = [
            seed.model_copy(
                update={
                    "id": _new_id(),
                    "name": f"{seed.name} copy",
                    "x": placement.x,
                    "y": placement.y,
                    "z_index": z_index + i,
                    "locked": False,
                }
            )
            for i, placement in enumerate(result.duplicates)
        ]
        self.store.add_many(copies)
        logger.info(f"智能填充: 新增 {result.total_added} 个副本，覆盖率 {result.coverage}%")
        return result

    # ========================================================================
    # 撤销 / 重做
    # ========================================================================

    def undo(self) -> bool:
        """撤销（到达边界时返回 False）"""
        return self._replay(self.history.undo)

    def redo(self) -> bool:
        """重做（到达边界时返回 False）"""
        return self._replay(self.history.redo)

    def _replay(self, step: Callable[[], list[Layer] | None]) -> bool:
        if self.store.has_processing:
            raise LayerBusyError("存在处理中的图层，暂不能撤销/重做")
        snapshot = step()
        if snapshot is None:
            return False
        self.store.replace_all(snapshot, MutationSource.REPLAY)
        return True

    # ========================================================================
    # 视口
    # ========================================================================

    def set_viewport(
        self,
        zoom: float | None = None,
        position: Point | None = None,
        grid_enabled: bool | None = None,
        snap_enabled: bool | None = None,
    ) -> Viewport:
        """更新视口（缩放限制在 [min_zoom, max_zoom]）"""
        changes: dict[str, Any] = {}
        if zoom is not None:
            canvas = self.config.canvas
            changes["zoom"] = min(max(zoom, canvas.min_zoom), canvas.max_zoom)
        if position is not None:
            changes["position"] = position
        if grid_enabled is not None:
            changes["grid_enabled"] = grid_enabled
        if snap_enabled is not None:
            changes["snap_enabled"] = snap_enabled

        if changes:
            self.viewport = self.viewport.model_copy(update=changes)
            self.persistence.mark_dirty()
        return self.viewport

    # ========================================================================
    # 外部图像服务
    # ========================================================================

    async def generate_image(
        self,
        prompt: str,
        style: str = "realistic",
        name: str = "AI Image",
    ) -> ImageLayer:
        """
        AI 生图并作为新图层加入

        Raises:
            CollaboratorError: 生成或探测失败（不创建图层）
        """
        if self.generator is None or self.probe is None:
            raise CollaboratorError("图片生成服务不可用")

        try:
            generated = await self.generator.generate(prompt, style)
            pixel_width, pixel_height = await self._probe_pixels(generated.image_url)
        except Exception as e:
            logger.warning(f"图片生成失败: {e}")
            raise CollaboratorError("图片生成失败，请稍后重试") from e

        return self.add_image_layer(
            generated.image_url, pixel_width, pixel_height, name=name
        )

    async def enhance_layer(
        self,
        layer_id: str,
        operation: EnhancementOperation | str,
        factor: float = 2.0,
    ) -> ImageLayer:
        """
        抠图/放大/增强图片图层

        处理期间图层标记为处理中（禁止几何编辑）；放大成功后原始像素乘以
        实际倍数并重算DPI

        Raises:
            LayerStoreError: 不是图片图层
            LayerBusyError: 图层已在处理中
            CollaboratorError: 服务调用失败（图层保持不变）
        """
        operation = EnhancementOperation(operation)
        if self.enhancer is None:
            raise CollaboratorError("图像处理服务不可用")

        with self.store.processing(layer_id) as layer:
            if not isinstance(layer, ImageLayer):
                raise LayerStoreError(f"只能处理图片图层: {layer_id}")

            request = EnhancementRequest(
                operation=operation,
                image_url=layer.display_url,
                factor=factor,
            )
            try:
                result = await self.enhancer.process(request)
            except Exception as e:
                logger.warning(f"图像处理失败 {operation.value} {layer_id}: {e}")
                raise CollaboratorError(f"{operation.value} 处理失败，请稍后重试") from e

            layer = self.store.get(layer_id)
            if operation == EnhancementOperation.UPSCALE:
                return self.store.set_original_pixels(
                    layer_id,
                    round(layer.original_pixel_width * result.scale_factor),
                    round(layer.original_pixel_height * result.scale_factor),
                    processed_url=result.processed_url,
                )
            return self.store.update_properties(layer_id, processed_url=result.processed_url)

    # ========================================================================
    # 待添加图片（导航参数带入）
    # ========================================================================

    def offer_pending_image(self, url: str, name: str | None = None) -> None:
        image = PendingImage(url=url) if name is None else PendingImage(url=url, name=name)
        self.pending.offer(image)

    async def apply_pending_image(self) -> ImageLayer | None:
        """
        消费待添加图片（只消费一次）

        Returns:
            新图层；没有待添加图片时返回 None

        Raises:
            CollaboratorError: 探测失败（图片已被消费，不会重试）
        """
        pending = self.pending.take()
        if pending is None:
            return None
        if self.probe is None:
            raise CollaboratorError("图片探测服务不可用")

        try:
            pixel_width, pixel_height = await self._probe_pixels(pending.url)
        except Exception as e:
            logger.warning(f"待添加图片探测失败: {pending.url}: {e}")
            raise CollaboratorError("图片加载失败") from e

        return self.add_image_layer(pending.url, pixel_width, pixel_height, name=pending.name)

    async def _probe_pixels(self, url: str) -> tuple[int, int]:
        """探测原始像素尺寸，非正整数视为探测失败"""
        pixel_width, pixel_height = await self.probe.probe(url)
        if int(pixel_width) != pixel_width or int(pixel_height) != pixel_height:
            raise ValueError(f"像素尺寸不是整数: {pixel_width}x{pixel_height}")
        if pixel_width <= 0 or pixel_height <= 0:
            raise ValueError(f"像素尺寸必须为正: {pixel_width}x{pixel_height}")
        return int(pixel_width), int(pixel_height)

    # ========================================================================
    # 保存
    # ========================================================================

    def snapshot(self) -> SavePayload:
        """构建当前完整保存载荷（含缩略图）"""
        layers = self.store.layers
        return self.persistence.build_payload(
            self.sheet,
            layers,
            self.viewport,
            self.thumbnails.render_base64(self.sheet, layers),
        )

    def save(self) -> SavePayload:
        """
        手动保存

        Raises:
            SaveError: 保存失败（状态回到 unsaved，可重试）
        """
        payload = self.snapshot()
        self.persistence.save_payload(payload)
        return payload

    def autosave_tick(self) -> bool:
        return self.persistence.autosave_tick(self.snapshot)

    async def run_autosave(self, stop_event: asyncio.Event) -> None:
        await self.persistence.run_autosave(self.snapshot, stop_event)

    # ========================================================================
    # 结算
    # ========================================================================

    def checkout(
        self,
        *,
        confirm_warnings: bool = False,
        cutlines: bool = False,
    ) -> CheckoutLineItem:
        """
        交接结算

        Raises:
            EmptySheetError / DpiBlockedError / DpiConfirmationRequired
        """
        layers = self.store.layers
        item = self.handoff.compile(
            self.sheet,
            layers,
            self.thumbnails.render_data_url(self.sheet, layers),
            confirm_warnings=confirm_warnings,
            cutlines=cutlines,
        )
        self.persistence.mark_dirty()
        return item
