"""
结算交接 - 把完成的版面编译为不透明的购物车行项目

校验顺序：
0. 版面不是草稿（已提交/已生产）-> CheckoutError
1. 空画布 -> EmptySheetError
2. 存在 danger 图层 -> DpiBlockedError（硬阻断，列出问题图层）
3. 存在 warning 图层且未确认 -> DpiConfirmationRequired（软阻断）

切割线只在预设允许时生效（uv_dtf），镜像只在预设要求时生效（sublimation）
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..editor import SheetRegistry
from ..interfaces import (
    CheckoutError,
    DpiBlockedError,
    DpiConfirmationRequired,
    EmptySheetError,
)
from ..layout import DpiValidator
from ..models import CheckoutLineItem, DpiIssue, Layer, Sheet, SheetStatus

logger = logging.getLogger(__name__)


def _describe(issues: list[DpiIssue]) -> list[tuple[str, str]]:
    return [(issue.layer_id, issue.name) for issue in issues]


class CheckoutHandoff:
    """结算交接"""

    def __init__(
        self,
        registry: SheetRegistry,
        dpi_validator: DpiValidator | None = None,
    ):
        self.registry = registry
        self.dpi_validator = dpi_validator or DpiValidator()

    def compile(
        self,
        sheet: Sheet,
        layers: Sequence[Layer],
        thumbnail_url: str | None = None,
        *,
        confirm_warnings: bool = False,
        cutlines: bool = False,
    ) -> CheckoutLineItem:
        """
        编译行项目并把版面标记为已提交

        Args:
            sheet: 版面
            layers: 当前全部图层
            thumbnail_url: 缩略图地址（data URL 或存储地址）
            confirm_warnings: 用户已确认 warning 级图层
            cutlines: 用户请求切割线

        Raises:
            CheckoutError: 版面已提交过
            EmptySheetError: 没有图层
            DpiBlockedError: 存在 danger 级图层
            DpiConfirmationRequired: 存在 warning 级图层且未确认
        """
        if sheet.status != SheetStatus.DRAFT:
            raise CheckoutError(f"版面已提交，不能重复结算: {sheet.id} ({sheet.status.value})")
        if not layers:
            raise EmptySheetError(f"版面为空，无法结算: {sheet.id}")

        report = self.dpi_validator.scan(layers)
        if report.is_blocked:
            blocked = _describe(report.danger)
            logger.info(f"DPI 不达标，阻断结算: {[layer_id for layer_id, _ in blocked]}")
            raise DpiBlockedError(
                f"{len(blocked)} 个图层分辨率过低，请放大或替换后再结算", blocked
            )
        if report.needs_confirmation and not confirm_warnings:
            raise DpiConfirmationRequired(
                f"{len(report.warning)} 个图层分辨率偏低，确认后可继续",
                _describe(report.warning),
            )

        preset = self.registry.get_preset(sheet.print_type)
        item = CheckoutLineItem(
            sheet_id=sheet.id,
            price=self.registry.price_for(sheet.print_type, sheet.height_inches),
            width_inches=sheet.width_inches,
            height_inches=sheet.height_inches,
            layer_count=len(layers),
            thumbnail_url=thumbnail_url,
            cutlines_flag=cutlines and preset.rules.cutline_option,
            mirror_flag=preset.rules.mirror,
        )

        sheet.mark_submitted()
        logger.info(f"版面已交接结算: {sheet.id} ${item.price:.2f}")
        return item
