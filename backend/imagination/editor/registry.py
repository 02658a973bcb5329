"""
版型目录 - 打印类型预设的静态目录

职责：
1. 校验 (打印类型, 高度) 组合
2. 按预设创建版面（宽度由打印类型决定）
3. 计算版面价格（面积 x 单价）
"""

from __future__ import annotations

import uuid

from ..config import PresetSpec, PrintTypePreset, get_config, load_presets
from ..interfaces import InvalidPresetError
from ..models import PrintType, Sheet


class SheetRegistry:
    """版型目录"""

    def __init__(self, presets: PresetSpec | None = None):
        self.presets = presets or load_presets(get_config().preset_path)

    @property
    def print_types(self) -> list[PrintType]:
        return [PrintType(key) for key in self.presets.print_types]

    def get_preset(self, print_type: PrintType | str) -> PrintTypePreset:
        """获取预设，不存在时报错"""
        key = print_type.value if isinstance(print_type, PrintType) else str(print_type)
        preset = self.presets.get_preset(key)
        if preset is None:
            raise InvalidPresetError(f"未知打印类型: {print_type}")
        return preset

    def is_valid(self, print_type: PrintType | str, height_inches: float) -> bool:
        try:
            return self.get_preset(print_type).allows_height(height_inches)
        except InvalidPresetError:
            return False

    def create_sheet(
        self,
        print_type: PrintType | str,
        height_inches: float,
        name: str | None = None,
    ) -> Sheet:
        """
        按预设创建版面

        Raises:
            InvalidPresetError: 打印类型未知或高度不在预设列表中
        """
        preset = self.get_preset(print_type)
        print_type = PrintType(print_type)
        if not preset.allows_height(height_inches):
            raise InvalidPresetError(
                f"{print_type.value} 不支持高度 {height_inches}in，可选: {preset.heights}"
            )

        return Sheet(
            id=str(uuid.uuid4()),
            print_type=print_type,
            name=name or f"{preset.display_name or print_type.value} Sheet",
            width_inches=preset.width,
            height_inches=float(height_inches),
        )

    def price_for(self, print_type: PrintType | str, height_inches: float) -> float:
        """版面价格（美元，保留两位小数）"""
        preset = self.get_preset(print_type)
        area = preset.width * height_inches
        return round(area * preset.price_per_square_inch, 2)
