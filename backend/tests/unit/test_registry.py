"""
版型目录单元测试
"""

import pytest

from imagination.interfaces import InvalidPresetError
from imagination.models import PrintType, SheetStatus


class TestSheetRegistry:
    """版型目录测试"""

    def test_print_types(self, registry):
        """测试可用打印类型"""
        assert set(registry.print_types) == {
            PrintType.DTF, PrintType.UV_DTF, PrintType.SUBLIMATION,
        }

    @pytest.mark.parametrize("print_type,height,width", [
        ("dtf", 24, 22.5),
        ("uv_dtf", 12, 16),
        (PrintType.SUBLIMATION, 120, 22),
    ])
    def test_create_sheet(self, registry, print_type, height, width):
        """测试按预设创建版面（宽度由打印类型决定）"""
        sheet = registry.create_sheet(print_type, height)
        assert sheet.width_inches == width
        assert sheet.height_inches == height
        assert sheet.status == SheetStatus.DRAFT
        assert sheet.id

    def test_invalid_height(self, registry):
        """测试高度不在预设列表中"""
        with pytest.raises(InvalidPresetError):
            registry.create_sheet("uv_dtf", 240)

    def test_unknown_print_type(self, registry):
        """测试未知打印类型"""
        with pytest.raises(InvalidPresetError):
            registry.create_sheet("screen_print", 24)
        assert not registry.is_valid("screen_print", 24)

    def test_is_valid(self, registry):
        """测试组合校验"""
        assert registry.is_valid("dtf", 53)
        assert not registry.is_valid("sublimation", 53)

    def test_custom_name(self, registry):
        """测试自定义名称"""
        assert registry.create_sheet("dtf", 24, name="Team shirts").name == "Team shirts"

    def test_price(self, registry):
        """测试面积 x 单价"""
        assert registry.price_for("dtf", 24) == 10.8
        assert registry.price_for("uv_dtf", 12) == 3.84
        assert registry.price_for(PrintType.SUBLIMATION, 120) == 52.8
