"""
DPI 校验单元测试
"""

import pytest

from imagination.interfaces import InvalidGeometryError
from imagination.layout import DpiValidator, classify_dpi, compute_dpi
from imagination.models import DpiQuality


class TestComputeDpi:
    """DPI 计算测试"""

    def test_boundary_100_is_warning(self):
        """测试 600px 渲染为 6in -> dpi=100 -> warning"""
        info = compute_dpi(600, 600, 6, 6)
        assert info.dpi == 100
        assert info.quality == DpiQuality.WARNING

    def test_good_and_danger(self):
        """测试 good / danger 分级"""
        assert compute_dpi(900, 900, 6, 6).quality == DpiQuality.GOOD
        assert compute_dpi(480, 480, 6, 6).quality == DpiQuality.DANGER
        assert compute_dpi(480, 480, 6, 6).dpi == 80

    def test_boundary_150_is_good(self):
        """测试边界值150归入good"""
        assert compute_dpi(900, 600, 6, 4).quality == DpiQuality.GOOD

    def test_min_axis_rule(self):
        """测试非等比缩放取较小轴"""
        info = compute_dpi(1200, 1200, 6, 12)
        assert info.dpi == 100
        assert info.quality == DpiQuality.WARNING

    def test_rounding(self):
        """测试保留两位小数"""
        info = compute_dpi(1000, 1000, 3, 3)
        assert info.dpi == 333.33
        assert info.canvas_size_inches.width == 3

    def test_tier_uses_unrounded_value(self):
        """测试分级基于未取整的值（99.999 仍是 danger）"""
        info = compute_dpi(99999, 99999, 1000, 1000)
        assert info.dpi == 100.0
        assert info.quality == DpiQuality.DANGER

    def test_monotonic_in_render_size(self):
        """测试渲染尺寸增大时DPI不增"""
        previous = None
        for inches in [1, 2, 3.5, 6, 8.25, 12, 22]:
            dpi = compute_dpi(1500, 1000, inches, inches * 0.75).dpi
            if previous is not None:
                assert dpi <= previous
            previous = dpi

    @pytest.mark.parametrize("args", [
        (0, 100, 1, 1),
        (100, -1, 1, 1),
        (100, 100, 0, 1),
        (100, 100, 1, -2),
    ])
    def test_non_positive_rejected(self, args):
        """测试像素或尺寸非正报错"""
        with pytest.raises(InvalidGeometryError):
            compute_dpi(*args)

    def test_classify_custom_thresholds(self):
        """测试自定义阈值"""
        assert classify_dpi(200, good_threshold=300, warning_threshold=150) == DpiQuality.WARNING


class TestDpiValidator:
    """DPI 校验器测试"""

    def test_evaluate_uses_render_size(self, make_image_layer):
        """测试按渲染尺寸（含缩放）计算"""
        layer = make_image_layer(width=6, height=6, pixels=(1200, 1200), scale_x=2)
        info = DpiValidator(150, 100).evaluate(layer)
        assert info.dpi == 100
        assert info.canvas_size_inches.width == 12

    def test_scan_partitions_issues(self, make_image_layer, make_shape_layer):
        """测试按 danger / warning 归类，忽略非图片图层"""
        good = make_image_layer(pixels=(1200, 1200))
        warn = make_image_layer(pixels=(600, 600), name="Warn")
        bad = make_image_layer(pixels=(300, 300), name="Bad")
        report = DpiValidator(150, 100).scan([good, warn, bad, make_shape_layer()])

        assert [issue.layer_id for issue in report.danger] == [bad.id]
        assert [issue.layer_id for issue in report.warning] == [warn.id]
        assert report.is_blocked
        assert report.needs_confirmation
        assert report.danger[0].name == "Bad"

    def test_explicit_zero_warning_threshold(self):
        """测试显式传入0不会被配置默认值覆盖"""
        validator = DpiValidator(good_threshold=150, warning_threshold=0)
        assert validator.warning_threshold == 0
        assert validator.compute(480, 480, 6, 6).quality == DpiQuality.WARNING

    def test_inverted_thresholds_rejected(self):
        """测试 good 阈值低于 warning 阈值时报错"""
        with pytest.raises(ValueError):
            DpiValidator(good_threshold=100, warning_threshold=150)
