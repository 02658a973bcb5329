"""
版型预设加载器 - 读取 sheet_presets.yaml

职责：
- 解析YAML并提供类型安全访问
- 提供各打印类型的固定宽度、可选高度、打印规则、单价
- 缓存加载结果（避免重复解析）

使用方式：
    presets = PresetLoader.load()
    dtf = presets.get_preset("dtf")
    assert 24 in dtf.heights
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from .runtime_config import DEFAULT_PRESET_PATH


class PrintRules(BaseModel):
    """打印规则"""
    mirror: bool = False
    white_ink: bool = True
    cutline_option: bool = False


class PrintTypePreset(BaseModel):
    """单个打印类型的版型预设"""
    width: float = Field(..., gt=0, description="固定宽度（英寸）")
    heights: list[float] = Field(..., min_length=1, description="可选高度（英寸）")
    rules: PrintRules = Field(default_factory=PrintRules)
    display_name: str = ""
    description: str = ""
    price_per_square_inch: float = Field(0.02, ge=0)

    def allows_height(self, height: float) -> bool:
        return any(abs(h - height) < 1e-9 for h in self.heights)


class PresetSpec(BaseModel):
    """版型目录（sheet_presets.yaml 的结构化表示）"""
    schema_version: str
    default_print_type: str = "dtf"
    default_height: float = 48
    print_types: dict[str, PrintTypePreset] = Field(default_factory=dict)

    def get_preset(self, print_type: str) -> PrintTypePreset | None:
        """获取单个打印类型的预设"""
        return self.print_types.get(print_type)


class PresetLoader:
    """预设加载器（缓存）"""

    @staticmethod
    @lru_cache(maxsize=4)
    def load(preset_path: str | Path = DEFAULT_PRESET_PATH) -> PresetSpec:
        """加载并缓存预设"""
        path = Path(preset_path)
        if not path.exists():
            raise FileNotFoundError(f"预设文件不存在: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return PresetSpec(**data)

    @classmethod
    def reload(cls, preset_path: str | Path = DEFAULT_PRESET_PATH) -> PresetSpec:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(preset_path)


# 便捷函数
def load_presets(preset_path: str | Path = DEFAULT_PRESET_PATH) -> PresetSpec:
    """加载版型预设"""
    return PresetLoader.load(preset_path)
