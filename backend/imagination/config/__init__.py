"""
配置层 - 加载版型预设与运行期配置

职责：
- 加载 config/sheet_presets.yaml（版型目录）
- 加载 documents/runtime.yaml（运行期参数）
- 提供类型安全的配置访问接口
"""

from .logging_setup import setup_logging
from .preset_loader import PresetLoader, PresetSpec, PrintRules, PrintTypePreset, load_presets
from .runtime_config import RuntimeConfig, get_config, reload_config

__all__ = [
    "PresetLoader",
    "PresetSpec",
    "PrintTypePreset",
    "PrintRules",
    "load_presets",
    "RuntimeConfig",
    "get_config",
    "reload_config",
    "setup_logging",
]
