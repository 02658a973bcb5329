"""
运行期配置 - 读取 documents/runtime.yaml

职责：
- 加载排版/历史/自动保存/DPI阈值等运行参数
- 提供环境变量覆盖机制（IMAGINATION_ 前缀）
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_PRESET_PATH = Path(__file__).with_name("sheet_presets.yaml")


class LayoutConfig(BaseModel):
    """排版配置"""

    padding_inches: float = 0.25
    scan_step_inches: float = 0.125


class HistoryConfig(BaseModel):
    """撤销/重做配置"""

    limit: int = 50


class AutosaveConfig(BaseModel):
    """自动保存配置"""

    check_interval_sec: float = 5.0
    min_interval_sec: float = 30.0


class DpiConfig(BaseModel):
    """DPI质量阈值"""

    good_threshold: float = 150.0
    warning_threshold: float = 100.0


class CanvasConfig(BaseModel):
    """画布配置"""

    pixels_per_inch: float = 96.0
    max_import_inches: float = 6.0
    thumbnail_max_px: int = 256
    min_zoom: float = 0.1
    max_zoom: float = 3.0


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    # 基础路径
    storage_dir: Path = Path("storage")
    preset_path: Path = DEFAULT_PRESET_PATH

    # 各子配置
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    autosave: AutosaveConfig = Field(default_factory=AutosaveConfig)
    dpi: DpiConfig = Field(default_factory=DpiConfig)
    canvas: CanvasConfig = Field(default_factory=CanvasConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "IMAGINATION_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        config = cls(
            layout=LayoutConfig(**cls._extract(runtime_opts, "layout")),
            history=HistoryConfig(**cls._extract(runtime_opts, "history")),
            autosave=AutosaveConfig(**cls._extract(runtime_opts, "autosave")),
            dpi=DpiConfig(**cls._extract(runtime_opts, "dpi")),
            canvas=CanvasConfig(**cls._extract(runtime_opts, "canvas")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
        )

        paths = data.get("paths", {})
        if "storage_dir" in paths:
            config.storage_dir = Path(paths["storage_dir"])
        if "preset_path" in paths:
            config.preset_path = Path(paths["preset_path"])

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key, {})
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        if not self.storage_dir.is_absolute():
            self.storage_dir = (base_dir / self.storage_dir).resolve()
        if not self.preset_path.is_absolute():
            self.preset_path = (base_dir / self.preset_path).resolve()

    def get_sheet_dir(self, sheet_id: str) -> Path:
        """获取版面存储目录"""
        return self.storage_dir / "sheets" / sheet_id

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        (self.storage_dir / "sheets").mkdir(exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        default_path = Path("documents/runtime.yaml")
        if not default_path.exists():
            fallback_path = Path("backend/documents/runtime.yaml")
            if fallback_path.exists():
                default_path = fallback_path
        _config = RuntimeConfig.from_yaml(default_path)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or "documents/runtime.yaml"
    _config = RuntimeConfig.from_yaml(path)
    return _config
