"""
工程存储 - 本地文件实现

目录结构：
    <storage_dir>/sheets/<sheet_id>/project.json
    <storage_dir>/sheets/<sheet_id>/thumbnail.png

测试要点：
- test_save_and_load: 保存后可完整读回
- test_load_missing: 不存在返回 None
- test_thumbnail_written: 缩略图解码落盘
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..config import RuntimeConfig, get_config
from ..interfaces import IProjectRepository
from ..models import SavePayload

logger = logging.getLogger(__name__)

PROJECT_FILE = "project.json"
THUMBNAIL_FILE = "thumbnail.png"


class FileProjectRepository(IProjectRepository):
    """本地文件工程存储"""

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or get_config()
        self._cache: dict[str, SavePayload] = {}  # 内存缓存

    def save_project(self, payload: SavePayload) -> None:
        """写入 project.json 与 thumbnail.png"""
        sheet_dir = self.config.get_sheet_dir(payload.sheet_id)
        sheet_dir.mkdir(parents=True, exist_ok=True)

        project_file = sheet_dir / PROJECT_FILE
        with open(project_file, "w", encoding="utf-8") as f:
            json.dump(
                payload.model_dump(mode="json", by_alias=True),
                f,
                ensure_ascii=False,
                indent=2,
            )

        if payload.thumbnail_base64:
            self._write_thumbnail(sheet_dir / THUMBNAIL_FILE, payload.thumbnail_base64)

        self._cache[payload.sheet_id] = payload.model_copy(deep=True)
        logger.debug(f"工程已保存: {project_file}")

    def load_project(self, sheet_id: str) -> SavePayload | None:
        """读取工程（先查缓存，再读磁盘）"""
        if sheet_id in self._cache:
            return self._cache[sheet_id].model_copy(deep=True)

        project_file = self.config.get_sheet_dir(sheet_id) / PROJECT_FILE
        if not project_file.exists():
            return None

        try:
            with open(project_file, encoding="utf-8") as f:
                data = json.load(f)
            payload = SavePayload.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"工程文件无法读取: {project_file}: {e}")
            return None

        self._cache[sheet_id] = payload
        return payload.model_copy(deep=True)

    @staticmethod
    def _write_thumbnail(path: Path, thumbnail_base64: str) -> None:
        # 兼容 data URL 前缀
        if thumbnail_base64.startswith("data:"):
            thumbnail_base64 = thumbnail_base64.split(",", 1)[-1]
        try:
            raw = base64.b64decode(thumbnail_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.warning(f"缩略图不是合法的 base64，跳过写入: {e}")
            return
        path.write_bytes(raw)
