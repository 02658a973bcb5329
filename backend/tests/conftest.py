"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(session, make_image_layer):
        layer = session.store.add(make_image_layer(width=6, height=6))
        assert layer.dpi_info is not None
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from pathlib import Path

import pytest

from imagination.config import PresetSpec, RuntimeConfig, load_presets
from imagination.editor import LayerStore, SheetRegistry
from imagination.interfaces import (
    IImageEnhancer,
    IImageGenerator,
    IImageProbe,
    IProjectRepository,
)
from imagination.layout import DpiValidator
from imagination.models import (
    EnhancementOperation,
    EnhancementRequest,
    EnhancementResult,
    GeneratedImage,
    ImageLayer,
    SavePayload,
    Sheet,
    ShapeLayer,
)
from imagination.session import EditingSession


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def presets() -> PresetSpec:
    """加载打包的版型预设（会话级别缓存）"""
    return load_presets()


@pytest.fixture
def runtime_config(tmp_path: Path) -> RuntimeConfig:
    """运行期配置（存储目录指向临时目录）"""
    return RuntimeConfig(storage_dir=tmp_path / "storage")


@pytest.fixture
def registry(presets: PresetSpec) -> SheetRegistry:
    return SheetRegistry(presets)


# ============================================================================
# 版面 / 图层 Fixtures
# ============================================================================

@pytest.fixture
def dtf_sheet(registry: SheetRegistry) -> Sheet:
    """22.5 x 24 in DTF 版面"""
    return registry.create_sheet("dtf", 24)


@pytest.fixture
def store(dtf_sheet: Sheet) -> LayerStore:
    return LayerStore(dtf_sheet.id, DpiValidator(150, 100))


@pytest.fixture
def make_image_layer(dtf_sheet: Sheet) -> Callable[..., ImageLayer]:
    """图片图层工厂（z_index 自动递增）"""
    counter = {"z": 0}

    def _make(
        width: float = 6.0,
        height: float = 6.0,
        pixels: tuple[int, int] = (1200, 1200),
        **kwargs,
    ) -> ImageLayer:
        counter["z"] += 1
        data = {
            "id": kwargs.pop("id", str(uuid.uuid4())),
            "sheet_id": dtf_sheet.id,
            "width": width,
            "height": height,
            "z_index": counter["z"],
            "source_url": "https://cdn.example.com/design.png",
            "original_pixel_width": pixels[0],
            "original_pixel_height": pixels[1],
        }
        data.update(kwargs)
        return ImageLayer(**data)

    return _make


@pytest.fixture
def make_shape_layer(dtf_sheet: Sheet) -> Callable[..., ShapeLayer]:
    counter = {"z": 100}

    def _make(width: float = 2.0, height: float = 2.0, **kwargs) -> ShapeLayer:
        counter["z"] += 1
        data = {
            "id": kwargs.pop("id", str(uuid.uuid4())),
            "sheet_id": dtf_sheet.id,
            "width": width,
            "height": height,
            "z_index": counter["z"],
        }
        data.update(kwargs)
        return ShapeLayer(**data)

    return _make


# ============================================================================
# 外部协作方替身
# ============================================================================

class FakeClock:
    """可手动推进的单调时钟"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryRepository(IProjectRepository):
    """内存工程存储（可注入失败）"""

    def __init__(self):
        self.saved: dict[str, SavePayload] = {}
        self.save_calls = 0
        self.fail_with: Exception | None = None

    def save_project(self, payload: SavePayload) -> None:
        self.save_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.saved[payload.sheet_id] = payload.model_copy(deep=True)

    def load_project(self, sheet_id: str) -> SavePayload | None:
        payload = self.saved.get(sheet_id)
        return payload.model_copy(deep=True) if payload else None


class FakeGenerator(IImageGenerator):
    def __init__(self, image_url: str = "https://cdn.example.com/ai.png"):
        self.image_url = image_url
        self.fail = False
        self.calls: list[tuple[str, str]] = []

    async def generate(self, prompt: str, style: str) -> GeneratedImage:
        self.calls.append((prompt, style))
        if self.fail:
            raise RuntimeError("generation backend unavailable")
        return GeneratedImage(image_url=self.image_url)


class FakeProbe(IImageProbe):
    def __init__(self, size: tuple[int, int] = (1024, 1024)):
        self.size = size
        self.fail = False

    async def probe(self, image_url: str) -> tuple[int, int]:
        if self.fail:
            raise OSError(f"cannot fetch {image_url}")
        return self.size


class FakeEnhancer(IImageEnhancer):
    def __init__(self):
        self.fail = False
        self.requests: list[EnhancementRequest] = []

    async def process(self, request: EnhancementRequest) -> EnhancementResult:
        self.requests.append(request)
        if self.fail:
            raise RuntimeError("enhancer timeout")
        scale = request.factor if request.operation == EnhancementOperation.UPSCALE else 1.0
        return EnhancementResult(
            processed_url=f"{request.image_url}?op={request.operation.value}",
            scale_factor=scale,
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def enhancer() -> FakeEnhancer:
    return FakeEnhancer()


@pytest.fixture
def session(
    dtf_sheet: Sheet,
    registry: SheetRegistry,
    repository: MemoryRepository,
    generator: FakeGenerator,
    enhancer: FakeEnhancer,
    probe: FakeProbe,
    runtime_config: RuntimeConfig,
    clock: FakeClock,
) -> EditingSession:
    """装配好替身的编辑会话（DTF 22.5x24）"""
    return EditingSession(
        dtf_sheet,
        registry=registry,
        repository=repository,
        generator=generator,
        enhancer=enhancer,
        probe=probe,
        config=runtime_config,
        clock=clock,
    )
