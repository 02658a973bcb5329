"""
持久化网关 / 工程存储 / 缩略图单元测试
"""

import asyncio
import base64

import pytest

from imagination.interfaces import SaveError
from imagination.models import MutationSource, SavePayload, SaveStatus, Viewport
from imagination.session import FileProjectRepository, PersistenceGateway, ThumbnailRenderer


@pytest.fixture
def gateway(repository, runtime_config, clock):
    return PersistenceGateway(repository, runtime_config, clock)


class TestBuildPayload:
    """保存载荷测试"""

    def test_payload_shape(self, gateway, dtf_sheet, make_image_layer, make_shape_layer):
        """测试画布状态（舞台像素、驼峰字段）"""
        image = make_image_layer(x=1, y=2)
        shape = make_shape_layer()
        viewport = Viewport(zoom=1.5, grid_enabled=False)
        payload = gateway.build_payload(dtf_sheet, [shape, image], viewport, "AAAA")

        stage = payload.canvas_state.stage
        assert (stage.width_px, stage.height_px) == (22.5 * 96, 24 * 96)
        assert stage.scale == 1.5
        assert [layer.id for layer in payload.canvas_state.layers] == [image.id, shape.id]

        canvas_image = payload.canvas_state.layers[0]
        assert canvas_image.type == "image"
        assert canvas_image.src == image.source_url
        assert (canvas_image.attrs.x, canvas_image.attrs.y) == (96, 192)
        assert payload.canvas_state.layers[1].src is None

        assert not payload.canvas_state.grid_enabled
        assert payload.metadata.layer_count == 2
        assert payload.thumbnail_base64 == "AAAA"

        data = payload.model_dump(mode="json", by_alias=True)
        assert data["canvas_state"]["gridEnabled"] is False
        assert "scaleX" in data["canvas_state"]["layers"][0]["attrs"]

    def test_json_roundtrip_reproduces_layers(self, gateway, dtf_sheet, make_image_layer):
        """测试序列化->反序列化得到相同图层集合"""
        layers = [
            make_image_layer(x=1.25, y=3.5, rotation=30, scale_x=-1, name="Logo"),
            make_image_layer(pixels=(640, 480), z_index=40),
        ]
        payload = gateway.build_payload(dtf_sheet, layers, Viewport())
        restored = SavePayload.model_validate_json(payload.model_dump_json(by_alias=True))
        assert restored.layers == payload.layers
        assert restored.sheet == payload.sheet
        assert restored.canvas_state == payload.canvas_state


class TestSaveStatus:
    """保存状态机测试"""

    def test_mutation_marks_unsaved(self, gateway):
        """测试变更后状态变为 unsaved"""
        assert gateway.save_status == SaveStatus.SAVED
        gateway.on_layers_changed([], MutationSource.USER)
        assert gateway.save_status == SaveStatus.UNSAVED

    def test_manual_save(self, gateway, repository, dtf_sheet, clock):
        """测试手动保存成功"""
        gateway.mark_dirty()
        gateway.save(dtf_sheet, [], Viewport())
        assert gateway.save_status == SaveStatus.SAVED
        assert gateway.last_saved_at == clock.now
        assert dtf_sheet.id in repository.saved

    def test_save_failure_reverts(self, gateway, repository, dtf_sheet):
        """测试保存失败回到 unsaved 并抛出 SaveError"""
        repository.fail_with = OSError("disk full")
        gateway.mark_dirty()
        with pytest.raises(SaveError) as exc_info:
            gateway.save(dtf_sheet, [], Viewport())
        assert isinstance(exc_info.value.__cause__, OSError)
        assert gateway.save_status == SaveStatus.UNSAVED
        assert gateway.last_saved_at is None

    def test_mutation_during_save_stays_unsaved(self, gateway, repository, dtf_sheet):
        """测试保存期间发生变更则保存后仍为 unsaved"""
        statuses = []

        def save_project(payload):
            statuses.append(gateway.save_status)
            gateway.mark_dirty()

        repository.save_project = save_project
        gateway.save(dtf_sheet, [], Viewport())
        assert statuses == [SaveStatus.SAVING]
        assert gateway.save_status == SaveStatus.UNSAVED

    def test_overlapping_save_rejected(self, gateway, repository, dtf_sheet):
        """测试保存进行中再次保存被拒绝"""
        errors = []

        def save_project(payload):
            try:
                gateway.save(dtf_sheet, [], Viewport())
            except SaveError as e:
                errors.append(e)

        repository.save_project = save_project
        gateway.save(dtf_sheet, [], Viewport())
        assert len(errors) == 1


class TestAutosave:
    """自动保存测试"""

    def _provider(self, gateway, sheet):
        return lambda: gateway.build_payload(sheet, [], Viewport())

    def test_only_when_unsaved(self, gateway, repository, dtf_sheet):
        """测试已保存时不触发"""
        assert not gateway.autosave_tick(self._provider(gateway, dtf_sheet))
        assert repository.save_calls == 0

    def test_never_saved_is_eligible(self, gateway, repository, dtf_sheet):
        """测试从未保存过的会话立即可自动保存"""
        gateway.mark_dirty()
        assert gateway.autosave_tick(self._provider(gateway, dtf_sheet))
        assert gateway.save_status == SaveStatus.SAVED

    def test_autosave_min_interval(self, gateway, repository, dtf_sheet, clock):
        """测试距上次成功保存不足30秒不触发"""
        provider = self._provider(gateway, dtf_sheet)
        gateway.mark_dirty()
        gateway.autosave_tick(provider)

        gateway.mark_dirty()
        clock.advance(29)
        assert not gateway.autosave_tick(provider)
        clock.advance(1)
        assert gateway.autosave_tick(provider)
        assert repository.save_calls == 2

    def test_autosave_swallows_errors(self, gateway, repository, dtf_sheet, caplog):
        """测试自动保存失败只记录日志，下次重试"""
        provider = self._provider(gateway, dtf_sheet)
        repository.fail_with = OSError("network down")
        gateway.mark_dirty()

        assert not gateway.autosave_tick(provider)
        assert gateway.save_status == SaveStatus.UNSAVED
        assert "自动保存失败" in caplog.text

        repository.fail_with = None
        assert gateway.autosave_tick(provider)

    def test_run_autosave_loop(self, gateway, repository, dtf_sheet, runtime_config):
        """测试自动保存循环在停止信号后退出"""
        runtime_config.autosave.check_interval_sec = 0.01
        gateway.mark_dirty()

        async def scenario():
            stop = asyncio.Event()
            task = asyncio.create_task(
                gateway.run_autosave(self._provider(gateway, dtf_sheet), stop)
            )
            await asyncio.sleep(0.1)
            stop.set()
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(scenario())
        assert repository.save_calls == 1
        assert gateway.save_status == SaveStatus.SAVED


class TestFileProjectRepository:
    """本地文件存储测试"""

    def _payload(self, runtime_config, sheet, layers, thumbnail=None):
        gateway = PersistenceGateway(FileProjectRepository(runtime_config), runtime_config)
        return gateway.build_payload(sheet, layers, Viewport(zoom=2), thumbnail)

    def test_save_and_load(self, runtime_config, dtf_sheet, make_image_layer):
        """测试保存后可完整读回（新实例从磁盘读取）"""
        payload = self._payload(runtime_config, dtf_sheet, [make_image_layer(x=3)])
        FileProjectRepository(runtime_config).save_project(payload)

        project_file = runtime_config.get_sheet_dir(dtf_sheet.id) / "project.json"
        assert project_file.exists()
        assert '"widthPx"' in project_file.read_text(encoding="utf-8")

        loaded = FileProjectRepository(runtime_config).load_project(dtf_sheet.id)
        assert loaded.layers == payload.layers
        assert loaded.viewport.zoom == 2
        assert loaded.sheet.id == dtf_sheet.id

    def test_load_missing(self, runtime_config):
        """测试不存在返回 None"""
        assert FileProjectRepository(runtime_config).load_project("nope") is None

    def test_load_corrupted(self, runtime_config):
        """测试损坏的工程文件返回 None"""
        sheet_dir = runtime_config.get_sheet_dir("broken")
        sheet_dir.mkdir(parents=True)
        (sheet_dir / "project.json").write_text("{not json", encoding="utf-8")
        assert FileProjectRepository(runtime_config).load_project("broken") is None

    def test_thumbnail_written(self, runtime_config, dtf_sheet, make_image_layer):
        """测试缩略图解码落盘"""
        layers = [make_image_layer()]
        thumbnail = ThumbnailRenderer(64).render_base64(dtf_sheet, layers)
        payload = self._payload(runtime_config, dtf_sheet, layers, thumbnail)
        FileProjectRepository(runtime_config).save_project(payload)

        png = runtime_config.get_sheet_dir(dtf_sheet.id) / "thumbnail.png"
        assert png.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


class TestThumbnailRenderer:
    """缩略图测试"""

    def test_size_fits_longest_side(self, dtf_sheet, make_image_layer):
        """测试最长边等于 max_px"""
        image = ThumbnailRenderer(128).render(dtf_sheet, [make_image_layer()])
        assert image.size == (120, 128)

    def test_hidden_layers_skipped(self, dtf_sheet, make_image_layer):
        """测试隐藏图层不绘制"""
        renderer = ThumbnailRenderer(96)
        blank = renderer.render(dtf_sheet, [])
        hidden = renderer.render(dtf_sheet, [make_image_layer(visible=False)])
        shown = renderer.render(dtf_sheet, [make_image_layer()])
        assert hidden.tobytes() == blank.tobytes()
        assert shown.tobytes() != blank.tobytes()

    def test_data_url(self, dtf_sheet):
        """测试 data URL 输出"""
        url = ThumbnailRenderer(32).render_data_url(dtf_sheet, [])
        assert url.startswith("data:image/png;base64,")
        raw = base64.b64decode(url.split(",", 1)[1])
        assert raw[:4] == b"\x89PNG"

    def test_zero_size_rejected(self):
        """测试显式尺寸0报错而不是退回配置值"""
        with pytest.raises(ValueError):
            ThumbnailRenderer(0)
