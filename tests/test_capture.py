import threading
from unittest.mock import MagicMock, patch

import pytest

from cliphive.capture import PROBE_MIME_TYPES, CaptureOrchestrator
from cliphive.history import AddResult
from conftest import png_bytes


@pytest.fixture
def orchestrator(clipboard, engine):
    orch = CaptureOrchestrator(clipboard, engine)
    orch.start()
    return orch


class TestRefresh:
    def test_text_change_captured(self, orchestrator, clipboard, engine):
        clipboard.copy("text/plain", "hello world")
        assert [e.text_projection for e in engine.entries] == ["hello world"]
        assert engine.selected.text_projection == "hello world"

    def test_refresh_returns_result(self, orchestrator, clipboard):
        clipboard.contents = {"text/plain": b"x"}
        assert orchestrator.refresh() == AddResult.INSERTED
        assert orchestrator.refresh() == AddResult.PROMOTED

    def test_duplicate_copy_stored_once(self, orchestrator, clipboard, engine):
        clipboard.copy("text/plain", "dup")
        clipboard.copy("text/plain", "dup")
        assert len(engine.entries) == 1

    def test_image_change_captured(self, orchestrator, clipboard, engine, storage):
        data = png_bytes(size=200)
        clipboard.copy("image/png", data)
        entry = engine.entries[0]
        assert entry.is_image
        assert storage.blobs.get(engine.workspace, entry.content_hash) == data

    def test_empty_clipboard_ignored(self, orchestrator, engine):
        assert orchestrator.refresh() is None
        assert engine.entries == ()

    def test_text_preferred_over_image(self, orchestrator, clipboard, engine):
        clipboard.contents = {"image/png": png_bytes(), "UTF8_STRING": b"caption"}
        orchestrator.refresh()
        assert engine.entries[0].mime_type == "UTF8_STRING"

    def test_probe_order(self):
        text_positions = [PROBE_MIME_TYPES.index(m) for m in ("text/plain;charset=utf-8", "text/plain")]
        assert max(text_positions) < PROBE_MIME_TYPES.index("image/png")
        assert PROBE_MIME_TYPES[-1] == "text/html"

    def test_oversize_text_skipped(self, orchestrator, clipboard, engine):
        with patch("cliphive.capture.MAX_TEXT_SIZE", 4):
            clipboard.copy("text/plain", "too long")
        assert engine.entries == ()

    def test_oversize_text_falls_through_to_image(self, orchestrator, clipboard, engine):
        clipboard.contents = {"text/plain": b"too long", "image/png": png_bytes()}
        with patch("cliphive.capture.MAX_TEXT_SIZE", 4):
            orchestrator.refresh()
        assert engine.entries[0].is_image

    def test_oversize_image_skipped(self, orchestrator, clipboard, engine):
        with patch("cliphive.capture.MAX_IMAGE_SIZE", 10):
            clipboard.copy("image/png", png_bytes(size=100))
        assert engine.entries == ()

    def test_on_change_called(self, clipboard, engine):
        callback = MagicMock()
        CaptureOrchestrator(clipboard, engine, on_change=callback).start()
        clipboard.copy("text/plain", "x")
        callback.assert_called_once()


class TestErrorHandling:
    def test_probe_error_tries_next_format(self, clipboard, engine):
        def probe(mime_type):
            if mime_type.startswith("text/plain"):
                raise RuntimeError("boom")
            return b"fallback" if mime_type == "UTF8_STRING" else None

        source = MagicMock()
        source.probe.side_effect = probe
        orch = CaptureOrchestrator(source, engine)
        assert orch.refresh() == AddResult.INSERTED
        assert engine.entries[0].text_projection == "fallback"

    def test_engine_error_is_swallowed(self, orchestrator, clipboard, engine):
        with patch.object(engine, "add_or_promote", side_effect=RuntimeError("boom")):
            clipboard.copy("text/plain", "x")
            assert orchestrator.refresh() is None
        clipboard.copy("text/plain", "after")
        assert [e.text_projection for e in engine.entries] == ["after"]


class TestReentrancy:
    def test_refresh_in_flight_drops_notification(self, clipboard, engine):
        orch = CaptureOrchestrator(clipboard, engine)
        clipboard.contents = {"text/plain": b"first"}
        entered = threading.Event()
        release = threading.Event()
        real_add = engine.add_or_promote

        def slow_add(candidate):
            entered.set()
            release.wait(5)
            return real_add(candidate)

        with patch.object(engine, "add_or_promote", side_effect=slow_add):
            worker = threading.Thread(target=orch.refresh)
            worker.start()
            assert entered.wait(5)
            clipboard.contents = {"text/plain": b"second"}
            assert orch.refresh() is None
            release.set()
            worker.join(5)

        assert [e.text_projection for e in engine.entries] == ["first"]

    def test_lock_released_after_refresh(self, orchestrator, clipboard, engine):
        clipboard.copy("text/plain", "a")
        clipboard.copy("text/plain", "b")
        assert len(engine.entries) == 2


class TestPrivateMode:
    def test_nothing_captured(self, orchestrator, clipboard, engine):
        engine.set_private_mode(True)
        clipboard.copy("text/plain", "secret")
        assert engine.entries == ()

    def test_capture_resumes(self, orchestrator, clipboard, engine):
        engine.set_private_mode(True)
        engine.set_private_mode(False)
        clipboard.copy("text/plain", "public")
        assert len(engine.entries) == 1
