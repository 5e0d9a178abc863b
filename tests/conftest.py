import struct

import pytest

from cliphive.config import Settings
from cliphive.history import HistoryEngine
from cliphive.models import ClipboardEntry
from cliphive.storage import StorageManager
from cliphive.workspaces import WorkspaceManager


def png_bytes(width: int = 10, height: int = 10, size: int = 64, fill: int = 0) -> bytes:
    """PNG signature + IHDR dimensions, padded to ``size`` bytes."""
    header = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + struct.pack(">II", width, height)
    return header + bytes([fill]) * max(0, size - len(header))


class FakeClipboard:
    """In-memory clipboard source and sink."""

    def __init__(self):
        self.contents: dict[str, bytes] = {}
        self.callbacks = []
        self.set_calls: list[tuple[str, bytes]] = []
        self.clear_count = 0

    def probe(self, mime_type: str) -> bytes | None:
        return self.contents.get(mime_type)

    def on_owner_changed(self, callback) -> None:
        self.callbacks.append(callback)

    def set_content(self, mime_type: str, data: bytes) -> None:
        self.contents = {mime_type: data}
        self.set_calls.append((mime_type, data))

    def clear(self) -> None:
        self.contents = {}
        self.clear_count += 1

    def copy(self, mime_type: str, data: bytes | str) -> None:
        """Simulate another application taking clipboard ownership."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.contents = {mime_type: data}
        for callback in self.callbacks:
            callback()


@pytest.fixture
def storage(tmp_path):
    return StorageManager(tmp_path / "cache")


@pytest.fixture
def workspaces(storage):
    return WorkspaceManager(storage)


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def make_engine(storage, workspaces, clipboard):
    """Factory fixture building a loaded HistoryEngine with the given settings."""

    def _make_engine(notify=None, **options) -> HistoryEngine:
        engine = HistoryEngine(storage, workspaces, Settings(**options), clipboard=clipboard, notify=notify)
        engine.load()
        return engine

    return _make_engine


@pytest.fixture
def engine(make_engine):
    return make_engine(history_size=15)


@pytest.fixture
def make_entry():
    """Factory fixture to create ClipboardEntry instances for testing."""

    def _make_entry(
        text: str = "hello world",
        mime_type: str = "text/plain",
        favorite: bool = False,
        image_size: int | None = None,
        fill: int = 0,
    ) -> ClipboardEntry:
        if image_size is not None:
            return ClipboardEntry("image/png", png_bytes(size=image_size, fill=fill), favorite)
        return ClipboardEntry(mime_type, text, favorite)

    return _make_entry


def texts(entries) -> list[str]:
    return [e.text_projection for e in entries]
