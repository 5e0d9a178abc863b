import logging
import threading
from collections.abc import Callable
from typing import Protocol

from cliphive.config import MAX_IMAGE_SIZE, MAX_TEXT_SIZE
from cliphive.history import AddResult, ClipboardSink, HistoryEngine
from cliphive.models import ClipboardEntry, ContentType

logger = logging.getLogger(__name__)

# probed in order; the first format with a non-empty payload wins
PROBE_MIME_TYPES = (
    "text/plain;charset=utf-8",
    "UTF8_STRING",
    "text/plain",
    "STRING",
    "image/gif",
    "image/png",
    "image/tiff",
    "image/jpg",
    "image/jpeg",
    "image/webp",
    "image/svg+xml",
    "text/html",
)


class ClipboardSource(ClipboardSink, Protocol):
    def probe(self, mime_type: str) -> bytes | None: ...

    def on_owner_changed(self, callback: Callable[[], None]) -> None: ...


class CaptureOrchestrator:
    """Turns clipboard-change notifications into history updates.

    Only one refresh runs at a time. A notification that arrives while a
    refresh is in flight is dropped rather than queued.
    """

    def __init__(self, source: ClipboardSource, engine: HistoryEngine, on_change: Callable[[], None] | None = None):
        self._source = source
        self._engine = engine
        self._on_change = on_change
        self._refresh_lock = threading.Lock()

    def start(self) -> None:
        self._source.on_owner_changed(self.refresh)

    def refresh(self) -> AddResult | None:
        if self._engine.private_mode:
            return None
        if not self._refresh_lock.acquire(blocking=False):
            logger.debug("Clipboard refresh already in progress, dropping notification")
            return None

        try:
            candidate = self._read_clipboard()
            if candidate is None:
                return None
            result = self._engine.add_or_promote(candidate)
            if self._on_change:
                self._on_change()
            return result
        except Exception:
            logger.exception("Error refreshing clipboard history")
            return None
        finally:
            self._refresh_lock.release()

    def _read_clipboard(self) -> ClipboardEntry | None:
        for mime_type in PROBE_MIME_TYPES:
            try:
                data = self._source.probe(mime_type)
            except Exception:
                logger.exception("Failed to read clipboard content for type %s", mime_type)
                continue
            if not data:
                continue

            entry = ClipboardEntry(mime_type, bytes(data))
            limit = MAX_IMAGE_SIZE if entry.content_type == ContentType.IMAGE else MAX_TEXT_SIZE
            if entry.byte_size > limit:
                logger.warning("Clipboard %s payload too large (%d bytes), skipping", mime_type, entry.byte_size)
                continue
            return entry
        return None
