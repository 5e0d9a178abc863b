import logging
from collections.abc import Callable

from AppKit import NSPasteboard, NSPasteboardTypeHTML, NSPasteboardTypePNG, NSPasteboardTypeString, NSPasteboardTypeTIFF
from Foundation import NSData

logger = logging.getLogger(__name__)


def _pasteboard_type(mime_type: str):
    if mime_type.startswith("text/plain") or mime_type in ("STRING", "UTF8_STRING"):
        return NSPasteboardTypeString
    if mime_type == "text/html":
        return NSPasteboardTypeHTML
    if mime_type == "image/png":
        return NSPasteboardTypePNG
    if mime_type == "image/tiff":
        return NSPasteboardTypeTIFF
    return None


class PasteboardClipboard:
    """macOS general pasteboard exposed as a clipboard source and sink.

    NSPasteboard has no change notifications, so ``poll`` compares the
    change count and fires the owner-changed callbacks itself.
    """

    def __init__(self):
        self._pasteboard = NSPasteboard.generalPasteboard()
        self._last_change_count = self._pasteboard.changeCount()
        self._callbacks: list[Callable[[], None]] = []

    def on_owner_changed(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def poll(self) -> bool:
        current_count = self._pasteboard.changeCount()
        if current_count == self._last_change_count:
            return False

        self._last_change_count = current_count
        for callback in self._callbacks:
            callback()
        return True

    def probe(self, mime_type: str) -> bytes | None:
        pb_type = _pasteboard_type(mime_type)
        if pb_type is None:
            return None
        types = self._pasteboard.types()
        if types is None or pb_type not in types:
            return None
        data = self._pasteboard.dataForType_(pb_type)
        return bytes(data) if data is not None else None

    def set_content(self, mime_type: str, data: bytes) -> None:
        pb_type = _pasteboard_type(mime_type)
        if pb_type is None:
            logger.warning("No pasteboard type for %s, clipboard left unchanged", mime_type)
            return
        self._pasteboard.clearContents()
        self._pasteboard.setData_forType_(NSData.dataWithBytes_length_(data, len(data)), pb_type)

    def clear(self) -> None:
        self._pasteboard.clearContents()
