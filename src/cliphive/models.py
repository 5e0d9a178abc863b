import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cliphive.config import CONFIG_FILENAME, LOG_PATH
from cliphive.utils import get_image_dimensions, rolling_hash, truncate_text

TEXT_MIME_ALIASES = ("STRING", "UTF8_STRING")
RESERVED_NAMES = (".", "..", CONFIG_FILENAME, LOG_PATH.name)

_IMAGE_HASH_RE = re.compile(r"-?[0-9a-z]+")


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"


def content_type_for(mime_type: str) -> ContentType:
    if mime_type.startswith("image/"):
        return ContentType.IMAGE
    if mime_type.startswith("text/") or mime_type in TEXT_MIME_ALIASES:
        return ContentType.TEXT
    raise ValueError(f"Unsupported mime type: {mime_type!r}")


@dataclass(eq=False)
class ClipboardEntry:
    """One captured clipboard payload.

    Identity for deduplication is ``text_projection``, not object identity or
    byte equality: two images of the same byte length are the same content.
    """

    mime_type: str
    payload: bytes
    favorite: bool = False
    content_type: ContentType = field(init=False)
    content_hash: str | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        self.mime_type = self.mime_type or "text/plain"
        if isinstance(self.payload, str):
            self.payload = self.payload.encode("utf-8")
        elif not isinstance(self.payload, bytes):
            self.payload = bytes(self.payload)
        self.favorite = bool(self.favorite)
        self.content_type = content_type_for(self.mime_type)
        if self.content_type == ContentType.IMAGE:
            self.content_hash = rolling_hash(self.payload)

    @property
    def is_image(self) -> bool:
        return self.content_type == ContentType.IMAGE

    @property
    def byte_size(self) -> int:
        return len(self.payload)

    @property
    def text_projection(self) -> str:
        match self.content_type:
            case ContentType.IMAGE:
                return f"[Image {len(self.payload)}]"
            case ContentType.TEXT:
                return self.payload.decode("utf-8", errors="replace")

    def same_content(self, other: "ClipboardEntry") -> bool:
        return self.text_projection == other.text_projection

    def preview(self, max_len: int) -> str:
        match self.content_type:
            case ContentType.IMAGE:
                width, height = get_image_dimensions(self.payload)
                return f"[Image: {width}x{height}]" if width > 0 else "[Image]"
            case ContentType.TEXT:
                return truncate_text(self.text_projection, max_len)

    def to_record(self) -> dict[str, Any]:
        match self.content_type:
            case ContentType.IMAGE:
                return {
                    "mimeType": self.mime_type,
                    "favorite": self.favorite,
                    "imageHash": self.content_hash,
                }
            case ContentType.TEXT:
                return {
                    "mimeType": self.mime_type,
                    "content": self.text_projection,
                    "favorite": self.favorite,
                }

    @classmethod
    def from_record(
        cls,
        record: dict[str, Any],
        load_blob: Callable[[str], bytes | None],
    ) -> "ClipboardEntry":
        """Rebuild an entry from a manifest record.

        Raises KeyError, TypeError or ValueError for records that cannot be
        turned back into an entry.
        """
        if not isinstance(record, dict):
            raise TypeError(f"Expected a record object, got {type(record).__name__}")
        mime_type = record.get("mimeType") or record.get("mimetype") or "text/plain"
        if not isinstance(mime_type, str):
            raise TypeError("mimeType must be a string")
        favorite = record.get("favorite", False)
        content = record.get("content")

        match content_type_for(mime_type):
            case ContentType.TEXT:
                if not isinstance(content, str):
                    raise TypeError("Text record content must be a string")
                return cls(mime_type, content, favorite)
            case ContentType.IMAGE:
                # records written by older versions inline the bytes
                if isinstance(content, list):
                    return cls(mime_type, bytes(content), favorite)
                image_hash = record["imageHash"]
                if not isinstance(image_hash, str):
                    raise TypeError("imageHash must be a string")
                if not _IMAGE_HASH_RE.fullmatch(image_hash):
                    raise ValueError(f"Malformed image hash {image_hash!r}")
                data = load_blob(image_hash)
                if data is None:
                    raise ValueError(f"Missing image blob {image_hash}")
                return cls(mime_type, data, favorite)


def is_valid_workspace_name(name: Any) -> bool:
    if not isinstance(name, str) or not name.strip():
        return False
    if name in RESERVED_NAMES:
        return False
    return not any(sep in name for sep in ("/", "\\", "\x00"))


@dataclass
class WorkspacesConfig:
    workspaces: list[str]
    active_workspace: str

    def is_valid(self) -> bool:
        if not self.workspaces:
            return False
        # non-string names are unhashable
        if not all(is_valid_workspace_name(name) for name in self.workspaces):
            return False
        if len(set(self.workspaces)) != len(self.workspaces):
            return False
        return self.active_workspace in self.workspaces

    def to_dict(self) -> dict[str, Any]:
        return {"workspaces": list(self.workspaces), "activeWorkspace": self.active_workspace}

    @classmethod
    def from_dict(cls, data: Any) -> "WorkspacesConfig | None":
        if not isinstance(data, dict):
            return None
        workspaces = data.get("workspaces")
        active = data.get("activeWorkspace")
        if not isinstance(workspaces, list) or not isinstance(active, str):
            return None
        config = cls(workspaces=list(workspaces), active_workspace=active)
        return config if config.is_valid() else None
