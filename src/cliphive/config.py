import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

CACHE_DIR = Path(os.environ.get("CLIPHIVE_CACHE_DIR", Path.home() / ".cache" / "cliphive"))
LOG_PATH = CACHE_DIR / "cliphive.log"
CONFIG_FILENAME = "workspaces.json"
MANIFEST_FILENAME = "clipboard.json"

DEFAULT_WORKSPACES = ("Workspace1", "Workspace2", "Workspace3")

POLL_INTERVAL = 0.5  # seconds between clipboard checks
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
MAX_IMAGE_SIZE = 10_000_000  # 10MB image limit
HASH_PREFIX_LENGTH = 1000  # bytes of image payload fed to the content hash

MAX_HISTORY_SIZE = 10_000
MIN_PREVIEW_SIZE = 10
MAX_PREVIEW_SIZE = 200

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """User options consumed by the history engine.

    Instances are immutable; a settings change produces a new instance that
    replaces the old one wholesale.
    """

    history_size: int = 15  # cap on non-favorite entries, 0 = unbounded
    preview_size: int = 50  # characters shown per entry by the UI
    cache_only_favorites: bool = False
    move_item_first: bool = False
    keep_selected_on_clear: bool = False

    # camelCase names used by the settings collaborator
    OPTION_NAMES = {
        "historySize": "history_size",
        "previewSize": "preview_size",
        "cacheOnlyFavorites": "cache_only_favorites",
        "moveItemFirst": "move_item_first",
        "keepSelectedOnClear": "keep_selected_on_clear",
    }

    @classmethod
    def from_options(cls, options: Mapping[str, Any], base: "Settings | None" = None) -> "Settings":
        """Build settings from a flat option mapping, ignoring unknown keys."""
        base = base or cls()
        changes: dict[str, Any] = {}
        for option, attr in cls.OPTION_NAMES.items():
            if option not in options:
                continue
            default = getattr(base, attr)
            if isinstance(default, bool):
                changes[attr] = _coerce_bool(options[option], default)
            else:
                changes[attr] = _coerce_int(options[option], default)
        return replace(base, **changes)

    def __post_init__(self) -> None:
        object.__setattr__(self, "history_size", max(0, min(MAX_HISTORY_SIZE, self.history_size)))
        object.__setattr__(self, "preview_size", max(MIN_PREVIEW_SIZE, min(MAX_PREVIEW_SIZE, self.preview_size)))

    def as_options(self) -> dict[str, Any]:
        return {option: getattr(self, attr) for option, attr in self.OPTION_NAMES.items()}


def _coerce_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    return default


def load_settings() -> Settings:
    """Read settings from CLIPHIVE_* environment variables."""
    options: dict[str, str] = {}
    for option, attr in Settings.OPTION_NAMES.items():
        raw = os.environ.get(f"CLIPHIVE_{attr.upper()}")
        if raw is not None:
            options[option] = raw
    return Settings.from_options(options)
