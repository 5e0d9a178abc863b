import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from enum import Enum
from typing import Protocol

from cliphive.config import Settings
from cliphive.models import ClipboardEntry
from cliphive.storage import StorageManager
from cliphive.workspaces import WorkspaceManager

logger = logging.getLogger(__name__)


class ClipboardSink(Protocol):
    def set_content(self, mime_type: str, data: bytes) -> None: ...

    def clear(self) -> None: ...


class AddResult(str, Enum):
    INSERTED = "inserted"
    PROMOTED = "promoted"


class HistoryView:
    """Filtered, read-only view over a snapshot of the history.

    Iterating it more than once repeats the filter from the start.
    """

    def __init__(self, entries: Iterable[ClipboardEntry], query: str = ""):
        self._entries = tuple(entries)
        self._needle = query.casefold()

    def __iter__(self) -> Iterator[ClipboardEntry]:
        for entry in self._entries:
            if not self._needle or self._needle in entry.text_projection.casefold():
                yield entry

    def __len__(self) -> int:
        return sum(1 for _ in self)


class HistoryEngine:
    """Ordered clipboard history of the active workspace.

    Entries are kept oldest-first. Favorites do not count towards
    ``Settings.history_size`` and are never evicted. At most one entry is
    selected at a time.
    """

    def __init__(
        self,
        storage: StorageManager,
        workspaces: WorkspaceManager,
        settings: Settings | None = None,
        clipboard: ClipboardSink | None = None,
        notify: Callable[[str], None] | None = None,
    ):
        self._storage = storage
        self._workspaces = workspaces
        self._settings = settings or Settings()
        self._clipboard = clipboard
        self._notify = notify
        self._entries: list[ClipboardEntry] = []
        self._selected: ClipboardEntry | None = None
        self._private_mode = False
        self._lock = threading.RLock()

    # -- state -------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def workspace(self) -> str:
        return self._workspaces.active

    @property
    def workspaces(self) -> WorkspaceManager:
        return self._workspaces

    @property
    def entries(self) -> tuple[ClipboardEntry, ...]:
        return tuple(self._entries)

    @property
    def favorites(self) -> tuple[ClipboardEntry, ...]:
        return tuple(e for e in self._entries if e.favorite)

    @property
    def non_favorite_count(self) -> int:
        return sum(1 for e in self._entries if not e.favorite)

    @property
    def selected(self) -> ClipboardEntry | None:
        return None if self._private_mode else self._selected

    @property
    def private_mode(self) -> bool:
        return self._private_mode

    def find(self, candidate: ClipboardEntry) -> ClipboardEntry | None:
        for entry in self._entries:
            if entry.same_content(candidate):
                return entry
        return None

    def filter(self, query: str = "") -> HistoryView:
        return HistoryView(self._entries, query)

    # -- loading -----------------------------------------------------------

    def load(self) -> None:
        """Load the active workspace and select its most recent entry."""
        with self._lock:
            self._replace(self._storage.read(self.workspace), push=False)

    def _replace(self, entries: list[ClipboardEntry], push: bool) -> None:
        self._entries = []
        for entry in entries:
            if self.find(entry) is not None:
                logger.warning("Dropping duplicate entry in workspace %s", self.workspace)
                continue
            self._entries.append(entry)
        self._selected = None
        self.evict_excess()
        if self._entries:
            if push:
                self.select(self._entries[-1])
            else:
                self._selected = self._entries[-1]

    # -- mutations ---------------------------------------------------------

    def add_or_promote(self, candidate: ClipboardEntry) -> AddResult:
        with self._lock:
            existing = self.find(candidate)
            if existing is not None:
                self._selected = existing
                if self._settings.move_item_first and not existing.favorite:
                    self._move_to_end(existing)
                    self._persist()
                return AddResult.PROMOTED

            limit = self._settings.history_size
            if limit and self.non_favorite_count >= limit:
                self._evict_oldest()
            self._entries.append(candidate)
            self._selected = candidate
            self._persist()
            return AddResult.INSERTED

    def toggle_favorite(self, entry: ClipboardEntry) -> bool:
        with self._lock:
            self._require(entry)
            entry.favorite = not entry.favorite
            self._move_to_end(entry)
            # an unfavorited entry counts towards the cap again
            self._trim()
            self._persist()
            return entry.favorite

    def remove(self, entry: ClipboardEntry) -> None:
        """Delete an entry; removing the selected entry also clears the clipboard."""
        with self._lock:
            self._require(entry)
            if entry is self._selected:
                self._clear_clipboard()
            self._discard(entry)
            self._persist()

    def evict_excess(self) -> int:
        """Drop the oldest non-favorites until the cap holds; returns how many were dropped."""
        with self._lock:
            evicted = self._trim()
            if evicted:
                self._persist()
            return evicted

    def clear_history(self) -> int:
        """Remove every non-favorite entry, optionally sparing the selected one."""
        with self._lock:
            keep_selected = self._settings.keep_selected_on_clear
            doomed = [
                e for e in self._entries
                if not e.favorite and not (keep_selected and e is self._selected)
            ]
            for entry in doomed:
                if entry is self._selected:
                    self._clear_clipboard()
                self._discard(entry)
            if doomed:
                self._persist()
            return len(doomed)

    def flush(self) -> None:
        """Write the current history of the active workspace."""
        with self._lock:
            self._persist()

    def apply_settings(self, settings: Settings) -> None:
        with self._lock:
            self._settings = settings
            if not self.evict_excess():
                self._persist()

    # -- selection ---------------------------------------------------------

    def select(self, entry: ClipboardEntry) -> None:
        """Make ``entry`` the selected entry and put it on the clipboard."""
        with self._lock:
            self._require(entry)
            self._selected = entry
            if self._clipboard is not None and not self._private_mode:
                self._clipboard.set_content(entry.mime_type, entry.payload)

    def select_next(self) -> ClipboardEntry | None:
        return self._select_relative(1)

    def select_previous(self) -> ClipboardEntry | None:
        return self._select_relative(-1)

    def _select_relative(self, step: int) -> ClipboardEntry | None:
        with self._lock:
            if self._private_mode or not self._entries:
                return None
            if self._selected is None:
                target = self._entries[-1]
            else:
                index = self._entries.index(self._selected)
                target = self._entries[(index + step) % len(self._entries)]
            self.select(target)
            return target

    def set_private_mode(self, enabled: bool) -> None:
        """While enabled nothing is captured and no entry is reported as selected."""
        with self._lock:
            if enabled == self._private_mode:
                return
            self._private_mode = enabled
            if enabled:
                return
            if self._selected is not None:
                self.select(self._selected)
            else:
                self._clear_clipboard()

    # -- workspaces --------------------------------------------------------

    def switch_workspace(self, name: str) -> bool:
        """Flush the current history, then load ``name``.

        When the flush fails the current workspace and its entries stay as
        they are and the failure is reported.
        """
        with self._lock:
            incoming = self._workspaces.switch(name, self._persistable())
            if incoming is None:
                self._report(f"Failed to save workspace {self.workspace}, staying on it")
                return False
            self._replace(incoming, push=True)
            return True

    def switch_next_workspace(self) -> bool:
        return self.switch_workspace(self._workspaces.neighbour(1))

    def switch_previous_workspace(self) -> bool:
        return self.switch_workspace(self._workspaces.neighbour(-1))

    def create_workspace(self, name: str, activate: bool = True) -> bool:
        with self._lock:
            if not self._workspaces.create(name):
                return False
            if activate:
                self.switch_workspace(name)
            return True

    def rename_workspace(self, old: str, new: str) -> bool:
        with self._lock:
            if old == self.workspace:
                # the renamed directory must hold the current in-memory state
                self._persist()
            if self._workspaces.rename(old, new):
                return True
            self._report(f"Failed to rename workspace {old}")
            return False

    def delete_workspace(self, name: str) -> bool:
        with self._lock:
            was_active = name == self.workspace
            if not self._workspaces.delete(name):
                return False
            if was_active:
                self._replace(self._storage.read(self.workspace), push=True)
            return True

    # -- internals ---------------------------------------------------------

    def _require(self, entry: ClipboardEntry) -> None:
        if not any(e is entry for e in self._entries):
            raise ValueError("Entry is not part of the current history")

    def _move_to_end(self, entry: ClipboardEntry) -> None:
        self._entries = [e for e in self._entries if e is not entry]
        self._entries.append(entry)

    def _trim(self) -> int:
        limit = self._settings.history_size
        if limit == 0:
            return 0
        evicted = 0
        while self.non_favorite_count > limit:
            self._evict_oldest()
            evicted += 1
        return evicted

    def _evict_oldest(self) -> None:
        oldest = next((e for e in self._entries if not e.favorite), None)
        if oldest is not None:
            self._discard(oldest)

    def _discard(self, entry: ClipboardEntry) -> None:
        self._entries = [e for e in self._entries if e is not entry]
        if entry is self._selected:
            self._selected = None
        if entry.is_image and not any(e.content_hash == entry.content_hash for e in self._entries):
            self._storage.delete_blob(self.workspace, entry.content_hash)

    def _clear_clipboard(self) -> None:
        if self._clipboard is not None:
            self._clipboard.clear()

    def _persistable(self) -> list[ClipboardEntry]:
        if self._settings.cache_only_favorites:
            return [e for e in self._entries if e.favorite]
        return list(self._entries)

    def _persist(self) -> None:
        if not self._storage.write(self._persistable(), self.workspace):
            logger.warning("Failed to save clipboard history for workspace %s", self.workspace)
            self._report("Failed to save clipboard history")

    def _report(self, message: str) -> None:
        if self._notify is not None:
            self._notify(message)
