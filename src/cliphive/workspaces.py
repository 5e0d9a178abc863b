import logging
from collections.abc import Sequence

from cliphive.models import ClipboardEntry, WorkspacesConfig, is_valid_workspace_name
from cliphive.storage import StorageManager

logger = logging.getLogger(__name__)


class WorkspaceManager:
    """Owns the workspace list and the active-workspace pointer.

    Every structural change is written to the workspace config before the
    method returns. The list is never empty and the active workspace is
    always one of its members.
    """

    def __init__(self, storage: StorageManager):
        self._storage = storage
        config = storage.load_config()
        self._workspaces: list[str] = list(config.workspaces)
        self._active: str = config.active_workspace

    @property
    def workspaces(self) -> tuple[str, ...]:
        return tuple(self._workspaces)

    @property
    def active(self) -> str:
        return self._active

    def __contains__(self, name: object) -> bool:
        return name in self._workspaces

    def config(self) -> WorkspacesConfig:
        return WorkspacesConfig(workspaces=list(self._workspaces), active_workspace=self._active)

    def switch(self, name: str, outgoing: Sequence[ClipboardEntry]) -> list[ClipboardEntry] | None:
        """Flush ``outgoing`` to the active workspace, activate ``name`` and load it.

        Unknown names fall back to the first workspace. Each step finishes
        before the next begins, so the load always sees the completed flush.
        Returns None, leaving the active workspace unchanged, if the flush fails.
        """
        if name not in self._workspaces:
            logger.warning("Workspace not found: %s, switching to %s", name, self._workspaces[0])
            name = self._workspaces[0]

        if not self._storage.write(outgoing, self._active):
            logger.warning("Failed to flush workspace %s, not switching to %s", self._active, name)
            return None

        self._active = name
        self._save()
        logger.info("Switched to workspace %s", name)
        return self._storage.read(name)

    def create(self, name: str) -> bool:
        if not is_valid_workspace_name(name):
            logger.warning("Invalid workspace name: %r", name)
            return False
        if name in self._workspaces:
            logger.warning("Workspace already exists: %s", name)
            return False
        self._workspaces.append(name)
        self._save()
        logger.info("Created workspace %s", name)
        return True

    def rename(self, old: str, new: str) -> bool:
        if old not in self._workspaces:
            logger.warning("Cannot rename unknown workspace %s", old)
            return False
        if old == new:
            return True
        if not is_valid_workspace_name(new) or new in self._workspaces:
            logger.warning("Cannot rename workspace %s to %r", old, new)
            return False

        if not self._storage.rename_workspace(old, new):
            return False

        self._workspaces[self._workspaces.index(old)] = new
        if self._active == old:
            self._active = new
        self._save()
        logger.info("Renamed workspace %s to %s", old, new)
        return True

    def delete(self, name: str) -> bool:
        """Remove a workspace and its data; the last workspace cannot be deleted.

        When the active workspace is deleted the first remaining one becomes
        active. Callers holding the active workspace's entries must reload.
        """
        if name not in self._workspaces:
            logger.warning("Cannot delete unknown workspace %s", name)
            return False
        if len(self._workspaces) == 1:
            logger.warning("Refusing to delete the only workspace %s", name)
            return False

        self._workspaces.remove(name)
        self._storage.clear_workspace(name)
        if self._active == name:
            self._active = self._workspaces[0]
        self._save()
        logger.info("Deleted workspace %s", name)
        return True

    def neighbour(self, step: int) -> str:
        """Name of the workspace ``step`` positions away from the active one, wrapping around."""
        index = self._workspaces.index(self._active)
        return self._workspaces[(index + step) % len(self._workspaces)]

    def _save(self) -> None:
        self._storage.save_config(self.config())
