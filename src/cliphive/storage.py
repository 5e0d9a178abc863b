import json
import logging
import os
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path

from cliphive.blobs import BlobStore
from cliphive.config import CACHE_DIR, CONFIG_FILENAME, DEFAULT_WORKSPACES, MANIFEST_FILENAME
from cliphive.models import ClipboardEntry, WorkspacesConfig
from cliphive.utils import ensure_dir

logger = logging.getLogger(__name__)


def default_config() -> WorkspacesConfig:
    return WorkspacesConfig(workspaces=list(DEFAULT_WORKSPACES), active_workspace=DEFAULT_WORKSPACES[0])


class StorageManager:
    """Per-workspace JSON manifests, image blobs and the workspace configuration.

    Layout under the cache directory::

        workspaces.json
        <workspace>/clipboard.json
        <workspace>/<imageHash>
    """

    def __init__(self, cache_dir: str | Path | None = None, blobs: BlobStore | None = None):
        self._cache_dir = Path(cache_dir) if cache_dir else CACHE_DIR
        self._blobs = blobs or BlobStore(self._cache_dir)
        ensure_dir(self._cache_dir)

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def blobs(self) -> BlobStore:
        return self._blobs

    def workspace_dir(self, workspace: str) -> Path:
        return self._cache_dir / workspace

    def manifest_path(self, workspace: str) -> Path:
        return self.workspace_dir(workspace) / MANIFEST_FILENAME

    def config_path(self) -> Path:
        return self._cache_dir / CONFIG_FILENAME

    def read(self, workspace: str) -> list[ClipboardEntry]:
        try:
            ensure_dir(self.workspace_dir(workspace))
        except OSError:
            logger.warning("Failed to create workspace directory for %s", workspace, exc_info=True)
            return []

        path = self.manifest_path(workspace)
        if not path.exists():
            return []

        try:
            records = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Failed to read clipboard history for workspace %s", workspace, exc_info=True)
            return []

        if not isinstance(records, list):
            logger.warning("Clipboard history for workspace %s is not a list, ignoring it", workspace)
            return []

        entries = []
        for index, record in enumerate(records):
            try:
                entries.append(
                    ClipboardEntry.from_record(record, lambda content_hash: self._blobs.get(workspace, content_hash))
                )
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping history record %d in workspace %s: %s", index, workspace, exc)
        return entries

    def write(self, entries: Iterable[ClipboardEntry], workspace: str) -> bool:
        entries = list(entries)
        ok = True
        for entry in entries:
            if entry.is_image and not self._blobs.exists(workspace, entry.content_hash):
                ok = self._blobs.put(workspace, entry.content_hash, entry.payload) and ok

        records = [entry.to_record() for entry in entries]
        try:
            ensure_dir(self.workspace_dir(workspace))
            self._write_json(self.manifest_path(workspace), records)
        except OSError:
            logger.warning("Failed to write clipboard history for workspace %s", workspace, exc_info=True)
            return False
        return ok

    def load_blob(self, workspace: str, content_hash: str) -> bytes | None:
        return self._blobs.get(workspace, content_hash)

    def delete_blob(self, workspace: str, content_hash: str) -> None:
        self._blobs.delete(workspace, content_hash)

    def load_config(self) -> WorkspacesConfig:
        path = self.config_path()
        config = None
        if path.exists():
            try:
                config = WorkspacesConfig.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError):
                logger.warning("Failed to read workspace config", exc_info=True)
            if config is None:
                logger.warning("Invalid workspace config, using defaults")

        if config is None:
            config = default_config()
            self.save_config(config)
        return config

    def save_config(self, config: WorkspacesConfig) -> bool:
        try:
            self._write_json(self.config_path(), config.to_dict())
        except OSError:
            logger.warning("Failed to save workspace config", exc_info=True)
            return False
        return True

    def clear_workspace(self, workspace: str) -> None:
        path = self.workspace_dir(workspace)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError:
            logger.warning("Failed to clear workspace %s", workspace, exc_info=True)

    def rename_workspace(self, old: str, new: str) -> bool:
        """Move a workspace's files to a new directory.

        Not transactional: a failure part-way leaves whatever was already
        copied in place, and the caller keeps the old name.
        """
        source = self.workspace_dir(old)
        if not source.exists():
            return True

        target = self.workspace_dir(new)
        try:
            ensure_dir(target)
            for child in source.iterdir():
                if child.is_file():
                    shutil.copy2(child, target / child.name)
            shutil.rmtree(source)
        except OSError:
            logger.warning("Failed to rename workspace %s to %s", old, new, exc_info=True)
            return False
        return True

    @staticmethod
    def _write_json(path: Path, data) -> None:
        # temp file in the same directory so the rename stays on one filesystem
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}-", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                json.dump(data, tmp)
            os.replace(tmp_name, path)
        except Exception:
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
            raise
