import logging
import os
import tempfile
from pathlib import Path

from cliphive.config import CACHE_DIR
from cliphive.utils import ensure_dir

logger = logging.getLogger(__name__)


class BlobStore:
    """Content-addressed image storage, one file per hash inside a workspace directory.

    Entries with equal hashes share a file; there is no reference counting.
    """

    def __init__(self, cache_dir: str | Path | None = None):
        self._cache_dir = Path(cache_dir) if cache_dir else CACHE_DIR

    def path(self, workspace: str, content_hash: str) -> Path:
        return self._cache_dir / workspace / content_hash

    def exists(self, workspace: str, content_hash: str) -> bool:
        return self.path(workspace, content_hash).is_file()

    def put(self, workspace: str, content_hash: str, data: bytes) -> bool:
        target = self.path(workspace, content_hash)
        tmp_name = None
        try:
            ensure_dir(target.parent)
            with tempfile.NamedTemporaryFile(dir=target.parent, prefix=".blob-", delete=False) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
            os.replace(tmp_name, target)
            return True
        except OSError:
            logger.warning("Failed to write image blob %s in workspace %s", content_hash, workspace, exc_info=True)
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
            return False

    def get(self, workspace: str, content_hash: str) -> bytes | None:
        try:
            return self.path(workspace, content_hash).read_bytes()
        except FileNotFoundError:
            return None
        except OSError:
            logger.warning("Failed to read image blob %s in workspace %s", content_hash, workspace, exc_info=True)
            return None

    def delete(self, workspace: str, content_hash: str) -> None:
        try:
            self.path(workspace, content_hash).unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to delete image blob %s in workspace %s", content_hash, workspace, exc_info=True)
