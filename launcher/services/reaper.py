from __future__ import annotations

import shutil
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class DirectoryReaper:
    """Deletes temporary project trees.

    Never raises: an absent path counts as deleted, and filesystem errors are
    logged so cleanup on a failure path cannot mask the original failure.
    """

    def delete(self, path: str | Path | None) -> bool:
        """Remove ``path`` recursively. Returns True if something was removed."""
        if path is None:
            return False
        path = Path(path)
        if not path.exists() and not path.is_symlink():
            logger.debug("reaper_nothing_to_delete", path=str(path))
            return False
        try:
            if path.is_dir() and not path.is_symlink():
                try:
                    shutil.rmtree(path)
                except FileNotFoundError:
                    # entries vanished under a concurrent remover; finish what is left
                    shutil.rmtree(path, ignore_errors=True)
            else:
                path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("reaper_delete_failed", path=str(path), error=str(e))
            return False
        logger.debug("reaper_deleted", path=str(path))
        return True
