"""Scratch directory used while resolving submodules during deploy."""

import logging
import shlex
import shutil
import threading
from pathlib import Path
from typing import Mapping

from ..configuration import RepositoryConfig
from ..error_handling import GearEnvironmentError
from ..protocols import ExecutionContext

logger = logging.getLogger(__name__)


class SubmoduleCache:
    """Per-gear submodule scratch area under the gear's temp directory.

    Exclusivity across deploys of the same gear is the caller's job; this
    class only guarantees each deploy starts from an empty directory.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def for_env(cls, env: Mapping[str, str], config: RepositoryConfig) -> "SubmoduleCache":
        """Locate the cache from a gear environment snapshot.

        Raises:
            GearEnvironmentError: The snapshot has no temp directory variable
        """
        tmp_dir = env.get(config.tmp_dir_variable)
        if not tmp_dir:
            raise GearEnvironmentError(config.tmp_dir_variable)
        return cls(Path(tmp_dir) / config.submodule_cache_name)

    def prepare(self) -> Path:
        """Remove any leftover cache from a failed run and recreate it empty."""
        if self.path.exists() or self.path.is_symlink():
            logger.info(f"Removing stale submodule cache {self.path}")
            if self.path.is_dir() and not self.path.is_symlink():
                shutil.rmtree(self.path)
            else:
                self.path.unlink()
        self.path.mkdir(parents=True)
        return self.path

    def schedule_removal(self, context: ExecutionContext) -> threading.Thread:
        """Remove the cache in the background as the tenant.

        The returned thread is a daemon and is never joined by deploy;
        failures are logged and go nowhere else.
        """
        thread = threading.Thread(
            target=self._remove,
            args=(context,),
            name=f"submodule-cache-cleanup:{self.path}",
            daemon=True,
        )
        thread.start()
        return thread

    def _remove(self, context: ExecutionContext) -> None:
        try:
            context.run_in_container_context(f"/bin/rm -rf {shlex.quote(str(self.path))}")
        except Exception as e:  # detached: nobody is waiting for this result
            logger.warning(f"Submodule cache cleanup failed for {self.path}: {e}")
        else:
            logger.debug(f"Removed submodule cache {self.path}")

