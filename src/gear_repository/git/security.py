"""Ownership and hook enforcement for gear repositories.

The tenant may push to the bare repository but must never be able to change
the hooks that run on push. Ownership is granted broadly first and then
narrowed on ``hooks/``, before any hook is written.
"""

import logging
import os
from pathlib import Path
from typing import Union

from ..configuration import RepositoryConfig
from ..logging_config import GearLogAdapter
from ..protocols import Gear
from .models import ScriptBindings
from .scripts import ScriptOperation, ScriptRenderer

logger = logging.getLogger(__name__)

FILE_MODE = 0o644
HOOK_MODE = 0o755


def chown_R(path: Union[str, Path], uid: int, gid: int) -> None:
    """Recursively change ownership without following symlinks."""
    path = Path(path)
    os.lchown(path, uid, gid)
    for root, dirs, files in os.walk(path):
        for name in dirs + files:
            os.lchown(os.path.join(root, name), uid, gid)


def render_file(path: Path, mode: int, content: str) -> None:
    """Overwrite ``path`` with ``content`` and force ``mode``."""
    with open(path, "w") as f:
        f.write(content)
    os.chmod(path, mode)


class HookEnforcer:
    """Re-applies the tenant/platform boundary on a bare repository."""

    def __init__(self, gear: Gear, renderer: ScriptRenderer, config: RepositoryConfig):
        self.gear = gear
        self.renderer = renderer
        self.config = config
        self.log = GearLogAdapter(logger, gear)

    def configure(self, repo_path: Path, cartridge_name: str) -> None:
        """Grant tenant ownership, reclaim hooks, then rewrite hooks and config."""
        repo_path = Path(repo_path)
        hooks = repo_path / "hooks"

        self.gear.set_rw_permission_R(repo_path)

        hooks.mkdir(exist_ok=True)
        chown_R(hooks, self.config.platform_uid, self.config.platform_gid)

        bindings = ScriptBindings(
            application_name=self.gear.application_name,
            cartridge_name=cartridge_name,
            user_homedir=str(self.gear.container_dir),
        )

        render_file(
            repo_path / "description",
            FILE_MODE,
            self.renderer.render(ScriptOperation.DESCRIPTION, bindings),
        )
        render_file(
            Path(self.gear.container_dir) / ".gitconfig",
            FILE_MODE,
            self.renderer.render(ScriptOperation.GITCONFIG, bindings),
        )
        render_file(
            hooks / "pre-receive",
            HOOK_MODE,
            self.renderer.render(ScriptOperation.PRE_RECEIVE, bindings),
        )
        render_file(
            hooks / "post-receive",
            HOOK_MODE,
            self.renderer.render(ScriptOperation.POST_RECEIVE, bindings),
        )

        self.log.info(f"Configured hooks for {repo_path}", extra={"operation": "configure"})
