"""Concrete gear adapter for the repository manager."""

import logging
import os
import stat
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .configuration import RepositoryConfig
from .environ import load_env
from .logging_config import GearLogAdapter
from .shell import ShellResult, shell_exec

logger = logging.getLogger(__name__)

DEFAULT_PATH = "/usr/local/bin:/usr/bin:/bin"


class ApplicationContainer:
    """A tenant gear on this node.

    Root context commands run as the agent process. Container context
    commands are prefixed with ``config.container_command_prefix`` (for
    example ``runuser -u <user> --`` or an SELinux ``runcon`` wrapper) and
    get a minimal environment rooted at the gear home.
    """

    def __init__(
        self,
        uuid: str,
        application_name: str,
        container_dir: Union[str, Path],
        uid: Optional[int] = None,
        gid: Optional[int] = None,
        config: Optional[RepositoryConfig] = None,
    ):
        self.uuid = uuid
        self.application_name = application_name
        self.container_dir = Path(container_dir)
        self.uid = os.getuid() if uid is None else uid
        self.gid = os.getgid() if gid is None else gid
        self.config = config or RepositoryConfig()
        self.log = GearLogAdapter(logger, self)

    def __repr__(self) -> str:
        return f"ApplicationContainer(uuid={self.uuid!r}, application_name={self.application_name!r})"

    def run_in_root_context(
        self,
        command: str,
        chdir: Optional[Union[str, Path]] = None,
        expected_exitstatus: Optional[int] = None,
    ) -> ShellResult:
        self.log.debug(f"root context: {command}")
        return shell_exec(
            [self.config.shell, "-c", command],
            chdir=chdir,
            expected_exitstatus=expected_exitstatus,
            timeout=self.config.command_timeout_seconds,
        )

    def run_in_container_context(
        self,
        command: str,
        chdir: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        expected_exitstatus: Optional[int] = None,
    ) -> ShellResult:
        self.log.debug(f"container context: {command}")
        child_env = {
            "PATH": os.environ.get("PATH", DEFAULT_PATH),
            "HOME": str(self.container_dir),
            "OPENSHIFT_GEAR_UUID": self.uuid,
            "OPENSHIFT_APP_NAME": self.application_name,
        }
        if env:
            child_env.update(env)

        argv = list(self.config.container_command_prefix) + [self.config.shell, "-c", command]
        return shell_exec(
            argv,
            chdir=chdir or self.container_dir,
            env=child_env,
            expected_exitstatus=expected_exitstatus,
            timeout=self.config.command_timeout_seconds,
        )

    def set_rw_permission_R(self, path: Union[str, Path]) -> None:
        """Recursively hand ``path`` to the gear user with owner read/write."""
        path = Path(path)
        entries = [path]
        for root, dirs, files in os.walk(path):
            entries.extend(Path(root, name) for name in dirs + files)
        for entry in entries:
            if entry.is_symlink():
                os.lchown(entry, self.uid, self.gid)
                continue
            os.chown(entry, self.uid, self.gid)
            mode = entry.stat().st_mode
            wanted = mode | stat.S_IRUSR | stat.S_IWUSR
            if entry.is_dir():
                wanted |= stat.S_IXUSR
            if wanted != mode:
                os.chmod(entry, stat.S_IMODE(wanted))

    def env(self) -> Dict[str, str]:
        return load_env(self.container_dir / ".env")
