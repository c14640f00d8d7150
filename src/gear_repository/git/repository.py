"""Bare git repository of a gear application: provisioning, deploy and removal.

Operations on one gear must be serialized by the caller (see
``gear_repository.locking.GearLock``); nothing here locks.
"""

import logging
import shlex
import shutil
import time
from pathlib import Path
from typing import Optional

import git

from ..configuration import RepositoryConfig
from ..error_handling import (
    RepositoryNotFoundError,
    ShellExecutionError,
    SourceFetchFailedError,
    TemplateCloneFailedError,
    UnsupportedTransportError,
)
from ..logging_config import GearLogAdapter
from ..protocols import Gear
from .cache import SubmoduleCache
from .models import ScriptBindings
from .scripts import ScriptOperation, ScriptRenderer
from .security import HookEnforcer

logger = logging.getLogger(__name__)

# Searched in order under the cartridge directory; first directory found wins
TEMPLATE_LOCATIONS = (
    ("template",),
    ("template.git",),
    ("usr", "template"),
    ("usr", "template.git"),
)


def _remove_tree(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


class ApplicationRepository:
    """The bare repository at ``<container_dir>/git/<application_name>.git``."""

    def __init__(self, gear: Gear, config: Optional[RepositoryConfig] = None):
        self.gear = gear
        self.config = config or RepositoryConfig()
        self.renderer = ScriptRenderer(self.config)
        self.enforcer = HookEnforcer(gear, self.renderer, self.config)
        self._cartridge_name: Optional[str] = None
        self.log = GearLogAdapter(logger, gear)

    @property
    def git_dir(self) -> Path:
        return Path(self.gear.container_dir) / "git"

    @property
    def path(self) -> Path:
        return self.git_dir / f"{self.gear.application_name}.git"

    @property
    def target_dir(self) -> Path:
        return Path(self.gear.container_dir) / "app-root" / "runtime" / "repo"

    def exists(self) -> bool:
        return self.path.is_dir()

    def head_commit(self) -> Optional[str]:
        """Hex SHA of HEAD, or None when the repository is absent or empty."""
        if not self.exists():
            return None
        try:
            repo = git.Repo(self.path)
            try:
                return repo.head.commit.hexsha
            finally:
                repo.close()
        except (git.InvalidGitRepositoryError, git.NoSuchPathError, ValueError):
            return None

    def find_template(self, cartridge_name: str) -> Optional[Path]:
        """First existing template directory for ``cartridge_name``."""
        cartridge_dir = Path(self.gear.container_dir) / cartridge_name
        for parts in TEMPLATE_LOCATIONS:
            candidate = cartridge_dir.joinpath(*parts)
            if candidate.is_dir():
                return candidate
        return None

    def populate_from_cartridge(self, cartridge_name: str) -> Optional[Path]:
        """Install the cartridge's template application as the gear repository.

        Returns:
            The template path used, or None when the repository already
            exists or the cartridge ships no template
        """
        if self.exists():
            return None

        template = self.find_template(cartridge_name)
        if template is None:
            self.log.debug(
                f"No template found for cartridge {cartridge_name}",
                extra={"operation": "populate_from_cartridge"},
            )
            return None
        self.log.debug(
            f"Using '{template}' to populate git repository for {self.gear.uuid}",
            extra={"operation": "populate_from_cartridge"},
        )

        self.git_dir.mkdir(parents=True, exist_ok=True)
        if template.name.endswith(".git"):
            shutil.copytree(template, self.path, symlinks=True)
        else:
            self.build_bare(template)

        self._cartridge_name = cartridge_name
        self.configure()
        self.log.info(
            f"Populated {self.path} from {template}",
            extra={"operation": "populate_from_cartridge"},
        )
        return template

    def populate_from_url(self, cartridge_name: str, url: str) -> None:
        """Clone ``url`` as the gear repository.

        Raises:
            UnsupportedTransportError: ``url`` does not use an allowed transport
            SourceFetchFailedError: The clone failed
        """
        if self.exists():
            return

        if not any(url.startswith(protocol) for protocol in self.config.supported_protocols):
            raise UnsupportedTransportError(url, self.config.supported_protocols)

        self.git_dir.mkdir(parents=True, exist_ok=True)

        bindings = ScriptBindings(
            application_name=self.gear.application_name,
            cartridge_name=cartridge_name,
            user_homedir=str(self.gear.container_dir),
            url=url,
        )
        try:
            self.gear.run_in_root_context(
                self.renderer.render(ScriptOperation.URL_CLONE, bindings),
                chdir=self.git_dir,
                expected_exitstatus=0,
            )
        except ShellExecutionError as e:
            self.log.error(
                f"Failed to clone {url}: {e}\n{e.stderr}",
                extra={"operation": "populate_from_url"},
            )
            raise SourceFetchFailedError(url, e) from None

        self._cartridge_name = cartridge_name
        self.configure()
        self.log.info(
            f"Populated {self.path} from {url}",
            extra={"operation": "populate_from_url"},
        )

    def build_bare(self, template: Path) -> None:
        """Turn a plain template tree into the bare application repository."""
        scratch = self.git_dir / "template"
        if scratch.exists() or scratch.is_symlink():
            _remove_tree(scratch)

        self.gear.run_in_root_context(
            f"/bin/cp -ad {shlex.quote(str(template))} {shlex.quote(str(self.git_dir))}",
            expected_exitstatus=0,
        )
        bindings = ScriptBindings(
            application_name=self.gear.application_name,
            user_homedir=str(self.gear.container_dir),
        )
        try:
            self.gear.run_in_root_context(
                self.renderer.render(ScriptOperation.INIT, bindings),
                chdir=scratch,
                expected_exitstatus=0,
            )
            # cloning as the gear user loses the SELinux context, so clone as root
            try:
                self.gear.run_in_root_context(
                    self.renderer.render(ScriptOperation.LOCAL_CLONE, bindings),
                    chdir=self.git_dir,
                    expected_exitstatus=0,
                )
            except ShellExecutionError as e:
                if self.path.exists():
                    _remove_tree(self.path)
                self.log.error(
                    f"Template clone failed: {e}\n{e.stderr}",
                    extra={"operation": "build_bare"},
                )
                raise TemplateCloneFailedError(e) from e
        finally:
            if scratch.exists():
                _remove_tree(scratch)

    def deploy(self) -> None:
        """Replace the deployment target with the tree of HEAD.

        Raises:
            RepositoryNotFoundError: The repository has not been populated
        """
        if not self.exists():
            raise RepositoryNotFoundError(str(self.path))

        started = time.monotonic()
        target_dir = self.target_dir
        if not target_dir.is_dir():
            target_dir.mkdir(parents=True)
            self.gear.set_rw_permission_R(target_dir)

        for entry in target_dir.iterdir():
            _remove_tree(entry)

        bindings = ScriptBindings(
            application_name=self.gear.application_name,
            user_homedir=str(self.gear.container_dir),
            repo_path=str(self.path),
            target_dir=str(target_dir),
        )
        self.gear.run_in_container_context(
            self.renderer.render(ScriptOperation.DEPLOY, bindings),
            chdir=self.path,
            expected_exitstatus=0,
        )

        if (target_dir / ".gitmodules").exists():
            self.deploy_submodules(bindings)

        duration_ms = round((time.monotonic() - started) * 1000, 1)
        extra = {"operation": "deploy"}
        extra["duration_ms"] = duration_ms
        self.log.info(f"Deployed {self.head_commit()} to {target_dir}", extra=extra)

    def deploy_submodules(self, bindings: ScriptBindings) -> None:
        env = self.gear.env()
        cache = SubmoduleCache.for_env(env, self.config)
        cache.prepare()
        self.gear.set_rw_permission_R(cache.path)

        self.gear.run_in_container_context(
            self.renderer.render(
                ScriptOperation.DEPLOY_SUBMODULES,
                bindings.model_copy(update={"cache_dir": str(cache.path)}),
            ),
            chdir=self.gear.container_dir,
            env=env,
            expected_exitstatus=0,
        )

        cache.schedule_removal(self.gear)

    def destroy(self) -> None:
        if self.path.exists() or self.path.is_symlink():
            _remove_tree(self.path)
            self.log.info(f"Destroyed {self.path}", extra={"operation": "destroy"})

    def configure(self, cartridge_name: Optional[str] = None) -> None:
        """Install git hooks and reset ownership of the repository."""
        cartridge_name = cartridge_name or self._cartridge_name or ""
        self.enforcer.configure(self.path, cartridge_name)
