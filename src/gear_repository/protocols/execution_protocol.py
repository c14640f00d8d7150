"""
Execution context protocol definitions.

A gear exposes two ways of running a shell command. They are separate
methods, never a flag, so every call site names the identity it runs as.
"""

from abc import abstractmethod
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Union

from ..shell import ShellResult

PathLike = Union[str, Path]


class ExecutionContext(Protocol):
    """Protocol for running commands as the platform or as the tenant."""

    @abstractmethod
    def run_in_root_context(
        self,
        command: str,
        chdir: Optional[PathLike] = None,
        expected_exitstatus: Optional[int] = None,
    ) -> ShellResult:
        """
        Run a shell command with platform privilege.

        Args:
            command: Shell script text
            chdir: Working directory
            expected_exitstatus: Exit status the command must return

        Returns:
            ShellResult with stdout, stderr and exit status

        Raises:
            ShellExecutionError: The exit status did not match

        Example:
            >>> gear.run_in_root_context("git repack", chdir=repo, expected_exitstatus=0)
        """
        ...

    @abstractmethod
    def run_in_container_context(
        self,
        command: str,
        chdir: Optional[PathLike] = None,
        env: Optional[Mapping[str, str]] = None,
        expected_exitstatus: Optional[int] = None,
    ) -> ShellResult:
        """
        Run a shell command under the tenant's confinement.

        Args:
            command: Shell script text
            chdir: Working directory
            env: Extra environment variables for the command
            expected_exitstatus: Exit status the command must return

        Returns:
            ShellResult with stdout, stderr and exit status

        Raises:
            ShellExecutionError: The exit status did not match
        """
        ...


class Gear(ExecutionContext, Protocol):
    """Protocol for the tenant container a repository belongs to."""

    uuid: str
    application_name: str
    container_dir: Path

    @abstractmethod
    def set_rw_permission_R(self, path: PathLike) -> None:
        """Give the tenant recursive read/write ownership of ``path``."""
        ...

    @abstractmethod
    def env(self) -> Dict[str, str]:
        """Snapshot of the gear's environment variables."""
        ...
