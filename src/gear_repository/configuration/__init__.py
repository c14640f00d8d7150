"""Configuration module for the gear repository manager.

Configuration is a single Pydantic model so values are validated and typed
when the agent starts rather than when a command first needs them.

Environment variable binding:
    ```bash
    export GEAR_REPO_PLATFORM_UID=0
    export GEAR_REPO_CONTAINER_COMMAND_PREFIX="runuser -u 52f1c3 --"
    export GEAR_REPO_COMMAND_TIMEOUT_SECONDS=600
    export GEAR_REPO_LOG_LEVEL=DEBUG
    ```

Usage examples:
    >>> from gear_repository.configuration import RepositoryConfig
    >>>
    >>> config = RepositoryConfig.from_env()
    >>> config.supported_protocols[0]
    'git://'
"""

import os
import shlex
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "GEAR_REPO_"

DEFAULT_SUPPORTED_PROTOCOLS = [
    "git://",
    "http://",
    "https://",
    "file://",
    "ftp://",
    "ftps://",
    "rsync://",
]


class RepositoryConfig(BaseModel):
    """Settings shared by every repository operation on a node."""

    platform_uid: int = Field(default=0, ge=0)
    platform_gid: int = Field(default=0, ge=0)

    supported_protocols: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_PROTOCOLS)
    )

    builder_email: str = "builder@example.com"
    builder_name: str = "Template builder"
    system_user_name: str = "OpenShift System User"
    gc_auto: int = Field(default=100, ge=0)

    pre_receive_command: str = "gear prereceive"
    post_receive_command: str = "gear postreceive"

    shell: str = "/bin/bash"
    container_command_prefix: List[str] = Field(default_factory=list)
    command_timeout_seconds: Optional[float] = Field(default=None, gt=0)

    tmp_dir_variable: str = "OPENSHIFT_TMP_DIR"
    submodule_cache_name: str = "git_cache"

    log_level: str = "INFO"

    @field_validator("supported_protocols")
    @classmethod
    def _protocols_are_prefixes(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one supported protocol is required")
        for protocol in value:
            if not protocol.endswith("://"):
                raise ValueError(f"protocol must end with '://': {protocol!r}")
        return value

    @field_validator("submodule_cache_name")
    @classmethod
    def _cache_name_is_plain(cls, value: str) -> str:
        if not value or "/" in value or value in (".", ".."):
            raise ValueError(f"invalid submodule cache directory name: {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RepositoryConfig":
        """Build a configuration from ``GEAR_REPO_*`` environment variables.

        List fields are split shell-style, with commas treated as separators.
        """
        if environ is None:
            environ = os.environ

        values = {}
        for name, field in cls.model_fields.items():
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            if field.annotation == List[str]:
                values[name] = shlex.split(raw.replace(",", " "))
            else:
                values[name] = raw
        return cls.model_validate(values)


def create_test_config(**overrides) -> RepositoryConfig:
    """Configuration for tests: platform identity is the current user."""
    values = {
        "platform_uid": os.getuid(),
        "platform_gid": os.getgid(),
    }
    values.update(overrides)
    return RepositoryConfig.model_validate(values)


__all__ = [
    "ENV_PREFIX",
    "DEFAULT_SUPPORTED_PROTOCOLS",
    "RepositoryConfig",
    "create_test_config",
]
