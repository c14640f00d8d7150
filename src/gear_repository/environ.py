"""Gear environment snapshot loading.

Gears keep their environment either in a single dotenv file or, on older
nodes, in a ``.env`` directory with one file per variable. Files in that
directory hold either ``export NAME='value'`` lines or the bare value.
"""

import logging
from pathlib import Path
from typing import Dict, Union

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def _load_file(path: Path) -> Dict[str, str]:
    return {key: value for key, value in dotenv_values(path).items() if value is not None}


def _load_directory(path: Path) -> Dict[str, str]:
    env: Dict[str, str] = {}
    for entry in sorted(path.iterdir()):
        if not entry.is_file() or entry.name.startswith("."):
            continue
        content = entry.read_text()
        if "=" in content:
            env.update(_load_file(entry))
        else:
            env[entry.name] = content.strip()
    return env


def load_env(path: Union[str, Path]) -> Dict[str, str]:
    """Load environment variables from a dotenv file or a ``.env`` directory.

    A missing path yields an empty mapping.
    """
    path = Path(path)
    if path.is_dir():
        env = _load_directory(path)
    elif path.is_file():
        env = _load_file(path)
    else:
        logger.debug(f"No environment found at {path}")
        return {}
    logger.debug(f"Loaded {len(env)} environment variables from {path}")
    return env
