"""Pydantic models for gear repository operations"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ScriptBindings(BaseModel):
    """Variables available to a rendered script; immutable once built."""

    model_config = ConfigDict(frozen=True)

    application_name: str
    cartridge_name: Optional[str] = None
    user_homedir: Optional[str] = None
    repo_path: Optional[str] = None
    target_dir: Optional[str] = None
    cache_dir: Optional[str] = None
    url: Optional[str] = None


class GearIdentity(BaseModel):
    uuid: str
    application_name: str
    container_dir: str
    uid: Optional[int] = None
    gid: Optional[int] = None


class PopulateFromTemplate(BaseModel):
    cartridge_name: str


class PopulateFromUrl(BaseModel):
    cartridge_name: str
    url: str
