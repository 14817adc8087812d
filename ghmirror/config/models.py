"""
Config Models — Pydantic schemas for the mirror configuration file.

The file uses camelCase keys (``baseMirrorDir``, ``ipAddressRestrictions``);
the models expose snake_case attributes and accept either spelling.
"""

from __future__ import annotations

import ipaddress
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_CLONE_TIMEOUT = 600.0  # 10 minutes
DEFAULT_FETCH_TIMEOUT = 60.0   # 1 minute


class MirrorConfig(BaseModel):
    """A single mirror: a local bare repository tracking one upstream URL."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    wrapper: Optional[str] = None  # command prefix, e.g. an ssh-agent wrapper

    @field_validator("name")
    @classmethod
    def _name_is_plain(cls, value: str) -> str:
        if "/" in value or value in (".", ".."):
            raise ValueError(f"invalid mirror name: {value!r}")
        return value

    @property
    def dir_name(self) -> str:
        return f"{self.name}.git"


class GlobalConfig(BaseModel):
    """The whole configuration document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_mirror_dir: str = Field(alias="baseMirrorDir", min_length=1)
    mirrors: List[MirrorConfig] = Field(default_factory=list)
    ip_address_restrictions: List[str] = Field(
        default_factory=list, alias="ipAddressRestrictions"
    )
    clone_timeout: float = Field(default=DEFAULT_CLONE_TIMEOUT, alias="cloneTimeout", gt=0)
    fetch_timeout: float = Field(default=DEFAULT_FETCH_TIMEOUT, alias="fetchTimeout", gt=0)

    @field_validator("ip_address_restrictions", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value

    @field_validator("ip_address_restrictions")
    @classmethod
    def _valid_networks(cls, value: List[str]) -> List[str]:
        for cidr in value:
            try:
                ipaddress.ip_network(cidr, strict=False)
            except ValueError as e:
                raise ValueError(f"invalid CIDR in ipAddressRestrictions: {cidr!r} ({e})")
        return value

    @model_validator(mode="after")
    def _unique_names(self) -> "GlobalConfig":
        seen = set()
        for mirror in self.mirrors:
            if mirror.name in seen:
                raise ValueError(f"duplicate mirror name: {mirror.name!r}")
            seen.add(mirror.name)
        return self

    @property
    def base_path(self) -> Path:
        return Path(self.base_mirror_dir)

    def mirror_dir(self, mirror: MirrorConfig) -> Path:
        """Path of the bare repository for ``mirror``."""
        return self.base_path / mirror.dir_name

    def get_mirror(self, name: str) -> Optional[MirrorConfig]:
        for mirror in self.mirrors:
            if mirror.name == name:
                return mirror
        return None
