"""
Config Loader — Read the mirror configuration document.

The document is JSON; it is parsed with ``yaml.safe_load`` so a YAML file
with the same keys works too.

## Usage

    from ghmirror.config.loader import ConfigProvider, load_config

    config = load_config(Path("mirrors.json"))     # batch: once per run

    provider = ConfigProvider(Path("mirrors.json"))
    config = provider()                             # server: every dispatch
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import GlobalConfig

logger = logging.getLogger(__name__)


def load_document(path: Path) -> Dict[str, Any]:
    """Load the raw configuration mapping from ``path``."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError("config file not found", path=path)
    except OSError as e:
        raise ConfigurationError(f"config file cannot be read: {e}", path=path)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"config file cannot be parsed: {e}", path=path)

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"config must be a mapping, got {type(data).__name__}", path=path
        )
    return data


def parse_config(data: Dict[str, Any], path: Path | None = None) -> GlobalConfig:
    """Validate a raw mapping into a ``GlobalConfig``."""
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(
            f"invalid configuration: {problems}",
            path=path,
            details={"errors": e.errors()},
        )


def load_config(path: Union[str, Path]) -> GlobalConfig:
    """Load and validate the configuration file at ``path``."""
    path = Path(path)
    config = parse_config(load_document(path), path=path)
    logger.debug(f"Loaded {len(config.mirrors)} mirror(s) from {path}")
    return config


class ConfigProvider:
    """
    Re-reads the configuration file on every call.

    Server mode hands this to the dispatcher and the webhook endpoint so
    edits to the file apply to the next request without a restart.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __call__(self) -> GlobalConfig:
        return load_config(self.path)

    def __repr__(self) -> str:
        return f"ConfigProvider({str(self.path)!r})"
