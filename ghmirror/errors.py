"""
Errors — Exceptions shared across the mirror pipeline.

Per-mirror git failures are never raised; they are reported as
``RunResult`` values by the process runner. Only problems that make a
whole update pass impossible are exceptions.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""

    def __init__(self, message: str, path: Optional[Path] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.path = path
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.path is not None:
            return f"{self.path}: {self.message}"
        return self.message


class BaseMirrorDirError(ConfigurationError):
    """Raised when the base mirror directory does not exist."""
    pass
