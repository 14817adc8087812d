"""
Shared fixtures for mirror tests.

Provides a temporary base mirror directory, a config factory, a runner
stand-in that records git invocations instead of spawning them, and a
Flask test app wired to a mock dispatcher.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from ghmirror.config.models import GlobalConfig
from ghmirror.mirror.runner import RunResult, RunStatus


MIRRORS = [
    {"name": "widgets", "url": "git@github.com:acme/widgets.git"},
    {"name": "gadgets", "url": "https://github.com/acme/gadgets.git"},
    {"name": "tools", "url": "git@github.com:acme/tools.git", "wrapper": "with-key --key /etc/keys/tools"},
]


class RecordingRunner:
    """
    Stands in for ``runner.run``.

    Records every call with its start/end time and the mirror directory
    it targets. ``statuses`` maps a mirror dir name to the status to
    report; ``delay`` makes each call take that long.
    """

    def __init__(self, statuses: Optional[Dict[str, RunStatus]] = None, delay: float = 0.0):
        self.statuses = statuses or {}
        self.delay = delay
        self.calls: List[dict] = []
        self._lock = threading.Lock()

    def __call__(self, command, cwd, timeout):
        command = list(command)
        cwd = Path(cwd)
        # clone targets <cwd>/<name>.git, fetch runs inside the mirror dir
        target = cwd / command[-1] if "clone" in command else cwd
        start = time.monotonic()
        if self.delay:
            time.sleep(self.delay)
        end = time.monotonic()

        status = self.statuses.get(target.name, RunStatus.OK)
        with self._lock:
            self.calls.append({
                "command": command,
                "cwd": cwd,
                "timeout": timeout,
                "target": target,
                "start": start,
                "end": end,
            })
        return RunResult(
            command=command,
            cwd=str(cwd),
            status=status,
            exit_code=0 if status == RunStatus.OK else (128 if status == RunStatus.FAILED else None),
            stderr="" if status == RunStatus.OK else "fatal: something went wrong\n",
        )

    @property
    def commands(self) -> List[List[str]]:
        return [c["command"] for c in self.calls]


def make_mirror_dir(base_dir: Path, name: str) -> Path:
    """Create a non-empty mirror directory, as a previous clone would."""
    mirror_dir = base_dir / f"{name}.git"
    mirror_dir.mkdir()
    (mirror_dir / "HEAD").write_text("ref: refs/heads/main\n")
    return mirror_dir


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    """The base mirror directory, created empty."""
    path = tmp_path / "mirrors"
    path.mkdir()
    return path


@pytest.fixture
def make_config(base_dir: Path):
    """Build a GlobalConfig with the standard mirrors and overrides."""

    def _make(**overrides) -> GlobalConfig:
        data = {
            "baseMirrorDir": str(base_dir),
            "mirrors": MIRRORS,
        }
        data.update(overrides)
        return GlobalConfig.model_validate(data)

    return _make


@pytest.fixture
def config(make_config) -> GlobalConfig:
    return make_config()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


# ── Flask ─────────────────────────────────────────────────────────────


@pytest.fixture
def dispatcher():
    """Mock dispatcher recording dispatch() calls."""
    from ghmirror.mirror.dispatcher import UpdateDispatcher

    return MagicMock(spec=UpdateDispatcher)


@pytest.fixture
def config_provider(config):
    """Provider mock; set ``return_value`` or ``side_effect`` to change it."""
    return MagicMock(return_value=config)


@pytest.fixture
def app(config_provider, dispatcher):
    """Flask test app with mock collaborators."""
    pytest.importorskip("flask")
    from ghmirror.server.app import create_app

    app = create_app(config_provider, dispatcher)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
