"""
Mirror Store — Clone or fetch the configured mirrors on disk.

Each mirror lives at ``<baseMirrorDir>/<name>.git``. A missing or empty
directory is created with ``git clone --mirror``; anything else is
updated in place with ``git fetch -q``.

One failing mirror never stops the others: failures are logged with the
captured git output and reported in the returned results.

## Usage

    from ghmirror.mirror.store import update_mirrors

    results = update_mirrors(set(), config)          # all mirrors
    results = update_mirrors({"widgets"}, config)    # just one
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from ..config.models import GlobalConfig, MirrorConfig
from ..errors import BaseMirrorDirError
from . import runner as process_runner
from .runner import RunResult

logger = logging.getLogger(__name__)

ACTION_CLONE = "clone"
ACTION_FETCH = "fetch"

Runner = Callable[..., RunResult]


@dataclass
class MirrorUpdateResult:
    """Outcome of updating one mirror."""

    name: str
    action: str  # clone | fetch
    result: RunResult

    @property
    def ok(self) -> bool:
        return self.result.ok


def git_command(mirror: MirrorConfig, *args: str) -> List[str]:
    """Build ``[<wrapper...>] git <args>`` for ``mirror``."""
    prefix = shlex.split(mirror.wrapper) if mirror.wrapper else []
    return prefix + ["git", *args]


def needs_clone(mirror_dir: Path) -> bool:
    """True when the mirror directory is absent or empty."""
    if not mirror_dir.exists():
        return True
    if not mirror_dir.is_dir():
        return False
    return not any(mirror_dir.iterdir())


def select_mirrors(target_names: Iterable[str], config: GlobalConfig) -> List[MirrorConfig]:
    """
    The working set for an update pass, in configuration order.

    An empty ``target_names`` selects every mirror; unknown names are
    ignored.
    """
    names = set(target_names)
    if not names:
        return list(config.mirrors)

    unknown = names - {m.name for m in config.mirrors}
    if unknown:
        logger.debug(f"Ignoring unknown mirror name(s): {', '.join(sorted(unknown))}")

    return [m for m in config.mirrors if m.name in names]


def update_mirror(
    mirror: MirrorConfig,
    config: GlobalConfig,
    runner: Optional[Runner] = None,
) -> MirrorUpdateResult:
    """Clone or fetch a single mirror."""
    run = runner or process_runner.run
    base_dir = config.base_path
    mirror_dir = config.mirror_dir(mirror)

    if needs_clone(mirror_dir):
        logger.info(
            f"Creating new github mirror at {mirror_dir.absolute()} for url {mirror.url}",
            extra={"mirror": mirror.name},
        )
        result = run(
            git_command(mirror, "clone", "--mirror", mirror.url, mirror.dir_name),
            cwd=base_dir,
            timeout=config.clone_timeout,
        )
        action = ACTION_CLONE
    else:
        logger.info(
            f"Updating github mirror at {mirror_dir.absolute()} from url {mirror.url}",
            extra={"mirror": mirror.name},
        )
        result = run(
            git_command(mirror, "fetch", "-q"),
            cwd=mirror_dir,
            timeout=config.fetch_timeout,
        )
        action = ACTION_FETCH

    if not result.ok:
        logger.error(
            f"[{mirror.name}] {action} failed: {result.describe()}",
            extra={"mirror": mirror.name},
        )
        if action == ACTION_CLONE and mirror_dir.exists():
            # A non-empty leftover will be fetched, not re-cloned, next time
            logger.warning(
                f"[{mirror.name}] clone left {mirror_dir} behind; "
                "remove it if the mirror does not recover",
                extra={"mirror": mirror.name},
            )

    return MirrorUpdateResult(name=mirror.name, action=action, result=result)


def update_mirrors(
    target_names: Iterable[str],
    config: GlobalConfig,
    runner: Optional[Runner] = None,
) -> List[MirrorUpdateResult]:
    """
    Update the selected mirrors one after another.

    Raises:
        BaseMirrorDirError: ``baseMirrorDir`` is not an existing directory.
            Nothing is run in that case.
    """
    base_dir = config.base_path
    if not base_dir.is_dir():
        raise BaseMirrorDirError(
            f"The baseMirrorDir directory {config.base_mirror_dir} does not exist!"
        )

    mirrors = select_mirrors(target_names, config)
    logger.info(f"Updating {len(mirrors)} mirror(s): {', '.join(m.name for m in mirrors)}")

    results = [update_mirror(mirror, config, runner) for mirror in mirrors]

    ok_count = sum(1 for r in results if r.ok)
    log_fn = logger.info if ok_count == len(results) else logger.warning
    log_fn(f"Mirror update: {ok_count}/{len(results)} mirrors updated")

    return results
