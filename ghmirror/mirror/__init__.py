"""
Mirror Pipeline — Keep local bare repositories in sync with GitHub.

runner → store → dispatcher, with the resolver mapping webhook URLs to
mirror names.
"""

from .dispatcher import UpdateDispatcher, UpdateRequest
from .resolver import resolve_mirrors
from .runner import RunResult, RunStatus, run
from .store import MirrorUpdateResult, update_mirrors

__all__ = [
    "MirrorUpdateResult",
    "RunResult",
    "RunStatus",
    "UpdateDispatcher",
    "UpdateRequest",
    "resolve_mirrors",
    "run",
    "update_mirrors",
]
