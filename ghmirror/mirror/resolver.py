"""
Repository Resolver — Map a webhook repository URL to configured mirrors.

A mirror matches when its configured ``url`` ends with
``[/:]<owner>/<repo>.git``, so both HTTPS and SSH remote forms match the
``https://github.com/<owner>/<repo>`` URL GitHub reports.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from ..config.models import GlobalConfig

logger = logging.getLogger(__name__)


def split_owner_repo(github_url: Optional[str]) -> Optional[Tuple[str, str]]:
    """Return (owner, repo) from the last two path segments, or None."""
    if not github_url:
        return None

    segments = github_url.strip().rstrip("/").split("/")
    if len(segments) < 2:
        return None

    owner, repo = segments[-2], segments[-1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        return None
    return owner, repo


def resolve_mirrors(github_url: Optional[str], config: GlobalConfig) -> List[str]:
    """Names of the configured mirrors tracking ``github_url``, in config order."""
    parts = split_owner_repo(github_url)
    if parts is None:
        logger.debug(f"Cannot extract owner/repo from URL: {github_url!r}")
        return []

    owner, repo = parts
    pattern = re.compile(rf"[/:]{re.escape(owner)}/{re.escape(repo)}\.git$")

    return [m.name for m in config.mirrors if pattern.search(m.url)]
