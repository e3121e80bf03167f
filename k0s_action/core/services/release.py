"""
Version resolver — "latest" → concrete k0s release tag.

Explicit tags are trusted verbatim (no network, no validation; a bad tag
surfaces later as a download failure). "latest" costs exactly one GitHub
API request. There is no retry: a registry outage should fail loudly.
"""

from __future__ import annotations

import json
import logging
import os
import urllib.request
from collections.abc import Callable
from typing import Any

from k0s_action import __version__
from k0s_action.core.errors import VersionResolutionError
from k0s_action.core.models.platform import K0S_REPO, InstallRequest, ResolvedRelease

logger = logging.getLogger(__name__)

LATEST_RELEASE_API = f"https://api.github.com/repos/{K0S_REPO}/releases/latest"
_USER_AGENT = f"setup-k0s/{__version__}"


def _fetch_json(url: str, timeout: int = 15) -> Any:
    """GET ``url`` and decode the JSON body."""
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": _USER_AGENT,
    }
    token = os.environ.get("GITHUB_TOKEN", "").strip()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    req = urllib.request.Request(url, headers=headers)
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return json.loads(resp.read())


def fetch_latest_tag(fetch: Callable[[str], Any] | None = None) -> str:
    """Look up the newest k0s release tag.

    Raises:
        VersionResolutionError: On HTTP/JSON failure or a missing tag.
    """
    fetcher = fetch or _fetch_json
    try:
        data = fetcher(LATEST_RELEASE_API)
    except Exception as e:
        raise VersionResolutionError(f"Failed to fetch latest k0s release: {e}") from e

    tag = data.get("tag_name") if isinstance(data, dict) else None
    if not isinstance(tag, str) or not tag.strip():
        raise VersionResolutionError("Latest release metadata has no tag_name")
    return tag.strip()


def resolve_release(
    request: InstallRequest,
    fetch: Callable[[str], Any] | None = None,
) -> ResolvedRelease:
    """Turn an install request into a downloadable release."""
    if request.wants_latest:
        logger.info("Resolving latest version...")
        tag = fetch_latest_tag(fetch)
        logger.info("Latest version: %s", tag)
    else:
        tag = request.requested_version

    try:
        release = ResolvedRelease(tag=tag, architecture=request.architecture)
    except ValueError as e:
        raise VersionResolutionError(f"Unusable release tag {tag!r}: {e}") from e

    logger.debug("Resolved %s for %s", release.tag, release.architecture.value)
    return release
