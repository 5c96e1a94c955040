"""Repository and branch resolution.

Makes sure the sync repository exists, works out which branch writes go to,
and recovers from writes rejected because that branch does not exist.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from .exceptions import BranchMismatchError
from .models import RepoRef

if TYPE_CHECKING:
    from .session import SyncSession

logger = logging.getLogger(__name__)

FALLBACK_BRANCHES = ("main", "master")

# Placeholder until the real branch is known (matches GitHub's default).
PLACEHOLDER_BRANCH = "main"


def branch_candidates(branch: str) -> list[str]:
    """Return the ordered, de-duplicated branches to try for a write.

    Examples:
        >>> branch_candidates("develop")
        ['develop', 'main', 'master']
        >>> branch_candidates("master")
        ['master', 'main']
        >>> branch_candidates("")
        ['main', 'master']
    """
    candidates: list[str] = []
    for name in (branch, *FALLBACK_BRANCHES):
        if name and name not in candidates:
            candidates.append(name)
    return candidates


def write_with_branch_fallback(write_once: Callable[[str], None], branch: str) -> str:
    """Run ``write_once`` on ``branch``, falling back to main/master.

    Only :class:`BranchMismatchError` triggers the fallback; any other error
    propagates immediately. If every candidate rejects the branch, the
    original error is raised.

    Returns:
        The branch the write succeeded on
    """
    try:
        write_once(branch)
        return branch
    except BranchMismatchError as original:
        logger.info(f"Branch '{branch}' rejected ({original.message}), trying fallbacks")
        for candidate in branch_candidates(branch):
            if candidate == branch:
                # Already failed above.
                continue
            try:
                write_once(candidate)
            except BranchMismatchError as e:
                logger.debug(f"Branch '{candidate}' rejected: {e.message}")
                continue
            logger.info(f"Write succeeded on fallback branch '{candidate}'")
            return candidate
        raise original


def resolve_repo_ref(session: SyncSession) -> RepoRef:
    """Determine owner and repository name (branch may be a placeholder)."""
    state = session.state.load()
    owner = session.owner or state.repo_owner or session.provider.get_viewer_login()
    repo = session.repo_name

    branch = state.branch or ""
    if state.repo_name and state.repo_name != repo:
        # Cached branch belongs to a different repository.
        logger.debug(f"Repository changed from {state.repo_name} to {repo}")
        branch = ""

    session.state.update(repo_owner=owner, repo_name=repo, branch=branch or None)
    return RepoRef(owner=owner, repo=repo, branch=branch or PLACEHOLDER_BRANCH)


def ensure_remote_ready(session: SyncSession) -> RepoRef:
    """Ensure the repository exists and resolve the branch to write to.

    1. Determine owner and repository name.
    2. Create the repository (private) if it is missing.
    3. Use the cached branch, or ask the backend for its default branch and
       cache it.
    4. Return the resolved reference (also stored on the session).
    """
    ref = resolve_repo_ref(session)
    session.provider.ensure_repo(ref.owner, ref.repo, True)

    stored = session.state.load().branch
    if stored and stored.strip():
        branch = stored
    else:
        branch = session.provider.get_default_branch(ref.owner, ref.repo)
        logger.debug(f"Default branch of {ref.owner}/{ref.repo} is {branch}")
    session.state.update(branch=branch)

    ref = ref.with_branch(branch)
    session.ref = ref
    return ref
