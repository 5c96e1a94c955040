"""GitHub REST API provider."""

from __future__ import annotations

import logging
from typing import Any

from ..exceptions import BranchMismatchError, ConflictError, RemoteIOError
from ..models import RepoRef
from ..utils import USER_AGENT, encode_content
from .base import RemoteProvider

logger = logging.getLogger(__name__)

_BRANCH_MARKERS = ("branch", "no commit found for the ref")


class GitHubProvider(RemoteProvider):
    """Provider for github.com (or GitHub Enterprise via ``api_url``).

    GitHub uses a single ``PUT`` for both create and update; an update is
    distinguished by the ``sha`` of the blob being replaced.
    """

    kind = "github"
    default_api_url = "https://api.github.com"
    fallback_branch = "main"

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }

    def _classify_error(
        self, status: int, message: str, path: str | None
    ) -> RemoteIOError:
        lowered = message.lower()
        if status == 409:
            # "<path> does not match <sha>"
            return ConflictError(status, message, path=path)
        if status == 422 and '"sha"' in lowered:
            # "Invalid request. "sha" wasn't supplied."
            return ConflictError(status, message, path=path)
        if status in (404, 422) and any(m in lowered for m in _BRANCH_MARKERS):
            return BranchMismatchError(status, message, path=path)
        return super()._classify_error(status, message, path)

    def _put_file(
        self,
        ref: RepoRef,
        path: str,
        content: str,
        message: str,
        sha: str | None,
    ) -> None:
        body: dict[str, Any] = {
            "message": message,
            "content": encode_content(content),
            "branch": ref.branch,
        }
        if sha:
            body["sha"] = sha
        logger.debug(f"PUT {path} on {ref.branch} ({'update' if sha else 'create'})")
        self._request("PUT", self._contents_endpoint(ref, path), json=body, path=path)
