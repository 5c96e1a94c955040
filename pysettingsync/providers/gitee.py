"""Gitee (v5 API) provider."""

from __future__ import annotations

import logging
from typing import Any

from ..exceptions import BranchMismatchError, ConflictError, RemoteIOError
from ..models import RepoRef
from ..utils import encode_content
from .base import RemoteProvider

logger = logging.getLogger(__name__)

# Gitee reports these conditions only through (Chinese) message text.
FILE_EXISTS_MARKERS = ("文件名已存在", "file name already exists")
BRANCH_ONLY_MARKERS = ("只允许在分支上创建或更新文件",)


class GiteeProvider(RemoteProvider):
    """Provider for gitee.com.

    Gitee uses distinct verbs: ``POST`` creates a file and must not carry a
    sha, ``PUT`` updates a file and requires one. New repositories default
    to ``master``.
    """

    kind = "gitee"
    default_api_url = "https://gitee.com/api/v5"
    fallback_branch = "master"

    def _auth_params(self) -> dict[str, str]:
        return {"access_token": self.token}

    def _classify_error(
        self, status: int, message: str, path: str | None
    ) -> RemoteIOError:
        lowered = message.lower()
        if any(m in lowered for m in FILE_EXISTS_MARKERS) or status == 409:
            return ConflictError(status, message, path=path)
        if any(m in message for m in BRANCH_ONLY_MARKERS):
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
            "content": encode_content(content),
            "message": message,
            "branch": ref.branch,
        }
        if sha:
            body["sha"] = sha
            method = "PUT"
        else:
            method = "POST"
        logger.debug(f"{method} {path} on {ref.branch}")
        self._request(method, self._contents_endpoint(ref, path), json=body, path=path)
