"""Explicit session value passed into every sync operation."""

import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigError
from .models import DirEntry, RemoteFile, RepoRef
from .providers import RemoteProvider
from .state import SessionStateManager
from .utils import DEFAULT_BASE_PATH, DEFAULT_REPO_NAME

logger = logging.getLogger(__name__)


@dataclass
class SyncSession:
    """Provider, persisted state and repository settings for one run."""

    provider: RemoteProvider
    state: SessionStateManager
    repo_name: str = DEFAULT_REPO_NAME
    base_path: str = DEFAULT_BASE_PATH
    owner: Optional[str] = None
    ref: Optional[RepoRef] = None

    @property
    def kind(self) -> str:
        return self.provider.kind

    def require_ref(self) -> RepoRef:
        if self.ref is None:
            raise ConfigError("Remote repository has not been resolved yet")
        return self.ref

    def read_file(self, path: str) -> Optional[RemoteFile]:
        return self.provider.read_file(self.require_ref(), path)

    def list_dir(self, path: str) -> list[DirEntry]:
        return self.provider.list_dir(self.require_ref(), path)

    def write_file(self, path: str, content: str, message: str) -> None:
        """Write a file and remember a branch discovered by fallback."""
        ref = self.require_ref()
        branch = self.provider.write_file(ref, path, content, message)
        if branch != ref.branch:
            logger.info(f"Caching branch '{branch}' (was '{ref.branch}')")
            self.ref = ref.with_branch(branch)
            self.state.update(branch=branch)

    def destination(self, label: str) -> str:
        """Render ``kind:owner/repo/label`` for user messages."""
        return f"{self.require_ref().display(self.kind)}/{label}"

    def close(self) -> None:
        self.provider.close()
