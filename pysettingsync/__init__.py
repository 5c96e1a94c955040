"""pysettingsync - sync VS Code settings profiles to GitHub or Gitee."""

from .exceptions import (
    AuthError,
    BranchMismatchError,
    ConfigError,
    ConflictError,
    DecodeError,
    ExtensionInstallError,
    NetworkError,
    RemoteIOError,
    RepoCreateError,
    SettingsSyncError,
)
from .models import (
    ActiveProfile,
    DirEntry,
    ExtensionInfo,
    ExtensionsSnapshot,
    ProfileMeta,
    RemoteFile,
    RemoteProfile,
    RepoRef,
)
from .providers import GiteeProvider, GitHubProvider, RemoteProvider, create_provider
from .resolver import ensure_remote_ready
from .session import SyncSession
from .sync import SyncEngine

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ActiveProfile",
    "AuthError",
    "BranchMismatchError",
    "ConfigError",
    "ConflictError",
    "DecodeError",
    "DirEntry",
    "ExtensionInfo",
    "ExtensionInstallError",
    "ExtensionsSnapshot",
    "GiteeProvider",
    "GitHubProvider",
    "NetworkError",
    "ProfileMeta",
    "RemoteFile",
    "RemoteIOError",
    "RemoteProfile",
    "RemoteProvider",
    "RepoCreateError",
    "RepoRef",
    "SettingsSyncError",
    "SyncEngine",
    "SyncSession",
    "create_provider",
    "ensure_remote_ready",
]
