"""Custom exceptions for pysettingsync."""

from typing import Optional


class SettingsSyncError(Exception):
    """Base exception for all pysettingsync errors."""


class ConfigError(SettingsSyncError):
    """Raised when the tool is missing configuration (token, provider, ...)."""


class AuthError(SettingsSyncError):
    """Raised when the credential is missing, invalid or insufficiently scoped."""


class NetworkError(SettingsSyncError):
    """Raised when a request never reached the remote API."""


class DecodeError(SettingsSyncError):
    """Raised when remote content is not valid base64-encoded UTF-8."""


class ExtensionInstallError(SettingsSyncError):
    """Raised when a single extension could not be installed."""

    def __init__(self, extension_id: str, reason: str):
        self.extension_id = extension_id
        self.reason = reason
        super().__init__(f"Failed to install {extension_id}: {reason}")


class RemoteIOError(SettingsSyncError):
    """Raised for any non-2xx response from the remote API.

    Keeps the HTTP status and the backend's own message text so users can
    diagnose scope or branch problems on the remote side.
    """

    def __init__(self, status: int, message: str, path: Optional[str] = None):
        self.status = status
        self.message = message
        self.path = path
        detail = f"HTTP {status}: {message}"
        if path:
            detail = f"{detail} ({path})"
        super().__init__(detail)


class RepoCreateError(RemoteIOError):
    """Raised when the remote rejects repository creation."""

    def __init__(self, status: int, message: str, repo: Optional[str] = None):
        super().__init__(status, message, path=repo)
        self.repo = repo

    def __str__(self) -> str:
        repo = f" '{self.repo}'" if self.repo else ""
        return (
            f"Could not create repository{repo} (HTTP {self.status}: "
            f"{self.message}). Check the token scope or configure an "
            f"existing repository name."
        )


class BranchMismatchError(RemoteIOError):
    """Raised when a write targets a branch that does not exist remotely."""


class ConflictError(RemoteIOError):
    """Raised when a write is rejected because the revision tag is stale,
    missing, or the path already exists under create semantics."""
