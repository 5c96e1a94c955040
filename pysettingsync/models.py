"""Data models for remote repositories, profiles and extension snapshots."""

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

EntryType = Literal["file", "dir"]


@dataclass(frozen=True)
class RepoRef:
    """Identifies exactly one writable location in a remote repository."""

    owner: str
    repo: str
    branch: str

    def with_branch(self, branch: str) -> "RepoRef":
        """Return a copy pointing at another branch."""
        return replace(self, branch=branch)

    def display(self, kind: str) -> str:
        """Render as ``kind:owner/repo`` for user messages."""
        return f"{kind}:{self.owner}/{self.repo}"


@dataclass
class RemoteFile:
    """Decoded content of a remote file plus its revision tag."""

    content: str
    """Decoded text content"""

    sha: Optional[str] = None
    """Blob sha assigned by the backend, used for optimistic concurrency"""


@dataclass(frozen=True)
class DirEntry:
    """A single child of a remote directory listing."""

    path: str
    type: EntryType

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"

    @property
    def name(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DirEntry":
        """Create from a contents API listing item."""
        entry_type: EntryType = "dir" if data.get("type") == "dir" else "file"
        return cls(path=str(data.get("path", "")), type=entry_type)


def _dump(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


@dataclass
class ProfileMeta:
    """Metadata identifying one configuration bucket (``meta.json``)."""

    id: str
    display_name: str
    created_at: str
    last_sync_at: Optional[str] = None
    platform: Optional[str] = None
    vscode_version: Optional[str] = None
    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase document stored remotely."""
        data: dict[str, Any] = {
            "schemaVersion": self.schema_version,
            "id": self.id,
            "displayName": self.display_name,
            "createdAt": self.created_at,
        }
        if self.last_sync_at is not None:
            data["lastSyncAt"] = self.last_sync_at
        if self.platform is not None:
            data["platform"] = self.platform
        if self.vscode_version is not None:
            data["vscodeVersion"] = self.vscode_version
        return data

    def to_json(self) -> str:
        return _dump(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ProfileMeta"]:
        """Create from a parsed document, or None if it is not schema 1."""
        if not isinstance(data, dict):
            return None
        if data.get("schemaVersion") != SCHEMA_VERSION or not data.get("id"):
            return None
        return cls(
            id=str(data["id"]),
            display_name=str(data.get("displayName") or data["id"]),
            created_at=str(data.get("createdAt", "")),
            last_sync_at=data.get("lastSyncAt"),
            platform=data.get("platform"),
            vscode_version=data.get("vscodeVersion"),
        )

    @classmethod
    def from_json(cls, text: str) -> Optional["ProfileMeta"]:
        """Parse ``meta.json`` content; None if unparseable or foreign."""
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("Ignoring unparseable profile metadata")
            return None
        return cls.from_dict(data)


@dataclass
class ExtensionInfo:
    """One installed extension."""

    id: str
    version: Optional[str] = None
    is_builtin: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.version is not None:
            data["version"] = self.version
        data["isBuiltin"] = self.is_builtin
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtensionInfo":
        return cls(
            id=str(data["id"]),
            version=data.get("version"),
            is_builtin=bool(data.get("isBuiltin", False)),
        )


@dataclass
class ExtensionsSnapshot:
    """Point-in-time list of non-built-in extensions (``extensions.json``)."""

    generated_at: str
    extensions: list[ExtensionInfo] = field(default_factory=list)
    schema_version: int = SCHEMA_VERSION

    @classmethod
    def build(
        cls, extensions: list[ExtensionInfo], generated_at: str
    ) -> "ExtensionsSnapshot":
        """Build a snapshot, dropping built-ins and sorting by identifier."""
        selected = [e for e in extensions if not e.is_builtin]
        selected.sort(key=lambda e: (e.id.lower(), e.id))
        return cls(generated_at=generated_at, extensions=selected)

    @property
    def extension_ids(self) -> list[str]:
        return [e.id for e in self.extensions]

    def to_dict(self) -> dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "generatedAt": self.generated_at,
            "extensions": [e.to_dict() for e in self.extensions],
        }

    def to_json(self) -> str:
        return _dump(self.to_dict())

    @classmethod
    def from_json(cls, text: str, fallback_generated_at: str) -> "ExtensionsSnapshot":
        """Parse ``extensions.json``; falls back to an empty snapshot."""
        try:
            data = json.loads(text)
            extensions = [
                ExtensionInfo.from_dict(item)
                for item in data.get("extensions", [])
                if isinstance(item, dict) and item.get("id")
            ]
            return cls(
                generated_at=str(data.get("generatedAt", fallback_generated_at)),
                extensions=extensions,
            )
        except (ValueError, AttributeError, TypeError) as e:
            logger.warning(f"Ignoring unreadable extensions snapshot: {e}")
            return cls(generated_at=fallback_generated_at)


@dataclass(frozen=True)
class RemoteProfile:
    """A profile discovered in the remote repository."""

    id: str
    meta: ProfileMeta

    @property
    def label(self) -> str:
        return self.meta.display_name or self.id


@dataclass(frozen=True)
class ActiveProfile:
    """The locally selected profile."""

    id: str
    display_name: str
