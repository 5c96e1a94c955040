"""Upload and download of a profile between the local user directory and
the remote repository."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..exceptions import ExtensionInstallError, SettingsSyncError
from ..local import ExtensionManager, LocalUserStore
from ..models import ActiveProfile, ExtensionsSnapshot, ProfileMeta
from ..output import OutputFormatter
from ..profiles import (
    EXTENSIONS_FILE,
    KEYBINDINGS_FILE,
    META_FILE,
    SETTINGS_FILE,
    SNIPPETS_DIR,
    build_profile_meta,
    profile_file,
)
from ..resolver import ensure_remote_ready, resolve_repo_ref
from ..session import SyncSession
from ..utils import now_iso, repo_basename

logger = logging.getLogger(__name__)

EMPTY_SETTINGS = "{}\n"
EMPTY_KEYBINDINGS = "[]\n"


@dataclass
class ItemOutcome:
    """Result of one best-effort step (a snippet or an extension)."""

    name: str
    ok: bool
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "ok": self.ok, "error": self.error}


@dataclass
class UploadResult:
    """Summary of an upload."""

    destination: str
    profile: ActiveProfile
    written: list[str] = field(default_factory=list)
    """Remote paths written (or planned, for a dry run), in write order"""

    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "destination": self.destination,
            "profile": {"id": self.profile.id, "displayName": self.profile.display_name},
            "written": list(self.written),
            "dryRun": self.dry_run,
        }


@dataclass
class DownloadResult:
    """Summary of a download."""

    source: str
    profile: ActiveProfile
    updated: list[str] = field(default_factory=list)
    """Local files overwritten"""

    snippets: list[ItemOutcome] = field(default_factory=list)
    extensions: list[ItemOutcome] = field(default_factory=list)

    @property
    def failed_snippets(self) -> list[ItemOutcome]:
        return [o for o in self.snippets if not o.ok]

    @property
    def failed_extensions(self) -> list[ItemOutcome]:
        return [o for o in self.extensions if not o.ok]

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "profile": {"id": self.profile.id, "displayName": self.profile.display_name},
            "updated": list(self.updated),
            "snippets": [o.to_dict() for o in self.snippets],
            "extensions": [o.to_dict() for o in self.extensions],
        }


class SyncEngine:
    """Runs uploads and downloads for one session.

    All remote calls are issued one after another; nothing runs in
    parallel against a profile subtree.
    """

    def __init__(
        self,
        session: SyncSession,
        local: LocalUserStore,
        extensions: ExtensionManager,
        output: Optional[OutputFormatter] = None,
        vscode_version: Optional[str] = None,
    ):
        """Initialize sync engine.

        Args:
            session: Provider, state and repository settings
            local: Access to the local VS Code user directory
            extensions: Lists and installs local extensions
            output: Output formatter for displaying progress/status
            vscode_version: Editor version recorded in profile metadata
        """
        self.session = session
        self.local = local
        self.extensions = extensions
        self.output = output or OutputFormatter(quiet=True)
        self.vscode_version = vscode_version

    def _path(self, profile: ActiveProfile, *parts: str) -> str:
        return profile_file(self.session.base_path, profile.id, *parts)

    # =========================
    # Upload
    # =========================

    def upload(self, profile: ActiveProfile, dry_run: bool = False) -> UploadResult:
        """Upload local settings, keybindings, extensions and snippets.

        Fail-fast: the first write error aborts the remaining writes and
        propagates. Files already written stay written.
        """
        if dry_run:
            self.session.ref = resolve_repo_ref(self.session)
        else:
            ensure_remote_ready(self.session)

        settings = self.local.read_text_if_exists(self.local.settings_path)
        keybindings = self.local.read_text_if_exists(self.local.keybindings_path)
        snippets = [
            (path.name, self.local.read_text_if_exists(path) or "")
            for path in self.local.list_snippet_files()
        ]
        snapshot = ExtensionsSnapshot.build(
            self.extensions.list_installed(), generated_at=now_iso()
        )
        meta_json = "" if dry_run else self._build_upload_meta(profile).to_json()

        name = profile.display_name
        writes: list[tuple[str, str, str]] = [
            (self._path(profile, META_FILE), meta_json, f"Update meta for {name}"),
            (
                self._path(profile, SETTINGS_FILE),
                settings if settings is not None else EMPTY_SETTINGS,
                f"Update settings for {name}",
            ),
            (
                self._path(profile, KEYBINDINGS_FILE),
                keybindings if keybindings is not None else EMPTY_KEYBINDINGS,
                f"Update keybindings for {name}",
            ),
            (
                self._path(profile, EXTENSIONS_FILE),
                snapshot.to_json(),
                f"Update extensions for {name}",
            ),
        ]
        for filename, content in snippets:
            writes.append(
                (
                    self._path(profile, SNIPPETS_DIR, filename),
                    content,
                    f"Update snippet {filename} for {name}",
                )
            )

        result = UploadResult(
            destination=self.session.destination(name),
            profile=profile,
            dry_run=dry_run,
        )
        if dry_run:
            result.written = [path for path, _, _ in writes]
            return result

        for path, content, message in writes:
            self.output.info(f"Uploading {path}")
            self.session.write_file(path, content, message)
            result.written.append(path)

        logger.info(f"Uploaded {len(result.written)} file(s) to {result.destination}")
        return result

    def _build_upload_meta(self, profile: ActiveProfile) -> ProfileMeta:
        """Fresh metadata with ``lastSyncAt`` now, keeping the original
        ``createdAt`` if the profile already exists remotely."""
        existing = self.session.read_file(self._path(profile, META_FILE))
        previous = ProfileMeta.from_json(existing.content) if existing else None
        created_at = (
            previous.created_at if previous and previous.id == profile.id else None
        )
        now = now_iso()
        return build_profile_meta(
            profile.id,
            profile.display_name,
            vscode_version=self.vscode_version,
            created_at=created_at or now,
            last_sync_at=now,
        )

    # =========================
    # Download
    # =========================

    def download(self, profile: ActiveProfile) -> DownloadResult:
        """Download the profile and overwrite the local files.

        Remote files that are absent leave their local counterparts
        untouched. Snippet fetches and extension installs are best-effort:
        each failure is recorded and logged, never raised.
        """
        ensure_remote_ready(self.session)

        settings = self.session.read_file(self._path(profile, SETTINGS_FILE))
        keybindings = self.session.read_file(self._path(profile, KEYBINDINGS_FILE))
        extensions_file = self.session.read_file(self._path(profile, EXTENSIONS_FILE))
        snippet_entries = [
            e
            for e in self.session.list_dir(self._path(profile, SNIPPETS_DIR))
            if not e.is_dir
        ]

        self.local.ensure_dir(self.local.user_dir)
        self.local.ensure_dir(self.local.snippets_dir)

        result = DownloadResult(
            source=self.session.destination(profile.display_name),
            profile=profile,
        )

        if settings is not None:
            self.local.write_text(self.local.settings_path, settings.content)
            result.updated.append(str(self.local.settings_path))
        if keybindings is not None:
            self.local.write_text(self.local.keybindings_path, keybindings.content)
            result.updated.append(str(self.local.keybindings_path))

        for entry in snippet_entries:
            outcome = self._download_snippet(entry.path)
            result.snippets.append(outcome)
            if outcome.ok:
                result.updated.append(str(self.local.snippets_dir / outcome.name))

        if extensions_file is not None:
            snapshot = ExtensionsSnapshot.from_json(
                extensions_file.content, fallback_generated_at=now_iso()
            )
            result.extensions = self.install_extensions(snapshot)

        logger.info(
            f"Downloaded {len(result.updated)} file(s) from {result.source}"
        )
        return result

    def _download_snippet(self, remote_path: str) -> ItemOutcome:
        filename = repo_basename(remote_path)
        try:
            remote = self.session.read_file(remote_path)
        except SettingsSyncError as e:
            logger.warning(f"Skipping snippet {filename}: {e}")
            return ItemOutcome(filename, ok=False, error=str(e))
        if remote is None:
            logger.debug(f"Snippet {filename} disappeared before it could be read")
            return ItemOutcome(filename, ok=False, error="not found")

        self.output.info(f"Writing snippet {filename}")
        self.local.write_text(self.local.snippets_dir / filename, remote.content)
        return ItemOutcome(filename, ok=True)

    def install_extensions(self, snapshot: ExtensionsSnapshot) -> list[ItemOutcome]:
        """Install every extension of a snapshot, one at a time.

        A failing install (unsupported platform, marketplace unavailable,
        policy block) is recorded and the loop carries on.
        """
        outcomes: list[ItemOutcome] = []
        for ext in snapshot.extensions:
            try:
                self.extensions.install(ext.id)
            except ExtensionInstallError as e:
                logger.warning(str(e))
                outcomes.append(ItemOutcome(ext.id, ok=False, error=e.reason))
                continue
            self.output.info(f"Installed extension {ext.id}")
            outcomes.append(ItemOutcome(ext.id, ok=True))
        return outcomes
