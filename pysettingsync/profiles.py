"""Profile-scoped layout of the sync repository.

Every profile owns the subtree ``<base_path>/<profile_id>/``::

    meta.json
    settings.json
    keybindings.json
    extensions.json
    snippets/<name>
"""

import hashlib
import logging
import sys
import uuid
from typing import Optional

from .exceptions import DecodeError
from .models import ActiveProfile, ProfileMeta, RemoteProfile, RepoRef
from .providers import RemoteProvider
from .session import SyncSession
from .state import SessionStateManager
from .utils import join_repo_path, now_iso, repo_basename

logger = logging.getLogger(__name__)

META_FILE = "meta.json"
SETTINGS_FILE = "settings.json"
KEYBINDINGS_FILE = "keybindings.json"
EXTENSIONS_FILE = "extensions.json"
SNIPPETS_DIR = "snippets"

DEFAULT_PROFILE_NAME = "default"


def profile_subtree(base_path: str, profile_id: str) -> str:
    """Return the directory holding a profile's files."""
    return join_repo_path(base_path, profile_id)


def profile_file(base_path: str, profile_id: str, *parts: str) -> str:
    """Return the path of a file inside a profile's subtree."""
    return join_repo_path(profile_subtree(base_path, profile_id), *parts)


def generate_profile_id(display_name: str) -> str:
    """Generate a fresh opaque profile id.

    The display name only salts the hash; two profiles with the same name
    still get different ids.
    """
    seed = f"{display_name}:{uuid.uuid4()}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:12]


def current_platform() -> str:
    """Return the platform tag stored in profile metadata."""
    return sys.platform


def build_profile_meta(
    profile_id: str,
    display_name: str,
    vscode_version: Optional[str] = None,
    created_at: Optional[str] = None,
    last_sync_at: Optional[str] = None,
) -> ProfileMeta:
    return ProfileMeta(
        id=profile_id,
        display_name=display_name,
        created_at=created_at or now_iso(),
        last_sync_at=last_sync_at,
        platform=current_platform(),
        vscode_version=vscode_version,
    )


def list_remote_profiles(
    provider: RemoteProvider, ref: RepoRef, base_path: str
) -> list[RemoteProfile]:
    """List profiles stored under ``base_path``.

    Subdirectories without a parseable schema-1 ``meta.json`` are not
    profiles and are skipped silently.
    """
    profiles: list[RemoteProfile] = []
    for entry in provider.list_dir(ref, base_path):
        if not entry.is_dir:
            continue
        profile_id = repo_basename(entry.path)
        try:
            meta_file = provider.read_file(ref, join_repo_path(entry.path, META_FILE))
        except DecodeError as e:
            logger.debug(f"Skipping {entry.path}: {e}")
            continue
        if meta_file is None:
            logger.debug(f"Skipping {entry.path}: no {META_FILE}")
            continue
        meta = ProfileMeta.from_json(meta_file.content)
        if meta is None:
            logger.debug(f"Skipping {entry.path}: {META_FILE} is not profile metadata")
            continue
        profiles.append(RemoteProfile(id=profile_id, meta=meta))

    profiles.sort(key=lambda p: (p.label.lower(), p.id))
    return profiles


def find_remote_profile(
    profiles: list[RemoteProfile], key: str
) -> Optional[RemoteProfile]:
    """Find a profile by id, falling back to a unique display name match."""
    for profile in profiles:
        if profile.id == key:
            return profile
    matches = [p for p in profiles if p.label == key]
    if len(matches) > 1:
        logger.warning(f"{len(matches)} profiles are named '{key}', using the first")
    return matches[0] if matches else None


def get_active_profile(state: SessionStateManager) -> Optional[ActiveProfile]:
    current = state.load()
    if current.profile_id and current.profile_display_name:
        return ActiveProfile(current.profile_id, current.profile_display_name)
    return None


def get_or_init_profile(state: SessionStateManager) -> ActiveProfile:
    """Return the active profile, creating a local default one if needed.

    Nothing is written remotely until the first upload.
    """
    active = get_active_profile(state)
    if active is not None:
        return active

    profile = ActiveProfile(id=str(uuid.uuid4()), display_name=DEFAULT_PROFILE_NAME)
    state.update(profile_id=profile.id, profile_display_name=profile.display_name)
    logger.info(f"Initialised local profile '{profile.display_name}' ({profile.id})")
    return profile


def switch_profile(
    state: SessionStateManager, profile_id: str, display_name: str
) -> ActiveProfile:
    """Select an existing profile. Local state only, no remote I/O."""
    state.update(profile_id=profile_id, profile_display_name=display_name)
    return ActiveProfile(profile_id, display_name)


def create_profile(
    session: SyncSession, display_name: str, vscode_version: Optional[str] = None
) -> ActiveProfile:
    """Create a new remote profile and select it."""
    profile_id = generate_profile_id(display_name)
    meta = build_profile_meta(profile_id, display_name, vscode_version=vscode_version)
    session.write_file(
        profile_file(session.base_path, profile_id, META_FILE),
        meta.to_json(),
        f"Create profile {display_name}",
    )
    logger.info(f"Created profile '{display_name}' ({profile_id})")
    return switch_profile(session.state, profile_id, display_name)


def rename_profile(
    session: SyncSession, profile: ActiveProfile, new_display_name: str
) -> ActiveProfile:
    """Give a profile a new display name; its id never changes."""
    meta_path = profile_file(session.base_path, profile.id, META_FILE)
    existing = session.read_file(meta_path)
    meta = ProfileMeta.from_json(existing.content) if existing else None
    if meta is None or meta.id != profile.id:
        meta = build_profile_meta(profile.id, new_display_name)
    meta.display_name = new_display_name

    session.write_file(
        meta_path,
        meta.to_json(),
        f"Rename profile {profile.display_name} to {new_display_name}",
    )
    return switch_profile(session.state, profile.id, new_display_name)
