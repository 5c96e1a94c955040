"""Utility functions for pysettingsync."""

import base64
import binascii
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

from .exceptions import DecodeError

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_REPO_NAME: str = "vscode-settings-sync"
DEFAULT_BASE_PATH: str = "profiles"
REPO_DESCRIPTION: str = (
    "Synced VSCode settings, keybindings, snippets, and extensions list."
)
USER_AGENT: str = "pysettingsync"

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds
DEFAULT_TIMEOUT: float = 30.0  # seconds


# =============================================================================
# Repository path utilities
# =============================================================================


def normalize_repo_path(path: str) -> str:
    """Normalize a path to the forward-slash form used by the remote API.

    Leading separators are stripped and backslashes become forward slashes.

    Examples:
        >>> normalize_repo_path("/profiles/abc/settings.json")
        'profiles/abc/settings.json'
        >>> normalize_repo_path("profiles\\\\abc\\\\snippets\\\\a.json")
        'profiles/abc/snippets/a.json'
    """
    return path.replace("\\", "/").lstrip("/")


def encode_path_for_url(path: str) -> str:
    """Percent-encode each path segment, keeping slashes as separators.

    Examples:
        >>> encode_path_for_url("profiles/my profile/a#b.json")
        'profiles/my%20profile/a%23b.json'
    """
    segments = [s for s in normalize_repo_path(path).split("/") if s]
    return "/".join(quote(s, safe="") for s in segments)


def join_repo_path(*parts: str) -> str:
    """Join path components with forward slashes.

    Components are treated as opaque strings; empty components are skipped.

    Examples:
        >>> join_repo_path("profiles", "abc", "meta.json")
        'profiles/abc/meta.json'
        >>> join_repo_path("profiles/", "/abc")
        'profiles/abc'
    """
    cleaned = [normalize_repo_path(p).strip("/") for p in parts]
    return "/".join(p for p in cleaned if p)


def repo_basename(path: str) -> str:
    """Return the last component of a repository path."""
    return normalize_repo_path(path).rstrip("/").rsplit("/", 1)[-1]


# =============================================================================
# Content encoding
# =============================================================================


def encode_content(text: str) -> str:
    """Encode text as base64 of its UTF-8 bytes, as the contents APIs expect."""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_content(encoded: str) -> str:
    """Decode base64 content returned by the contents APIs.

    Both backends wrap the payload at 60 columns, so all whitespace is
    removed before strict decoding.

    Raises:
        DecodeError: If the payload is not valid base64 or not valid UTF-8
    """
    compact = "".join(encoded.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Malformed base64 content: {e}") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Remote content is not valid UTF-8: {e}") from e


# =============================================================================
# Timestamp utilities
# =============================================================================


def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string with a Z suffix.

    Examples:
        >>> now_iso()  # doctest: +SKIP
        '2025-01-15T10:30:00.123Z'
    """
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO format timestamp as written by :func:`now_iso`.

    Args:
        timestamp_str: ISO format timestamp string (e.g., "2025-01-15T10:30:00.000Z")

    Returns:
        Timezone-aware datetime or None if parsing fails
    """
    if not timestamp_str:
        return None

    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(timestamp_str)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(timestamp_str: Optional[str]) -> str:
    """Format a stored timestamp for display in local time."""
    dt = parse_iso_timestamp(timestamp_str)
    if dt is None:
        return "never"
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")
