"""Session state persistence.

Remembers the active provider, the resolved repository owner/name/branch
and the active profile between runs, in a JSON file in the user's config
directory.
"""

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from .config import default_config_dir

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Small key-value state that survives restarts."""

    provider: Optional[str] = None
    """Active provider kind ("github" or "gitee")"""

    repo_owner: Optional[str] = None
    """Cached repository owner (viewer login unless overridden)"""

    repo_name: Optional[str] = None
    """Repository name used for the last resolution"""

    branch: Optional[str] = None
    """Cached branch writes go to"""

    profile_id: Optional[str] = None
    """Active profile identifier"""

    profile_display_name: Optional[str] = None
    """Cached display name of the active profile"""

    def to_dict(self) -> dict:
        """Convert state to dictionary for JSON serialization."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> "SessionState":
        """Create SessionState from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(
            **{k: str(v) for k, v in data.items() if k in known and v is not None}
        )


class SessionStateManager:
    """Loads and saves :class:`SessionState` as JSON."""

    def __init__(self, state_dir: Optional[Path] = None):
        """Initialize state manager.

        Args:
            state_dir: Directory to store the state file. Defaults to
                      ~/.config/pysettingsync/
        """
        self.state_dir = state_dir or default_config_dir()
        self.state_file = self.state_dir / "state.json"
        self._state: Optional[SessionState] = None

    def load(self) -> SessionState:
        """Load state, returning an empty state if none was saved."""
        if self._state is not None:
            return self._state

        if not self.state_file.exists():
            logger.debug(f"No session state found at {self.state_file}")
            self._state = SessionState()
            return self._state

        try:
            with open(self.state_file, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("state file does not contain an object")
            self._state = SessionState.from_dict(data)
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to load session state: {e}")
            self._state = SessionState()
        return self._state

    def save(self, state: SessionState) -> None:
        """Persist state to disk."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        with open(self.state_file, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        self._state = state
        logger.debug(f"Saved session state to {self.state_file}")

    def update(self, **changes: Optional[str]) -> SessionState:
        """Update individual fields and persist the result."""
        state = self.load()
        for key, value in changes.items():
            if not hasattr(state, key):
                raise AttributeError(f"Unknown session state field: {key}")
            setattr(state, key, value)
        self.save(state)
        return state

    def clear(self) -> bool:
        """Remove the persisted state.

        Returns:
            True if state was cleared, False if no state existed
        """
        self._state = None
        if self.state_file.exists():
            self.state_file.unlink()
            logger.debug(f"Cleared session state at {self.state_file}")
            return True
        return False
