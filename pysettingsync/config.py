"""Configuration management for pysettingsync.

Values are looked up in environment variables first, then in the user
config file ``~/.config/pysettingsync/config`` (``KEY=value`` lines).
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .utils import DEFAULT_BASE_PATH, DEFAULT_REPO_NAME

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = "pysettingsync"

TOKEN_KEY = "PYSETTINGSYNC_TOKEN"
PROVIDER_KEY = "PYSETTINGSYNC_PROVIDER"
REPO_NAME_KEY = "PYSETTINGSYNC_REPO_NAME"
BASE_PATH_KEY = "PYSETTINGSYNC_BASE_PATH"
USER_DATA_DIR_KEY = "PYSETTINGSYNC_USER_DATA_DIR"
CODE_COMMAND_KEY = "PYSETTINGSYNC_CODE_COMMAND"
REPO_OWNER_KEY = "PYSETTINGSYNC_REPO_OWNER"


def default_config_dir() -> Path:
    """Return the per-user configuration directory."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / CONFIG_DIR_NAME


class Config:
    """Configuration manager backed by environment variables and a config file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                       ~/.config/pysettingsync/
        """
        self.config_dir = config_dir or default_config_dir()
        self._values: Optional[dict[str, str]] = None

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_dir / "config"

    def _load(self) -> dict[str, str]:
        if self._values is not None:
            return self._values

        values: dict[str, str] = {}
        path = self.get_config_path()
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    for line in f:
                        line = line.strip()
                        if not line or line.startswith("#") or "=" not in line:
                            continue
                        key, value = line.split("=", 1)
                        values[key.strip()] = value.strip()
            except OSError as e:
                logger.warning(f"Failed to read config file {path}: {e}")
        self._values = values
        return values

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return a setting from the environment or the config file."""
        value = os.environ.get(key)
        if value:
            return value
        value = self._load().get(key)
        return value if value else default

    def save_value(self, key: str, value: str) -> None:
        """Persist a single setting to the config file."""
        values = dict(self._load())
        values[key] = value

        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        with open(path, "w", encoding="utf-8") as f:
            f.write("# pysettingsync configuration\n")
            for k, v in sorted(values.items()):
                f.write(f"{k}={v}\n")
        try:
            path.chmod(0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {path}")
        self._values = values

    def save_token(self, token: str) -> None:
        """Store the backend credential in the config file."""
        self.save_value(TOKEN_KEY, token)

    def save_provider(self, provider: str) -> None:
        self.save_value(PROVIDER_KEY, provider)

    def is_configured(self) -> bool:
        """Return True if a token is available."""
        return bool(self.token)

    @property
    def token(self) -> Optional[str]:
        return self.get(TOKEN_KEY)

    @property
    def provider(self) -> Optional[str]:
        return self.get(PROVIDER_KEY)

    @property
    def repo_name(self) -> str:
        return self.get(REPO_NAME_KEY) or DEFAULT_REPO_NAME

    @property
    def repo_owner(self) -> Optional[str]:
        return self.get(REPO_OWNER_KEY)

    @property
    def base_path(self) -> str:
        return self.get(BASE_PATH_KEY) or DEFAULT_BASE_PATH

    @property
    def user_data_dir(self) -> Optional[str]:
        return self.get(USER_DATA_DIR_KEY)

    @property
    def code_command(self) -> str:
        return self.get(CODE_COMMAND_KEY) or "code"


config = Config()
