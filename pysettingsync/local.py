"""Local side of the sync: the VS Code user directory and the ``code`` CLI."""

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence

from .exceptions import ConfigError, ExtensionInstallError
from .models import ExtensionInfo

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"
KEYBINDINGS_FILE = "keybindings.json"
SNIPPETS_DIR = "snippets"


def user_data_dir_from_argv(argv: Sequence[str]) -> Optional[str]:
    """Return the value of a ``--user-data-dir`` argument, if present."""
    for i, arg in enumerate(argv):
        if arg == "--user-data-dir" and i + 1 < len(argv) and argv[i + 1]:
            return argv[i + 1]
        if arg.startswith("--user-data-dir="):
            return arg.split("=", 1)[1] or None
    return None


def default_user_data_dir(
    platform: Optional[str] = None, environ: Optional[dict[str, str]] = None
) -> Path:
    """Return the stable-channel VS Code user data directory for a platform."""
    platform = platform or sys.platform
    env = os.environ if environ is None else environ
    home = Path.home()
    if platform == "darwin":
        return home / "Library" / "Application Support" / "Code"
    if platform == "win32":
        appdata = env.get("APPDATA")
        return (Path(appdata) if appdata else home / "AppData" / "Roaming") / "Code"
    xdg = env.get("XDG_CONFIG_HOME")
    return (Path(xdg) if xdg else home / ".config") / "Code"


def resolve_user_dir(
    override: Optional[str] = None,
    argv: Optional[Sequence[str]] = None,
    platform: Optional[str] = None,
) -> Path:
    """Locate the ``User`` directory holding settings, keybindings and snippets.

    Order: explicit override, ``--user-data-dir`` on the command line, then
    the platform default.
    """
    override = (override or "").strip()
    user_data_dir = (
        override
        or user_data_dir_from_argv(sys.argv if argv is None else argv)
        or str(default_user_data_dir(platform))
    )
    return Path(user_data_dir).expanduser() / "User"


class LocalUserStore:
    """Reads and writes configuration files in the VS Code ``User`` directory."""

    def __init__(self, user_dir: Path):
        self.user_dir = Path(user_dir)

    @property
    def settings_path(self) -> Path:
        return self.user_dir / SETTINGS_FILE

    @property
    def keybindings_path(self) -> Path:
        return self.user_dir / KEYBINDINGS_FILE

    @property
    def snippets_dir(self) -> Path:
        return self.user_dir / SNIPPETS_DIR

    @staticmethod
    def read_text_if_exists(path: Path) -> Optional[str]:
        """Read a UTF-8 text file, or return None if it does not exist.

        Raises:
            ConfigError: If the file is not valid UTF-8 text
        """
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise ConfigError(f"{path} is not valid UTF-8 text: {e.reason}") from e

    @staticmethod
    def write_text(path: Path, content: str) -> None:
        """Overwrite a UTF-8 text file, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    @staticmethod
    def ensure_dir(path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def list_snippet_files(self) -> list[Path]:
        """Return the snippet files, sorted by name; empty if none exist."""
        if not self.snippets_dir.is_dir():
            return []
        return sorted(
            (p for p in self.snippets_dir.iterdir() if p.is_file()),
            key=lambda p: p.name,
        )


class ExtensionManager:
    """Lists and installs extensions through the ``code`` command line."""

    def __init__(self, code_command: str = "code", timeout: float = 300.0):
        self.code_command = code_command
        self.timeout = timeout

    def _resolve_command(self) -> str:
        resolved = shutil.which(self.code_command)
        if resolved is None:
            raise FileNotFoundError(
                f"'{self.code_command}' not found on PATH; set "
                f"PYSETTINGSYNC_CODE_COMMAND to the VS Code launcher"
            )
        return resolved

    def list_installed(self) -> list[ExtensionInfo]:
        """Return installed extensions as reported by ``--list-extensions``.

        The launcher never reports built-in extensions.

        Raises:
            ConfigError: If the launcher cannot be found or fails
        """
        try:
            result = subprocess.run(
                [self._resolve_command(), "--list-extensions", "--show-versions"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except FileNotFoundError as e:
            raise ConfigError(str(e)) from e
        except (OSError, subprocess.SubprocessError) as e:
            raise ConfigError(f"Could not list installed extensions: {e}") from e
        return parse_extension_list(result.stdout)

    def editor_version(self) -> Optional[str]:
        """Return the editor version from ``code --version``, if available."""
        try:
            result = subprocess.run(
                [self._resolve_command(), "--version"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Could not determine editor version: {e}")
            return None
        lines = result.stdout.splitlines()
        return lines[0].strip() if lines and lines[0].strip() else None

    def install(self, extension_id: str) -> None:
        """Install one extension by identifier.

        Raises:
            ExtensionInstallError: If the launcher is missing or the install fails
        """
        try:
            command = self._resolve_command()
        except FileNotFoundError as e:
            raise ExtensionInstallError(extension_id, str(e)) from e

        try:
            result = subprocess.run(
                [command, "--install-extension", extension_id],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ExtensionInstallError(extension_id, str(e)) from e

        if result.returncode != 0:
            reason = (result.stderr or result.stdout).strip() or (
                f"exit code {result.returncode}"
            )
            raise ExtensionInstallError(extension_id, reason)
        logger.debug(f"Installed extension {extension_id}")


def parse_extension_list(output: str) -> list[ExtensionInfo]:
    """Parse ``publisher.name@version`` lines from the ``code`` launcher.

    Lines without a version yield ``version=None``; blank lines and noise
    without a publisher prefix are skipped.
    """
    extensions: list[ExtensionInfo] = []
    for line in output.splitlines():
        line = line.strip()
        if not line or "." not in line:
            continue
        ext_id, _, version = line.partition("@")
        extensions.append(ExtensionInfo(id=ext_id, version=version or None))
    return extensions
