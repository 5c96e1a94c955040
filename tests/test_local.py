"""Tests for the local user directory and the extension launcher."""

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from pysettingsync.exceptions import ConfigError, ExtensionInstallError
from pysettingsync.local import (
    ExtensionManager,
    LocalUserStore,
    default_user_data_dir,
    parse_extension_list,
    resolve_user_dir,
    user_data_dir_from_argv,
)
from pysettingsync.models import ExtensionInfo


class TestUserDirResolution:
    def test_argv_separate_value(self):
        assert user_data_dir_from_argv(["code", "--user-data-dir", "/x"]) == "/x"

    def test_argv_equals_form(self):
        assert user_data_dir_from_argv(["--user-data-dir=/y"]) == "/y"

    def test_argv_absent(self):
        assert user_data_dir_from_argv(["--verbose"]) is None
        assert user_data_dir_from_argv(["--user-data-dir"]) is None

    def test_default_linux_uses_xdg(self):
        path = default_user_data_dir("linux", {"XDG_CONFIG_HOME": "/cfg"})
        assert path == Path("/cfg") / "Code"

    def test_default_linux_without_xdg(self):
        assert default_user_data_dir("linux", {}) == Path.home() / ".config" / "Code"

    def test_default_macos(self):
        assert default_user_data_dir("darwin", {}) == (
            Path.home() / "Library" / "Application Support" / "Code"
        )

    def test_default_windows(self):
        path = default_user_data_dir("win32", {"APPDATA": "/appdata"})
        assert path == Path("/appdata") / "Code"

    def test_override_wins(self):
        path = resolve_user_dir("/custom", argv=["--user-data-dir", "/argv"])
        assert path == Path("/custom") / "User"

    def test_argv_before_default(self):
        path = resolve_user_dir(None, argv=["--user-data-dir", "/argv"])
        assert path == Path("/argv") / "User"

    def test_blank_override_ignored(self):
        path = resolve_user_dir("  ", argv=[], platform="darwin")
        assert path.name == "User"
        assert path.parent.name == "Code"


class TestLocalUserStore:
    def test_read_missing_file(self, user_dir):
        store = LocalUserStore(user_dir)
        assert store.read_text_if_exists(store.settings_path) is None

    def test_write_creates_parents(self, tmp_path):
        store = LocalUserStore(tmp_path / "new" / "User")
        store.write_text(store.snippets_dir / "a.json", "{}")
        assert (tmp_path / "new" / "User" / "snippets" / "a.json").read_text() == "{}"

    def test_read_keeps_line_endings(self, user_dir):
        store = LocalUserStore(user_dir)
        store.settings_path.write_bytes(b'{\r\n"a": 1}')
        assert store.read_text_if_exists(store.settings_path) == '{\r\n"a": 1}'

    def test_read_non_utf8_raises_config_error(self, user_dir):
        store = LocalUserStore(user_dir)
        store.settings_path.write_bytes(b'{"a": "\xe9"}')

        with pytest.raises(ConfigError, match="settings.json is not valid UTF-8"):
            store.read_text_if_exists(store.settings_path)

    def test_list_snippet_files(self, user_dir):
        store = LocalUserStore(user_dir)
        assert store.list_snippet_files() == []

        store.snippets_dir.mkdir()
        (store.snippets_dir / "z.json").write_text("{}")
        (store.snippets_dir / "a.code-snippets").write_text("{}")
        (store.snippets_dir / "sub").mkdir()

        assert [p.name for p in store.list_snippet_files()] == [
            "a.code-snippets",
            "z.json",
        ]


class TestParseExtensionList:
    def test_parses_versions(self):
        output = "ms-python.python@2024.1.0\nvue.volar@2.0.1\n\n"
        assert parse_extension_list(output) == [
            ExtensionInfo(id="ms-python.python", version="2024.1.0"),
            ExtensionInfo(id="vue.volar", version="2.0.1"),
        ]

    def test_without_versions_and_noise(self):
        output = "Extensions installed on WSL:\nms-python.python\nnoise\n"
        assert parse_extension_list(output) == [
            ExtensionInfo(id="ms-python.python", version=None),
        ]


class TestExtensionManager:
    @pytest.fixture(autouse=True)
    def _which(self):
        with patch("pysettingsync.local.shutil.which", return_value="/usr/bin/code"):
            yield

    @patch("pysettingsync.local.subprocess.run")
    def test_list_installed(self, mock_run):
        mock_run.return_value = Mock(stdout="a.b@1.0\n", returncode=0)

        assert ExtensionManager().list_installed() == [ExtensionInfo("a.b", "1.0")]
        args = mock_run.call_args[0][0]
        assert args == ["/usr/bin/code", "--list-extensions", "--show-versions"]

    @patch("pysettingsync.local.subprocess.run")
    def test_list_installed_failure(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(1, "code")
        with pytest.raises(ConfigError, match="Could not list installed extensions"):
            ExtensionManager().list_installed()

    def test_missing_launcher(self):
        with patch("pysettingsync.local.shutil.which", return_value=None):
            with pytest.raises(ConfigError, match="not found on PATH"):
                ExtensionManager("codium").list_installed()
            with pytest.raises(ExtensionInstallError) as exc_info:
                ExtensionManager("codium").install("a.b")
        assert exc_info.value.extension_id == "a.b"

    @patch("pysettingsync.local.subprocess.run")
    def test_install_success(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
        ExtensionManager().install("vue.volar")
        args = mock_run.call_args[0][0]
        assert args == ["/usr/bin/code", "--install-extension", "vue.volar"]

    @patch("pysettingsync.local.subprocess.run")
    def test_install_nonzero_exit(self, mock_run):
        mock_run.return_value = Mock(
            returncode=1, stdout="", stderr="Extension 'x.y' not found.\n"
        )
        with pytest.raises(ExtensionInstallError) as exc_info:
            ExtensionManager().install("x.y")
        assert exc_info.value.reason == "Extension 'x.y' not found."

    @patch("pysettingsync.local.subprocess.run")
    def test_install_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired("code", 300)
        with pytest.raises(ExtensionInstallError, match="x.y"):
            ExtensionManager().install("x.y")

    @patch("pysettingsync.local.subprocess.run")
    def test_editor_version(self, mock_run):
        mock_run.return_value = Mock(stdout="1.95.0\nabc123\nx64\n", returncode=0)
        assert ExtensionManager().editor_version() == "1.95.0"

    @patch("pysettingsync.local.subprocess.run")
    def test_editor_version_unavailable(self, mock_run):
        mock_run.side_effect = OSError("boom")
        assert ExtensionManager().editor_version() is None
