"""Shared fixtures."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from pysettingsync.local import ExtensionManager, LocalUserStore
from pysettingsync.models import ExtensionInfo
from pysettingsync.providers import create_provider
from pysettingsync.session import SyncSession
from pysettingsync.state import SessionStateManager
from pysettingsync.sync import SyncEngine
from tests.fakes import FakeRepoServer

REPO = "vscode-settings-sync"


def make_provider(server: FakeRepoServer, token: str = "tok"):
    """Create a provider of the server's flavor talking to the fake."""
    return create_provider(
        server.flavor,
        token,
        transport=server.transport(),
        max_retries=0,
        retry_delay=0,
    )


@pytest.fixture(params=["github", "gitee"])
def server(request):
    """A fake backend of each flavor."""
    return FakeRepoServer(request.param)


@pytest.fixture
def github_server():
    return FakeRepoServer("github")


@pytest.fixture
def gitee_server():
    return FakeRepoServer("gitee")


@pytest.fixture
def state_manager(tmp_path):
    return SessionStateManager(tmp_path / "config")


@pytest.fixture
def session(server, state_manager):
    """A session against the parametrized fake backend."""
    sess = SyncSession(provider=make_provider(server), state=state_manager)
    yield sess
    sess.close()


@pytest.fixture
def user_dir(tmp_path) -> Path:
    path = tmp_path / "Code" / "User"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def extension_manager():
    """A mock extension manager with two installed extensions."""
    manager = Mock(spec=ExtensionManager)
    manager.list_installed.return_value = [
        ExtensionInfo(id="vue.volar", version="2.0.1"),
        ExtensionInfo(id="ms-python.python", version="2024.1.0"),
    ]
    return manager


@pytest.fixture
def engine(session, user_dir, extension_manager):
    return SyncEngine(
        session,
        LocalUserStore(user_dir),
        extension_manager,
        vscode_version="1.95.0",
    )
