"""Pytest configuration shared by the action tests."""

from __future__ import annotations

import shutil
import sys
import typing as typ
from pathlib import Path

import pytest
from plumbum import local

CMD_MOX_UNSUPPORTED = pytest.mark.skipif(
    sys.platform == "win32", reason="cmd-mox does not support Windows"
)
HAS_GIT = shutil.which("git") is not None

REQUIRES_GIT = pytest.mark.skipif(not HAS_GIT, reason="git CLI not installed")

_GITHUB_ENV_KEYS = (
    "GITHUB_OUTPUT",
    "GITHUB_HEAD_REF",
    "GITHUB_REF_NAME",
    "GITHUB_REF_TYPE",
)

sys.modules.setdefault("shared_actions_conftest", sys.modules[__name__])


class CmdMoxEnvironment(typ.Protocol):
    """Subset of :class:`cmd_mox.EnvironmentManager` used in tests."""

    shim_dir: Path | None
    socket_path: Path | None


class CmdMox(typ.Protocol):
    """Typed façade for the cmd-mox pytest fixture used in tests."""

    environment: CmdMoxEnvironment
    journal: typ.Sequence[typ.Any]

    def stub(self, command: str) -> typ.Any:  # noqa: ANN401
        """Register a stubbed command double."""
        ...

    def replay(self) -> None:
        """Activate the recorded doubles."""
        ...

    def verify(self) -> None:
        """Assert that recorded expectations were satisfied."""
        ...


def shim_path(cmd_mox: CmdMox, command: str) -> str:
    """Return the shim path for ``command`` ensuring the environment is ready."""
    shim_dir = cmd_mox.environment.shim_dir
    if shim_dir is None:  # pragma: no cover - defensive guard
        msg = "cmd-mox shim directory is unavailable"
        raise RuntimeError(msg)
    return str(shim_dir / command)


class GitRepo:
    """Scratch git repository driven through the real ``git`` CLI."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._git = local["git"]

    def git(self, *args: str) -> str:
        """Run ``git`` inside the repository with a fixed identity."""
        identity = [
            "-c",
            "user.name=Release Bot",
            "-c",
            "user.email=release-bot@example.com",
            "-c",
            "commit.gpgsign=false",
            "-c",
            "tag.gpgsign=false",
        ]
        return self._git["-C", str(self.root), *identity, *args]().strip()

    def commit(self, message: str) -> str:
        """Create an empty commit and return its full hash."""
        self.git("commit", "--allow-empty", "-q", "-m", message)
        return self.git("rev-parse", "HEAD")

    def tag(self, name: str) -> None:
        """Create a lightweight tag at ``HEAD``."""
        self.git("tag", name)


@pytest.fixture(autouse=True)
def _isolate_github_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the runner's own GitHub variables out of the tests."""
    for key in _GITHUB_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    """Return an initialised repository on branch ``main`` with no commits."""
    if not HAS_GIT:
        pytest.skip("git CLI not installed")
    root = tmp_path / "repo"
    root.mkdir()
    repo = GitRepo(root)
    repo.git("init", "-q")
    repo.git("symbolic-ref", "HEAD", "refs/heads/main")
    return repo


@pytest.fixture
def gh_output_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``GITHUB_OUTPUT`` at a file within ``tmp_path``."""
    output_file = tmp_path / "github.out"
    monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))
    return output_file


def read_output(path: Path, key: str) -> list[str]:
    """Return every value recorded for ``key`` in a ``GITHUB_OUTPUT`` file."""
    if not path.exists():
        return []
    return [
        line.split("=", 1)[1]
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.startswith(f"{key}=")
    ]


if sys.platform != "win32":  # pragma: win32 no cover - windows lacks cmd-mox
    pytest_plugins = ("cmd_mox.pytest_plugin",)
else:

    @pytest.fixture
    def cmd_mox() -> typ.NoReturn:  # pragma: win32 no cover
        """Skip tests that rely on cmd-mox on Windows."""
        pytest.skip("cmd-mox does not support Windows")
        unreachable = "unreachable"
        raise RuntimeError(unreachable)
