"""Fixtures for the OCI build-and-push tests."""

from __future__ import annotations

import importlib.util
import sys
import typing as typ
from pathlib import Path

import pytest
from plumbum.commands.processes import ProcessExecutionError
from syspath_hack import prepend_to_syspath

SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"
prepend_to_syspath(SCRIPTS_DIR)

from oci_publish import REQUIRED_TOOLS, PublishConfig, load_config  # noqa: E402

from git_utils import GitMetadata  # noqa: E402

if typ.TYPE_CHECKING:
    from types import ModuleType

APP_NAME = "demo"
REGISTRY = "registry.example.com/acme"
VERSION = "v1.2.0-DEV.20250101120000.main.5.sha-abcd123"
LONG_SHA = "abcd1234abcd1234abcd1234abcd1234abcd1234"
SHORT_SHA = LONG_SHA[:7]

sys.modules.setdefault("oci_publish_conftest", sys.modules[__name__])


class RecordingRunner:
    """Stand-in for :func:`cmd_utils.run_cmd` that records each argv.

    ``failures`` maps a ``"<tool> <subcommand>"`` prefix to the exit status
    the fake tool reports. ``helm package`` writes an empty archive into its
    destination as the real tool would.
    """

    def __init__(self, failures: dict[str, int] | None = None) -> None:
        self.failures = failures or {}
        self.calls: list[tuple[str, ...]] = []
        self.methods: list[str] = []

    def __call__(self, command: typ.Any, *, method: str = "call", **_: object) -> None:  # noqa: ANN401
        argv = [str(part) for part in command.formulate()]
        argv[0] = Path(argv[0]).name
        self.calls.append(tuple(argv))
        self.methods.append(method)
        key = " ".join(argv[:2])
        if key in self.failures:
            raise ProcessExecutionError(argv, self.failures[key], "", "")
        if key == "helm package":
            destination = Path(argv[argv.index("--destination") + 1])
            version = argv[argv.index("--version") + 1]
            chart = Path(argv[2]).name
            (destination / f"{chart}-{version}.tgz").write_bytes(b"")

    def tools_called(self) -> list[str]:
        """Return ``<tool> <subcommand>`` for every recorded call."""
        return [" ".join(call[:2]) for call in self.calls]


@pytest.fixture
def tool_paths() -> dict[str, str]:
    """Return fake absolute paths for every required tool."""
    return {tool: f"/opt/tools/{tool}" for tool in REQUIRED_TOOLS}


@pytest.fixture
def recorder() -> RecordingRunner:
    """Return a fresh :class:`RecordingRunner`."""
    return RecordingRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a project with a Dockerfile, a chart and Flux manifests."""
    (tmp_path / "Dockerfile").write_text("FROM scratch\n", encoding="utf-8")
    chart = tmp_path / "charts" / APP_NAME
    (chart / "templates").mkdir(parents=True)
    (chart / "Chart.yaml").write_text(
        f"apiVersion: v2\nname: {APP_NAME}\nversion: 0.1.0\n", encoding="utf-8"
    )
    flux = tmp_path / "deploy"
    flux.mkdir()
    (flux / "kustomization.yaml").write_text(
        "apiVersion: kustomize.config.k8s.io/v1beta1\nkind: Kustomization\n",
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def metadata() -> GitMetadata:
    """Return fixed git metadata for Flux bundles."""
    return GitMetadata(
        branch="main",
        short_sha=SHORT_SHA,
        long_sha=LONG_SHA,
        remote_url="https://github.com/acme/demo.git",
    )


def make_config(project: Path, **overrides: typ.Any) -> PublishConfig:  # noqa: ANN401
    """Build a configuration for ``project`` with every step enabled."""
    values: dict[str, typ.Any] = {
        "registry": REGISTRY,
        "version": VERSION,
        "app_name": APP_NAME,
        "dockerfile": str(project / "Dockerfile"),
        "build_context": str(project),
        "charts_dir": str(project / "charts"),
        "flux_dir": str(project / "deploy"),
        "work_dir": str(project / "build"),
    }
    values.update(overrides)
    return load_config(**values)


@pytest.fixture
def build_and_push_module(monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    """Load and return the ``build_and_push`` entry point."""
    spec = importlib.util.spec_from_file_location(
        "build_and_push", SCRIPTS_DIR / "build_and_push.py"
    )
    if spec is None or spec.loader is None:  # pragma: no cover - defensive guard
        message = "Unable to load build_and_push for testing"
        raise RuntimeError(message)
    module = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, spec.name, module)
    spec.loader.exec_module(module)
    return module
