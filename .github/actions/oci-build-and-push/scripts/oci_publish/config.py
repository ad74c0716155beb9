"""Configuration model and loader for the publish pipeline.

Action inputs arrive as strings and GitHub exports unset optional inputs as
empty strings, so every optional value is normalised to ``None`` when blank.
Each optional publish step is enabled by the presence of its input:
``dockerfile`` for the image, ``charts_dir`` for the Helm chart and
``flux_dir`` for the Flux bundle.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path

from .errors import ConfigError

__all__ = [
    "DEFAULT_WORK_DIR",
    "PublishConfig",
    "load_config",
]

DEFAULT_WORK_DIR = "cicd-oci-build"
_OCI_SCHEME = "oci://"


@dataclasses.dataclass(slots=True, frozen=True)
class PublishConfig:
    """Concrete configuration produced by :func:`load_config`."""

    registry: str
    version: str
    app_name: str
    work_dir: Path
    dockerfile: Path | None = None
    build_context: Path = Path()
    charts_dir: Path | None = None
    flux_dir: Path | None = None
    flux_tag: str | None = None
    dry_run: bool = False

    @property
    def image_ref(self) -> str:
        """Return the ``<registry>/images/<app>:<version>`` image reference."""
        return f"{self.registry}/images/{self.app_name}:{self.version}"

    @property
    def chart_path(self) -> Path | None:
        """Return the chart source directory, ``<charts_dir>/<app_name>``."""
        if self.charts_dir is None:
            return None
        return self.charts_dir / self.app_name

    @property
    def chart_repository(self) -> str:
        """Return the OCI repository charts are pushed to."""
        return f"{_OCI_SCHEME}{self.registry}/charts"

    @property
    def flux_repository(self) -> str:
        """Return the OCI repository Flux bundles are pushed to."""
        return f"{_OCI_SCHEME}{self.registry}/flux/{self.app_name}"

    @property
    def flux_artifact(self) -> str:
        """Return the version-tagged reference of the Flux bundle."""
        return f"{self.flux_repository}:{self.version}"

    @property
    def chart_work_dir(self) -> Path:
        """Directory receiving packaged charts."""
        return self.work_dir / "chart"

    @property
    def flux_work_dir(self) -> Path:
        """Directory holding staged Flux bundles."""
        return self.work_dir / "flux"

    @property
    def flux_bundle_dir(self) -> Path:
        """Directory the bundle for this version is staged in."""
        return self.flux_work_dir / f"{self.app_name}-{self.version}"


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _normalise_registry(registry: str) -> str:
    """Drop an ``oci://`` scheme and trailing slashes from *registry*."""
    return registry.removeprefix(_OCI_SCHEME).rstrip("/")


def _require_inputs(values: dict[str, str | None]) -> None:
    """Raise :class:`ConfigError` naming every missing required input."""
    if missing := [name for name, value in values.items() if not value]:
        joined = ", ".join(missing)
        msg = f"Missing required input(s): {joined}"
        raise ConfigError(msg)


def _existing(path_text: str | None, description: str, *, directory: bool) -> Path | None:
    """Return ``Path(path_text)`` after checking it exists with the right kind."""
    if path_text is None:
        return None
    path = Path(path_text).expanduser()
    if directory and not path.is_dir():
        msg = f"{description} is not a directory: {path}"
        raise ConfigError(msg)
    if not directory and not path.is_file():
        msg = f"{description} not found: {path}"
        raise ConfigError(msg)
    return path


def load_config(  # noqa: PLR0913 - mirrors the action inputs
    *,
    registry: str | None,
    version: str | None,
    app_name: str | None,
    dockerfile: str | None = None,
    build_context: str | None = None,
    charts_dir: str | None = None,
    flux_dir: str | None = None,
    flux_tag: str | None = None,
    work_dir: str | None = None,
    dry_run: bool = False,
) -> PublishConfig:
    """Validate raw action inputs and return a :class:`PublishConfig`.

    Parameters
    ----------
    registry, version, app_name
        Required inputs. Blank values count as missing.
    dockerfile
        Dockerfile path; enables the image step.
    build_context
        Docker build context, ``.`` by default.
    charts_dir
        Parent directory holding ``<app_name>/Chart.yaml``; enables the
        chart step.
    flux_dir
        Directory of Flux manifests; enables the bundle step.
    flux_tag
        Extra tag applied to the pushed bundle on top of ``version``.
    work_dir
        Working build directory, ``cicd-oci-build`` by default.
    dry_run
        Echo commands instead of running them.

    Raises
    ------
    ConfigError
        Raised when required inputs are missing or configured paths do not
        exist.
    """
    required = {
        "registry": _blank_to_none(registry),
        "version": _blank_to_none(version),
        "app-name": _blank_to_none(app_name),
    }
    _require_inputs(required)
    resolved_registry = _normalise_registry(str(required["registry"]))
    if not resolved_registry:
        msg = f"Invalid registry address: {registry!r}"
        raise ConfigError(msg)

    resolved_app = str(required["app-name"])
    resolved_charts = _existing(
        _blank_to_none(charts_dir), "Chart parent directory", directory=True
    )
    if resolved_charts is not None:
        _existing(str(resolved_charts / resolved_app), "Chart directory", directory=True)

    resolved_dockerfile = _existing(
        _blank_to_none(dockerfile), "Dockerfile", directory=False
    )
    context_text = _blank_to_none(build_context) or "."
    if resolved_dockerfile is not None:
        _existing(context_text, "Build context", directory=True)

    return PublishConfig(
        registry=resolved_registry,
        version=str(required["version"]),
        app_name=resolved_app,
        work_dir=Path(_blank_to_none(work_dir) or DEFAULT_WORK_DIR),
        dockerfile=resolved_dockerfile,
        build_context=Path(context_text),
        charts_dir=resolved_charts,
        flux_dir=_existing(_blank_to_none(flux_dir), "Flux directory", directory=True),
        flux_tag=_blank_to_none(flux_tag),
        dry_run=dry_run,
    )
