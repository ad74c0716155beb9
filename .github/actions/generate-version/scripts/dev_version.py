"""Development version strings derived from git state.

A development version looks like::

    v1.2.0-DEV.20250101120000.main.5.sha-abcd123

The base tag is the nearest release tag (``v0.0.0`` when the history has
none). The pre-release part starts with the literal ``DEV`` so consumers can
tell development builds from real pre-releases such as ``-rc.1``. The
fixed-width timestamp comes next so that, under semver precedence, builds of
the same branch order by build time regardless of commit count or hash. The
short hash carries a ``sha-`` prefix so an all-digit hash such as ``0123456``
is never read as a numeric identifier with a leading zero.

Everything here is pure: :class:`VersionInputs` holds the git and clock
readings, gathered once by the entry point.
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ
from datetime import datetime

__all__ = [
    "DETACHED_BRANCH_SLUG",
    "DEV_MARKER",
    "FALLBACK_TAG",
    "TIMESTAMP_FORMAT",
    "DevVersion",
    "VersionInputs",
    "format_timestamp",
    "generate_dev_version",
    "is_dev_version",
    "slugify_branch",
]

FALLBACK_TAG = "v0.0.0"
DEV_MARKER = "DEV"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
DETACHED_BRANCH_SLUG = "detached"

_SLUG_INVALID = re.compile(r"[^A-Za-z0-9-]")
_RELEASE_TAG = re.compile(r"^v(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)$")
_DEV_VERSION = re.compile(
    r"^(?P<base_tag>v\d+\.\d+\.\d+)"
    rf"-{DEV_MARKER}"
    r"\.(?P<timestamp>\d{14})"
    r"\.(?P<branch_slug>[A-Za-z0-9-]*)"
    r"\.(?P<commits>\d+)"
    r"\.sha-(?P<short_sha>[0-9a-fA-F]+)$"
)


def slugify_branch(branch: str) -> str:
    """Replace every character outside ``[A-Za-z0-9-]`` with ``-``.

    >>> slugify_branch("feat/cool.thing")
    'feat-cool-thing'
    """
    return _SLUG_INVALID.sub("-", branch)


def format_timestamp(moment: datetime) -> str:
    """Format *moment* as ``YYYYMMDDHHMMSS`` with second resolution."""
    return moment.strftime(TIMESTAMP_FORMAT)


@dc.dataclass(frozen=True, slots=True)
class VersionInputs:
    """Git and clock readings a development version is computed from.

    Attributes
    ----------
    current_branch
        Checked-out branch name; ``""`` for a detached ``HEAD``.
    last_tag
        Nearest reachable release tag, or ``None`` when there is none.
    commits_since_tag
        Commits in ``last_tag..HEAD``. Ignored when ``last_tag`` is ``None``.
    short_sha
        Abbreviated hash of ``HEAD``.
    now
        Wall-clock time of the build.
    """

    current_branch: str
    last_tag: str | None
    commits_since_tag: int
    short_sha: str
    now: datetime

    def __post_init__(self) -> None:
        if not self.short_sha:
            msg = "short_sha is empty; the repository has no commits"
            raise ValueError(msg)
        if self.commits_since_tag < 0:
            msg = f"commits_since_tag must be non-negative, got {self.commits_since_tag}"
            raise ValueError(msg)

    @property
    def has_tag(self) -> bool:
        """Return ``True`` when a release tag was found."""
        return bool(self.last_tag)


@dc.dataclass(frozen=True, slots=True)
class DevVersion:
    """The parts of a rendered development version."""

    base_tag: str
    timestamp: str
    branch_slug: str
    commits_since_tag: int
    short_sha: str

    @classmethod
    def from_inputs(cls, inputs: VersionInputs) -> DevVersion:
        """Derive the version parts from *inputs*."""
        if inputs.has_tag:
            base_tag = typ.cast("str", inputs.last_tag)
            commits = inputs.commits_since_tag
        else:
            base_tag = FALLBACK_TAG
            commits = 0
        return cls(
            base_tag=base_tag,
            timestamp=format_timestamp(inputs.now),
            branch_slug=slugify_branch(inputs.current_branch) or DETACHED_BRANCH_SLUG,
            commits_since_tag=commits,
            short_sha=inputs.short_sha,
        )

    @classmethod
    def parse(cls, text: str) -> DevVersion:
        """Parse a rendered development version.

        Raises
        ------
        ValueError
            If *text* is not a development version.
        """
        match = _DEV_VERSION.fullmatch(text.strip())
        if match is None:
            msg = f"Not a development version: {text!r}"
            raise ValueError(msg)
        return cls(
            base_tag=match["base_tag"],
            timestamp=match["timestamp"],
            branch_slug=match["branch_slug"],
            commits_since_tag=int(match["commits"]),
            short_sha=match["short_sha"],
        )

    @property
    def prerelease(self) -> tuple[str, ...]:
        """Return the dot-separated pre-release identifiers."""
        return (
            DEV_MARKER,
            self.timestamp,
            self.branch_slug,
            str(self.commits_since_tag),
            f"sha-{self.short_sha}",
        )

    def render(self) -> str:
        """Return the version string."""
        return f"{self.base_tag}-{'.'.join(self.prerelease)}"

    def __str__(self) -> str:
        return self.render()

    def sort_key(self) -> tuple[typ.Any, ...]:
        """Return a key ordering versions by semver precedence.

        Numeric identifiers compare numerically and rank below alphanumeric
        ones, as semver 2.0.0 section 11 requires.
        """
        release = _RELEASE_TAG.fullmatch(self.base_tag)
        if release is None:
            msg = f"Base tag is not a release tag: {self.base_tag!r}"
            raise ValueError(msg)
        core = (int(release["major"]), int(release["minor"]), int(release["patch"]))
        identifiers = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease
        )
        return (*core, identifiers)


def is_dev_version(text: str) -> bool:
    """Return ``True`` when *text* is a rendered development version."""
    return _DEV_VERSION.fullmatch(text.strip()) is not None


def generate_dev_version(inputs: VersionInputs) -> str:
    """Render the development version for *inputs*.

    >>> from datetime import datetime
    >>> generate_dev_version(
    ...     VersionInputs(
    ...         current_branch="main",
    ...         last_tag="v1.2.0",
    ...         commits_since_tag=5,
    ...         short_sha="abcd123",
    ...         now=datetime(2025, 1, 1, 12, 0, 0),
    ...     )
    ... )
    'v1.2.0-DEV.20250101120000.main.5.sha-abcd123'
    """
    return DevVersion.from_inputs(inputs).render()
