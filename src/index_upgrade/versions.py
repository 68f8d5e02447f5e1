"""Index format versions and the hop chains connecting them.

An index format is identified by an :class:`IndexVersion`. A
:class:`VersionLattice` lists the single-step upgrades that installed tools
can perform, and :func:`build_plan` turns a (source, target) pair into the
ordered :class:`MigrationPlan` the orchestrator executes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from packaging.version import InvalidVersion, Version

from .errors import NoMigrationPath

__all__ = [
    "IndexVersion",
    "UpgradeHop",
    "MigrationPlan",
    "VersionLattice",
    "DEFAULT_LATTICE",
    "build_plan",
]

_SOLR_PREFIX = re.compile(r"^solr[-_ ]?", re.IGNORECASE)
_INDEX_DIR_NAME = re.compile(r"^solr(?P<major>\d+)_schema_[\w.]+$", re.IGNORECASE)


@dataclass(frozen=True, order=True)
class IndexVersion:
    """Index format version, totally ordered by ``(major, minor)``."""

    major: int
    minor: int = 0

    def __post_init__(self) -> None:
        if self.major < 0 or self.minor < 0:
            raise ValueError(f"Index version components must be non-negative: {self.major}.{self.minor}")

    @classmethod
    def parse(cls, text: str) -> "IndexVersion":
        """Parse ``"5"``, ``"5.0"``, ``"5.5.1"`` or ``"solr5"`` into a version.

        Components past the minor version are ignored.

        Raises:
            ValueError: If the text is not a plain release version.
        """
        raw = _SOLR_PREFIX.sub("", text.strip())
        try:
            version = Version(raw)
        except InvalidVersion as exc:
            raise ValueError(f"Invalid index version: {text!r}") from exc
        if version.is_prerelease or version.is_postrelease or version.local or version.epoch:
            raise ValueError(f"Invalid index version: {text!r}")

        release = version.release
        minor = release[1] if len(release) > 1 else 0
        return cls(release[0], minor)

    @classmethod
    def from_directory_name(cls, name: str) -> "IndexVersion | None":
        """Infer the version from a ``solr<MAJOR>_schema_<X.Y>`` directory name."""
        match = _INDEX_DIR_NAME.match(name)
        if match is None:
            return None
        return cls(int(match.group("major")))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(frozen=True)
class UpgradeHop:
    """A single version step performed by exactly one tool."""

    from_version: IndexVersion
    to_version: IndexVersion
    tool_id: str

    @property
    def stage_name(self) -> str:
        """Deterministic slug used for log directories and messages."""
        return f"solr{_version_slug(self.from_version)}-to-solr{_version_slug(self.to_version)}"

    def to_dict(self) -> dict[str, str]:
        return {
            "from_version": str(self.from_version),
            "to_version": str(self.to_version),
            "tool_id": self.tool_id,
            "stage": self.stage_name,
        }


def _version_slug(version: IndexVersion) -> str:
    if version.minor == 0:
        return str(version.major)
    return f"{version.major}.{version.minor}"


@dataclass(frozen=True)
class MigrationPlan:
    """Ordered, contiguous chain of hops from ``source`` to ``target``.

    Only the first hop of a multi-hop plan is best-effort. The last hop is
    always mandatory, so the single hop of a one-hop plan (such as 5 -> 6)
    aborts the migration when it fails. See :meth:`is_mandatory`.
    """

    source: IndexVersion
    target: IndexVersion
    hops: tuple[UpgradeHop, ...] = ()

    def __post_init__(self) -> None:
        if not self.hops:
            if self.source != self.target:
                raise ValueError("An empty plan requires source == target")
            return
        if self.hops[0].from_version != self.source:
            raise ValueError("First hop does not start at the source version")
        if self.hops[-1].to_version != self.target:
            raise ValueError("Last hop does not end at the target version")
        for previous, current in zip(self.hops, self.hops[1:]):
            if previous.to_version != current.from_version:
                raise ValueError(f"Hops {previous.stage_name} and {current.stage_name} do not chain")

    def __iter__(self) -> Iterator[UpgradeHop]:
        return iter(self.hops)

    def __len__(self) -> int:
        return len(self.hops)

    @property
    def is_empty(self) -> bool:
        return not self.hops

    def is_mandatory(self, position: int) -> bool:
        """Whether a failure of the hop at *position* aborts the migration.

        The first hop is best-effort when later hops follow it; the last hop
        is always mandatory.
        """
        return position > 0 or position == len(self.hops) - 1

    def to_dict(self) -> dict[str, object]:
        return {
            "source": str(self.source),
            "target": str(self.target),
            "hops": [
                {**hop.to_dict(), "mandatory": self.is_mandatory(position)}
                for position, hop in enumerate(self.hops)
            ],
        }


class VersionLattice:
    """The supported single-step upgrades, in ascending version order."""

    def __init__(self, hops: tuple[UpgradeHop, ...] | list[UpgradeHop]):
        hops = tuple(hops)
        for hop in hops:
            if hop.to_version <= hop.from_version:
                raise ValueError(f"Hop {hop.stage_name} does not move forward")
        for previous, current in zip(hops, hops[1:]):
            if previous.to_version != current.from_version:
                raise ValueError(
                    f"Lattice is not contiguous between {previous.stage_name} and {current.stage_name}"
                )
        self._hops = hops

    @property
    def hops(self) -> tuple[UpgradeHop, ...]:
        return self._hops

    @property
    def versions(self) -> tuple[IndexVersion, ...]:
        if not self._hops:
            return ()
        return (self._hops[0].from_version,) + tuple(hop.to_version for hop in self._hops)

    @property
    def latest(self) -> IndexVersion:
        versions = self.versions
        if not versions:
            raise ValueError("Lattice has no versions")
        return versions[-1]

    def __contains__(self, version: object) -> bool:
        return version in self.versions


DEFAULT_LATTICE = VersionLattice(
    (
        UpgradeHop(IndexVersion(4), IndexVersion(5), "Solr4to5IndexUpgrade"),
        UpgradeHop(IndexVersion(5), IndexVersion(6), "Solr5to6IndexUpgrade"),
    )
)


def build_plan(
    source: IndexVersion,
    target: IndexVersion,
    lattice: VersionLattice = DEFAULT_LATTICE,
) -> MigrationPlan:
    """Build the hop chain that upgrades ``source`` to ``target``.

    Raises:
        NoMigrationPath: If either version is outside the lattice or the
            target is older than the source.
    """
    if source not in lattice:
        raise NoMigrationPath(source, target, f"version {source} is not supported")
    if target not in lattice:
        raise NoMigrationPath(source, target, f"version {target} is not supported")
    if source > target:
        raise NoMigrationPath(source, target, "downgrading an index is not supported")

    hops = tuple(hop for hop in lattice.hops if source <= hop.from_version and hop.to_version <= target)
    return MigrationPlan(source=source, target=target, hops=hops)
