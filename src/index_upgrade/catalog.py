"""Stage catalog: which installed tool performs each upgrade hop.

Tool install directories are found through a :class:`ToolLocator`, passed in
explicitly so tests (and embedding applications) can point the catalog at
fake installs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Protocol

from .config import DEFAULT_NAMESPACE
from .errors import ToolArtifactMissing, ToolNotFound, ToolResolutionError
from .versions import UpgradeHop

logger = logging.getLogger(__name__)

__all__ = [
    "ToolLocator",
    "DirectoryToolLocator",
    "ToolSpec",
    "DEFAULT_TOOLS",
    "StageCatalog",
    "ToolStatus",
]


class ToolLocator(Protocol):
    """Locates the install directory of a tool within a search namespace."""

    def locate(self, tool_id: str, namespace: str) -> Path | None:
        ...


class DirectoryToolLocator:
    """Looks for tools under a list of search roots.

    For each root, ``<root>/<namespace>/<tool_id>`` is tried before
    ``<root>/<tool_id>``. The first existing directory wins.
    """

    def __init__(self, search_paths: Iterable[Path]):
        self.search_paths = [Path(p) for p in search_paths]

    def locate(self, tool_id: str, namespace: str) -> Path | None:
        for root in self.search_paths:
            for candidate in (root / namespace / tool_id, root / tool_id):
                if candidate.is_dir():
                    return candidate.resolve()
        return None


@dataclass(frozen=True)
class ToolSpec:
    """Install layout of one upgrade tool.

    Attributes:
        tool_id: Install directory name, matching ``UpgradeHop.tool_id``
        artifact: Executable JAR inside the install directory
        output_suffix: When set, the tool writes a new directory named
            ``<input><suffix>`` beside its input instead of upgrading in place
    """

    tool_id: str
    artifact: str
    output_suffix: str | None = None

    def output_path(self, input_path: Path) -> Path:
        if self.output_suffix is None:
            return input_path
        return input_path.with_name(input_path.name + self.output_suffix)


DEFAULT_TOOLS: dict[str, ToolSpec] = {
    "Solr4to5IndexUpgrade": ToolSpec("Solr4to5IndexUpgrade", "Solr4IndexUpgrade.jar"),
    "Solr5to6IndexUpgrade": ToolSpec("Solr5to6IndexUpgrade", "Solr5IndexUpgrade.jar"),
}


@dataclass(frozen=True)
class ToolStatus:
    """Outcome of resolving one tool, for ``index-upgrade tools``."""

    hop: UpgradeHop
    path: Path | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.path is not None

    def to_dict(self) -> dict[str, object]:
        return {
            **self.hop.to_dict(),
            "found": self.found,
            "path": str(self.path) if self.path else None,
            "error": self.error,
        }


class StageCatalog:
    """Maps each hop to its tool and resolves the tool's executable artifact."""

    def __init__(
        self,
        locator: ToolLocator,
        namespace: str = DEFAULT_NAMESPACE,
        tools: Mapping[str, ToolSpec] | None = None,
    ):
        self.locator = locator
        self.namespace = namespace
        self.tools = dict(DEFAULT_TOOLS if tools is None else tools)

    def spec_for(self, hop: UpgradeHop) -> ToolSpec:
        """Return the tool spec for *hop*.

        Raises:
            ToolNotFound: If no tool is registered for the hop's tool id
        """
        spec = self.tools.get(hop.tool_id)
        if spec is None:
            raise ToolNotFound(hop.tool_id, self.namespace)
        return spec

    def resolve(self, hop: UpgradeHop) -> Path:
        """Return the absolute path of the tool artifact for *hop*.

        Raises:
            ToolNotFound: If the tool's install directory cannot be located
            ToolArtifactMissing: If the artifact is absent or not a regular file
        """
        spec = self.spec_for(hop)
        tool_dir = self.locator.locate(spec.tool_id, self.namespace)
        if tool_dir is None:
            logger.error(f"Unable to locate upgrade tool {spec.tool_id} for {hop.stage_name}")
            raise ToolNotFound(spec.tool_id, self.namespace)

        artifact = Path(tool_dir).absolute() / spec.artifact
        if not artifact.is_file():
            logger.error(f"Unable to locate {spec.tool_id} artifact at {artifact}")
            raise ToolArtifactMissing(spec.tool_id, artifact)
        return artifact

    def check(self, hops: Iterable[UpgradeHop]) -> list[ToolStatus]:
        """Resolve every hop's tool without raising, for status reporting."""
        statuses: list[ToolStatus] = []
        for hop in hops:
            try:
                statuses.append(ToolStatus(hop=hop, path=self.resolve(hop)))
            except ToolResolutionError as exc:
                statuses.append(ToolStatus(hop=hop, error=str(exc)))
        return statuses
