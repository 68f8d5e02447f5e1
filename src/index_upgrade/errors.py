"""Exception hierarchy for the index upgrade pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .versions import IndexVersion, UpgradeHop


class IndexUpgradeError(Exception):
    """Base exception for index upgrade errors."""


class ConfigError(IndexUpgradeError):
    """Raised when the upgrade configuration cannot be parsed or validated."""


class NoMigrationPath(IndexUpgradeError):
    """No contiguous hop chain connects the source and target versions."""

    def __init__(self, source: "IndexVersion", target: "IndexVersion", reason: str):
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(f"No migration path from {source} to {target}: {reason}")


class ToolResolutionError(IndexUpgradeError):
    """Base class for failures locating an upgrade tool."""

    def __init__(self, tool_id: str, message: str):
        self.tool_id = tool_id
        super().__init__(message)


class ToolNotFound(ToolResolutionError):
    """The tool's install directory cannot be located."""

    def __init__(self, tool_id: str, namespace: str):
        self.namespace = namespace
        super().__init__(
            tool_id,
            f"Unable to locate upgrade tool {tool_id} (namespace {namespace})",
        )


class ToolArtifactMissing(ToolResolutionError):
    """The install directory exists but the executable artifact does not."""

    def __init__(self, tool_id: str, artifact_path: Path):
        self.artifact_path = artifact_path
        super().__init__(
            tool_id,
            f"Unable to locate {tool_id} artifact at {artifact_path}",
        )


class StageLaunchError(IndexUpgradeError):
    """A stage could not be started or its logs could not be written."""

    def __init__(self, hop: "UpgradeHop", message: str):
        self.hop = hop
        super().__init__(f"{hop.stage_name}: {message}")


class StageFailed(IndexUpgradeError):
    """A mandatory stage exited unsuccessfully."""

    def __init__(self, hop: "UpgradeHop", exit_code: int | None, message: str | None = None):
        self.hop = hop
        self.exit_code = exit_code
        super().__init__(
            message
            or f"Index upgrade stage {hop.stage_name} failed with exit code {exit_code}"
        )


class IndexDirectoryError(IndexUpgradeError):
    """The index directory is missing or could not be staged or swapped."""
