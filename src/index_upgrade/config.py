"""Upgrade configuration stored in ``<home>/config.yaml``.

Resolution of every setting is: environment variable, then the YAML file,
then the built-in default. Example file::

    runtime:
      java: /opt/jre/bin/java
    tools:
      search_paths:
        - /opt/autopsy/modules
      namespace: keywordsearch
    migration:
      keep_backup: false
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
DEFAULT_NAMESPACE = "keywordsearch"

HOME_ENV = "INDEX_UPGRADE_HOME"
JAVA_ENV = "INDEX_UPGRADE_JAVA"
TOOLS_ENV = "INDEX_UPGRADE_TOOLS"


def _is_windows() -> bool:
    """Return True when running on Windows."""
    return os.name == "nt"


def get_upgrade_home() -> Path:
    """Return the per-user directory holding config and default logs.

    Resolution order:
    1. INDEX_UPGRADE_HOME environment variable (all platforms)
    2. ~/.index-upgrade/ on macOS/Linux
    3. %LOCALAPPDATA%\\index-upgrade\\ on Windows (via platformdirs)
    """
    if env_home := os.environ.get(HOME_ENV):
        return Path(env_home)

    if _is_windows():
        from platformdirs import user_data_dir

        return Path(user_data_dir("index-upgrade"))

    return Path.home() / ".index-upgrade"


def find_java_runtime(configured: str | None = None) -> str:
    """Return the Java runtime used to launch upgrade tools.

    Falls back from the configured value to ``$JAVA_HOME/bin/java``, then to
    ``java`` on ``PATH``, then to the bare name ``java``.
    """
    if configured:
        return configured

    executable = "java.exe" if _is_windows() else "java"
    if java_home := os.environ.get("JAVA_HOME"):
        candidate = Path(java_home) / "bin" / executable
        if candidate.is_file():
            return str(candidate)

    return shutil.which("java") or "java"


@dataclass
class UpgradeConfig:
    """Resolved upgrade configuration.

    Attributes:
        java_path: Runtime binary used as ``<java> -jar <tool> <index>``
        search_paths: Directories searched for installed upgrade tools
        namespace: Search-scope namespace passed to the tool locator
        keep_backup: Keep the pre-upgrade index beside the upgraded one
    """

    java_path: str = "java"
    search_paths: list[Path] = field(default_factory=list)
    namespace: str = DEFAULT_NAMESPACE
    keep_backup: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "java_path": self.java_path,
            "search_paths": [str(path) for path in self.search_paths],
            "namespace": self.namespace,
            "keep_backup": self.keep_backup,
        }


def _read_yaml(config_file: Path) -> dict[str, Any]:
    yaml = YAML(typ="safe")
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.load(f) or {}
    except (OSError, YAMLError) as e:
        logger.error(f"Failed to load config: {e}")
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config in {config_file}: expected a mapping at the top level")
    return data


def _section(data: dict[str, Any], key: str, config_file: Path) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid {key} section in {config_file}: expected a mapping")
    return value


def load_config(config_file: Path | None = None) -> UpgradeConfig:
    """Load configuration, applying environment overrides.

    Args:
        config_file: Explicit config path; defaults to ``<home>/config.yaml``

    Returns:
        UpgradeConfig instance (defaults if the file does not exist)

    Raises:
        ConfigError: If the file is not valid YAML or has wrongly typed values
    """
    config_file = config_file or get_upgrade_home() / CONFIG_FILENAME

    data: dict[str, Any] = {}
    if config_file.exists():
        data = _read_yaml(config_file)
    else:
        logger.debug(f"Config file not found: {config_file}")

    runtime = _section(data, "runtime", config_file)
    tools = _section(data, "tools", config_file)
    migration = _section(data, "migration", config_file)

    java = runtime.get("java")
    if java is not None and not isinstance(java, str):
        raise ConfigError(f"Invalid runtime.java in {config_file}: expected a path string")

    search_paths = tools.get("search_paths", [])
    if isinstance(search_paths, str):
        search_paths = [search_paths]
    if not isinstance(search_paths, list) or not all(isinstance(p, str) for p in search_paths):
        raise ConfigError(f"Invalid tools.search_paths in {config_file}: expected a list of directories")

    namespace = tools.get("namespace", DEFAULT_NAMESPACE)
    if not isinstance(namespace, str) or not namespace:
        raise ConfigError(f"Invalid tools.namespace in {config_file}: expected a non-empty string")

    keep_backup = migration.get("keep_backup", False)
    if not isinstance(keep_backup, bool):
        raise ConfigError(f"Invalid migration.keep_backup in {config_file}: expected true or false")

    paths = [Path(p).expanduser() for p in search_paths]
    if env_tools := os.environ.get(TOOLS_ENV):
        paths = [Path(p).expanduser() for p in env_tools.split(os.pathsep) if p] + paths

    return UpgradeConfig(
        java_path=find_java_runtime(os.environ.get(JAVA_ENV) or java),
        search_paths=paths,
        namespace=namespace,
        keep_backup=keep_backup,
    )
