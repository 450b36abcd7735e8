"""Configuration management for keepsake.

Storage Structure
-----------------
~/.keepsake/keepsake.yaml          # User-level defaults
<project>/.keepsake/keepsake.yaml  # Project-level overrides

Cascade: project .keepsake/keepsake.yaml → user ~/.keepsake/keepsake.yaml → defaults

Fields
------
- root: Directory relative checkpoint paths are resolved against
- payload_codec: "pickle" (arbitrary objects) or "yaml" (plain data)
- file_mode: Permissions for checkpoint files (default 0o600)
- log_level: Logging level name for the CLI
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from keepsake.codec import CheckpointCodec, get_payload_codec
from keepsake.filesystem import LocalFileSystem

# Standard paths
KEEPSAKE_DIR = Path.home() / ".keepsake"
CONFIG_NAME = "keepsake.yaml"

logger = logging.getLogger(__name__)


@dataclass
class KeepsakeConfig:
    """User-configurable settings for checkpoint storage."""

    root: str | None = None
    payload_codec: str = "pickle"
    file_mode: int = 0o600
    log_level: str = "WARNING"

    @classmethod
    def load(cls, config_dir: Path) -> "KeepsakeConfig":
        """Load config from a keepsake directory.

        Args:
            config_dir: Path to .keepsake directory (project-local or user-level)

        Returns:
            KeepsakeConfig with values from file, or defaults if not found
        """
        config_path = config_dir / CONFIG_NAME
        if config_path.exists():
            with open(config_path) as f:
                overrides = yaml.safe_load(f) or {}
            if not isinstance(overrides, dict):
                logger.warning(f"Ignoring {config_path}: expected a mapping of settings")
                return cls()
            # Only apply known fields
            valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
            ignored = sorted(k for k in overrides if k not in valid_fields)
            if ignored:
                logger.warning(f"Ignoring unknown config keys in {config_path}: {ignored}")
            return cls(**{k: v for k, v in overrides.items() if k in valid_fields})
        return cls()

    def save(self, config_dir: Path) -> Path:
        """Save non-default values to a keepsake directory.

        Returns:
            Path to saved config file
        """
        config_dir.mkdir(parents=True, exist_ok=True)
        config_path = config_dir / CONFIG_NAME

        defaults = KeepsakeConfig()
        data = {k: v for k, v in self.to_dict().items() if getattr(defaults, k) != v}

        # Marker that config was explicitly saved
        if not data:
            data = {"_version": 1}

        with open(config_path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False)
        config_path.chmod(0o600)

        return config_path

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "payload_codec": self.payload_codec,
            "file_mode": self.file_mode,
            "log_level": self.log_level,
        }

    def filesystem(self) -> LocalFileSystem:
        """Build the local filesystem this config describes."""
        return LocalFileSystem(root=self.root, file_mode=self.file_mode)

    def codec(self) -> CheckpointCodec:
        """Build the checkpoint codec this config describes."""
        return CheckpointCodec(get_payload_codec(self.payload_codec))


def get_config(project_path: Path | None = None) -> KeepsakeConfig:
    """Load KeepsakeConfig with project → user → default cascade.

    Args:
        project_path: Project directory to look for .keepsake/ in.
            Defaults to the current working directory.
    """
    project_path = project_path if project_path is not None else Path.cwd()
    project_dir = project_path / ".keepsake"
    if project_dir.exists():
        return KeepsakeConfig.load(project_dir)
    return KeepsakeConfig.load(KEEPSAKE_DIR)
