"""
Settings Schema - Resolved toolchain settings

Defaults come from config (environment / .env); the CLI and tests
override individual fields.
"""
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from addon_toolchain import config


class ToolchainSettings(BaseModel):
    """Directories and naming used by one builder"""
    source_dir: Path = Field(default_factory=lambda: Path(config.SOURCE_DIR))
    bundle_dir: Path = Field(default_factory=lambda: Path(config.BUNDLE_DIR))
    package_dir: Path = Field(default_factory=lambda: Path(config.PACKAGE_DIR))
    data_dir_override: Optional[Path] = Field(
        default_factory=lambda: Path(config.BEDROCK_DATA_DIR) if config.BEDROCK_DATA_DIR else None,
        description="Minecraft com.mojang directory; skips platform detection",
    )
    manifest_name: str = Field(config.MANIFEST_FILE_NAME)
    pack_name_template: str = Field(config.PACK_NAME_TEMPLATE)
    plugins: List[str] = Field(default_factory=lambda: list(config.PLUGINS))
    watch_poll_interval: float = Field(config.WATCH_POLL_INTERVAL, gt=0)

    def resolved(self) -> "ToolchainSettings":
        """Copy with every directory made absolute"""
        return self.model_copy(update={
            "source_dir": self.source_dir.resolve(),
            "bundle_dir": self.bundle_dir.resolve(),
            "package_dir": self.package_dir.resolve(),
            "data_dir_override": self.data_dir_override.expanduser().resolve() if self.data_dir_override else None,
        })


__all__ = ["ToolchainSettings"]
