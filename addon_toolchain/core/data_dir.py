"""
Data Dir - Locates Minecraft Bedrock's data directory

Lookup per host OS family (then games/com.mojang):
- win32:   %LOCALAPPDATA%/Packages/Microsoft.MinecraftUWP_8wekyb3d8bbwe/LocalState
- linux:   ~/.local/share/mcpelauncher
- darwin:  ~/Library/Application Support/mcpelauncher
- android: ~/storage/shared

BEDROCK_DATA_DIR (or an explicit override) replaces detection entirely.
"""
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from addon_toolchain.config import GAME_STATE_DIR
from addon_toolchain.errors import ConfigurationError, PreconditionError

logger = logging.getLogger(__name__)

UWP_LOCAL_STATE = "Packages/Microsoft.MinecraftUWP_8wekyb3d8bbwe/LocalState"


def platform_root(platform: str, env: Mapping[str, str], home: Path) -> Path:
    """Root folder of the Minecraft install for a platform name (sys.platform style)"""
    if platform == "win32":
        local_app_data = env.get("LOCALAPPDATA")
        if not local_app_data:
            raise ConfigurationError("LOCALAPPDATA is not set; set BEDROCK_DATA_DIR to the com.mojang folder")
        return Path(local_app_data) / UWP_LOCAL_STATE
    if platform.startswith("linux"):
        return home / ".local" / "share" / "mcpelauncher"
    if platform == "darwin":
        return home / "Library" / "Application Support" / "mcpelauncher"
    if platform == "android":
        return home / "storage" / "shared"
    raise ConfigurationError(f"Unknown platform '{platform}', please set the BEDROCK_DATA_DIR environment variable")


def resolve_game_data_dir(
    override: Optional[Path] = None,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """
    Determine the com.mojang data directory

    Raises:
        ConfigurationError: If the platform is unknown and no override is set
    """
    if override:
        return Path(override).expanduser()

    platform = platform or sys.platform
    env = os.environ if env is None else env
    home = Path.home() if home is None else Path(home)
    return platform_root(platform, env, home) / GAME_STATE_DIR


def verify_game_data_dir(path: Path) -> Path:
    """
    Check the data directory exists

    Raises:
        PreconditionError: If it does not
    """
    path = Path(path)
    if not path.is_dir():
        raise PreconditionError(f"Minecraft Bedrock edition's data directory is not available: {path}")
    logger.info(f"[DataDir] Using Minecraft data directory {path}")
    return path


__all__ = ["UWP_LOCAL_STATE", "platform_root", "resolve_game_data_dir", "verify_game_data_dir"]
