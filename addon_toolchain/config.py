"""
Configuration for the Bedrock Add-on Toolchain
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Engine
ENGINE_VERSION = 2

# Project
MOD_NAME = os.getenv("ADDON_MOD_NAME", "MyAddon")

# Paths (relative paths resolve against the working directory)
SOURCE_DIR = os.getenv("ADDON_SOURCE_DIR", "./packs")
BUNDLE_DIR = os.getenv("ADDON_BUNDLE_DIR", "./out/bundled")
PACKAGE_DIR = os.getenv("ADDON_PACKAGE_DIR", "./out/packaged")

# Manifest discovery
MANIFEST_FILE_NAME = "manifest.json"

# Minecraft data directory. When set, platform detection is skipped entirely.
BEDROCK_DATA_DIR = os.getenv("BEDROCK_DATA_DIR") or None
GAME_STATE_DIR = "games/com.mojang"
BEHAVIOR_INSTALL_DIR = "development_behavior_packs"
RESOURCE_INSTALL_DIR = "development_resource_packs"

# Packaging
PACK_NAME_TEMPLATE = os.getenv("ADDON_PACK_NAME_TEMPLATE", "${modName} - ${name} - v${version}")
MCPACK_EXTENSION = ".mcpack"
MCADDON_EXTENSION = ".mcaddon"

# Plugins ("package.module:ClassName", comma separated)
PLUGINS = [p.strip() for p in os.getenv("ADDON_PLUGINS", "").split(",") if p.strip()]

# Watch mode
WATCH_POLL_INTERVAL = float(os.getenv("WATCH_POLL_INTERVAL", "1.0"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
