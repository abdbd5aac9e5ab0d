"""
Command line entry point

    addon-toolchain [options] {build,rebuild,install,uninstall,package,watch,clean}

Exit status is 0 when the operation succeeds and 1 when it fails.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from addon_toolchain import __version__, config
from addon_toolchain.core.builder import OPERATIONS, AddonBuilder
from addon_toolchain.errors import ToolchainError
from addon_toolchain.schemas import ToolchainSettings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="addon-toolchain",
        description="Build, install and package Minecraft Bedrock add-on packs.",
    )
    ap.add_argument("operation", choices=OPERATIONS, help="Operation to run")
    ap.add_argument("--mod-name", default=config.MOD_NAME, help="Add-on name used for archives (default: %(default)s)")
    ap.add_argument("--source-dir", default=config.SOURCE_DIR, help="Directory containing packs (default: %(default)s)")
    ap.add_argument("--bundle-dir", default=config.BUNDLE_DIR, help="Build output directory (default: %(default)s)")
    ap.add_argument("--package-dir", default=config.PACKAGE_DIR, help="Archive output directory (default: %(default)s)")
    ap.add_argument("--data-dir", default=config.BEDROCK_DATA_DIR, help="Minecraft com.mojang directory; skips platform detection")
    ap.add_argument(
        "--plugin",
        action="append",
        default=None,
        metavar="MODULE:ATTR",
        help="Plugin to register (repeatable); replaces ADDON_PLUGINS",
    )
    ap.add_argument("--poll-interval", type=float, default=config.WATCH_POLL_INTERVAL, help="Watch mode poll interval in seconds")
    ap.add_argument("--log-level", default=config.LOG_LEVEL, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def settings_from_args(args: argparse.Namespace) -> ToolchainSettings:
    return ToolchainSettings(
        source_dir=Path(args.source_dir),
        bundle_dir=Path(args.bundle_dir),
        package_dir=Path(args.package_dir),
        data_dir_override=Path(args.data_dir) if args.data_dir else None,
        plugins=args.plugin if args.plugin is not None else list(config.PLUGINS),
        watch_poll_interval=args.poll_interval,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="[%(asctime)s] %(levelname)s %(message)s")

    try:
        builder = AddonBuilder.from_settings(args.mod_name, settings_from_args(args))
        asyncio.run(builder.run(args.operation))
    except ValidationError as e:
        logger.error(f"[CLI] Invalid settings: {e}")
        return 1
    except ToolchainError as e:
        logger.error(f"[CLI] {args.operation} failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("[CLI] Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
