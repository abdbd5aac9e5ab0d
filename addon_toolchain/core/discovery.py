"""
Discovery - Finds packs under a directory

Responsibilities:
- Locate manifest.json files (any depth, or a bounded depth for install locations)
- Parse each manifest and classify the pack by its module types
- Drop packs that declare no capability
- Fail the whole pass on a manifest that is not a JSON object

Every call builds a new pack list; results are never merged with a
previous pass.
"""
import json
import logging
from pathlib import Path
from typing import Iterator, List, Optional

from pydantic import ValidationError

from addon_toolchain.config import MANIFEST_FILE_NAME
from addon_toolchain.errors import DiscoveryError
from addon_toolchain.schemas import Manifest, Pack

logger = logging.getLogger(__name__)


class PackDiscovery:
    """Scans a directory tree for pack manifests"""

    def __init__(self, manifest_name: str = MANIFEST_FILE_NAME):
        self.manifest_name = manifest_name

    def discover(self, root: Path, max_depth: Optional[int] = None) -> List[Pack]:
        """
        Discover packs under root

        Args:
            root: Directory to scan
            max_depth: Directory levels below root to search for manifests.
                None searches the whole tree; 1 only looks at root/*/manifest.json

        Returns:
            Packs with at least one capability, sorted by relative path

        Raises:
            DiscoveryError: If any manifest cannot be parsed
        """
        root = Path(root).resolve()
        if not root.is_dir():
            logger.info(f"[Discovery] {root} does not exist; no packs")
            return []

        packs: List[Pack] = []
        skipped = 0
        for manifest_path in self._find_manifests(root, max_depth):
            manifest = self.load_manifest(manifest_path)
            pack_dir = manifest_path.parent
            pack = Pack.from_manifest(
                manifest,
                root_path=pack_dir,
                relative_path=pack_dir.relative_to(root).as_posix(),
            )
            if not pack.capabilities:
                skipped += 1
                logger.debug(f"[Discovery] Ignoring {pack.relative_path}: no behavior or resource modules")
                continue
            packs.append(pack)

        packs.sort(key=lambda p: p.relative_path)
        logger.info(f"[Discovery] Found {len(packs)} packs in {root} ({skipped} without capabilities)")
        return packs

    def load_manifest(self, manifest_path: Path) -> Manifest:
        """Parse one manifest file"""
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8-sig"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DiscoveryError(f"Malformed manifest {manifest_path}: {e}", manifest_path) from e
        except OSError as e:
            raise DiscoveryError(f"Cannot read manifest {manifest_path}: {e}", manifest_path) from e

        if not isinstance(data, dict):
            raise DiscoveryError(f"Malformed manifest {manifest_path}: expected a JSON object", manifest_path)
        try:
            return Manifest.model_validate(data)
        except ValidationError as e:
            raise DiscoveryError(f"Invalid manifest {manifest_path}: {e}", manifest_path) from e

    def _find_manifests(self, root: Path, max_depth: Optional[int]) -> Iterator[Path]:
        if max_depth is None:
            candidates = root.rglob(self.manifest_name)
        else:
            candidates = (
                path
                for depth in range(1, max_depth + 1)
                for path in root.glob("/".join(["*"] * depth + [self.manifest_name]))
            )
        for path in sorted(candidates):
            if path.is_file():
                yield path


def discover_packs(root: Path, max_depth: Optional[int] = None) -> List[Pack]:
    """Convenience wrapper around PackDiscovery().discover()"""
    return PackDiscovery().discover(root, max_depth=max_depth)


__all__ = ["PackDiscovery", "discover_packs"]
