"""
Shared helpers for toolchain tests
"""
import json
from pathlib import Path

import pytest


def write_manifest(pack_dir: Path, name="Pack", uuid=None, version=(1, 0, 0), module_types=("data",)):
    """Create pack_dir/manifest.json and return the manifest path"""
    pack_dir.mkdir(parents=True, exist_ok=True)
    header = {"name": name}
    if uuid is not None:
        header["uuid"] = uuid
    if version is not None:
        header["version"] = list(version)
    manifest = {
        "format_version": 2,
        "header": header,
        "modules": [{"type": t} for t in module_types],
    }
    path = pack_dir / "manifest.json"
    path.write_text(json.dumps(manifest))
    return path


@pytest.fixture
def make_pack():
    """Factory fixture: make_pack(dir, files={...}, **manifest_fields)"""
    def _make(pack_dir: Path, files=None, **manifest_fields):
        write_manifest(pack_dir, **manifest_fields)
        for relative, contents in (files or {}).items():
            target = pack_dir / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(contents)
        return pack_dir
    return _make
