"""
Core Toolchain Components

These components form the add-on build pipeline:
1. Runner - sequence() / concurrent() step composition
2. Discovery - manifest.json scan -> Pack records
3. Registry - plugin registration and stage chain resolution
4. Executor - per-pack build / install / package work
5. Data Dir - Minecraft data directory resolution
6. Watcher - change polling and the resync loop
7. Builder - named operations wired from the above
"""
from .runner import Step, step, sequence, concurrent
from .discovery import PackDiscovery, discover_packs
from .registry import PluginRegistry, apply_stages, load_plugin
from .executor import PackExecutor, removal_set
from .data_dir import resolve_game_data_dir, verify_game_data_dir
from .watcher import ChangeEvent, SourceWatcher, resync_loop
from .builder import AddonBuilder, OPERATIONS

__all__ = [
    "Step",
    "step",
    "sequence",
    "concurrent",
    "PackDiscovery",
    "discover_packs",
    "PluginRegistry",
    "apply_stages",
    "load_plugin",
    "PackExecutor",
    "removal_set",
    "resolve_game_data_dir",
    "verify_game_data_dir",
    "ChangeEvent",
    "SourceWatcher",
    "resync_loop",
    "AddonBuilder",
    "OPERATIONS",
]
