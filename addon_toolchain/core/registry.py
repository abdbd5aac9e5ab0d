"""
Plugin Registry - Ordered registry of toolchain plugins

The builder registers plugins once at configuration time.
The executor asks the registry for the resolved stage chain of a task
category and runs each pack's files through it.

Resolution rules:
1. Plugins contribute in registration order
2. Within a plugin, steps keep their declared order
3. Each step becomes an APPLY stage, followed by an EXCLUDE stage when it
   suppresses default handling
4. Nothing is merged or deduplicated; overlapping predicates all apply
"""
import importlib
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from addon_toolchain.config import ENGINE_VERSION
from addon_toolchain.errors import ConfigurationError
from addon_toolchain.schemas import (
    FileEntry,
    Pack,
    PluginCapability,
    Stage,
    StageKind,
    TaskCategory,
    ToolchainPlugin,
)

logger = logging.getLogger(__name__)


class PluginRegistry:
    """
    Central registry for all plugins

    Plugins are never removed once registered.
    """

    def __init__(self, engine_version: int = ENGINE_VERSION):
        self.engine_version = engine_version
        self._plugins: List[ToolchainPlugin] = []

    def register(self, plugin: ToolchainPlugin, builder: Any = None) -> ToolchainPlugin:
        """
        Register a plugin

        Args:
            plugin: Plugin instance
            builder: Object handed to plugin.attach(); defaults to the registry itself

        Raises:
            ConfigurationError: If the plugin rejects this engine version
        """
        if not isinstance(plugin, ToolchainPlugin):
            raise ConfigurationError(f"{plugin!r} is not a ToolchainPlugin")

        plugin.attach(builder if builder is not None else self)
        self._plugins.append(plugin)

        capabilities = ", ".join(sorted(c.value for c in plugin.capabilities)) or "nothing"
        logger.info(f"[Registry] Registered {plugin.name} (contributes {capabilities})")
        return plugin

    @property
    def plugins(self) -> Tuple[ToolchainPlugin, ...]:
        return tuple(self._plugins)

    def for_capability(self, capability: PluginCapability) -> List[ToolchainPlugin]:
        return [p for p in self._plugins if capability in p.capabilities]

    def resolve(self, category: TaskCategory) -> List[Stage]:
        """Resolve the ordered stage chain for a task category"""
        stages: List[Stage] = []
        for plugin in self._plugins:
            if not plugin.contributes(category):
                continue
            for conditional in plugin.steps_for(category):
                stages.append(Stage(kind=StageKind.APPLY, step=conditional, plugin_name=plugin.name))
                if conditional.suppress_default:
                    stages.append(Stage(kind=StageKind.EXCLUDE, step=conditional, plugin_name=plugin.name))
        return stages

    def get_plugin_info(self, plugin_name: str) -> Dict[str, Any]:
        """Get metadata about a plugin"""
        for plugin in self._plugins:
            if plugin.name == plugin_name:
                return {
                    "name": plugin.name,
                    "min_engine_version": plugin.min_engine_version,
                    "capabilities": sorted(c.value for c in plugin.capabilities),
                    "categories": [c.value for c in TaskCategory if plugin.contributes(c)],
                }
        available = ", ".join(p.name for p in self._plugins)
        raise ValueError(f"Plugin '{plugin_name}' not found. Registered plugins: {available}")


def apply_stages(stages: Iterable[Stage], entries: Iterable[FileEntry], pack: Optional[Pack] = None) -> List[FileEntry]:
    """
    Run a file stream through a resolved stage chain

    APPLY: matching entries go through the step's transformer as one batch;
    non-matching entries pass through in order, followed by the transformer output.
    EXCLUDE: matching entries are dropped.
    """
    current = list(entries)
    for stage in stages:
        conditional = stage.step
        matched = [e for e in current if conditional.matches(e.relative_path)]
        if stage.kind == StageKind.EXCLUDE:
            current = [e for e in current if not conditional.matches(e.relative_path)]
            continue
        if not matched:
            continue
        passthrough = [e for e in current if not conditional.matches(e.relative_path)]
        transformer = conditional.build_transformer(pack)
        current = passthrough + list(transformer(matched))
    return current


def load_plugin(reference: str) -> ToolchainPlugin:
    """
    Load a plugin from a "package.module:attribute" reference

    The attribute may be a ToolchainPlugin subclass (instantiated with no
    arguments), a factory function, or a ready instance.
    """
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(f"Plugin reference must look like 'module:attribute', got '{reference}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import plugin module '{module_name}': {e}") from e
    try:
        target = getattr(module, attribute)
    except AttributeError as e:
        raise ConfigurationError(f"Plugin module '{module_name}' has no attribute '{attribute}'") from e

    plugin = target() if callable(target) and not isinstance(target, ToolchainPlugin) else target
    if not isinstance(plugin, ToolchainPlugin):
        raise ConfigurationError(f"'{reference}' did not produce a ToolchainPlugin")
    return plugin


__all__ = ["PluginRegistry", "apply_stages", "load_plugin"]
