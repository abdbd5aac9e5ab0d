"""
Builder - Named toolchain operations

This module wires the components together into the operations the CLI
exposes:

    clean      remove bundle and package output
    build      discover packs -> source transform per pack
    rebuild    clean -> build
    install    verify data dir -> discover -> build -> (behavior || resources)
    uninstall  verify data dir -> discover -> (remove behavior || remove resources)
    package    rebuild -> .mcpack per pack -> one .mcaddon
    watch      verify data dir -> clean -> install, then install again on every change

Usage:
    builder = AddonBuilder("MyAddon")
    builder.add_plugin(SomePlugin())
    asyncio.run(builder.run("install"))
"""
import asyncio
import logging
from typing import Callable, Dict, List, Optional

from addon_toolchain.config import ENGINE_VERSION, MOD_NAME
from addon_toolchain.errors import ConfigurationError
from addon_toolchain.schemas import (
    PackCapability,
    PipelineContext,
    PipelineState,
    PluginCapability,
    ToolchainPlugin,
    ToolchainSettings,
)

from .data_dir import resolve_game_data_dir, verify_game_data_dir
from .discovery import PackDiscovery
from .executor import PackExecutor
from .registry import PluginRegistry, load_plugin
from .runner import Step, concurrent, sequence
from .watcher import ChangeEvent, SourceWatcher, resync_loop

logger = logging.getLogger(__name__)

OPERATIONS = ["build", "rebuild", "install", "uninstall", "package", "watch", "clean"]


class AddonBuilder:
    """
    Complete add-on toolchain

    Plugins must be added before the task table is first used.
    """

    def __init__(
        self,
        mod_name: Optional[str] = None,
        settings: Optional[ToolchainSettings] = None,
        progress_callback: Optional[Callable[[str], None]] = None,
        engine_version: int = ENGINE_VERSION,
    ):
        self.mod_name = mod_name or MOD_NAME
        self.settings = (settings or ToolchainSettings()).resolved()
        self.engine_version = engine_version
        self.progress_callback = progress_callback

        self.registry = PluginRegistry(engine_version)
        self.discovery = PackDiscovery(self.settings.manifest_name)
        self.executor = PackExecutor(self.registry, self.discovery, progress_callback=self._record)

        self.execution_log: List[str] = []
        self._tasks: Optional[Dict[str, Step]] = None

    @classmethod
    def from_settings(
        cls,
        mod_name: Optional[str] = None,
        settings: Optional[ToolchainSettings] = None,
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> "AddonBuilder":
        """Create a builder and register every plugin named in settings.plugins"""
        builder = cls(mod_name, settings, progress_callback)
        for reference in builder.settings.plugins:
            builder.add_plugin(load_plugin(reference))
        return builder

    def _record(self, msg: str):
        self.execution_log.append(msg)
        if self.progress_callback:
            self.progress_callback(msg)

    def _log(self, msg: str, level: int = logging.INFO):
        self._record(msg)
        logger.log(level, f"[Builder {self.mod_name}] {msg}")

    def add_plugin(self, plugin: ToolchainPlugin) -> ToolchainPlugin:
        """
        Register a plugin

        Raises:
            ConfigurationError: If the plugin rejects this engine, or tasks
                were already configured
        """
        if self._tasks is not None:
            raise ConfigurationError("Plugins must be added before the tasks are configured")
        return self.registry.register(plugin, builder=self)

    def new_context(self, operation: str) -> PipelineContext:
        return PipelineContext(operation=operation, mod_name=self.mod_name, settings=self.settings)

    # ------------------------------------------------------------------
    # Step implementations
    # ------------------------------------------------------------------

    async def clean(self, ctx: PipelineContext):
        await self.executor.clean_output(ctx)

    async def determine_data_dir(self, ctx: PipelineContext):
        if ctx.game_data_dir is None:
            ctx.game_data_dir = resolve_game_data_dir(self.settings.data_dir_override)

    async def verify_data_dir_exists(self, ctx: PipelineContext):
        await asyncio.to_thread(verify_game_data_dir, ctx.require_game_data_dir())

    async def discover(self, ctx: PipelineContext):
        ctx.enter(PipelineState.DISCOVERING)
        packs = await asyncio.to_thread(self.discovery.discover, self.settings.source_dir)
        ctx.replace_packs(packs)

    async def build_source(self, ctx: PipelineContext):
        ctx.enter(PipelineState.BUILDING)
        await self.executor.for_each_pack(ctx, self.executor.build_pack, label="build")

    async def clean_behavior(self, ctx: PipelineContext):
        ctx.enter(PipelineState.INSTALLING)
        self._log("Cleaning installed behaviour packs")
        await self.executor.clean_installed(ctx, PackCapability.BEHAVIOR)

    async def install_behavior(self, ctx: PipelineContext):
        await self.executor.install_all(ctx, PackCapability.BEHAVIOR)

    async def clean_resources(self, ctx: PipelineContext):
        ctx.enter(PipelineState.INSTALLING)
        self._log("Cleaning installed resource packs")
        await self.executor.clean_installed(ctx, PackCapability.RESOURCES)

    async def install_resources(self, ctx: PipelineContext):
        await self.executor.install_all(ctx, PackCapability.RESOURCES)

    async def create_mcpacks(self, ctx: PipelineContext):
        ctx.enter(PipelineState.PACKAGING)
        await self.executor.package_all(ctx)

    async def create_mcaddon(self, ctx: PipelineContext):
        await self.executor.bundle_addon(ctx)

    async def notify(self, ctx: PipelineContext):
        self._log("File Changed")

    async def watch_files(self, ctx: PipelineContext):
        """Rerun watch_loop on every change under the source directory; never returns"""
        watcher = SourceWatcher(self.settings.source_dir, self.settings.watch_poll_interval)
        queue = watcher.start()

        async def resync(event: ChangeEvent):
            await self.run("watch_loop")

        try:
            await resync_loop(queue, resync)
        finally:
            watcher.stop()

    # ------------------------------------------------------------------
    # Task table
    # ------------------------------------------------------------------

    def configure_tasks(self) -> Dict[str, Step]:
        """
        Build the default task table

        Plugin add_default_tasks() hooks run after build is wired and before
        the composite operations that reuse it.
        """
        tasks: Dict[str, Step] = {}
        tasks["clean"] = Step("clean", self.clean)

        tasks["verify_data_dir"] = sequence(
            Step("determine_data_dir", self.determine_data_dir),
            Step("verify_data_dir_exists", self.verify_data_dir_exists),
            name="verify_data_dir",
        )

        tasks["install_behavior"] = sequence(
            tasks["verify_data_dir"],
            Step("clean_behavior", self.clean_behavior),
            Step("install_behavior", self.install_behavior),
            name="install_behavior",
        )

        tasks["install_resources"] = sequence(
            tasks["verify_data_dir"],
            Step("clean_resources", self.clean_resources),
            Step("install_resources", self.install_resources),
            name="install_resources",
        )

        tasks["discover"] = Step("discover", self.discover)
        tasks["build_source"] = Step("build_source", self.build_source)
        tasks["build"] = sequence(tasks["discover"], tasks["build_source"], name="build")

        for plugin in self.registry.for_capability(PluginCapability.DEFAULT_TASK_HOOK):
            plugin.add_default_tasks(tasks)

        tasks["rebuild"] = sequence(tasks["clean"], tasks["build"], name="rebuild")

        tasks["package"] = sequence(
            tasks["rebuild"],
            Step("create_mcpacks", self.create_mcpacks),
            Step("create_mcaddon", self.create_mcaddon),
            name="package",
        )

        tasks["install"] = sequence(
            tasks["verify_data_dir"],
            tasks["discover"],
            tasks["build"],
            concurrent(tasks["install_behavior"], tasks["install_resources"], name="install_packs"),
            name="install",
        )

        tasks["uninstall"] = sequence(
            tasks["verify_data_dir"],
            tasks["discover"],
            concurrent(
                Step("clean_resources", self.clean_resources),
                Step("clean_behavior", self.clean_behavior),
                name="remove_installed",
            ),
            name="uninstall",
        )

        tasks["default"] = tasks["install"]

        tasks["watch_loop"] = sequence(Step("notify", self.notify), tasks["install"], name="watch_loop")

        tasks["watch"] = sequence(
            tasks["verify_data_dir"],
            tasks["clean"],
            tasks["watch_loop"],
            Step("watch_files", self.watch_files),
            name="watch",
        )

        return tasks

    @property
    def tasks(self) -> Dict[str, Step]:
        if self._tasks is None:
            self._tasks = self.configure_tasks()
        return self._tasks

    async def run(self, name: str) -> PipelineContext:
        """
        Run one named operation in a fresh context

        Returns:
            The finished context (packs, step records, state history)

        Raises:
            ConfigurationError: If the operation is unknown
            ToolchainError / ConcurrentStepError: If the operation fails
        """
        tasks = self.tasks
        if name not in tasks:
            available = ", ".join(sorted(tasks))
            raise ConfigurationError(f"Unknown operation '{name}'. Available operations: {available}")

        ctx = self.new_context(name)
        ctx.enter(PipelineState.IDLE)
        self._log(f"=== Starting '{name}' ===")
        try:
            await tasks[name](ctx)
        except Exception as e:
            ctx.error = str(e)
            ctx.enter(PipelineState.IDLE)
            self._log(f"✗ '{name}' failed: {e}", logging.ERROR)
            raise

        ctx.enter(PipelineState.IDLE)
        self._log(f"✓ '{name}' complete ({len(ctx.completed_steps)} steps)")
        return ctx

    def run_sync(self, name: str) -> PipelineContext:
        """Run an operation on a new event loop"""
        return asyncio.run(self.run(name))


__all__ = ["AddonBuilder", "OPERATIONS"]
