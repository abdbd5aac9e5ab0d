"""
Executor - Runs one operation over every discovered pack

Responsibilities:
- Filter the current pack set by capability
- Fan one work item per pack out through concurrent()
- Apply the resolved plugin stage chain to each pack's files
- Reconcile installed packs before installing fresh copies
- Produce .mcpack / .mcaddon archives

The Executor is mechanical: it never discovers packs itself and only
works on the pack set carried by the PipelineContext.
"""
import asyncio
import logging
from pathlib import Path, PurePosixPath
from string import Template
from typing import Any, Awaitable, Callable, Dict, List, Optional

from addon_toolchain.config import (
    BEHAVIOR_INSTALL_DIR,
    MCADDON_EXTENSION,
    MCPACK_EXTENSION,
    RESOURCE_INSTALL_DIR,
)
from addon_toolchain.errors import PackOperationError, ToolchainError
from addon_toolchain.schemas import Pack, PackCapability, PipelineContext, TaskCategory
from addon_toolchain.tools import read_files, read_tree, remove_tree, write_archive, write_entries

from .discovery import PackDiscovery
from .registry import PluginRegistry, apply_stages
from .runner import Step, concurrent

logger = logging.getLogger(__name__)

PackAction = Callable[[PipelineContext, Pack], Awaitable[Any]]

INSTALL_DIRS = {
    PackCapability.BEHAVIOR: BEHAVIOR_INSTALL_DIR,
    PackCapability.RESOURCES: RESOURCE_INSTALL_DIR,
}

INSTALL_CATEGORIES = {
    PackCapability.BEHAVIOR: TaskCategory.INSTALL_BEHAVIOR,
    PackCapability.RESOURCES: TaskCategory.INSTALL_RESOURCE,
}


def removal_set(installed: List[Pack], source: List[Pack]) -> List[str]:
    """Relative paths of installed packs sharing an identity with a source pack"""
    identities = {p.identity for p in source if p.identity}
    return [p.relative_path for p in installed if p.identity and p.identity in identities]


class PackExecutor:
    """
    Executor - Applies per-pack operations

    Executes build/install/package work for the packs in a context.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        discovery: Optional[PackDiscovery] = None,
        progress_callback: Optional[Callable[[str], None]] = None,
    ):
        self.registry = registry
        self.discovery = discovery or PackDiscovery()
        self.progress_callback = progress_callback

    def log(self, msg: str, level: int = logging.INFO):
        logger.log(level, f"[Executor] {msg}")
        if self.progress_callback:
            self.progress_callback(msg)

    async def for_each_pack(
        self,
        ctx: PipelineContext,
        action: PackAction,
        capability: Optional[PackCapability] = None,
        label: str = "pack",
    ) -> List[Any]:
        """
        Run action once per pack, concurrently

        Args:
            ctx: Context holding the discovered pack set
            action: Coroutine function (ctx, pack)
            capability: Only packs carrying this capability; None means all
            label: Step name prefix for diagnostics

        Returns:
            Per-pack results, or [] when no pack matched
        """
        packs = ctx.packs_with(capability)
        if not packs:
            kind = f"{capability.value} " if capability else ""
            self.log(f"No {kind}packs found in {ctx.settings.source_dir}", logging.WARNING)
            return []

        group = concurrent(
            *(self._pack_step(label, pack, action) for pack in packs),
            name=f"{label} ({len(packs)} packs)",
        )
        return await group(ctx)

    def _pack_step(self, label: str, pack: Pack, action: PackAction) -> Step:
        async def run(ctx):
            return await action(ctx, pack)
        return Step(f"{label}:{pack.relative_path}", run)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    async def build_pack(self, ctx: PipelineContext, pack: Pack) -> Dict[str, Any]:
        """Transform source/<pack>/** into bundle/<pack>/**"""
        settings = ctx.settings
        self.log(f"build {pack.display_name} - {pack.relative_path}/**/*")
        stages = self.registry.resolve(TaskCategory.SOURCE)

        def work():
            entries = read_tree(settings.source_dir, pack.relative_path)
            entries = apply_stages(stages, entries, pack)
            return write_entries(entries, settings.bundle_dir)

        return await self._run_io("build", pack, work)

    # ------------------------------------------------------------------
    # Install / uninstall
    # ------------------------------------------------------------------

    def install_root(self, ctx: PipelineContext, capability: PackCapability) -> Path:
        return ctx.require_game_data_dir() / INSTALL_DIRS[capability]

    async def clean_installed(self, ctx: PipelineContext, capability: PackCapability) -> List[str]:
        """
        Remove installed packs whose identity matches a source pack

        Returns:
            Relative paths removed from the install location
        """
        destination = self.install_root(ctx, capability)
        source_packs = ctx.packs_with(None)
        depth = max((len(PurePosixPath(p.relative_path).parts) for p in source_packs), default=1)
        installed = await asyncio.to_thread(self.discovery.discover, destination, max(depth, 1))

        to_remove = removal_set(installed, source_packs)
        if not to_remove:
            return []

        for relative_path in to_remove:
            self.log(f"\tRemoving {capability.value} pack {relative_path}")
            try:
                await asyncio.to_thread(remove_tree, destination / relative_path)
            except OSError as e:
                raise PackOperationError("remove", relative_path, e) from e
        return to_remove

    async def install_pack(self, ctx: PipelineContext, pack: Pack, capability: PackCapability) -> Dict[str, Any]:
        """Copy bundle/<pack>/** into the install location for capability"""
        settings = ctx.settings
        destination = self.install_root(ctx, capability)
        stages = self.registry.resolve(INSTALL_CATEGORIES[capability])
        self.log(f"\t{pack.display_name}")

        def work():
            entries = read_tree(settings.bundle_dir, pack.relative_path)
            entries = apply_stages(stages, entries, pack)
            return write_entries(entries, destination)

        return await self._run_io("install", pack, work)

    async def install_all(self, ctx: PipelineContext, capability: PackCapability) -> List[Any]:
        async def action(c, pack):
            return await self.install_pack(c, pack, capability)
        self.log(f"Installing {capability.value} packs")
        return await self.for_each_pack(ctx, action, capability, label=f"install_{capability.value}")

    # ------------------------------------------------------------------
    # Packaging
    # ------------------------------------------------------------------

    def archive_name(self, ctx: PipelineContext, pack: Pack) -> str:
        name = Template(ctx.settings.pack_name_template).safe_substitute(
            modName=ctx.mod_name,
            name=pack.display_name,
            version=pack.version_label,
            uuid=pack.identity or "",
            relativePath=pack.relative_path,
        )
        return name.replace("/", "-").replace("\\", "-")

    async def package_pack(self, ctx: PipelineContext, pack: Pack) -> Dict[str, Any]:
        """Zip bundle/<pack>/** into <package_dir>/<template>.mcpack"""
        settings = ctx.settings
        archive_path = settings.package_dir / (self.archive_name(ctx, pack) + MCPACK_EXTENSION)
        # Archive entries keep the pack folder as their top-level directory
        folder = PurePosixPath(pack.relative_path).name or ctx.mod_name
        stages = self.registry.resolve(TaskCategory.PACKAGING)
        self.log(f"\t{pack.display_name} -> {archive_path.name}")

        def work():
            entries = read_tree(settings.bundle_dir, pack.relative_path, prefix=folder)
            entries = apply_stages(stages, entries, pack)
            return write_archive(entries, archive_path)

        return await self._run_io("package", pack, work)

    async def package_all(self, ctx: PipelineContext) -> List[Any]:
        self.log("Creating .mcpack files")
        names = [self.archive_name(ctx, p) for p in ctx.packs_with(None)]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            self.log(f"Packs share archive names, later archives overwrite earlier ones: {duplicates}", logging.WARNING)
        return await self.for_each_pack(ctx, self.package_pack, None, label="mcpack")

    async def bundle_addon(self, ctx: PipelineContext) -> Dict[str, Any]:
        """Combine every .mcpack in the package directory into <modName>.mcaddon"""
        package_dir = ctx.settings.package_dir
        archive_path = package_dir / (ctx.mod_name + MCADDON_EXTENSION)
        stages = self.registry.resolve(TaskCategory.BUNDLING)
        self.log("Creating .mcaddon")

        def work():
            mcpacks = sorted(package_dir.glob("*" + MCPACK_EXTENSION)) if package_dir.is_dir() else []
            entries = read_files(mcpacks, package_dir)
            entries = apply_stages(stages, entries, None)
            return write_archive(entries, archive_path)

        try:
            return await asyncio.to_thread(work)
        except ToolchainError:
            raise
        except Exception as e:
            raise PackOperationError("bundle", ctx.mod_name, e) from e

    # ------------------------------------------------------------------
    # Output directories
    # ------------------------------------------------------------------

    async def clean_output(self, ctx: PipelineContext) -> List[str]:
        """Delete the bundle and package directories"""
        removed = []
        for directory in (ctx.settings.bundle_dir, ctx.settings.package_dir):
            try:
                deleted = await asyncio.to_thread(remove_tree, directory)
            except OSError as e:
                raise PackOperationError("clean", str(directory), e) from e
            if deleted:
                removed.append(str(directory))
        self.log(f"Cleaned {len(removed)} output directories")
        return removed

    async def _run_io(self, operation: str, pack: Pack, work: Callable[[], Any]) -> Any:
        try:
            return await asyncio.to_thread(work)
        except OSError as e:
            raise PackOperationError(operation, pack.display_name, e) from e


__all__ = ["PackExecutor", "PackAction", "removal_set", "INSTALL_DIRS", "INSTALL_CATEGORIES"]
