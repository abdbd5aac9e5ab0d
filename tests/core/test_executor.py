"""
Tests for PackExecutor

Covers per-pack fan-out, the empty-set soft failure, install
reconciliation by identity and archive creation.
"""
import shutil
import tempfile
import zipfile
from pathlib import Path

import pytest

from addon_toolchain.core import executor as executor_module
from addon_toolchain.core.discovery import PackDiscovery
from addon_toolchain.core.executor import PackExecutor, removal_set
from addon_toolchain.core.registry import PluginRegistry
from addon_toolchain.errors import ConcurrentStepError, PackOperationError
from addon_toolchain.schemas import (
    ConditionalStep,
    Pack,
    PackCapability,
    PipelineContext,
    TaskCategory,
    ToolchainPlugin,
    ToolchainSettings,
)


def make_context(root: Path, packs=None, game_data_dir=None) -> PipelineContext:
    settings = ToolchainSettings(
        source_dir=root / "packs",
        bundle_dir=root / "out" / "bundled",
        package_dir=root / "out" / "packaged",
    ).resolved()
    ctx = PipelineContext(operation="test", mod_name="TestMod", settings=settings)
    if packs is not None:
        ctx.replace_packs(packs)
    ctx.game_data_dir = game_data_dir
    return ctx


def pack(relative_path, identity=None, capabilities=(PackCapability.BEHAVIOR,), name=None, version=None):
    return Pack(
        root_path=Path("/nowhere") / relative_path,
        relative_path=relative_path,
        display_name=name or relative_path,
        identity=identity,
        version=version,
        capabilities=frozenset(capabilities),
    )


class TestForEachPack:
    """Test suite for for_each_pack()"""

    @pytest.fixture
    def temp_dir(self):
        temp = Path(tempfile.mkdtemp())
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    @pytest.fixture
    def executor(self):
        return PackExecutor(PluginRegistry())

    @pytest.mark.asyncio
    async def test_empty_set_skips_action(self, executor, temp_dir):
        """Test that no matching packs completes without calling the action"""
        calls = []

        async def action(ctx, p):
            calls.append(p)

        ctx = make_context(temp_dir, packs=[pack("B", capabilities=(PackCapability.RESOURCES,))])
        result = await executor.for_each_pack(ctx, action, PackCapability.BEHAVIOR)

        assert result == []
        assert calls == []

    @pytest.mark.asyncio
    async def test_filters_by_capability(self, executor, temp_dir):
        """Test that only packs carrying the capability are visited"""
        seen = []

        async def action(ctx, p):
            seen.append(p.relative_path)

        packs = [
            pack("A", capabilities=(PackCapability.BEHAVIOR,)),
            pack("B", capabilities=(PackCapability.RESOURCES,)),
            pack("C", capabilities=(PackCapability.BEHAVIOR, PackCapability.RESOURCES)),
        ]
        await executor.for_each_pack(make_context(temp_dir, packs), action, PackCapability.RESOURCES)

        assert sorted(seen) == ["B", "C"]

    @pytest.mark.asyncio
    async def test_no_filter_visits_all(self, executor, temp_dir):
        seen = []

        async def action(ctx, p):
            seen.append(p.relative_path)

        await executor.for_each_pack(make_context(temp_dir, [pack("A"), pack("B")]), action)

        assert sorted(seen) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_one_failure_fails_group_after_others(self, executor, temp_dir):
        """Test that sibling packs still complete when one fails"""
        finished = []

        async def action(ctx, p):
            if p.relative_path == "bad":
                raise OSError("disk full")
            finished.append(p.relative_path)

        with pytest.raises(ConcurrentStepError):
            await executor.for_each_pack(make_context(temp_dir, [pack("bad"), pack("good")]), action)

        assert finished == ["good"]

    @pytest.mark.asyncio
    async def test_requires_discovery(self, executor, temp_dir):
        """Test that using the executor before discovery is an error"""
        async def action(ctx, p):
            return None

        with pytest.raises(RuntimeError, match="before discovery"):
            await executor.for_each_pack(make_context(temp_dir), action)


class TestRemovalSet:
    """Test suite for removal_set()"""

    def test_matches_by_identity(self):
        installed = [pack("old A", identity="a"), pack("other", identity="z"), pack("anon")]
        source = [pack("A", identity="a"), pack("B", identity="b"), pack("anon")]

        assert removal_set(installed, source) == ["old A"]

    def test_nothing_installed(self):
        assert removal_set([], [pack("A", identity="a")]) == []


class TestInstall:
    """Test suite for install reconciliation"""

    @pytest.fixture
    def temp_dir(self):
        temp = Path(tempfile.mkdtemp())
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    @pytest.mark.asyncio
    async def test_reinstall_removes_stale_files(self, temp_dir, make_pack):
        """Test that an installed pack with the same identity is deleted first"""
        game_dir = temp_dir / "com.mojang"
        installed_root = game_dir / "development_behavior_packs"
        make_pack(installed_root / "A", uuid="uuid-a", files={"scripts/removed.js": "old"})
        make_pack(installed_root / "Unrelated", uuid="uuid-x", files={"keep.txt": "keep"})

        make_pack(temp_dir / "out" / "bundled" / "A", uuid="uuid-a", files={"scripts/main.js": "new"})

        executor = PackExecutor(PluginRegistry())
        source_pack = PackDiscovery().discover(temp_dir / "out" / "bundled")[0]
        ctx = make_context(temp_dir, packs=[source_pack], game_data_dir=game_dir)

        removed = await executor.clean_installed(ctx, PackCapability.BEHAVIOR)
        await executor.install_all(ctx, PackCapability.BEHAVIOR)

        assert removed == ["A"]
        assert not (installed_root / "A" / "scripts" / "removed.js").exists()
        assert (installed_root / "A" / "scripts" / "main.js").read_text() == "new"
        assert (installed_root / "Unrelated" / "keep.txt").exists()

    @pytest.mark.asyncio
    async def test_install_applies_category_stages(self, temp_dir, make_pack):
        """Test that install-resource steps run only for resource installs"""
        class Stamp(ToolchainPlugin):
            name = "stamp"

            def __init__(self):
                super().__init__()
                self.steps[TaskCategory.INSTALL_RESOURCE] = [
                    ConditionalStep(match="**/*.json", action=lambda: lambda batch: [e.with_contents(b"{}") for e in batch])
                ]

        registry = PluginRegistry()
        registry.register(Stamp())
        make_pack(temp_dir / "out" / "bundled" / "R", uuid="r", module_types=("resources",), files={"texts/a.json": "[1]"})
        game_dir = temp_dir / "com.mojang"
        game_dir.mkdir()

        source_pack = PackDiscovery().discover(temp_dir / "out" / "bundled")[0]
        ctx = make_context(temp_dir, packs=[source_pack], game_data_dir=game_dir)
        await PackExecutor(registry).install_all(ctx, PackCapability.RESOURCES)

        assert (game_dir / "development_resource_packs" / "R" / "texts" / "a.json").read_text() == "{}"


class TestPackaging:
    """Test suite for .mcpack / .mcaddon creation"""

    @pytest.fixture
    def temp_dir(self):
        temp = Path(tempfile.mkdtemp())
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    def test_archive_name_template(self, temp_dir):
        executor = PackExecutor(PluginRegistry())
        ctx = make_context(temp_dir)

        assert executor.archive_name(ctx, pack("A", name="Alpha", version=(1, 2, 3))) == "TestMod - Alpha - v1.2.3"
        assert executor.archive_name(ctx, pack("B", name="Beta")) == "TestMod - Beta - vNo version in manifest"

    @pytest.mark.asyncio
    async def test_mcpack_and_mcaddon(self, temp_dir, make_pack):
        """Test per-pack archives and the combined add-on archive"""
        bundle = temp_dir / "out" / "bundled"
        make_pack(bundle / "A", name="Alpha", uuid="a", files={"scripts/main.js": "1"})
        make_pack(bundle / "B", name="Beta", uuid="b", module_types=("resources",), files={"textures/x.png": "2"})

        executor = PackExecutor(PluginRegistry())
        ctx = make_context(temp_dir, packs=PackDiscovery().discover(bundle))
        await executor.package_all(ctx)
        await executor.bundle_addon(ctx)

        package_dir = temp_dir / "out" / "packaged"
        alpha = package_dir / "TestMod - Alpha - v1.0.0.mcpack"
        assert alpha.exists()
        with zipfile.ZipFile(alpha) as archive:
            assert sorted(archive.namelist()) == ["A/manifest.json", "A/scripts/main.js"]

        with zipfile.ZipFile(package_dir / "TestMod.mcaddon") as archive:
            assert sorted(archive.namelist()) == [
                "TestMod - Alpha - v1.0.0.mcpack",
                "TestMod - Beta - v1.0.0.mcpack",
            ]

    @pytest.mark.asyncio
    async def test_clean_output(self, temp_dir):
        executor = PackExecutor(PluginRegistry())
        ctx = make_context(temp_dir)
        (temp_dir / "out" / "bundled" / "x").mkdir(parents=True)
        (temp_dir / "out" / "packaged").mkdir(parents=True)

        removed = await executor.clean_output(ctx)

        assert len(removed) == 2
        assert not (temp_dir / "out" / "bundled").exists()

    @pytest.mark.asyncio
    async def test_clean_output_wraps_os_errors(self, temp_dir, monkeypatch):
        """Test that a failed delete surfaces as a toolchain error"""
        def locked(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(executor_module, "remove_tree", locked)
        ctx = make_context(temp_dir)

        with pytest.raises(PackOperationError, match="clean failed"):
            await PackExecutor(PluginRegistry()).clean_output(ctx)

    @pytest.mark.asyncio
    async def test_bundle_wraps_transformer_errors(self, temp_dir):
        """Test that a failing bundling step becomes a PackOperationError"""
        def broken():
            def transform(batch):
                raise ValueError("bad archive")
            return transform

        class BrokenBundler(ToolchainPlugin):
            name = "broken"

            def __init__(self):
                super().__init__()
                self.steps[TaskCategory.BUNDLING] = [ConditionalStep(match="*.mcpack", action=broken)]

        registry = PluginRegistry()
        registry.register(BrokenBundler())
        package_dir = temp_dir / "out" / "packaged"
        package_dir.mkdir(parents=True)
        (package_dir / "A.mcpack").write_bytes(b"zip")

        with pytest.raises(PackOperationError, match="bad archive") as exc_info:
            await PackExecutor(registry).bundle_addon(make_context(temp_dir))

        assert isinstance(exc_info.value.cause, ValueError)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
