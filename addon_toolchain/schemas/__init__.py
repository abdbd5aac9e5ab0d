"""
Schemas for the Add-on Toolchain

These schemas define the contracts between pipeline stages:
- Pack: discovered content package (from manifest.json)
- Plugin: conditional steps contributed per task category
- Task: per-run pipeline context and step records
- Settings: resolved directories and naming
"""
from .pack_schema import (
    UNNAMED_PACK,
    NO_VERSION,
    PackCapability,
    Manifest,
    ManifestHeader,
    ManifestModule,
    Pack,
)
from .plugin_schema import (
    TaskCategory,
    PluginCapability,
    FileEntry,
    Transformer,
    ConditionalStep,
    StageKind,
    Stage,
    ToolchainPlugin,
)
from .settings_schema import ToolchainSettings
from .task_schema import StepStatus, PipelineState, StepRecord, PipelineContext

__all__ = [
    # Pack
    "UNNAMED_PACK",
    "NO_VERSION",
    "PackCapability",
    "Manifest",
    "ManifestHeader",
    "ManifestModule",
    "Pack",
    # Plugin
    "TaskCategory",
    "PluginCapability",
    "FileEntry",
    "Transformer",
    "ConditionalStep",
    "StageKind",
    "Stage",
    "ToolchainPlugin",
    # Settings
    "ToolchainSettings",
    # Task
    "StepStatus",
    "PipelineState",
    "StepRecord",
    "PipelineContext",
]
