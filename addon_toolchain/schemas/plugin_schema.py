"""
Plugin Schema - Contract between the toolchain and its plugins

A plugin contributes ConditionalSteps to named task categories.
The registry resolves them into an ordered chain of Stages which the
executor applies to each pack's file stream.

Plugins are explicit objects (subclass ToolchainPlugin) rather than
duck-typed bags of optional attributes, so the registry can ask what a
plugin contributes via its capability flags.
"""
import inspect
import re
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from addon_toolchain.errors import ConfigurationError
from .pack_schema import Pack

if TYPE_CHECKING:
    from addon_toolchain.core.runner import Step


class TaskCategory(str, Enum):
    """Pipeline points at which plugins may contribute steps"""
    SOURCE = "source"
    INSTALL_BEHAVIOR = "install_behavior"
    INSTALL_RESOURCE = "install_resource"
    PACKAGING = "packaging"
    BUNDLING = "bundling"


class PluginCapability(str, Enum):
    """What a plugin contributes"""
    SOURCE_STEPS = "source_steps"
    INSTALL_STEPS = "install_steps"
    PACKAGING_STEPS = "packaging_steps"
    DEFAULT_TASK_HOOK = "default_task_hook"


CATEGORY_CAPABILITIES = {
    TaskCategory.SOURCE: PluginCapability.SOURCE_STEPS,
    TaskCategory.INSTALL_BEHAVIOR: PluginCapability.INSTALL_STEPS,
    TaskCategory.INSTALL_RESOURCE: PluginCapability.INSTALL_STEPS,
    TaskCategory.PACKAGING: PluginCapability.PACKAGING_STEPS,
    TaskCategory.BUNDLING: PluginCapability.PACKAGING_STEPS,
}


class FileEntry(BaseModel):
    """A single file flowing through a transformer chain"""
    relative_path: str = Field(..., description="POSIX path relative to the stream base")
    contents: bytes = Field(b"")
    source_path: Optional[Path] = Field(None, description="Where the file was read from, if anywhere")

    def with_contents(self, contents: bytes) -> "FileEntry":
        return self.model_copy(update={"contents": contents})

    def with_path(self, relative_path: str) -> "FileEntry":
        return self.model_copy(update={"relative_path": relative_path})


# A transformer takes the batch of matching entries and returns the entries to keep.
Transformer = Callable[[List[FileEntry]], Iterable[FileEntry]]


def glob_matches(pattern: str, relative_path: str) -> bool:
    """fnmatch a POSIX relative path; a leading '**/' also matches top-level files"""
    if fnmatchcase(relative_path, pattern):
        return True
    if pattern.startswith("**/"):
        return fnmatchcase(relative_path, pattern[3:])
    return False


class ConditionalStep(BaseModel):
    """
    A transformation gated by a file-matching predicate

    match may be a glob string, a compiled regex, or a callable taking the
    entry's relative path. action is a factory returning a Transformer; it
    is called with no arguments, or with the current pack when it accepts one.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    match: Any = Field(..., description="Glob, compiled regex, or predicate(relative_path)")
    action: Callable[..., Transformer] = Field(..., description="Factory producing a Transformer")
    suppress_default: bool = Field(False, description="Also drop matching files from default handling")
    description: Optional[str] = Field(None)

    @field_validator("match")
    @classmethod
    def _check_match(cls, value):
        if isinstance(value, (str, re.Pattern)) or callable(value):
            return value
        raise ValueError(f"match must be a glob, regex or callable, got {type(value).__name__}")

    def matches(self, relative_path: str) -> bool:
        if isinstance(self.match, str):
            return glob_matches(self.match, relative_path)
        if isinstance(self.match, re.Pattern):
            return self.match.search(relative_path) is not None
        return bool(self.match(relative_path))

    def build_transformer(self, pack: Optional[Pack] = None) -> Transformer:
        try:
            takes_pack = len(inspect.signature(self.action).parameters) > 0
        except (TypeError, ValueError):
            takes_pack = False
        return self.action(pack) if takes_pack else self.action()


class StageKind(str, Enum):
    APPLY = "apply"
    EXCLUDE = "exclude"


class Stage(BaseModel):
    """One resolved link of a category chain"""
    kind: StageKind
    step: ConditionalStep
    plugin_name: str = Field("plugin")


class ToolchainPlugin:
    """
    Base class for toolchain plugins

    Subclasses fill in `steps` and may override add_default_tasks() to
    splice extra stages into the default task table.
    """

    name: str = "plugin"
    min_engine_version: int = 0

    def __init__(self):
        self.steps: Dict[TaskCategory, List[ConditionalStep]] = {}
        self.builder = None

    def steps_for(self, category: TaskCategory) -> List[ConditionalStep]:
        return list(self.steps.get(category, []))

    def contributes(self, category: TaskCategory) -> bool:
        return bool(self.steps.get(category))

    @property
    def capabilities(self) -> FrozenSet[PluginCapability]:
        found = {CATEGORY_CAPABILITIES[category] for category, steps in self.steps.items() if steps}
        if type(self).add_default_tasks is not ToolchainPlugin.add_default_tasks:
            found.add(PluginCapability.DEFAULT_TASK_HOOK)
        return frozenset(found)

    def attach(self, builder) -> None:
        """Called once when the plugin is registered; rejects old engines"""
        engine_version = getattr(builder, "engine_version", 0)
        if engine_version < self.min_engine_version:
            raise ConfigurationError(
                f"{self.name} requires toolchain engine version {self.min_engine_version} "
                f"or higher (running {engine_version})"
            )
        self.builder = builder

    def add_default_tasks(self, tasks: Dict[str, "Step"]) -> None:
        """Hook run once after the default task table is wired"""
        return None

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


__all__ = [
    "TaskCategory",
    "PluginCapability",
    "CATEGORY_CAPABILITIES",
    "FileEntry",
    "Transformer",
    "glob_matches",
    "ConditionalStep",
    "StageKind",
    "Stage",
    "ToolchainPlugin",
]
