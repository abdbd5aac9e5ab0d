"""
Task Schema - Per-run pipeline state

A PipelineContext is created for every named operation the builder runs.
It carries the discovered pack set and resolved directories explicitly
from stage to stage, so a stage that needs packs fails loudly when
discovery has not run yet instead of reading stale state.
"""
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .pack_schema import Pack, PackCapability
from .settings_schema import ToolchainSettings


class StepStatus(str, Enum):
    """Step execution status"""
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PipelineState(str, Enum):
    """Coarse state of one pipeline run"""
    IDLE = "IDLE"
    DISCOVERING = "DISCOVERING"
    BUILDING = "BUILDING"
    INSTALLING = "INSTALLING"
    PACKAGING = "PACKAGING"


class StepRecord(BaseModel):
    """Execution record of a single named step"""
    name: str
    status: StepStatus = Field(StepStatus.PENDING)
    started_at: Optional[datetime] = Field(None)
    completed_at: Optional[datetime] = Field(None)
    error_message: Optional[str] = Field(None)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


class PipelineContext(BaseModel):
    """
    State handed to every step of one operation

    packs is None until a discovery step has run in this context.
    game_data_dir is None until the data directory step has run.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    operation: str = Field(..., description="Name of the operation being run")
    mod_name: str
    settings: ToolchainSettings
    packs: Optional[Tuple[Pack, ...]] = Field(None, description="Current pack set (replaced, never merged)")
    game_data_dir: Optional[Path] = Field(None)
    state: PipelineState = Field(PipelineState.IDLE)
    state_history: List[PipelineState] = Field(default_factory=list)
    steps: List[StepRecord] = Field(default_factory=list)
    error: Optional[str] = Field(None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def require_packs(self) -> Tuple[Pack, ...]:
        if self.packs is None:
            raise RuntimeError(f"[{self.operation}] packs used before discovery ran")
        return self.packs

    def require_game_data_dir(self) -> Path:
        if self.game_data_dir is None:
            raise RuntimeError(f"[{self.operation}] game data directory used before it was resolved")
        return self.game_data_dir

    def replace_packs(self, packs: List[Pack]):
        self.packs = tuple(packs)

    def packs_with(self, capability: Optional[PackCapability] = None) -> List[Pack]:
        packs = self.require_packs()
        if capability is None:
            return list(packs)
        return [p for p in packs if p.has_capability(capability)]

    def enter(self, state: PipelineState):
        self.state = state
        self.state_history.append(state)

    def mark_started(self, name: str) -> StepRecord:
        record = StepRecord(name=name, status=StepStatus.RUNNING, started_at=datetime.utcnow())
        self.steps.append(record)
        return record

    def mark_completed(self, record: StepRecord):
        record.status = StepStatus.COMPLETED
        record.completed_at = datetime.utcnow()

    def mark_failed(self, record: StepRecord, error_message: str):
        record.status = StepStatus.FAILED
        record.error_message = error_message
        record.completed_at = datetime.utcnow()

    @property
    def completed_steps(self) -> List[str]:
        return [s.name for s in self.steps if s.status == StepStatus.COMPLETED]

    @property
    def failed_steps(self) -> List[str]:
        return [s.name for s in self.steps if s.status == StepStatus.FAILED]


__all__ = [
    "StepStatus",
    "PipelineState",
    "StepRecord",
    "PipelineContext",
]
