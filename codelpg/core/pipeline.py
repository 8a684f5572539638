"""
Pipeline orchestration for the graph extraction engine.

Implements a state-machine based pipeline that runs the discovery
phases strictly in order, each with a clear input/output contract.
A phase that fails as a whole aborts the run with a single
ExtractionError; failures of individual entities are recorded on the
state and never abort the run.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from codelpg.core.config import PipelineConfig, Config
from codelpg.core.exceptions import ExtractionError, PipelineError

logger = logging.getLogger(__name__)


class StageStatus(Enum):
    """Status of a pipeline stage."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StageResult:
    """Result from a pipeline stage execution."""

    stage_name: str
    status: StageStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    output: Any = None
    error: Optional[str] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "stage_name": self.stage_name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
            "metrics": self.metrics,
        }


@dataclass
class PipelineState:
    """
    Maintains the complete state of one extraction run.

    The `data` mapping carries per-run objects shared between stages
    (the graph under construction, the provider, the symbol registries).
    """

    pipeline_id: str
    source: str
    created_at: datetime = field(default_factory=datetime.now)
    stage_results: Dict[str, StageResult] = field(default_factory=dict)
    current_stage: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def get_stage_status(self, stage_name: str) -> StageStatus:
        """Get the status of a specific stage."""
        if stage_name in self.stage_results:
            return self.stage_results[stage_name].status
        return StageStatus.PENDING

    def is_stage_completed(self, stage_name: str) -> bool:
        """Check if a stage has completed successfully."""
        return self.get_stage_status(stage_name) == StageStatus.COMPLETED

    def record_stage_start(self, stage_name: str) -> None:
        """Record that a stage has started."""
        self.current_stage = stage_name
        self.stage_results[stage_name] = StageResult(
            stage_name=stage_name,
            status=StageStatus.RUNNING,
            started_at=datetime.now(),
        )

    def record_stage_completion(
        self, stage_name: str, output: Any, metrics: Dict[str, Any] = None
    ) -> None:
        """Record that a stage has completed successfully."""
        if stage_name in self.stage_results:
            result = self.stage_results[stage_name]
            result.status = StageStatus.COMPLETED
            result.completed_at = datetime.now()
            result.output = output
            result.metrics = metrics or {}

    def record_stage_failure(self, stage_name: str, error: str) -> None:
        """Record that a stage has failed."""
        if stage_name in self.stage_results:
            result = self.stage_results[stage_name]
            result.status = StageStatus.FAILED
            result.completed_at = datetime.now()
            result.error = error

    def record_entity_error(self, stage_name: str, entity: str, error: Exception) -> None:
        """Record a recovered failure while processing a single entity."""
        self.errors.append({
            "stage": stage_name,
            "entity": entity,
            "error": str(error),
            "type": type(error).__name__,
        })

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to dictionary for serialization."""
        return {
            "pipeline_id": self.pipeline_id,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
            "current_stage": self.current_stage,
            "stage_results": {
                name: result.to_dict()
                for name, result in self.stage_results.items()
            },
            "errors": self.errors,
        }


class PipelineStage(ABC):
    """
    Abstract base class for pipeline stages.

    Each stage must implement the execute method and define its
    input/output contracts.
    """

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this stage."""
        pass

    @property
    def dependencies(self) -> List[str]:
        """List of stage names that must complete before this stage."""
        return []

    @abstractmethod
    def execute(self, state: PipelineState) -> Tuple[Any, Dict[str, Any]]:
        """
        Execute the stage processing.

        Args:
            state: Current pipeline state with data from previous stages.

        Returns:
            Tuple of (output_data, metrics_dict).

        Raises:
            PipelineError: If stage execution fails.
        """
        pass

    def validate_inputs(self, state: PipelineState) -> bool:
        """
        Validate that required inputs are available.

        Args:
            state: Current pipeline state.

        Returns:
            True if inputs are valid, False otherwise.
        """
        for dep in self.dependencies:
            if not state.is_stage_completed(dep):
                self.logger.error(f"Dependency not met: {dep}")
                return False
        return True

    def skip_entity(self, state: PipelineState, entity: str, error: Exception) -> None:
        """Log and record an entity whose processing failed."""
        self.logger.warning(f"Skipping {entity}: {error}")
        state.record_entity_error(self.name, entity, error)


class Pipeline:
    """
    Main pipeline orchestrator for graph extraction.

    Coordinates the execution of all stages in the configured order and
    turns any stage-level failure into a single ExtractionError.
    """

    def __init__(self, config: PipelineConfig = None):
        self.config = config or Config.get()
        self.stages: Dict[str, PipelineStage] = {}
        self.execution_order: List[str] = []
        self.logger = logging.getLogger(__name__)

    def register_stage(self, stage: PipelineStage) -> None:
        """Register a stage with the pipeline."""
        self.stages[stage.name] = stage
        self.logger.debug(f"Registered stage: {stage.name}")

    def set_execution_order(self, order: List[str]) -> None:
        """
        Set the order in which stages should execute.

        Args:
            order: List of stage names in execution order.

        Raises:
            ValueError: If a stage in the order is not registered.
        """
        for stage_name in order:
            if stage_name not in self.stages:
                raise ValueError(f"Unknown stage: {stage_name}")
        self.execution_order = order

    def create_state(self, source: str) -> PipelineState:
        """Create a fresh state for one run."""
        return PipelineState(
            pipeline_id=str(uuid.uuid4())[:8],
            source=source,
        )

    def run(self, state: PipelineState) -> PipelineState:
        """
        Run every stage in order against the given state.

        Args:
            state: State prepared by the caller (see create_state).

        Returns:
            Final pipeline state with all results.

        Raises:
            ExtractionError: If any stage fails or its dependencies are unmet.
        """
        self.logger.info(f"Starting pipeline {state.pipeline_id} for {state.source}")

        for stage_name in self.execution_order:
            stage = self.stages[stage_name]

            if not stage.validate_inputs(state):
                raise ExtractionError(
                    f"Stage {stage_name} dependencies not met",
                    details={"stage": stage_name, "dependencies": stage.dependencies},
                )

            self.logger.debug(f"Executing stage: {stage_name}")
            state.record_stage_start(stage_name)

            try:
                output, metrics = stage.execute(state)
            except PipelineError as e:
                state.record_stage_failure(stage_name, str(e))
                self.logger.error(f"Stage {stage_name} failed: {e}")
                raise ExtractionError(
                    f"Stage {stage_name} failed: {e}",
                    details={"stage": stage_name, **e.details},
                ) from e
            except Exception as e:
                state.record_stage_failure(stage_name, str(e))
                self.logger.exception(f"Unexpected error in stage {stage_name}")
                raise ExtractionError(
                    f"Unexpected error in stage {stage_name}: {e}",
                    details={"stage": stage_name, "type": type(e).__name__},
                ) from e

            state.record_stage_completion(stage_name, output, metrics)
            state.data[stage_name] = output
            self.logger.info(f"Stage {stage_name} completed: {metrics}")

        return state

    def get_stage(self, name: str) -> Optional[PipelineStage]:
        """Get a registered stage by name."""
        return self.stages.get(name)

    def list_stages(self) -> List[str]:
        """List all registered stage names."""
        return list(self.stages.keys())
