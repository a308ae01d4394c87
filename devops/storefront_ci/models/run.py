"""
Pipeline run models - the transient record of one trigger event.
Never persisted; the CI platform's run history is the system of record.
"""

from enum import Enum
from typing import Optional, List, Dict, Any, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from .revision import Revision


class TriggerKind(Enum):
    """Repository events that start a pipeline run."""
    PULL_REQUEST = "pull_request"
    MERGE_GROUP = "merge_group"
    WORKFLOW_RUN = "workflow_run"
    WORKFLOW_DISPATCH = "workflow_dispatch"
    PUSH = "push"
    MANUAL = "manual"


class Stage(Enum):
    """Pipeline stages."""
    INTEGRATION_CHECK = "integration_check"
    DEPLOY = "deploy"
    ACCEPTANCE_TEST = "acceptance_test"
    PREVIEW_COMMENT = "preview_comment"
    ROLLBACK = "rollback"


class StageOutcome(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class PipelineStatus(Enum):
    """Terminal status of a run."""
    RUNNING = "running"
    PASS = "pass"
    FAIL = "fail"
    BLOCKED = "blocked"


@dataclass
class StageResult:
    """Result of a single pipeline stage."""
    stage: Stage
    outcome: StageOutcome
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    message: str = ""
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.outcome == StageOutcome.PASSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "outcome": self.outcome.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "message": self.message,
            "error": self.error,
        }


@dataclass
class PipelineRun:
    """Complete record of one pipeline run."""
    run_id: str
    trigger: TriggerKind
    status: PipelineStatus = PipelineStatus.RUNNING
    revision: Optional[Revision] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    total_duration_seconds: float = 0.0

    stages: List[StageResult] = field(default_factory=list)
    deployment_url: Optional[str] = None
    rollback_requested: bool = False
    errors: List[str] = field(default_factory=list)

    def record(self, result: StageResult) -> StageResult:
        self.stages.append(result)
        return result

    def stage(self, stage: Stage) -> Optional[StageResult]:
        """The last recorded result for ``stage``."""
        for result in reversed(self.stages):
            if result.stage == stage:
                return result
        return None

    @property
    def failed_stage(self) -> Optional[Stage]:
        for result in self.stages:
            if result.outcome == StageOutcome.FAILED:
                return result.stage
        return None

    def passed_in_order(self, required: Sequence[Stage]) -> bool:
        """
        True if the recorded stages start with ``required``, in that order,
        and every one of them passed.
        """
        recorded = [r for r in self.stages if r.stage in required]
        if [r.stage for r in recorded] != list(required):
            return False
        return all(r.passed for r in recorded)

    def finish(self, status: PipelineStatus) -> "PipelineRun":
        self.status = status
        self.finished_at = datetime.now()
        self.total_duration_seconds = (self.finished_at - self.started_at).total_seconds()
        return self

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineStatus.PASS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "trigger": self.trigger.value,
            "status": self.status.value,
            "revision": self.revision.to_dict() if self.revision else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total_duration_seconds": self.total_duration_seconds,
            "deployment_url": self.deployment_url,
            "rollback_requested": self.rollback_requested,
            "stages": [s.to_dict() for s in self.stages],
            "errors": self.errors,
        }
