"""
Base Agent class for the release pipeline.
All pipeline stages inherit from this base.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict
from pathlib import Path

from ..core.errors import PipelineError
from ..core.executor import CommandExecutor
from ..core.logger import StageLogger
from ..core.security import SecurityError
from ..config import get_config
from ..models.run import Stage, StageOutcome, StageResult


class BaseAgent(ABC):
    """
    Abstract base class for pipeline agents.
    Provides the shared executor, logger and stage bookkeeping.
    """

    def __init__(
        self,
        name: str,
        working_dir: Path = None,
        executor: CommandExecutor = None,
    ):
        self.name = name
        self.config = get_config()
        self.working_dir = working_dir or self.config.workspace_dir

        self.logger = StageLogger(name)
        self.executor = executor or CommandExecutor(working_dir=self.working_dir, logger=self.logger)

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Execute the agent's main task."""
        pass

    async def _run_stage(
        self,
        stage: Stage,
        action: Callable[[], Awaitable[Dict[str, Any]]],
    ) -> StageResult:
        """
        Run one stage action and time it.

        The action returns a dict with ``success`` and optionally ``message``,
        ``error`` and ``skipped``; any other keys are kept as stage data.
        """
        result = StageResult(stage=stage, outcome=StageOutcome.FAILED, started_at=datetime.now())

        self.logger.step(f"{stage.value.upper()}")

        try:
            step_data = await action()
        except (PipelineError, SecurityError) as e:
            step_data = {"success": False, "error": str(e), "message": f"{stage.value} failed"}

        if step_data.get("skipped"):
            result.outcome = StageOutcome.SKIPPED
        elif step_data.get("success"):
            result.outcome = StageOutcome.PASSED
        result.message = step_data.get("message", "")
        result.error = step_data.get("error")
        result.data = step_data

        result.finished_at = datetime.now()
        result.duration_seconds = (result.finished_at - result.started_at).total_seconds()

        if result.outcome == StageOutcome.PASSED:
            self.logger.success(f"{stage.value} completed in {result.duration_seconds:.1f}s")
        elif result.outcome == StageOutcome.SKIPPED:
            self.logger.info(f"{stage.value} skipped: {result.message}")
        else:
            self.logger.error(f"{stage.value} failed: {result.error}")

        return result
