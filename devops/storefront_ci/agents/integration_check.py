"""
Integration Check Agent - static checks, build and optional acceptance run.

Responsible for:
- Verifying the Node.js runtime matches the configured version
- Installing dependencies
- Lint, type-check and build, in that order, stopping at the first failure
- Running the acceptance suite when, and only when, a base URL is supplied
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List

from .base_agent import BaseAgent
from ..acceptance.suite import AcceptanceSuite, SuiteResult
from ..core.executor import CommandExecutor
from ..core.security import SecurityError


class CheckStep(Enum):
    """Steps of the integration check, in execution order."""
    RUNTIME = "runtime"
    INSTALL = "install"
    LINT = "lint"
    TYPECHECK = "typecheck"
    BUILD = "build"
    ACCEPTANCE = "acceptance"


class StepStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class CheckStepResult:
    step: CheckStep
    status: StepStatus
    duration_seconds: float = 0.0
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.value,
            "status": self.status.value,
            "duration_seconds": self.duration_seconds,
            "detail": self.detail,
        }


@dataclass
class IntegrationCheckResult:
    """Result of an integration check."""
    success: bool = False
    base_url: Optional[str] = None
    steps: List[CheckStepResult] = field(default_factory=list)
    failed_step: Optional[CheckStep] = None
    acceptance: Optional[SuiteResult] = None
    duration_seconds: float = 0.0

    def status_of(self, step: CheckStep) -> Optional[StepStatus]:
        for result in self.steps:
            if result.step == step:
                return result.status
        return None

    @property
    def error(self) -> Optional[str]:
        if self.failed_step is None:
            return None
        detail = next((s.detail for s in self.steps if s.step == self.failed_step), "")
        return f"{self.failed_step.value} failed" + (f": {detail}" if detail else "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "base_url": self.base_url,
            "steps": [s.to_dict() for s in self.steps],
            "failed_step": self.failed_step.value if self.failed_step else None,
            "acceptance": self.acceptance.to_dict() if self.acceptance else None,
            "duration_seconds": self.duration_seconds,
        }


class IntegrationCheckAgent(BaseAgent):
    """
    Integration Check for a storefront checkout.

    Usage:
        agent = IntegrationCheckAgent()
        result = await agent.run()                      # static checks + build
        result = await agent.run(base_url=preview_url)  # ... + acceptance suite

        if not result.success:
            print(f"Failed at: {result.failed_step.value}")
    """

    def __init__(
        self,
        working_dir: Path = None,
        executor: CommandExecutor = None,
        acceptance_suite: AcceptanceSuite = None,
    ):
        super().__init__("IntegrationCheck", working_dir, executor)
        self.acceptance_suite = acceptance_suite

    def _commands(self) -> List[tuple]:
        runtime = self.config.runtime
        return [
            (CheckStep.INSTALL, runtime.install_command),
            (CheckStep.LINT, runtime.lint_command),
            (CheckStep.TYPECHECK, runtime.typecheck_command),
            (CheckStep.BUILD, runtime.build_command),
        ]

    async def run(self, base_url: str = None) -> IntegrationCheckResult:
        """
        Run the integration check.

        Args:
            base_url: Live URL to run the acceptance suite against; when
                omitted the acceptance step is skipped, not failed

        Returns:
            IntegrationCheckResult naming the first failing step, if any
        """
        result = IntegrationCheckResult(base_url=base_url)
        started_at = datetime.now()
        env = self.config.store.build_env()

        await self._check_runtime(result)

        for step, command in self._commands():
            if result.failed_step is not None:
                break
            if not command.strip():
                if step == CheckStep.INSTALL:
                    result.steps.append(CheckStepResult(step, StepStatus.SKIPPED, detail="not configured"))
                    continue
                # lint/typecheck/build are mandatory
                result.steps.append(CheckStepResult(step, StepStatus.FAILED, detail="no command configured"))
                result.failed_step = step
                break

            self.logger.step(f"{step.value}: {command}")
            command_result = await self.executor.run(
                command,
                timeout=self.config.runtime.step_timeout_seconds,
                env=env,
            )

            if command_result.success:
                result.steps.append(CheckStepResult(step, StepStatus.PASSED, command_result.duration_seconds))
                continue

            result.steps.append(CheckStepResult(
                step,
                StepStatus.FAILED,
                command_result.duration_seconds,
                detail=command_result.tail(),
            ))
            result.failed_step = step
            break

        if result.failed_step is None:
            await self._run_acceptance(result)

        result.success = result.failed_step is None
        result.duration_seconds = (datetime.now() - started_at).total_seconds()

        if result.success:
            self.logger.success(f"Integration check passed in {result.duration_seconds:.1f}s")
        else:
            self.logger.error(f"Integration check failed at {result.failed_step.value}")

        return result

    async def _run_acceptance(self, result: IntegrationCheckResult) -> None:
        if not result.base_url:
            result.steps.append(CheckStepResult(CheckStep.ACCEPTANCE, StepStatus.SKIPPED, detail="no base URL"))
            self.logger.info("No base URL supplied, acceptance tests skipped")
            return

        self.logger.step(f"acceptance: {result.base_url}")
        suite = self.acceptance_suite or AcceptanceSuite()
        try:
            suite_result = await suite.run(result.base_url)
        except SecurityError as e:
            result.steps.append(CheckStepResult(CheckStep.ACCEPTANCE, StepStatus.FAILED, detail=str(e)))
            result.failed_step = CheckStep.ACCEPTANCE
            return
        result.acceptance = suite_result

        if suite_result.passed:
            result.steps.append(CheckStepResult(
                CheckStep.ACCEPTANCE, StepStatus.PASSED, suite_result.duration_seconds,
            ))
        else:
            failed = ", ".join(suite_result.failed_scenarios + suite_result.errors)
            result.steps.append(CheckStepResult(
                CheckStep.ACCEPTANCE, StepStatus.FAILED, suite_result.duration_seconds, detail=failed,
            ))
            result.failed_step = CheckStep.ACCEPTANCE

    async def _check_runtime(self, result: IntegrationCheckResult) -> None:
        wanted = self.config.runtime.node_version.strip().lstrip("v")
        if not wanted:
            result.steps.append(CheckStepResult(CheckStep.RUNTIME, StepStatus.SKIPPED, detail="not configured"))
            return

        self.logger.step(f"runtime: node {wanted}")
        command_result = await self.executor.run("node --version", timeout=30)
        found = command_result.stdout.strip().lstrip("v")

        if not command_result.success:
            detail = f"node not available: {command_result.tail(5)}"
        elif found == wanted or found.startswith(f"{wanted}."):
            result.steps.append(CheckStepResult(
                CheckStep.RUNTIME, StepStatus.PASSED, command_result.duration_seconds, detail=f"node v{found}",
            ))
            return
        else:
            detail = f"node v{found or '?'} found, {wanted} required"

        result.steps.append(CheckStepResult(
            CheckStep.RUNTIME, StepStatus.FAILED, command_result.duration_seconds, detail=detail,
        ))
        result.failed_step = CheckStep.RUNTIME
