"""
Pipeline Orchestrator - routes a repository event to the right pipeline.

    pull_request                               -> Preview Publisher
    merge_group                                -> Production Publisher
    workflow_run (production workflow failed)  -> Rollback Agent, when the
                                                  failed run left a rollback request
    workflow_dispatch with a revision input    -> Rollback Agent (manual)
    anything else                              -> no-op, BLOCKED
"""

from pathlib import Path
from typing import Optional, Dict, Any

import httpx

from .base_agent import BaseAgent
from .preview_publisher import PreviewPublisher
from .production_publisher import ProductionPublisher, ROLLBACK_STATUS_CONTEXT
from .rollback_agent import RollbackAgent, RollbackResult
from ..core.errors import PipelineError
from ..core.executor import CommandExecutor
from ..core.logger import bind_run_context
from ..core.notifier import Notifier
from ..core.security import InputValidator, SecurityError
from ..integrations.actions import ActionsContext, TriggerEvent
from ..integrations.github_client import GitHubAPIError, GitHubClient
from ..models.revision import Revision
from ..models.run import PipelineRun, PipelineStatus, Stage, TriggerKind
from ..utils.helpers import generate_id, format_duration


PREVIEW_ACTIONS = (None, "opened", "synchronize", "reopened")
MERGE_GROUP_ACTIONS = (None, "checks_requested")

STATUS_ICONS = {
    PipelineStatus.PASS: "✅",
    PipelineStatus.FAIL: "❌",
    PipelineStatus.BLOCKED: "⏸️",
    PipelineStatus.RUNNING: "⏳",
}


def render_summary(run: PipelineRun, title: str = "Storefront pipeline") -> str:
    """Markdown job summary for a finished run."""
    lines = [
        f"## {STATUS_ICONS.get(run.status, '')} {title}: {run.status.value}",
        "",
        f"- Trigger: `{run.trigger.value}`",
    ]
    if run.revision:
        lines.append(f"- Revision: `{run.revision.short_sha}`")
    if run.deployment_url:
        lines.append(f"- URL: {run.deployment_url}")
    if run.rollback_requested:
        lines.append("- Rollback requested")
    lines.append(f"- Duration: {format_duration(run.total_duration_seconds)}")

    if run.stages:
        lines += ["", "| Stage | Outcome | Duration |", "|-------|---------|----------|"]
        for stage in run.stages:
            lines.append(
                f"| {stage.stage.value} | {stage.outcome.value} | {format_duration(stage.duration_seconds)} |"
            )

    if run.errors:
        lines += ["", "**Errors:**"]
        lines += [f"- {error}" for error in run.errors]

    return "\n".join(lines) + "\n"


class PipelineOrchestrator(BaseAgent):
    """
    Entry point for CI: one event in, one finished PipelineRun out.

    Usage:
        orchestrator = PipelineOrchestrator()
        run = await orchestrator.dispatch(TriggerEvent.from_actions_env())
        sys.exit(0 if run.status != PipelineStatus.FAIL else 1)
    """

    def __init__(
        self,
        working_dir: Path = None,
        executor: CommandExecutor = None,
        preview: PreviewPublisher = None,
        production: ProductionPublisher = None,
        rollback: RollbackAgent = None,
        actions: ActionsContext = None,
        github: GitHubClient = None,
    ):
        super().__init__("Orchestrator", working_dir, executor)
        self.preview = preview
        self.production = production
        self.rollback = rollback
        self.actions = actions or ActionsContext()
        self.github = github

    async def run(self, event: TriggerEvent) -> PipelineRun:
        return await self.dispatch(event)

    async def dispatch(self, event: TriggerEvent) -> PipelineRun:
        """
        Route ``event`` and publish the outcome as step outputs and summary.

        Returns:
            The finished PipelineRun
        """
        self.logger.info(f"Event: {event.kind.value} ({event.action or 'no action'})")

        if event.kind == TriggerKind.PULL_REQUEST and event.action in PREVIEW_ACTIONS:
            run = await self._preview_publisher().run(event)

        elif event.kind == TriggerKind.MERGE_GROUP and event.action in MERGE_GROUP_ACTIONS:
            if event.revision is None:
                run = self._blocked(event, "merge_group event carries no head revision")
            else:
                run = await self._production_publisher().run(event.revision, trigger=event.kind)

        elif event.kind == TriggerKind.WORKFLOW_RUN and self._is_failed_production_run(event):
            run = await self._roll_back_failed_production(event)

        elif event.kind == TriggerKind.WORKFLOW_DISPATCH and event.inputs.get("revision"):
            run = await self.run_rollback(
                target_revision=str(event.inputs["revision"]),
                failed_revision=event.inputs.get("failed_revision") or None,
                reason=event.inputs.get("reason") or "manual rollback",
                trigger=event.kind,
            )

        else:
            run = self._blocked(
                event, f"No pipeline handles {event.kind.value} events (action: {event.action or 'none'})",
            )

        self.publish(run)
        return run

    async def run_rollback(
        self,
        failed_revision: Any = None,
        target_revision: str = None,
        reason: str = "",
        trigger: TriggerKind = TriggerKind.MANUAL,
    ) -> PipelineRun:
        """Run the Rollback Agent and record it as a single-stage run."""
        if isinstance(failed_revision, str):
            failed_revision = Revision(sha=failed_revision)

        run = PipelineRun(run_id=generate_id("rollback"), trigger=trigger, revision=failed_revision)
        bind_run_context(run_id=run.run_id)
        run.rollback_requested = True

        stage = run.record(await self._run_stage(
            Stage.ROLLBACK,
            lambda: self._rollback_action(failed_revision, target_revision, reason),
        ))
        rollback: Optional[RollbackResult] = stage.data.get("rollback")

        if rollback and rollback.url:
            run.deployment_url = rollback.url
        if not stage.passed:
            run.errors.append(f"Rollback failed: {stage.error}")
            return run.finish(PipelineStatus.FAIL)
        return run.finish(PipelineStatus.PASS)

    async def _rollback_action(
        self,
        failed_revision: Optional[Revision],
        target_revision: Optional[str],
        reason: str,
    ) -> Dict[str, Any]:
        result = await self._rollback_agent().run(
            failed_revision=failed_revision,
            target_revision=target_revision,
            reason=reason,
        )
        return {
            "success": result.success,
            "message": f"Rolled back to {result.rolled_back_to}" if result.success else "Rollback failed",
            "error": "; ".join(result.errors) or None,
            "rollback": result,
        }

    async def _roll_back_failed_production(self, event: TriggerEvent) -> PipelineRun:
        """
        Roll back after a failed production workflow.

        The production run rolls back inline when auto rollback is on, and
        otherwise leaves a rollback request on the revision only once it has
        deployed. Either way this route redeploys at most once per failure.
        """
        if event.revision is None:
            return self._blocked(event, "workflow_run event carries no head revision")

        if self.config.rollback.auto_rollback:
            return self._blocked(
                event,
                f"Rollback of {event.revision.short_sha} is handled by the production run (auto rollback on)",
            )

        try:
            requested = await self._rollback_requested(event)
        except (PipelineError, SecurityError, GitHubAPIError, httpx.HTTPError) as e:
            run = PipelineRun(run_id=generate_id("rollback"), trigger=event.kind, revision=event.revision)
            run.errors.append(f"Could not read the rollback request: {e}")
            return run.finish(PipelineStatus.FAIL)

        if not requested:
            return self._blocked(
                event, f"Production run for {event.revision.short_sha} failed before deploying; nothing to roll back",
            )

        run = await self.run_rollback(
            failed_revision=event.revision,
            reason=f"workflow '{event.workflow_name}' concluded {event.conclusion}",
            trigger=event.kind,
        )
        await self._resolve_rollback_request(event, run)
        return run

    def _github(self) -> GitHubClient:
        if self.github is None:
            self.github = GitHubClient()
        return self.github

    async def _rollback_requested(self, event: TriggerEvent) -> bool:
        github = self._github()
        if not github.token:
            raise PipelineError("GITHUB_TOKEN not configured; cannot tell whether production changed")

        owner, repo = InputValidator.validate_repository(event.repository or self.config.github.repository)
        try:
            status = await github.get_commit_status(owner, repo, event.revision.sha, ROLLBACK_STATUS_CONTEXT)
        finally:
            await github.close()
        return bool(status) and status.get("state") == "failure"

    async def _resolve_rollback_request(self, event: TriggerEvent, run: PipelineRun) -> None:
        """Clear the request once the rollback succeeded so a re-run does not repeat it."""
        if run.status != PipelineStatus.PASS:
            return

        github = self._github()
        owner, repo = InputValidator.validate_repository(event.repository or self.config.github.repository)
        try:
            result = await github.create_commit_status(
                owner=owner,
                repo=repo,
                sha=event.revision.sha,
                state="success",
                context=ROLLBACK_STATUS_CONTEXT,
                description=f"Rolled back ({run.run_id})",
            )
        finally:
            await github.close()
        if not result.success:
            self.logger.warning(f"Rollback request left open: {'; '.join(result.errors)}")

    def publish(self, run: PipelineRun) -> None:
        """Expose ``url``, ``status`` and ``rollback_requested`` as step outputs and append the job summary."""
        self.actions.set_output("status", run.status.value)
        self.actions.set_output("url", run.deployment_url or "")
        self.actions.set_output("rollback_requested", str(run.rollback_requested).lower())
        self.actions.write_summary(render_summary(run))

    def _is_failed_production_run(self, event: TriggerEvent) -> bool:
        return (
            event.action in (None, "completed")
            and event.conclusion == "failure"
            and event.workflow_name == self.config.github.production_workflow
        )

    def _blocked(self, event: TriggerEvent, reason: str) -> PipelineRun:
        self.logger.info(reason)
        run = PipelineRun(run_id=generate_id("noop"), trigger=event.kind, revision=event.revision)
        run.errors.append(reason)
        return run.finish(PipelineStatus.BLOCKED)

    def _preview_publisher(self) -> PreviewPublisher:
        if self.preview is None:
            self.preview = PreviewPublisher(working_dir=self.working_dir, executor=self.executor)
        return self.preview

    def _production_publisher(self) -> ProductionPublisher:
        if self.production is None:
            self.production = ProductionPublisher(
                working_dir=self.working_dir,
                executor=self.executor,
                rollback_agent=self._rollback_agent(),
                github=self.github,
            )
        return self.production

    def _rollback_agent(self) -> RollbackAgent:
        if self.rollback is None:
            self.rollback = RollbackAgent(
                working_dir=self.working_dir,
                executor=self.executor,
                notifier=Notifier(summary_writer=self.actions.write_summary),
            )
        return self.rollback
