"""
Preview Publisher - publishes a preview build for a pull request.

Pipeline:
1. Refuse fork-originated pull requests (secrets are not available to them)
2. Integration check (no URL yet)
3. Preview deploy
4. Create or update the preview comment on the pull request
"""

from pathlib import Path
from typing import Optional, Dict, Any

from .base_agent import BaseAgent
from .integration_check import IntegrationCheckAgent
from ..core.deploy_client import HydrogenDeployClient
from ..core.executor import CommandExecutor
from ..core.logger import bind_run_context
from ..core.security import InputValidator
from ..integrations.actions import TriggerEvent
from ..integrations.github_client import GitHubClient
from ..models.deployment import DeploymentEnvironment, DeploymentResult
from ..models.revision import Revision
from ..models.run import PipelineRun, PipelineStatus, Stage, StageOutcome
from ..utils.helpers import generate_id


COMMENT_MARKER = "<!-- storefront-ci:preview -->"


def render_preview_comment(url: str, revision: Optional[Revision]) -> str:
    lines = [
        COMMENT_MARKER,
        "### Preview deployment",
        "",
        f"**URL:** {url}",
    ]
    if revision:
        lines.append(f"**Revision:** `{revision.short_sha}`")
    return "\n".join(lines) + "\n"


class PreviewPublisher(BaseAgent):
    """
    Preview Publisher for pull requests from this repository.

    Usage:
        publisher = PreviewPublisher()
        run = await publisher.run(TriggerEvent.from_actions_env())
        print(run.deployment_url)
    """

    def __init__(
        self,
        working_dir: Path = None,
        executor: CommandExecutor = None,
        integration_check: IntegrationCheckAgent = None,
        deploy_client: HydrogenDeployClient = None,
        github: GitHubClient = None,
    ):
        super().__init__("PreviewPublisher", working_dir, executor)
        self.integration_check = integration_check or IntegrationCheckAgent(
            working_dir=self.working_dir, executor=self.executor,
        )
        self.deploy_client = deploy_client or HydrogenDeployClient(
            executor=self.executor, working_dir=self.working_dir,
        )
        self.github = github or GitHubClient()

    async def run(self, event: TriggerEvent) -> PipelineRun:
        """
        Check, deploy and announce a preview for the pull request in ``event``.

        Returns:
            PipelineRun; BLOCKED for fork-originated pull requests
        """
        run = PipelineRun(run_id=generate_id("preview"), trigger=event.kind, revision=event.revision)
        bind_run_context(run_id=run.run_id, pull_request=event.pull_request_number)

        if event.is_fork:
            self.logger.warning(
                f"Pull request from {event.head_repository or 'a deleted fork'} - preview not published"
            )
            run.errors.append("Previews are not published for pull requests from forks")
            return run.finish(PipelineStatus.BLOCKED)

        check = run.record(await self._run_stage(Stage.INTEGRATION_CHECK, self._check))
        if not check.passed:
            run.errors.append(f"Integration check failed: {check.error}")
            return run.finish(PipelineStatus.FAIL)

        deploy = run.record(await self._run_stage(Stage.DEPLOY, lambda: self._deploy(event.revision)))
        deployment: Optional[DeploymentResult] = deploy.data.get("deployment")
        if not deploy.passed or deployment is None:
            run.errors.append(f"Preview deploy failed: {deploy.error}")
            return run.finish(PipelineStatus.FAIL)

        run.deployment_url = deployment.url

        comment = run.record(await self._run_stage(
            Stage.PREVIEW_COMMENT, lambda: self._comment(event, deployment.url),
        ))
        if comment.outcome == StageOutcome.FAILED:
            run.errors.append(f"Preview comment failed: {comment.error}")
            return run.finish(PipelineStatus.FAIL)

        return run.finish(PipelineStatus.PASS)

    async def _check(self) -> Dict[str, Any]:
        result = await self.integration_check.run(base_url=None)
        return {
            "success": result.success,
            "message": "Integration check passed" if result.success else "Integration check failed",
            "error": result.error,
            "check": result,
        }

    async def _deploy(self, revision: Optional[Revision]) -> Dict[str, Any]:
        deployment = await self.deploy_client.deploy(DeploymentEnvironment.PREVIEW, revision)
        return {
            "success": deployment.confirmed,
            "message": f"Preview: {deployment.url}" if deployment.confirmed else "Preview deploy failed",
            "error": deployment.errors[0] if deployment.errors else None,
            "deployment": deployment,
        }

    async def _comment(self, event: TriggerEvent, url: str) -> Dict[str, Any]:
        if not event.pull_request_number:
            return {"skipped": True, "message": "event carries no pull request number"}
        if not self.github.token:
            return {"skipped": True, "message": "GITHUB_TOKEN not configured"}

        owner, repo = InputValidator.validate_repository(event.repository or self.config.github.repository)
        try:
            result = await self.github.upsert_comment(
                owner=owner,
                repo=repo,
                number=event.pull_request_number,
                body=render_preview_comment(url, event.revision),
                marker=COMMENT_MARKER,
            )
        finally:
            await self.github.close()
        return {
            "success": result.success,
            "message": result.message,
            "error": result.errors[0] if result.errors else None,
            "comment_url": result.url,
        }
