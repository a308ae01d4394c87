"""
Production Publisher - gates the merge queue on check, deploy and acceptance.

Pipeline (strictly sequential, each step a precondition for the next):
1. Integration check (no URL)
2. Production deploy
3. Acceptance suite against the production URL

Any failure after the deploy fails the run, which blocks the merge, and
requests exactly one rollback to the predecessor of the revision under test.
With auto rollback off the request is left on the revision as a commit
status for the rollback workflow to pick up.
"""

from pathlib import Path
from typing import Optional, Dict, Any

from .base_agent import BaseAgent
from .integration_check import IntegrationCheckAgent
from .rollback_agent import RollbackAgent, RollbackResult
from ..acceptance.suite import AcceptanceSuite
from ..core.deploy_client import HydrogenDeployClient
from ..core.executor import CommandExecutor
from ..core.logger import bind_run_context
from ..core.security import InputValidator, SecurityError
from ..integrations.github_client import GitHubClient
from ..models.deployment import DeploymentEnvironment, DeploymentResult
from ..models.revision import Revision
from ..models.run import PipelineRun, PipelineStatus, Stage, TriggerKind
from ..utils.helpers import generate_id


REQUIRED_STAGES = (Stage.INTEGRATION_CHECK, Stage.DEPLOY, Stage.ACCEPTANCE_TEST)

ROLLBACK_STATUS_CONTEXT = "storefront-ci/rollback"


class ProductionPublisher(BaseAgent):
    """
    Production Publisher for revisions admitted to the merge queue.

    Usage:
        publisher = ProductionPublisher()
        run = await publisher.run(Revision(sha=head_sha, parent_sha=base_sha))

        if not run.succeeded:
            sys.exit(1)  # blocks the merge
    """

    def __init__(
        self,
        working_dir: Path = None,
        executor: CommandExecutor = None,
        integration_check: IntegrationCheckAgent = None,
        deploy_client: HydrogenDeployClient = None,
        acceptance_suite: AcceptanceSuite = None,
        rollback_agent: RollbackAgent = None,
        auto_rollback: bool = None,
        github: GitHubClient = None,
    ):
        super().__init__("ProductionPublisher", working_dir, executor)
        self.integration_check = integration_check or IntegrationCheckAgent(
            working_dir=self.working_dir, executor=self.executor,
        )
        self.deploy_client = deploy_client or HydrogenDeployClient(
            executor=self.executor, working_dir=self.working_dir,
        )
        self.acceptance_suite = acceptance_suite or AcceptanceSuite()
        self.rollback_agent = rollback_agent
        self.auto_rollback = self.config.rollback.auto_rollback if auto_rollback is None else auto_rollback
        self.github = github
        self.rollback_result: Optional[RollbackResult] = None

    async def run(
        self,
        revision: Revision,
        trigger: TriggerKind = TriggerKind.MERGE_GROUP,
    ) -> PipelineRun:
        """
        Check, deploy and verify ``revision`` in production.

        Returns:
            PipelineRun with status PASS only if all three stages passed in order
        """
        run = PipelineRun(run_id=generate_id("prod"), trigger=trigger, revision=revision)
        bind_run_context(run_id=run.run_id, revision=revision.sha)

        self.logger.info("=" * 60)
        self.logger.info(f"PRODUCTION PUBLISHER - {revision.short_sha}")
        self.logger.info("=" * 60)

        check = run.record(await self._run_stage(Stage.INTEGRATION_CHECK, self._check))
        if not check.passed:
            run.errors.append(f"Integration check failed: {check.error}")
            return run.finish(PipelineStatus.FAIL)

        deploy = run.record(await self._run_stage(Stage.DEPLOY, lambda: self._deploy(revision)))
        deployment: Optional[DeploymentResult] = deploy.data.get("deployment")
        if not deploy.passed or deployment is None or not deployment.confirmed:
            run.errors.append(f"Production deploy failed: {deploy.error}")
            return await self._fail_and_roll_back(run, "production deploy failed")

        run.deployment_url = deployment.url

        acceptance = run.record(
            await self._run_stage(Stage.ACCEPTANCE_TEST, lambda: self._acceptance(deployment.url))
        )
        if not acceptance.passed:
            run.errors.append(f"Acceptance tests failed: {acceptance.error}")
            return await self._fail_and_roll_back(run, "post-deploy acceptance tests failed")

        if not run.passed_in_order(REQUIRED_STAGES):
            run.errors.append("Stages did not complete in order")
            return run.finish(PipelineStatus.FAIL)

        self.logger.success(f"Production verified at {run.deployment_url}")
        return run.finish(PipelineStatus.PASS)

    async def _check(self) -> Dict[str, Any]:
        result = await self.integration_check.run(base_url=None)
        return {
            "success": result.success,
            "message": "Integration check passed" if result.success else "Integration check failed",
            "error": result.error,
            "check": result,
        }

    async def _deploy(self, revision: Revision) -> Dict[str, Any]:
        deployment = await self.deploy_client.deploy(DeploymentEnvironment.PRODUCTION, revision)
        return {
            "success": deployment.confirmed,
            "message": f"URL: {deployment.url} ({deployment.url_source.value})" if deployment.confirmed else "Deploy failed",
            "error": deployment.errors[0] if deployment.errors else None,
            "deployment": deployment,
        }

    async def _acceptance(self, url: str) -> Dict[str, Any]:
        suite_result = await self.acceptance_suite.run(url)
        failed = suite_result.failed_scenarios + suite_result.errors
        return {
            "success": suite_result.passed,
            "message": f"{len(suite_result.scenarios)} scenarios against {url}",
            "error": ", ".join(failed) if failed else None,
            "suite": suite_result,
        }

    async def _roll_back(self, revision: Revision, reason: str) -> Dict[str, Any]:
        agent = self.rollback_agent or RollbackAgent(
            working_dir=self.working_dir, executor=self.executor, deploy_client=self.deploy_client,
        )
        self.rollback_result = await agent.run(failed_revision=revision, reason=reason)
        return {
            "success": self.rollback_result.success,
            "message": f"Rolled back to {self.rollback_result.rolled_back_to}",
            "error": "; ".join(self.rollback_result.errors) or None,
            "rollback": self.rollback_result,
        }

    async def _fail_and_roll_back(self, run: PipelineRun, reason: str) -> PipelineRun:
        run.rollback_requested = True

        if self.auto_rollback:
            rollback = run.record(
                await self._run_stage(Stage.ROLLBACK, lambda: self._roll_back(run.revision, reason))
            )
            if not rollback.passed:
                run.errors.append(f"Rollback failed: {rollback.error}")
        else:
            self.logger.warning("Auto rollback disabled; rollback left to the rollback workflow")
            await self._record_rollback_request(run.revision, reason)

        return run.finish(PipelineStatus.FAIL)

    async def _record_rollback_request(self, revision: Revision, reason: str) -> None:
        """Mark ``revision`` so the rollback workflow knows production changed."""
        github = self.github or GitHubClient()
        if not github.token:
            self.logger.warning("GITHUB_TOKEN not configured; rollback request not recorded")
            return

        try:
            owner, repo = InputValidator.validate_repository(self.config.github.repository)
        except SecurityError as e:
            self.logger.error(f"Rollback request not recorded: {e}")
            return

        try:
            result = await github.create_commit_status(
                owner=owner,
                repo=repo,
                sha=revision.sha,
                state="failure",
                context=ROLLBACK_STATUS_CONTEXT,
                description=f"Rollback requested: {reason}",
            )
        finally:
            await github.close()

        if result.success:
            self.logger.info(f"Rollback request recorded on {revision.short_sha}")
        else:
            self.logger.error(f"Rollback request not recorded: {'; '.join(result.errors)}")
