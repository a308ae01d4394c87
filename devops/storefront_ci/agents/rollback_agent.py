"""
Rollback Agent - Redeploys the last known-good revision to production.

Responsible for:
- Finding the predecessor of a failed revision (or taking a supplied one)
- Checking it out and re-running the production deploy only
- Notifying about the outcome

A failed rollback is terminal: it is never retried automatically.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List, Union

from .base_agent import BaseAgent
from ..core.deploy_client import HydrogenDeployClient
from ..core.errors import RollbackError
from ..core.executor import CommandExecutor
from ..core.notifier import Notifier
from ..core.security import InputValidator, SecurityError
from ..models.deployment import DeploymentEnvironment, DeploymentResult
from ..models.revision import Revision


@dataclass
class RollbackResult:
    """Result of a rollback operation."""
    success: bool
    rolled_back_from: Optional[str] = None
    rolled_back_to: Optional[str] = None
    url: Optional[str] = None
    manual: bool = False
    requires_manual_intervention: bool = False
    deployment: Optional[DeploymentResult] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "rolled_back_from": self.rolled_back_from,
            "rolled_back_to": self.rolled_back_to,
            "url": self.url,
            "manual": self.manual,
            "requires_manual_intervention": self.requires_manual_intervention,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }


class RollbackAgent(BaseAgent):
    """
    Rollback Agent for production deployments.

    Usage:
        agent = RollbackAgent()

        # automatic: redeploy the predecessor of the failed revision
        result = await agent.run(failed_revision=Revision("9f2c1e0..."))

        # manual: redeploy a chosen revision
        result = await agent.run(target_revision="4b1d7aa")
    """

    def __init__(
        self,
        working_dir: Path = None,
        executor: CommandExecutor = None,
        deploy_client: HydrogenDeployClient = None,
        notifier: Notifier = None,
    ):
        super().__init__("RollbackAgent", working_dir, executor)
        self.deploy_client = deploy_client or HydrogenDeployClient(
            executor=self.executor, working_dir=self.working_dir,
        )
        self.notifier = notifier or Notifier()

    async def run(
        self,
        failed_revision: Union[Revision, str, None] = None,
        target_revision: str = None,
        reason: str = "",
    ) -> RollbackResult:
        """
        Roll production back.

        Args:
            failed_revision: Revision whose deploy or post-deploy tests failed
            target_revision: Revision to redeploy (manual trigger); when
                omitted, the predecessor of ``failed_revision`` is used
            reason: Why the rollback happened, for the notification

        Returns:
            RollbackResult; ``requires_manual_intervention`` is set when it failed
        """
        if isinstance(failed_revision, str):
            failed_revision = Revision(sha=failed_revision)

        result = RollbackResult(
            success=False,
            rolled_back_from=failed_revision.sha if failed_revision else None,
            manual=target_revision is not None,
            started_at=datetime.now(),
        )

        self.logger.info("=" * 60)
        self.logger.info("ROLLBACK AGENT")
        self.logger.info(f"Failed revision: {result.rolled_back_from or 'n/a'}")
        self.logger.info(f"Target revision: {target_revision or 'predecessor'}")

        try:
            target = await self._resolve_target(failed_revision, target_revision)
        except (RollbackError, SecurityError) as e:
            return await self._fail(result, str(e), target_revision)

        result.rolled_back_to = target
        await self.notifier.rolling_back(
            result.rolled_back_from or "", target, reason or "manual rollback",
        )

        checkout = await self._checkout(target)
        if not checkout.success:
            return await self._fail(result, f"Checkout of {target} failed: {checkout.tail(5)}", target)

        deployment = await self.deploy_client.deploy(
            DeploymentEnvironment.PRODUCTION, Revision(sha=target),
        )
        result.deployment = deployment

        if not deployment.confirmed:
            return await self._fail(result, "; ".join(deployment.errors) or "Redeploy failed", target)

        result.success = True
        result.url = deployment.url
        self._finish(result)
        self.logger.success(f"Rolled back to {target} in {result.duration_seconds:.1f}s")
        await self.notifier.rolled_back(target, url=deployment.url)
        return result

    async def _resolve_target(
        self,
        failed_revision: Optional[Revision],
        target_revision: Optional[str],
    ) -> str:
        if failed_revision:
            InputValidator.validate_revision(failed_revision.sha)

        if target_revision:
            target = InputValidator.validate_revision(target_revision)
        elif failed_revision:
            target = failed_revision.parent_sha or await self._predecessor_of(failed_revision.sha)
            InputValidator.validate_revision(target)
        else:
            raise RollbackError("Either a failed revision or a target revision is required")

        if failed_revision and failed_revision.is_same(target):
            raise RollbackError(
                f"Refusing to redeploy the failed revision {failed_revision.short_sha}",
                revision=target,
            )

        return target

    async def _predecessor_of(self, sha: str) -> str:
        """First parent of ``sha``, fetching enough history to see it."""
        await self.executor.run(
            ["git", "fetch", "--no-tags", "--depth=2", "origin", sha], timeout=120,
        )
        parent = await self.executor.run(["git", "rev-parse", "--verify", f"{sha}^"], timeout=30)
        if not parent.success or not parent.stdout.strip():
            raise RollbackError(f"No previous revision found for {sha}", revision=sha)
        return parent.stdout.strip()

    async def _checkout(self, target: str):
        await self.executor.run(
            ["git", "fetch", "--no-tags", "--depth=1", "origin", target], timeout=120,
        )
        return await self.executor.run(["git", "checkout", "--force", "--detach", target], timeout=60)

    def _finish(self, result: RollbackResult) -> None:
        result.finished_at = datetime.now()
        result.duration_seconds = (result.finished_at - result.started_at).total_seconds()

    async def _fail(self, result: RollbackResult, error: str, target: Optional[str]) -> RollbackResult:
        result.errors.append(error)
        result.requires_manual_intervention = True
        self._finish(result)
        self.logger.error(f"ROLLBACK FAILED: {error}")
        await self.notifier.rollback_failed(target, error)
        return result
