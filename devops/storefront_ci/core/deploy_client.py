"""
Hydrogen Deploy Client - wraps the deployment platform CLI.

Provides:
- Authenticated preview and production deployments
- Deployment URL extraction (deploy log file, then CLI output)
- Production URL resolution against a configured static URL
"""

import json
import re
from pathlib import Path
from typing import Optional, List, Tuple

from .executor import CommandExecutor
from .logger import StageLogger, get_logger
from .security import SecretsMasker
from ..config import get_config
from ..models.deployment import DeploymentEnvironment, DeploymentResult, URLSource
from ..models.revision import Revision


URL_PATTERN = re.compile(r'https://[^\s"\'<>]+')

TOKEN_ENV_VAR = "SHOPIFY_HYDROGEN_DEPLOYMENT_TOKEN"


def extract_deployment_url(output: str) -> Optional[str]:
    """
    Pick the deployment URL out of CLI output.

    The CLI prints documentation links before the final URL, so the last
    URL on the platform's domain wins, then the last URL of any kind.
    """
    urls = [u.rstrip(".,)") for u in URL_PATTERN.findall(output or "")]
    if not urls:
        return None
    hosted = [u for u in urls if ".myshopify.dev" in u]
    return (hosted or urls)[-1]


def resolve_production_url(
    configured_url: Optional[str],
    parsed_url: Optional[str],
) -> Tuple[Optional[str], URLSource]:
    """A configured production URL always takes precedence over deploy output."""
    if configured_url:
        return configured_url, URLSource.CONFIGURED
    if parsed_url:
        return parsed_url, URLSource.DEPLOY_OUTPUT
    return None, URLSource.NONE


class HydrogenDeployClient:
    """
    Client for the storefront deployment CLI.

    Usage:
        client = HydrogenDeployClient()
        result = await client.deploy(DeploymentEnvironment.PREVIEW, revision)

        if result.confirmed:
            print(f"Preview ready: {result.url}")
    """

    def __init__(
        self,
        executor: CommandExecutor = None,
        token: str = None,
        production_url: str = None,
        working_dir: Path = None,
    ):
        self.config = get_config()
        self.token = token if token is not None else self.config.deploy.token
        self.production_url = production_url or self.config.deploy.production_url
        self.working_dir = working_dir or self.config.workspace_dir
        self.executor = executor or CommandExecutor(
            working_dir=self.working_dir,
            logger=StageLogger("HydrogenDeploy"),
        )
        self.logger = get_logger("HydrogenDeployClient")
        SecretsMasker.register(self.token)

    @property
    def deploy_log_path(self) -> Path:
        return Path(self.working_dir) / self.config.deploy.deploy_log_file

    def build_command(
        self,
        environment: DeploymentEnvironment,
        revision: Optional[Revision] = None,
    ) -> List[str]:
        """Argument vector for one deployment."""
        argv = CommandExecutor.split(self.config.deploy.cli_command)
        argv += ["--force", "--json-output"]
        if environment == DeploymentEnvironment.PREVIEW:
            argv.append("--preview")
        if revision:
            argv += ["--metadata-description", f"{environment.value} {revision.short_sha}"]
        return argv

    def _read_deploy_log(self) -> Optional[str]:
        path = self.deploy_log_path
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            self.logger.warning(f"Unreadable deploy log {path}: {e}")
            return None
        url = data.get("url") if isinstance(data, dict) else None
        return url or None

    async def deploy(
        self,
        environment: DeploymentEnvironment,
        revision: Optional[Revision] = None,
    ) -> DeploymentResult:
        """
        Authenticate and publish the current checkout.

        Args:
            environment: Preview or production
            revision: Revision being published (recorded in deploy metadata)

        Returns:
            DeploymentResult; ``confirmed`` only when the CLI succeeded and a URL is known
        """
        result = DeploymentResult(environment=environment, revision=revision)

        if not self.token:
            result.errors.append(f"{TOKEN_ENV_VAR} is not configured; cannot authenticate")
            self.logger.error("Deployment token missing")
            return result.finish()

        # A log left by an earlier deploy must not be mistaken for this one
        self.deploy_log_path.unlink(missing_ok=True)

        env = {TOKEN_ENV_VAR: self.token, **self.config.store.build_env()}
        self.logger.info(f"Deploying {environment.value} build")

        command_result = await self.executor.run(
            self.build_command(environment, revision),
            timeout=self.config.deploy.timeout_seconds,
            env=env,
            stream_output=True,
            on_output=self.logger.debug,
        )
        result.logs.append(SecretsMasker.mask_secrets(command_result.output))

        if not command_result.success:
            reason = "timed out" if command_result.timed_out else f"exited with {command_result.return_code}"
            result.errors.append(f"Deployment CLI {reason}: {command_result.tail(5)}")
            return result.finish()

        parsed_url = self._read_deploy_log() or extract_deployment_url(command_result.output)

        if environment == DeploymentEnvironment.PRODUCTION:
            url, source = resolve_production_url(self.production_url, parsed_url)
        else:
            url, source = parsed_url, URLSource.DEPLOY_OUTPUT if parsed_url else URLSource.NONE

        if not url:
            result.errors.append(f"{environment.value} deployment produced no URL")
            return result.finish()

        result.success = True
        result.url = url
        result.url_source = source
        self.logger.info(f"Deployed {environment.value}: {url} (url from {source.value})")
        return result.finish()
