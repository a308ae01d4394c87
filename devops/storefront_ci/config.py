"""
Configuration management for the storefront release pipeline.
Handles all environment variables and settings.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class DeployConfig:
    """Configuration for the deployment platform CLI."""
    token: str = field(default_factory=lambda: os.getenv("SHOPIFY_HYDROGEN_DEPLOYMENT_TOKEN", ""))
    production_url: Optional[str] = field(default_factory=lambda: os.getenv("STOREFRONT_PRODUCTION_URL") or None)
    cli_command: str = field(default_factory=lambda: os.getenv("STOREFRONT_DEPLOY_COMMAND", "npx shopify hydrogen deploy"))
    deploy_log_file: str = "h2_deploy_log.json"
    timeout_seconds: int = field(default_factory=lambda: int(os.getenv("STOREFRONT_DEPLOY_TIMEOUT", "900")))


@dataclass
class StoreConfig:
    """Configuration for the commerce store the storefront is built against."""
    store_domain: str = field(default_factory=lambda: os.getenv("PUBLIC_STORE_DOMAIN", ""))
    storefront_api_token: str = field(default_factory=lambda: os.getenv("PUBLIC_STOREFRONT_API_TOKEN", ""))

    def build_env(self) -> dict:
        """Environment variables passed to build and deploy commands."""
        env = {}
        if self.store_domain:
            env["PUBLIC_STORE_DOMAIN"] = self.store_domain
        if self.storefront_api_token:
            env["PUBLIC_STOREFRONT_API_TOKEN"] = self.storefront_api_token
        return env


@dataclass
class RuntimeConfig:
    """Toolchain commands run by the integration check."""
    node_version: str = field(default_factory=lambda: os.getenv("STOREFRONT_NODE_VERSION", "20"))
    install_command: str = field(default_factory=lambda: os.getenv("STOREFRONT_INSTALL_COMMAND", "npm ci"))
    lint_command: str = field(default_factory=lambda: os.getenv("STOREFRONT_LINT_COMMAND", "npm run lint"))
    typecheck_command: str = field(default_factory=lambda: os.getenv("STOREFRONT_TYPECHECK_COMMAND", "npm run typecheck"))
    build_command: str = field(default_factory=lambda: os.getenv("STOREFRONT_BUILD_COMMAND", "npm run build"))
    step_timeout_seconds: int = field(default_factory=lambda: int(os.getenv("STOREFRONT_STEP_TIMEOUT", "600")))


@dataclass
class GitHubConfig:
    """Configuration for GitHub integration."""
    token: str = field(default_factory=lambda: os.getenv("GITHUB_TOKEN", ""))
    repository: str = field(default_factory=lambda: os.getenv("GITHUB_REPOSITORY", ""))
    api_url: str = field(default_factory=lambda: os.getenv("GITHUB_API_URL", "https://api.github.com"))
    production_workflow: str = field(default_factory=lambda: os.getenv("STOREFRONT_PRODUCTION_WORKFLOW", "Deploy to Production"))


@dataclass
class AcceptanceConfig:
    """Configuration for the browser acceptance suite."""
    base_url: Optional[str] = field(default_factory=lambda: os.getenv("BASE_URL") or None)
    title_marker: str = field(default_factory=lambda: os.getenv("STOREFRONT_TITLE_MARKER", "Hydrogen"))
    headless: bool = field(default_factory=lambda: _env_flag("STOREFRONT_HEADLESS", "true"))
    navigation_timeout_ms: int = field(default_factory=lambda: int(os.getenv("STOREFRONT_NAV_TIMEOUT_MS", "30000")))


@dataclass
class RollbackConfig:
    """Configuration for the rollback agent."""
    auto_rollback: bool = field(default_factory=lambda: _env_flag("STOREFRONT_AUTO_ROLLBACK", "true"))
    webhook_url: str = field(default_factory=lambda: os.getenv("WEBHOOK_URL", ""))


@dataclass
class Config:
    """Main configuration container."""
    deploy: DeployConfig = field(default_factory=DeployConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    acceptance: AcceptanceConfig = field(default_factory=AcceptanceConfig)
    rollback: RollbackConfig = field(default_factory=RollbackConfig)

    # Paths
    workspace_dir: Path = field(default_factory=lambda: Path(os.getenv("GITHUB_WORKSPACE", os.getcwd())))

    verbose: bool = field(default_factory=lambda: _env_flag("VERBOSE", "false"))

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.deploy.token:
            issues.append("SHOPIFY_HYDROGEN_DEPLOYMENT_TOKEN is not set")
        if not self.github.token:
            issues.append("GITHUB_TOKEN is not set (preview comments disabled)")
        if not self.github.repository:
            issues.append("GITHUB_REPOSITORY is not set")

        return issues

    def to_dict(self) -> dict:
        """Effective configuration with secrets left for the caller to mask."""
        return {
            "deploy": {
                "token": self.deploy.token,
                "production_url": self.deploy.production_url,
                "cli_command": self.deploy.cli_command,
                "timeout_seconds": self.deploy.timeout_seconds,
            },
            "store": {
                "store_domain": self.store.store_domain,
                "storefront_api_token": self.store.storefront_api_token,
            },
            "runtime": {
                "node_version": self.runtime.node_version,
                "install_command": self.runtime.install_command,
                "lint_command": self.runtime.lint_command,
                "typecheck_command": self.runtime.typecheck_command,
                "build_command": self.runtime.build_command,
            },
            "github": {
                "token": self.github.token,
                "repository": self.github.repository,
                "production_workflow": self.github.production_workflow,
            },
            "acceptance": {
                "base_url": self.acceptance.base_url,
                "title_marker": self.acceptance.title_marker,
                "headless": self.acceptance.headless,
            },
            "rollback": {
                "auto_rollback": self.rollback.auto_rollback,
                "webhook_url": self.rollback.webhook_url,
            },
            "workspace_dir": str(self.workspace_dir),
        }

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls()


# Global config instance
config = Config.from_env()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config
