"""Core modules for the release pipeline."""

from .logger import get_logger, setup_logging, StageLogger
from .executor import CommandExecutor, CommandResult
from .errors import PipelineError, MissingURLError, RollbackError
from .security import SecurityError, InputValidator, SecretsMasker, mask_secrets
from .deploy_client import HydrogenDeployClient, extract_deployment_url, resolve_production_url
from .notifier import Notifier, NotificationPhase, StatusUpdate

__all__ = [
    "get_logger",
    "setup_logging",
    "StageLogger",
    "CommandExecutor",
    "CommandResult",
    "PipelineError",
    "MissingURLError",
    "RollbackError",
    "SecurityError",
    "InputValidator",
    "SecretsMasker",
    "mask_secrets",
    "HydrogenDeployClient",
    "extract_deployment_url",
    "resolve_production_url",
    "Notifier",
    "NotificationPhase",
    "StatusUpdate",
]
