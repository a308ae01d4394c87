"""Integrations with the hosting platform."""

from .github_client import GitHubAPIError, GitHubClient, GitHubResult
from .actions import ActionsContext, TriggerEvent

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "GitHubResult",
    "ActionsContext",
    "TriggerEvent",
]
