"""Browser acceptance suite for the storefront."""

from .page import StorefrontPage
from .scenarios import SCENARIOS, Scenario, ScenarioSettings
from .suite import AcceptanceSuite, ScenarioResult, SuiteResult

__all__ = [
    "StorefrontPage",
    "SCENARIOS",
    "Scenario",
    "ScenarioSettings",
    "AcceptanceSuite",
    "ScenarioResult",
    "SuiteResult",
]
