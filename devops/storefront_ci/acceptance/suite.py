"""
Acceptance Suite - runs the storefront scenarios against a live base URL.

Every scenario runs in its own browser context so one failure cannot leak
state into the next. The suite passes only if every scenario passes.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, Any, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError, async_playwright

from .page import StorefrontPage
from .scenarios import SCENARIOS, Scenario, ScenarioSettings
from ..config import get_config
from ..core.errors import PipelineError
from ..core.logger import get_logger
from ..core.security import InputValidator


@dataclass
class ScenarioResult:
    """Outcome of one scenario."""
    name: str
    passed: bool
    duration_seconds: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
        }


@dataclass
class SuiteResult:
    """Outcome of a suite run."""
    base_url: str
    scenarios: List[ScenarioResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def passed(self) -> bool:
        return bool(self.scenarios) and not self.errors and all(s.passed for s in self.scenarios)

    @property
    def failed_scenarios(self) -> List[str]:
        return [s.name for s in self.scenarios if not s.passed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "passed": self.passed,
            "scenarios": [s.to_dict() for s in self.scenarios],
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


class AcceptanceSuite:
    """
    Browser-driven acceptance suite.

    Usage:
        suite = AcceptanceSuite()
        result = await suite.run("https://preview-123.myshopify.dev")

        if not result.passed:
            print(result.failed_scenarios)
    """

    def __init__(
        self,
        scenarios: Sequence[Scenario] = None,
        settings: ScenarioSettings = None,
        headless: bool = None,
        navigation_timeout_ms: int = None,
    ):
        app_config = get_config().acceptance
        self.scenarios = list(scenarios or SCENARIOS)
        self.settings = settings or ScenarioSettings(title_marker=app_config.title_marker)
        self.headless = app_config.headless if headless is None else headless
        self.navigation_timeout_ms = navigation_timeout_ms or app_config.navigation_timeout_ms
        self.logger = get_logger("AcceptanceSuite")

    async def run(self, base_url: str) -> SuiteResult:
        """Launch a browser and run every scenario against ``base_url``."""
        base_url = InputValidator.validate_url(base_url).rstrip("/")
        started = datetime.now()

        try:
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(headless=self.headless)
                try:
                    result = await self.run_scenarios(base_url, self._page_factory(browser, base_url))
                finally:
                    await browser.close()
        except PlaywrightError as e:
            result = SuiteResult(base_url=base_url, errors=[f"Browser failed to start: {e}"])
            self.logger.error("Browser launch failed", error=str(e))

        result.duration_seconds = (datetime.now() - started).total_seconds()
        return result

    def _page_factory(self, browser, base_url: str):
        @asynccontextmanager
        async def open_page() -> AsyncIterator[StorefrontPage]:
            context = await browser.new_context(base_url=base_url)
            context.set_default_navigation_timeout(self.navigation_timeout_ms)
            try:
                page = await context.new_page()
                yield StorefrontPage(page)
            finally:
                await context.close()

        return open_page

    async def run_scenarios(self, base_url: str, open_page) -> SuiteResult:
        """Run each scenario in order, each on a fresh page."""
        result = SuiteResult(base_url=base_url)

        for scenario in self.scenarios:
            result.scenarios.append(await self._run_scenario(scenario, open_page))

        if result.passed:
            self.logger.info(f"✅ Acceptance suite passed ({len(result.scenarios)} scenarios)")
        else:
            self.logger.error(f"❌ Acceptance suite failed: {', '.join(result.failed_scenarios)}")

        return result

    async def _run_scenario(self, scenario: Scenario, open_page) -> ScenarioResult:
        self.logger.info(f"Scenario: {scenario.name} - {scenario.description}")
        started = datetime.now()
        outcome = ScenarioResult(name=scenario.name, passed=False)

        try:
            async with open_page() as page:
                await asyncio.wait_for(scenario.run(page, self.settings), timeout=scenario.timeout_seconds)
            outcome.passed = True
        except asyncio.TimeoutError:
            outcome.error = f"Timed out after {scenario.timeout_seconds}s"
        except (AssertionError, PipelineError, PlaywrightError) as e:
            outcome.error = f"{type(e).__name__}: {e}"

        outcome.duration_seconds = (datetime.now() - started).total_seconds()
        if outcome.passed:
            self.logger.info(f"✓ {scenario.name} ({outcome.duration_seconds:.1f}s)")
        else:
            self.logger.error(f"✗ {scenario.name}: {outcome.error}")
        return outcome
