"""
Thin page wrapper over Playwright used by acceptance scenarios.

Scenarios talk to ``StorefrontPage`` rather than to Playwright directly so
their control flow can be exercised without a browser.
"""

import re
from typing import Optional, Pattern, Union

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError, expect


PatternLike = Union[str, Pattern[str]]


def _compile(pattern: PatternLike) -> Pattern[str]:
    return re.compile(pattern) if isinstance(pattern, str) else pattern


class StorefrontPage:
    """Assertions and navigation against a rendered storefront page."""

    def __init__(self, page: Page):
        self.page = page

    async def goto(self, path: str) -> Optional[int]:
        """Navigate and return the HTTP status, or None if no response arrived."""
        response = await self.page.goto(path)
        return response.status if response else None

    async def wait_for_idle(self) -> None:
        await self.page.wait_for_load_state("networkidle")

    async def expect_title(self, pattern: PatternLike, timeout_ms: int) -> None:
        await expect(self.page).to_have_title(_compile(pattern), timeout=timeout_ms)

    async def expect_url(self, pattern: PatternLike, timeout_ms: int) -> None:
        await expect(self.page).to_have_url(_compile(pattern), timeout=timeout_ms)

    async def expect_visible(self, selector: str, timeout_ms: int) -> None:
        await expect(self.page.locator(selector).first).to_be_visible(timeout=timeout_ms)

    async def expect_heading(self, name: PatternLike, timeout_ms: int) -> None:
        heading = self.page.get_by_role("heading", name=_compile(name))
        await expect(heading.first).to_be_visible(timeout=timeout_ms)

    async def count(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def first_href(self, selector: str, timeout_ms: int = None) -> Optional[str]:
        """
        ``href`` of the first element matching ``selector``.
        Returns None when nothing matches within the timeout.
        """
        locator = self.page.locator(selector).first
        try:
            await locator.wait_for(state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return None
        return await locator.get_attribute("href", timeout=timeout_ms)
