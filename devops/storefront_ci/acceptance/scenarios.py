"""
Acceptance scenarios for the storefront, in the order they run.

Each scenario is a black-box check of rendered output: it raises
``AssertionError`` (or ``MissingURLError``) when the page does not satisfy
it within the stated bound.
"""

import re
from dataclasses import dataclass
from typing import Awaitable, Callable, List

from .page import StorefrontPage
from ..core.errors import MissingURLError


PRODUCT_ITEM = ".product-item"
RECOMMENDED_GRID = ".recommended-products-grid"
PRODUCT_DETAIL = ".product"
PRODUCTS_GRID = ".products-grid"
COLLECTION_LINK = '.featured-collection, a[href*="/collections/"]'
COLLECTIONS_PATH = "/collections"


@dataclass(frozen=True)
class ScenarioSettings:
    title_marker: str = "Hydrogen"


ScenarioFn = Callable[[StorefrontPage, ScenarioSettings], Awaitable[None]]


@dataclass(frozen=True)
class Scenario:
    name: str
    description: str
    run: ScenarioFn
    timeout_seconds: float


def _expect_ok(status, path: str) -> None:
    if status != 200:
        raise AssertionError(f"GET {path} returned {status if status is not None else 'no response'}")


async def _open_home(page: StorefrontPage) -> None:
    _expect_ok(await page.goto("/"), "/")
    await page.wait_for_idle()


async def app_loads(page: StorefrontPage, settings: ScenarioSettings) -> None:
    await _open_home(page)
    await page.expect_title(re.compile(re.escape(settings.title_marker)), timeout_ms=10_000)


async def homepage_renders_products(page: StorefrontPage, settings: ScenarioSettings) -> None:
    await _open_home(page)
    await page.expect_heading(re.compile("recommended products", re.IGNORECASE), timeout_ms=15_000)
    await page.expect_visible(RECOMMENDED_GRID, timeout_ms=15_000)

    count = await page.count(PRODUCT_ITEM)
    if count <= 0:
        raise AssertionError("Homepage rendered no product items")
    await page.expect_visible(PRODUCT_ITEM, timeout_ms=10_000)


async def product_page_loads(page: StorefrontPage, settings: ScenarioSettings) -> None:
    await _open_home(page)
    await page.expect_visible(RECOMMENDED_GRID, timeout_ms=15_000)
    await page.expect_visible(PRODUCT_ITEM, timeout_ms=10_000)

    product_url = await page.first_href(PRODUCT_ITEM, timeout_ms=10_000)
    if not product_url:
        raise MissingURLError("No product URL found on homepage")

    _expect_ok(await page.goto(product_url), product_url)
    await page.wait_for_idle()
    await page.expect_visible("h1", timeout_ms=10_000)
    await page.expect_visible(PRODUCT_DETAIL, timeout_ms=10_000)


async def collections_page_loads(page: StorefrontPage, settings: ScenarioSettings) -> None:
    await _open_home(page)

    collection_url = await page.first_href(COLLECTION_LINK, timeout_ms=5_000)
    if collection_url:
        _expect_ok(await page.goto(collection_url), collection_url)
        await page.wait_for_idle()
        await page.expect_visible("h1", timeout_ms=15_000)
        await page.expect_visible(PRODUCTS_GRID, timeout_ms=15_000)
    else:
        _expect_ok(await page.goto(COLLECTIONS_PATH), COLLECTIONS_PATH)
        await page.expect_url(re.compile("collections"), timeout_ms=10_000)


SCENARIOS: List[Scenario] = [
    Scenario("app_loads", "root page loads with expected title", app_loads, 30),
    Scenario("homepage_renders_products", "homepage shows a product listing", homepage_renders_products, 60),
    Scenario("product_page_loads", "product detail page renders", product_page_loads, 90),
    Scenario("collections_page_loads", "collection listing renders", collections_page_loads, 90),
]
