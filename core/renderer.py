"""Full-page pricing screenshots via Playwright.

Every call launches its own Chromium instance and closes it before
returning, whether the capture succeeded or not. Browsers are never shared
between requests.
"""
import asyncio
import logging
import math
import re
import time
from urllib.parse import urlparse

from playwright.async_api import async_playwright

from config import VIEWPORT_WIDTH, VIEWPORT_HEIGHT
from core.errors import RenderError

logger = logging.getLogger(__name__)

_LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

_SCROLL_TO_BOTTOM_JS = "() => window.scrollTo(0, document.body ? document.body.scrollHeight : 0)"


async def _step(name, awaitable):
    """Await *awaitable*, re-raising any failure as RenderError(name)."""
    try:
        return await awaitable
    except RenderError:
        raise
    except Exception as e:
        raise RenderError(name, str(e) or e.__class__.__name__) from e


async def _measure_full_height(page):
    root = await page.query_selector("html")
    if root is None:
        raise RenderError("measure", "root element not found")
    box = await root.bounding_box()
    if not box or not box.get("height"):
        raise RenderError("measure", "root element has no bounding box")
    return math.ceil(box["height"])


async def _render_async(url, navigation_timeout_ms, settle_delay_ms):
    async with async_playwright() as pw:
        browser = await _step("launch", pw.chromium.launch(headless=True, args=_LAUNCH_ARGS))
        try:
            page = await _step("new_page", browser.new_page(user_agent=_USER_AGENT))
            page.set_default_navigation_timeout(navigation_timeout_ms)

            # Desktop layout before navigation so responsive pages show all tiers
            await _step("viewport", page.set_viewport_size(
                {"width": VIEWPORT_WIDTH, "height": VIEWPORT_HEIGHT}
            ))
            await _step("navigate", page.goto(url, wait_until="networkidle"))

            # Trigger lazy-loaded sections, then let them settle
            await _step("scroll", page.evaluate(_SCROLL_TO_BOTTOM_JS))
            await _step("settle", page.wait_for_timeout(settle_delay_ms))

            height = await _step("measure", _measure_full_height(page))
            await _step("resize", page.set_viewport_size(
                {"width": VIEWPORT_WIDTH, "height": height}
            ))
            image = await _step("screenshot", page.screenshot(full_page=True, type="png"))
            logger.info("Rendered %s (%dx%d, %d bytes)", url, VIEWPORT_WIDTH, height, len(image))
            return image
        finally:
            try:
                await browser.close()
            except Exception:
                logger.warning("Browser close failed for %s", url, exc_info=True)


def render(url, settings):
    """Load *url* in a headless browser and return a full-page PNG as bytes.

    Raises:
        RenderError: any browser step failed; ``err.step`` names it.
    """
    start = time.time()
    try:
        image = asyncio.run(_render_async(
            url, settings.navigation_timeout_ms, settings.settle_delay_ms,
        ))
    except RenderError:
        raise
    except Exception as e:
        # Playwright driver failed to start or shut down
        raise RenderError("driver", str(e) or e.__class__.__name__) from e
    logger.debug("Render took %dms", int((time.time() - start) * 1000))
    return image


def save_debug_screenshot(image, url, directory):
    """Write *image* under *directory* for local inspection. Returns the path."""
    directory.mkdir(parents=True, exist_ok=True)
    host = urlparse(url).hostname or "page"
    safe_host = re.sub(r"[^a-zA-Z0-9.-]", "_", host)
    path = directory / f"{safe_host}_{int(time.time())}.png"
    path.write_bytes(image)
    logger.info("Saved debug screenshot: %s", path)
    return path
