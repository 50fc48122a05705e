"""Orchestrator: locate -> render -> extract, strictly sequential."""
import logging
import time

from core import extractor, locator, renderer
from core.errors import PricingError
from core.llm import make_client
from core.models import PricingReport

logger = logging.getLogger(__name__)


class Pipeline:
    """Runs the pricing stages with explicitly injected collaborators.

    Args:
        settings: config.Settings.
        client: Anthropic client; built from settings when omitted.
        session: requests.Session for the search call (optional).
    """

    def __init__(self, settings, client=None, session=None):
        self.settings = settings
        self._client = client
        self.session = session

    @property
    def client(self):
        # Built on first use so the app starts without model credentials
        if self._client is None:
            self._client = make_client(self.settings)
        return self._client

    def find_pricing_page(self, domain):
        return locator.locate(domain, self.settings, session=self.session)

    def extract_from_url(self, url):
        """Render *url* and extract tiers. Returns (tiers, attempts, screenshot_path)."""
        image = renderer.render(url, self.settings)

        screenshot_path = None
        if self.settings.debug_screenshots:
            screenshot_path = str(renderer.save_debug_screenshot(
                image, url, self.settings.screenshots_dir,
            ))

        tiers, attempts = extractor.extract(
            image,
            client=self.client,
            model=self.settings.vision_model,
            max_attempts=self.settings.max_attempts,
            require_shared_keys=self.settings.enforce_shared_feature_keys,
        )
        return tiers, attempts, screenshot_path

    def run(self, domain):
        """Full pipeline for one domain.

        Raises whatever the failing stage raises (NotFoundError, UpstreamError,
        RenderError, ExtractionFailedError); nothing is retried here. Failures after
        the lookup carry the located URL as ``pricing_url``.
        """
        start = time.time()
        pricing_url = self.find_pricing_page(domain)
        try:
            tiers, attempts, screenshot_path = self.extract_from_url(pricing_url)
        except PricingError as e:
            e.pricing_url = pricing_url
            raise
        report = PricingReport(
            domain=domain,
            pricing_url=pricing_url,
            tiers=tiers,
            attempts=attempts,
            duration_ms=int((time.time() - start) * 1000),
            screenshot_path=screenshot_path,
        )
        logger.info("Pricing for %s: %d tiers in %dms",
                    domain, len(tiers), report.duration_ms)
        return report
