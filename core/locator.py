"""Pricing page lookup via the Google Custom Search JSON API."""
import logging

import requests

from config import SEARCH_ENDPOINT, SEARCH_TIMEOUT
from core.errors import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


def build_query(domain):
    return f"{domain} pricing"


def locate(domain, settings, session=None):
    """Return the top search result URL for "<domain> pricing".

    Args:
        domain: Company domain, e.g. "example.com". Must be non-empty.
        settings: config.Settings with google_api_key / google_cx.
        session: Optional requests.Session (injectable for tests).

    Raises:
        ValueError: empty domain.
        NotFoundError: the search returned no results.
        UpstreamError: the search call itself failed. Not retried.
    """
    domain = (domain or "").strip()
    if not domain:
        raise ValueError("domain must be non-empty")

    http = session or requests
    params = {
        "key": settings.google_api_key,
        "cx": settings.google_cx,
        "q": build_query(domain),
    }
    logger.info("Searching for pricing page: %s", domain)

    try:
        resp = http.get(SEARCH_ENDPOINT, params=params, timeout=SEARCH_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else "?"
        raise UpstreamError("search request failed", details=f"HTTP {status}") from e
    except requests.RequestException as e:
        raise UpstreamError("search request failed", details=str(e)) from e
    except ValueError as e:
        raise UpstreamError("search returned invalid JSON", details=str(e)) from e

    items = data.get("items") or []
    for item in items:
        link = item.get("link")
        if link:
            logger.info("Found pricing URL for %s: %s", domain, link)
            return link

    raise NotFoundError(f"no pricing page found for {domain}")
