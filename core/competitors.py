"""Competitor suggestions from a single text-model call.

No retry loop and no strict schema: the response is repaired leniently and
anything that does not look like a ``{name, url}`` pair is dropped.
"""
import logging

from json_repair import loads as repair_loads

from core.llm import run_messages
from core.models import Competitor

logger = logging.getLogger(__name__)

MAX_COMPETITORS = 5


def build_prompt(company):
    return f"""List between 3 and 5 direct competitors of the company "{company}".

Respond with ONLY a JSON array of objects, each with:
  "name": the competitor's company name
  "url": the competitor's main website URL

No explanations."""


def parse_competitors(text):
    """Leniently parse model text into a list of Competitor."""
    try:
        raw = repair_loads(text or "[]")
    except Exception:
        logger.warning("Could not repair competitor response")
        return []

    if isinstance(raw, dict):
        raw = raw.get("competitors", [])
    if not isinstance(raw, list):
        return []

    result = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get("name"), str):
            continue
        url = item.get("url")
        result.append(Competitor(name=item["name"].strip(),
                                 url=url.strip() if isinstance(url, str) else ""))
    return result[:MAX_COMPETITORS]


def find_competitors(company, client, model):
    """Return up to 5 competitors for *company*.

    Raises:
        ValueError: empty company name.
        UpstreamError: the model API call failed.
    """
    company = (company or "").strip()
    if not company:
        raise ValueError("company must be non-empty")
    text = run_messages(client, model, build_prompt(company),
                        max_tokens=1024, operation="competitors")
    competitors = parse_competitors(text)
    logger.info("Found %d competitors for %s", len(competitors), company)
    return competitors
