"""Screenshot -> pricing tiers, with schema-validated retry.

The vision model's output is not schema-constrained, so each response is
parsed as JSON and checked with ``core.validator`` before it is trusted.
Malformed or invalid responses are retried up to ``max_attempts`` times with
no delay in between; the model call itself is the bottleneck.
"""
import json
import logging
import re

from config import MAX_EXTRACTION_ATTEMPTS
from core.errors import ExtractionFailedError
from core.llm import image_block, run_messages
from core.models import PricingTier
from core.validator import is_valid, unwrap_tiers

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """You are reading a screenshot of a software company's pricing page.

Extract every pricing tier shown and respond with ONLY a JSON array, no prose and no Markdown. Each element must be an object with exactly these keys:
  "name": the tier name as a string (e.g. "Free", "Pro", "Enterprise")
  "price": the price as a string including the billing period (e.g. "$20/mo", "$192/yr", "Contact sales")
  "features": an object mapping feature name (string) to value (string)

Rules for "features":
- Use the page's own terminology for feature names.
- Put units inside the value (e.g. "10 GB", "5 seats", "99.9% uptime").
- Abbreviate numbers of 1000 or more with K, M or B (e.g. "10K requests", "1.5M events").
- Every tier must have the SAME set of feature names. If a tier does not offer a feature, include it with the value "Not offered".
- "features" must be an object, never an array.
- Leave out marketing copy, taglines, testimonials and calls to action.

Example:
[{"name": "Free", "price": "$0/mo", "features": {"Seats": "1", "Storage": "1 GB"}},
 {"name": "Pro", "price": "$20/mo", "features": {"Seats": "5", "Storage": "100 GB"}}]"""

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def parse_model_json(text):
    """Parse model text as JSON, preferring the first Markdown code fence.

    Prose around a fenced block is ignored; unfenced text is parsed whole.

    Raises:
        ValueError: the text is not valid JSON, or nests too deeply to decode.
    """
    if text is None:
        raise ValueError("empty response")
    m = _FENCE_RE.search(text)
    if m:
        text = m.group(1)
    try:
        return json.loads(text)
    except RecursionError as e:
        raise ValueError("JSON nested too deeply") from e


def extract(image, client, model, max_attempts=MAX_EXTRACTION_ATTEMPTS,
            require_shared_keys=True):
    """Extract pricing tiers from a pricing-page screenshot.

    Args:
        image: PNG bytes.
        client: Anthropic client (see core.llm.make_client).
        model: Vision-capable model name.
        max_attempts: Upper bound on model calls.
        require_shared_keys: Reject results whose tiers disagree on feature names.

    Returns:
        (tiers, attempts): list[PricingTier] and the number of model calls made.

    Raises:
        ExtractionFailedError: no valid result within *max_attempts*.
        UpstreamError: the model API itself failed.
    """
    content = [image_block(image), {"type": "text", "text": EXTRACTION_PROMPT}]
    attempt = 0
    last_text = None

    while attempt < max_attempts:
        attempt += 1
        last_text = run_messages(client, model, content, operation="extract_pricing")

        try:
            parsed = parse_model_json(last_text)
        except ValueError as e:
            logger.warning("Attempt %d/%d: response is not JSON (%s)", attempt, max_attempts, e)
            continue

        if not is_valid(parsed, require_shared_keys=require_shared_keys):
            logger.warning("Attempt %d/%d: response failed pricing schema", attempt, max_attempts)
            continue

        tiers = [PricingTier.model_validate(t) for t in unwrap_tiers(parsed)]
        logger.info("Extracted %d tiers on attempt %d", len(tiers), attempt)
        return tiers, attempt

    logger.error("Extraction failed after %d attempts; last response: %.500s",
                 attempt, last_text or "")
    raise ExtractionFailedError(attempt, raw_content=last_text)
