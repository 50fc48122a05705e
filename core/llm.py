"""Anthropic Messages API calls for vision extraction and competitor lookup.

Clients are created once at startup (``make_client``) and passed into each
call; nothing here reads global client state.

Transient transport errors (connection drops, timeouts) are retried with
exponential backoff. Every other API error surfaces immediately as
UpstreamError.
"""
import base64
import logging
import time

import anthropic
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import MODEL_MAX_TOKENS
from core.errors import UpstreamError

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (anthropic.APIConnectionError, anthropic.APITimeoutError)


def make_client(settings):
    """Build the Anthropic client for *settings* (per-call deadline included)."""
    try:
        return anthropic.Anthropic(
            api_key=settings.anthropic_api_key or None,
            timeout=settings.model_timeout,
            max_retries=0,  # transport retries handled by tenacity below
        )
    except anthropic.AnthropicError as e:
        raise UpstreamError("model client not configured", details=str(e)) from e


def image_block(image, media_type="image/png"):
    """Anthropic content block carrying *image* bytes as base64."""
    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": media_type,
            "data": base64.b64encode(image).decode("ascii"),
        },
    }


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type(_TRANSIENT_ERRORS),
    reraise=True,
)
def _create(client, **kwargs):
    return client.messages.create(**kwargs)


def run_messages(client, model, content, max_tokens=MODEL_MAX_TOKENS, system=None,
                 operation=None):
    """Send one user message and return the concatenated text response.

    Args:
        client: anthropic.Anthropic (or a stand-in with ``messages.create``).
        model: Model name.
        content: User message content (string or list of content blocks).
        max_tokens: Output token cap.
        system: Optional system prompt.
        operation: Label used in log lines.

    Raises:
        UpstreamError: the API call failed after transport retries.
    """
    kwargs = {
        "model": model,
        "max_tokens": max_tokens,
        "messages": [{"role": "user", "content": content}],
    }
    if system:
        kwargs["system"] = system

    start = time.time()
    try:
        response = _create(client, **kwargs)
    except anthropic.APIStatusError as e:
        raise UpstreamError("model request failed",
                            details=f"HTTP {e.status_code}: {e.message}") from e
    except anthropic.APIError as e:
        raise UpstreamError("model request failed", details=str(e)) from e

    elapsed_ms = int((time.time() - start) * 1000)
    text = "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    )
    usage = getattr(response, "usage", None)
    logger.info(
        "Model call %s (%s): %dms, in=%s out=%s",
        operation or "messages", model, elapsed_ms,
        getattr(usage, "input_tokens", "?"), getattr(usage, "output_tokens", "?"),
    )
    return text
