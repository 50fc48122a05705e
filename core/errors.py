"""Exception types raised by the pricing pipeline stages.

The web layer translates these into HTTP responses; core code never
builds response bodies itself.
"""


class PricingError(Exception):
    """Base class for pipeline failures."""

    step = None
    # Set by Pipeline.run when the failure happened after the page was found
    pricing_url = None

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details


class NotFoundError(PricingError):
    """The search returned no pricing page for the domain."""


class UpstreamError(PricingError):
    """A search or model API call failed (network, auth, quota)."""


class RenderError(PricingError):
    """Browser automation failed at a named step."""

    def __init__(self, step, message, details=None):
        super().__init__(f"{step}: {message}", details=details)
        self.step = step


class ExtractionFailedError(PricingError):
    """No valid pricing data after all extraction attempts."""

    def __init__(self, attempts, raw_content=None):
        super().__init__(
            "failed to generate valid pricing data after multiple attempts",
            details=f"{attempts} attempts",
        )
        self.attempts = attempts
        # Server-side only; never returned to clients unless explicitly enabled.
        self.raw_content = raw_content
