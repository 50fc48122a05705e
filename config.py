"""Shared configuration for the pricing.ai extraction service."""
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

import keyring
from keyring.errors import KeyringError

# App version
APP_VERSION = "0.3.0"

# Paths
BASE_DIR = Path(__file__).parent

_is_bundled = getattr(sys, "frozen", False)
if _is_bundled:
    DATA_DIR = Path.home() / ".pricing-ai"
else:
    DATA_DIR = Path(os.environ.get("PRICING_DATA_DIR", BASE_DIR / "data"))

LOGS_DIR = DATA_DIR / "logs"
SCREENSHOTS_DIR = DATA_DIR / "screenshots"
DB_PATH = DATA_DIR / "pricing.db"

# Keychain service name for API key fallback
KEYRING_SERVICE = "pricing.ai"

# Search
SEARCH_ENDPOINT = "https://www.googleapis.com/customsearch/v1"
SEARCH_TIMEOUT = 20  # seconds

# Rendering
NAVIGATION_TIMEOUT_MS = 100_000
VIEWPORT_WIDTH = 1920
VIEWPORT_HEIGHT = 1080
SETTLE_DELAY_MS = 1000

# Extraction
DEFAULT_VISION_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_TEXT_MODEL = "claude-haiku-4-5-20251001"
MAX_EXTRACTION_ATTEMPTS = 3
MODEL_TIMEOUT = 120  # seconds per model call
MODEL_MAX_TOKENS = 4096

# Rate limiting
RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX_REQUESTS = {
    "pricing": 5,    # search/render/model endpoints per window
    "default": 120,
}

# Web server
WEB_HOST = "127.0.0.1"
WEB_PORT = 3001


def _env_flag(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_secret(env_name):
    """Read a secret from the environment, falling back to the OS keychain."""
    value = os.environ.get(env_name, "")
    if value:
        return value
    try:
        return keyring.get_password(KEYRING_SERVICE, env_name) or ""
    except KeyringError:
        return ""


@dataclass
class Settings:
    """Runtime configuration, built once at startup and passed to components."""
    google_api_key: str = ""
    google_cx: str = ""
    anthropic_api_key: str = ""
    vision_model: str = DEFAULT_VISION_MODEL
    text_model: str = DEFAULT_TEXT_MODEL
    port: int = WEB_PORT
    debug_screenshots: bool = False
    expose_raw_content: bool = False
    enforce_shared_feature_keys: bool = True
    max_attempts: int = MAX_EXTRACTION_ATTEMPTS
    model_timeout: int = MODEL_TIMEOUT
    navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS
    settle_delay_ms: int = SETTLE_DELAY_MS
    screenshots_dir: Path = field(default_factory=lambda: SCREENSHOTS_DIR)

    def missing_keys(self):
        """Names of required credentials that are not configured."""
        missing = []
        if not self.google_api_key:
            missing.append("GOOGLE_API_KEY")
        if not self.google_cx:
            missing.append("GOOGLE_CX")
        if not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY")
        return missing


def load_settings():
    """Build Settings from environment variables (keychain for secrets)."""
    return Settings(
        google_api_key=get_secret("GOOGLE_API_KEY"),
        google_cx=os.environ.get("GOOGLE_CX", ""),
        anthropic_api_key=get_secret("ANTHROPIC_API_KEY"),
        vision_model=os.environ.get("PRICING_MODEL", DEFAULT_VISION_MODEL),
        text_model=os.environ.get("COMPETITOR_MODEL", DEFAULT_TEXT_MODEL),
        port=int(os.environ.get("PORT", WEB_PORT)),
        debug_screenshots=_env_flag("DEBUG_SCREENSHOTS"),
        expose_raw_content=_env_flag("EXPOSE_RAW_CONTENT"),
        enforce_shared_feature_keys=_env_flag("ENFORCE_SHARED_FEATURE_KEYS", True),
    )
