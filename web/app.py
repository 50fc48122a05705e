"""Flask web app: pricing API plus the single-page front end."""
import logging
import sys
import time
from collections import defaultdict

from flask import Flask, render_template, request, jsonify, g
from flask_cors import CORS
from flask_talisman import Talisman
from loguru import logger

from config import (
    WEB_HOST, LOGS_DIR, APP_VERSION,
    RATE_LIMIT_WINDOW, RATE_LIMIT_MAX_REQUESTS,
    load_settings,
)
from core.pipeline import Pipeline
from storage.db import Database

LOG_FILE = LOGS_DIR / "app.log"

# Endpoints that hit the search API, the browser or the model
PRICING_PATHS = (
    "/find-pricing-page",
    "/extract-pricing-info",
    "/api/getPricing",
    "/api/getCompetitors",
)


def _setup_logging():
    """Configure loguru file + stderr logging with rotation."""
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    logger.remove()
    logger.add(
        str(LOG_FILE),
        rotation="5 MB",
        retention=5,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )
    logger.add(sys.stderr, level="INFO", format="{time:HH:mm:ss} | {level: <8} | {message}")

    # core/ modules log through the standard library
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s - %(message)s",
    )

    def _exception_hook(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        logger.exception("Unhandled exception: {}", exc_value)

    sys.excepthook = _exception_hook


def _check_rate_limit(buckets, key, category="default"):
    """Return True if request is allowed, False if rate-limited."""
    now = time.time()
    cutoff = now - RATE_LIMIT_WINDOW
    buckets[key] = [t for t in buckets[key] if t > cutoff]
    max_req = RATE_LIMIT_MAX_REQUESTS.get(category, 120)
    if len(buckets[key]) >= max_req:
        return False
    buckets[key].append(now)
    return True


def create_app(settings=None, pipeline=None, db=None):
    """Build the app. Collaborators are injectable for tests."""
    _setup_logging()
    logger.info("Starting pricing.ai v{}", APP_VERSION)

    settings = settings or load_settings()
    missing = settings.missing_keys()
    if missing:
        logger.warning("Missing credentials: {}", ", ".join(missing))

    app = Flask(
        __name__,
        template_folder="templates",
        static_folder="static",
    )
    app.config["MAX_CONTENT_LENGTH"] = 1 * 1024 * 1024
    app.config.setdefault("RATELIMIT_ENABLED", True)

    csp = {
        "default-src": "'self'",
        "script-src": "'self'",
        "style-src": "'self'",
        "img-src": ["'self'", "data:"],
        "connect-src": "'self'",
        "frame-src": "'none'",
        "object-src": "'none'",
        "base-uri": "'self'",
    }
    Talisman(
        app,
        content_security_policy=csp,
        force_https=False,
        strict_transport_security=False,
        session_cookie_secure=False,
    )
    # Separately hosted front ends call the JSON API cross-origin
    CORS(app, resources={r"/api/*": {"origins": "*"},
                         r"/find-pricing-page": {"origins": "*"},
                         r"/extract-pricing-info": {"origins": "*"}})

    app.settings = settings
    app.pipeline = pipeline or Pipeline(settings)
    app.db = db or Database()
    app.rate_buckets = defaultdict(list)

    # --- Request logging ---
    @app.before_request
    def _log_request():
        g.request_start = time.time()

    @app.after_request
    def _after_request(response):
        duration = time.time() - getattr(g, "request_start", time.time())
        if request.path != "/healthz" and not request.path.startswith("/static/"):
            logger.info(
                "{} {} {} {:.0f}ms",
                request.method, request.path, response.status_code,
                duration * 1000,
            )
        return response

    # --- Rate limiting ---
    @app.before_request
    def _rate_limit():
        if not app.config.get("RATELIMIT_ENABLED"):
            return
        if request.method == "OPTIONS":
            return
        client_key = request.remote_addr or "local"
        category = "pricing" if request.path in PRICING_PATHS else "default"
        if not _check_rate_limit(app.rate_buckets, f"{client_key}:{category}", category):
            logger.warning("Rate limit exceeded for {} ({})", client_key, category)
            return jsonify({"error": "Rate limit exceeded. Please wait."}), 429

    # --- Health check ---
    @app.route("/healthz")
    def healthz():
        try:
            app.db.ping()
            return jsonify({"status": "ok", "db": "connected"})
        except Exception as e:
            return jsonify({"status": "error", "error": str(e)}), 500

    # --- Pages ---
    @app.route("/")
    def index():
        return render_template("index.html", app_version=APP_VERSION)

    from web.blueprints.pricing import pricing_bp
    app.register_blueprint(pricing_bp)

    return app


def main():
    app = create_app()
    print("\n  pricing.ai")
    print(f"  http://{WEB_HOST}:{app.settings.port}\n")
    app.run(host=WEB_HOST, port=app.settings.port)


if __name__ == "__main__":
    main()
