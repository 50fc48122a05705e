"""Pricing API: page lookup, screenshot extraction, combined pipeline, runs.

Endpoints:
    POST /find-pricing-page     — {domain} -> {pricingUrl}
    POST /extract-pricing-info  — {url} -> [tier, ...]
    POST /api/getPricing        — {url|domain} -> {pricingUrl, pricingData}, persisted
    POST /api/getCompetitors    — {company} -> [{name, url}, ...]
    GET  /api/runs              — recent persisted runs
    GET  /api/runs/<id>         — one persisted run
"""
from flask import Blueprint, request, jsonify, current_app
from loguru import logger

from core.competitors import find_competitors
from core.errors import (
    NotFoundError, UpstreamError, RenderError, ExtractionFailedError, PricingError,
)
from core.models import tiers_to_json

pricing_bp = Blueprint("pricing", __name__)


def _field(data, *names):
    """First non-empty string among *names* in the request body."""
    for name in names:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _normalize_url(url):
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def _error(message, exc, **extra):
    details = str(exc)
    if getattr(exc, "details", None):
        details = f"{details} ({exc.details})"
    body = {"error": message, "details": details}
    body.update(extra)
    return jsonify(body), 500


def _raw_content_fallback(exc):
    """Legacy {rawContent} body, only when explicitly enabled."""
    if isinstance(exc, ExtractionFailedError) and current_app.settings.expose_raw_content:
        return jsonify({"rawContent": exc.raw_content or ""})
    return None


# ── Page lookup ───────────────────────────────────────────────

@pricing_bp.route("/find-pricing-page", methods=["POST"])
def api_find_pricing_page():
    data = request.get_json(silent=True) or {}
    domain = _field(data, "domain", "url")
    if not domain:
        return jsonify({"error": "domain is required"}), 400

    try:
        pricing_url = current_app.pipeline.find_pricing_page(domain)
    except NotFoundError:
        logger.info("No pricing page found for {}", domain)
        return jsonify({"pricingUrl": None})
    except UpstreamError as e:
        logger.error("Search failed for {}: {}", domain, e.details)
        return _error("Error finding pricing page", e)

    return jsonify({"pricingUrl": pricing_url})


# ── Extraction ────────────────────────────────────────────────

@pricing_bp.route("/extract-pricing-info", methods=["POST"])
def api_extract_pricing_info():
    data = request.get_json(silent=True) or {}
    url = _field(data, "url")
    if not url:
        return jsonify({"error": "url is required"}), 400
    url = _normalize_url(url)

    try:
        tiers, attempts, _ = current_app.pipeline.extract_from_url(url)
    except (RenderError, ExtractionFailedError, UpstreamError) as e:
        logger.warning("Extraction failed for {}: {}", url, e)
        fallback = _raw_content_fallback(e)
        if fallback is not None:
            return fallback
        return _error("Error extracting pricing information", e)

    logger.info("Extracted {} tiers from {} in {} attempt(s)", len(tiers), url, attempts)
    return jsonify(tiers_to_json(tiers))


# ── Combined pipeline ─────────────────────────────────────────

@pricing_bp.route("/api/getPricing", methods=["POST"])
def api_get_pricing():
    """Locate, render and extract in one request; the run is persisted.

    Request JSON:
        url or domain (required): company domain

    Returns:
        {"pricingUrl": str|null, "pricingData": [tier, ...]|null}
    """
    data = request.get_json(silent=True) or {}
    domain = _field(data, "url", "domain")
    if not domain:
        return jsonify({"error": "URL is required"}), 400

    db = current_app.db
    try:
        report = current_app.pipeline.run(domain)
    except NotFoundError:
        db.save_run(domain, status="not_found")
        return jsonify({"pricingUrl": None, "pricingData": None})
    except PricingError as e:
        logger.error("getPricing failed for {}: {}", domain, e)
        db.save_run(domain, pricing_url=e.pricing_url, status="error", error=str(e))
        fallback = _raw_content_fallback(e)
        if fallback is not None:
            return fallback
        return _error("Error processing the request", e, pricingUrl=e.pricing_url)

    pricing_data = tiers_to_json(report.tiers)
    db.save_run(
        domain,
        pricing_url=report.pricing_url,
        pricing_info=pricing_data,
        attempts=report.attempts,
        duration_ms=report.duration_ms,
    )
    return jsonify({"pricingUrl": report.pricing_url, "pricingData": pricing_data})


# ── Competitors ───────────────────────────────────────────────

@pricing_bp.route("/api/getCompetitors", methods=["POST"])
def api_get_competitors():
    data = request.get_json(silent=True) or {}
    company = _field(data, "company")
    if not company:
        return jsonify({"error": "company is required"}), 400

    pipeline = current_app.pipeline
    try:
        competitors = find_competitors(company, pipeline.client, current_app.settings.text_model)
    except UpstreamError as e:
        logger.error("Competitor lookup failed for {}: {}", company, e.details)
        return _error("Error finding competitors", e)

    return jsonify([c.model_dump() for c in competitors])


# ── Persisted runs ────────────────────────────────────────────

@pricing_bp.route("/api/runs")
def api_list_runs():
    limit = request.args.get("limit", 50, type=int)
    limit = max(1, min(limit, 500))
    domain = request.args.get("domain") or None
    return jsonify(current_app.db.get_runs(limit=limit, domain=domain))


@pricing_bp.route("/api/runs/<int:run_id>")
def api_get_run(run_id):
    run = current_app.db.get_run(run_id)
    if not run:
        return jsonify({"error": "Not found"}), 404
    return jsonify(run)
