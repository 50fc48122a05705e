"""Tests for the locate -> render -> extract orchestrator.

Rendering is patched out; search and model use fakes.

Run: pytest tests/test_pipeline.py -v
Markers: extraction
"""
import json
from unittest.mock import patch

import pytest

from conftest import make_png
from core.errors import NotFoundError, RenderError
from core.pipeline import Pipeline

pytestmark = [pytest.mark.extraction]

SEARCH = {"items": [{"link": "https://example.com/pricing"}]}
TIERS = [{"name": "Pro", "price": "$20/mo", "features": {"Seats": "5"}}]
IMAGE = make_png(1920, 3000)


@pytest.fixture
def pipeline(settings, fake_client, fake_session):
    return Pipeline(settings, client=fake_client(json.dumps(TIERS)),
                    session=fake_session(SEARCH))


class TestPipeline:

    @patch("core.renderer.render", return_value=IMAGE)
    def test_run(self, mock_render, pipeline):
        report = pipeline.run("example.com")

        mock_render.assert_called_once_with("https://example.com/pricing", pipeline.settings)
        assert report.pricing_url == "https://example.com/pricing"
        assert report.attempts == 1
        assert report.to_dict()["tiers"] == TIERS
        assert report.screenshot_path is None

    @patch("core.renderer.render")
    def test_not_found_stops_before_render(self, mock_render, settings, fake_client, fake_session):
        client = fake_client(json.dumps(TIERS))
        pipeline = Pipeline(settings, client=client, session=fake_session({}))
        with pytest.raises(NotFoundError):
            pipeline.run("nothing.invalid")
        mock_render.assert_not_called()
        assert client.calls == []

    @patch("core.renderer.render", side_effect=RenderError("navigate", "timeout"))
    def test_render_failure_skips_model(self, mock_render, pipeline):
        with pytest.raises(RenderError) as exc_info:
            pipeline.run("example.com")
        assert exc_info.value.pricing_url == "https://example.com/pricing"
        assert pipeline.client.calls == []

    @patch("core.renderer.render", return_value=IMAGE)
    def test_debug_screenshot_written(self, mock_render, pipeline):
        pipeline.settings.debug_screenshots = True
        report = pipeline.run("example.com")
        assert report.screenshot_path
        with open(report.screenshot_path, "rb") as f:
            assert f.read() == IMAGE

    def test_client_built_lazily(self, settings):
        pipeline = Pipeline(settings)
        assert pipeline._client is None
        assert pipeline.client is pipeline.client
