from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from usability_server import main  # noqa: E402
from usability_server.journey_analysis import JourneyAnalysisService  # noqa: E402
from usability_server.vision_providers import (  # noqa: E402
    VisionModelConfig,
    VisionProviderError,
)


class _FailingProvider:
    def analyze(self, *, prompt: str, images: list[str]):
        raise VisionProviderError("gemini request failed (503): overloaded")


def _config(route: str) -> VisionModelConfig:
    return VisionModelConfig(
        route=route,
        model=f"{route}-model",
        api_key="key",
        base_url=f"https://{route}.test",
        temperature=0.0,
        max_tokens=1024,
        timeout_seconds=30.0,
    )


@pytest.fixture
def client(monkeypatch):
    service = JourneyAnalysisService(
        configs={route: _config(route) for route in ("gemini", "openai", "claude")},
        provider_factory=lambda config: _FailingProvider(),
    )
    monkeypatch.setattr(main, "journey_service", service)
    return TestClient(main.app)


def test_journey_endpoints_are_wired_in_main():
    source = (REPO_ROOT / "usability_server" / "main.py").read_text(encoding="utf-8")

    assert '@app.get("/health")' in source
    assert '@app.get("/api/vision/providers")' in source
    assert '@app.get("/api/prompts/focus-options")' in source
    assert '@app.post("/api/journeys/analyze")' in source
    assert '@app.post("/api/journeys/parse")' in source
    assert '@app.post("/api/frames/analyze")' in source
    assert '@app.post("/api/frames/inspect")' in source


def test_health_and_focus_options(client):
    assert client.get("/health").json() == {"status": "ok"}

    options = client.get("/api/prompts/focus-options").json()
    assert [item["id"] for item in options["options"]][:2] == ["accessibility", "structure"]
    assert options["default_focus_areas"] == ["accessibility", "structure"]


def test_providers_endpoint_lists_routes(client):
    payload = client.get("/api/vision/providers").json()

    assert [item["id"] for item in payload["providers"]] == ["gemini", "openai", "claude"]


def test_parse_endpoint_returns_structured_steps(client):
    response = client.post(
        "/api/journeys/parse",
        json={"report": "- Step 1 Action: tap(3)\n- Step 2 Action: FINISH", "step_count": 2},
    )

    assert response.status_code == 200
    steps = response.json()["steps"]
    assert [step["action"]["kind"] for step in steps] == ["tap", "finish"]
    assert steps[0]["action"]["element_index"] == 3


def test_parse_endpoint_maps_bad_requests_to_400(client):
    response = client.post("/api/journeys/parse", json={"report": "tap(1)", "step_count": -1})

    assert response.status_code == 400


def test_analyze_endpoint_maps_provider_failures_to_502(client):
    response = client.post(
        "/api/journeys/analyze",
        json={
            "frames": [{"name": "Home", "image_base64": "aGVsbG8=", "elements": []}],
            "task_description": "로그인하기",
        },
    )

    assert response.status_code == 502
    assert "overloaded" in response.json()["detail"]


def test_frame_endpoint_maps_missing_image_to_400(client):
    response = client.post(
        "/api/frames/analyze",
        json={"frame": {"name": "Home"}, "task_description": "로그인하기"},
    )

    assert response.status_code == 400


def test_inspect_endpoint_scores_a_frame_without_calling_a_model(client):
    response = client.post(
        "/api/frames/inspect",
        json={
            "frame": {
                "name": "Login",
                "elements": [
                    {"id": "2:1", "type": "INSTANCE", "name": "로그인 버튼", "bbox": {"x": 0, "y": 0, "width": 30, "height": 30}}
                ],
                "text_sizes": [11],
            }
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["frame_name"] == "Login"
    assert payload["accessibility"]["score"] == 90
    assert payload["cognitive_load"]["score"] == 1
    assert payload["cognitive_load"]["recommendations"] == ["인지 부하가 적절한 수준입니다."]


def test_inspect_endpoint_maps_bad_colors_to_400(client):
    response = client.post(
        "/api/frames/inspect",
        json={"frame": {"color_pairs": [{"foreground": "#12", "background": "#FFFFFF"}]}},
    )

    assert response.status_code == 400
