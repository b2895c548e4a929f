"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from intgen.catalog import CatalogRegistry
from intgen.config import IntgenConfig
from intgen.engine import IntegrationEngine
from intgen.service import create_app
from tests._fixtures.doubles import RecordingWriter, run_inline
from tests._fixtures.project_builder import ProjectBuilder

_PREVIEW = {
    "providerId": "stripe",
    "framework": "nextjs",
    "features": ["webhooks"],
    "envVarNames": ["STRIPE_SECRET_KEY"],
}


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    engine = IntegrationEngine(
        IntgenConfig(root=tmp_path),
        registry=CatalogRegistry.builtin(),
        writer=RecordingWriter(),
        spawn=run_inline,
    )
    return TestClient(create_app(lambda: engine))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_detect_and_analyze_endpoints(client: TestClient, project_builder: ProjectBuilder) -> None:
    project_builder.nextjs_app()
    payload = {"projectPath": str(project_builder.path())}

    detected = client.post("/frameworks/detect", json=payload)
    analysis = client.post("/projects/analyze", json=payload)

    assert detected.status_code == 200
    first = detected.json()[0]
    assert first["framework"] == "nextjs"
    assert first["confidence"] == 1.0
    assert {"evidenceType", "confidenceWeight", "source"} <= set(first["evidence"][0])
    assert first["metadata"]["evidence_count"] == 4
    assert analysis.json()["projectType"] == "frontend"
    assert analysis.json()["primaryFramework"]["framework"] == "nextjs"


def test_suggestions_endpoint(client: TestClient) -> None:
    response = client.post(
        "/templates/suggestions",
        json={"envVarNames": ["OPENAI_API_KEY", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET"]},
    )

    data = response.json()
    assert [item["templateId"] for item in data] == ["stripe-config", "openai-config"]
    assert data[0]["requiredEnvVars"] == ["STRIPE_SECRET_KEY"]
    assert data[0]["difficultyLevel"] == "intermediate"


def test_validation_endpoints(client: TestClient) -> None:
    single = client.post(
        "/validation",
        json={"providerId": "stripe", "framework": "nextjs", "features": ["webhooks"]},
    )
    batch = client.post(
        "/validation/batch",
        json={
            "requests": [
                {"providerId": "stripe", "framework": "nextjs"},
                {"providerId": "stripe", "framework": "django"},
            ]
        },
    )

    assert single.status_code == 200
    assert single.json()["isValid"] is True
    assert single.json()["suggestions"] == ["error-handling"]
    assert single.json()["compatibilityLevel"] == "full"
    summary = batch.json()["summary"]
    assert summary == {
        "totalRequests": 2,
        "validCount": 1,
        "invalidCount": 1,
        "warningCount": 0,
        "errorCount": 1,
    }
    assert batch.json()["results"][1]["missingRequirements"] == [
        "Framework not supported for this provider"
    ]


def test_provider_compatibility_endpoint(client: TestClient) -> None:
    response = client.get("/providers/stripe/compatibility")
    missing = client.get("/providers/paypal/compatibility")

    entries = {entry["framework"]: entry for entry in response.json()}
    assert entries["nextjs"]["compatibilityLevel"] == "full"
    assert entries["nextjs"]["supportedFeatures"] == ["error-handling", "webhooks"]
    assert missing.status_code == 404


def test_preview_session_lifecycle(client: TestClient) -> None:
    started = client.post("/sessions/preview", json=_PREVIEW)

    assert started.status_code == 202
    session_id = started.json()["sessionId"]
    status = client.get(f"/sessions/{session_id}").json()
    assert status["status"] == "completed"
    assert status["progress"]["progress"] == 100
    assert status["previewOnly"] is True

    events = client.get(f"/sessions/{session_id}/events").json()
    assert events[-1]["kind"] == "completed"
    assert client.get(f"/sessions/{session_id}/events").json() == []
    streamed = client.get(f"/sessions/{session_id}/stream").text
    assert streamed.count("event: progress") == len(events) - 1
    assert streamed.count("event: completed") == 1

    result = client.get(f"/sessions/{session_id}/result").json()
    assert [item["path"] for item in result["files"]] == [
        "lib/stripe.ts",
        "app/api/webhooks/stripe/route.ts",
    ]
    assert result["templateInfo"]["compatibilityLevel"] == "full"

    cancelled = client.post(f"/sessions/{session_id}/cancel")
    assert cancelled.json() == {"cancelled": False}
    assert client.get("/sessions").json() == []


def test_stream_endpoint_emits_server_sent_events(client: TestClient) -> None:
    session_id = client.post("/sessions/preview", json=_PREVIEW).json()["sessionId"]

    response = client.get(f"/sessions/{session_id}/stream")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    body = response.text
    assert body.count("event: completed") == 1
    assert body.index("event: progress") < body.index("event: completed")


def test_generation_errors_map_to_status_codes(client: TestClient) -> None:
    leaked = client.post(
        "/sessions/generation",
        json={**_PREVIEW, "envVarNames": ["STRIPE_SECRET_KEY=sk_live_123"], "outputPath": "/tmp/x"},
    )
    unknown_provider = client.post("/sessions/preview", json={**_PREVIEW, "providerId": "paypal"})

    assert leaked.status_code == 400
    assert "sk_live_123" not in leaked.text
    assert unknown_provider.status_code == 404
    assert client.get("/sessions/does-not-exist").status_code == 404
    assert client.get("/sessions/does-not-exist/result").status_code == 404


def test_cache_endpoints(client: TestClient) -> None:
    client.post("/sessions/preview", json=_PREVIEW)
    client.post("/sessions/preview", json=_PREVIEW)

    stats = client.get("/cache/stats").json()
    assert stats == {"hitCount": 1, "missCount": 1, "evictionCount": 0, "size": 1}
    assert client.delete("/cache").json() == {"cleared": 1}
    assert client.get("/cache/stats").json()["size"] == 0
