from __future__ import annotations

import json
import threading

import httpx
import pytest

from apps.api.main import app
from core.mapping.models import MappingReport
from core.orchestrator.pipeline import MappingPipeline

_SOURCE = {
    "document": {
        "page_number": 2,
        "metadata": {
            "po": {"value": "PO-1", "bounding_box": [{"x": 5, "y": 6, "width": 7, "height": 8}]},
        },
    }
}


async def _post(body: bytes | dict[str, object]) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        return await client.post(
            "/v1/mapping", content=content, headers={"Content-Type": "application/json"}
        )


@pytest.mark.anyio
async def test_mapping_returns_boxes_per_leaf() -> None:
    response = await _post({"source": _SOURCE, "payload": {"po": "PO-1", "items": [{"x": "?"}]}})

    assert response.status_code == 200
    assert response.headers["X-Sourcelink-Request-Id"]
    assert response.json() == {
        "mapping": {
            "$.po": {"x": 5, "y": 6, "width": 7, "height": 8, "page": 2},
            "$.items.[0].x": None,
        }
    }


@pytest.mark.anyio
async def test_mapping_can_include_report_and_groups() -> None:
    response = await _post(
        {
            "source": _SOURCE,
            "payload": {"header": {"po": "PO-1"}},
            "include_report": True,
            "include_groups": True,
        }
    )

    assert response.status_code == 200
    body = response.json()
    assert body["report"]["matched_count"] == 1
    assert body["report"]["details"][0]["strategy"] == "exact"
    assert "mapping" not in body["report"]
    assert body["groups"]["$.header"] == {"x": 5, "y": 6, "width": 7, "height": 8, "page": 2}


@pytest.mark.anyio
async def test_mapping_with_missing_payload_is_empty() -> None:
    response = await _post({"source": _SOURCE})

    assert response.status_code == 200
    assert response.json() == {"mapping": {}}


@pytest.mark.anyio
async def test_mapping_rejects_invalid_json() -> None:
    response = await _post(b"{not json")

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "INVALID_JSON"
    assert body["detail"]["request_id"] == response.headers["X-Sourcelink-Request-Id"]


@pytest.mark.anyio
async def test_mapping_rejects_non_object_body() -> None:
    response = await _post(b"[1, 2]")

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGUMENT"


@pytest.mark.anyio
async def test_mapping_rejects_unknown_fields() -> None:
    response = await _post({"source": _SOURCE, "payload": {}, "fuzzy": True})

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "INVALID_ARGUMENT"
    assert body["detail"]["errors"]


@pytest.mark.anyio
async def test_mapping_rejects_large_body(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOURCELINK_MAX_BODY_BYTES", "16")

    response = await _post({"source": _SOURCE, "payload": {"po": "PO-1"}})

    assert response.status_code == 413
    body = response.json()
    assert body["error_code"] == "PAYLOAD_TOO_LARGE"
    assert body["detail"]["max_body_bytes"] == 16


@pytest.mark.anyio
async def test_meta_reports_active_policy() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/v1/meta")

    assert response.status_code == 200
    body = response.json()
    assert body["version"] == "0.1.0"
    assert body["strategies"][0] == "exact"
    assert body["page_policy"] == "majority"
    assert body["root_path"] == "$"


@pytest.mark.anyio
async def test_mapping_runs_outside_event_loop_thread(monkeypatch: pytest.MonkeyPatch) -> None:
    loop_thread = threading.get_ident()
    seen_threads: list[int] = []
    original_report = MappingPipeline.report

    def recording_report(self: MappingPipeline, payload: object, source: object) -> MappingReport:
        seen_threads.append(threading.get_ident())
        return original_report(self, payload, source)

    monkeypatch.setattr(MappingPipeline, "report", recording_report)

    response = await _post({"source": _SOURCE, "payload": {"po": "PO-1"}})

    assert response.status_code == 200
    assert response.json()["mapping"]["$.po"] is not None
    assert seen_threads and loop_thread not in seen_threads
