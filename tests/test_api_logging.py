from __future__ import annotations

import logging

import httpx
import pytest

from apps.api.main import app


async def _post(content: bytes) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        return await client.post(
            "/v1/mapping", content=content, headers={"Content-Type": "application/json"}
        )


@pytest.mark.anyio
async def test_api_logs_request_id_for_success(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="sourcelink.api")

    response = await _post(b'{"source": {"text": "A", "bbox": [0, 0, 1, 1]}, "payload": {"a": "A"}}')

    assert response.status_code == 200
    request_id = response.headers["X-Sourcelink-Request-Id"]
    messages = [record.message for record in caplog.records if record.name == "sourcelink.api"]
    assert any('"event":"start"' in message and request_id in message for message in messages)
    assert any(
        '"event":"done"' in message
        and request_id in message
        and '"matched_count":1' in message
        and '"outcome":"ok"' in message
        for message in messages
    )


@pytest.mark.anyio
async def test_api_logs_request_id_and_error_code_for_failure(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="sourcelink.api")

    response = await _post(b"not-json")

    assert response.status_code == 400
    request_id = response.headers["X-Sourcelink-Request-Id"]
    messages = [record.message for record in caplog.records if record.name == "sourcelink.api"]
    assert any(
        '"event":"error"' in message
        and request_id in message
        and '"error_code":"INVALID_JSON"' in message
        and '"failure_stage":"validate_body"' in message
        for message in messages
    )
