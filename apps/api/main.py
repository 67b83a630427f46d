"""FastAPI wrapper exposing the source-to-payload mapping pipeline."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import uuid
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from core.mapping.groups import group_boxes
from core.mapping.models import MappingReport
from core.mapping.policy_loader import load_policy
from core.orchestrator.pipeline import MappingPipeline
from core.utils.events import log_event

app = FastAPI(title="sourcelink API", version="0.1.0")
logger = logging.getLogger("sourcelink.api")

_DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024
_REQUEST_ID_HEADER = "X-Sourcelink-Request-Id"


class MappingRequest(BaseModel):
    """Body of ``POST /v1/mapping``."""

    model_config = ConfigDict(extra="forbid")

    source: Any = None
    payload: Any = None
    include_report: bool = False
    include_groups: bool = False


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


_pipeline_lock = threading.Lock()
_pipeline_cache: MappingPipeline | None = None


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        log_event(
            logger,
            logging.ERROR,
            "error",
            request_id=request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(_REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint for host applications."""

    request_id = _request_id_from_request(request)
    policy = _get_pipeline().policy
    payload = {
        "version": app.version,
        "strategies": list(policy.strategies),
        "page_policy": policy.page_policy,
        "root_path": policy.root_path,
    }
    return JSONResponse(status_code=200, headers={_REQUEST_ID_HEADER: request_id}, content=payload)


@app.post("/v1/mapping", response_model=None)
async def mapping_v1(request: Request) -> JSONResponse:
    """Compute the payload-path -> bounding box mapping for one document."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "read_body"

    try:
        body = await request.body()
        max_body_bytes = _max_body_bytes()
        if len(body) > max_body_bytes:
            raise ApiRequestError(
                status_code=413,
                error_code="PAYLOAD_TOO_LARGE",
                message="request body too large",
                detail={"max_body_bytes": max_body_bytes},
            )

        failure_stage = "validate_body"
        mapping_request = await run_in_threadpool(_parse_mapping_request, body)
        log_event(
            logger,
            logging.INFO,
            "start",
            request_id=request_id,
            body_bytes=len(body),
            include_report=mapping_request.include_report,
            include_groups=mapping_request.include_groups,
        )

        failure_stage = "map"
        report, content = await run_in_threadpool(_run_mapping, mapping_request, _get_pipeline())

        log_event(
            logger,
            logging.INFO,
            "done",
            request_id=request_id,
            status_code=200,
            outcome="failed" if report.failed else "ok",
            leaf_count=report.leaf_count,
            matched_count=report.matched_count,
            unmatched_count=report.unmatched_count,
            timing={"total_ms": _elapsed_ms(request_started)},
        )
        return JSONResponse(status_code=200, headers={_REQUEST_ID_HEADER: request_id}, content=content)
    except ApiRequestError as exc:
        log_event(
            logger,
            logging.ERROR,
            "error",
            request_id=request_id,
            error_code=exc.error_code,
            status_code=exc.status_code,
            failure_stage=failure_stage,
            outcome="rejected",
        )
        return _error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            request_id=request_id,
            detail=exc.detail,
        )
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            logging.ERROR,
            "error",
            request_id=request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage=failure_stage,
            outcome="error",
        )
        return _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"error": str(exc), "total_ms": _elapsed_ms(request_started)},
        )


def _parse_mapping_request(body: bytes) -> MappingRequest:
    try:
        raw = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_JSON",
            message="request body must be valid JSON",
        ) from exc

    if not isinstance(raw, dict):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request body must be a JSON object",
        )

    try:
        return MappingRequest.model_validate(raw)
    except ValidationError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="invalid mapping request",
            detail={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def _run_mapping(
    mapping_request: MappingRequest, pipeline: MappingPipeline
) -> tuple[MappingReport, dict[str, Any]]:
    report = pipeline.report(mapping_request.payload, mapping_request.source)

    content: dict[str, Any] = {"mapping": report.mapping_payload()}
    if mapping_request.include_report:
        content["report"] = report.model_dump(mode="json", exclude={"mapping"})
    if mapping_request.include_groups:
        content["groups"] = _groups_payload(report, mapping_request.payload, pipeline)
    return report, content


def _groups_payload(
    report: MappingReport, payload: Any, pipeline: MappingPipeline
) -> dict[str, Any]:
    if report.failed:
        return {}
    policy = pipeline.policy
    boxes = group_boxes(
        report.mapping,
        payload,
        root_path=policy.root_path,
        max_depth=policy.max_depth,
        page_policy=policy.page_policy,
    )
    return {path: (box.to_payload() if box is not None else None) for path, box in boxes.items()}


def _get_pipeline() -> MappingPipeline:
    global _pipeline_cache
    with _pipeline_lock:
        if _pipeline_cache is None:
            _pipeline_cache = MappingPipeline(load_policy(_policy_path()))
        return _pipeline_cache


def _policy_path() -> Path | None:
    raw = os.getenv("SOURCELINK_POLICY_PATH")
    if raw is None or not raw.strip():
        return None
    return Path(raw).expanduser()


def _max_body_bytes() -> int:
    raw = os.getenv("SOURCELINK_MAX_BODY_BYTES")
    if raw is None:
        return _DEFAULT_MAX_BODY_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_BODY_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_BODY_BYTES


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={_REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )
