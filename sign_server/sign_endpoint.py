"""
POST /sign (also POST /): Meeting SDK signature for a known user, with a ZAK for hosts.
Rate limited per client IP; body limited to 32 KiB JSON.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from sign_server.audit import (
    EVENT_SIGN_DEMOTED,
    EVENT_SIGN_ISSUED,
    EVENT_SIGN_REJECTED,
    OUTCOME_FAIL,
    OUTCOME_SUCCESS,
    log_audit,
)
from sign_server.config import RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_SECONDS, TRUST_PROXY
from sign_server.database import get_db
from sign_server.errors import SignError
from sign_server.pipeline import SignPipeline
from sign_server.rate_limit import check_and_consume
from sign_server.security import MAX_BODY_BYTES, client_ip, is_json_content_type

logger = logging.getLogger(__name__)
router = APIRouter()


class _BodyTooLarge(Exception):
    pass


def get_pipeline(request: Request) -> SignPipeline:
    """Dependency: the pipeline built at startup (overridden in tests)."""
    return request.app.state.pipeline


async def _read_body(request: Request) -> bytes:
    declared = request.headers.get("Content-Length")
    if declared and declared.isdigit() and int(declared) > MAX_BODY_BYTES:
        raise _BodyTooLarge()
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > MAX_BODY_BYTES:
            raise _BodyTooLarge()
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/sign")
@router.post("/")
async def sign(
    request: Request,
    pipeline: SignPipeline = Depends(get_pipeline),
    db: Session = Depends(get_db),
):
    ip = client_ip(request, TRUST_PROXY)
    allowed, retry_after = check_and_consume(f"sign:{ip}", RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_SECONDS)
    if not allowed:
        logger.warning("Rate limit exceeded for ip=%s", ip)
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests"},
            headers={"Retry-After": str(retry_after)},
        )

    try:
        body = await _read_body(request)
    except _BodyTooLarge:
        return JSONResponse(status_code=413, content={"error": "Payload too large"})
    if not is_json_content_type(request):
        # Only JSON bodies are parsed; anything else validates as an empty object
        body = b""

    try:
        result = await pipeline.handle(body)
    except SignError as e:
        await run_in_threadpool(
            log_audit, db, EVENT_SIGN_REJECTED, status_code=e.status_code, ip=ip, outcome=OUTCOME_FAIL
        )
        return JSONResponse(status_code=e.status_code, content=e.to_response())

    # Blocking DB write, kept off the event loop
    await run_in_threadpool(
        log_audit,
        db,
        EVENT_SIGN_DEMOTED if result.demoted else EVENT_SIGN_ISSUED,
        status_code=200,
        uuid=result.uuid,
        meeting_number=result.meeting_number,
        role=result.role,
        ip=ip,
        outcome=OUTCOME_SUCCESS,
    )
    return result.to_dict()
