from __future__ import annotations

import logging
import secrets
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from bitbeam.context import ServiceContext, get_context
from bitbeam.core.errors import AuthorizationError, PayloadTooLargeError, PersistenceError, ValidationError
from bitbeam.db import ensure_connection
from bitbeam.models import File as FileModel, FileRead, UserRead
from bitbeam.services.stats import fetch_storage_totals
from bitbeam.services.upload import parse_download_limit

router = APIRouter()

logger = logging.getLogger("bitbeam")


def _client(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.get("/", include_in_schema=False)
async def home():
    return PlainTextResponse("Hello, World!")


@router.get("/api/health")
def health(ctx: ServiceContext = Depends(get_context)):
    if not ensure_connection(ctx.engine):
        raise HTTPException(status_code=503, detail="Database unavailable")
    return {"status": "ok"}


@router.post("/upload", response_model=FileRead)
async def upload(request: Request, ctx: ServiceContext = Depends(get_context)):
    logger.info("event=upload_request client=%s", _client(request))
    headers = request.headers
    owner_key = headers.get("key")
    if not owner_key:
        raise ValidationError("missing key header", operation="upload")
    download_limit = parse_download_limit(headers.get("download_limit"))

    declared = headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > ctx.config.max_upload_bytes:
        raise PayloadTooLargeError("declared body exceeds max upload size", operation="upload")
    data = await request.body()

    record = await run_in_threadpool(
        ctx.uploads.accept,
        owner_key,
        headers.get("content-type"),
        headers.get("file_name"),
        download_limit,
        data,
    )
    ctx.metrics.record_upload(record.file_size)
    return record


@router.get("/download/{file_id}")
def download(file_id: str, request: Request, ctx: ServiceContext = Depends(get_context)):
    logger.info("event=download_request file_id=%s client=%s", file_id, _client(request))
    result = ctx.consumption.consume(file_id)
    quoted_name = quote(result.file_name)
    return Response(
        content=result.data,
        headers={
            "Content-Type": result.content_type,
            "Content-Length": str(len(result.data)),
            "Content-Disposition": f'attachment; filename="{quoted_name}"',
            "filename": quoted_name,
        },
    )


@router.post("/user/register", response_model=UserRead)
def register(request: Request, ctx: ServiceContext = Depends(get_context)):
    user = ctx.registration.register(request.headers.get("username"), request.headers.get("password"))
    return UserRead(key=user.key, username=user.username)


@router.get("/all_files", response_model=list[FileRead])
def all_files(request: Request, ctx: ServiceContext = Depends(get_context)):
    """List file records: every record for the operator key, otherwise the caller's own."""
    logger.info("event=all_files_request client=%s", _client(request))
    admin_key = request.headers.get("x-admin-key")
    user_key = request.headers.get("key")

    if admin_key:
        if not ctx.config.admin_key or not secrets.compare_digest(admin_key, ctx.config.admin_key):
            raise AuthorizationError("bad admin key", operation="all_files")
        owner = None
    elif user_key:
        owner = ctx.identities.authenticate(user_key)
    else:
        raise ValidationError("missing key header", operation="all_files")

    stmt = select(FileModel).where(FileModel.pending_deletion == False)  # noqa: E712
    if owner is not None:
        stmt = stmt.where(FileModel.owner == owner)
    try:
        with Session(ctx.engine) as session:
            files = session.exec(stmt.order_by(FileModel.upload_time.desc())).all()
            return [FileRead.model_validate(f) for f in files]
    except SQLAlchemyError as e:
        raise PersistenceError("select all failed", operation="all_files") from e


@router.get("/metrics")
def metrics_snapshot(ctx: ServiceContext = Depends(get_context)):
    stats = ctx.metrics.snapshot()
    try:
        with Session(ctx.engine) as session:
            totals = fetch_storage_totals(session)
    except SQLAlchemyError as e:
        raise PersistenceError("storage totals failed", operation="metrics") from e
    response = JSONResponse({**stats, **totals})
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
    return response
