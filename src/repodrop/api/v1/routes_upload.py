"""Upload session API routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Response, UploadFile

from repodrop.api.dependencies import get_session_or_404, get_store_client, get_token
from repodrop.converter.clients import get_converter
from repodrop.core.exceptions import (
    AuthMissing,
    ItemStateError,
    SubmissionError,
    SubmissionInProgress,
)
from repodrop.models.upload import (
    AddFilesResponse,
    CollectionFailure,
    CreateSessionRequest,
    EditItemRequest,
    SessionResponse,
    SubmitRequest,
    SubmitResponse,
    UploadItemResponse,
)
from repodrop.storage.session_store import session_store
from repodrop.uploads.collector import EntryCollector, build_items
from repodrop.uploads.notifications import SessionNotifier
from repodrop.uploads.orchestrator import UploadOrchestrator

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(request: CreateSessionRequest = Body(...)) -> SessionResponse:
    """Create an upload session for one repository."""
    if not request.owner.strip() or not request.repo.strip():
        raise HTTPException(status_code=400, detail="owner and repo are required")

    session = session_store.create(
        owner=request.owner.strip(),
        repo=request.repo.strip(),
        branch=(request.branch or "").strip() or None,
    )
    logger.info(
        f"Upload session created: session_id={session.id}, repo={session.owner}/{session.repo}, "
        f"branch={session.target_branch}"
    )
    return SessionResponse.from_session(session)


@router.get("/sessions", response_model=List[SessionResponse])
async def list_sessions() -> List[SessionResponse]:
    """All open sessions, oldest first."""
    sessions = sorted(session_store.list_all(), key=lambda s: s.created_at)
    return [SessionResponse.from_session(s) for s in sessions]


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str) -> SessionResponse:
    """Current state of every item plus the notifications emitted so far."""
    return SessionResponse.from_session(get_session_or_404(session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str) -> Response:
    """Discard a session and all of its items."""
    session = get_session_or_404(session_id)
    if session.in_flight:
        raise HTTPException(status_code=409, detail="Cannot discard a session while an upload is running")
    session_store.delete(session_id)
    return Response(status_code=204)


@router.post("/sessions/{session_id}/files", response_model=AddFilesResponse, status_code=201)
async def add_files(session_id: str, files: List[UploadFile] = File(...)) -> AddFilesResponse:
    """Add picked files to the session; file names may carry relative paths."""
    session = get_session_or_404(session_id)
    if session.in_flight:
        raise HTTPException(status_code=409, detail="Cannot add files while an upload is running")

    try:
        result = await EntryCollector().collect_files(files)
    except Exception as e:
        logger.error(f"Unexpected error while reading files: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    items = build_items(result.files)
    try:
        session.add_items(items)
    except ItemStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(
        f"Files added: session_id={session.id}, items={len(items)}, failures={len(result.failures)}"
    )
    return AddFilesResponse(
        items=[UploadItemResponse.from_item(item) for item in items],
        failures=[CollectionFailure(path=f.path, error=str(f)) for f in result.failures],
    )


@router.patch("/sessions/{session_id}/items/{item_id}", response_model=UploadItemResponse)
async def edit_item(
    session_id: str, item_id: str, request: EditItemRequest = Body(...)
) -> UploadItemResponse:
    """Edit an item's destination path or conversion options."""
    session = get_session_or_404(session_id)
    try:
        item = session.edit_item(
            item_id,
            repo_path=request.repo_path,
            convert=request.convert,
            output_name=request.output_name,
        )
    except ItemStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if item is None:
        raise HTTPException(status_code=404, detail="Upload item not found")
    return UploadItemResponse.from_item(item)


@router.delete("/sessions/{session_id}/items/{item_id}", status_code=204)
async def remove_item(session_id: str, item_id: str) -> Response:
    """Remove a Pending or Error item."""
    session = get_session_or_404(session_id)
    try:
        removed = session.remove_item(item_id)
    except ItemStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if not removed:
        raise HTTPException(status_code=404, detail="Upload item not found")
    return Response(status_code=204)


@router.post("/sessions/{session_id}/submit", response_model=SubmitResponse)
async def submit_session(
    session_id: str,
    request: SubmitRequest = Body(...),
    token: Optional[str] = Depends(get_token),
) -> SubmitResponse:
    """Run one upload pass; Success items from earlier passes are skipped."""
    session = get_session_or_404(session_id)
    if session.in_flight:
        raise HTTPException(status_code=409, detail="An upload is already running for this session")

    session.commit_message = request.commit_message
    if request.branch and request.branch.strip():
        session.target_branch = request.branch.strip()

    store = get_store_client(token) if token else None
    orchestrator = UploadOrchestrator(
        store=store,
        converter=get_converter(),
        token=token,
        notifier=SessionNotifier(session),
    )

    try:
        result = await orchestrator.submit(session)
    except AuthMissing as e:
        raise HTTPException(status_code=401, detail=str(e))
    except SubmissionInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SubmissionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error during upload pass: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
    finally:
        if store is not None:
            await store.aclose()

    return SubmitResponse(
        all_succeeded=result.all_succeeded,
        succeeded=result.succeeded,
        failed=result.failed,
        skipped=result.skipped,
        cancelled=result.cancelled,
        items=[UploadItemResponse.from_item(item) for item in session.items],
    )


@router.post("/sessions/{session_id}/cancel", status_code=202)
async def cancel_session(session_id: str) -> dict:
    """Ask a running pass to stop before its next item."""
    session = get_session_or_404(session_id)
    return {"cancel_requested": session.request_cancel()}
