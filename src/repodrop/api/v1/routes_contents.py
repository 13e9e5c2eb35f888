"""Repository content, creation and copy routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from repodrop.api.dependencies import get_store_client, get_token
from repodrop.core.config import settings
from repodrop.core.exceptions import (
    DeleteConflict,
    RepositoryCopyFailed,
    RepositoryCreateFailed,
    StoreError,
)
from repodrop.models.upload import (
    CopyRepositoryRequest,
    CopyRepositoryResponse,
    CreateRepositoryRequest,
    CreateRepositoryResponse,
    DeleteFileRequest,
    DeleteFileResponse,
)

router = APIRouter(prefix="/api/v1", tags=["contents"])
logger = logging.getLogger(__name__)


def _require_token(token: Optional[str]) -> str:
    if not token:
        raise HTTPException(status_code=401, detail="GitHub token is required")
    return token


@router.delete("/repos/{owner}/{repo}/contents/{path:path}", response_model=DeleteFileResponse)
async def delete_file(
    owner: str,
    repo: str,
    path: str,
    request: DeleteFileRequest = Body(...),
    token: Optional[str] = Depends(get_token),
) -> DeleteFileResponse:
    """Delete one file at the version the caller last observed."""
    store = get_store_client(_require_token(token))
    try:
        commit_sha = await store.delete(
            owner,
            repo,
            path,
            sha=request.sha,
            commit_message=request.message or f"Delete {path.rsplit('/', 1)[-1]}",
            branch=request.branch or settings.DEFAULT_BRANCH,
        )
    except DeleteConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        status_code = 404 if e.status_code == 404 else 502
        raise HTTPException(status_code=status_code, detail=str(e))
    finally:
        await store.aclose()

    return DeleteFileResponse(path=path, commit_sha=commit_sha)


@router.post("/repositories/copy", response_model=CopyRepositoryResponse, status_code=201)
async def copy_repository(
    request: CopyRepositoryRequest = Body(...),
    token: Optional[str] = Depends(get_token),
) -> CopyRepositoryResponse:
    """Create a repository for the signed-in user from a template repository."""
    if not request.source_owner or not request.source_repo or not request.new_name:
        raise HTTPException(
            status_code=400, detail="Missing required fields: source_owner, source_repo, new_name"
        )

    store = get_store_client(_require_token(token))
    try:
        created = await store.copy_repository(
            request.source_owner,
            request.source_repo,
            request.new_name,
            private=request.private,
        )
    except RepositoryCopyFailed as e:
        status_code = e.status_code if e.status_code and 400 <= e.status_code < 500 else 502
        raise HTTPException(status_code=status_code, detail=str(e))
    finally:
        await store.aclose()

    return CopyRepositoryResponse(**created)


@router.post("/repositories", response_model=CreateRepositoryResponse, status_code=201)
async def create_repository(
    request: CreateRepositoryRequest = Body(...),
    token: Optional[str] = Depends(get_token),
) -> CreateRepositoryResponse:
    """Create a new repository for the signed-in user."""
    store = get_store_client(_require_token(token))
    try:
        created = await store.create_repository(
            request.name,
            description=request.description,
            private=request.private,
            auto_init=request.auto_init,
            gitignore_template=request.gitignore_template,
            license_template=request.license_template,
        )
    except RepositoryCreateFailed as e:
        status_code = e.status_code if e.status_code and 400 <= e.status_code < 500 else 502
        raise HTTPException(status_code=status_code, detail=str(e))
    finally:
        await store.aclose()

    logger.info(f"Repository created: {created['owner']}/{created['name']}, private={created['private']}")
    return CreateRepositoryResponse(**created)
