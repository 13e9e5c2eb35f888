"""Shared request dependencies."""

from typing import Optional

from fastapi import Header, HTTPException

from repodrop.github.client import ContentStoreClient
from repodrop.storage.session_store import session_store
from repodrop.uploads.items import UploadSession


def get_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the GitHub token from ``Authorization: Bearer <token>`` (or ``token <token>``)."""
    if not authorization:
        return None
    scheme, _, value = authorization.strip().partition(" ")
    if scheme.lower() in ("bearer", "token") and value.strip():
        return value.strip()
    return None


def get_store_client(token: str) -> ContentStoreClient:
    return ContentStoreClient(token)


def get_session_or_404(session_id: str) -> UploadSession:
    session = session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Upload session not found")
    return session
