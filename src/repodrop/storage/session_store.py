"""Upload session tracking store."""

from typing import Dict, Optional

from repodrop.core.config import settings
from repodrop.uploads.items import UploadSession, new_item_id


class SessionStore:
    """In-memory store for upload sessions.

    Sessions are never persisted; deleting one discards its items.
    """

    def __init__(self):
        self._sessions: Dict[str, UploadSession] = {}

    def create(self, owner: str, repo: str, branch: Optional[str] = None) -> UploadSession:
        """Create and register a new empty session."""
        session = UploadSession(
            id=new_item_id(),
            owner=owner,
            repo=repo,
            target_branch=branch or settings.DEFAULT_BRANCH,
        )
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[UploadSession]:
        """Retrieve a session by id."""
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> bool:
        """Discard a session and its items."""
        return self._sessions.pop(session_id, None) is not None

    def list_all(self) -> list[UploadSession]:
        """List all sessions."""
        return list(self._sessions.values())

    def clear(self) -> None:
        self._sessions.clear()


# Singleton instance
session_store = SessionStore()
