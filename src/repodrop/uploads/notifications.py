"""Notification sinks for upload passes."""

import logging
from typing import Protocol

from repodrop.uploads.items import Notification, UploadItem, UploadSession

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class UploadNotifier(Protocol):
    def item_updated(self, item: UploadItem) -> None:
        """Called after every change to an item so a UI can re-render it."""
        ...

    def notify(self, level: str, message: str) -> None:
        """User-facing message (what a UI shows as a toast)."""
        ...


class SessionNotifier:
    """Records notifications on the session and logs item transitions."""

    def __init__(self, session: UploadSession):
        self.session = session

    def item_updated(self, item: UploadItem) -> None:
        logger.debug(
            "Upload item updated",
            extra={
                "session_id": self.session.id,
                "item_id": item.id,
                "status": item.status.value,
                "progress": item.progress,
                "repo_path": item.repo_path,
            },
        )

    def notify(self, level: str, message: str) -> None:
        self.session.notifications.append(Notification(level=level, message=message))
        logger.log(
            _LOG_LEVELS.get(level, logging.INFO),
            message,
            extra={"session_id": self.session.id, "notification_level": level},
        )
