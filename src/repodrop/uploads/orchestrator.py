"""Drives an upload session's items through conversion and the content store."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from repodrop.converter.clients import SpreadsheetConverter
from repodrop.core.config import settings
from repodrop.core.exceptions import (
    AuthMissing,
    ConversionError,
    EmptyQueue,
    MissingCommitMessage,
    StoreError,
    SubmissionInProgress,
)
from repodrop.core.logging import upload_item_context
from repodrop.github.client import UpsertResult
from repodrop.uploads.items import ItemStatus, UploadItem, UploadSession
from repodrop.uploads.notifications import UploadNotifier

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    async def upsert(
        self,
        owner: str,
        repo: str,
        path: str,
        content: bytes,
        commit_message: str,
        branch: Optional[str] = None,
    ) -> UpsertResult: ...


@dataclass
class SubmissionResult:
    """Aggregate outcome of one submission pass."""

    all_succeeded: bool
    succeeded: int
    failed: int
    skipped: int
    cancelled: bool = False


class UploadOrchestrator:
    """Processes a session's items in collection order, one at a time.

    Each item moves Pending/Error -> Uploading -> Success/Error on its own;
    a failed item never stops the rest of the pass. Success items are
    skipped, so submitting again only retries what failed.
    """

    def __init__(
        self,
        store: ContentStore,
        converter: SpreadsheetConverter,
        token: Optional[str],
        notifier: UploadNotifier,
        progress_interval: Optional[float] = None,
        progress_step: Optional[int] = None,
        progress_cap: Optional[int] = None,
    ):
        self.store = store
        self.converter = converter
        self.token = token
        self.notifier = notifier
        self.progress_interval = progress_interval if progress_interval is not None else settings.PROGRESS_INTERVAL_SECONDS
        self.progress_step = progress_step if progress_step is not None else settings.PROGRESS_STEP
        self.progress_cap = progress_cap if progress_cap is not None else settings.PROGRESS_CAP

    async def submit(self, session: UploadSession) -> SubmissionResult:
        """Run one submission pass over the session.

        Raises:
            SubmissionInProgress: Another pass is running for this session
            AuthMissing: No token was provided
            EmptyQueue: The session has no items
            MissingCommitMessage: The commit message is blank
        """
        if session.in_flight:
            raise SubmissionInProgress("An upload is already running for this session")

        async with session.lock:
            self._check_preconditions(session)
            session.cancel_requested = False

            logger.info(
                "Starting upload pass",
                extra={
                    "session_id": session.id,
                    "owner": session.owner,
                    "repo": session.repo,
                    "branch": session.target_branch,
                    "item_count": len(session.items),
                },
            )

            skipped = 0
            cancelled = False
            for item in list(session.items):
                if session.cancel_requested:
                    cancelled = True
                    break
                if item.status is ItemStatus.SUCCESS:
                    skipped += 1
                    continue
                await self._process_item(session, item)

            return self._finish(session, skipped, cancelled)

    def _check_preconditions(self, session: UploadSession) -> None:
        if not self.token:
            self.notifier.notify("error", "You must be signed in to upload files")
            raise AuthMissing("No GitHub token available")
        if not session.items:
            self.notifier.notify("warning", "Please add files to upload")
            raise EmptyQueue("No files to upload")
        if not session.commit_message.strip():
            self.notifier.notify("warning", "Please add a commit message")
            raise MissingCommitMessage("Commit message is required")

    def _finish(self, session: UploadSession, skipped: int, cancelled: bool) -> SubmissionResult:
        counts = session.status_counts()
        failed = counts[ItemStatus.ERROR.value]
        result = SubmissionResult(
            all_succeeded=failed == 0 and not cancelled,
            succeeded=counts[ItemStatus.SUCCESS.value],
            failed=failed,
            skipped=skipped,
            cancelled=cancelled,
        )

        if cancelled:
            self.notifier.notify("warning", "Upload cancelled. Remaining files were not uploaded.")
        elif result.all_succeeded:
            self.notifier.notify("success", "All files processed successfully!")
        else:
            self.notifier.notify("error", "Some files failed to upload or convert. Please check errors.")

        logger.info(
            "Upload pass finished",
            extra={
                "session_id": session.id,
                "succeeded": result.succeeded,
                "failed": result.failed,
                "skipped": result.skipped,
                "cancelled": cancelled,
            },
        )
        return result

    def _update(self, item: UploadItem, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(item, name, value)
        self.notifier.item_updated(item)

    def _fail(self, item: UploadItem, message: str) -> None:
        self._update(item, status=ItemStatus.ERROR, progress=0, error=message)

    async def _process_item(self, session: UploadSession, item: UploadItem) -> bool:
        context_token = upload_item_context.set(item.id)
        try:
            if item.conversion is not None:
                item.conversion.conversion_error = None
            self._update(item, status=ItemStatus.UPLOADING, progress=0, error=None)

            content = item.source_bytes
            path = item.repo_path

            conversion = item.conversion
            if conversion is not None and conversion.enabled:
                self.notifier.notify("info", f"Converting {item.repo_path} to JSON...")
                conversion.converting = True
                self.notifier.item_updated(item)
                try:
                    converted = await self.converter.convert(item.source_bytes, conversion.output_name)
                except Exception as e:
                    message = str(e) if isinstance(e, ConversionError) else f"Conversion failed: {e}"
                    if not isinstance(e, ConversionError):
                        logger.error("Unexpected conversion failure", extra={"item_id": item.id}, exc_info=True)
                    conversion.converting = False
                    conversion.conversion_error = message
                    self._fail(item, message)
                    return False

                content = converted.to_json_bytes()
                path = converted.output_name
                conversion.converting = False
                self.notifier.item_updated(item)
                self.notifier.notify(
                    "success", f"{item.repo_path} converted successfully to {path}. Now uploading..."
                )

            path = path.strip().lstrip("/")
            if not path:
                self._fail(item, "Destination path is required")
                return False

            ticker = asyncio.create_task(self._tick_progress(item))
            try:
                await self.store.upsert(
                    session.owner,
                    session.repo,
                    path,
                    content,
                    session.commit_message,
                    session.target_branch,
                )
            except StoreError as e:
                self._fail(item, str(e))
                return False
            except Exception as e:
                logger.error("Unexpected upload failure", extra={"item_id": item.id, "path": path}, exc_info=True)
                self._fail(item, f"Upload failed: {e}")
                return False
            finally:
                ticker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await ticker

            self._update(item, status=ItemStatus.SUCCESS, progress=100, repo_path=path)
            return True
        finally:
            upload_item_context.reset(context_token)

    async def _tick_progress(self, item: UploadItem) -> None:
        # Cosmetic: the contents API does not report transfer progress
        while True:
            await asyncio.sleep(self.progress_interval)
            if item.status is not ItemStatus.UPLOADING:
                return
            advanced = min(item.progress + self.progress_step, self.progress_cap)
            if advanced > item.progress:
                self._update(item, progress=advanced)
