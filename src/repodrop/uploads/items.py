"""Upload item and session records."""

import asyncio
import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from repodrop.core.exceptions import ItemStateError

SPREADSHEET_SUFFIXES = (".xlsx", ".xlsm")


class ItemStatus(str, Enum):
    """Upload item status enumeration."""

    PENDING = "pending"  # Collected, not yet submitted
    UPLOADING = "uploading"  # Being converted or written
    SUCCESS = "success"  # Written to the store, terminal
    ERROR = "error"  # Failed, can be retried


@dataclass
class ConversionOptions:
    """Spreadsheet to JSON conversion state for one item."""

    enabled: bool
    output_name: str
    converting: bool = False
    conversion_error: Optional[str] = None


@dataclass
class UploadItem:
    """One file destined for the content store."""

    id: str
    source_bytes: bytes
    repo_path: str
    status: ItemStatus = ItemStatus.PENDING
    progress: int = 0
    error: Optional[str] = None
    conversion: Optional[ConversionOptions] = None

    @property
    def size_bytes(self) -> int:
        return len(self.source_bytes)

    @property
    def is_spreadsheet(self) -> bool:
        return self.conversion is not None

    @property
    def is_editable(self) -> bool:
        """Path and conversion options can change only before or after a failed attempt."""
        return self.status in (ItemStatus.PENDING, ItemStatus.ERROR)


@dataclass
class Notification:
    """A user-facing message emitted during a session."""

    level: str  # info, success, warning, error
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class UploadSession:
    """Ordered upload items plus the fields shared by one submission."""

    id: str
    owner: str
    repo: str
    target_branch: str
    commit_message: str = ""
    items: List[UploadItem] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cancel_requested: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def in_flight(self) -> bool:
        return self.lock.locked()

    def request_cancel(self) -> bool:
        """Ask a running pass to stop before its next item."""
        if not self.in_flight:
            return False
        self.cancel_requested = True
        return True

    def get_item(self, item_id: str) -> Optional[UploadItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def _ensure_idle(self, action: str) -> None:
        if self.in_flight:
            raise ItemStateError(f"Cannot {action} while an upload is running")

    def add_items(self, items: List[UploadItem]) -> None:
        """Append items; the queue is frozen while a pass is running."""
        self._ensure_idle("add files")
        self.items.extend(items)

    def remove_item(self, item_id: str) -> bool:
        """Remove an item; only Pending and Error items may be removed.

        Returns:
            False if no item has that id.

        Raises:
            ItemStateError: If the item is Uploading or Success, or a pass is running
        """
        self._ensure_idle("remove files")
        item = self.get_item(item_id)
        if item is None:
            return False
        if not item.is_editable:
            raise ItemStateError(f"Cannot remove item in status {item.status.value}")
        self.items.remove(item)
        return True

    def edit_item(
        self,
        item_id: str,
        repo_path: Optional[str] = None,
        convert: Optional[bool] = None,
        output_name: Optional[str] = None,
    ) -> Optional[UploadItem]:
        """Change an item's destination or conversion options.

        Returns:
            The edited item, or None if no item has that id.

        Raises:
            ItemStateError: If the item is Uploading or Success, or conversion
                options are given for a non-spreadsheet item, or a pass is running
        """
        self._ensure_idle("edit files")
        item = self.get_item(item_id)
        if item is None:
            return None
        if not item.is_editable:
            raise ItemStateError(f"Cannot edit item in status {item.status.value}")
        if (convert is not None or output_name is not None) and item.conversion is None:
            raise ItemStateError("Conversion options apply to spreadsheet files only")

        if repo_path is not None:
            item.repo_path = repo_path
        if convert is not None:
            item.conversion.enabled = convert
        if output_name is not None:
            item.conversion.output_name = output_name
        return item

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ItemStatus}
        for item in self.items:
            counts[item.status.value] += 1
        return counts


def new_item_id() -> str:
    return uuid4().hex


def is_spreadsheet_name(path: str) -> bool:
    return path.lower().endswith(SPREADSHEET_SUFFIXES)


def json_output_name(path: str) -> str:
    """Replace the last extension of ``path`` with ``.json``, keeping directories."""
    directory, name = posixpath.split(path)
    stem, ext = posixpath.splitext(name)
    return posixpath.join(directory, f"{stem if ext else name}.json")


def make_item(virtual_path: str, content: bytes) -> UploadItem:
    """Create a Pending item, enabling conversion for spreadsheet sources."""
    conversion = None
    if is_spreadsheet_name(virtual_path):
        conversion = ConversionOptions(enabled=True, output_name=json_output_name(virtual_path))
    return UploadItem(
        id=new_item_id(),
        source_bytes=content,
        repo_path=virtual_path,
        conversion=conversion,
    )
