"""Upload API models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from repodrop.uploads.items import UploadItem, UploadSession


class CreateSessionRequest(BaseModel):
    """Request model for creating an upload session."""

    owner: str
    repo: str
    branch: Optional[str] = None


class ConversionState(BaseModel):
    enabled: bool
    output_name: str
    converting: bool
    conversion_error: Optional[str] = None


class UploadItemResponse(BaseModel):
    """One item as a UI renders it."""

    id: str
    repo_path: str
    size_bytes: int
    status: str
    progress: int
    error: Optional[str] = None
    conversion: Optional[ConversionState] = None

    @classmethod
    def from_item(cls, item: UploadItem) -> "UploadItemResponse":
        conversion = None
        if item.conversion is not None:
            conversion = ConversionState(
                enabled=item.conversion.enabled,
                output_name=item.conversion.output_name,
                converting=item.conversion.converting,
                conversion_error=item.conversion.conversion_error,
            )
        return cls(
            id=item.id,
            repo_path=item.repo_path,
            size_bytes=item.size_bytes,
            status=item.status.value,
            progress=item.progress,
            error=item.error,
            conversion=conversion,
        )


class NotificationResponse(BaseModel):
    level: str
    message: str
    created_at: datetime


class SessionResponse(BaseModel):
    """Response model for an upload session."""

    id: str
    owner: str
    repo: str
    branch: str
    commit_message: str
    in_flight: bool
    items: List[UploadItemResponse]
    notifications: List[NotificationResponse]
    created_at: datetime

    @classmethod
    def from_session(cls, session: UploadSession) -> "SessionResponse":
        return cls(
            id=session.id,
            owner=session.owner,
            repo=session.repo,
            branch=session.target_branch,
            commit_message=session.commit_message,
            in_flight=session.in_flight,
            items=[UploadItemResponse.from_item(item) for item in session.items],
            notifications=[
                NotificationResponse(level=n.level, message=n.message, created_at=n.created_at)
                for n in session.notifications
            ],
            created_at=session.created_at,
        )


class CollectionFailure(BaseModel):
    path: str
    error: str


class AddFilesResponse(BaseModel):
    """Items created from an upload, plus files that could not be read."""

    items: List[UploadItemResponse]
    failures: List[CollectionFailure] = Field(default_factory=list)


class EditItemRequest(BaseModel):
    repo_path: Optional[str] = None
    convert: Optional[bool] = None
    output_name: Optional[str] = None


class SubmitRequest(BaseModel):
    commit_message: str
    branch: Optional[str] = None


class SubmitResponse(BaseModel):
    all_succeeded: bool
    succeeded: int
    failed: int
    skipped: int
    cancelled: bool
    items: List[UploadItemResponse]


class DeleteFileRequest(BaseModel):
    sha: str
    message: Optional[str] = None
    branch: Optional[str] = None


class DeleteFileResponse(BaseModel):
    path: str
    commit_sha: Optional[str] = None


class CopyRepositoryRequest(BaseModel):
    source_owner: str
    source_repo: str
    new_name: str
    private: bool = False


class CopyRepositoryResponse(BaseModel):
    name: str
    owner: str
    html_url: Optional[str] = None
    private: bool


class CreateRepositoryRequest(BaseModel):
    name: str
    description: Optional[str] = None
    private: bool = False
    auto_init: bool = True  # Commit an initial README
    gitignore_template: Optional[str] = None
    license_template: Optional[str] = None


class CreateRepositoryResponse(BaseModel):
    name: str
    owner: Optional[str] = None
    html_url: Optional[str] = None
    private: bool
    default_branch: Optional[str] = None
