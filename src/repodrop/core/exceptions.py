"""Custom exceptions for repodrop."""


class RepodropException(Exception):
    """Base exception for repodrop."""
    pass


class CollectionReadError(RepodropException):
    """Exception raised when one collected entry cannot be read."""

    def __init__(self, path: str, message: str):
        super().__init__(f"Failed to read {path}: {message}")
        self.path = path


class ConversionError(RepodropException):
    """Exception raised when spreadsheet conversion fails."""
    pass


class ConversionInvalidFormat(ConversionError):
    """Exception raised when content is not a parseable spreadsheet."""
    pass


class ConversionEmptyWorkbook(ConversionError):
    """Exception raised when a workbook has no worksheets."""
    pass


class StoreError(RepodropException):
    """Exception raised when the content store rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreWriteFailed(StoreError):
    """Exception raised when a create-or-update fails."""
    pass


class StoreConflict(StoreWriteFailed):
    """Exception raised when a write carries a missing or stale sha."""
    pass


class StoreDeleteFailed(StoreError):
    """Exception raised when a delete fails."""
    pass


class DeleteConflict(StoreDeleteFailed):
    """Exception raised when a delete carries a stale sha."""
    pass


class RepositoryCopyFailed(StoreError):
    """Exception raised when creating a repository from a template fails."""
    pass


class RepositoryCreateFailed(StoreError):
    """Exception raised when creating a new repository fails."""
    pass


UpsertFailed = StoreWriteFailed
DeleteFailed = StoreDeleteFailed


class SubmissionError(RepodropException):
    """Exception raised when a submission pass cannot start."""
    pass


class AuthMissing(SubmissionError):
    """Exception raised when no credential is available at submission."""
    pass


class EmptyQueue(SubmissionError):
    """Exception raised when a session has no items to submit."""
    pass


class MissingCommitMessage(SubmissionError):
    """Exception raised when the commit message is blank."""
    pass


class SubmissionInProgress(SubmissionError):
    """Exception raised when a pass is already running for the session."""
    pass


class ItemStateError(RepodropException):
    """Exception raised when an item cannot be changed in its current state."""
    pass
