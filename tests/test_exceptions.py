"""Tests for the repodrop exception hierarchy."""

import pytest

from repodrop.core.exceptions import (
    AuthMissing,
    CollectionReadError,
    ConversionEmptyWorkbook,
    ConversionError,
    ConversionInvalidFormat,
    DeleteConflict,
    DeleteFailed,
    EmptyQueue,
    ItemStateError,
    MissingCommitMessage,
    RepodropException,
    RepositoryCopyFailed,
    RepositoryCreateFailed,
    StoreConflict,
    StoreDeleteFailed,
    StoreError,
    StoreWriteFailed,
    SubmissionError,
    SubmissionInProgress,
    UpsertFailed,
)


def test_base_exception():
    """Test base RepodropException."""
    exc = RepodropException("Test error")
    assert str(exc) == "Test error"
    assert isinstance(exc, Exception)


@pytest.mark.parametrize(
    "exc_class,parent",
    [
        (CollectionReadError, RepodropException),
        (ConversionError, RepodropException),
        (ConversionInvalidFormat, ConversionError),
        (ConversionEmptyWorkbook, ConversionError),
        (StoreError, RepodropException),
        (StoreWriteFailed, StoreError),
        (StoreConflict, StoreWriteFailed),
        (StoreDeleteFailed, StoreError),
        (DeleteConflict, StoreDeleteFailed),
        (RepositoryCopyFailed, StoreError),
        (RepositoryCreateFailed, StoreError),
        (SubmissionError, RepodropException),
        (AuthMissing, SubmissionError),
        (EmptyQueue, SubmissionError),
        (MissingCommitMessage, SubmissionError),
        (SubmissionInProgress, SubmissionError),
        (ItemStateError, RepodropException),
    ],
)
def test_exception_hierarchy(exc_class, parent):
    assert issubclass(exc_class, parent)


def test_aliases():
    assert UpsertFailed is StoreWriteFailed
    assert DeleteFailed is StoreDeleteFailed


def test_store_error_keeps_status_code():
    exc = StoreConflict("sha mismatch", status_code=409)

    assert exc.status_code == 409
    assert str(exc) == "sha mismatch"
    assert StoreError("boom").status_code is None


def test_collection_read_error_names_path():
    exc = CollectionReadError("a/b.txt", "permission denied")

    assert exc.path == "a/b.txt"
    assert "a/b.txt" in str(exc)
    assert "permission denied" in str(exc)


def test_catch_by_family():
    """Conversion failures can be handled together."""
    with pytest.raises(ConversionError):
        raise ConversionEmptyWorkbook("XLSX file contains no sheets.")
