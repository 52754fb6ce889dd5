"""Tests for the object writer."""

import threading
from unittest.mock import MagicMock

import pytest

from services.errors import (
    AttributeFetchFailure,
    EmptySubmission,
    LengthMismatch,
    RequestTimeout,
    WriteFailure,
)
from services.writer import save_object
from storage.errors import StorageError
from storage.object_store import BucketInfo, ObjectAttributes


class TestSaveObject:
    def test_overwrites_with_sniffed_type(self, fake_store) -> None:
        attrs = save_object(fake_store, "demo", "notes.txt", b"hello world")
        assert attrs.size == 11
        assert fake_store.content("demo", "notes.txt") == b"hello world"
        assert fake_store.writes[-1][3] == "text/plain; charset=utf-8"

    def test_html_content_gets_html_type(self, fake_store) -> None:
        save_object(fake_store, "demo", "index.html", b"<html><body>x</body></html>")
        assert fake_store.writes[-1][3] == "text/html; charset=utf-8"

    @pytest.mark.parametrize("content", [b"", None])
    def test_empty_submission_never_touches_store(self, content) -> None:
        store = MagicMock()
        with pytest.raises(EmptySubmission) as exc_info:
            save_object(store, "demo", "notes.txt", content)
        assert exc_info.value.context == "Got 0 size"
        assert store.mock_calls == []

    def test_empty_submission_keeps_prior_content(self, fake_store) -> None:
        with pytest.raises(EmptySubmission):
            save_object(fake_store, "demo", "notes.txt", b"")
        assert fake_store.content("demo", "notes.txt") == b"hello"
        assert fake_store.writes == []

    def test_unknown_bucket(self, fake_store) -> None:
        with pytest.raises(AttributeFetchFailure) as exc_info:
            save_object(fake_store, "missing", "notes.txt", b"x")
        assert exc_info.value.context == "Getting bucket attributes"

    def test_write_failure_aborts_writer(self) -> None:
        store = MagicMock()
        store.get_bucket.return_value = BucketInfo("demo")
        writer = store.new_writer.return_value
        writer.write.side_effect = StorageError("connection reset")
        with pytest.raises(WriteFailure) as exc_info:
            save_object(store, "demo", "notes.txt", b"abc")
        assert exc_info.value.context == "Writing file"
        writer.abort.assert_called_once()
        writer.close.assert_not_called()

    def test_finalize_failure_is_distinct(self, fake_store) -> None:
        fake_store.fail_close = True
        with pytest.raises(WriteFailure) as exc_info:
            save_object(fake_store, "demo", "notes.txt", b"abc")
        assert exc_info.value.context == "Closing file"
        assert fake_store.content("demo", "notes.txt") == b"hello"

    def test_short_write_is_length_mismatch(self, fake_store) -> None:
        fake_store.short_write = 1
        with pytest.raises(LengthMismatch) as exc_info:
            save_object(fake_store, "demo", "notes.txt", b"abcdef")
        assert exc_info.value.detail == "form:6 != bucket:5"
        # No rollback: the write already landed
        assert fake_store.content("demo", "notes.txt") == b"abcdef"

    def test_persisted_size_mismatch(self) -> None:
        store = MagicMock()
        store.get_bucket.return_value = BucketInfo("demo")
        writer = store.new_writer.return_value
        writer.write.return_value = 3
        writer.close.return_value = ObjectAttributes("demo", "notes.txt", 2, "text/plain", "7")
        with pytest.raises(LengthMismatch) as exc_info:
            save_object(store, "demo", "notes.txt", b"abc")
        assert exc_info.value.detail == "form:3 != stored:2"

    def test_expired_deadline_skips_write(self, fake_store) -> None:
        cancelled = threading.Event()
        cancelled.set()
        with pytest.raises(RequestTimeout):
            save_object(fake_store, "demo", "notes.txt", b"late", cancelled)
        assert fake_store.writes == []
        assert fake_store.content("demo", "notes.txt") == b"hello"

    def test_deadline_during_write_aborts_writer(self) -> None:
        """The deadline expires while the payload is being written: nothing is finalized."""
        cancelled = threading.Event()
        store = MagicMock()
        store.get_bucket.return_value = BucketInfo("demo")
        writer = store.new_writer.return_value
        writer.write.side_effect = lambda data: cancelled.set() or len(data)

        with pytest.raises(RequestTimeout):
            save_object(store, "demo", "notes.txt", b"abc", cancelled)

        writer.abort.assert_called_once()
        writer.close.assert_not_called()

    def test_unset_deadline_does_not_interfere(self, fake_store) -> None:
        save_object(fake_store, "demo", "notes.txt", b"on time", threading.Event())
        assert fake_store.content("demo", "notes.txt") == b"on time"
