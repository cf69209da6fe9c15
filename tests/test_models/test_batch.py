"""Tests for batch bookkeeping models."""

import pytest
from pydantic import ValidationError

from repo_forge.ingest.metrics import BatchMetrics
from repo_forge.models.batch import (
    BatchContext,
    BatchResult,
    DraftState,
    ErrorKind,
    IngestErrorRecord,
)


class TestBatchContext:
    """Progress counters."""

    def test_fresh_context(self):
        context = BatchContext()

        assert not context.started
        assert not context.finished
        assert context.remaining == 0
        assert context.refill_size() == 1

    @pytest.mark.parametrize("progress,maximum,expected", [
        (0, 10, 6),
        (0, 9, 6),
        (3, 4, 2),
        (4, 4, 1),
        (0, 1, 2),
    ])
    def test_refill_size(self, progress, maximum, expected):
        assert BatchContext(progress=progress, max=maximum).refill_size() == expected

    def test_advance_until_finished(self):
        context = BatchContext(max=2)
        context.advance()
        assert not context.finished
        context.advance()
        assert context.finished
        assert context.remaining == 0

    def test_negative_values_rejected(self):
        with pytest.raises(ValidationError):
            BatchContext(progress=-1)

    def test_serializable(self):
        context = BatchContext(progress=3, max=8)
        assert BatchContext.model_validate_json(context.model_dump_json()) == context

    def test_checkpoint_defaults_to_progress(self):
        context = BatchContext(progress=3, max=8)
        assert context.checkpoint is None
        assert context.unsettled == 0

    @pytest.mark.parametrize("progress,checkpoint,expected", [
        (4, 1, 3),
        (4, 4, 0),
        (2, 5, 0),
    ])
    def test_unsettled(self, progress, checkpoint, expected):
        assert BatchContext(progress=progress, max=8, checkpoint=checkpoint).unsettled == expected

    def test_checkpoint_survives_serialization(self):
        context = BatchContext(progress=3, max=8, checkpoint=1)
        restored = BatchContext.model_validate(context.model_dump())
        assert restored.checkpoint == 1


class TestDraftState:

    def test_terminal_states(self):
        assert DraftState.COMMITTED.is_terminal
        assert DraftState.ERROR.is_terminal
        assert not DraftState.PENDING.is_terminal
        assert not DraftState.PREPROCESSED.is_terminal


class TestIngestErrorRecord:
    """Error record formatting."""

    def test_str_with_datastream(self):
        record = IngestErrorRecord(ErrorKind.MISSING_DOCUMENT, "no derived document", "DERIVED", "ir:4")
        assert str(record) == "missing document: DERIVED on ir:4 (no derived document)"

    def test_str_unassigned(self):
        record = IngestErrorRecord(ErrorKind.IDENTIFIER_ALLOCATION, "pool empty")
        assert str(record) == "identifier allocation: <unassigned> (pool empty)"

    def test_to_dict(self):
        record = IngestErrorRecord(ErrorKind.STORE_REJECTION, "exists", identifier="ir:1")
        assert record.to_dict() == {
            'kind': "store rejection",
            'message': "exists",
            'dsid': None,
            'identifier': "ir:1",
        }


class TestBatchResult:

    def test_empty_result(self):
        result = BatchResult()

        assert result.committed_count == 0
        assert result.error_count == 0
        assert result.pending_count == 0
        assert result.to_dict()['metrics'] is None

    def test_errors_of(self):
        missing = IngestErrorRecord(ErrorKind.MISSING_DOCUMENT, "m")
        rejected = IngestErrorRecord(ErrorKind.STORE_REJECTION, "r")
        result = BatchResult(errors=[missing, rejected], metrics=BatchMetrics())

        assert result.errors_of(ErrorKind.STORE_REJECTION) == [rejected]
        assert result.to_dict()['errors'][0]['kind'] == "missing document"
        assert result.to_dict()['metrics'] is not None
