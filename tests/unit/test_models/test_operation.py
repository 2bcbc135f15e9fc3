"""Unit tests for the Operation model and its enums."""

from datetime import UTC, datetime, timedelta, timezone

from pack_manager.models.operation import (
    TIMESTAMP_LENGTH,
    Operation,
    OperationStatus,
    OperationType,
    format_timestamp,
)


class TestOperationStatus:
    def test_values(self) -> None:
        assert [status.value for status in OperationStatus] == ["queued", "running", "success", "failed"]

    def test_terminal_states(self) -> None:
        assert OperationStatus.SUCCESS.is_terminal
        assert OperationStatus.FAILED.is_terminal
        assert not OperationStatus.QUEUED.is_terminal
        assert not OperationStatus.RUNNING.is_terminal


class TestOperationType:
    def test_known_types(self) -> None:
        assert OperationType.REPO_SYNC == "repo_sync"
        assert OperationType.PACK_INSTALL == "pack_install"


class TestFormatTimestamp:
    def test_fixed_width_utc(self) -> None:
        assert format_timestamp(datetime(2025, 3, 4, 5, 6, 7, tzinfo=UTC)) == "20250304050607"

    def test_converts_to_utc(self) -> None:
        moment = datetime(2025, 3, 4, 10, 0, 0, tzinfo=timezone(timedelta(hours=5)))
        assert format_timestamp(moment) == "20250304050000"

    def test_sorts_chronologically(self) -> None:
        earlier = format_timestamp(datetime(2025, 1, 9, 23, 59, 59, tzinfo=UTC))
        later = format_timestamp(datetime(2025, 1, 10, 0, 0, 0, tzinfo=UTC))
        assert len(earlier) == len(later) == TIMESTAMP_LENGTH
        assert earlier < later


class TestOperationRecord:
    def test_to_record_shape(self) -> None:
        operation = Operation(
            operation_id="repo_sync_abc",
            operation_type="repo_sync",
            status=OperationStatus.RUNNING,
            progress=20,
            message="working",
            result_data=None,
            user_id=3,
            created_at="20250101000000",
            started_at="20250101000001",
            updated_at="20250101000002",
        )
        assert operation.to_record() == {
            "operation_id": "repo_sync_abc",
            "operation_type": "repo_sync",
            "status": "running",
            "progress": 20,
            "message": "working",
            "result_data": None,
            "user_id": 3,
            "created_at": "20250101000000",
            "started_at": "20250101000001",
            "updated_at": "20250101000002",
        }
