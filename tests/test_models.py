"""
Test cases for sync result models and report formatting.
"""

from datetime import datetime, timedelta
from tablesync.core.enums import ErrorKind, SyncDirection
from tablesync.core.errors import ConnectivityError, ReconcileError, SyncError
from tablesync.core.models import PhaseResult, SyncReport, TableSyncResult
from tablesync.utils.report_formatter import ReportFormatter


class TestTableSyncResult:
    """Test combining phase results"""

    def test_successful_phases(self):
        result = TableSyncResult(table='People')
        result.apply(PhaseResult(SyncDirection.PULL, inserted=3, updated=1))
        result.apply(PhaseResult(SyncDirection.PUSH, inserted=0, updated=2))

        assert result.success
        assert (result.pull_inserts, result.pull_updates) == (3, 1)
        assert (result.push_inserts, result.push_updates) == (0, 2)
        assert result.total_changes == 6
        assert result.error_message is None

    def test_failed_phase_message(self):
        result = TableSyncResult(table='People')
        result.apply(PhaseResult.failed(SyncDirection.PUSH, ConnectivityError("server closed the connection")))

        assert not result.success
        assert result.failed_phase == SyncDirection.PUSH
        assert result.error_kind == ErrorKind.CONNECTIVITY
        assert result.error_message == "push failed: ConnectivityError: server closed the connection"

    def test_failed_phase_keeps_applied_counts(self):
        phase = PhaseResult.failed(SyncDirection.PULL, ReconcileError("update failed", 'People', inserted_count=4))

        assert phase.inserted == 4
        assert phase.updated == 0
        assert phase.error_kind == ErrorKind.RECONCILE
        assert not phase.success

    def test_plain_sync_error_is_unexpected(self):
        assert SyncError("boom").kind == ErrorKind.UNEXPECTED


class TestSyncReport:

    def test_has_errors_when_any_table_fails(self):
        report = SyncReport()
        report.add(TableSyncResult(table='A'))
        assert not report.has_errors

        report.add(TableSyncResult(table='B', success=False, error_message='x'))
        assert report.has_errors
        assert 'B' in report
        assert [r.table for r in report] == ['A', 'B']

    def test_duration(self):
        start = datetime(2024, 1, 1, 12, 0, 0)
        report = SyncReport(start_time=start, end_time=start + timedelta(seconds=3))
        assert report.duration_seconds == 3.0
        assert SyncReport().duration_seconds == 0.0


class TestReportFormatter:

    def test_text_report(self):
        report = SyncReport()
        report.add(TableSyncResult(table='People', pull_inserts=2, push_updates=1))

        text = ReportFormatter.format_text(report)

        assert "Table: People" in text
        assert "    - Inserted: 2 rows" in text
        assert "Total Changes: 3 rows" in text
        assert text.endswith("Overall Status: Successful")

    def test_cancelled_report(self):
        report = SyncReport(cancelled=True)
        assert ReportFormatter.format_text(report).endswith("Overall Status: Cancelled")

    def test_failed_table_lines(self):
        result = TableSyncResult(table='Logs')
        result.apply(PhaseResult.failed(SyncDirection.PULL, SyncError("KeyError: 'x'")))

        lines = ReportFormatter.format_table(result)

        assert "  Status: Failed" in lines
        assert "  Error: pull failed: UnexpectedError: KeyError: 'x'" in lines
