"""
Human readable and JSON renderings of a SyncReport.
"""
import json
from typing import List

from ..core.models import SyncReport, TableSyncResult


class ReportFormatter:
    """Formats sync reports for the console"""

    @staticmethod
    def format_table(result: TableSyncResult) -> List[str]:
        lines = [f"Table: {result.table}"]
        if result.success:
            lines.append("  Status: Success")
        else:
            lines.append("  Status: Failed")
            lines.append(f"  Error: {result.error_message}")

        lines.extend([
            "  Pull from Remote to Local:",
            f"    - Inserted: {result.pull_inserts} rows",
            f"    - Updated: {result.pull_updates} rows",
            "  Push from Local to Remote:",
            f"    - Inserted: {result.push_inserts} rows",
            f"    - Updated: {result.push_updates} rows",
            f"  Total Changes: {result.total_changes} rows",
        ])
        return lines

    @staticmethod
    def format_text(report: SyncReport) -> str:
        lines = ["Synchronization Results:", "======================="]
        for result in report:
            lines.append("")
            lines.extend(ReportFormatter.format_table(result))

        if report.cancelled:
            status = "Cancelled"
        elif report.has_errors:
            status = "Completed with errors"
        else:
            status = "Successful"
        lines.append("")
        lines.append(f"Overall Status: {status}")
        return "\n".join(lines)

    @staticmethod
    def format_json(report: SyncReport) -> str:
        return json.dumps(report.to_dict(), indent=2)
