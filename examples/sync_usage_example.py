"""
Example of running a synchronization from code instead of the CLI.
"""
import asyncio
import logging
import signal
from tablesync.core.models import ConnectionConfig, DataStore
from tablesync.sync.sync_orchestrator import SyncOrchestrator, sync_data_async
from tablesync.utils.report_formatter import ReportFormatter

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    local = DataStore(
        name="branch",
        type="postgres",
        connection=ConnectionConfig(host="localhost", user="postgres", password="password", database="pos"),
    )
    remote = DataStore(
        name="head_office",
        type="mysql",
        connection=ConnectionConfig(host="hq.example.com", user="sync", password="password", database="pos"),
    )

    # Stop after the current table on Ctrl+C
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        # No signal handlers on Windows event loops
        pass

    report = await sync_data_async(
        local, remote, ["Customers", "Products", "Orders"],
        orchestrator=SyncOrchestrator(logger=logger),
        cancel_event=cancel_event,
    )
    print(ReportFormatter.format_text(report))

    for result in report:
        if not result.success:
            logger.error(f"{result.table}: {result.error_message}")


if __name__ == "__main__":
    asyncio.run(main())
