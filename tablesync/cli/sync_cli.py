#!/usr/bin/env python3
"""
Tablesync CLI

Runs a pull-then-push synchronization of the tables listed in a YAML
configuration and prints the per-table report.
"""

import asyncio
import click
import logging
import sys
from typing import List, Optional

from ..config.config_loader import ConfigLoader
from ..core.models import SyncJobConfig, SyncReport
from ..sync.sync_orchestrator import sync_data_async
from ..utils.report_formatter import ReportFormatter


class SyncCLI:
    """Command-line interface for running table synchronizations"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def load_config(self, config_path: str) -> Optional[SyncJobConfig]:
        try:
            config = ConfigLoader.load_from_yaml(config_path)
        except (OSError, ValueError, TypeError) as e:
            click.echo(f"Error loading configuration: {e}", err=True)
            return None

        issues = ConfigLoader.validate_config(config)
        if issues:
            click.echo("Configuration validation issues:", err=True)
            for issue in issues:
                click.echo(f"  - {issue}", err=True)
            return None
        return config

    async def run_sync(self, config: SyncJobConfig, tables: Optional[List[str]] = None) -> SyncReport:
        tables = tables or config.tables
        self.logger.info(f"Starting synchronization of {len(tables)} tables")
        return await sync_data_async(config.local, config.remote, tables)


@click.group()
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              help='Set the logging level')
@click.pass_context
def cli(ctx, log_level):
    """Bidirectional table synchronization between a local and a remote database"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)]
    )
    ctx.ensure_object(dict)
    ctx.obj['cli'] = SyncCLI()


@cli.command()
@click.argument('config_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--table', 'tables', multiple=True, help='Only sync these tables (repeatable)')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
@click.pass_context
def sync(ctx, config_path, tables, as_json):
    """Pull remote changes into local, then push local changes into remote"""
    cli_instance = ctx.obj['cli']
    config = cli_instance.load_config(config_path)
    if config is None:
        sys.exit(2)

    report = asyncio.run(cli_instance.run_sync(config, list(tables) if tables else None))

    if as_json:
        click.echo(ReportFormatter.format_json(report))
    else:
        click.echo(ReportFormatter.format_text(report))
    sys.exit(1 if report.has_errors else 0)


@cli.command()
@click.argument('config_path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate(ctx, config_path):
    """Check a configuration file without connecting to any store"""
    cli_instance = ctx.obj['cli']
    config = cli_instance.load_config(config_path)
    if config is None:
        sys.exit(2)
    click.echo(
        f"Configuration OK: {config.local.name} ({config.local.type}) <-> "
        f"{config.remote.name} ({config.remote.type}), {len(config.tables)} tables"
    )


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
