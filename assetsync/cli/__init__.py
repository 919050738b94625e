import click

from assetsync.cli.create_tables import create_tables
from assetsync.cli.sync_admin import cleanup_queue, queue_stats, retry_failed, sync_health


@click.group()
def cli():
    """AssetSync sync engine administration."""


cli.add_command(create_tables)
cli.add_command(cleanup_queue)
cli.add_command(retry_failed)
cli.add_command(queue_stats)
cli.add_command(sync_health)
