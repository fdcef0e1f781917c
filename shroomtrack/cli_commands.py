"""
Flask CLI commands for ledger administration.

Commands:
- flask init-db: Create all tables
- flask set-rate: Update a cost rate (LABOR_RATE or RAW_MATERIAL_RATE)
"""

import click
from shroomtrack import database
from shroomtrack.exceptions import LedgerError
from shroomtrack.services import ledger_store


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create the ledger tables."""
        database.create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('set-rate')
    @click.option('--key', required=True, type=click.Choice(['LABOR_RATE', 'RAW_MATERIAL_RATE'], case_sensitive=False),
                  help='Rate to update')
    @click.option('--value', required=True, help='New rate (per hour for labor, per kg for raw material)')
    def set_rate_command(key, value):
        """Update a cost rate used for new cost entries."""
        try:
            setting = ledger_store.set_rate(database.get_session(), key, value)
        except LedgerError as e:
            click.echo(click.style(f'Error: {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style(f'{setting.key} set to {setting.value:.2f}', fg='green', bold=True))
