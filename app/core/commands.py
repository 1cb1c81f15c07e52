import json

import click
from flask import current_app
from flask.cli import with_appcontext

from app.core.nostr_client import fetch_relay_info


@click.group(name='nostr')
def nostr_cli():
    """Nostr relay commands."""
    pass


@nostr_cli.command('relays')
@with_appcontext
def relays_command():
    """Show the configured relays."""
    for relay_url in current_app.config.get('NOSTR_RELAYS', []):
        click.echo(relay_url)


@nostr_cli.command('relay-info')
@click.argument('relay_url')
def relay_info_command(relay_url):
    """Print a relay's NIP-11 information document."""
    info = fetch_relay_info(relay_url)
    if info is None:
        raise click.ClickException(f"Could not fetch relay info for {relay_url}")
    click.echo(json.dumps(info, indent=2))
    nips = info.get('supported_nips') or []
    if 29 not in nips:
        click.echo(f"Warning: {relay_url} does not advertise NIP-29 support.")


def init_app(app):
    """Register CLI commands with the app."""
    app.cli.add_command(nostr_cli)
