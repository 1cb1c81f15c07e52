import click
from flask.cli import with_appcontext
import logging

logger = logging.getLogger(__name__)

@click.group(name='groups')
def groups_cli():
    """NIP-29 group commands."""
    pass

@groups_cli.command('expire-invites')
@with_appcontext
def expire_invites_command():
    """Deactivate invites that have expired or run out of uses."""
    from app.projects.groups.utils import expire_invites
    from app.utils.logging import log_activity

    count = expire_invites()
    log_activity('groups', 'Expire Invites', f"Deactivated {count} expired or exhausted invites.")
    click.echo(f"Deactivated {count} invites.")

@groups_cli.command('list')
@with_appcontext
def list_groups_command():
    """List groups with their member counts."""
    from app.projects.groups.models import Group

    groups = Group.query.order_by(Group.created_at.desc()).all()
    if not groups:
        click.echo("No groups yet.")
        return
    for group in groups:
        click.echo(f"{group.id}\t{group.group_id}\t{group.name}\t{len(group.members)} members")

def init_app(app):
    """Register CLI commands with the app."""
    app.cli.add_command(groups_cli)
