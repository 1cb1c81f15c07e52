import logging
from datetime import datetime

from flask import current_app

from app import db
from app.core import nip29
from app.core.nostr_client import is_hex_key
from app.projects.groups.models import GroupInvite, GroupEvent, GroupMember, INVITER_ROLES, MANAGER_ROLES

logger = logging.getLogger(__name__)


def get_signing_key():
    """
    The key the server signs group events with, or None when not configured.
    """
    private_key = current_app.config.get("NOSTR_PRIVATE_KEY")
    if not private_key:
        logger.warning("NOSTR_PRIVATE_KEY is not set; events will not be published")
        return None
    if not is_hex_key(private_key):
        logger.error("NOSTR_PRIVATE_KEY is not a 64 character hex key")
        return None
    return private_key


def publish_and_mirror(group, build, *args, **kwargs):
    """
    Publish a NIP-29 event for a group and add it to the group's event mirror.

    The mirror row is added to the session but not committed.

    Returns:
        str or None: The event id, or None if nothing was published
    """
    private_key = get_signing_key()
    if not private_key:
        return None
    event = nip29.publish_group_event(build, private_key, *args, **kwargs)
    if event is None:
        return None
    db.session.add(GroupEvent.from_mirror(group, nip29.event_to_mirror(event)))
    return event["id"]


def get_membership(group, user):
    return GroupMember.query.filter_by(group_id=group.id, user_id=user.id).first()


def has_role(group, user, roles):
    membership = get_membership(group, user)
    return membership is not None and membership.role in roles


def can_manage(group, user):
    return has_role(group, user, MANAGER_ROLES)


def can_invite(group, user):
    return has_role(group, user, INVITER_ROLES)


def check_invite(invite, group, now=None):
    """
    Check that an invite can be used to join `group`.

    Returns:
        str or None: An error message, or None if the invite is usable
    """
    if invite is None or invite.group_id != group.id:
        return "Invite not found"
    if not invite.is_active:
        return "Invite is no longer active"
    if invite.is_expired(now):
        return "Invite has expired"
    if invite.is_exhausted():
        return "Invite has reached its maximum uses"
    return None


def expire_invites(now=None):
    """
    Deactivate invites that are past their expiry or out of uses.

    Returns:
        int: Number of invites deactivated
    """
    now = now or datetime.utcnow()
    count = 0
    for invite in GroupInvite.query.filter_by(is_active=True).all():
        if invite.is_expired(now) or invite.is_exhausted():
            invite.is_active = False
            count += 1
    db.session.commit()
    return count
