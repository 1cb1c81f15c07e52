"""
NIP-29 relay-based groups.

`build_*` functions return unsigned event templates and raise ValueError on
bad input. The matching helpers (create_group, request_join_group, ...) sign
and publish the template and return the event id, or None if anything went
wrong (the error is logged).
"""

import logging
import re
import secrets

from app.core.nostr_client import get_tag_values, list_events, sign_and_publish

logger = logging.getLogger(__name__)

# Moderation events
ADD_USER = 9000
REMOVE_USER = 9001
JOIN_REQUEST = 9021
LEAVE_REQUEST = 9022
# Metadata events
GROUP_METADATA = 39000
ADMIN_METADATA = 39001
USER_METADATA = 39002
RELAY_METADATA = 39003
# Regular content kinds in groups
TEXT_NOTE = 1
REACTION = 7

NIP29_EVENT_KINDS = {
    "ADD_USER": ADD_USER,
    "REMOVE_USER": REMOVE_USER,
    "JOIN_REQUEST": JOIN_REQUEST,
    "LEAVE_REQUEST": LEAVE_REQUEST,
    "GROUP_METADATA": GROUP_METADATA,
    "ADMIN_METADATA": ADMIN_METADATA,
    "USER_METADATA": USER_METADATA,
    "RELAY_METADATA": RELAY_METADATA,
    "TEXT_NOTE": TEXT_NOTE,
    "REACTION": REACTION,
}

APP_TAGS = ("dietstr", "diet", "nutrition")
TOPIC_KEYWORDS = {"keto": "keto", "vegan": "vegan", "weight": "weightloss"}

LOCAL_ID_PATTERN = re.compile(r"^[a-z0-9_-]+$")


def make_group_id(host, local_id=None):
    """Build a `<host>'<group-id>` identifier; a random local id is used when none is given."""
    local_id = local_id or secrets.token_hex(6)
    if not host or "'" in host:
        raise ValueError(f"Invalid relay host: {host!r}")
    if not LOCAL_ID_PATTERN.match(local_id):
        raise ValueError(f"Invalid group id: {local_id!r}")
    return f"{host}'{local_id}"


def parse_group_id(group_id):
    """
    Split a `<host>'<group-id>` identifier.

    Returns:
        tuple: (host, local_id)

    Raises:
        ValueError: If the identifier is malformed
    """
    if not isinstance(group_id, str) or group_id.count("'") != 1:
        raise ValueError(f"Invalid NIP-29 group id: {group_id!r}")
    host, local_id = group_id.split("'")
    if not host or not LOCAL_ID_PATTERN.match(local_id):
        raise ValueError(f"Invalid NIP-29 group id: {group_id!r}")
    return host, local_id


def _local_id(group_id):
    return parse_group_id(group_id)[1]


def topic_tags(name, about=None):
    text = f"{name} {about or ''}".lower()
    tags = [["t", tag] for tag in APP_TAGS]
    for keyword, tag in TOPIC_KEYWORDS.items():
        if keyword in text:
            tags.append(["t", tag])
    return tags


def _group_template(kind, group_id, content="", extra_tags=None):
    tags = [["h", _local_id(group_id)]]
    tags.extend(extra_tags or [])
    return {"kind": kind, "content": content, "tags": tags}


# Templates

def build_group_metadata(group_id, name, about=None, picture=None, public=True, open_group=True):
    if not name or not name.strip():
        raise ValueError("Group name is required")
    tags = [["d", _local_id(group_id)], ["name", name]]
    if about:
        tags.append(["about", about])
    if picture:
        tags.append(["picture", picture])
    tags.append(["public"] if public else ["private"])
    tags.append(["open"] if open_group else ["closed"])
    tags.extend(topic_tags(name, about))
    return {"kind": GROUP_METADATA, "content": "", "tags": tags}


def build_join_request(group_id, invite_code=None):
    extra = [["code", invite_code]] if invite_code else []
    return _group_template(JOIN_REQUEST, group_id, extra_tags=extra)


def build_leave_request(group_id):
    return _group_template(LEAVE_REQUEST, group_id)


def build_add_user(group_id, pubkey, role=None):
    p_tag = ["p", pubkey] + ([role] if role else [])
    return _group_template(ADD_USER, group_id, extra_tags=[p_tag])


def build_remove_user(group_id, pubkey):
    return _group_template(REMOVE_USER, group_id, extra_tags=[["p", pubkey]])


def build_group_note(group_id, content):
    if not content or not content.strip():
        raise ValueError("Note content is empty")
    return _group_template(TEXT_NOTE, group_id, content=content)


def build_reaction(group_id, event_id, author_pubkey, reaction="+"):
    return _group_template(
        REACTION, group_id, content=reaction,
        extra_tags=[["e", event_id], ["p", author_pubkey]],
    )


def build_admin_list(group_id, admins):
    """admins: iterable of (pubkey, role) pairs"""
    tags = [["d", _local_id(group_id)]]
    tags.extend(["p", pubkey, role] for pubkey, role in admins)
    return {"kind": ADMIN_METADATA, "content": "", "tags": tags}


def build_member_list(group_id, members):
    tags = [["d", _local_id(group_id)]]
    tags.extend(["p", pubkey] for pubkey in members)
    return {"kind": USER_METADATA, "content": "", "tags": tags}


# Publishing

def publish_group_event(build, private_key, *args, **kwargs):
    """
    Build a template with `build(*args, **kwargs)`, sign it and publish it.

    Returns:
        dict or None: The published event, or None on any error
    """
    try:
        template = build(*args, **kwargs)
    except Exception as e:
        logger.error(f"Failed to build NIP-29 event with {build.__name__}: {e}")
        return None

    event = sign_and_publish(template, private_key)
    if event is None:
        logger.error(f"NIP-29 kind {template['kind']} event was not published")
    else:
        logger.info(f"NIP-29 kind {template['kind']} event published as {event['id']}")
    return event


def _publish_id(build, private_key, *args, **kwargs):
    event = publish_group_event(build, private_key, *args, **kwargs)
    return event["id"] if event else None


def create_group(group_id, name, private_key, about=None, picture=None, public=True, open_group=True):
    """Publish the kind 39000 metadata event describing a group."""
    return _publish_id(build_group_metadata, private_key, group_id, name,
                       about=about, picture=picture, public=public, open_group=open_group)


def request_join_group(group_id, private_key, invite_code=None):
    """Publish a kind 9021 join request, optionally carrying an invite code."""
    return _publish_id(build_join_request, private_key, group_id, invite_code=invite_code)


def request_leave_group(group_id, private_key):
    """Publish a kind 9022 leave request."""
    return _publish_id(build_leave_request, private_key, group_id)


def add_user(group_id, pubkey, private_key, role=None):
    """Publish a kind 9000 moderation event adding (or re-roling) a member."""
    return _publish_id(build_add_user, private_key, group_id, pubkey, role=role)


def remove_user(group_id, pubkey, private_key):
    """Publish a kind 9001 moderation event removing a member."""
    return _publish_id(build_remove_user, private_key, group_id, pubkey)


def post_group_note(group_id, content, private_key):
    """Publish a kind 1 note inside a group."""
    return _publish_id(build_group_note, private_key, group_id, content)


def react_to_note(group_id, event_id, author_pubkey, private_key, reaction="+"):
    """Publish a kind 7 reaction to a group note."""
    return _publish_id(build_reaction, private_key, group_id, event_id, author_pubkey, reaction=reaction)


def publish_group_admins(group_id, admins, private_key):
    """Publish the kind 39001 admin list."""
    return _publish_id(build_admin_list, private_key, group_id, admins)


def publish_group_members(group_id, members, private_key):
    """Publish the kind 39002 member list."""
    return _publish_id(build_member_list, private_key, group_id, members)


def fetch_group_events(group_id, kinds=None, limit=None):
    """Fetch events tagged with the group. Returns [] on any error."""
    try:
        nostr_filter = {"#h": [_local_id(group_id)]}
    except ValueError as e:
        logger.error(f"Cannot fetch events: {e}")
        return []
    if kinds:
        nostr_filter["kinds"] = list(kinds)
    if limit:
        nostr_filter["limit"] = limit
    return list_events([nostr_filter])


def event_to_mirror(event):
    """Fields for a group_events row from a Nostr event dict."""
    return {
        "kind": event["kind"],
        "event_id": event["id"],
        "pubkey": event["pubkey"],
        "created_at": event["created_at"],
        "content": event.get("content"),
        "tags": event.get("tags") or [],
        "referenced_event_ids": get_tag_values(event, "e"),
    }
