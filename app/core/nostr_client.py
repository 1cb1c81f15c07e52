"""
Nostr client: event building, placeholder signing and relay access.

Events are plain dicts shaped like NIP-01 JSON:
    {"id", "pubkey", "created_at", "kind", "tags", "content", "sig"}

Signing is a placeholder. Public keys and signatures are derived with
hashes so that events are deterministic and well-formed, but they are not
secp256k1 Schnorr values and no relay would accept them. Relay I/O goes
through a transport object; the default one accepts every publish and
returns nothing for queries.
"""

import hashlib
import json
import logging
import re
import time

import requests
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

RELAYS = [
    "wss://relay.damus.io",
    "wss://relay.nostr.band",
    "wss://nos.lol",
]

HEX_KEY_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def is_hex_key(value):
    return isinstance(value, str) and bool(HEX_KEY_PATTERN.match(value))


def get_public_key(private_key):
    """Derive the pubkey for a hex private key (placeholder derivation, not secp256k1)."""
    if not is_hex_key(private_key):
        raise ValueError("Private key must be 64 lowercase hex characters")
    return hashlib.sha256(bytes.fromhex(private_key)).hexdigest()


def serialize_event(event):
    """NIP-01 serialization used for the event id."""
    return json.dumps(
        [0, event["pubkey"], event["created_at"], event["kind"], event.get("tags") or [], event.get("content") or ""],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_event_id(event):
    return hashlib.sha256(serialize_event(event).encode("utf-8")).hexdigest()


def finish_event(template, private_key, created_at=None):
    """
    Turn an event template ({kind, content, tags}) into a complete event.

    Raises:
        ValueError: If the template has no kind or the key is malformed
    """
    if template.get("kind") is None:
        raise ValueError("Event kind is required")

    event = {
        "pubkey": get_public_key(private_key),
        "created_at": int(created_at if created_at is not None else template.get("created_at") or time.time()),
        "kind": int(template["kind"]),
        "tags": [list(map(str, tag)) for tag in template.get("tags") or []],
        "content": template.get("content") or "",
    }
    event["id"] = compute_event_id(event)
    # Placeholder signature, same length as a Schnorr signature
    event["sig"] = hashlib.sha512(f"{private_key}:{event['id']}".encode("utf-8")).hexdigest()
    return event


def get_tag_values(event, name):
    return [tag[1] for tag in event.get("tags") or [] if len(tag) > 1 and tag[0] == name]


def matches_filter(event, nostr_filter):
    """Check an event against a single NIP-01 filter."""
    if "ids" in nostr_filter and event.get("id") not in nostr_filter["ids"]:
        return False
    if "authors" in nostr_filter and event.get("pubkey") not in nostr_filter["authors"]:
        return False
    if "kinds" in nostr_filter and event.get("kind") not in nostr_filter["kinds"]:
        return False
    if "since" in nostr_filter and event.get("created_at", 0) < nostr_filter["since"]:
        return False
    if "until" in nostr_filter and event.get("created_at", 0) > nostr_filter["until"]:
        return False
    for key, values in nostr_filter.items():
        if key.startswith("#") and len(key) == 2:
            if not set(get_tag_values(event, key[1])) & set(values):
                return False
    return True


class StubTransport:
    """Accepts every publish and lists nothing. Used until a real relay connection exists."""

    def send(self, relay_url, event):
        logger.debug(f"Stub publish of {event['id']} to {relay_url}")
        return True

    def query(self, relay_url, filters):
        return []


class MemoryTransport:
    """Keeps published events per relay in memory and answers filters from them."""

    def __init__(self):
        self.events = {}

    def send(self, relay_url, event):
        if compute_event_id(event) != event.get("id"):
            raise ValueError(f"Event id does not match its content: {event.get('id')}")
        self.events.setdefault(relay_url, {})[event["id"]] = event
        return True

    def query(self, relay_url, filters):
        stored = sorted(
            self.events.get(relay_url, {}).values(),
            key=lambda e: e["created_at"],
            reverse=True,
        )
        results = []
        for nostr_filter in filters:
            matched = [e for e in stored if matches_filter(e, nostr_filter)]
            if nostr_filter.get("limit") is not None:
                matched = matched[: nostr_filter["limit"]]
            results.extend(matched)
        return results


class RelayPool:
    """Publishes to and queries a set of relays through a transport."""

    def __init__(self, transport=None):
        self.transport = transport or StubTransport()

    def publish(self, relays, event):
        """
        Send an event to every relay.

        Returns:
            str: The event id, if at least one relay accepted it

        Raises:
            RuntimeError: If no relay accepted the event
        """
        accepted = 0
        for relay_url in relays:
            try:
                if self.transport.send(relay_url, event):
                    accepted += 1
            except Exception as e:
                logger.warning(f"Relay {relay_url} rejected event {event.get('id')}: {e}")
        if not accepted:
            raise RuntimeError(f"No relay accepted event {event.get('id')}")
        return event["id"]

    def list(self, relays, filters):
        """Query every relay; events are de-duplicated by id, newest first."""
        seen = {}
        for relay_url in relays:
            for event in self.transport.query(relay_url, filters):
                seen.setdefault(event["id"], event)
        return sorted(seen.values(), key=lambda e: e["created_at"], reverse=True)


pool = RelayPool()


def get_relays():
    if has_app_context():
        return current_app.config.get("NOSTR_RELAYS") or RELAYS
    return RELAYS


def sign_and_publish(template, private_key, relays=None):
    """
    Sign and publish an event template.

    Returns:
        dict or None: The published event, or None if signing or publishing failed
    """
    try:
        event = finish_event(template, private_key)
        pool.publish(relays or get_relays(), event)
        return event
    except Exception as e:
        logger.error(f"Failed to publish event: {e}")
        return None


def publish_event(template, private_key, relays=None):
    """Like sign_and_publish, but returns only the event id (or None)."""
    event = sign_and_publish(template, private_key, relays=relays)
    return event["id"] if event else None


def list_events(filters, relays=None):
    """Query relays; returns [] on failure."""
    try:
        return pool.list(relays or get_relays(), filters)
    except Exception as e:
        logger.error(f"Failed to list events: {e}")
        return []


def fetch_relay_info(relay_url, timeout=10):
    """
    Fetch a relay's NIP-11 information document.

    Returns:
        dict or None: The relay info, or None on any error
    """
    http_url = re.sub(r"^ws(s?)://", r"http\1://", relay_url)
    headers = {"Accept": "application/nostr+json"}

    try:
        response = requests.get(http_url, headers=headers, timeout=timeout)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"Relay info error for {relay_url}: {e}")
        return None
    except ValueError as e:
        logger.error(f"Relay {relay_url} returned invalid JSON: {e}")
        return None
