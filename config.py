import os

DATABASE_URL = os.getenv("DATABASE_URL", "").replace("postgres://", "postgresql://", 1)
SQLALCHEMY_DATABASE_URI = DATABASE_URL

SECRET_KEY = os.getenv("SECRET_KEY")

# Nostr relays used when publishing and querying events
NOSTR_RELAYS = [
    url.strip()
    for url in os.getenv(
        "NOSTR_RELAYS", "wss://relay.damus.io,wss://relay.nostr.band,wss://nos.lol"
    ).split(",")
    if url.strip()
]

# Host part of NIP-29 group ids (<host>'<group-id>)
NOSTR_GROUP_RELAY_HOST = os.getenv("NOSTR_GROUP_RELAY_HOST", "relay.dietstr.com")

# Hex key the server signs mirrored group events with
NOSTR_PRIVATE_KEY = os.getenv("NOSTR_PRIVATE_KEY")

INVITE_DEFAULT_TTL_HOURS = int(os.getenv("INVITE_DEFAULT_TTL_HOURS", "168"))
