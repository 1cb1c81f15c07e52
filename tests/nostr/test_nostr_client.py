"""
Unit tests for the Nostr client: event ids, placeholder signing, relay pool.

Run (with venv activated):
  python -m unittest discover tests -v
  pytest tests/nostr/ -v
"""
import hashlib
import json
import unittest
from unittest.mock import MagicMock, patch

import requests

from app.core import nostr_client
from app.core.nostr_client import (
    MemoryTransport,
    RelayPool,
    StubTransport,
    compute_event_id,
    fetch_relay_info,
    finish_event,
    get_public_key,
    matches_filter,
    publish_event,
    serialize_event,
)

PRIVATE_KEY = "11" * 32


class TestKeys(unittest.TestCase):

    def test_public_key_is_deterministic_hex(self):
        pubkey = get_public_key(PRIVATE_KEY)
        self.assertEqual(len(pubkey), 64)
        self.assertEqual(pubkey, get_public_key(PRIVATE_KEY))
        self.assertNotEqual(pubkey, get_public_key("22" * 32))

    def test_malformed_private_key_raises(self):
        for bad in ("", "xyz", "11" * 31, ("AB" * 32), None):
            with self.assertRaises(ValueError):
                get_public_key(bad)


class TestEventId(unittest.TestCase):

    def test_serialization_follows_nip01(self):
        event = {"pubkey": "ab" * 32, "created_at": 1700000000, "kind": 1, "tags": [["t", "diet"]], "content": "hi"}
        expected = json.dumps([0, "ab" * 32, 1700000000, 1, [["t", "diet"]], "hi"], separators=(",", ":"))
        self.assertEqual(serialize_event(event), expected)
        self.assertEqual(compute_event_id(event), hashlib.sha256(expected.encode()).hexdigest())

    def test_non_ascii_content_is_not_escaped(self):
        event = {"pubkey": "ab" * 32, "created_at": 1, "kind": 1, "tags": [], "content": "café"}
        self.assertIn("café", serialize_event(event))


class TestFinishEvent(unittest.TestCase):

    def test_fills_all_fields(self):
        event = finish_event({"kind": 1, "content": "lunch", "tags": [["h", "abc"]]}, PRIVATE_KEY, created_at=1700000000)
        self.assertEqual(event["pubkey"], get_public_key(PRIVATE_KEY))
        self.assertEqual(event["created_at"], 1700000000)
        self.assertEqual(event["id"], compute_event_id(event))
        self.assertEqual(len(event["sig"]), 128)

    def test_tag_values_are_stringified(self):
        event = finish_event({"kind": 9000, "tags": [["p", "ab", 1]]}, PRIVATE_KEY)
        self.assertEqual(event["tags"], [["p", "ab", "1"]])
        self.assertEqual(event["content"], "")

    def test_missing_kind_raises(self):
        with self.assertRaises(ValueError):
            finish_event({"content": "x"}, PRIVATE_KEY)


class TestFilters(unittest.TestCase):

    def setUp(self):
        self.event = finish_event({"kind": 1, "content": "x", "tags": [["h", "g1"], ["e", "ref"]]}, PRIVATE_KEY, created_at=100)

    def test_kind_and_tag_filters(self):
        self.assertTrue(matches_filter(self.event, {"kinds": [1], "#h": ["g1"]}))
        self.assertFalse(matches_filter(self.event, {"kinds": [7]}))
        self.assertFalse(matches_filter(self.event, {"#h": ["other"]}))

    def test_time_window(self):
        self.assertTrue(matches_filter(self.event, {"since": 100, "until": 100}))
        self.assertFalse(matches_filter(self.event, {"since": 101}))
        self.assertFalse(matches_filter(self.event, {"until": 99}))

    def test_ids_and_authors(self):
        self.assertTrue(matches_filter(self.event, {"ids": [self.event["id"]], "authors": [self.event["pubkey"]]}))
        self.assertFalse(matches_filter(self.event, {"authors": ["someone"]}))


class TestRelayPool(unittest.TestCase):

    def test_stub_transport_accepts_and_lists_nothing(self):
        pool = RelayPool(StubTransport())
        event = finish_event({"kind": 1, "content": "x"}, PRIVATE_KEY)
        self.assertEqual(pool.publish(["wss://a"], event), event["id"])
        self.assertEqual(pool.list(["wss://a"], [{"kinds": [1]}]), [])

    def test_memory_transport_round_trip_deduplicates(self):
        pool = RelayPool(MemoryTransport())
        older = finish_event({"kind": 1, "content": "a"}, PRIVATE_KEY, created_at=10)
        newer = finish_event({"kind": 1, "content": "b"}, PRIVATE_KEY, created_at=20)
        pool.publish(["wss://a", "wss://b"], older)
        pool.publish(["wss://a", "wss://b"], newer)
        events = pool.list(["wss://a", "wss://b"], [{"kinds": [1]}])
        self.assertEqual([e["id"] for e in events], [newer["id"], older["id"]])

    def test_memory_transport_limit(self):
        pool = RelayPool(MemoryTransport())
        for ts in (1, 2, 3):
            pool.publish(["wss://a"], finish_event({"kind": 1, "content": str(ts)}, PRIVATE_KEY, created_at=ts))
        events = pool.list(["wss://a"], [{"kinds": [1], "limit": 2}])
        self.assertEqual([e["content"] for e in events], ["3", "2"])

    def test_tampered_event_is_rejected_everywhere(self):
        pool = RelayPool(MemoryTransport())
        event = finish_event({"kind": 1, "content": "x"}, PRIVATE_KEY)
        event["content"] = "changed"
        with self.assertRaises(RuntimeError):
            pool.publish(["wss://a"], event)

    def test_partial_acceptance_still_publishes(self):
        transport = MagicMock()
        transport.send.side_effect = [ConnectionError("down"), True]
        pool = RelayPool(transport)
        event = finish_event({"kind": 1, "content": "x"}, PRIVATE_KEY)
        self.assertEqual(pool.publish(["wss://a", "wss://b"], event), event["id"])


class TestPublishEvent(unittest.TestCase):

    def test_returns_event_id(self):
        with patch.object(nostr_client, "pool", RelayPool(MemoryTransport())):
            event_id = publish_event({"kind": 1, "content": "x"}, PRIVATE_KEY)
        self.assertEqual(len(event_id), 64)

    def test_bad_key_returns_none(self):
        self.assertIsNone(publish_event({"kind": 1, "content": "x"}, "not-a-key"))

    def test_relay_failure_returns_none(self):
        failing = MagicMock()
        failing.publish.side_effect = RuntimeError("no relay")
        with patch.object(nostr_client, "pool", failing):
            self.assertIsNone(publish_event({"kind": 1, "content": "x"}, PRIVATE_KEY))


class TestFetchRelayInfo(unittest.TestCase):

    @patch("app.core.nostr_client.requests.get")
    def test_converts_websocket_url_and_returns_json(self, mock_get):
        mock_get.return_value.json.return_value = {"name": "relay", "supported_nips": [1, 29]}
        info = fetch_relay_info("wss://relay.example.com")
        self.assertEqual(info["name"], "relay")
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "https://relay.example.com")
        self.assertEqual(kwargs["headers"]["Accept"], "application/nostr+json")

    @patch("app.core.nostr_client.requests.get")
    def test_request_error_returns_none(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        self.assertIsNone(fetch_relay_info("ws://localhost:7777"))
        self.assertEqual(mock_get.call_args[0][0], "http://localhost:7777")


if __name__ == "__main__":
    unittest.main()
