"""
Unit tests for the `flask groups` and `flask nostr` CLI commands.
"""
import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

from flask import Flask

from app import db
from app.core import commands as nostr_commands
from app.models import LogEntry
from app.projects.groups import commands as groups_commands
from app.projects.groups.models import Group, GroupInvite
import app.projects.tracking.models  # noqa: F401


def _create_test_app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
    app.config["NOSTR_RELAYS"] = ["wss://relay.one", "wss://relay.two"]
    db.init_app(app)
    groups_commands.init_app(app)
    nostr_commands.init_app(app)
    return app


class CommandsTestCase(unittest.TestCase):

    def setUp(self):
        self.app = _create_test_app()
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        self.runner = self.app.test_cli_runner()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()


class TestGroupsCommands(CommandsTestCase):

    def test_expire_invites(self):
        group = Group(group_id="relay.dietstr.com'keto-club", name="Keto Club")
        db.session.add(group)
        db.session.flush()
        db.session.add_all([
            GroupInvite(group_id=group.id, invite_code="old", expires_at=datetime.utcnow() - timedelta(days=1), use_count=0, is_active=True),
            GroupInvite(group_id=group.id, invite_code="new", expires_at=datetime.utcnow() + timedelta(days=1), use_count=0, is_active=True),
        ])
        db.session.commit()

        result = self.runner.invoke(args=["groups", "expire-invites"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Deactivated 1 invites.", result.output)
        self.assertFalse(GroupInvite.query.filter_by(invite_code="old").one().is_active)
        self.assertTrue(GroupInvite.query.filter_by(invite_code="new").one().is_active)
        self.assertEqual(LogEntry.query.filter_by(project="groups", category="Expire Invites").count(), 1)

    def test_list_groups(self):
        result = self.runner.invoke(args=["groups", "list"])
        self.assertIn("No groups yet.", result.output)

        db.session.add(Group(group_id="relay.dietstr.com'keto-club", name="Keto Club"))
        db.session.commit()
        result = self.runner.invoke(args=["groups", "list"])
        self.assertIn("relay.dietstr.com'keto-club\tKeto Club\t0 members", result.output)


class TestNostrCommands(CommandsTestCase):

    def test_relays(self):
        result = self.runner.invoke(args=["nostr", "relays"])
        self.assertEqual(result.output.split(), ["wss://relay.one", "wss://relay.two"])

    @patch("app.core.commands.fetch_relay_info")
    def test_relay_info(self, mock_fetch):
        mock_fetch.return_value = {"name": "groups relay", "supported_nips": [1, 11, 29]}
        result = self.runner.invoke(args=["nostr", "relay-info", "wss://groups.example.com"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn('"name": "groups relay"', result.output)
        self.assertNotIn("Warning", result.output)
        mock_fetch.assert_called_once_with("wss://groups.example.com")

    @patch("app.core.commands.fetch_relay_info")
    def test_relay_without_nip29_warns(self, mock_fetch):
        mock_fetch.return_value = {"name": "plain relay", "supported_nips": [1]}
        result = self.runner.invoke(args=["nostr", "relay-info", "wss://plain.example.com"])
        self.assertIn("does not advertise NIP-29", result.output)

    @patch("app.core.commands.fetch_relay_info", return_value=None)
    def test_relay_info_failure(self, mock_fetch):
        result = self.runner.invoke(args=["nostr", "relay-info", "wss://down.example.com"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Could not fetch relay info", result.output)


if __name__ == "__main__":
    unittest.main()
