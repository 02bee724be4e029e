from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest import mock

try:
    from misc.discord_gates import channel_in_allowed_channels
    from misc.discord_gates import parse_id_set
except ModuleNotFoundError:
    channel_in_allowed_channels = None
    parse_id_set = None


@unittest.skipIf(channel_in_allowed_channels is None, "discord.py not installed")
class DiscordGatesTests(unittest.TestCase):
    def test_empty_allowlist_allows_every_channel(self):
        self.assertTrue(channel_in_allowed_channels(SimpleNamespace(id=999), allowed_channel_ids=set()))

    def test_allowed_channel_is_allowed(self):
        self.assertTrue(channel_in_allowed_channels(SimpleNamespace(id=123), allowed_channel_ids={123}))

    def test_disallowed_channel_is_blocked(self):
        self.assertFalse(channel_in_allowed_channels(SimpleNamespace(id=999), allowed_channel_ids={123}))

    def test_thread_parent_allowlist_is_honored(self):
        class FakeThread:
            def __init__(self, channel_id: int, parent_id: int):
                self.id = int(channel_id)
                self.parent = SimpleNamespace(id=int(parent_id))

        with mock.patch("misc.discord_gates.discord.Thread", FakeThread):
            self.assertTrue(channel_in_allowed_channels(FakeThread(777, 123), allowed_channel_ids={123}))
            self.assertFalse(channel_in_allowed_channels(FakeThread(777, 456), allowed_channel_ids={123}))

    def test_parse_id_set_keeps_only_snowflakes(self):
        raw = "123456789012345678, nope;  987654321098765432 42"
        self.assertEqual(parse_id_set(raw), {123456789012345678, 987654321098765432})
        self.assertEqual(parse_id_set(None), set())


if __name__ == "__main__":
    unittest.main()
