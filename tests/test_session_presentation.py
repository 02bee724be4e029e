from __future__ import annotations

import unittest
from datetime import datetime
from datetime import timedelta
from datetime import timezone

from sessions.models import JoinResult
from sessions.models import LeaveResult
from sessions.models import Participant
from sessions.models import SessionRecord
from sessions.presentation import COLOR_LIVE
from sessions.presentation import COLOR_SCHEDULED
from sessions.presentation import STALE_DISPLAY_NOTE
from sessions.presentation import format_duration
from sessions.presentation import parse_custom_id
from sessions.presentation import reminder_recipients
from sessions.presentation import render_join_reply
from sessions.presentation import render_leave_reply
from sessions.presentation import render_session
from sessions.presentation import render_session_info
from sessions.presentation import render_session_list
from sessions.presentation import session_custom_id

NOW = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)


def _record(**overrides) -> SessionRecord:
    payload = dict(
        id="7-1770033600000",
        host_id=1,
        host_name="Hosty",
        activity_label="Valorant",
        scheduled_at=NOW + timedelta(minutes=30),
        scheduled_display="<t:1770035400:F> (<t:1770035400:R>)",
        description="",
        created_at=NOW,
        guild_id=7,
        channel_id=123,
        participants={1: Participant("Hosty", NOW, is_host=True)},
    )
    payload.update(overrides)
    return SessionRecord(**payload)


class SessionPresentationTests(unittest.TestCase):
    def test_custom_id_roundtrip_and_rejections(self):
        cid = session_custom_id("join", "7-123")
        self.assertEqual(cid, "gaming:join:7-123")
        self.assertEqual(parse_custom_id(cid), ("join", "7-123"))
        self.assertIsNone(parse_custom_id("gaming:dance:7-123"))
        self.assertIsNone(parse_custom_id("welcome:join:7-123"))
        self.assertIsNone(parse_custom_id("gaming:join:"))
        self.assertIsNone(parse_custom_id(None))

    def test_scheduled_card_fields_and_buttons(self):
        surface = render_session(_record(), NOW)
        self.assertEqual(surface.color, COLOR_SCHEDULED)
        by_name = {f.name: f.value for f in surface.fields}
        self.assertEqual(by_name["Status"], "**Scheduled**")
        self.assertIn("Starting in 30 minutes", by_name["Time"])
        self.assertEqual(by_name["Players"], "**1** joined")
        self.assertIn("Hosty** (host)", by_name["Player List"])
        self.assertNotIn("Description", by_name)
        self.assertEqual([b.action for b in surface.buttons], ["join", "leave", "info", "end"])
        self.assertEqual(surface.buttons[0].custom_id, "gaming:join:7-1770033600000")
        self.assertEqual(surface.footer, "Session ID: 1770033600000 - Created")
        self.assertEqual(surface.mention_role_ids, ())

    def test_live_card_and_ping_role(self):
        surface = render_session(_record(scheduled_at=NOW, ping_role_id=55), NOW)
        self.assertEqual(surface.color, COLOR_LIVE)
        by_name = {f.name: f.value for f in surface.fields}
        self.assertEqual(by_name["Status"], "**LIVE NOW**")
        self.assertNotIn("Starting in", by_name["Time"])
        self.assertTrue(surface.content.startswith("<@&55> "))
        self.assertEqual(surface.mention_role_ids, (55,))

    def test_far_future_card_has_no_countdown(self):
        surface = render_session(_record(scheduled_at=NOW + timedelta(hours=3)), NOW)
        by_name = {f.name: f.value for f in surface.fields}
        self.assertNotIn("Starting in", by_name["Time"])

    def test_long_participant_list_is_truncated(self):
        participants = {i: Participant(f"player-{i:03d}-with-a-long-name", NOW) for i in range(1, 80)}
        participants[1].is_host = True
        surface = render_session(_record(participants=participants), NOW, participant_list_max_chars=200)
        player_list = {f.name: f.value for f in surface.fields}["Player List"]
        self.assertLessEqual(len(player_list), 200)
        self.assertTrue(player_list.endswith("\n..."))
        kept = player_list.splitlines()[:-1]
        self.assertTrue(kept)
        for line in kept:
            self.assertTrue(line.endswith("**") or line.endswith("** (host)"), line)
            self.assertEqual(line.count("**"), 2)

    def test_info_lists_small_groups_only(self):
        small = render_session_info(_record(), NOW + timedelta(hours=1, minutes=5))
        names = [f.name for f in small.fields]
        self.assertIn("Participants", names)
        age = {f.name: f.value for f in small.fields}["Session Age"]
        self.assertEqual(age, "1h 5m")

        many = {i: Participant(f"p{i}", NOW) for i in range(1, 13)}
        big = render_session_info(_record(participants=many), NOW)
        self.assertNotIn("Participants", [f.name for f in big.fields])

    def test_reminder_recipients_put_host_first(self):
        participants = {
            2: Participant("Two", NOW),
            1: Participant("Hosty", NOW, is_host=True),
            3: Participant("Three", NOW),
        }
        self.assertEqual(reminder_recipients(_record(participants=participants)), [1, 2, 3])

    def test_format_duration(self):
        self.assertEqual(format_duration(timedelta(minutes=42)), "42m")
        self.assertEqual(format_duration(timedelta(minutes=42), always_hours=True), "0h 42m")
        self.assertEqual(format_duration(timedelta(hours=2, minutes=3)), "2h 3m")
        self.assertEqual(format_duration(timedelta(seconds=-5)), "0m")

    def test_join_reply_variants(self):
        record = _record()
        far = render_join_reply(JoinResult(record, True, 2), NOW)
        self.assertIn("notified when it's time", far)
        soon = render_join_reply(JoinResult(record, True, 2), NOW + timedelta(minutes=25))
        self.assertIn("Starting soon", soon)
        live = render_join_reply(JoinResult(record, True, 2), NOW + timedelta(minutes=31))
        self.assertIn("LIVE NOW", live)
        again = render_join_reply(JoinResult(record, False, 2), NOW)
        self.assertIn("Already joined", again)
        stale = render_join_reply(JoinResult(record, True, 2, display_stale=True), NOW)
        self.assertTrue(stale.endswith(STALE_DISPLAY_NOTE))

    def test_leave_reply_mentions_transfer_or_grace(self):
        record = _record(host_id=2, host_name="Two")
        moved = render_leave_reply(LeaveResult(record, True, 1, host_transferred_to=2))
        self.assertIn("Host transferred** to Two", moved)
        empty = render_leave_reply(LeaveResult(record, True, 0, grace_pending=True))
        self.assertIn("Session will end soon", empty)
        missing = render_leave_reply(LeaveResult(record, False, 1))
        self.assertIn("Not in session", missing)

    def test_session_list(self):
        self.assertIn("No active gaming sessions", render_session_list([], NOW))
        live = _record(id="7-1", activity_label="Chess", scheduled_at=NOW)
        text = render_session_list([_record(), live], NOW)
        lines = text.splitlines()
        self.assertEqual(lines[0], "Active gaming sessions (2):")
        self.assertTrue(lines[1].startswith("- Chess [LIVE]"))
        self.assertTrue(lines[2].startswith("- Valorant [SCHEDULED]"))


if __name__ == "__main__":
    unittest.main()
