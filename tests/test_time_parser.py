from __future__ import annotations

import unittest
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

from sessions.time_parser import NOW_DISPLAY
from sessions.time_parser import parse_time_expression
from sessions.time_parser import resolve_timezone

try:
    NEW_YORK = ZoneInfo("America/New_York")
except ZoneInfoNotFoundError:
    NEW_YORK = None


NOW = datetime(2026, 2, 2, 21, 0, tzinfo=timezone.utc)


class TimeParserTests(unittest.TestCase):
    def test_now_resolves_to_call_time(self):
        before = datetime.now().astimezone()
        out = parse_time_expression("now")
        self.assertTrue(out.ok)
        self.assertLess(abs((out.instant - before).total_seconds()), 2)
        self.assertEqual(out.display, NOW_DISPLAY)

    def test_now_is_case_insensitive_and_trimmed(self):
        out = parse_time_expression("  NOW ", now=NOW)
        self.assertTrue(out.ok)
        self.assertEqual(out.instant, NOW)

    def test_in_minutes(self):
        out = parse_time_expression("in 30 minutes", now=NOW)
        self.assertTrue(out.ok)
        self.assertEqual(out.instant, NOW + timedelta(minutes=30))
        ts = int(out.instant.timestamp())
        self.assertEqual(out.display, f"<t:{ts}:F> (<t:{ts}:R>)")

    def test_in_unit_aliases(self):
        for text, delta in (
            ("in 1 min", timedelta(minutes=1)),
            ("in 5 mins", timedelta(minutes=5)),
            ("in 1 minute", timedelta(minutes=1)),
            ("in 2 hours", timedelta(hours=2)),
            ("in 1 hour", timedelta(hours=1)),
            ("in 3 hr", timedelta(hours=3)),
            ("in 4 hrs", timedelta(hours=4)),
        ):
            out = parse_time_expression(text, now=NOW)
            self.assertTrue(out.ok, text)
            self.assertEqual(out.instant, NOW + delta, text)

    def test_in_rejects_zero_and_over_cap(self):
        self.assertFalse(parse_time_expression("in 0 minutes", now=NOW).ok)
        self.assertFalse(parse_time_expression("in 1500 minutes", now=NOW).ok)
        self.assertTrue(parse_time_expression("in 1440 minutes", now=NOW).ok)

    def test_at_rejects_out_of_range_values(self):
        self.assertFalse(parse_time_expression("at 25:00", now=NOW).ok)
        self.assertFalse(parse_time_expression("at 10:75", now=NOW).ok)
        self.assertFalse(parse_time_expression("at 13pm", now=NOW).ok)
        self.assertFalse(parse_time_expression("at 0am", now=NOW).ok)

    def test_at_past_time_rolls_to_tomorrow(self):
        out = parse_time_expression("at 8pm", now=NOW)
        self.assertTrue(out.ok)
        self.assertEqual(out.instant, datetime(2026, 2, 3, 20, 0, tzinfo=timezone.utc))

    def test_at_future_time_stays_today(self):
        out = parse_time_expression("at 22:30", now=NOW)
        self.assertEqual(out.instant, datetime(2026, 2, 2, 22, 30, tzinfo=timezone.utc))

    def test_at_meridiem_edges(self):
        morning = datetime(2026, 2, 2, 6, 0, tzinfo=timezone.utc)
        self.assertEqual(
            parse_time_expression("at 12am", now=morning).instant,
            datetime(2026, 2, 3, 0, 0, tzinfo=timezone.utc),
        )
        self.assertEqual(
            parse_time_expression("at 12pm", now=morning).instant,
            datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc),
        )
        self.assertEqual(
            parse_time_expression("at 7:15 am", now=morning).instant,
            datetime(2026, 2, 2, 7, 15, tzinfo=timezone.utc),
        )

    def test_at_exactly_now_rolls_forward(self):
        out = parse_time_expression("at 21:00", now=NOW)
        self.assertEqual(out.instant, NOW + timedelta(days=1))

    def test_unrecognized_input_fails(self):
        for text in ("", None, "tomorrow", "in a bit", "at noon", "in -5 minutes", "in 5 days"):
            self.assertFalse(parse_time_expression(text, now=NOW).ok, text)

    @unittest.skipIf(NEW_YORK is None, "tz database not available")
    def test_at_rollover_keeps_wall_clock_across_dst_change(self):
        # 2026-03-08 02:00 is the US spring-forward
        evening = datetime(2026, 3, 7, 21, 0, tzinfo=NEW_YORK)
        out = parse_time_expression("at 8pm", now=evening.astimezone(timezone.utc), tz=NEW_YORK)
        self.assertTrue(out.ok)
        self.assertEqual((out.instant.month, out.instant.day, out.instant.hour), (3, 8, 20))
        self.assertEqual(out.instant.utcoffset(), timedelta(hours=-4))

    @unittest.skipIf(NEW_YORK is None, "tz database not available")
    def test_in_offset_is_elapsed_time_across_dst_change(self):
        night = datetime(2026, 3, 8, 1, 0, tzinfo=NEW_YORK)
        out = parse_time_expression("in 2 hours", now=night, tz=NEW_YORK)
        self.assertEqual(out.instant.timestamp() - night.timestamp(), 7200)
        self.assertEqual(out.instant.hour, 4)

    def test_resolve_timezone_falls_back_to_utc(self):
        zone, warning = resolve_timezone("Not/AZone")
        self.assertEqual(zone.key, "UTC")
        self.assertIn("Not/AZone", warning)
        zone, warning = resolve_timezone("")
        self.assertEqual(zone.key, "UTC")
        self.assertIsNone(warning)

    def test_naive_now_is_rejected(self):
        with self.assertRaises(ValueError):
            parse_time_expression("now", now=datetime(2026, 1, 1, 12, 0))


if __name__ == "__main__":
    unittest.main()
