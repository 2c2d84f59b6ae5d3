from __future__ import annotations

import unittest
from datetime import datetime
from datetime import timedelta
from datetime import timezone

from misc.discord_timestamps import format_discord_timestamp
from misc.discord_timestamps import timestamp_tag_or_unknown


class DiscordTimestampHelperTests(unittest.TestCase):
    def test_format_discord_timestamp_uses_epoch_seconds(self):
        dt = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)
        self.assertEqual(format_discord_timestamp(dt, "F"), f"<t:{int(dt.timestamp())}:F>")

    def test_offset_datetimes_keep_their_instant(self):
        utc = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)
        shifted = utc.astimezone(timezone(timedelta(hours=-5)))
        self.assertEqual(format_discord_timestamp(utc), format_discord_timestamp(shifted))

    def test_naive_datetime_is_treated_as_utc(self):
        naive = datetime(2026, 2, 2, 12, 0)
        aware = naive.replace(tzinfo=timezone.utc)
        self.assertEqual(format_discord_timestamp(naive, "R"), format_discord_timestamp(aware, "R"))

    def test_default_and_invalid_styles(self):
        dt = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)
        self.assertTrue(format_discord_timestamp(dt).endswith(":f>"))
        with self.assertRaises(ValueError):
            format_discord_timestamp(dt, "Q")
        with self.assertRaises(ValueError):
            format_discord_timestamp("2026-02-02", "F")

    def test_missing_datetime_renders_unknown(self):
        self.assertEqual(timestamp_tag_or_unknown(None), "Unknown")


if __name__ == "__main__":
    unittest.main()
