from __future__ import annotations

import unittest
from datetime import datetime, timezone

from goalwatch.resolution.retention import purge_expired_predictions, seconds_until_next_run


class _RecordingStore:
    def __init__(self) -> None:
        self.cutoffs: list[datetime] = []

    def purge_created_before(self, cutoff: datetime) -> int:
        self.cutoffs.append(cutoff)
        return 3


class PurgeExpiredPredictionsTests(unittest.TestCase):
    def test_cutoff_is_retention_days_back(self) -> None:
        store = _RecordingStore()
        now = datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)

        deleted = purge_expired_predictions(store, 2, now=now)

        self.assertEqual(3, deleted)
        self.assertEqual([datetime(2026, 10, 15, 3, 0, tzinfo=timezone.utc)], store.cutoffs)

    def test_retention_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            purge_expired_predictions(_RecordingStore(), 0)


class SecondsUntilNextRunTests(unittest.TestCase):
    def test_later_today(self) -> None:
        now = datetime(2026, 10, 17, 2, 0, tzinfo=timezone.utc)

        self.assertEqual(3600, seconds_until_next_run(now, hour_utc=3))

    def test_exactly_on_the_hour_waits_a_day(self) -> None:
        now = datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)

        self.assertEqual(86400, seconds_until_next_run(now, hour_utc=3))

    def test_after_the_hour_rolls_to_tomorrow(self) -> None:
        now = datetime(2026, 10, 17, 22, 30, tzinfo=timezone.utc)

        self.assertEqual(4.5 * 3600, seconds_until_next_run(now, hour_utc=3))


if __name__ == "__main__":
    unittest.main()
