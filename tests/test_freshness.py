import unittest
from datetime import datetime, timedelta, timezone

from oddsarb.freshness import classify, format_age, freshness_label, parse_utc


GENERATED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class ClassifyTests(unittest.TestCase):
    def test_threshold_boundary(self) -> None:
        at_start = classify(GENERATED_AT, now=GENERATED_AT)
        self.assertEqual(at_start.age_seconds, 0)
        self.assertTrue(at_start.is_fresh)

        at_threshold = classify(GENERATED_AT, now=GENERATED_AT + timedelta(seconds=60))
        self.assertTrue(at_threshold.is_fresh)
        self.assertFalse(at_threshold.needs_refresh)

        past = classify(GENERATED_AT, now=GENERATED_AT + timedelta(seconds=61))
        self.assertTrue(past.is_stale)
        self.assertTrue(past.needs_refresh)
        self.assertFalse(past.is_fresh)

    def test_age_is_floored(self) -> None:
        freshness = classify(GENERATED_AT, now=GENERATED_AT + timedelta(seconds=60, milliseconds=900))
        self.assertEqual(freshness.age_seconds, 60)
        self.assertTrue(freshness.is_fresh)

    def test_naive_string_is_utc(self) -> None:
        freshness = classify("2026-03-01T12:00:00", now="2026-03-01T12:00:30Z")
        self.assertEqual(freshness.age_seconds, 30)

    def test_custom_threshold(self) -> None:
        freshness = classify(GENERATED_AT, now=GENERATED_AT + timedelta(seconds=20), threshold_seconds=10)
        self.assertTrue(freshness.is_stale)


class ParseUtcTests(unittest.TestCase):
    def test_offsets_normalized(self) -> None:
        self.assertEqual(parse_utc("2026-03-01T23:00:00+11:00"), GENERATED_AT)
        self.assertEqual(parse_utc("2026-03-01T12:00:00Z"), GENERATED_AT)
        self.assertEqual(parse_utc(datetime(2026, 3, 1, 12, 0)), GENERATED_AT)


class FormatTests(unittest.TestCase):
    def test_format_age(self) -> None:
        self.assertEqual(format_age(45), "45s ago")
        self.assertEqual(format_age(125), "2m ago")
        self.assertEqual(format_age(7300), "2h ago")

    def test_labels(self) -> None:
        fresh = classify(GENERATED_AT, now=GENERATED_AT + timedelta(seconds=5))
        stale = classify(GENERATED_AT, now=GENERATED_AT + timedelta(minutes=5))
        self.assertEqual(freshness_label(fresh), "Fresh (5s ago)")
        self.assertEqual(freshness_label(stale), "Needs refresh (5m ago)")


if __name__ == "__main__":
    unittest.main()
