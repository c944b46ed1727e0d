import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from oddsarb import pipeline
from oddsarb.config import Config, load_settings
from oddsarb.errors import PersistenceFailure, RefreshInProgress, SourceUnavailable
from oddsarb.models import BetStrategy, RawQuote
from oddsarb.pipeline import compute_opportunities, refresh_response, run_refresh
from oddsarb.storage import fetch_opportunities, latest_generated_at


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

QUOTES = [
    RawQuote("aussierules_afl", "bookie_a", "X", "Y", 2.10, 1.95),
    RawQuote("aussierules_afl", "bookie_b", "Y", "X", 2.05, 1.90),
    RawQuote("rugbyleague_nrl", "bookie_a", "P", "Q", 3.50, 1.30),
    RawQuote("rugbyleague_nrl", "bookie_b", "P", "Q", 2.80, 1.42),
]


def _fetcher(quotes):
    def fetch(sources, config, settings, now):
        return list(quotes)

    return fetch


def _failing_fetcher(sources, config, settings, now):
    raise SourceUnavailable("All odds sources failed: oddsapi")


class PipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.config = Config(db_path=os.path.join(tmpdir.name, "oddsarb.db"))
        self.settings = load_settings()

    def test_refresh_persists_both_strategies(self) -> None:
        result = run_refresh(self.config, self.settings, fetcher=_fetcher(QUOTES), now=NOW)
        self.assertFalse(result.empty)
        self.assertEqual(result.quotes, 4)
        self.assertEqual(result.generated_at, NOW)
        self.assertEqual(result.message, f"Successfully refreshed {result.count} opportunities")

        stored = fetch_opportunities(self.config.db_path)
        self.assertEqual(len(stored), result.count)
        turnover = [o for o in stored if o.bet_strategy is BetStrategy.TURNOVER and o.primary_bookmaker == "bookie_a"]
        best = max(turnover, key=lambda o: o.profit)
        self.assertEqual((best.odds_1, best.odds_2, best.stake_ratio, best.profit), (2.10, 2.05, 1.0244, 0.0756))
        self.assertEqual(best.commission_scalar, 0.95)

        bonus = [o for o in stored if o.bet_strategy is BetStrategy.BONUS]
        best_bonus = max(bonus, key=lambda o: o.profit)
        self.assertEqual((best_bonus.stake_ratio, best_bonus.profit), (1.7606, 0.7394))
        self.assertEqual(best_bonus.commission_scalar, 0.90)
        self.assertEqual({o.generated_at for o in stored}, {NOW})
        self.assertEqual([o.profit for o in stored], sorted((o.profit for o in stored), reverse=True))

    def test_empty_batch_keeps_previous_set(self) -> None:
        run_refresh(self.config, self.settings, fetcher=_fetcher(QUOTES), now=NOW)
        before = fetch_opportunities(self.config.db_path)

        result = run_refresh(
            self.config,
            self.settings,
            fetcher=_fetcher([]),
            now=NOW + timedelta(minutes=5),
        )
        self.assertTrue(result.empty)
        self.assertEqual(result.message, "Refresh completed but no new opportunities found")
        self.assertEqual(fetch_opportunities(self.config.db_path), before)
        self.assertEqual(latest_generated_at(self.config.db_path), NOW)

    def test_overlapping_refresh_rejected(self) -> None:
        self.assertTrue(pipeline._REFRESH_LOCK.acquire(blocking=False))
        try:
            with self.assertRaises(RefreshInProgress):
                run_refresh(self.config, self.settings, fetcher=_fetcher(QUOTES), now=NOW)
            response = refresh_response(self.config, self.settings, fetcher=_fetcher(QUOTES))
            self.assertFalse(response["success"])
        finally:
            pipeline._REFRESH_LOCK.release()
        self.assertFalse(os.path.exists(self.config.db_path))

    def test_lock_released_after_failure(self) -> None:
        with self.assertRaises(SourceUnavailable):
            run_refresh(self.config, self.settings, fetcher=_failing_fetcher, now=NOW)
        result = run_refresh(self.config, self.settings, fetcher=_fetcher(QUOTES), now=NOW)
        self.assertGreater(result.count, 0)

    def test_persistence_failure_reported(self) -> None:
        with patch("oddsarb.pipeline.replace_opportunities", side_effect=PersistenceFailure("disk full")):
            with self.assertRaises(PersistenceFailure):
                run_refresh(self.config, self.settings, fetcher=_fetcher(QUOTES), now=NOW)
            response = refresh_response(self.config, self.settings, fetcher=_fetcher(QUOTES))
        self.assertFalse(response["success"])
        self.assertEqual(response["message"], "disk full")

    def test_refresh_response_envelopes(self) -> None:
        ok = refresh_response(self.config, self.settings, fetcher=_fetcher(QUOTES))
        self.assertTrue(ok["success"])
        self.assertGreater(ok["count"], 0)
        self.assertIn("timestamp", ok)

        failed = refresh_response(self.config, self.settings, fetcher=_failing_fetcher)
        self.assertEqual(
            failed,
            {
                "success": False,
                "message": "All odds sources failed: oddsapi",
                "count": 0,
                "timestamp": failed["timestamp"],
            },
        )

    def test_compute_opportunities_without_persistence(self) -> None:
        opportunities = compute_opportunities(QUOTES, self.settings, generated_at=NOW)
        self.assertTrue(opportunities)
        self.assertTrue(all(o.profit == round(o.profit, 4) for o in opportunities))


if __name__ == "__main__":
    unittest.main()
