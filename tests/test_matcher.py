import unittest

from oddsarb.match.matcher import group_quotes, is_valid_quote, match_bonus, match_turnover
from oddsarb.models import RawQuote
from oddsarb.pricing.commission import CommissionModel


COMMISSION = CommissionModel(default=0.93, exchange_bookmakers=frozenset({"betfair_ex_au"}))


def _quote(bookmaker, team_1, team_2, odds_1, odds_2, sport="aussierules_afl"):
    return RawQuote(sport, bookmaker, team_1, team_2, odds_1, odds_2)


class TurnoverMatchTests(unittest.TestCase):
    def test_pairs_across_orientations(self) -> None:
        quotes = [
            _quote("bookie_a", "X", "Y", 2.10, 1.95),
            _quote("bookie_b", "Y", "X", 2.05, 1.90),
        ]
        pairs = match_turnover(quotes, COMMISSION)
        keys = {(p.bookmaker_1, p.team_1, p.odds_1, p.bookmaker_2, p.team_2, p.odds_2) for p in pairs}
        self.assertIn(("bookie_a", "X", 2.10, "bookie_b", "Y", 2.05), keys)
        self.assertIn(("bookie_b", "Y", 2.05, "bookie_a", "X", 2.10), keys)
        self.assertEqual(len(pairs), 4)

    def test_same_bookmaker_never_paired(self) -> None:
        quotes = [
            _quote("bookie_a", "X", "Y", 2.10, 1.95),
            _quote("bookie_a", "X", "Y", 2.20, 1.85),
        ]
        self.assertEqual(match_turnover(quotes, COMMISSION), [])

    def test_exchange_allowed_on_either_leg(self) -> None:
        quotes = [
            _quote("betfair_ex_au", "X", "Y", 2.10, 1.95),
            _quote("bookie_b", "X", "Y", 2.00, 2.00),
        ]
        first_legs = {p.bookmaker_1 for p in match_turnover(quotes, COMMISSION)}
        self.assertEqual(first_legs, {"betfair_ex_au", "bookie_b"})

    def test_different_sports_not_grouped(self) -> None:
        quotes = [
            _quote("bookie_a", "X", "Y", 2.10, 1.95),
            _quote("bookie_b", "X", "Y", 2.00, 1.90, sport="rugbyleague_nrl"),
        ]
        self.assertEqual(match_turnover(quotes, COMMISSION), [])


class BonusMatchTests(unittest.TestCase):
    def test_no_mirroring(self) -> None:
        quotes = [
            _quote("bookie_a", "X", "Y", 3.50, 1.30),
            _quote("bookie_b", "Y", "X", 2.80, 1.42),
        ]
        self.assertEqual(match_bonus(quotes, COMMISSION), [])

    def test_ordered_pairs_within_group(self) -> None:
        quotes = [
            _quote("bookie_a", "X", "Y", 3.50, 1.30),
            _quote("bookie_b", "X", "Y", 2.80, 1.42),
        ]
        pairs = match_bonus(quotes, COMMISSION)
        self.assertEqual(len(pairs), 2)
        first = next(p for p in pairs if p.bookmaker_1 == "bookie_a")
        self.assertEqual((first.odds_1, first.team_1), (3.50, "X"))
        self.assertEqual((first.odds_2, first.team_2), (1.42, "Y"))

    def test_exchange_excluded_as_bonus_leg_only(self) -> None:
        quotes = [
            _quote("betfair_ex_au", "X", "Y", 3.50, 1.30),
            _quote("bookie_b", "X", "Y", 2.80, 1.42),
        ]
        pairs = match_bonus(quotes, COMMISSION)
        self.assertEqual(len(pairs), 1)
        self.assertEqual(pairs[0].bookmaker_1, "bookie_b")
        self.assertEqual(pairs[0].bookmaker_2, "betfair_ex_au")


class QuoteValidationTests(unittest.TestCase):
    def test_rejects_malformed(self) -> None:
        self.assertFalse(is_valid_quote(_quote("b", "X", "Y", 1.0, 2.0)))
        self.assertFalse(is_valid_quote(_quote("b", "X", "X", 2.0, 2.0)))
        self.assertFalse(is_valid_quote(_quote("", "X", "Y", 2.0, 2.0)))
        self.assertFalse(is_valid_quote(_quote("b", "X", "Y", 2.0, 2.0, sport="")))
        self.assertTrue(is_valid_quote(_quote("b", "X", "Y", 2.0, 1.5)))

    def test_malformed_quotes_skipped_in_matching(self) -> None:
        quotes = [
            _quote("bookie_a", "X", "Y", 2.10, 1.95),
            _quote("bookie_b", "X", "Y", 0.0, 1.90),
        ]
        self.assertEqual(match_turnover(quotes, COMMISSION), [])
        self.assertEqual(match_bonus(quotes, COMMISSION), [])

    def test_group_key_is_sport_and_teams(self) -> None:
        quotes = [
            _quote("a", "X", "Y", 2.0, 1.8),
            _quote("b", "X", "Y", 2.1, 1.7),
            _quote("c", "Y", "X", 2.1, 1.7),
        ]
        grouped = group_quotes(quotes)
        self.assertEqual(len(grouped[("aussierules_afl", "X", "Y")]), 2)
        self.assertEqual(len(grouped[("aussierules_afl", "Y", "X")]), 1)


if __name__ == "__main__":
    unittest.main()
