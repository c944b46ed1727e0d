import unittest

from oddsarb.config import load_settings
from oddsarb.pricing.commission import CommissionModel, apply_commission


class CommissionModelTests(unittest.TestCase):
    def setUp(self) -> None:
        self.model = CommissionModel.from_settings(load_settings())

    def test_sport_specific_scalars(self) -> None:
        self.assertEqual(self.model.scalar("aussierules_afl"), 0.95)
        self.assertEqual(self.model.scalar("rugbyleague_nrl"), 0.90)

    def test_unknown_sport_uses_default(self) -> None:
        self.assertEqual(self.model.scalar("test_sport"), 0.93)
        self.assertEqual(self.model.scalar("basketball_nbl"), 0.93)

    def test_exchange_identity(self) -> None:
        self.assertTrue(self.model.is_exchange("betfair_ex_au"))
        self.assertFalse(self.model.is_exchange("sportsbet"))

    def test_effective_odds_discount_winnings_only(self) -> None:
        self.assertAlmostEqual(self.model.effective_odds(3.0, "betfair_ex_au", "test_sport"), 0.93 * 2.0 + 1)
        self.assertEqual(self.model.effective_odds(3.0, "sportsbet", "test_sport"), 3.0)

    def test_apply_commission_full_scalar_is_identity(self) -> None:
        self.assertAlmostEqual(apply_commission(2.5, 1.0, True), 2.5)

    def test_synthetic_config(self) -> None:
        model = CommissionModel(default=0.8, by_sport={"x": 0.5}, exchange_bookmakers=frozenset({"ex"}))
        self.assertEqual(model.scalar("x"), 0.5)
        self.assertEqual(model.scalar("y"), 0.8)
        self.assertAlmostEqual(model.effective_odds(2.0, "ex", "x"), 1.5)


if __name__ == "__main__":
    unittest.main()
