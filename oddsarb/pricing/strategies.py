import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from oddsarb.errors import CalculationError
from oddsarb.match.matcher import match_bonus, match_turnover
from oddsarb.models import BetStrategy, MatchedPair, RawQuote
from oddsarb.pricing.commission import CommissionModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyResult:
    pair: MatchedPair
    strategy: BetStrategy
    stake_1: float
    stake_ratio: float
    recovery: float
    commission_scalar: float
    primary_bookmaker: Optional[str]


def turnover_recovery(pair: MatchedPair, commission: CommissionModel) -> StrategyResult:
    _check_pair(pair)
    scalar = commission.scalar(pair.sport)
    exchange_odds_2 = scalar * (pair.odds_2 - 1) + 1
    stake_ratio_plain = pair.odds_1 / pair.odds_2
    stake_ratio_bf = pair.odds_1 / exchange_odds_2
    stake_1_bf = 1 / exchange_odds_2
    stake_1 = stake_1_bf if commission.is_exchange(pair.bookmaker_1) else 1.0
    stake_2 = stake_ratio_bf if commission.is_exchange(pair.bookmaker_2) else stake_ratio_plain
    return StrategyResult(
        pair=pair,
        strategy=BetStrategy.TURNOVER,
        stake_1=stake_1,
        stake_ratio=stake_2,
        recovery=pair.odds_1 - (1 + stake_2),
        commission_scalar=scalar,
        primary_bookmaker=_turnover_primary(pair, commission),
    )


def bonus_recovery(pair: MatchedPair, commission: CommissionModel) -> StrategyResult:
    _check_pair(pair)
    if commission.is_exchange(pair.bookmaker_1):
        raise CalculationError(f"Bonus leg cannot be placed on exchange {pair.bookmaker_1}")
    scalar = commission.scalar(pair.sport)
    stake_2_plain = (pair.odds_1 - 1) / pair.odds_2
    stake_2_bf = (pair.odds_1 - 1) / (scalar * (pair.odds_2 - 1) + 1)
    stake_2 = stake_2_bf if commission.is_exchange(pair.bookmaker_2) else stake_2_plain
    return StrategyResult(
        pair=pair,
        strategy=BetStrategy.BONUS,
        stake_1=1.0,
        stake_ratio=stake_2,
        recovery=(pair.odds_1 - 1) - stake_2,
        commission_scalar=scalar,
        primary_bookmaker=pair.bookmaker_1,
    )


@dataclass(frozen=True)
class Strategy:
    kind: BetStrategy
    match: Callable[[Iterable[RawQuote], CommissionModel], List[MatchedPair]]
    calculate: Callable[[MatchedPair, CommissionModel], StrategyResult]

    def evaluate(self, quotes: List[RawQuote], commission: CommissionModel) -> List[StrategyResult]:
        results: List[StrategyResult] = []
        for pair in self.match(quotes, commission):
            try:
                results.append(self.calculate(pair, commission))
            except CalculationError as exc:
                logger.warning("Skipping %s pair: %s", self.kind.value, exc)
        return results


TURNOVER = Strategy(kind=BetStrategy.TURNOVER, match=match_turnover, calculate=turnover_recovery)
BONUS = Strategy(kind=BetStrategy.BONUS, match=match_bonus, calculate=bonus_recovery)

STRATEGIES: Dict[BetStrategy, Strategy] = {
    BetStrategy.TURNOVER: TURNOVER,
    BetStrategy.BONUS: BONUS,
}


def _turnover_primary(pair: MatchedPair, commission: CommissionModel) -> Optional[str]:
    if not commission.is_exchange(pair.bookmaker_1):
        return pair.bookmaker_1
    if not commission.is_exchange(pair.bookmaker_2):
        return pair.bookmaker_2
    return None


def _check_pair(pair: MatchedPair) -> None:
    if pair.bookmaker_1 == pair.bookmaker_2:
        raise CalculationError(f"Pair uses one bookmaker twice: {pair.bookmaker_1}")
    if pair.odds_1 <= 1.0 or pair.odds_2 <= 1.0:
        raise CalculationError(f"Odds must exceed 1.0: {pair.odds_1}/{pair.odds_2}")
    if pair.team_1 == pair.team_2:
        raise CalculationError(f"Pair has identical teams: {pair.team_1}")
