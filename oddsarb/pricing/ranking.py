import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from oddsarb.models import Opportunity
from oddsarb.pricing.strategies import StrategyResult

logger = logging.getLogger(__name__)

PER_BOOKMAKER_CAP = 25


def round4(value: float) -> float:
    return round(value, 4)


def rank_and_cap(results: Iterable[StrategyResult], cap: int = PER_BOOKMAKER_CAP) -> List[StrategyResult]:
    """Best ``cap`` results per primary bookmaker, best first overall."""
    ordered = sorted(results, key=lambda r: r.recovery, reverse=True)
    groups: Dict[str, List[StrategyResult]] = {}
    dropped = 0
    for result in ordered:
        if result.primary_bookmaker is None:
            dropped += 1
            continue
        group = groups.setdefault(result.primary_bookmaker, [])
        if len(group) < cap:
            group.append(result)
    if dropped:
        logger.debug("Dropped results with no primary bookmaker=%d", dropped)
    capped = [result for group in groups.values() for result in group]
    capped.sort(key=lambda r: r.recovery, reverse=True)
    return capped


def build_batch(
    results: Iterable[StrategyResult],
    generated_at: datetime,
    cap: int = PER_BOOKMAKER_CAP,
) -> List[Opportunity]:
    return [_to_opportunity(result, generated_at) for result in rank_and_cap(results, cap)]


def merge_batches(*batches: List[Opportunity]) -> List[Opportunity]:
    combined = [opp for batch in batches for opp in batch]
    combined.sort(key=lambda opp: opp.profit, reverse=True)
    return combined


def rank_opportunities(
    turnover: Iterable[StrategyResult],
    bonus: Iterable[StrategyResult],
    cap: int = PER_BOOKMAKER_CAP,
    generated_at: Optional[datetime] = None,
) -> List[Opportunity]:
    generated_at = generated_at or datetime.now(timezone.utc)
    turnover_batch = build_batch(turnover, generated_at, cap)
    bonus_batch = build_batch(bonus, generated_at, cap)
    logger.info("Ranked turnover=%d bonus=%d", len(turnover_batch), len(bonus_batch))
    return merge_batches(turnover_batch, bonus_batch)


def _to_opportunity(result: StrategyResult, generated_at: datetime) -> Opportunity:
    pair = result.pair
    return Opportunity(
        sport=pair.sport,
        bookmaker_1=pair.bookmaker_1,
        odds_1=pair.odds_1,
        team_1=pair.team_1,
        bookmaker_2=pair.bookmaker_2,
        odds_2=pair.odds_2,
        team_2=pair.team_2,
        stake_ratio=round4(result.stake_ratio),
        profit=round4(result.recovery),
        commission_scalar=round4(result.commission_scalar),
        primary_bookmaker=str(result.primary_bookmaker),
        bet_strategy=result.strategy,
        generated_at=generated_at,
    )
