from typing import Iterable, Union

from oddsarb.models import BetOutcome, BetStrategy, Opportunity
from oddsarb.pricing.commission import apply_commission


def compute_outcome(
    stake_1: float,
    odds_1: float,
    odds_2: float,
    stake_ratio: float,
    commission_scalar: float,
    strategy: Union[BetStrategy, str],
    bookmaker_1: str,
    bookmaker_2: str,
    exchange_bookmakers: Iterable[str],
) -> BetOutcome:
    """All money math for a two-leg bet.

    ``stake_1`` is the nominal first-leg stake in dollars. For bonus bets it is
    bonus credit: it costs nothing and only its winnings are paid out.
    ``stake_ratio`` and ``commission_scalar`` come straight from the stored
    opportunity, so display and bet logging can only differ by ``stake_1``.
    """
    if stake_1 <= 0:
        raise ValueError(f"stake_1 must be positive: {stake_1}")
    is_bonus = BetStrategy(strategy) is BetStrategy.BONUS
    exchanges = set(exchange_bookmakers)

    stake_1_outlay = 0.0 if is_bonus else stake_1
    stake_2 = stake_1 * stake_ratio

    effective_odds_1 = apply_commission(odds_1, commission_scalar, bookmaker_1 in exchanges)
    effective_odds_2 = apply_commission(odds_2, commission_scalar, bookmaker_2 in exchanges)

    payout_1 = stake_1 * (effective_odds_1 - 1 if is_bonus else effective_odds_1)
    payout_2 = stake_2 * effective_odds_2

    outlay = stake_1_outlay + stake_2
    guaranteed_payout = min(payout_1, payout_2)
    profit = guaranteed_payout - outlay
    return BetOutcome(
        stake_1=stake_1,
        stake_1_outlay=stake_1_outlay,
        stake_2=stake_2,
        effective_odds_1=effective_odds_1,
        effective_odds_2=effective_odds_2,
        payout_1=payout_1,
        payout_2=payout_2,
        guaranteed_payout=guaranteed_payout,
        outlay=outlay,
        profit=profit,
        profit_percentage=profit / stake_1 * 100,
    )


def outcome_for(
    opportunity: Opportunity,
    stake: float,
    exchange_bookmakers: Iterable[str],
) -> BetOutcome:
    return compute_outcome(
        stake_1=stake,
        odds_1=opportunity.odds_1,
        odds_2=opportunity.odds_2,
        stake_ratio=opportunity.stake_ratio,
        commission_scalar=opportunity.commission_scalar,
        strategy=opportunity.bet_strategy,
        bookmaker_1=opportunity.bookmaker_1,
        bookmaker_2=opportunity.bookmaker_2,
        exchange_bookmakers=exchange_bookmakers,
    )
