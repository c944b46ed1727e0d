from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from zoneinfo import ZoneInfo

from oddsarb.freshness import FRESHNESS_THRESHOLD_SECONDS, Timestamp, classify, parse_utc
from oddsarb.models import BetStrategy, Opportunity
from oddsarb.pricing.outcome import outcome_for
from oddsarb.storage import fetch_opportunities, latest_generated_at

DISPLAY_TIMEZONE = ZoneInfo("Australia/Sydney")


def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_percentage(percentage: float) -> str:
    return f"{percentage:.2f}%"


def format_local_time(timestamp: Timestamp, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    return parse_utc(timestamp).astimezone(DISPLAY_TIMEZONE).strftime(fmt)


def transform_opportunity(
    opportunity: Opportunity,
    stake: float,
    exchange_bookmakers: Iterable[str],
) -> Dict[str, Any]:
    outcome = outcome_for(opportunity, stake, exchange_bookmakers)
    return {
        "id": opportunity.opportunity_id,
        "sport": opportunity.sport,
        "team_1": opportunity.team_1,
        "team_2": opportunity.team_2,
        "bookmaker_1": opportunity.bookmaker_1,
        "bookmaker_2": opportunity.bookmaker_2,
        "odds_1": opportunity.odds_1,
        "odds_2": opportunity.odds_2,
        "stake_ratio": opportunity.stake_ratio,
        "profit": opportunity.profit,
        "profit_percentage": opportunity.profit * 100,
        "profit_amount": format_currency(opportunity.profit * stake),
        "commission_scalar": opportunity.commission_scalar,
        "primary_bookmaker": opportunity.primary_bookmaker,
        "bet_strategy": opportunity.bet_strategy.value,
        "generated_at": opportunity.generated_at.isoformat(),
        "calculated_stake_1": outcome.stake_1,
        "calculated_stake_2": outcome.stake_2,
        "calculated_profit": outcome.profit,
        "calculated_profit_amount": format_currency(outcome.profit),
    }


def filter_opportunities(
    opportunities: Iterable[Opportunity],
    bet_strategy: Optional[Union[BetStrategy, str]] = None,
    bookmaker: Optional[str] = None,
    sport: Optional[str] = None,
    min_profit: Optional[float] = None,
) -> List[Opportunity]:
    strategy = BetStrategy(bet_strategy) if bet_strategy and bet_strategy != "all" else None
    needle = bookmaker.lower() if bookmaker and bookmaker != "all" else None
    selected: List[Opportunity] = []
    for opp in opportunities:
        if strategy and opp.bet_strategy is not strategy:
            continue
        if needle and needle not in opp.bookmaker_1.lower() and needle not in opp.bookmaker_2.lower():
            continue
        if sport and sport != "all" and opp.sport != sport:
            continue
        if min_profit and opp.profit < min_profit:
            continue
        selected.append(opp)
    return selected


def unique_bookmakers(opportunities: Iterable[Opportunity]) -> List[str]:
    names = set()
    for opp in opportunities:
        names.add(opp.bookmaker_1)
        names.add(opp.bookmaker_2)
    return sorted(names)


def unique_sports(opportunities: Iterable[Opportunity]) -> List[str]:
    return sorted({opp.sport for opp in opportunities})


def opportunities_snapshot(
    db_path: str,
    bet_strategy: Optional[Union[BetStrategy, str]] = None,
    bookmaker: Optional[str] = None,
    now: Optional[datetime] = None,
    threshold_seconds: int = FRESHNESS_THRESHOLD_SECONDS,
) -> Dict[str, Any]:
    opportunities = fetch_opportunities(db_path, bet_strategy=bet_strategy, bookmaker=bookmaker)
    last_updated = latest_generated_at(db_path)
    snapshot: Dict[str, Any] = {
        "opportunities": opportunities,
        "count": len(opportunities),
        "last_updated": last_updated.isoformat() if last_updated else None,
        "age_seconds": None,
        "is_fresh": False,
        "is_stale": True,
        "needs_refresh": True,
        "freshness_threshold": threshold_seconds,
    }
    if last_updated is not None:
        freshness = classify(last_updated, now=now, threshold_seconds=threshold_seconds)
        snapshot.update(
            age_seconds=freshness.age_seconds,
            is_fresh=freshness.is_fresh,
            is_stale=freshness.is_stale,
            needs_refresh=freshness.needs_refresh,
        )
    return snapshot
