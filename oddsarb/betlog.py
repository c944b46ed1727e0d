import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from oddsarb.freshness import parse_utc
from oddsarb.models import BetLogEntry, BetStrategy, Opportunity
from oddsarb.pricing.outcome import outcome_for
from oddsarb.storage import insert_bet_log

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "sport",
    "bookmaker_1",
    "odds_1",
    "team_1",
    "bookmaker_2",
    "odds_2",
    "team_2",
    "stake_1",
    "stake_ratio",
    "primary_bookmaker",
    "bet_strategy",
)


def validate_bet_payload(payload: Dict[str, Any]) -> None:
    for name in REQUIRED_FIELDS:
        if payload.get(name) is None:
            raise ValueError(f"Missing required field: {name}")
    if payload["bet_strategy"] not in {s.value for s in BetStrategy}:
        raise ValueError('Invalid bet_strategy. Must be "bonus" or "turnover"')
    for name in ("odds_1", "odds_2", "stake_1", "stake_ratio"):
        try:
            float(payload[name])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Field {name} must be numeric: {payload[name]}") from exc


def opportunity_from_payload(payload: Dict[str, Any], now: Optional[datetime] = None) -> Opportunity:
    validate_bet_payload(payload)
    generated_at = payload.get("generated_at")
    return Opportunity(
        sport=str(payload["sport"]),
        bookmaker_1=str(payload["bookmaker_1"]),
        odds_1=float(payload["odds_1"]),
        team_1=str(payload["team_1"]),
        bookmaker_2=str(payload["bookmaker_2"]),
        odds_2=float(payload["odds_2"]),
        team_2=str(payload["team_2"]),
        stake_ratio=float(payload["stake_ratio"]),
        profit=float(payload.get("profit") or 0.0),
        # Older clients omit the scalar; 1 leaves exchange odds untouched.
        commission_scalar=float(payload.get("commission_scalar") or 1.0),
        primary_bookmaker=str(payload["primary_bookmaker"]),
        bet_strategy=BetStrategy(payload["bet_strategy"]),
        generated_at=parse_utc(generated_at) if generated_at else (now or datetime.now(timezone.utc)),
    )


def build_bet_log(
    opportunity: Opportunity,
    stake: float,
    user_id: str,
    username: str,
    exchange_bookmakers: Iterable[str],
    now: Optional[datetime] = None,
    profit_actual: Optional[float] = None,
) -> BetLogEntry:
    outcome = outcome_for(opportunity, stake, exchange_bookmakers)
    return BetLogEntry(
        bet_id=str(uuid.uuid4()),
        user_id=user_id,
        username=username or "Unknown User",
        sport=opportunity.sport,
        bookmaker_1=opportunity.bookmaker_1,
        odds_1=opportunity.odds_1,
        team_1=opportunity.team_1,
        stake_1=outcome.stake_1,
        bookmaker_2=opportunity.bookmaker_2,
        odds_2=opportunity.odds_2,
        team_2=opportunity.team_2,
        stake_2=outcome.stake_2,
        profit=outcome.profit,
        profit_percentage=outcome.profit_percentage,
        commission_scalar=opportunity.commission_scalar,
        primary_bookmaker=opportunity.primary_bookmaker,
        bet_strategy=opportunity.bet_strategy,
        logged_at=now or datetime.now(timezone.utc),
        profit_actual=profit_actual,
    )


def log_bet(
    db_path: str,
    opportunity: Opportunity,
    stake: float,
    user_id: str,
    username: str,
    exchange_bookmakers: Iterable[str],
    now: Optional[datetime] = None,
) -> BetLogEntry:
    entry = build_bet_log(opportunity, stake, user_id, username, exchange_bookmakers, now=now)
    insert_bet_log(db_path, entry)
    logger.info(
        "Bet logged bet_id=%s user=%s strategy=%s stake_1=%.2f stake_2=%.2f profit=%.2f",
        entry.bet_id,
        entry.user_id,
        entry.bet_strategy.value,
        entry.stake_1,
        entry.stake_2,
        entry.profit,
    )
    return entry
