import hashlib
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class BetStrategy(str, Enum):
    BONUS = "bonus"
    TURNOVER = "turnover"


@dataclass(frozen=True)
class RawQuote:
    sport: str
    bookmaker: str
    team_1: str
    team_2: str
    odds_1: float
    odds_2: float
    is_live: bool = False
    within_horizon: bool = True
    event_start_time: Optional[datetime] = None
    event_id: Optional[str] = None


@dataclass(frozen=True)
class MatchedPair:
    sport: str
    bookmaker_1: str
    odds_1: float
    team_1: str
    bookmaker_2: str
    odds_2: float
    team_2: str


@dataclass(frozen=True)
class Opportunity:
    sport: str
    bookmaker_1: str
    odds_1: float
    team_1: str
    bookmaker_2: str
    odds_2: float
    team_2: str
    stake_ratio: float
    profit: float
    commission_scalar: float
    primary_bookmaker: str
    bet_strategy: BetStrategy
    generated_at: datetime

    @property
    def opportunity_id(self) -> str:
        # Stable across reads of the same batch; the list index is not part of it.
        data = (
            f"{self.sport}-{self.team_1}-{self.team_2}-{self.bookmaker_1}-{self.bookmaker_2}-"
            f"{self.odds_1:.3f}-{self.odds_2:.3f}-{self.profit:.6f}-"
            f"{self.bet_strategy.value}-{self.primary_bookmaker}-{self.generated_at.isoformat()}"
        )
        return hashlib.sha256(data.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class BetOutcome:
    stake_1: float
    stake_1_outlay: float
    stake_2: float
    effective_odds_1: float
    effective_odds_2: float
    payout_1: float
    payout_2: float
    guaranteed_payout: float
    outlay: float
    profit: float
    profit_percentage: float


@dataclass(frozen=True)
class Freshness:
    age_seconds: int
    is_fresh: bool
    is_stale: bool
    needs_refresh: bool


@dataclass(frozen=True)
class BetLogEntry:
    bet_id: str
    user_id: str
    username: str
    sport: str
    bookmaker_1: str
    odds_1: float
    team_1: str
    stake_1: float
    bookmaker_2: str
    odds_2: float
    team_2: str
    stake_2: float
    profit: float
    profit_percentage: float
    commission_scalar: float
    primary_bookmaker: str
    bet_strategy: BetStrategy
    logged_at: datetime
    profit_actual: Optional[float] = None
