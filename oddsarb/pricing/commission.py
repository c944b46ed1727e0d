from dataclasses import dataclass, field
from typing import Dict, FrozenSet

from oddsarb.config import Settings


@dataclass(frozen=True)
class CommissionModel:
    default: float = 0.93
    by_sport: Dict[str, float] = field(default_factory=dict)
    exchange_bookmakers: FrozenSet[str] = frozenset()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CommissionModel":
        return cls(
            default=settings.commission_default,
            by_sport=dict(settings.commission_by_sport),
            exchange_bookmakers=settings.exchange_bookmakers,
        )

    def scalar(self, sport: str) -> float:
        return self.by_sport.get(sport, self.default)

    def is_exchange(self, bookmaker: str) -> bool:
        return bookmaker in self.exchange_bookmakers

    def effective_odds(self, odds: float, bookmaker: str, sport: str) -> float:
        return apply_commission(odds, self.scalar(sport), self.is_exchange(bookmaker))


def apply_commission(odds: float, scalar: float, is_exchange: bool) -> float:
    # Commission is charged on net winnings only, never on the stake.
    if not is_exchange:
        return odds
    return scalar * (odds - 1) + 1
