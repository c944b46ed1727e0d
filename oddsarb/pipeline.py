import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from oddsarb.config import Config, Settings
from oddsarb.errors import OddsArbError, RefreshInProgress
from oddsarb.ingest.quotes import DEFAULT_SOURCES, fetch_quotes
from oddsarb.models import Opportunity, RawQuote
from oddsarb.pricing.commission import CommissionModel
from oddsarb.pricing.ranking import rank_opportunities
from oddsarb.pricing.strategies import BONUS, TURNOVER
from oddsarb.storage import init_db, replace_opportunities

logger = logging.getLogger(__name__)

QuoteFetcher = Callable[[Sequence[str], Config, Settings, Optional[datetime]], List[RawQuote]]

_REFRESH_LOCK = threading.Lock()


@dataclass
class RefreshResult:
    opportunities: List[Opportunity] = field(default_factory=list)
    quotes: int = 0
    empty: bool = False
    generated_at: Optional[datetime] = None

    @property
    def count(self) -> int:
        return len(self.opportunities)

    @property
    def message(self) -> str:
        if self.opportunities:
            return f"Successfully refreshed {self.count} opportunities"
        return "Refresh completed but no new opportunities found"


def compute_opportunities(
    quotes: List[RawQuote],
    settings: Settings,
    generated_at: Optional[datetime] = None,
) -> List[Opportunity]:
    commission = CommissionModel.from_settings(settings)
    turnover = TURNOVER.evaluate(quotes, commission)
    bonus = BONUS.evaluate(quotes, commission)
    return rank_opportunities(
        turnover,
        bonus,
        cap=settings.per_bookmaker_cap,
        generated_at=generated_at or datetime.now(timezone.utc),
    )


def run_refresh(
    config: Config,
    settings: Settings,
    sources: Sequence[str] = DEFAULT_SOURCES,
    fetcher: QuoteFetcher = fetch_quotes,
    now: Optional[datetime] = None,
) -> RefreshResult:
    """Ingest, rank and replace the persisted opportunity set.

    Only one refresh runs at a time; an overlapping call raises
    ``RefreshInProgress``. When no usable quotes come back the stored batch is
    left exactly as it was.
    """
    if not _REFRESH_LOCK.acquire(blocking=False):
        raise RefreshInProgress("A refresh is already running")
    try:
        logger.info("Starting opportunities refresh sources=%s", list(sources))
        quotes = fetcher(sources, config, settings, now)
        if not quotes:
            logger.info("No usable quotes collected, keeping previous opportunities")
            return RefreshResult(empty=True)

        opportunities = compute_opportunities(quotes, settings, generated_at=now)
        init_db(config.db_path)
        replace_opportunities(config.db_path, opportunities)
        _log_top(opportunities)
        return RefreshResult(
            opportunities=opportunities,
            quotes=len(quotes),
            generated_at=opportunities[0].generated_at if opportunities else None,
        )
    finally:
        _REFRESH_LOCK.release()


def refresh_response(
    config: Config,
    settings: Settings,
    sources: Sequence[str] = DEFAULT_SOURCES,
    fetcher: QuoteFetcher = fetch_quotes,
) -> Dict[str, object]:
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        result = run_refresh(config, settings, sources=sources, fetcher=fetcher)
    except OddsArbError as exc:
        logger.error("Error refreshing opportunities: %s", exc)
        return {"success": False, "message": str(exc), "count": 0, "timestamp": timestamp}
    logger.info(result.message)
    return {"success": True, "message": result.message, "count": result.count, "timestamp": timestamp}


def _log_top(opportunities: List[Opportunity], limit: int = 10) -> None:
    for index, opp in enumerate(opportunities[:limit], start=1):
        logger.info(
            "Top %d %s: %s vs %s | %s (%.2f) vs %s (%.2f) | profit=%.1f%% strategy=%s",
            index,
            opp.sport,
            opp.team_1,
            opp.team_2,
            opp.bookmaker_1,
            opp.odds_1,
            opp.bookmaker_2,
            opp.odds_2,
            opp.profit * 100,
            opp.bet_strategy.value,
        )
