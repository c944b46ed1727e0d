import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from oddsarb.config import Config, Settings
from oddsarb.errors import SourceUnavailable
from oddsarb.ingest.oddsapi import SOURCE_NAME as ODDSAPI, fetch_oddsapi_quotes
from oddsarb.models import RawQuote

logger = logging.getLogger(__name__)

SourceFetcher = Callable[[Config, Settings, Optional[datetime]], List[RawQuote]]

SOURCES: Dict[str, SourceFetcher] = {
    ODDSAPI: fetch_oddsapi_quotes,
}
DEFAULT_SOURCES = (ODDSAPI,)


def fetch_quotes(
    sources: Sequence[str],
    config: Config,
    settings: Settings,
    now: Optional[datetime] = None,
) -> List[RawQuote]:
    names = [name for name in sources if name in SOURCES]
    unknown = [name for name in sources if name not in SOURCES]
    if unknown:
        logger.warning("Ignoring unknown odds sources: %s", unknown)
    if not names:
        names = list(DEFAULT_SOURCES)

    raw: List[RawQuote] = []
    failed: List[str] = []
    for name in names:
        try:
            collected = SOURCES[name](config, settings, now)
        except SourceUnavailable as exc:
            logger.error("Odds source %s unavailable: %s", name, exc)
            failed.append(name)
            continue
        logger.info("Odds source %s quotes=%d", name, len(collected))
        raw.extend(collected)
    if len(failed) == len(names):
        raise SourceUnavailable(f"All odds sources failed: {', '.join(failed)}")

    quotes = filter_quotes(normalize_quote(quote) for quote in raw)
    logger.info("Quotes usable=%d of fetched=%d", len(quotes), len(raw))
    return quotes


def normalize_quote(quote: RawQuote) -> RawQuote:
    """Put the higher-priced outcome in the team_1 slot."""
    if quote.odds_2 > quote.odds_1:
        return swap_sides(quote)
    return quote


def swap_sides(quote: RawQuote) -> RawQuote:
    return replace(
        quote,
        team_1=quote.team_2,
        team_2=quote.team_1,
        odds_1=quote.odds_2,
        odds_2=quote.odds_1,
    )


def filter_quotes(quotes: Iterable[RawQuote]) -> List[RawQuote]:
    return [quote for quote in quotes if not quote.is_live and quote.within_horizon]
