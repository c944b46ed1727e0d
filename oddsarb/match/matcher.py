import logging
from itertools import product
from typing import Dict, Iterable, List, Tuple

from oddsarb.ingest.quotes import swap_sides
from oddsarb.models import MatchedPair, RawQuote
from oddsarb.pricing.commission import CommissionModel


logger = logging.getLogger(__name__)

QuoteKey = Tuple[str, str, str]


def match_turnover(quotes: Iterable[RawQuote], commission: CommissionModel) -> List[MatchedPair]:
    """Pair quotes in both directions so either bookmaker can lead."""
    valid = _valid_quotes(quotes)
    symmetric = valid + [swap_sides(quote) for quote in valid]
    pairs: List[MatchedPair] = []
    for group in group_quotes(symmetric).values():
        for first, second in product(group, group):
            if first.bookmaker == second.bookmaker:
                continue
            pairs.append(_pair(first, second))
    logger.info("Turnover pairs matched=%d from quotes=%d", len(pairs), len(valid))
    return pairs


def match_bonus(quotes: Iterable[RawQuote], commission: CommissionModel) -> List[MatchedPair]:
    """Pair quotes as listed; the bonus leg may never sit on an exchange."""
    valid = _valid_quotes(quotes)
    pairs: List[MatchedPair] = []
    for group in group_quotes(valid).values():
        for first, second in product(group, group):
            if first.bookmaker == second.bookmaker:
                continue
            if commission.is_exchange(first.bookmaker):
                continue
            pairs.append(_pair(first, second))
    logger.info("Bonus pairs matched=%d from quotes=%d", len(pairs), len(valid))
    return pairs


def group_quotes(quotes: Iterable[RawQuote]) -> Dict[QuoteKey, List[RawQuote]]:
    grouped: Dict[QuoteKey, List[RawQuote]] = {}
    for quote in quotes:
        grouped.setdefault((quote.sport, quote.team_1, quote.team_2), []).append(quote)
    return grouped


def is_valid_quote(quote: RawQuote) -> bool:
    if not quote.bookmaker or not quote.sport:
        return False
    if quote.odds_1 <= 1.0 or quote.odds_2 <= 1.0:
        return False
    return quote.team_1 != quote.team_2


def _valid_quotes(quotes: Iterable[RawQuote]) -> List[RawQuote]:
    valid: List[RawQuote] = []
    rejected = 0
    for quote in quotes:
        if is_valid_quote(quote):
            valid.append(quote)
            continue
        rejected += 1
        logger.debug(
            "Rejecting quote sport=%s bookmaker=%s teams=%s/%s odds=%s/%s",
            quote.sport,
            quote.bookmaker,
            quote.team_1,
            quote.team_2,
            quote.odds_1,
            quote.odds_2,
        )
    if rejected:
        logger.warning("Rejected malformed quotes=%d", rejected)
    return valid


def _pair(first: RawQuote, second: RawQuote) -> MatchedPair:
    return MatchedPair(
        sport=first.sport,
        bookmaker_1=first.bookmaker,
        odds_1=first.odds_1,
        team_1=first.team_1,
        bookmaker_2=second.bookmaker,
        odds_2=second.odds_2,
        team_2=second.team_2,
    )
