import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from oddsarb.config import Config, Settings
from oddsarb.errors import PartialFetchFailure, SourceUnavailable
from oddsarb.http_client import get_json
from oddsarb.models import RawQuote

logger = logging.getLogger(__name__)

SOURCE_NAME = "oddsapi"


class OddsApiSource:
    def __init__(self, config: Config, horizon_days: int = 7) -> None:
        if not config.odds_api_key:
            raise SourceUnavailable("ODDS_API_KEY not configured")
        self.config = config
        self.horizon = timedelta(days=horizon_days)

    def list_sports(self) -> List[str]:
        data, status = self._get("/sports")
        if status != 200 or not isinstance(data, list):
            raise SourceUnavailable(f"Odds API sports listing failed status={status}")
        return [str(item["key"]) for item in data if isinstance(item, dict) and item.get("key")]

    def list_quotes(
        self,
        sport: str,
        region: str,
        market: str = "h2h",
        now: Optional[datetime] = None,
    ) -> List[RawQuote]:
        now = now or datetime.now(timezone.utc)
        params: Dict[str, object] = {
            "regions": region,
            "markets": market,
            "oddsFormat": "decimal",
        }
        if self.config.odds_api_bookmakers:
            params["bookmakers"] = self.config.odds_api_bookmakers
        data, status = self._get(f"/sports/{sport}/odds", params=params)
        if status != 200 or not isinstance(data, list):
            raise PartialFetchFailure(f"Odds API odds request failed sport={sport} status={status}")
        quotes: List[RawQuote] = []
        for event in data:
            if isinstance(event, dict):
                quotes.extend(_event_quotes(sport, event, market, now, self.horizon))
        logger.info("Odds API events sport=%s events=%d quotes=%d", sport, len(data), len(quotes))
        return quotes

    def _get(self, path: str, params: Optional[Dict[str, object]] = None):
        url = self.config.odds_api_base_url.rstrip("/") + path
        query: Dict[str, object] = {"apiKey": self.config.odds_api_key}
        if params:
            query.update(params)
        return get_json(
            url,
            params=query,
            timeout=self.config.http_timeout_seconds,
            retries=self.config.http_retries,
        )


def fetch_oddsapi_quotes(
    config: Config,
    settings: Settings,
    now: Optional[datetime] = None,
) -> List[RawQuote]:
    source = OddsApiSource(config, horizon_days=settings.horizon_days)
    available = source.list_sports()
    sports = [sport for sport in available if sport in settings.supported_sports]
    logger.info("Odds API sports available=%d supported=%d", len(available), len(sports))

    quotes: List[RawQuote] = []
    for index, sport in enumerate(sports):
        if index and config.request_pause_seconds > 0:
            time.sleep(config.request_pause_seconds)
        try:
            quotes.extend(source.list_quotes(sport, config.odds_api_region, now=now))
        except PartialFetchFailure as exc:
            logger.warning("Skipping sport after fetch failure: %s", exc)
            continue
    logger.info("Odds API quotes collected total=%d", len(quotes))
    return quotes


def _event_quotes(
    sport: str,
    event: Dict[str, object],
    market_key: str,
    now: datetime,
    horizon: timedelta,
) -> Iterable[RawQuote]:
    start = _parse_time(event.get("commence_time"))
    within_horizon = start is not None and start - now <= horizon
    # The odds endpoint also returns events that have already started.
    is_live = bool(event.get("in_play")) or (start is not None and start <= now)
    event_id = str(event.get("id") or "") or None
    for bookmaker in event.get("bookmakers") or []:
        if not isinstance(bookmaker, dict) or not bookmaker.get("key"):
            continue
        for market in bookmaker.get("markets") or []:
            if not isinstance(market, dict) or market.get("key") != market_key:
                continue
            outcomes = market.get("outcomes") or []
            # Draw-capable markets come back with three outcomes.
            if len(outcomes) != 2:
                continue
            try:
                first, second = outcomes
                odds_1 = float(first["price"])
                odds_2 = float(second["price"])
                team_1 = str(first["name"])
                team_2 = str(second["name"])
            except (KeyError, TypeError, ValueError):
                logger.debug("Malformed outcomes event=%s bookmaker=%s", event_id, bookmaker.get("key"))
                continue
            yield RawQuote(
                sport=sport,
                bookmaker=str(bookmaker["key"]),
                team_1=team_1,
                team_2=team_2,
                odds_1=odds_1,
                odds_2=odds_2,
                is_live=is_live,
                within_horizon=within_horizon,
                event_start_time=start,
                event_id=event_id,
            )


def _parse_time(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
