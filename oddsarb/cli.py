import argparse
import json
import logging
import time
from dataclasses import asdict
from typing import Optional

from oddsarb.betlog import log_bet, opportunity_from_payload
from oddsarb.config import Config, Settings, load_config, load_settings
from oddsarb.freshness import classify, freshness_label
from oddsarb.ingest.quotes import DEFAULT_SOURCES, SOURCES
from oddsarb.models import BetStrategy, Opportunity
from oddsarb.pipeline import refresh_response
from oddsarb.pricing.outcome import compute_outcome
from oddsarb.storage import (
    delete_bet_log,
    fetch_bet_logs,
    fetch_opportunities,
    init_db,
    latest_generated_at,
    record_actual_profit,
)
from oddsarb.views import format_currency, format_local_time, format_percentage, transform_opportunity


logger = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    parser = argparse.ArgumentParser(prog="oddsarb")
    sub = parser.add_subparsers(dest="cmd", required=True)

    refresh_parser = sub.add_parser("refresh", help="Fetch odds and replace the opportunity set")
    refresh_parser.add_argument(
        "--source",
        action="append",
        choices=sorted(SOURCES),
        help="Odds source to pull from (repeatable)",
    )

    run_parser = sub.add_parser("run", help="Refresh on an interval")
    run_parser.add_argument("--interval-seconds", type=int, default=300, help="Seconds between refreshes")
    run_parser.add_argument("--source", action="append", choices=sorted(SOURCES))

    list_parser = sub.add_parser("list", help="Show stored opportunities")
    _add_filters(list_parser)
    list_parser.add_argument("--stake", type=float, default=None, help="Reference stake for display")
    list_parser.add_argument("--limit", type=int, default=20)
    list_parser.add_argument("--json", action="store_true", help="Print JSON rows")

    outcome_parser = sub.add_parser("outcome", help="Compute stakes and profit for a bet")
    outcome_parser.add_argument("--stake", type=float, required=True)
    outcome_parser.add_argument("--odds-1", type=float, required=True)
    outcome_parser.add_argument("--odds-2", type=float, required=True)
    outcome_parser.add_argument("--stake-ratio", type=float, required=True)
    outcome_parser.add_argument("--commission-scalar", type=float, default=1.0)
    outcome_parser.add_argument("--strategy", choices=[s.value for s in BetStrategy], required=True)
    outcome_parser.add_argument("--bookmaker-1", default="")
    outcome_parser.add_argument("--bookmaker-2", default="")

    log_parser = sub.add_parser("log-bet", help="Log a bet against a listed opportunity")
    log_target = log_parser.add_mutually_exclusive_group(required=True)
    log_target.add_argument(
        "index",
        type=int,
        nargs="?",
        help="1-based position in `list` output with the same filters",
    )
    log_target.add_argument("--payload", help="JSON file with the opportunity fields of the bet")
    log_parser.add_argument("--stake", type=float, required=True)
    log_parser.add_argument("--user", required=True)
    log_parser.add_argument("--username", default="")
    _add_filters(log_parser)

    bets_parser = sub.add_parser("bets", help="Show a user's bet log")
    bets_parser.add_argument("--user", required=True)
    bets_parser.add_argument("--strategy", choices=[s.value for s in BetStrategy], default=None)
    bets_parser.add_argument("--bookmaker", default=None)
    bets_parser.add_argument("--limit", type=int, default=50)
    bets_parser.add_argument("--offset", type=int, default=0)

    delete_parser = sub.add_parser("delete-bet", help="Remove a logged bet")
    delete_parser.add_argument("bet_id")
    delete_parser.add_argument("--user", required=True)

    settle_parser = sub.add_parser("settle-bet", help="Record the realised profit of a logged bet")
    settle_parser.add_argument("bet_id")
    settle_parser.add_argument("--user", required=True)
    settle_parser.add_argument("--profit", type=float, required=True)

    sub.add_parser("freshness", help="Show the age of the stored batch")

    args = parser.parse_args()
    config = load_config()
    settings = load_settings(config.settings_path)
    if args.cmd == "refresh":
        return _run_refresh(config, settings, args.source)
    if args.cmd == "run":
        return _run_loop(config, settings, args.interval_seconds, args.source)
    if args.cmd == "list":
        return _run_list(config, settings, args)
    if args.cmd == "outcome":
        return _run_outcome(settings, args)
    if args.cmd == "log-bet":
        return _run_log_bet(config, settings, args)
    if args.cmd == "bets":
        return _run_bets(config, args)
    if args.cmd == "delete-bet":
        return _run_delete_bet(config, args)
    if args.cmd == "settle-bet":
        return _run_settle_bet(config, args)
    if args.cmd == "freshness":
        return _run_freshness(config, settings)
    return 1


def _add_filters(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--strategy", choices=[s.value for s in BetStrategy], default=None)
    parser.add_argument("--bookmaker", default=None, help="Primary bookmaker")
    parser.add_argument("--sport", default=None)
    parser.add_argument("--min-profit", type=float, default=None, help="Minimum profit fraction")


def _run_refresh(config: Config, settings: Settings, sources) -> int:
    response = refresh_response(config, settings, sources=sources or DEFAULT_SOURCES)
    print(json.dumps(response, indent=2, sort_keys=True))
    return 0 if response["success"] else 1


def _run_loop(config: Config, settings: Settings, interval_seconds: int, sources) -> int:
    if interval_seconds <= 0:
        logger.warning("Interval must be positive; got %d", interval_seconds)
        return 0
    logger.info("Refreshing opportunities every %d seconds", interval_seconds)
    try:
        while True:
            refresh_response(config, settings, sources=sources or DEFAULT_SOURCES)
            time.sleep(interval_seconds)
    except KeyboardInterrupt:
        logger.info("Refresh loop stopped")
    return 0


def _run_list(config: Config, settings: Settings, args) -> int:
    init_db(config.db_path)
    stake = args.stake if args.stake is not None else config.reference_stake
    opportunities = fetch_opportunities(
        config.db_path,
        bet_strategy=args.strategy,
        bookmaker=args.bookmaker,
        sport=args.sport,
        min_profit=args.min_profit,
        limit=args.limit,
    )
    rows = [transform_opportunity(opp, stake, settings.exchange_bookmakers) for opp in opportunities]
    if args.json:
        print(json.dumps(rows, indent=2))
        return 0
    for index, row in enumerate(rows, start=1):
        print(
            f"{index:>3}. [{row['bet_strategy']}] {row['sport']}: {row['team_1']} vs {row['team_2']} | "
            f"{row['bookmaker_1']} {row['odds_1']:.2f} / {row['bookmaker_2']} {row['odds_2']:.2f} | "
            f"stake {format_currency(row['calculated_stake_1'])} + {format_currency(row['calculated_stake_2'])} | "
            f"profit {row['calculated_profit_amount']} ({format_percentage(row['profit_percentage'])})"
        )
    if not rows:
        print("No opportunities stored")
    return 0


def _run_outcome(settings: Settings, args) -> int:
    try:
        outcome = compute_outcome(
            stake_1=args.stake,
            odds_1=args.odds_1,
            odds_2=args.odds_2,
            stake_ratio=args.stake_ratio,
            commission_scalar=args.commission_scalar,
            strategy=args.strategy,
            bookmaker_1=args.bookmaker_1,
            bookmaker_2=args.bookmaker_2,
            exchange_bookmakers=settings.exchange_bookmakers,
        )
    except ValueError as exc:
        logger.error("Cannot compute outcome: %s", exc)
        return 1
    print(json.dumps(asdict(outcome), indent=2))
    return 0


def _run_log_bet(config: Config, settings: Settings, args) -> int:
    init_db(config.db_path)
    try:
        if args.payload:
            opportunity = _payload_opportunity(args.payload)
        else:
            opportunity = _listed_opportunity(config, args)
        if opportunity is None:
            return 1
        entry = log_bet(
            config.db_path,
            opportunity,
            args.stake,
            user_id=args.user,
            username=args.username,
            exchange_bookmakers=settings.exchange_bookmakers,
        )
    except ValueError as exc:
        logger.error("Cannot log bet: %s", exc)
        return 1
    print(json.dumps(_entry_json(entry), indent=2))
    return 0


def _listed_opportunity(config: Config, args) -> Optional[Opportunity]:
    opportunities = fetch_opportunities(
        config.db_path,
        bet_strategy=args.strategy,
        bookmaker=args.bookmaker,
        sport=args.sport,
        min_profit=args.min_profit,
    )
    if not 1 <= args.index <= len(opportunities):
        logger.error("No opportunity at position %d (have %d)", args.index, len(opportunities))
        return None
    return opportunities[args.index - 1]


def _payload_opportunity(path: str) -> Optional[Opportunity]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except OSError as exc:
        logger.error("Cannot read payload %s: %s", path, exc)
        return None
    if not isinstance(payload, dict):
        raise ValueError("Payload must be a JSON object")
    return opportunity_from_payload(payload)


def _run_bets(config: Config, args) -> int:
    init_db(config.db_path)
    entries = fetch_bet_logs(
        config.db_path,
        args.user,
        bet_strategy=args.strategy,
        bookmaker=args.bookmaker,
        limit=args.limit,
        offset=args.offset,
    )
    print(json.dumps([_entry_json(entry) for entry in entries], indent=2))
    return 0


def _run_delete_bet(config: Config, args) -> int:
    init_db(config.db_path)
    try:
        delete_bet_log(config.db_path, args.bet_id, args.user)
    except (LookupError, PermissionError) as exc:
        logger.error("Cannot delete bet: %s", exc)
        return 1
    logger.info("Bet deleted bet_id=%s user=%s", args.bet_id, args.user)
    return 0


def _run_settle_bet(config: Config, args) -> int:
    init_db(config.db_path)
    try:
        record_actual_profit(config.db_path, args.bet_id, args.user, args.profit)
    except (LookupError, PermissionError) as exc:
        logger.error("Cannot settle bet: %s", exc)
        return 1
    logger.info("Bet settled bet_id=%s profit_actual=%.2f", args.bet_id, args.profit)
    return 0


def _run_freshness(config: Config, settings: Settings) -> int:
    init_db(config.db_path)
    generated_at = latest_generated_at(config.db_path)
    if generated_at is None:
        print("No opportunities stored")
        return 0
    freshness = classify(generated_at, threshold_seconds=settings.freshness_threshold_seconds)
    print(f"{freshness_label(freshness)} generated {format_local_time(generated_at)} Sydney time")
    return 0


def _entry_json(entry) -> dict:
    payload = asdict(entry)
    payload["bet_strategy"] = entry.bet_strategy.value
    payload["logged_at"] = entry.logged_at.isoformat()
    return payload
