import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple

import yaml
from dotenv import load_dotenv


DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parent / "data" / "settings.yml"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid int for {name}: {raw}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid float for {name}: {raw}") from exc


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw


@dataclass
class Config:
    # Core
    db_path: str = field(default_factory=lambda: _env_str("ODDSARB_DB_PATH", "oddsarb.db"))
    http_timeout_seconds: float = field(default_factory=lambda: _env_float("ODDSARB_HTTP_TIMEOUT", 20.0))
    settings_path: str = field(default_factory=lambda: _env_str("ODDSARB_SETTINGS_PATH", str(DEFAULT_SETTINGS_PATH)))
    reference_stake: float = field(default_factory=lambda: _env_float("ODDSARB_REFERENCE_STAKE", 100.0))

    # The Odds API
    odds_api_key: str = field(default_factory=lambda: _env_str("ODDS_API_KEY", ""))
    odds_api_base_url: str = field(
        default_factory=lambda: _env_str("ODDS_API_BASE_URL", "https://api.the-odds-api.com/v4")
    )
    odds_api_region: str = field(default_factory=lambda: _env_str("ODDS_API_REGION", "au"))
    odds_api_bookmakers: str = field(
        default_factory=lambda: _env_str(
            "ODDS_API_BOOKMAKERS",
            "betright,betr_au,ladbrokes_au,neds,pointsbetau,sportsbet,tab,tabtouch,topsport,playup,unibet",
        )
    )
    request_pause_seconds: float = field(
        default_factory=lambda: _env_float("ODDSARB_REQUEST_PAUSE_SECONDS", 1.0)
    )
    http_retries: int = field(default_factory=lambda: _env_int("ODDSARB_HTTP_RETRIES", 3))


@dataclass(frozen=True)
class Settings:
    supported_sports: Tuple[str, ...]
    commission_default: float
    commission_by_sport: Dict[str, float]
    exchange_bookmakers: FrozenSet[str]
    horizon_days: int = 7
    per_bookmaker_cap: int = 25
    freshness_threshold_seconds: int = 60


def load_config() -> Config:
    load_dotenv()
    return Config()


def load_settings(path: Optional[str] = None) -> Settings:
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    with open(settings_path, "r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    if not isinstance(raw, dict):
        raise ValueError(f"{settings_path} must contain a mapping")
    return parse_settings(raw)


def parse_settings(raw: dict) -> Settings:
    sports = raw.get("supported_sports") or []
    if not isinstance(sports, list) or not all(isinstance(s, str) and s for s in sports):
        raise ValueError("supported_sports must be a list of sport keys")

    commission = raw.get("commission") or {}
    if not isinstance(commission, dict):
        raise ValueError("commission must be a mapping")
    default = _scalar("commission.default", commission.get("default", 0.93))
    by_sport_raw = commission.get("sports") or {}
    if not isinstance(by_sport_raw, dict):
        raise ValueError("commission.sports must be a mapping")
    by_sport = {
        str(sport): _scalar(f"commission.sports.{sport}", value) for sport, value in by_sport_raw.items()
    }

    exchanges = raw.get("exchange_bookmakers") or []
    if not isinstance(exchanges, list):
        raise ValueError("exchange_bookmakers must be a list")

    settings = Settings(
        supported_sports=tuple(sports),
        commission_default=default,
        commission_by_sport=by_sport,
        exchange_bookmakers=frozenset(str(item) for item in exchanges),
        horizon_days=int(raw.get("horizon_days", 7)),
        per_bookmaker_cap=int(raw.get("per_bookmaker_cap", 25)),
        freshness_threshold_seconds=int(raw.get("freshness_threshold_seconds", 60)),
    )
    if settings.horizon_days <= 0:
        raise ValueError("horizon_days must be positive")
    if settings.per_bookmaker_cap <= 0:
        raise ValueError("per_bookmaker_cap must be positive")
    return settings


def _scalar(name: str, value) -> float:
    try:
        scalar = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid commission scalar for {name}: {value}") from exc
    if not 0 < scalar <= 1:
        raise ValueError(f"Commission scalar for {name} must be in (0, 1]: {value}")
    return scalar
