import logging
import sqlite3
from datetime import datetime
from typing import Iterable, List, Optional, Union

from oddsarb.errors import PersistenceFailure
from oddsarb.freshness import parse_utc
from oddsarb.models import BetLogEntry, BetStrategy, Opportunity


logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS opportunities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sport TEXT NOT NULL,
    bookmaker_1 TEXT NOT NULL,
    odds_1 REAL NOT NULL,
    team_1 TEXT NOT NULL,
    bookmaker_2 TEXT NOT NULL,
    odds_2 REAL NOT NULL,
    team_2 TEXT NOT NULL,
    stake_ratio REAL NOT NULL,
    profit REAL NOT NULL,
    commission_scalar REAL NOT NULL,
    primary_bookmaker TEXT NOT NULL,
    bet_strategy TEXT NOT NULL CHECK (bet_strategy IN ('bonus', 'turnover')),
    generated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_opportunities_profit ON opportunities (profit DESC);

CREATE TABLE IF NOT EXISTS bet_log (
    bet_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    username TEXT NOT NULL,
    sport TEXT NOT NULL,
    bookmaker_1 TEXT NOT NULL,
    odds_1 REAL NOT NULL,
    team_1 TEXT NOT NULL,
    stake_1 REAL NOT NULL,
    bookmaker_2 TEXT NOT NULL,
    odds_2 REAL NOT NULL,
    team_2 TEXT NOT NULL,
    stake_2 REAL NOT NULL,
    profit REAL NOT NULL,
    profit_percentage REAL NOT NULL,
    profit_actual REAL,
    commission_scalar REAL NOT NULL,
    primary_bookmaker TEXT NOT NULL,
    bet_strategy TEXT NOT NULL CHECK (bet_strategy IN ('bonus', 'turnover')),
    logged_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_bet_log_user ON bet_log (user_id, logged_at DESC);
"""


def _connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    conn = _connect(db_path)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()


def replace_opportunities(db_path: str, opportunities: Iterable[Opportunity]) -> int:
    """Swap the whole opportunity set in one transaction.

    Readers see either the previous batch or the new one. On failure the
    transaction is rolled back and ``PersistenceFailure`` is raised.
    """
    rows = [
        (
            o.sport,
            o.bookmaker_1,
            o.odds_1,
            o.team_1,
            o.bookmaker_2,
            o.odds_2,
            o.team_2,
            o.stake_ratio,
            o.profit,
            o.commission_scalar,
            o.primary_bookmaker,
            BetStrategy(o.bet_strategy).value,
            parse_utc(o.generated_at).isoformat(),
        )
        for o in opportunities
    ]
    conn = _connect(db_path)
    try:
        conn.execute("DELETE FROM opportunities")
        conn.executemany(
            """
            INSERT INTO opportunities (
                sport, bookmaker_1, odds_1, team_1, bookmaker_2, odds_2, team_2,
                stake_ratio, profit, commission_scalar, primary_bookmaker, bet_strategy, generated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            rows,
        )
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        logger.error("Opportunity replace failed, previous batch kept: %s", exc)
        raise PersistenceFailure(f"Failed to replace opportunities: {exc}") from exc
    finally:
        conn.close()
    logger.info("Opportunities persisted rows=%d", len(rows))
    return len(rows)


def fetch_opportunities(
    db_path: str,
    bet_strategy: Optional[Union[BetStrategy, str]] = None,
    bookmaker: Optional[str] = None,
    sport: Optional[str] = None,
    min_profit: Optional[float] = None,
    limit: Optional[int] = None,
) -> List[Opportunity]:
    clauses: List[str] = []
    params: List[object] = []
    if bet_strategy:
        clauses.append("bet_strategy=?")
        params.append(BetStrategy(bet_strategy).value)
    if bookmaker:
        clauses.append("primary_bookmaker=?")
        params.append(bookmaker)
    if sport:
        clauses.append("sport=?")
        params.append(sport)
    if min_profit is not None:
        clauses.append("profit>=?")
        params.append(min_profit)
    query = "SELECT * FROM opportunities"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY profit DESC, id ASC"
    if limit:
        query += " LIMIT ?"
        params.append(int(limit))

    conn = _connect(db_path)
    try:
        rows = conn.execute(query, params).fetchall()
        return [_row_to_opportunity(row) for row in rows]
    finally:
        conn.close()


def latest_generated_at(db_path: str) -> Optional[datetime]:
    conn = _connect(db_path)
    try:
        values = [row["generated_at"] for row in conn.execute("SELECT DISTINCT generated_at FROM opportunities")]
    finally:
        conn.close()
    if not values:
        return None
    return max(parse_utc(value) for value in values)


def insert_bet_log(db_path: str, entry: BetLogEntry) -> None:
    conn = _connect(db_path)
    try:
        conn.execute(
            """
            INSERT INTO bet_log (
                bet_id, user_id, username, sport, bookmaker_1, odds_1, team_1, stake_1,
                bookmaker_2, odds_2, team_2, stake_2, profit, profit_percentage, profit_actual,
                commission_scalar, primary_bookmaker, bet_strategy, logged_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.bet_id,
                entry.user_id,
                entry.username,
                entry.sport,
                entry.bookmaker_1,
                entry.odds_1,
                entry.team_1,
                entry.stake_1,
                entry.bookmaker_2,
                entry.odds_2,
                entry.team_2,
                entry.stake_2,
                entry.profit,
                entry.profit_percentage,
                entry.profit_actual,
                entry.commission_scalar,
                entry.primary_bookmaker,
                BetStrategy(entry.bet_strategy).value,
                parse_utc(entry.logged_at).isoformat(),
            ),
        )
        conn.commit()
    finally:
        conn.close()


def fetch_bet_logs(
    db_path: str,
    user_id: str,
    bet_strategy: Optional[Union[BetStrategy, str]] = None,
    bookmaker: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[BetLogEntry]:
    query = "SELECT * FROM bet_log WHERE user_id=?"
    params: List[object] = [user_id]
    if bet_strategy:
        query += " AND bet_strategy=?"
        params.append(BetStrategy(bet_strategy).value)
    if bookmaker:
        query += " AND primary_bookmaker=?"
        params.append(bookmaker)
    query += " ORDER BY logged_at DESC LIMIT ? OFFSET ?"
    params.extend([int(limit), int(offset)])

    conn = _connect(db_path)
    try:
        rows = conn.execute(query, params).fetchall()
        return [_row_to_bet_log(row) for row in rows]
    finally:
        conn.close()


def delete_bet_log(db_path: str, bet_id: str, user_id: str) -> None:
    conn = _connect(db_path)
    try:
        _require_owned_bet(conn, bet_id, user_id)
        conn.execute("DELETE FROM bet_log WHERE bet_id=?", (bet_id,))
        conn.commit()
    finally:
        conn.close()


def record_actual_profit(db_path: str, bet_id: str, user_id: str, profit_actual: float) -> None:
    conn = _connect(db_path)
    try:
        _require_owned_bet(conn, bet_id, user_id)
        conn.execute("UPDATE bet_log SET profit_actual=? WHERE bet_id=?", (profit_actual, bet_id))
        conn.commit()
    finally:
        conn.close()


def _require_owned_bet(conn: sqlite3.Connection, bet_id: str, user_id: str) -> None:
    row = conn.execute("SELECT user_id FROM bet_log WHERE bet_id=?", (bet_id,)).fetchone()
    if row is None:
        raise LookupError(f"Bet not found: {bet_id}")
    if row["user_id"] != user_id:
        raise PermissionError(f"Bet {bet_id} belongs to another user")


def _row_to_opportunity(row: sqlite3.Row) -> Opportunity:
    return Opportunity(
        sport=row["sport"],
        bookmaker_1=row["bookmaker_1"],
        odds_1=row["odds_1"],
        team_1=row["team_1"],
        bookmaker_2=row["bookmaker_2"],
        odds_2=row["odds_2"],
        team_2=row["team_2"],
        stake_ratio=row["stake_ratio"],
        profit=row["profit"],
        commission_scalar=row["commission_scalar"],
        primary_bookmaker=row["primary_bookmaker"],
        bet_strategy=BetStrategy(row["bet_strategy"]),
        generated_at=parse_utc(row["generated_at"]),
    )


def _row_to_bet_log(row: sqlite3.Row) -> BetLogEntry:
    return BetLogEntry(
        bet_id=row["bet_id"],
        user_id=row["user_id"],
        username=row["username"],
        sport=row["sport"],
        bookmaker_1=row["bookmaker_1"],
        odds_1=row["odds_1"],
        team_1=row["team_1"],
        stake_1=row["stake_1"],
        bookmaker_2=row["bookmaker_2"],
        odds_2=row["odds_2"],
        team_2=row["team_2"],
        stake_2=row["stake_2"],
        profit=row["profit"],
        profit_percentage=row["profit_percentage"],
        commission_scalar=row["commission_scalar"],
        primary_bookmaker=row["primary_bookmaker"],
        bet_strategy=BetStrategy(row["bet_strategy"]),
        logged_at=parse_utc(row["logged_at"]),
        profit_actual=row["profit_actual"],
    )
