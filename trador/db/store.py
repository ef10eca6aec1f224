"""SQLite data store for Trador."""

import logging
import os
import sqlite3
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from trador.errors import StoreLockedError
from trador.models import LedgerState, MonitoredAsset, Position, Trade

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Seconds a run lock stays valid without a refresh
RUN_LOCK_TTL = 60.0


class DataStore:
    """SQLite-based persistence for the ledger state.

    The whole ledger is rewritten in one transaction on every save, so a
    crash leaves either the previous or the next state on disk. Because
    of that, only one process may write while the engine runs: the engine
    holds the run lock and saves from any other DataStore are refused
    until it is released or expires.
    """

    REQUIRED_TABLES = [
        "ledger",
        "positions",
        "trades",
        "monitored",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._owner = uuid.uuid4().hex
        self._ensure_db_dir()
        try:
            self._init_schema()
        except sqlite3.DatabaseError as e:
            self._quarantine(e)
            self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _quarantine(self, error: Exception) -> None:
        """Move an unreadable database aside so a fresh one can be created."""
        backup = self.db_path.with_name(
            f"{self.db_path.name}.corrupt-{datetime.now().strftime('%Y%m%d%H%M%S')}"
        )
        logger.warning("Database %s is unreadable (%s), moved to %s", self.db_path, error, backup)
        self.db_path.replace(backup)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS ledger (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS positions (
                    address TEXT PRIMARY KEY,
                    quantity REAL NOT NULL,
                    average_entry_price REAL NOT NULL DEFAULT 0,
                    average_entry_valuation REAL NOT NULL DEFAULT 0
                )
            """)

            # seq 0 is the most recent trade
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT PRIMARY KEY,
                    seq INTEGER NOT NULL,
                    timestamp TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    address TEXT NOT NULL,
                    price REAL NOT NULL,
                    valuation REAL NOT NULL DEFAULT 0,
                    quantity REAL NOT NULL,
                    notional REAL NOT NULL,
                    pnl REAL,
                    comment TEXT,
                    is_paper INTEGER NOT NULL DEFAULT 1
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS monitored (
                    address TEXT PRIMARY KEY,
                    seq INTEGER NOT NULL,
                    payload TEXT NOT NULL
                )
            """)

            # At most one row; kept apart from the ledger tables so saves
            # and clear() never touch it
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS run_lock (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    owner TEXT NOT NULL,
                    pid INTEGER NOT NULL,
                    expires_at REAL NOT NULL
                )
            """)

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Run lock ====================

    def _foreign_lock(self, cursor: sqlite3.Cursor) -> Optional[sqlite3.Row]:
        """Return the lock row if another, unexpired owner holds it."""
        cursor.execute("SELECT owner, pid, expires_at FROM run_lock WHERE id = 1")
        row = cursor.fetchone()
        if row is None or row["owner"] == self._owner or row["expires_at"] <= time.time():
            return None
        return row

    def acquire_run_lock(self, ttl: float = RUN_LOCK_TTL) -> bool:
        """Take the exclusive run lock for this store instance.

        Args:
            ttl: Seconds the lock stays valid unless refreshed.

        Returns:
            True if the lock is now held by this instance, False if another
            owner holds an unexpired lock.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            holder = self._foreign_lock(cursor)
            if holder is not None:
                conn.rollback()
                logger.debug("Run lock held by pid %s", holder["pid"])
                return False
            cursor.execute(
                "INSERT OR REPLACE INTO run_lock (id, owner, pid, expires_at) VALUES (1, ?, ?, ?)",
                (self._owner, os.getpid(), time.time() + ttl),
            )
            conn.commit()
            return True
        finally:
            conn.close()

    def refresh_run_lock(self, ttl: float = RUN_LOCK_TTL) -> None:
        """Extend the run lock if this instance holds it."""
        conn = self._get_connection()
        try:
            conn.execute(
                "UPDATE run_lock SET expires_at = ? WHERE id = 1 AND owner = ?",
                (time.time() + ttl, self._owner),
            )
            conn.commit()
        finally:
            conn.close()

    def release_run_lock(self) -> None:
        """Release the run lock if this instance holds it."""
        conn = self._get_connection()
        try:
            conn.execute("DELETE FROM run_lock WHERE id = 1 AND owner = ?", (self._owner,))
            conn.commit()
        finally:
            conn.close()

    def run_lock_holder(self) -> Optional[int]:
        """Get the pid of another process holding an unexpired run lock."""
        conn = self._get_connection()
        try:
            holder = self._foreign_lock(conn.cursor())
            return holder["pid"] if holder is not None else None
        finally:
            conn.close()

    # ==================== Ledger ====================

    def save_state(self, state: LedgerState) -> None:
        """Persist the full ledger state.

        Args:
            state: State to persist.

        Raises:
            StoreLockedError: If another store instance holds the run lock.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            holder = self._foreign_lock(cursor)
            if holder is not None:
                conn.rollback()
                raise StoreLockedError(holder["pid"])

            cursor.execute("DELETE FROM ledger")
            cursor.execute("DELETE FROM positions")
            cursor.execute("DELETE FROM trades")
            cursor.execute("DELETE FROM monitored")

            cursor.executemany(
                "INSERT INTO ledger (key, value) VALUES (?, ?)",
                [
                    ("schema_version", str(SCHEMA_VERSION)),
                    ("balance", repr(state.balance)),
                    ("saved_at", datetime.now().isoformat()),
                ],
            )
            cursor.executemany(
                """
                INSERT INTO positions
                (address, quantity, average_entry_price, average_entry_valuation)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (p.address, p.quantity, p.average_entry_price, p.average_entry_valuation)
                    for p in state.positions.values()
                ],
            )
            cursor.executemany(
                """
                INSERT INTO trades
                (id, seq, timestamp, kind, symbol, address, price, valuation,
                 quantity, notional, pnl, comment, is_paper)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        t.id,
                        seq,
                        t.timestamp.isoformat(),
                        t.kind,
                        t.symbol,
                        t.address,
                        t.price,
                        t.valuation,
                        t.quantity,
                        t.notional,
                        t.pnl,
                        t.comment,
                        1 if t.is_paper else 0,
                    )
                    for seq, t in enumerate(state.trades)
                ],
            )
            cursor.executemany(
                "INSERT INTO monitored (address, seq, payload) VALUES (?, ?, ?)",
                [
                    (address, seq, asset.model_dump_json())
                    for seq, (address, asset) in enumerate(state.monitored.items())
                ],
            )
            conn.commit()
        finally:
            conn.close()

    def load_state(self) -> Optional[LedgerState]:
        """Load the persisted ledger state.

        Returns:
            The stored state, or None when nothing is stored or the stored
            data cannot be read.
        """
        try:
            return self._read_state()
        except (sqlite3.DatabaseError, ValidationError, ValueError, KeyError) as e:
            logger.warning("Stored state in %s is unreadable, starting fresh: %s", self.db_path, e)
            return None

    def _read_state(self) -> Optional[LedgerState]:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT key, value FROM ledger")
            meta = {row["key"]: row["value"] for row in cursor.fetchall()}
            if "balance" not in meta:
                return None

            cursor.execute(
                """
                SELECT address, quantity, average_entry_price, average_entry_valuation
                FROM positions
                """
            )
            positions = {
                row["address"]: Position(
                    address=row["address"],
                    quantity=row["quantity"],
                    average_entry_price=row["average_entry_price"] or 0.0,
                    average_entry_valuation=row["average_entry_valuation"] or 0.0,
                )
                for row in cursor.fetchall()
            }

            cursor.execute(
                """
                SELECT id, timestamp, kind, symbol, address, price, valuation,
                       quantity, notional, pnl, comment, is_paper
                FROM trades
                ORDER BY seq
                """
            )
            trades = [
                Trade(
                    id=row["id"],
                    timestamp=datetime.fromisoformat(row["timestamp"]),
                    kind=row["kind"],
                    symbol=row["symbol"],
                    address=row["address"],
                    price=row["price"],
                    valuation=row["valuation"] or 0.0,
                    quantity=row["quantity"],
                    notional=row["notional"],
                    pnl=row["pnl"],
                    comment=row["comment"],
                    is_paper=bool(row["is_paper"]),
                )
                for row in cursor.fetchall()
            ]

            cursor.execute("SELECT address, payload FROM monitored ORDER BY seq")
            monitored = {
                row["address"]: MonitoredAsset.model_validate_json(row["payload"])
                for row in cursor.fetchall()
            }

            return LedgerState(
                balance=float(meta["balance"]),
                positions=positions,
                trades=trades,
                monitored=monitored,
            )
        finally:
            conn.close()

    def clear(self) -> None:
        """Remove all persisted ledger data."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            for table in self.REQUIRED_TABLES:
                cursor.execute(f"DELETE FROM {table}")
            conn.commit()
        finally:
            conn.close()
