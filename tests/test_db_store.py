"""Property-based tests for the database store.

**Feature: ledger-persistence**
"""

import json
import os
import sqlite3
import tempfile
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from trador.db.store import DataStore
from trador.engine.ledger import Ledger, seed_monitored
from trador.errors import StoreLockedError
from trador.models import TokenSnapshot, TxnCounts

ADDRESSES = [
    "AAAA1111111111111111111111111111111111111",
    "BBBB1111111111111111111111111111111111111",
    "CCCC1111111111111111111111111111111111111",
]


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield DataStore(db_path)


def make_snapshot(address: str, price: float = 1.0) -> TokenSnapshot:
    return TokenSnapshot(
        name="Token",
        symbol=address[:4],
        address=address,
        price=price,
        price_usd=price * 150,
        valuation=price * 1_000_000,
        price_change_1h=3.5,
        age_hours=12.0,
        txns_24h=TxnCounts(buys=120, sells=80),
    )


class TestDatabaseSchemaCompleteness:
    """
    **Feature: ledger-persistence, Property 1: Database Schema Completeness**

    *For any* fresh database, all required tables should exist.
    """

    def test_schema_completeness(self, temp_db: DataStore):
        tables = temp_db.get_tables()

        for table in DataStore.REQUIRED_TABLES:
            assert table in tables, f"Required table '{table}' is missing"

    def test_fresh_database_has_no_state(self, temp_db: DataStore):
        assert temp_db.load_state() is None


class TestStateRoundTrip:
    """
    **Feature: ledger-persistence, Property 2: Lossless Persistence**

    *For any* sequence of ledger mutations, loading the stored state
    yields the in-memory state, including trade order.
    """

    @given(
        steps=st.lists(
            st.tuples(
                st.sampled_from(ADDRESSES),
                st.sampled_from(["BUY", "SELL", "PARTIAL_SELL", "WATCH", "UNWATCH"]),
                st.floats(min_value=0.01, max_value=100.0, allow_nan=False),
            ),
            min_size=1,
            max_size=15,
        )
    )
    @settings(max_examples=25, deadline=None)
    def test_round_trip(self, steps):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = DataStore(Path(tmpdir) / "test.db")
            ledger = Ledger(store=store)

            for address, action, size in steps:
                if action == "WATCH":
                    ledger.add_asset(seed_monitored(make_snapshot(address, size)))
                elif action == "UNWATCH":
                    ledger.remove_asset(address)
                else:
                    ledger.record_trade(action, make_snapshot(address, size), size, size, comment=action.lower())

            loaded = store.load_state()
            assert loaded == ledger.state
            assert [t.id for t in loaded.trades] == [t.id for t in ledger.state.trades]
            assert list(loaded.monitored) == list(ledger.state.monitored)

    def test_clear(self, temp_db: DataStore):
        ledger = Ledger(store=temp_db)
        ledger.record_trade("BUY", make_snapshot(ADDRESSES[0]), 1.0, 1.0)

        temp_db.clear()

        assert temp_db.load_state() is None


class TestStoredStateCompatibility:
    """
    **Feature: ledger-persistence, Property 3: Tolerant Loading**

    *For any* stored record missing optional fields, loading fills the
    defaults; unreadable data yields the default state.
    """

    def test_monitored_without_display_fields(self, temp_db: DataStore):
        address = ADDRESSES[0]
        payload = {
            "metadata": {"symbol": "OLD", "address": address, "price": 0.5},
            "current_price": 0.5,
            "current_valuation": 5000.0,
            "valuation_history": [4000.0, 5000.0],
        }
        conn = sqlite3.connect(temp_db.db_path)
        try:
            conn.execute("INSERT INTO ledger (key, value) VALUES ('balance', '7.5')")
            conn.execute(
                "INSERT INTO monitored (address, seq, payload) VALUES (?, 0, ?)",
                (address, json.dumps(payload)),
            )
            conn.commit()
        finally:
            conn.close()

        state = temp_db.load_state()

        asset = state.monitored[address]
        assert state.balance == 7.5
        assert asset.price_history == []
        assert asset.sentiment == "NEUTRAL"
        assert asset.message == "Initiating tactical monitoring..."
        assert asset.valuation_history == [4000.0, 5000.0]

    def test_malformed_payload_gives_default_state(self, temp_db: DataStore):
        conn = sqlite3.connect(temp_db.db_path)
        try:
            conn.execute("INSERT INTO ledger (key, value) VALUES ('balance', '3.0')")
            conn.execute(
                "INSERT INTO monitored (address, seq, payload) VALUES ('x', 0, '{not json')"
            )
            conn.commit()
        finally:
            conn.close()

        assert temp_db.load_state() is None
        assert Ledger(store=temp_db).state.balance == 10.0

    def test_corrupt_file_is_quarantined(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "test.db"
            db_path.write_bytes(b"this is not a sqlite database" * 64)

            store = DataStore(db_path)
            ledger = Ledger(store=store)

            assert ledger.state.balance == 10.0
            assert ledger.state.trades == []
            assert list(Path(tmpdir).glob("test.db.corrupt-*"))
            for table in DataStore.REQUIRED_TABLES:
                assert table in store.get_tables()


class TestSingleWriter:
    """
    **Feature: ledger-persistence, Property 4: Single Writer While Running**

    *For any* two stores on one database file, while one holds the run
    lock the other can neither take it nor overwrite the stored state.
    """

    def test_second_store_cannot_take_lock(self, tmp_path):
        running = DataStore(tmp_path / "test.db")
        other = DataStore(tmp_path / "test.db")

        assert running.acquire_run_lock()
        assert not other.acquire_run_lock()
        assert other.run_lock_holder() == os.getpid()
        assert running.run_lock_holder() is None

    def test_other_store_cannot_overwrite_running_state(self, tmp_path):
        running_store = DataStore(tmp_path / "test.db")
        running_store.acquire_run_lock()
        running = Ledger(store=running_store)
        running.add_asset(seed_monitored(make_snapshot(ADDRESSES[0])))

        other = Ledger(store=DataStore(tmp_path / "test.db"))
        with pytest.raises(StoreLockedError) as exc_info:
            other.add_asset(seed_monitored(make_snapshot(ADDRESSES[1])))

        assert exc_info.value.pid == os.getpid()
        assert list(other.state.monitored) == [ADDRESSES[0]]

        running.update_asset(ADDRESSES[0], current_price=1.1)

        stored = DataStore(tmp_path / "test.db").load_state()
        assert list(stored.monitored) == [ADDRESSES[0]]
        assert stored.monitored[ADDRESSES[0]].current_price == 1.1

    def test_writes_resume_after_release(self, tmp_path):
        running_store = DataStore(tmp_path / "test.db")
        running_store.acquire_run_lock()
        Ledger(store=running_store).add_asset(seed_monitored(make_snapshot(ADDRESSES[0])))
        running_store.release_run_lock()

        other = Ledger(store=DataStore(tmp_path / "test.db"))
        assert other.add_asset(seed_monitored(make_snapshot(ADDRESSES[1])))

        stored = DataStore(tmp_path / "test.db").load_state()
        assert list(stored.monitored) == ADDRESSES[:2]

    def test_expired_lock_can_be_taken(self, tmp_path):
        crashed = DataStore(tmp_path / "test.db")
        crashed.acquire_run_lock(ttl=-1.0)

        other = DataStore(tmp_path / "test.db")

        assert other.run_lock_holder() is None
        assert other.acquire_run_lock()
        assert crashed.run_lock_holder() == os.getpid()

    def test_release_only_by_owner(self, tmp_path):
        running = DataStore(tmp_path / "test.db")
        other = DataStore(tmp_path / "test.db")
        running.acquire_run_lock()

        other.release_run_lock()

        assert other.run_lock_holder() == os.getpid()

    def test_clear_keeps_lock(self, temp_db: DataStore):
        temp_db.acquire_run_lock()

        temp_db.clear()

        assert DataStore(temp_db.db_path).run_lock_holder() == os.getpid()
