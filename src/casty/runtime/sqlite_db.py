# src/casty/runtime/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def canon_json(obj: Any) -> str:
    """Canonical JSON encoding for persisted snapshots.

    Python ints of any size round-trip through json, so uint256 values are
    stored as plain JSON numbers. Unknown types are never coerced.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


class SqliteDB:
    """SQLite manager for the token runtime.

    - single durable DB file holding the token snapshot
    - never shares connections across threads
    - BEGIN IMMEDIATE with bounded retry so concurrent writers fail closed
    """

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _synchronous_pragma() -> str:
        mode = (os.environ.get("CASTY_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("CASTY_SQLITE_SYNCHRONOUS") or default).strip().upper()
        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        timeout_s = float(_env_int("CASTY_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0
        con = sqlite3.connect(
            self.path,
            timeout=timeout_s,
            isolation_level=None,  # explicit BEGIN/COMMIT
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        con.execute("PRAGMA journal_mode=WAL;")
        con.execute(f"PRAGMA synchronous={self._synchronous_pragma()};")
        con.execute(f"PRAGMA busy_timeout={int(timeout_s * 1000)};")
        return con

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return "database is locked" in msg or "database is busy" in msg

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction, retrying BEGIN IMMEDIATE on writer contention.

        Gives up (re-raises) once CASTY_SQLITE_WRITE_DEADLINE_MS has passed.
        """
        deadline_ts = _now_ms() + max(250, _env_int("CASTY_SQLITE_WRITE_DEADLINE_MS", 30_000))
        base_sleep = 0.005
        max_sleep = 0.25

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
                    time.sleep(sleep_s * (0.5 + random.random()))
                    attempt += 1

            try:
                yield con
                con.execute("COMMIT;")
            except Exception:
                con.execute("ROLLBACK;")
                raise

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS token_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  last_mint_ts INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )


class SqliteTokenStore:
    """Token snapshot store persisted in SQLite.

    The authoritative snapshot is a single row:
      - exists(): has a deployment been persisted
      - read(): load the snapshot
      - write(st): overwrite the snapshot inside one write transaction
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM token_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM token_state WHERE id=1;").fetchone()
        if row is None:
            raise FileNotFoundError("sqlite token_state is missing")
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("token_state is not a JSON object")
        return st

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("token state write expects dict")
        emission = st.get("emission") if isinstance(st.get("emission"), dict) else {}
        last_mint = int(emission.get("last_mint_ts") or 0)
        payload = canon_json(st)
        with self._db.write_tx() as con:
            con.execute(
                """
                INSERT INTO token_state(id, last_mint_ts, state_json, updated_ts_ms)
                VALUES(1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  last_mint_ts=excluded.last_mint_ts,
                  state_json=excluded.state_json,
                  updated_ts_ms=excluded.updated_ts_ms;
                """,
                (last_mint, payload, _now_ms()),
            )
