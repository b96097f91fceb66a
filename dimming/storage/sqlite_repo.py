from __future__ import annotations
import aiosqlite
from datetime import datetime, timezone
from typing import Dict, List, Optional
from ..domain.errors import ConfigUnavailable
from ..domain.models import AutoMode, OutputEvent


class SQLiteRepository:
    """Settings store and output history backed by one SQLite file."""

    def __init__(self, path: str) -> None:
        self._path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS outputs (
                    ts_utc TEXT NOT NULL,
                    enabled INTEGER NOT NULL,
                    reason TEXT NOT NULL,
                    ok INTEGER NOT NULL,
                    error TEXT,
                    mode INTEGER NOT NULL,
                    running_average REAL NOT NULL
                )
                """
            )
            await db.execute("CREATE INDEX IF NOT EXISTS idx_outputs_ts ON outputs(ts_utc)")
            await db.commit()

    # --- ConfigStore ---

    async def _get_raw(self, key: str) -> Optional[str]:
        try:
            async with aiosqlite.connect(self._path) as db:
                cur = await db.execute("SELECT value FROM settings WHERE key = ?", (key,))
                row = await cur.fetchone()
        except aiosqlite.Error as e:
            raise ConfigUnavailable(f"Cannot read setting {key}: {e}") from e
        return row[0] if row else None

    async def _put_raw(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO settings(key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                (key, value, now),
            )
            await db.commit()

    async def get_int(self, key: str, default: int = 0) -> int:
        raw = await self._get_raw(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigUnavailable(f"Setting {key} is not an int: {raw!r}") from e

    async def get_string(self, key: str) -> Optional[str]:
        return await self._get_raw(key)

    async def put_int(self, key: str, value: int) -> None:
        await self._put_raw(key, str(int(value)))

    async def put_string(self, key: str, value: str) -> None:
        await self._put_raw(key, value)

    async def get_all_settings(self) -> Dict[str, str]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute("SELECT key, value FROM settings")
            rows = await cur.fetchall()
        return {k: v for k, v in rows}

    # --- OutputRecorder ---

    async def insert_output(self, e: OutputEvent) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO outputs(ts_utc,enabled,reason,ok,error,mode,running_average) VALUES (?,?,?,?,?,?,?)",
                (
                    e.ts_utc.isoformat(),
                    1 if e.enabled else 0,
                    e.reason,
                    1 if e.ok else 0,
                    e.error,
                    int(e.mode),
                    float(e.running_average),
                ),
            )
            await db.commit()

    async def query_outputs(self, start_ts: str, end_ts: str, limit: int) -> List[OutputEvent]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,enabled,reason,ok,error,mode,running_average
                FROM outputs
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start_ts, end_ts, limit),
            )
            rows = await cur.fetchall()
        out: list[OutputEvent] = []
        for ts, enabled, reason, ok, err, mode, avg in rows:
            try:
                auto_mode = AutoMode(mode)
            except ValueError:
                auto_mode = AutoMode.OFF
            out.append(
                OutputEvent(
                    ts_utc=datetime.fromisoformat(ts),
                    enabled=bool(enabled),
                    reason=reason,
                    ok=bool(ok),
                    error=err,
                    mode=auto_mode,
                    running_average=float(avg),
                )
            )
        return list(reversed(out))
