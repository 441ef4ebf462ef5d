"""SQLite index of evidence streams and the results published to them."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Mapping, Sequence

from aws_netsec_compliance.audit.models import ResultRecord, StreamRecord

_SqlValue = str | bytes | int | float | None
_SqlParams = Sequence[_SqlValue] | Mapping[str, _SqlValue]


class SqliteStore:
    def __init__(self, path: str, wal: bool = True) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._closed = False
        if wal:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS streams (
                stream_id TEXT PRIMARY KEY,
                policy_path TEXT NOT NULL,
                labels TEXT NOT NULL,
                latest_artifact_id TEXT NOT NULL,
                result_count INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS results (
                artifact_id TEXT PRIMARY KEY,
                stream_id TEXT NOT NULL,
                status TEXT NOT NULL,
                observation_count INTEGER NOT NULL,
                finding_count INTEGER NOT NULL,
                risk_count INTEGER NOT NULL,
                location TEXT NOT NULL,
                checksum TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY(stream_id) REFERENCES streams(stream_id)
            );

            CREATE INDEX IF NOT EXISTS idx_results_stream_id ON results(stream_id);
            CREATE INDEX IF NOT EXISTS idx_streams_policy_path ON streams(policy_path);
            """
        )
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True

    def fetch_one(
        self,
        query: str,
        params: _SqlParams,
    ) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchone()

    def fetch_all(
        self,
        query: str,
        params: _SqlParams,
    ) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchall()

    def record_result(
        self,
        stream_id: str,
        policy_path: str,
        labels: str,
        result: ResultRecord,
    ) -> None:
        """Upsert the stream row and append the result in one transaction."""
        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO streams (
                        stream_id, policy_path, labels, latest_artifact_id,
                        result_count, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, 1, ?, ?)
                    ON CONFLICT(stream_id) DO UPDATE SET
                        policy_path = excluded.policy_path,
                        labels = excluded.labels,
                        latest_artifact_id = excluded.latest_artifact_id,
                        result_count = streams.result_count + 1,
                        updated_at = excluded.updated_at
                    """,
                    (
                        stream_id,
                        policy_path,
                        labels,
                        result.artifact_id,
                        result.created_at,
                        result.created_at,
                    ),
                )
                self._conn.execute(
                    """
                    INSERT INTO results (
                        artifact_id, stream_id, status, observation_count,
                        finding_count, risk_count, location, checksum, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        result.artifact_id,
                        result.stream_id,
                        result.status,
                        result.observation_count,
                        result.finding_count,
                        result.risk_count,
                        result.location,
                        result.checksum,
                        result.created_at,
                    ),
                )
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise

    def get_stream(self, stream_id: str) -> StreamRecord | None:
        row = self.fetch_one("SELECT * FROM streams WHERE stream_id = ?", (stream_id,))
        if row is None:
            return None
        return StreamRecord(**dict(row))

    def list_results(self, stream_id: str) -> list[ResultRecord]:
        rows = self.fetch_all(
            "SELECT * FROM results WHERE stream_id = ? ORDER BY created_at, rowid",
            (stream_id,),
        )
        return [ResultRecord(**dict(row)) for row in rows]
