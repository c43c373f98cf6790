from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from uuid import uuid4

from referer.app.repositories.common import utc_now_iso
from referer.app.repositories.database import Database

# SQLite INTEGER is a signed 64-bit value.
MAX_TIMESTAMP_SECONDS = 2**63 - 1


@dataclass(frozen=True)
class SourceRecord:
    id: str
    video_id: str
    timestamp_seconds: int
    claim: str
    source_text: str | None
    source_url: str
    contributed_by: str | None
    created_at: str


_SOURCE_COLUMNS = """
    id, video_id, timestamp_seconds, claim, source_text, source_url, contributed_by, created_at
"""


class SourceRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_source(
        self,
        *,
        video_id: str,
        timestamp_seconds: int,
        claim: str,
        source_text: str | None,
        source_url: str,
        contributed_by: str | None,
    ) -> SourceRecord:
        if not 0 <= timestamp_seconds <= MAX_TIMESTAMP_SECONDS:
            raise ValueError(f"timestamp_seconds must be between 0 and {MAX_TIMESTAMP_SECONDS}")
        normalized_claim = claim.strip()
        if not normalized_claim:
            raise ValueError("claim must not be empty")

        record = SourceRecord(
            id=f"src_{uuid4().hex}",
            video_id=video_id,
            timestamp_seconds=timestamp_seconds,
            claim=normalized_claim,
            source_text=source_text,
            source_url=source_url,
            contributed_by=contributed_by,
            created_at=utc_now_iso(),
        )
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO sources (
                    id, video_id, timestamp_seconds, claim, source_text,
                    source_url, contributed_by, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.video_id,
                    record.timestamp_seconds,
                    record.claim,
                    record.source_text,
                    record.source_url,
                    record.contributed_by,
                    record.created_at,
                ),
            )
        return record

    def get_by_id(self, source_id: str) -> SourceRecord | None:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT {_SOURCE_COLUMNS} FROM sources WHERE id = ?",
                (source_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_source(row)

    def list_for_video(self, video_id: str) -> list[SourceRecord]:
        # rowid breaks ties between rows created within the same clock tick.
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_SOURCE_COLUMNS}
                FROM sources
                WHERE video_id = ?
                ORDER BY timestamp_seconds ASC, created_at ASC, rowid ASC
                """,
                (video_id,),
            ).fetchall()
        return [_row_to_source(row) for row in rows]

    def delete_source(self, source_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute("DELETE FROM sources WHERE id = ?", (source_id,))
        return cursor.rowcount > 0


def _row_to_source(row: sqlite3.Row) -> SourceRecord:
    return SourceRecord(
        id=str(row["id"]),
        video_id=str(row["video_id"]),
        timestamp_seconds=int(row["timestamp_seconds"]),
        claim=str(row["claim"]),
        source_text=str(row["source_text"]) if row["source_text"] is not None else None,
        source_url=str(row["source_url"]),
        contributed_by=(
            str(row["contributed_by"]) if row["contributed_by"] is not None else None
        ),
        created_at=str(row["created_at"]),
    )
