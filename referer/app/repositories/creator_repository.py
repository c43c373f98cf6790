from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from uuid import uuid4

from referer.app.repositories.common import utc_now_iso
from referer.app.repositories.database import Database


class ChannelAlreadyClaimedError(Exception):
    def __init__(self, channel_id: str) -> None:
        super().__init__(f"YouTube channel is already linked to another account: {channel_id}")
        self.channel_id = channel_id


@dataclass(frozen=True)
class CreatorRecord:
    id: str
    user_id: str
    youtube_channel_id: str
    youtube_channel_name: str | None
    youtube_channel_avatar: str | None
    verified_at: str


_CREATOR_COLUMNS = """
    id, user_id, youtube_channel_id, youtube_channel_name, youtube_channel_avatar, verified_at
"""


class CreatorRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def get_by_user(self, user_id: str) -> CreatorRecord | None:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT {_CREATOR_COLUMNS} FROM creators WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_creator(row)

    def upsert_for_user(
        self,
        *,
        user_id: str,
        channel_id: str,
        channel_name: str | None,
        channel_avatar: str | None,
    ) -> CreatorRecord:
        try:
            with self._db.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO creators (
                        id, user_id, youtube_channel_id, youtube_channel_name,
                        youtube_channel_avatar, verified_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        youtube_channel_id = excluded.youtube_channel_id,
                        youtube_channel_name = excluded.youtube_channel_name,
                        youtube_channel_avatar = excluded.youtube_channel_avatar,
                        verified_at = excluded.verified_at
                    """,
                    (
                        f"crt_{uuid4().hex}",
                        user_id,
                        channel_id,
                        channel_name,
                        channel_avatar,
                        utc_now_iso(),
                    ),
                )
                row = conn.execute(
                    f"SELECT {_CREATOR_COLUMNS} FROM creators WHERE user_id = ?",
                    (user_id,),
                ).fetchone()
        except sqlite3.IntegrityError as exc:
            if "youtube_channel_id" in str(exc):
                raise ChannelAlreadyClaimedError(channel_id) from exc
            raise

        if row is None:
            raise RuntimeError(f"creator upsert did not persist a row for user_id={user_id}")
        return _row_to_creator(row)

    def delete_for_user(self, user_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute("DELETE FROM creators WHERE user_id = ?", (user_id,))
        return cursor.rowcount > 0


def _row_to_creator(row: sqlite3.Row) -> CreatorRecord:
    return CreatorRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        youtube_channel_id=str(row["youtube_channel_id"]),
        youtube_channel_name=(
            str(row["youtube_channel_name"]) if row["youtube_channel_name"] is not None else None
        ),
        youtube_channel_avatar=(
            str(row["youtube_channel_avatar"])
            if row["youtube_channel_avatar"] is not None
            else None
        ),
        verified_at=str(row["verified_at"]),
    )
