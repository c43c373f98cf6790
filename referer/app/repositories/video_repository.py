from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from uuid import uuid4

from referer.app.repositories.common import utc_now_iso
from referer.app.repositories.database import Database


class VideoAlreadyRegisteredError(Exception):
    def __init__(self, youtube_id: str) -> None:
        super().__init__(f"YouTube video is already registered: {youtube_id}")
        self.youtube_id = youtube_id


@dataclass(frozen=True)
class VideoRecord:
    id: str
    user_id: str
    youtube_id: str
    youtube_channel_id: str | None
    title: str
    thumbnail_url: str | None
    created_at: str
    updated_at: str


_VIDEO_COLUMNS = """
    id, user_id, youtube_id, youtube_channel_id, title, thumbnail_url, created_at, updated_at
"""


class VideoRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_video(
        self,
        *,
        user_id: str,
        youtube_id: str,
        title: str,
        thumbnail_url: str | None,
        youtube_channel_id: str | None,
    ) -> VideoRecord:
        now_iso = utc_now_iso()
        record = VideoRecord(
            id=f"vid_{uuid4().hex}",
            user_id=user_id,
            youtube_id=youtube_id,
            youtube_channel_id=youtube_channel_id,
            title=title,
            thumbnail_url=thumbnail_url,
            created_at=now_iso,
            updated_at=now_iso,
        )
        try:
            with self._db.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO videos (
                        id, user_id, youtube_id, youtube_channel_id, title,
                        thumbnail_url, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.user_id,
                        record.youtube_id,
                        record.youtube_channel_id,
                        record.title,
                        record.thumbnail_url,
                        record.created_at,
                        record.updated_at,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise VideoAlreadyRegisteredError(youtube_id) from exc
        return record

    def get_by_id(self, video_id: str) -> VideoRecord | None:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE id = ?",
                (video_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_video(row)

    def get_by_youtube_id(self, youtube_id: str) -> VideoRecord | None:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE youtube_id = ?",
                (youtube_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_video(row)

    def list_for_user(self, user_id: str) -> list[VideoRecord]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_VIDEO_COLUMNS}
                FROM videos
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
        return [_row_to_video(row) for row in rows]

    def list_missing_channel(self, user_id: str) -> list[VideoRecord]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_VIDEO_COLUMNS}
                FROM videos
                WHERE user_id = ? AND youtube_channel_id IS NULL
                ORDER BY created_at ASC, rowid ASC
                """,
                (user_id,),
            ).fetchall()
        return [_row_to_video(row) for row in rows]

    def set_channel_id(self, video_id: str, channel_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE videos
                SET youtube_channel_id = ?, updated_at = ?
                WHERE id = ?
                """,
                (channel_id, utc_now_iso(), video_id),
            )
        return cursor.rowcount > 0

    def delete_video(self, video_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute("DELETE FROM videos WHERE id = ?", (video_id,))
        return cursor.rowcount > 0


def _row_to_video(row: sqlite3.Row) -> VideoRecord:
    return VideoRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        youtube_id=str(row["youtube_id"]),
        youtube_channel_id=(
            str(row["youtube_channel_id"]) if row["youtube_channel_id"] is not None else None
        ),
        title=str(row["title"]),
        thumbnail_url=str(row["thumbnail_url"]) if row["thumbnail_url"] is not None else None,
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
    )
