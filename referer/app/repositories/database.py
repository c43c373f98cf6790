from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS videos (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    youtube_id TEXT NOT NULL UNIQUE,
    youtube_channel_id TEXT NULL,
    title TEXT NOT NULL,
    thumbnail_url TEXT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_videos_user_created
ON videos(user_id, created_at DESC);

CREATE TABLE IF NOT EXISTS sources (
    id TEXT PRIMARY KEY,
    video_id TEXT NOT NULL,
    timestamp_seconds INTEGER NOT NULL CHECK (timestamp_seconds >= 0),
    claim TEXT NOT NULL CHECK (length(trim(claim)) > 0),
    source_text TEXT NULL,
    source_url TEXT NOT NULL,
    contributed_by TEXT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY(video_id) REFERENCES videos(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_sources_video_timestamp
ON sources(video_id, timestamp_seconds, created_at);

CREATE TABLE IF NOT EXISTS creators (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE,
    youtube_channel_id TEXT NOT NULL UNIQUE,
    youtube_channel_name TEXT NULL,
    youtube_channel_avatar TEXT NULL,
    verified_at TEXT NOT NULL
);
"""


class Database:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA_SQL)
