from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from referer.app.dependencies import reset_cached_dependencies
from referer.app.main import create_app
from referer.app.repositories.creator_repository import CreatorRepository
from referer.app.repositories.database import Database
from referer.app.repositories.source_repository import SourceRepository
from referer.app.repositories.video_repository import VideoRepository


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "state.db")
    db.initialize()
    return db


@pytest.fixture
def video_repository(database: Database) -> VideoRepository:
    return VideoRepository(database)


@pytest.fixture
def source_repository(database: Database) -> SourceRepository:
    return SourceRepository(database)


@pytest.fixture
def creator_repository(database: Database) -> CreatorRepository:
    return CreatorRepository(database)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    runtime_dir = tmp_path / "runtime-data"
    runtime_dir.mkdir(parents=True, exist_ok=True)
    return runtime_dir


@pytest.fixture
def client(data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setenv("REFERER_DATA_DIR", str(data_dir))
    monkeypatch.setenv("REFERER_YOUTUBE_CHANNEL_RESOLUTION_ENABLED", "0")
    monkeypatch.setenv("REFERER_PUBLIC_BASE_URL", "https://referer.test/")
    reset_cached_dependencies()

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client

    reset_cached_dependencies()
