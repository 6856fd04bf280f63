from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Sequence
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.core import db as db_module
from backend.app.core.config import settings
from backend.app.core.rate_limiter import limiter
from backend.app.core.s3 import build_object_url
from backend.app.api import routes_assets
from backend.app.ingest.pipeline import IngestionClients
from backend.app.main import create_app
from backend.app.models import Asset, AssetStatus, Base, Workshop


class FakeMinio:
    def __init__(self) -> None:
        self._buckets: set[str] = set()
        self.objects: dict[tuple[str, str], bytes] = {}
        self.removed: list[tuple[str, str]] = []

    def bucket_exists(self, name: str) -> bool:
        return name in self._buckets

    def make_bucket(self, name: str) -> None:
        self._buckets.add(name)

    def put_object(self, bucket: str, object_name: str, data, length: int, *, content_type: str = "application/octet-stream") -> None:
        payload = data.read() if hasattr(data, "read") else data
        self._buckets.add(bucket)
        self.objects[(bucket, object_name)] = bytes(payload)

    def remove_object(self, bucket: str, object_name: str) -> None:
        self.removed.append((bucket, object_name))
        self.objects.pop((bucket, object_name), None)


class FakeEmbedder:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.error: Exception | None = None

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [[float(index), float(len(text))] for index, text in enumerate(texts)]


@pytest.fixture()
def fake_minio(monkeypatch: pytest.MonkeyPatch) -> FakeMinio:
    client = FakeMinio()
    monkeypatch.setattr(routes_assets, "get_minio_client", lambda: client)
    return client


@pytest.fixture()
def http_client(fake_minio: FakeMinio) -> Iterator[httpx.Client]:
    """HTTP client that serves objects out of the fake MinIO store."""

    def handler(request: httpx.Request) -> httpx.Response:
        bucket, _, key = unquote(request.url.path).lstrip("/").partition("/")
        data = fake_minio.objects.get((bucket, key))
        if data is None:
            return httpx.Response(404)
        return httpx.Response(200, content=data)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    try:
        yield client
    finally:
        client.close()


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def engine() -> Iterator:
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)


@pytest.fixture()
def clients(session_factory: sessionmaker, http_client: httpx.Client, embedder: FakeEmbedder) -> IngestionClients:
    return IngestionClients(
        session_factory=session_factory,
        http_client=http_client,
        embedder=embedder,
        chunk_size=1000,
        chunk_overlap=100,
    )


@pytest.fixture()
def workshop(session_factory: sessionmaker) -> Workshop:
    with session_factory() as session:
        workshop = Workshop(name="Retail Banking AI Sprint")
        session.add(workshop)
        session.commit()
        return workshop


@pytest.fixture()
def make_asset(session_factory: sessionmaker, fake_minio: FakeMinio, workshop: Workshop):
    """Store ``content`` in the fake bucket and create a PROCESSING asset for it."""

    def _make(content: bytes | None, name: str = "notes.txt") -> Asset:
        key = f"workshops/{workshop.id}/{name}"
        if content is not None:
            fake_minio.objects[(settings.MINIO_BUCKET, key)] = content
        with session_factory() as session:
            asset = Asset(
                workshop_id=workshop.id,
                name=name,
                url=build_object_url(key),
                storage_key=key,
                status=AssetStatus.PROCESSING.value,
            )
            session.add(asset)
            session.commit()
            return asset

    return _make


def _session_ctx(factory: sessionmaker):
    def _get_session() -> Iterator[Session]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _get_session


@pytest.fixture()
def app(monkeypatch: pytest.MonkeyPatch, session_factory: sessionmaker, clients: IngestionClients) -> TestClient:
    monkeypatch.setattr(limiter, "enabled", False)

    app = create_app(ingestion_clients=clients)
    app.dependency_overrides[db_module.get_session] = _session_ctx(session_factory)
    return TestClient(app)
