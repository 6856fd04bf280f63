from __future__ import annotations

import uuid

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.ingest import chunking, parsers, pipeline, store
from backend.app.ingest.chunking import Chunk
from backend.app.ingest.errors import PersistenceError
from backend.app.ingest.pipeline import IndexResult, IngestionClients, index_asset
from backend.app.models import Asset, AssetStatus, DocumentChunk


def _text(length: int) -> str:
    words = "market signal backlog dossier opportunity "
    return (words * (length // len(words) + 1))[:length]


def _chunks(session_factory, asset_id: uuid.UUID) -> list[DocumentChunk]:
    with session_factory() as session:
        return (
            session.query(DocumentChunk)
            .filter(DocumentChunk.asset_id == asset_id)
            .order_by(DocumentChunk.chunk_index)
            .all()
        )


def _asset(session_factory, asset_id: uuid.UUID) -> Asset:
    with session_factory() as session:
        return session.get(Asset, asset_id)


def _ingest_count(status: str) -> float:
    return REGISTRY.get_sample_value("workshop_ingest_results_total", {"status": status}) or 0.0


def test_plain_text_document_end_to_end(clients: IngestionClients, make_asset, session_factory, embedder) -> None:
    text = _text(2500)
    asset = make_asset(text.encode("utf-8"))
    before = _ingest_count("succeeded")

    result = index_asset(asset.id, clients=clients)

    assert result == IndexResult(success=True, chunks_processed=3)
    assert result.to_payload() == {"success": True, "chunksProcessed": 3}
    assert len(embedder.calls) == 1
    assert embedder.calls[0] == [text[0:1000], text[900:1900], text[1800:2500]]

    rows = _chunks(session_factory, asset.id)
    assert [row.chunk_index for row in rows] == [0, 1, 2]
    assert [row.content for row in rows] == embedder.calls[0]
    assert len(rows[-1].content) == 700
    assert all(len(row.embedding) == settings.EMBEDDING_DIM for row in rows)
    assert rows[1].embedding[0] == pytest.approx(1.0)

    stored = _asset(session_factory, asset.id)
    assert stored.status == AssetStatus.READY.value
    assert stored.error is None
    assert _ingest_count("succeeded") == before + 1


def test_empty_document_is_ready_without_embedding(clients: IngestionClients, make_asset, session_factory, embedder) -> None:
    asset = make_asset(b"")

    result = index_asset(asset.id, clients=clients)

    assert result == IndexResult(success=True, chunks_processed=0)
    assert embedder.calls == []
    assert _chunks(session_factory, asset.id) == []
    assert _asset(session_factory, asset.id).status == AssetStatus.READY.value


def test_embedding_failure_stores_nothing_and_marks_error(clients: IngestionClients, make_asset, session_factory, embedder) -> None:
    embedder.error = RuntimeError("quota exhausted")
    asset = make_asset(_text(1500).encode("utf-8"))
    before = _ingest_count("failed")

    result = index_asset(asset.id, clients=clients)

    assert result.success is False
    assert result.chunks_processed == 0
    assert "quota exhausted" in result.error
    assert _chunks(session_factory, asset.id) == []
    stored = _asset(session_factory, asset.id)
    assert stored.status == AssetStatus.ERROR.value
    assert "quota exhausted" in stored.error
    assert _ingest_count("failed") == before + 1


def test_missing_source_file_marks_error(clients: IngestionClients, make_asset, session_factory, embedder) -> None:
    asset = make_asset(None)

    result = index_asset(asset.id, clients=clients)

    assert result.success is False
    assert "Failed to fetch file" in result.error
    assert embedder.calls == []
    assert _asset(session_factory, asset.id).status == AssetStatus.ERROR.value


def test_extraction_failure_marks_error(
    clients: IngestionClients, make_asset, session_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _broken(data: bytes) -> str:
        raise RuntimeError("corrupt xref table")

    monkeypatch.setattr(parsers, "_pdf_text_pymupdf", _broken)
    monkeypatch.setattr(parsers, "_pdf_text_pdfminer", _broken)
    asset = make_asset(b"%PDF-1.7 broken", name="strategy.pdf")

    result = index_asset(asset.id, clients=clients)

    assert result.success is False
    assert "Unable to parse PDF document" in result.error
    assert _asset(session_factory, asset.id).status == AssetStatus.ERROR.value


def test_persistence_failure_marks_error(
    clients: IngestionClients, make_asset, session_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _fail(*args, **kwargs):
        raise PersistenceError("disk full")

    monkeypatch.setattr(store, "replace_chunks", _fail)
    asset = make_asset(_text(300).encode("utf-8"))

    result = index_asset(asset.id, clients=clients)

    assert result == IndexResult(success=False, chunks_processed=0, error="disk full")
    stored = _asset(session_factory, asset.id)
    assert stored.status == AssetStatus.ERROR.value
    assert stored.error == "disk full"


@pytest.mark.parametrize("asset_id", [uuid.uuid4(), "not-a-uuid", None])
def test_unknown_asset_is_reported(clients: IngestionClients, embedder, asset_id) -> None:
    result = index_asset(asset_id, clients=clients)

    assert result == IndexResult(success=False, chunks_processed=0, error=pipeline.ASSET_NOT_FOUND)
    assert result.to_payload()["error"] == "Asset not found"
    assert embedder.calls == []


def test_reindex_overwrites_previous_chunks(
    clients: IngestionClients, make_asset, session_factory, fake_minio
) -> None:
    asset = make_asset(_text(2500).encode("utf-8"))
    assert index_asset(asset.id, clients=clients).chunks_processed == 3

    shorter = _text(1000)
    fake_minio.objects[(settings.MINIO_BUCKET, asset.storage_key)] = shorter.encode("utf-8")
    result = index_asset(asset.id, clients=clients)

    assert result == IndexResult(success=True, chunks_processed=1)
    rows = _chunks(session_factory, asset.id)
    assert [(row.chunk_index, row.content) for row in rows] == [(0, shorter)]
    assert _asset(session_factory, asset.id).status == AssetStatus.READY.value


def test_failed_reindex_keeps_previous_chunks(
    clients: IngestionClients, make_asset, session_factory, embedder
) -> None:
    asset = make_asset(_text(2000).encode("utf-8"))
    assert index_asset(asset.id, clients=clients).success

    embedder.error = RuntimeError("provider down")
    result = index_asset(asset.id, clients=clients)

    assert result.success is False
    assert len(_chunks(session_factory, asset.id)) == 3
    assert _asset(session_factory, asset.id).status == AssetStatus.ERROR.value


def test_chunk_window_comes_from_clients(
    session_factory, http_client, embedder, make_asset
) -> None:
    small = IngestionClients(
        session_factory=session_factory,
        http_client=http_client,
        embedder=embedder,
        chunk_size=10,
        chunk_overlap=2,
    )
    asset = make_asset(b"abcdefghijklmnopqrstuvwxyz")

    result = index_asset(asset.id, clients=small)

    assert result.chunks_processed == 3
    assert [row.content for row in _chunks(session_factory, asset.id)] == [
        "abcdefghij",
        "ijklmnopqr",
        "qrstuvwxyz",
    ]


def test_failure_after_chunks_flushed_rolls_them_back(
    clients: IngestionClients, make_asset, session_factory, embedder, monkeypatch: pytest.MonkeyPatch
) -> None:
    original_mark_status = store.mark_status

    def _mark_status(session, asset_id, status, **kwargs):
        if status is AssetStatus.READY:
            raise PersistenceError("status update rejected")
        return original_mark_status(session, asset_id, status, **kwargs)

    monkeypatch.setattr(store, "mark_status", _mark_status)
    asset = make_asset(_text(2500).encode("utf-8"))

    result = index_asset(asset.id, clients=clients)

    assert len(embedder.calls) == 1
    assert result == IndexResult(success=False, chunks_processed=0, error="status update rejected")
    assert _chunks(session_factory, asset.id) == []
    assert _asset(session_factory, asset.id).status == AssetStatus.ERROR.value


def test_commit_failure_is_reported_as_persistence_error(
    clients: IngestionClients, make_asset, session_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    original_commit = Session.commit
    attempts: list[int] = []

    def _commit(self: Session) -> None:
        attempts.append(1)
        if len(attempts) == 1:
            raise SQLAlchemyError("connection lost")
        original_commit(self)

    asset = make_asset(_text(1500).encode("utf-8"))
    monkeypatch.setattr(Session, "commit", _commit)

    result = index_asset(asset.id, clients=clients)

    assert result.success is False
    assert result.error.startswith("Failed to commit ingestion results")
    assert _chunks(session_factory, asset.id) == []
    stored = _asset(session_factory, asset.id)
    assert stored.status == AssetStatus.ERROR.value
    assert "connection lost" in stored.error


def test_duplicate_chunk_rows_fail_as_one_batch(
    clients: IngestionClients, make_asset, session_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    asset = make_asset(_text(2500).encode("utf-8"))
    assert index_asset(asset.id, clients=clients).chunks_processed == 3
    previous = [row.content for row in _chunks(session_factory, asset.id)]

    def _duplicate_indexes(text: str, *, chunk_size: int, overlap: int) -> list[Chunk]:
        return [Chunk(index=0, text=text[:10], start=0, end=10), Chunk(index=0, text=text[10:20], start=10, end=20)]

    monkeypatch.setattr(chunking, "chunk_text", _duplicate_indexes)

    result = index_asset(asset.id, clients=clients)

    assert result.success is False
    assert result.error.startswith("Failed to store chunks")
    assert [row.content for row in _chunks(session_factory, asset.id)] == previous
    assert _asset(session_factory, asset.id).status == AssetStatus.ERROR.value
