# tests/test_graph_persistence.py

import os
from datetime import date
from pathlib import Path

import pytest

import pubgraph.graph.storage as storage
from pubgraph.graph.storage import LATEST_NAME, load_latest_store, save_snapshot
from pubgraph.graph.store import CitationStore
from pubgraph.models.article import Article
from pubgraph.models.journal import Journal


@pytest.fixture
def graph_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    target = tmp_path / "graphs"
    monkeypatch.setattr(storage, "GRAPH_DIR", target)
    return target


def _store(*ids: int) -> CitationStore:
    return CitationStore.from_articles(
        Article(id=i, title=f"Article {i}", completed=date(2022, 1, 1), journal=Journal(id="J1", title="Nature"))
        for i in ids
    )


def test_save_snapshot_writes_named_file_and_latest(graph_dir):
    path = save_snapshot(_store(1, 2), name="unit-test-graph.pkl")

    assert path == graph_dir / "unit-test-graph.pkl"
    assert path.exists()
    assert (graph_dir / LATEST_NAME).exists()


def test_save_snapshot_default_name_is_timestamped(graph_dir):
    path = save_snapshot(_store(1))

    assert path.parent == graph_dir
    assert path.name.startswith("graph-")


def test_load_latest_store_returns_newest(graph_dir):
    older = save_snapshot(_store(1), name="older.pkl")
    os.utime(older, (1_000_000, 1_000_000))
    os.utime(graph_dir / LATEST_NAME, (1_000_000, 1_000_000))

    save_snapshot(_store(1, 2, 3), name="newer.pkl")

    loaded = load_latest_store()
    assert loaded is not None
    assert loaded.article_ids() == [1, 2, 3]


def test_load_latest_store_empty_dir(graph_dir):
    assert load_latest_store() is None


def test_explicit_directory_wins(tmp_path, graph_dir):
    other = tmp_path / "elsewhere"
    save_snapshot(_store(5), name="x.pkl", directory=other)

    assert load_latest_store(other).article_ids() == [5]
    assert load_latest_store() is None
