# tests/test_graph_io.py

import pickle
from datetime import date

import networkx as nx
import pytest

from pubgraph.graph.io import load_store, save_store
from pubgraph.graph.store import CitationStore
from pubgraph.models.article import Article
from pubgraph.models.author import Author
from pubgraph.models.journal import Journal


def build_toy_store() -> CitationStore:
    return CitationStore.from_articles(
        [
            Article(id=1, title="One", completed=date(2021, 1, 1), journal=Journal(id="J1", title="Nature")),
            Article(id=2, title="Two", completed=date(2022, 1, 1), authors=[Author("Ada", "Lovelace")], references=[1, 3]),
        ]
    )


def test_save_and_load_store(tmp_path):
    store = build_toy_store()

    # no suffix given; should default to .gpickle
    saved_path = save_store(store, tmp_path / "pubgraph_graph")

    assert saved_path.exists()
    assert saved_path.suffix == ".gpickle"

    loaded = load_store(saved_path)

    assert loaded.article_ids() == [1, 2]
    assert loaded.get_article(2).title == "Two"
    assert loaded.get_article(2).completed == date(2022, 1, 1)
    assert loaded.references_of(2) == [1, 3]
    assert loaded.journal_of(1).title == "Nature"


def test_saved_file_is_independent_snapshot(tmp_path):
    store = build_toy_store()
    path = save_store(store, tmp_path / "g.gpickle")

    store.insert_article(Article(id=9, title="after save"))

    assert load_store(path).has_article(9) is False


def test_load_store_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_store(tmp_path / "does_not_exist.gpickle")


def test_load_store_rejects_other_pickles(tmp_path):
    path = tmp_path / "plain.gpickle"
    with path.open("wb") as f:
        pickle.dump(nx.Graph(), f)

    with pytest.raises(TypeError):
        load_store(path)


def test_save_store_no_overwrite(tmp_path):
    store = build_toy_store()
    path = tmp_path / "graph.gpickle"
    save_store(store, path)

    with pytest.raises(FileExistsError):
        save_store(store, path, overwrite=False)
