# tests/test_lifecycle.py

import threading
from datetime import date

import networkx as nx
import pytest

from pubgraph.citations.cache import CitationCountCache
from pubgraph.citations.impact import ImpactFactorCalculator
from pubgraph.citations.lifecycle import ArticleLifecycleCoordinator
from pubgraph.errors import DuplicateArticleError, InvalidArticleError
from pubgraph.graph.store import CitationStore
from pubgraph.models.article import Article
from pubgraph.models.author import Author
from pubgraph.models.journal import Journal

J = Journal(id="J1", title="Journal of Graphs")
OTHER = Journal(id="J2", title="Other Letters")


def build_toy_store() -> CitationStore:
    return CitationStore.from_articles(
        [
            Article(id=10, title="a", completed=date(2021, 2, 1), journal=J, authors=[Author("Ada", "Lovelace")]),
            Article(id=11, title="b", completed=date(2021, 9, 1), journal=J),
            Article(id=12, title="c", completed=date(2022, 4, 1), journal=J),
            Article(id=20, title="x", completed=date(2023, 1, 1), journal=OTHER, references=[10, 11, 12]),
            Article(id=21, title="y", completed=date(2023, 7, 1), journal=OTHER, references=[10, 11, 99]),
            Article(id=22, title="z", completed=date(2022, 7, 1), journal=OTHER, references=[10]),
        ]
    )


def _coordinator(store):
    cache = CitationCountCache(store)
    calc = ImpactFactorCalculator(store, cache)
    return ArticleLifecycleCoordinator(store, cache, calc), cache


def build_single_citation_store() -> CitationStore:
    # 10 is cited once, by an article completed in 2023
    return CitationStore.from_articles(
        [
            Article(id=10, title="a", completed=date(2021, 2, 1), journal=J),
            Article(id=20, title="x", completed=date(2023, 1, 1), journal=OTHER, references=[10]),
        ]
    )


def _state(store, cache):
    G: nx.MultiDiGraph = store.snapshot_graph()
    nodes = {(n, tuple(sorted(d.items()))) for n, d in G.nodes(data=True)}
    edges = sorted((u, v, d.get("type")) for u, v, d in G.edges(data=True))
    return nodes, edges, cache.snapshot()


def test_simulated_article_counts_then_disappears():
    store = build_toy_store()
    coordinator, cache = _coordinator(store)
    cache.initialize()
    before = _state(store, cache)
    cited_2023_before = cache.get_in_year(10, 2023)

    new = Article(
        id=30,
        title="new",
        completed=date(2023, 3, 1),
        journal=J,
        authors=[Author("Grace", "Hopper")],
        keywords=["fresh"],
        references=[10, 12, 500],
    )
    value = coordinator.add_article_and_update_if(new)

    # base 10, 11, 12; 2023 citations 5 existing + 2 from the new article
    assert value == pytest.approx(7 / 3)
    assert _state(store, cache) == before
    assert cache.get_in_year(10, 2023) == cited_2023_before
    assert store.get_article(30) is None
    cache.verify()


def test_cache_built_lazily_by_the_coordinator():
    store = build_toy_store()
    coordinator, cache = _coordinator(store)

    value = coordinator.add_article_and_update_if(
        Article(id=30, title="new", completed=date(2022, 3, 1), journal=J, references=[10])
    )

    # base 10, 11 (2021); 2022 citations: 22 -> 10 and the new one -> 10
    assert value == pytest.approx(2 / 2)
    assert cache.is_ready
    assert cache.get_in_year(10, 2022) == 1


def test_new_journal_is_removed_afterwards():
    store = build_toy_store()
    coordinator, cache = _coordinator(store)
    cache.initialize()
    before = _state(store, cache)

    value = coordinator.add_article_and_update_if(
        Article(id=31, title="first issue", completed=date(2023, 1, 1), journal=Journal(id="J9", title="Brand New"), references=[11])
    )

    assert value == 0.0
    assert store.get_journal("J9") is None
    assert _state(store, cache) == before


def test_placeholder_target_restored():
    store = build_toy_store()
    coordinator, cache = _coordinator(store)
    cache.initialize()
    before = _state(store, cache)

    # 99 is only known as a citation target of article 21
    coordinator.add_article_and_update_if(
        Article(id=99, title="late arrival", completed=date(2023, 1, 1), journal=J, references=[12])
    )

    assert _state(store, cache) == before
    assert store.has_article(99) is False
    assert store.references_of(21) == [10, 11, 99]


def test_duplicate_id_leaves_no_partial_state():
    store = build_toy_store()
    coordinator, cache = _coordinator(store)
    cache.initialize()
    before = _state(store, cache)

    with pytest.raises(DuplicateArticleError):
        coordinator.add_article_and_update_if(
            Article(id=10, title="again", completed=date(2023, 1, 1), journal=J, references=[11, 12])
        )

    assert _state(store, cache) == before


@pytest.mark.parametrize(
    "article",
    [
        Article(id=40, title="no journal", completed=date(2023, 1, 1)),
        Article(id=41, title="no date", journal=J),
    ],
)
def test_invalid_article_rejected(article):
    store = build_toy_store()
    coordinator, cache = _coordinator(store)
    before = _state(store, cache)

    with pytest.raises(InvalidArticleError):
        coordinator.add_article_and_update_if(article)

    assert _state(store, cache) == before


def test_failure_midway_reverts_store_and_cache(monkeypatch):
    store = build_toy_store()
    coordinator, cache = _coordinator(store)
    cache.initialize()
    before = _state(store, cache)

    def broken_compute(journal_id, year):
        raise RuntimeError("calculator down")

    monkeypatch.setattr(coordinator.calculator, "compute", broken_compute)

    with pytest.raises(RuntimeError):
        coordinator.add_article_and_update_if(
            Article(id=32, title="doomed", completed=date(2023, 1, 1), journal=J, references=[10, 11])
        )

    assert _state(store, cache) == before
    cache.verify()


def test_existing_empty_journal_survives():
    store = build_toy_store()
    store.insert_journal(Journal(id="J5", title="Empty Quarterly"))
    coordinator, cache = _coordinator(store)
    cache.initialize()
    before = _state(store, cache)

    value = coordinator.add_article_and_update_if(
        Article(id=33, title="lone", completed=date(2023, 2, 1), journal=Journal(id="J5", title="Empty Quarterly"),
                references=[10])
    )

    assert value == 0.0
    assert store.get_journal("J5") is not None
    assert store.journal_article_count("J5") == 0
    assert _state(store, cache) == before


def test_cache_dropped_before_simulation_is_rebuilt(monkeypatch):
    store = build_single_citation_store()
    coordinator, cache = _coordinator(store)
    original = cache.ensure_initialized
    calls = []

    def init_then_drop_once():
        ready = original()
        calls.append(ready)
        if len(calls) == 1:
            cache.drop()
        return ready

    monkeypatch.setattr(cache, "ensure_initialized", init_then_drop_once)

    value = coordinator.add_article_and_update_if(
        Article(id=30, title="new", completed=date(2023, 3, 1), journal=J, references=[10])
    )

    # base is 10 (2021); 2023 citations: 20 -> 10 and the new one -> 10
    assert value == pytest.approx(2.0)
    assert calls == [True, True]
    assert cache.get_in_year(10, 2023) == 1
    cache.verify()


def test_rebuild_waits_for_running_simulation(monkeypatch):
    store = build_single_citation_store()
    coordinator, cache = _coordinator(store)
    cache.initialize()
    original_compute = coordinator.calculator.compute
    rebuilder = threading.Thread(target=cache.rebuild)

    def compute_during_rebuild(journal_id, year):
        rebuilder.start()
        rebuilder.join(timeout=0.1)
        # the rebuild is parked on the store lock, the cache still holds +1
        assert rebuilder.is_alive()
        assert cache.get_in_year(10, 2023) == 2
        return original_compute(journal_id, year)

    monkeypatch.setattr(coordinator.calculator, "compute", compute_during_rebuild)

    value = coordinator.add_article_and_update_if(
        Article(id=30, title="new", completed=date(2023, 3, 1), journal=J, references=[10])
    )
    rebuilder.join(timeout=5)

    assert value == pytest.approx(2.0)
    assert not rebuilder.is_alive()
    assert cache.is_ready
    assert cache.get_in_year(10, 2023) == 1
    cache.verify()
