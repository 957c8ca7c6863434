# tests/test_linkage.py

import threading
from datetime import date

from pubgraph.citations.linkage import AuthorLinkResolver
from pubgraph.graph.store import CitationStore
from pubgraph.models.article import Article
from pubgraph.models.author import Author, AuthorKey

ADA = Author("Ada", "Lovelace")
ALAN = Author("Alan", "Turing")
GRACE = Author("Grace", "Hopper")
EDSGER = Author("Edsger", "Dijkstra")


def build_toy_store() -> CitationStore:
    """
    Citation chain (citing -> cited):

        1 (Ada) -> 2 -> 3 -> 4 (Grace)
        1 (Ada) -> 5 -> 4
        6 (Alan) -> 1
        7 (Edsger), isolated
    """
    y = date(2022, 1, 1)
    return CitationStore.from_articles(
        [
            Article(id=4, title="target", completed=y, authors=[GRACE]),
            Article(id=3, title="hop", completed=y, references=[4]),
            Article(id=2, title="hop", completed=y, references=[3]),
            Article(id=5, title="shortcut", completed=y, references=[4]),
            Article(id=1, title="start", completed=y, authors=[ADA], references=[2, 5]),
            Article(id=6, title="upstream", completed=y, authors=[ALAN], references=[1]),
            Article(id=7, title="alone", completed=y, authors=[EDSGER]),
        ]
    )


def test_minimal_hop_count_is_found():
    resolver = AuthorLinkResolver(build_toy_store())

    assert resolver.get_min_articles_to_link_authors(ADA.key, GRACE.key) == 2
    assert resolver.get_min_articles_to_link_authors(ALAN.key, GRACE.key) == 3


def test_direction_matters():
    resolver = AuthorLinkResolver(build_toy_store())

    assert resolver.get_min_articles_to_link_authors(GRACE.key, ADA.key) == -1
    assert resolver.get_min_articles_to_link_authors(ALAN.key, ADA.key) == 1


def test_unreachable_and_unknown_authors():
    resolver = AuthorLinkResolver(build_toy_store())

    assert resolver.get_min_articles_to_link_authors(EDSGER.key, GRACE.key) == -1
    assert resolver.get_min_articles_to_link_authors(AuthorKey("No", "Body"), GRACE.key) == -1
    assert resolver.get_min_articles_to_link_authors(ADA.key, AuthorKey("No", "Body")) == -1


def test_shared_article_links_at_zero():
    store = build_toy_store()
    store.insert_article(Article(id=8, title="joint", completed=date(2023, 1, 1), authors=[ADA, EDSGER]))
    resolver = AuthorLinkResolver(store)

    assert resolver.get_min_articles_to_link_authors(ADA.key, ADA.key) == 0
    assert resolver.get_min_articles_to_link_authors(EDSGER.key, ADA.key) == 0


def test_cycles_terminate():
    store = CitationStore()
    store.insert_article(Article(id=1, title="a", authors=[ADA], references=[2]))
    store.insert_article(Article(id=2, title="b", references=[1]))
    store.insert_article(Article(id=3, title="c", authors=[GRACE]))
    resolver = AuthorLinkResolver(store)

    assert resolver.get_min_articles_to_link_authors(ADA.key, GRACE.key) == -1


def test_placeholders_are_traversed():
    store = CitationStore()
    store.insert_article(Article(id=1, title="a", authors=[ADA], references=[50]))
    store.insert_article(Article(id=2, title="b", authors=[GRACE]))
    resolver = AuthorLinkResolver(store)

    assert resolver.get_min_articles_to_link_authors(ADA.key, GRACE.key) == -1

    store.insert_article(Article(id=50, title="late", references=[2]))
    assert resolver.get_min_articles_to_link_authors(ADA.key, GRACE.key) == 2


def test_closed_store_gives_minus_one():
    store = build_toy_store()
    store.close()

    assert AuthorLinkResolver(store).get_min_articles_to_link_authors(ADA.key, GRACE.key) == -1


def test_writer_waits_until_query_has_read_the_store(monkeypatch):
    store = build_toy_store()
    original = store.articles_by_author
    writers = []

    def articles_then_write(author):
        if author == GRACE.key:
            # a new Ada article citing 4 directly, committed between the reads
            writer = threading.Thread(
                target=store.insert_article,
                args=(Article(id=9, title="late", completed=date(2023, 1, 1), authors=[ADA], references=[4]),),
            )
            writer.start()
            writer.join(timeout=0.1)
            writers.append((writer, writer.is_alive()))
        return original(author)

    monkeypatch.setattr(store, "articles_by_author", articles_then_write)

    resolver = AuthorLinkResolver(store)
    assert resolver.get_min_articles_to_link_authors(ADA.key, GRACE.key) == 2

    ((writer, blocked),) = writers
    assert blocked is True
    writer.join(timeout=5)
    assert not writer.is_alive()
    monkeypatch.undo()
    assert resolver.get_min_articles_to_link_authors(ADA.key, GRACE.key) == 1
