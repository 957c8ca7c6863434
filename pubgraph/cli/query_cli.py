# pubgraph/cli/query_cli.py

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from pubgraph.api.models import ArticlePayload, JournalRenameRequest
from pubgraph.api.query import CitationQueryService
from pubgraph.config.settings import settings
from pubgraph.errors import PubGraphError
from pubgraph.graph.io import load_store, save_store
from pubgraph.graph.storage import load_latest_store
from pubgraph.graph.store import CitationStore
from pubgraph.models.author import AuthorKey

app = typer.Typer(
    help="Read/query utilities over a saved citation graph."
)

console = Console()

GRAPH_FILE_HELP = (
    "Path to a saved graph pickle. "
    "If omitted, the latest graph in settings.graph_dir is used."
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve_graph(graph_file: Optional[Path]) -> Tuple[CitationStore, Optional[Path]]:
    """
    Load a saved store.

    If --graph-file is provided, that exact file is loaded.
    Otherwise, the latest snapshot in settings.graph_dir is used.
    """
    if graph_file is not None:
        path = Path(graph_file)
        if not path.exists():
            console.print(f"[red]Graph file not found:[/red] {path}")
            raise typer.Exit(code=1)
        return load_store(path), path

    store = load_latest_store(settings.graph_dir)
    if store is None:
        console.print(
            f"[red]No graph found in {settings.graph_dir}.[/red]\n"
            "Save a citation graph first, or pass --graph-file."
        )
        raise typer.Exit(code=1)

    return store, None


def _service(graph_file: Optional[Path]) -> CitationQueryService:
    store, _ = _resolve_graph(graph_file)
    return CitationQueryService(store)


def _author(name: str) -> AuthorKey:
    """
    Parse "Fore|Last" (or "Fore Last", split at the last space).
    """
    if "|" in name:
        fore, last = name.split("|", 1)
    elif " " in name.strip():
        fore, last = name.strip().rsplit(" ", 1)
    else:
        console.print(f"[red]Author must be 'Fore|Last' or 'Fore Last', got:[/red] {name!r}")
        raise typer.Exit(code=1)
    return AuthorKey(fore.strip(), last.strip())


def _print_counts(title: str, label: str, values: List[int]) -> None:
    console.print(f"[bold]{title}[/bold]")
    if not values:
        console.print("  (none)")
        return

    tbl = Table(show_header=True, header_style="bold")
    tbl.add_column("#", justify="right")
    tbl.add_column(label, justify="right")
    for i, value in enumerate(values, start=1):
        tbl.add_row(str(i), str(value))
    console.print(tbl)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command("citations")
def citations(
    article_id: int = typer.Argument(..., help="PMID of the cited article."),
    year: int = typer.Argument(..., help="Completion year of the citing articles."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    How often an article was cited by articles completed in a given year.
    """
    service = _service(graph_file)
    count = service.get_article_citations_by_year(article_id, year)
    console.print(f"Article [bold]{article_id}[/bold] cited {count} time(s) in {year}")


@app.command("impact-factor")
def impact_factor(
    journal_id: str = typer.Argument(..., help="Journal id."),
    year: int = typer.Argument(..., help="Target year."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Impact factor of a journal for a year.
    """
    service = _service(graph_file)
    value = service.get_impact_factor(journal_id, year)
    console.print(f"Impact factor of [bold]{journal_id}[/bold] for {year}: {value:.4f}")


@app.command("author-ranking")
def author_ranking(
    author: str = typer.Argument(..., help="Author as 'Fore|Last'."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Citation counts of an author's articles, most cited first.
    """
    key = _author(author)
    service = _service(graph_file)
    counts = service.get_articles_by_author_sorted_by_citations(key)
    _print_counts(f"Citation counts for {key}:", "Citations", counts)


@app.command("author-journal")
def author_journal(
    author: str = typer.Argument(..., help="Author as 'Fore|Last'."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Journal in which an author published the most articles.
    """
    key = _author(author)
    service = _service(graph_file)
    title = service.get_journal_with_most_articles_by_author(key)
    if not title:
        console.print(f"[yellow]No journal found for {key}.[/yellow]")
        return
    console.print(f"{key}: [bold]{title}[/bold]")


@app.command("link-authors")
def link_authors(
    author_a: str = typer.Argument(..., help="Starting author as 'Fore|Last'."),
    author_b: str = typer.Argument(..., help="Target author as 'Fore|Last'."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Fewest citation hops from author A's articles to author B's.
    """
    key_a, key_b = _author(author_a), _author(author_b)
    service = _service(graph_file)
    hops = service.get_min_articles_to_link_authors(key_a, key_b)
    if hops < 0:
        console.print(f"[yellow]{key_b} is not reachable from {key_a}.[/yellow]")
        return
    console.print(f"{key_a} -> {key_b}: {hops} hop(s)")


@app.command("simulate-add")
def simulate_add(
    article_file: Path = typer.Argument(..., help="JSON file holding one article."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Impact factor the article's journal would have with the article added.
    The saved graph is not modified.
    """
    if not article_file.exists():
        console.print(f"[red]Article file not found:[/red] {article_file}")
        raise typer.Exit(code=1)

    try:
        payload = ArticlePayload.model_validate(json.loads(article_file.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as exc:
        console.print(f"[red]Invalid article JSON:[/red] {exc}")
        raise typer.Exit(code=1)

    article = payload.to_article()
    service = _service(graph_file)
    try:
        value = service.add_article_and_update_if(article)
    except PubGraphError as exc:
        console.print(f"[red]Cannot simulate article {article.id}:[/red] {exc}")
        raise typer.Exit(code=1)

    journal_id = article.journal.id if article.journal else "?"
    console.print(
        f"With article [bold]{article.id}[/bold], journal {journal_id} "
        f"would have impact factor {value:.4f} for {article.completion_year}"
    )


@app.command("rename-journal")
def rename_journal(
    journal_id: str = typer.Argument(..., help="Journal whose articles are moved."),
    year: int = typer.Argument(..., help="Articles completed in or after this year move."),
    new_name: str = typer.Argument(..., help="Title of the target journal."),
    new_id: str = typer.Argument(..., help="Id of the target journal."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Move a journal's articles from a year on to a new journal id and title,
    then save the graph back.
    """
    try:
        request = JournalRenameRequest(journal_id=journal_id, year=year, new_name=new_name, new_id=new_id)
    except ValidationError as exc:
        console.print(f"[red]Invalid rename request:[/red] {exc}")
        raise typer.Exit(code=1)

    store, path = _resolve_graph(graph_file)
    service = CitationQueryService(store)

    changed = service.update_journal_name(request.journal_id, request.year, request.new_name, request.new_id)
    if not changed:
        console.print(f"[yellow]Nothing renamed for journal {request.journal_id}.[/yellow]")
        return

    target = save_store(store, path if path is not None else settings.default_graph_path)
    console.print(
        f"Journal [bold]{request.journal_id}[/bold] from {request.year} on is now "
        f"{request.new_name!r} ({request.new_id}); saved to {target}"
    )


@app.command("country-papers")
def country_papers(
    country: str = typer.Argument(..., help="Country of the funding grant."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Articles funded by a grant from a country.
    """
    service = _service(graph_file)
    ids = service.get_country_fund_papers(country)
    if not ids:
        console.print(f"[yellow]No articles funded in {country}.[/yellow]")
        return
    console.print(f"[bold]Articles funded in {country}:[/bold] " + ", ".join(str(i) for i in ids))


@app.command("keyword-counts")
def keyword_counts(
    keyword: str = typer.Argument(..., help="Exact keyword."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help=GRAPH_FILE_HELP),
) -> None:
    """
    Articles per completion year carrying a keyword, newest year first.
    """
    service = _service(graph_file)
    counts = service.get_article_count_by_keyword_in_past_years(keyword)
    _print_counts(f"Articles per year for '{keyword}':", "Articles", counts)
