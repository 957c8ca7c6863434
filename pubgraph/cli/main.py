# pubgraph/cli/main.py

from __future__ import annotations

import logging

import typer

from pubgraph.cli import query_cli
from pubgraph.config.settings import settings

app = typer.Typer(help="CLI tools for the bibliographic citation graph.")

app.add_typer(query_cli.app, name="query")


@app.callback()
def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


if __name__ == "__main__":
    app()
