"""
Timestamped snapshots of the citation store in a graph directory.

- `save_snapshot(store, name=None, directory=None) -> Path`
    * Pickles the store's graph into the directory (timestamped name by
      default) and refreshes a "graph-latest.pkl" copy next to it.

- `load_latest_store(directory=None) -> Optional[CitationStore]`
    * Loads the most recently modified snapshot, or None if there is none.

The directory defaults to `settings.graph_dir`; tests monkeypatch
`GRAPH_DIR` to a temporary path.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Optional

from pubgraph.config.settings import settings
from pubgraph.graph.io import load_store, save_store
from pubgraph.graph.store import CitationStore

logger = logging.getLogger(__name__)

GRAPH_DIR: Path = settings.graph_dir

LATEST_NAME = "graph-latest.pkl"


def _ensure_dir(directory: Optional[Path]) -> Path:
    """
    Ensure the target directory exists.

    If `directory` is None, fall back to the module-level GRAPH_DIR.
    """
    if directory is None:
        directory = GRAPH_DIR

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def save_snapshot(
    store: CitationStore,
    name: Optional[str] = None,
    directory: Optional[Path] = None,
) -> Path:
    """
    Persist the store and update the "latest" copy in the same directory.
    Returns the full Path of the snapshot written.
    """
    directory = _ensure_dir(directory)

    if name is None:
        ts = time.strftime("%Y%m%d-%H%M%S")
        name = f"graph-{ts}.pkl"

    path = save_store(store, directory / name)

    latest_path = directory / LATEST_NAME
    try:
        shutil.copy2(path, latest_path)
    except OSError:
        # The primary snapshot is already on disk; a stale "latest" copy
        # only affects convenience loading.
        logger.warning("Could not refresh %s", latest_path, exc_info=True)

    return path


def load_latest_store(directory: Optional[Path] = None) -> Optional[CitationStore]:
    """
    Load the most recently modified snapshot from the target directory.
    Returns None if the directory holds no snapshot files.
    """
    directory = _ensure_dir(directory)

    candidates = [p for p in directory.iterdir() if p.is_file()]
    if not candidates:
        return None

    latest = max(candidates, key=lambda p: p.stat().st_mtime)
    logger.info("Loading citation graph snapshot %s", latest)
    return load_store(latest)
