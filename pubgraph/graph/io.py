# pubgraph/graph/io.py

from __future__ import annotations

import logging
import pickle
from pathlib import Path
from typing import Union

import networkx as nx

from pubgraph.graph.store import CitationStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def save_store(
    store: CitationStore,
    path: PathLike,
    overwrite: bool = True,
) -> Path:
    """
    Serialize a consistent snapshot of the store's graph to disk using pickle.

    - If `path` has no suffix, `.gpickle` is appended.
    - Creates parent directories if needed.
    - If `overwrite` is False and the file already exists, raises FileExistsError.
    """
    output_path = Path(path)

    if output_path.suffix == "":
        output_path = output_path.with_suffix(".gpickle")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Graph file already exists and overwrite=False: {output_path}")

    graph = store.snapshot_graph()
    with output_path.open("wb") as f:
        pickle.dump(graph, f, protocol=pickle.HIGHEST_PROTOCOL)

    logger.info(
        "Saved citation graph (%d nodes, %d edges) to %s",
        graph.number_of_nodes(),
        graph.number_of_edges(),
        output_path,
    )
    return output_path


def load_store(path: PathLike) -> CitationStore:
    """
    Load a citation store from a pickled graph file.

    Raises FileNotFoundError if the file is missing and TypeError if it does
    not contain a MultiDiGraph.
    """
    p = Path(path)
    with p.open("rb") as f:
        graph = pickle.load(f)

    if not isinstance(graph, nx.MultiDiGraph):
        raise TypeError(f"{p} does not contain a MultiDiGraph (got {type(graph).__name__})")

    return CitationStore(graph)
