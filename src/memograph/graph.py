"""Graph projector: bounded node/edge sets around the active memo.

Uses :mod:`networkx` to assemble the subgraph; the resulting
:class:`~memograph.models.GraphData` is plain data the hosting view can
serialize straight to its renderer.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path

import networkx as nx

from memograph.backlinks import BacklinkIndex
from memograph.corpus import list_corpus
from memograph.models import GraphData, GraphEdge, GraphNode, Link
from memograph.resolver import path_key
from memograph.store import DocumentStore

log = logging.getLogger(__name__)

MIN_NODE_SIZE = 20
MAX_NODE_SIZE = 50
SIZE_PER_CONNECTION = 3

ACTIVE_COLOR = "#FF6B35"
HIGH_COLOR = "#2E8B57"
MEDIUM_COLOR = "#4A90E2"
LOW_COLOR = "#87CEEB"


class GraphMode(str, enum.Enum):
    #: Active memo and its direct neighbours
    FOCUS = "focus"
    #: Neighbours of the neighbours as well
    CONTEXT = "context"
    #: Whole corpus
    FULL = "full"


def node_size(connection_count: int) -> int:
    return max(MIN_NODE_SIZE, min(MAX_NODE_SIZE, MIN_NODE_SIZE + connection_count * SIZE_PER_CONNECTION))


def node_color(is_active: bool, connection_count: int) -> str:
    if is_active:
        return ACTIVE_COLOR
    if connection_count > 5:
        return HIGH_COLOR
    if connection_count > 2:
        return MEDIUM_COLOR
    return LOW_COLOR


class GraphProjector:
    """Builds :class:`GraphData` from the backlink index's query surface."""

    def __init__(self, backlinks: BacklinkIndex, store: DocumentStore) -> None:
        self.backlinks = backlinks
        self.store = store

    async def generate_graph_data(self, mode: GraphMode | str, active: Path | None = None) -> GraphData:
        mode = GraphMode(mode)
        corpus = {path_key(p): p for p in await list_corpus(self.store, await self.backlinks.config())}
        outbound: dict[str, list[Link]] = {}

        if mode is GraphMode.FULL:
            selected = set(corpus)
        elif active is None:
            selected = set()
        else:
            selected = await self._neighbourhood(Path(active), outbound)
            if mode is GraphMode.CONTEXT:
                for key in list(selected):
                    if key in corpus:
                        selected |= await self._neighbourhood(corpus[key], outbound)
            # Only real corpus memos become nodes.
            selected &= corpus.keys()

        active_key = path_key(active) if active is not None else None
        G: nx.DiGraph = nx.DiGraph()
        for key, path in corpus.items():
            if key not in selected:
                continue
            backlink_count = len(self.backlinks.get_backlinks(path))
            outbound_count = len(await self._outbound(path, outbound))
            connections = backlink_count + outbound_count
            is_active = key == active_key
            label = path.stem
            G.add_node(
                str(path),
                label=label,
                size=node_size(connections),
                color=node_color(is_active, connections),
                title=f"{label}\nBacklinks: {backlink_count}\nOutbound: {outbound_count}",
                is_active=is_active,
            )

        for key, path in corpus.items():
            if key not in selected:
                continue
            for link in await self._outbound(path, outbound):
                target_key = path_key(link.target)
                if target_key in selected:
                    # DiGraph keeps one edge per ordered pair.
                    G.add_edge(str(path), str(corpus[target_key]))

        log.debug("Graph %s: %d nodes, %d edges", mode.value, G.number_of_nodes(), G.number_of_edges())
        return GraphData(
            nodes=[GraphNode(id=node, **attrs) for node, attrs in G.nodes(data=True)],
            edges=[GraphEdge(id=f"{src}->{tgt}", source=src, target=tgt) for src, tgt in G.edges()],
        )

    async def _neighbourhood(self, path: Path, outbound: dict[str, list[Link]]) -> set[str]:
        keys = {path_key(path)}
        keys.update(path_key(link.source) for link in self.backlinks.get_backlinks(path))
        keys.update(path_key(link.target) for link in await self._outbound(path, outbound))
        return keys

    async def _outbound(self, path: Path, cache: dict[str, list[Link]]) -> list[Link]:
        key = path_key(path)
        if key not in cache:
            cache[key] = await self.backlinks.get_outbound_links(path)
        return cache[key]
