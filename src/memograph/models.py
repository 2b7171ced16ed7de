"""Core dataclasses shared across the index, rewriter and graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import networkx as nx


@dataclass
class Link:
    """One ``[text](target)`` occurrence that points at another memo."""

    source: Path
    #: 1-based line number inside *source*
    line: int
    text: str
    raw_target: str
    #: Absolute path the raw target resolves to
    target: Path
    #: The link line and up to two lines either side
    context: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": str(self.source),
            "line": self.line,
            "text": self.text,
            "raw_target": self.raw_target,
            "target": str(self.target),
            "context": self.context,
        }


@dataclass
class ScanResult:
    """Everything :func:`memograph.parser.scan` extracts from one document."""

    links: list[Link] = field(default_factory=list)
    tags: list[str] | None = None
    title: str | None = None


@dataclass
class LinkCount:
    path: Path
    count: int


@dataclass
class LinkStatistics:
    total_links: int
    total_files: int
    average_links_per_file: float
    most_linked_files: list[LinkCount] = field(default_factory=list)


@dataclass
class TagCount:
    tag: str
    count: int


@dataclass
class TaggedMemo:
    """A memo as seen by the tag index."""

    path: Path
    title: str
    tags: list[str]
    last_modified: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "title": self.title,
            "tags": self.tags,
            "last_modified": self.last_modified.isoformat(),
        }


@dataclass
class LinkUpdateResult:
    files_updated: int = 0
    links_updated: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class GraphNode:
    id: str
    label: str
    size: int
    color: str
    title: str
    is_active: bool = False


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str


@dataclass
class GraphData:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def to_networkx(self) -> "nx.DiGraph":
        """Return the projection as a :class:`networkx.DiGraph` for layout."""
        import networkx as nx

        G: nx.DiGraph = nx.DiGraph()
        for node in self.nodes:
            G.add_node(
                node.id,
                label=node.label,
                size=node.size,
                color=node.color,
                title=node.title,
                is_active=node.is_active,
            )
        for edge in self.edges:
            G.add_edge(edge.source, edge.target)
        return G
