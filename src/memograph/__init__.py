"""memograph: backlink, tag and graph index over a corpus of linked memos."""

from memograph._logging import configure_logging
from memograph.backlinks import BacklinkIndex
from memograph.config import (
    ConfigProvider,
    ConfigurationError,
    CorpusConfig,
    StaticConfigProvider,
    TomlConfigProvider,
)
from memograph.db import IndexDB
from memograph.engine import MemoIndex
from memograph.events import EventBus, EventKind, EventSink, IndexEvent
from memograph.graph import GraphMode, GraphProjector
from memograph.models import (
    GraphData,
    GraphEdge,
    GraphNode,
    Link,
    LinkStatistics,
    LinkUpdateResult,
    ScanResult,
    TagCount,
    TaggedMemo,
)
from memograph.parser import scan
from memograph.resolver import LinkResolver, path_key
from memograph.rewriter import LinkRewriter
from memograph.store import DocumentStat, DocumentStore, LocalDocumentStore
from memograph.tags import TagIndex, TagMatchMode

__all__ = [
    "BacklinkIndex",
    "ConfigProvider",
    "ConfigurationError",
    "CorpusConfig",
    "DocumentStat",
    "DocumentStore",
    "EventBus",
    "EventKind",
    "EventSink",
    "GraphData",
    "GraphEdge",
    "GraphMode",
    "GraphNode",
    "GraphProjector",
    "IndexDB",
    "IndexEvent",
    "Link",
    "LinkResolver",
    "LinkRewriter",
    "LinkStatistics",
    "LinkUpdateResult",
    "LocalDocumentStore",
    "MemoIndex",
    "ScanResult",
    "StaticConfigProvider",
    "TagCount",
    "TagIndex",
    "TagMatchMode",
    "TaggedMemo",
    "TomlConfigProvider",
    "configure_logging",
    "path_key",
    "scan",
]
