"""MemoIndex: one object owning every index over a memo corpus.

The hosting editor forwards its file-change notifications here; the facade
keeps the backlink and tag indexes in step and publishes an
:class:`~memograph.events.IndexEvent` for each change.
"""

from __future__ import annotations

from pathlib import Path

from memograph.backlinks import BacklinkIndex
from memograph.config import ConfigProvider, TomlConfigProvider
from memograph.events import EventBus, EventKind, EventSink, IndexEvent
from memograph.graph import GraphMode, GraphProjector
from memograph.models import GraphData, LinkUpdateResult
from memograph.rewriter import LinkRewriter
from memograph.store import DocumentStore, LocalDocumentStore
from memograph.tags import TagIndex


class MemoIndex:
    """Backlinks, tags, rename propagation and graph projection for one corpus."""

    def __init__(
        self,
        store: DocumentStore,
        config_provider: ConfigProvider,
        *,
        events: EventSink | None = None,
    ) -> None:
        self.store = store
        self.config_provider = config_provider
        self.events: EventSink = events if events is not None else EventBus()
        self.backlinks = BacklinkIndex(store, config_provider)
        self.tags = TagIndex(store, config_provider)
        self.rewriter = LinkRewriter(store, self.backlinks)
        self.graph = GraphProjector(self.backlinks, store)

    @classmethod
    def open(cls, workspace_root: Path, *, events: EventSink | None = None) -> "MemoIndex":
        """Index the local workspace at *workspace_root* using its ``.memograph.toml``."""
        return cls(LocalDocumentStore(), TomlConfigProvider(Path(workspace_root)), events=events)

    # ------------------------------------------------------------------
    # Build / refresh
    # ------------------------------------------------------------------

    async def build(self) -> bool:
        """(Re-)build both indexes; ``False`` if either build was already running."""
        built_links = await self.backlinks.build_index()
        built_tags = await self.tags.build_index()
        if built_links or built_tags:
            self.events.publish(IndexEvent(EventKind.INDEX_BUILT))
        return built_links and built_tags

    async def document_created(self, path: Path) -> None:
        await self._refresh(path)
        self.events.publish(IndexEvent(EventKind.CREATED, Path(path)))

    async def document_changed(self, path: Path) -> None:
        await self._refresh(path)
        self.events.publish(IndexEvent(EventKind.MODIFIED, Path(path)))

    async def document_deleted(self, path: Path) -> None:
        self.backlinks.remove_file_from_index(path)
        self.tags.remove_file(path)
        self.events.publish(IndexEvent(EventKind.DELETED, Path(path)))

    async def document_renamed(self, old_path: Path, new_path: Path) -> LinkUpdateResult:
        """Propagate a rename the hosting layer has already performed on disk."""
        result = await self.rewriter.update_links_after_rename(old_path, new_path)
        self.tags.remove_file(old_path)
        await self.tags.update_file(new_path)
        self.events.publish(IndexEvent(EventKind.RENAMED, Path(old_path), Path(new_path)))
        return result

    async def _refresh(self, path: Path) -> None:
        await self.backlinks.update_file_backlinks(path)
        await self.tags.update_file(path)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    async def graph_data(self, mode: GraphMode | str = GraphMode.FOCUS, active: Path | None = None) -> GraphData:
        return await self.graph.generate_graph_data(mode, active)

    async def migrate_links(self) -> LinkUpdateResult:
        result = await self.rewriter.migrate_links()
        if result.files_updated:
            self.events.publish(IndexEvent(EventKind.INDEX_BUILT))
        return result
