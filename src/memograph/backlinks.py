"""BacklinkIndex: which memos link to which.

The index maps each target memo to the links pointing at it, in scan order.
Outbound links are never cached; :meth:`BacklinkIndex.get_outbound_links`
re-reads the source document every time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from memograph.config import ConfigProvider, CorpusConfig
from memograph.corpus import walk_corpus
from memograph.models import Link, LinkCount, LinkStatistics
from memograph.parser import parse_links
from memograph.resolver import LinkResolver, path_key
from memograph.state import BuildGuard, PendingAction
from memograph.store import DocumentStore

log = logging.getLogger(__name__)

MOST_LINKED_LIMIT = 10


class BacklinkIndex:
    """Target memo → backlinks, built by a corpus walk and kept up to date incrementally."""

    def __init__(self, store: DocumentStore, config_provider: ConfigProvider) -> None:
        self.store = store
        self.config_provider = config_provider
        self._index: dict[str, list[Link]] = {}
        self._config: CorpusConfig | None = None
        self._guard = BuildGuard("Backlink index")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def config(self) -> CorpusConfig:
        """Config of the last build, loading it on first use."""
        if self._config is None:
            self._config = await self.config_provider.load()
        return self._config

    async def resolver(self) -> LinkResolver:
        return LinkResolver.from_config(await self.config())

    @property
    def building(self) -> bool:
        return self._guard.building

    # ------------------------------------------------------------------
    # Build / refresh
    # ------------------------------------------------------------------

    async def build_index(self) -> bool:
        """(Re-)scan the corpus and rebuild the index.

        Returns ``False`` without doing anything when a build is already
        running.  Updates received meanwhile are replayed afterwards, or after
        the next build if this one raises.
        """
        if not self._guard.begin():
            return False
        try:
            log.info("Building backlink index...")
            self._index = {}
            self._config = await self.config_provider.load()
            resolver = LinkResolver.from_config(self._config)
            async for path in walk_corpus(self.store, self._config):
                await self._scan_file(path, resolver)
            log.info("Backlink index built. Total entries: %d", len(self._index))
        except BaseException:
            self._guard.finish(failed=True)
            raise
        pending = self._guard.finish()

        for update in pending:
            if update.action is PendingAction.REMOVE:
                self.remove_file_from_index(update.path)
            else:
                await self.update_file_backlinks(update.path)
        return True

    async def update_file_backlinks(self, path: Path) -> None:
        """Drop every link *path* contributes, then re-scan it if it still exists."""
        if self._guard.building:
            self._guard.defer(PendingAction.UPDATE, path)
            return
        self._guard.discard(path)
        path = Path(path)
        self._remove_links_from(path)
        if await self.store.exists(path):
            await self._scan_file(path, await self.resolver())

    def remove_file_from_index(self, path: Path) -> None:
        """Forget *path* both as a link target and as a link source."""
        if self._guard.building:
            self._guard.defer(PendingAction.REMOVE, path)
            return
        self._guard.discard(path)
        self._index.pop(path_key(path), None)
        self._remove_links_from(Path(path))

    async def _scan_file(self, path: Path, resolver: LinkResolver) -> None:
        try:
            content = await self.store.read_text(path)
        except FileNotFoundError:
            log.debug("Skipping %s: no longer exists", path)
            return
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Failed to scan file %s: %s", path, exc)
            return
        for link in parse_links(content, path, resolver):
            self._index.setdefault(path_key(link.target), []).append(link)

    def _remove_links_from(self, source: Path) -> None:
        key = path_key(source)
        for target in list(self._index):
            remaining = [link for link in self._index[target] if path_key(link.source) != key]
            if remaining:
                self._index[target] = remaining
            else:
                del self._index[target]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_backlinks(self, target: Path) -> list[Link]:
        return list(self._index.get(path_key(target), []))

    async def get_outbound_links(self, source: Path) -> list[Link]:
        """Links from *source*, read live from the document."""
        source = Path(source)
        try:
            if not await self.store.exists(source):
                return []
            content = await self.store.read_text(source)
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Failed to get outbound links from %s: %s", source, exc)
            return []
        return parse_links(content, source, await self.resolver())

    async def get_orphaned_files(self) -> list[Path]:
        """Corpus memos with neither incoming nor outgoing links."""
        linked: set[str] = set()
        for target, links in self._index.items():
            if links:
                linked.add(target)
            linked.update(path_key(link.source) for link in links)

        config = await self.config()
        return [path async for path in walk_corpus(self.store, config) if path_key(path) not in linked]

    def get_link_statistics(self) -> LinkStatistics:
        counts = [(links[0].target, len(links)) for links in self._index.values() if links]
        total_links = sum(count for _, count in counts)
        total_files = len(counts)
        # sorted() is stable, so ties keep first-encountered order
        ranked = sorted(counts, key=lambda item: item[1], reverse=True)[:MOST_LINKED_LIMIT]
        return LinkStatistics(
            total_links=total_links,
            total_files=total_files,
            average_links_per_file=total_links / total_files if total_files else 0,
            most_linked_files=[LinkCount(path, count) for path, count in ranked],
        )

    def iter_links(self) -> Iterator[Link]:
        for links in self._index.values():
            yield from links

    def __len__(self) -> int:
        return len(self._index)
