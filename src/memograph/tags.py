"""TagIndex: frontmatter tags → memos, with AND/OR multi-tag queries."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from memograph.config import ConfigProvider, CorpusConfig
from memograph.corpus import walk_corpus
from memograph.models import TagCount, TaggedMemo
from memograph.parser import first_heading, parse_frontmatter, parse_tags, parse_title
from memograph.resolver import document_stem, path_key
from memograph.state import BuildGuard, PendingAction
from memograph.store import DocumentStore

log = logging.getLogger(__name__)


class TagMatchMode(str, enum.Enum):
    AND = "AND"
    OR = "OR"


class TagIndex:
    """Scans the corpus and indexes every memo that declares ``tags``."""

    def __init__(self, store: DocumentStore, config_provider: ConfigProvider) -> None:
        self.store = store
        self.config_provider = config_provider
        self.tags: dict[str, set[str]] = {}
        #: path key → cached memo, so removal never re-reads the file
        self.memos: dict[str, TaggedMemo] = {}
        self._config: CorpusConfig | None = None
        self._guard = BuildGuard("Tag index")

    @property
    def building(self) -> bool:
        return self._guard.building

    # ------------------------------------------------------------------
    # Build / refresh
    # ------------------------------------------------------------------

    async def build_index(self) -> bool:
        """(Re-)scan the corpus; ``False`` when a build is already running."""
        if not self._guard.begin():
            return False
        try:
            log.info("Building tag index...")
            self.tags.clear()
            self.memos.clear()
            self._config = await self.config_provider.load()
            async for path in walk_corpus(self.store, self._config):
                await self._scan_file(path)
            log.info("Tag index built with %d unique tags", len(self.tags))
        except BaseException:
            self._guard.finish(failed=True)
            raise
        pending = self._guard.finish()

        for update in pending:
            if update.action is PendingAction.REMOVE:
                self.remove_file(update.path)
            else:
                await self.update_file(update.path)
        return True

    async def update_file(self, path: Path) -> None:
        if self._guard.building:
            self._guard.defer(PendingAction.UPDATE, path)
            return
        self._guard.discard(path)
        self._forget(Path(path))
        await self._scan_file(Path(path))

    def remove_file(self, path: Path) -> None:
        if self._guard.building:
            self._guard.defer(PendingAction.REMOVE, path)
            return
        self._guard.discard(path)
        self._forget(Path(path))

    async def _scan_file(self, path: Path) -> None:
        try:
            content = await self.store.read_text(path)
            stat = await self.store.stat(path)
        except FileNotFoundError:
            log.debug("Skipping %s: no longer exists", path)
            return
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Failed to scan file %s: %s", path, exc)
            return

        meta, body = parse_frontmatter(content)
        tags = parse_tags(meta)
        if not tags:
            return
        extensions = (await self._load_config()).file_extensions
        title = parse_title(meta) or first_heading(body) or document_stem(path, extensions)
        self._add(TaggedMemo(path=path, title=title, tags=tags, last_modified=stat.last_modified))

    async def _load_config(self) -> CorpusConfig:
        if self._config is None:
            self._config = await self.config_provider.load()
        return self._config

    def _add(self, memo: TaggedMemo) -> None:
        key = path_key(memo.path)
        self.memos[key] = memo
        for tag in memo.tags:
            self.tags.setdefault(tag, set()).add(key)

    def _forget(self, path: Path) -> None:
        key = path_key(path)
        memo = self.memos.pop(key, None)
        if memo is None:
            return
        for tag in memo.tags:
            keys = self.tags.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self.tags[tag]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all_tags(self) -> list[TagCount]:
        counts = [TagCount(tag, len(keys)) for tag, keys in self.tags.items()]
        return sorted(counts, key=lambda tc: (-tc.count, tc.tag))

    def get_memos_by_tag(self, tag: str) -> list[TaggedMemo]:
        return self._memos_for(self.tags.get(tag, set()))

    def get_memos_by_tags(self, tags: list[str], mode: TagMatchMode | str = TagMatchMode.OR) -> list[TaggedMemo]:
        """Memos carrying all (``AND``) or any (``OR``) of *tags*."""
        if not tags:
            return []
        if len(tags) == 1:
            return self.get_memos_by_tag(tags[0])

        key_sets = [self.tags.get(tag, set()) for tag in tags]
        if TagMatchMode(mode.upper()) is TagMatchMode.AND:
            keys = set.intersection(*key_sets)
        else:
            keys = set.union(*key_sets)
        return self._memos_for(keys)

    def _memos_for(self, keys: Iterable[str]) -> list[TaggedMemo]:
        memos = [self.memos[key] for key in keys if key in self.memos]
        # Newest first; path order breaks ties deterministically.
        memos.sort(key=lambda m: str(m.path))
        memos.sort(key=lambda m: m.last_modified, reverse=True)
        return memos

    def iter_memos(self) -> Iterator[TaggedMemo]:
        yield from self.memos.values()
