"""LinkRewriter: keep links pointing at a memo after it is renamed.

Every ``[text](target)`` occurrence is parsed individually and only links
that *resolve* to the old path are touched, so a link to ``notes/B.md`` is
never confused with one to ``archive/B.md`` or ``B.md.bak``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from memograph.backlinks import BacklinkIndex
from memograph.corpus import walk_corpus
from memograph.models import LinkUpdateResult
from memograph.parser import LINK_RE, parse_links
from memograph.resolver import LinkResolver, SchemeTarget, path_key, relative_link_path
from memograph.store import DocumentStore

log = logging.getLogger(__name__)


def rewrite_links(
    text: str,
    *,
    origin: Path,
    location: Path,
    old_path: Path,
    new_path: Path,
    resolver: LinkResolver,
) -> tuple[str, int]:
    """Retarget links in *text* from *old_path* to *new_path*.

    Parameters
    ----------
    origin:
        Where the document lived when its links were written; raw targets
        are resolved from here.
    location:
        Where the document lives now; new relative targets are computed
        from here.

    Returns ``(new_text, links_updated)``.  Link text equal to the old file
    stem is renamed along with the target.
    """
    old_key = path_key(old_path)
    old_stem = resolver.stem(old_path)
    new_stem = resolver.stem(new_path)
    updated = 0

    def _replace(m: re.Match[str]) -> str:
        nonlocal updated
        link_text, raw = m.group(1), m.group(2).strip()
        target = resolver.parse(raw)
        if target is None or path_key(target.resolve(origin, resolver.base_dir)) != old_key:
            return m.group(0)
        updated += 1
        if link_text == old_stem:
            link_text = new_stem
        return f"[{link_text}]({target.retarget(new_path, location, resolver.base_dir)})"

    return LINK_RE.sub(_replace, text), updated


def migrate_scheme_links(text: str, *, source: Path, resolver: LinkResolver) -> tuple[str, int]:
    """Rewrite every scheme-encoded memo link in *text* as a relative path."""
    updated = 0

    def _replace(m: re.Match[str]) -> str:
        nonlocal updated
        target = resolver.parse(m.group(2))
        resolved = resolver.resolve(m.group(2), source)
        if not isinstance(target, SchemeTarget) or resolved is None:
            return m.group(0)
        updated += 1
        return f"[{m.group(1)}]({relative_link_path(source, resolved)}{target.fragment})"

    return LINK_RE.sub(_replace, text), updated


class LinkRewriter:
    """Propagates memo renames to every document linking to the old path."""

    def __init__(self, store: DocumentStore, backlinks: BacklinkIndex) -> None:
        self.store = store
        self.backlinks = backlinks
        # Renames rewrite many documents across await points; one at a time.
        self._lock = asyncio.Lock()

    async def update_links_after_rename(self, old_path: Path, new_path: Path) -> LinkUpdateResult:
        """Rewrite links to *old_path* so they point at *new_path*.

        The memo itself must already have been moved.  Per-document failures
        are collected in ``result.errors``; the remaining documents are still
        processed.
        """
        old_path, new_path = Path(old_path), Path(new_path)
        result = LinkUpdateResult()

        async with self._lock:
            resolver = await self.backlinks.resolver()
            rewritten: list[Path] = []

            for source in await self.find_files_with_links_to(old_path):
                # A memo linking to itself has moved along with the rename.
                location = new_path if path_key(source) == path_key(old_path) else source
                try:
                    content = await self.store.read_text(location)
                    updated_content, count = rewrite_links(
                        content,
                        origin=source,
                        location=location,
                        old_path=old_path,
                        new_path=new_path,
                        resolver=resolver,
                    )
                    if count:
                        await self.store.write_text(location, updated_content)
                except (OSError, UnicodeDecodeError) as exc:
                    message = f"Failed to update links in {location}: {exc}"
                    log.error(message)
                    result.errors.append(message)
                    continue
                if count:
                    result.files_updated += 1
                    result.links_updated += count
                    rewritten.append(location)

            for path in rewritten:
                await self.backlinks.update_file_backlinks(path)
            self.backlinks.remove_file_from_index(old_path)
            await self.backlinks.update_file_backlinks(new_path)

        log.info(
            "Renamed %s -> %s: %d links in %d files updated",
            old_path,
            new_path,
            result.links_updated,
            result.files_updated,
        )
        return result

    async def find_files_with_links_to(self, target: Path) -> list[Path]:
        """Documents linking to *target*: the backlink index first, then a corpus scan."""
        sources: dict[str, Path] = {}
        for link in self.backlinks.get_backlinks(target):
            sources.setdefault(path_key(link.source), link.source)
        if sources:
            return list(sources.values())
        return await self._scan_corpus_for(Path(target))

    async def _scan_corpus_for(self, target: Path) -> list[Path]:
        target_key = path_key(target)
        resolver = await self.backlinks.resolver()
        found: list[Path] = []
        async for path in walk_corpus(self.store, await self.backlinks.config()):
            if path_key(path) == target_key:
                continue
            try:
                content = await self.store.read_text(path)
            except (OSError, UnicodeDecodeError) as exc:
                log.warning("Error reading file %s: %s", path, exc)
                continue
            if any(path_key(link.target) == target_key for link in parse_links(content, path, resolver)):
                found.append(path)
        return found

    async def migrate_links(self) -> LinkUpdateResult:
        """Convert every ``<scheme>://`` link in the corpus to a relative path."""
        result = LinkUpdateResult()
        async with self._lock:
            resolver = await self.backlinks.resolver()
            config = await self.backlinks.config()
            async for path in walk_corpus(self.store, config):
                try:
                    content = await self.store.read_text(path)
                    updated_content, count = migrate_scheme_links(content, source=path, resolver=resolver)
                    if count:
                        await self.store.write_text(path, updated_content)
                except (OSError, UnicodeDecodeError) as exc:
                    message = f"Failed to migrate links in {path}: {exc}"
                    log.error(message)
                    result.errors.append(message)
                    continue
                if count:
                    result.files_updated += 1
                    result.links_updated += count
                    await self.backlinks.update_file_backlinks(path)
        log.info("Migrated %d links in %d files", result.links_updated, result.files_updated)
        return result
