"""Depth-first corpus walk shared by the indexes, rewriter and graph."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from pathlib import Path

from memograph.config import CorpusConfig
from memograph.resolver import is_memo_file
from memograph.store import DocumentStore

log = logging.getLogger(__name__)


async def walk_corpus(store: DocumentStore, config: CorpusConfig) -> AsyncIterator[Path]:
    """Yield every memo under ``config.root_dir``, depth-first, in listing order.

    Unreadable directories and entries are logged and skipped; the walk
    itself never fails.
    """
    root = Path(config.root_dir)
    if not await store.exists(root):
        log.debug("Corpus root %s does not exist", root)
        return
    async for path in _walk(store, root, tuple(config.file_extensions)):
        yield path


async def _walk(store: DocumentStore, directory: Path, extensions: tuple[str, ...]) -> AsyncIterator[Path]:
    try:
        entries = await store.list_directory(directory)
    except OSError as exc:
        log.warning("Failed to scan directory %s: %s", directory, exc)
        return

    for name in entries:
        full_path = directory / name
        try:
            stat = await store.stat(full_path)
        except OSError as exc:
            log.warning("Failed to stat %s: %s", full_path, exc)
            continue
        if stat.is_directory:
            async for path in _walk(store, full_path, extensions):
                yield path
        elif is_memo_file(name, extensions):
            yield full_path


async def list_corpus(store: DocumentStore, config: CorpusConfig) -> list[Path]:
    return [path async for path in walk_corpus(store, config)]
