"""Unit tests for memograph.backlinks.BacklinkIndex."""

import asyncio
from pathlib import Path

import pytest

from conftest import FlakyStore, GatedStore, write_note
from memograph.backlinks import BacklinkIndex
from memograph.config import CorpusConfig, StaticConfigProvider
from memograph.resolver import path_key


@pytest.fixture()
async def index(corpus_dir: Path, store, config_provider) -> BacklinkIndex:
    """Scenario corpus: A links to B, C stands alone."""
    write_note(corpus_dir, "A.md", "see [B](./B.md)\n")
    write_note(corpus_dir, "B.md", "")
    write_note(corpus_dir, "C.md", "")
    idx = BacklinkIndex(store, config_provider)
    await idx.build_index()
    return idx


def _assert_invariants(idx: BacklinkIndex, orphans: list[Path], corpus: list[Path]) -> None:
    orphan_keys = {path_key(p) for p in orphans}
    for doc in corpus:
        if idx.get_backlinks(doc):
            assert path_key(doc) not in orphan_keys
    stats = idx.get_link_statistics()
    assert stats.total_links == sum(len(idx.get_backlinks(l.target)) for l in _distinct_targets(idx))


def _distinct_targets(idx: BacklinkIndex):
    seen = {}
    for link in idx.iter_links():
        seen.setdefault(path_key(link.target), link)
    return list(seen.values())


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


class TestBuildIndex:
    async def test_basic_scenario(self, index: BacklinkIndex, corpus_dir: Path):
        backlinks = index.get_backlinks(corpus_dir / "B.md")
        assert [(l.source, l.text) for l in backlinks] == [(corpus_dir / "A.md", "B")]
        assert await index.get_orphaned_files() == [corpus_dir / "C.md"]
        stats = index.get_link_statistics()
        assert (stats.total_links, stats.total_files, stats.average_links_per_file) == (1, 1, 1)

    async def test_lookup_is_case_insensitive(self, index: BacklinkIndex, corpus_dir: Path):
        assert len(index.get_backlinks(Path(str(corpus_dir / "b.md").upper()))) == 1

    async def test_unknown_target_is_empty(self, index: BacklinkIndex, corpus_dir: Path):
        assert index.get_backlinks(corpus_dir / "missing.md") == []

    async def test_walks_subdirectories(self, corpus_dir: Path, store, config_provider):
        write_note(corpus_dir, "daily/today.md", "[Plan](../projects/plan.md)")
        write_note(corpus_dir, "projects/plan.md", "")
        idx = BacklinkIndex(store, config_provider)
        await idx.build_index()
        (link,) = idx.get_backlinks(corpus_dir / "projects" / "plan.md")
        assert link.source == corpus_dir / "daily" / "today.md"

    async def test_ignores_other_extensions(self, corpus_dir: Path, store, config_provider):
        write_note(corpus_dir, "notes.txt", "[B](./B.md)")
        write_note(corpus_dir, "B.md", "")
        idx = BacklinkIndex(store, config_provider)
        await idx.build_index()
        assert idx.get_backlinks(corpus_dir / "B.md") == []

    async def test_unreadable_file_is_skipped(self, corpus_dir: Path, config_provider):
        bad = write_note(corpus_dir, "bad.md", "[B](./B.md)")
        write_note(corpus_dir, "good.md", "[B](./B.md)")
        write_note(corpus_dir, "B.md", "")
        idx = BacklinkIndex(FlakyStore(unreadable={bad}), config_provider)
        assert await idx.build_index() is True
        assert [l.source for l in idx.get_backlinks(corpus_dir / "B.md")] == [corpus_dir / "good.md"]

    async def test_missing_root_builds_empty_index(self, tmp_path: Path, store):
        idx = BacklinkIndex(store, StaticConfigProvider(CorpusConfig(root_dir=tmp_path / "nope")))
        assert await idx.build_index() is True
        assert len(idx) == 0
        assert await idx.get_orphaned_files() == []

    async def test_rebuild_clears_previous_entries(self, index: BacklinkIndex, corpus_dir: Path):
        (corpus_dir / "A.md").write_text("no links any more", encoding="utf-8")
        await index.build_index()
        assert index.get_backlinks(corpus_dir / "B.md") == []


# ---------------------------------------------------------------------------
# Incremental updates
# ---------------------------------------------------------------------------


class TestIncrementalUpdates:
    async def test_update_replaces_entries_from_source(self, index: BacklinkIndex, corpus_dir: Path):
        (corpus_dir / "A.md").write_text("now [C](./C.md)", encoding="utf-8")
        await index.update_file_backlinks(corpus_dir / "A.md")
        assert index.get_backlinks(corpus_dir / "B.md") == []
        assert [l.text for l in index.get_backlinks(corpus_dir / "C.md")] == ["C"]

    async def test_update_of_deleted_source_only_removes(self, index: BacklinkIndex, corpus_dir: Path):
        (corpus_dir / "A.md").unlink()
        await index.update_file_backlinks(corpus_dir / "A.md")
        assert index.get_backlinks(corpus_dir / "B.md") == []
        assert len(index) == 0

    async def test_update_does_not_duplicate(self, index: BacklinkIndex, corpus_dir: Path):
        await index.update_file_backlinks(corpus_dir / "A.md")
        await index.update_file_backlinks(corpus_dir / "A.md")
        assert len(index.get_backlinks(corpus_dir / "B.md")) == 1

    async def test_new_file(self, index: BacklinkIndex, corpus_dir: Path):
        write_note(corpus_dir, "D.md", "[B](B.md) and [B again](./B.md)")
        await index.update_file_backlinks(corpus_dir / "D.md")
        assert [l.text for l in index.get_backlinks(corpus_dir / "B.md")] == ["B", "B", "B again"]

    async def test_remove_file_forgets_target_and_source(self, index: BacklinkIndex, corpus_dir: Path):
        write_note(corpus_dir, "D.md", "[A](./A.md)")
        await index.update_file_backlinks(corpus_dir / "D.md")

        index.remove_file_from_index(corpus_dir / "A.md")

        assert index.get_backlinks(corpus_dir / "A.md") == []
        assert index.get_backlinks(corpus_dir / "B.md") == []
        assert len(index) == 0

    async def test_no_empty_keys_after_removal(self, index: BacklinkIndex, corpus_dir: Path):
        index.remove_file_from_index(corpus_dir / "A.md")
        assert index.get_link_statistics().total_files == 0


# ---------------------------------------------------------------------------
# Outbound links
# ---------------------------------------------------------------------------


class TestOutboundLinks:
    async def test_read_live_from_disk(self, index: BacklinkIndex, corpus_dir: Path):
        (corpus_dir / "A.md").write_text("[C](./C.md)\n[B](./B.md)", encoding="utf-8")
        outbound = await index.get_outbound_links(corpus_dir / "A.md")
        assert [l.target for l in outbound] == [corpus_dir / "C.md", corpus_dir / "B.md"]
        # The index itself is untouched until an explicit update.
        assert len(index.get_backlinks(corpus_dir / "B.md")) == 1

    async def test_missing_document(self, index: BacklinkIndex, corpus_dir: Path):
        assert await index.get_outbound_links(corpus_dir / "gone.md") == []

    async def test_unreadable_document(self, corpus_dir: Path, config_provider):
        bad = write_note(corpus_dir, "bad.md", "[B](./B.md)")
        idx = BacklinkIndex(FlakyStore(unreadable={bad}), config_provider)
        assert await idx.get_outbound_links(bad) == []


# ---------------------------------------------------------------------------
# Orphans and statistics
# ---------------------------------------------------------------------------


class TestOrphansAndStatistics:
    async def test_source_only_file_is_not_orphaned(self, index: BacklinkIndex, corpus_dir: Path):
        orphans = await index.get_orphaned_files()
        assert corpus_dir / "A.md" not in orphans
        assert corpus_dir / "B.md" not in orphans

    async def test_invariants_hold_across_updates(self, index: BacklinkIndex, corpus_dir: Path):
        write_note(corpus_dir, "D.md", "[A](./A.md) [C](./C.md) [C](./C.md)")
        await index.update_file_backlinks(corpus_dir / "D.md")
        corpus = sorted(corpus_dir.glob("*.md"))
        _assert_invariants(index, await index.get_orphaned_files(), corpus)

        index.remove_file_from_index(corpus_dir / "D.md")
        _assert_invariants(index, await index.get_orphaned_files(), corpus)

    async def test_most_linked_ordering(self, corpus_dir: Path, store, config_provider):
        write_note(corpus_dir, "a.md", "[x](x.md) [y](y.md) [z](z.md)")
        write_note(corpus_dir, "b.md", "[z](z.md) [y](y.md)")
        write_note(corpus_dir, "c.md", "[z](z.md)")
        idx = BacklinkIndex(store, config_provider)
        await idx.build_index()

        stats = idx.get_link_statistics()
        ranked = [(m.path.name, m.count) for m in stats.most_linked_files]
        assert ranked == [("z.md", 3), ("y.md", 2), ("x.md", 1)]
        assert stats.total_links == 6
        assert stats.total_files == 3
        assert stats.average_links_per_file == 2

    async def test_ties_keep_first_encountered_order(self, corpus_dir: Path, store, config_provider):
        write_note(corpus_dir, "a.md", "[q](q.md) [p](p.md)")
        idx = BacklinkIndex(store, config_provider)
        await idx.build_index()
        assert [m.path.name for m in idx.get_link_statistics().most_linked_files] == ["q.md", "p.md"]

    async def test_top_ten_only(self, corpus_dir: Path, store, config_provider):
        write_note(corpus_dir, "hub.md", " ".join(f"[n{i}](n{i}.md)" for i in range(15)))
        idx = BacklinkIndex(store, config_provider)
        await idx.build_index()
        stats = idx.get_link_statistics()
        assert len(stats.most_linked_files) == 10
        assert stats.total_files == 15

    async def test_empty_statistics(self, store, config_provider):
        stats = BacklinkIndex(store, config_provider).get_link_statistics()
        assert (stats.total_links, stats.total_files, stats.average_links_per_file) == (0, 0, 0)
        assert stats.most_linked_files == []


# ---------------------------------------------------------------------------
# Build guard
# ---------------------------------------------------------------------------


class TestBuildGuard:
    async def test_concurrent_build_is_rejected(self, corpus_dir: Path, config_provider):
        write_note(corpus_dir, "A.md", "[B](./B.md)")
        store = GatedStore()
        idx = BacklinkIndex(store, config_provider)

        first = asyncio.create_task(idx.build_index())
        await store.reads_started.wait()
        assert idx.building
        assert await idx.build_index() is False

        store.gate.set()
        assert await first is True
        assert not idx.building
        assert len(idx.get_backlinks(corpus_dir / "B.md")) == 1

    async def test_updates_during_build_are_replayed(self, corpus_dir: Path, config_provider):
        write_note(corpus_dir, "A.md", "[B](./B.md)")
        store = GatedStore()
        idx = BacklinkIndex(store, config_provider)

        build = asyncio.create_task(idx.build_index())
        await store.reads_started.wait()

        write_note(corpus_dir, "D.md", "[C](./C.md)")
        await idx.update_file_backlinks(corpus_dir / "D.md")
        idx.remove_file_from_index(corpus_dir / "A.md")
        # Nothing applied while the build holds the index.
        assert idx.get_backlinks(corpus_dir / "C.md") == []

        store.gate.set()
        await build
        assert [l.source for l in idx.get_backlinks(corpus_dir / "C.md")] == [corpus_dir / "D.md"]
        assert idx.get_backlinks(corpus_dir / "B.md") == []

    async def test_updates_queued_during_failed_build_survive(self, corpus_dir: Path, config_provider):
        a = write_note(corpus_dir, "A.md", "[B](./B.md)")
        store = GatedStore()
        store.error = RuntimeError("disk gone")
        idx = BacklinkIndex(store, config_provider)

        build = asyncio.create_task(idx.build_index())
        await store.reads_started.wait()
        idx.remove_file_from_index(a)
        store.gate.set()

        with pytest.raises(RuntimeError):
            await build
        assert not idx.building
        assert [u.path for u in idx._guard.pending] == [a]

        store.error = None
        assert await idx.build_index() is True
        assert idx.get_backlinks(corpus_dir / "B.md") == []
        assert idx._guard.pending == []

    async def test_direct_update_supersedes_kept_queue(self, corpus_dir: Path, config_provider):
        a = write_note(corpus_dir, "A.md", "[B](./B.md)")
        store = GatedStore()
        store.error = RuntimeError("disk gone")
        idx = BacklinkIndex(store, config_provider)

        build = asyncio.create_task(idx.build_index())
        await store.reads_started.wait()
        idx.remove_file_from_index(a)
        store.gate.set()
        with pytest.raises(RuntimeError):
            await build

        store.error = None
        await idx.update_file_backlinks(a)
        assert idx._guard.pending == []
        assert await idx.build_index() is True
        assert [l.source for l in idx.get_backlinks(corpus_dir / "B.md")] == [a]
