"""Shared fixtures: a throwaway corpus on disk plus the store/config it needs."""

from __future__ import annotations

import asyncio
import textwrap
from pathlib import Path

import pytest

from memograph.config import CorpusConfig, StaticConfigProvider
from memograph.store import LocalDocumentStore


def write_note(directory: Path, name: str, content: str = "") -> Path:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


class FlakyStore(LocalDocumentStore):
    """Local store that fails reads and/or writes for chosen paths."""

    def __init__(self, unreadable: set[Path] | None = None, unwritable: set[Path] | None = None) -> None:
        self.unreadable = {p.resolve() for p in unreadable or set()}
        self.unwritable = {p.resolve() for p in unwritable or set()}

    async def read_text(self, path: Path) -> str:
        if Path(path).resolve() in self.unreadable:
            raise PermissionError(f"cannot read {path}")
        return await super().read_text(path)

    async def write_text(self, path: Path, content: str) -> None:
        if Path(path).resolve() in self.unwritable:
            raise PermissionError(f"cannot write {path}")
        await super().write_text(path, content)


class GatedStore(LocalDocumentStore):
    """Local store whose reads wait on ``gate`` so a build can be held mid-walk.

    Once released, reads raise ``error`` when it is set.
    """

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.reads_started = asyncio.Event()
        self.reads = 0
        self.error: Exception | None = None

    async def read_text(self, path: Path) -> str:
        self.reads += 1
        self.reads_started.set()
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return await super().read_text(path)


@pytest.fixture()
def corpus_dir(tmp_path: Path) -> Path:
    root = tmp_path / "memos"
    root.mkdir()
    return root


@pytest.fixture()
def config(corpus_dir: Path) -> CorpusConfig:
    return CorpusConfig(root_dir=corpus_dir)


@pytest.fixture()
def config_provider(config: CorpusConfig) -> StaticConfigProvider:
    return StaticConfigProvider(config)


@pytest.fixture()
def store() -> LocalDocumentStore:
    return LocalDocumentStore()
