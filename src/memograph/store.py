"""Document store protocol and the local-filesystem implementation."""

from __future__ import annotations

import asyncio
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class DocumentStat:
    last_modified: datetime
    is_directory: bool


@runtime_checkable
class DocumentStore(Protocol):
    """Filesystem operations the indexes depend on.

    Every method is a coroutine so a hosting editor can back the store with
    its own asynchronous file API.
    """

    async def exists(self, path: Path) -> bool:
        """Return whether *path* exists."""
        ...

    async def read_text(self, path: Path) -> str:
        """Return the content of *path*; raise ``FileNotFoundError`` when absent."""
        ...

    async def write_text(self, path: Path, content: str) -> None:
        """Replace the content of *path*."""
        ...

    async def list_directory(self, path: Path) -> list[str]:
        """Return the entry names of the directory *path*."""
        ...

    async def stat(self, path: Path) -> DocumentStat:
        ...


class LocalDocumentStore:
    """:class:`DocumentStore` over the local disk.

    Blocking calls run in the default executor via :func:`asyncio.to_thread`.
    Directory listings are sorted so corpus walks are deterministic.  Text is
    read and written without newline translation, so CRLF memos keep their
    line endings when links are rewritten.
    """

    encoding = "utf-8"

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def read_text(self, path: Path) -> str:
        return await asyncio.to_thread(_read_text, Path(path), self.encoding)

    async def write_text(self, path: Path, content: str) -> None:
        await asyncio.to_thread(_atomic_write_text, Path(path), content, self.encoding)

    async def list_directory(self, path: Path) -> list[str]:
        names = await asyncio.to_thread(os.listdir, path)
        return sorted(names)

    async def stat(self, path: Path) -> DocumentStat:
        st = await asyncio.to_thread(os.stat, path)
        return DocumentStat(
            last_modified=datetime.fromtimestamp(st.st_mtime),
            is_directory=Path(path).is_dir(),
        )


def _atomic_write_text(path: Path, content: str, encoding: str) -> None:
    """Write to a temp file beside *path*, then ``os.replace`` it into place."""
    tmp = path.with_name(f".{path.name}.tmp-{uuid.uuid4().hex}")
    try:
        with open(tmp, "w", encoding=encoding, newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def _read_text(path: Path, encoding: str) -> str:
    with open(path, encoding=encoding, newline="") as fh:
        return fh.read()
