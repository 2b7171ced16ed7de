"""Corpus configuration: where the memos live and which files count.

The configuration file is ``<workspace>/.memograph.toml``::

    [corpus]
    base_dir        = "notes"
    file_extensions = [".md", ".markdown"]
    link_scheme     = "memo"

Missing or invalid values fall back to the defaults below with a warning.
``MEMOGRAPH_ROOT`` overrides the corpus root directory outright.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

log = logging.getLogger(__name__)

CONFIG_FILENAME = ".memograph.toml"
DEFAULT_BASE_DIR = "."
DEFAULT_EXTENSIONS: tuple[str, ...] = (".md", ".markdown")
DEFAULT_SCHEME = "memo"


class ConfigurationError(Exception):
    """Raised when the configuration file cannot be used at all."""


@dataclass(frozen=True)
class CorpusConfig:
    """Walk root and filter for the memo corpus."""

    root_dir: Path
    file_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    link_scheme: str = DEFAULT_SCHEME
    #: Unknown keys from the ``[corpus]`` table, kept for the hosting layer.
    extra: dict[str, Any] = field(default_factory=dict, compare=False)


@runtime_checkable
class ConfigProvider(Protocol):
    async def load(self) -> CorpusConfig: ...


class StaticConfigProvider:
    """Hands out a fixed :class:`CorpusConfig`."""

    def __init__(self, config: CorpusConfig) -> None:
        self.config = config

    async def load(self) -> CorpusConfig:
        return self.config


class TomlConfigProvider:
    """Reads :data:`CONFIG_FILENAME` from the workspace root on every load."""

    def __init__(self, workspace_root: Path, filename: str = CONFIG_FILENAME) -> None:
        self.workspace_root = Path(workspace_root)
        self.path = self.workspace_root / filename

    async def load(self) -> CorpusConfig:
        data: dict[str, Any] = {}
        if self.path.exists():
            try:
                raw = await asyncio.to_thread(self.path.read_bytes)
                data = tomllib.loads(raw.decode("utf-8"))
            except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
                raise ConfigurationError(f"Invalid config file {self.path}: {exc}") from exc
        return config_from_dict(data, self.workspace_root)


def config_from_dict(data: dict[str, Any], workspace_root: Path) -> CorpusConfig:
    """Validate a parsed config document, replacing bad values with defaults."""
    corpus = data.get("corpus", data)
    if not isinstance(corpus, dict):
        log.warning("[corpus] is not a table, using default config")
        corpus = {}

    base_dir = corpus.get("base_dir", DEFAULT_BASE_DIR)
    if not isinstance(base_dir, str):
        log.warning("base_dir missing or invalid, using default value")
        base_dir = DEFAULT_BASE_DIR

    extensions = corpus.get("file_extensions", list(DEFAULT_EXTENSIONS))
    if not (
        isinstance(extensions, list)
        and extensions
        and all(isinstance(ext, str) and ext.startswith(".") for ext in extensions)
    ):
        log.warning("file_extensions missing or invalid, using default value")
        extensions = list(DEFAULT_EXTENSIONS)

    scheme = corpus.get("link_scheme", DEFAULT_SCHEME)
    if not (isinstance(scheme, str) and scheme.isalnum()):
        log.warning("link_scheme missing or invalid, using default value")
        scheme = DEFAULT_SCHEME

    override = os.environ.get("MEMOGRAPH_ROOT")
    root = Path(override) if override else Path(workspace_root) / base_dir

    return CorpusConfig(
        root_dir=Path(os.path.abspath(root)),
        file_extensions=tuple(extensions),
        link_scheme=scheme,
        extra={k: v for k, v in corpus.items() if k not in {"base_dir", "file_extensions", "link_scheme"}},
    )
