"""Link-target encodings and path normalization.

A raw link target comes in one of two encodings:

``./notes/other.md``
    A filesystem path relative to the linking document's directory.
``memo://notes/other%20note.md``
    A custom-scheme URI relative to the corpus base directory, one
    percent-encoded segment per path component.

:func:`parse_target` picks the variant from the raw string; each variant
knows how to resolve itself to an absolute path and how to re-encode a new
target in the same style.  Everything that needs to know "where does this
link point" (scanner, rewriter, graph) goes through :class:`LinkResolver`.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote

from memograph.config import CorpusConfig

# Any URL-style prefix ("http:", "mailto:").  Two characters minimum so a
# Windows drive letter is still treated as a path.
_URL_PREFIX_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]+:")
# Characters encodeURIComponent leaves alone, kept for compatibility.
_SAFE_SEGMENT_CHARS = "!~*'()"


def path_key(path: str | os.PathLike[str]) -> str:
    """Return the index key for *path*.

    Normalizes separators and lowercases, so lookups are case-insensitive.
    Distinct documents differing only by case collapse onto one key on a
    case-sensitive filesystem; this is a known limitation.
    """
    return os.path.normpath(os.fspath(path)).lower()


def document_stem(path: str | os.PathLike[str], extensions: tuple[str, ...] = ()) -> str:
    """File name without its memo extension."""
    name = os.path.basename(os.fspath(path))
    for ext in extensions:
        if name.endswith(ext):
            return name[: -len(ext)]
    return Path(name).stem


def is_memo_file(name: str, extensions: tuple[str, ...]) -> bool:
    return any(name.endswith(ext) for ext in extensions)


def relative_link_path(source: Path, target: Path) -> str:
    """Forward-slash path from *source*'s directory to *target*, ``./``-prefixed."""
    rel = os.path.relpath(target, Path(source).parent).replace(os.sep, "/")
    if not rel.startswith(".") and not rel.startswith("/"):
        rel = "./" + rel
    return rel


# ---------------------------------------------------------------------------
# Target variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RelativeTarget:
    path: str
    fragment: str = ""

    def resolve(self, source: Path, base_dir: Path) -> Path:  # noqa: ARG002
        return Path(os.path.normpath(Path(source).parent / self.path))

    def retarget(self, new_target: Path, source: Path, base_dir: Path) -> str:  # noqa: ARG002
        """Encode *new_target* relative to *source*, keeping this link's ``./`` style."""
        rel = relative_link_path(source, new_target)
        if not self.path.startswith("./") and rel.startswith("./"):
            rel = rel[2:]
        return rel + self.fragment


@dataclass(frozen=True)
class SchemeTarget:
    scheme: str
    path: str
    fragment: str = ""

    def resolve(self, source: Path, base_dir: Path) -> Path:  # noqa: ARG002
        # Decode per segment so an encoded "%2F" never becomes a separator.
        decoded = "/".join(unquote(part) for part in self.path.split("/"))
        return Path(os.path.normpath(Path(base_dir) / decoded))

    def retarget(self, new_target: Path, source: Path, base_dir: Path) -> str:  # noqa: ARG002
        return encode_scheme_target(self.scheme, new_target, base_dir) + self.fragment


LinkTarget = RelativeTarget | SchemeTarget


def encode_scheme_target(scheme: str, target: Path, base_dir: Path) -> str:
    rel = os.path.relpath(target, base_dir).replace(os.sep, "/")
    encoded = "/".join(quote(part, safe=_SAFE_SEGMENT_CHARS) for part in rel.split("/"))
    return f"{scheme}://{encoded}"


def parse_target(raw: str, scheme: str) -> LinkTarget | None:
    """Classify *raw*; ``None`` for web URLs, other schemes and bare anchors."""
    raw = raw.strip()
    path, sep, fragment = raw.partition("#")
    fragment = sep + fragment
    prefix = f"{scheme}://"
    if path.startswith(prefix):
        path = path[len(prefix) :]
        return SchemeTarget(scheme, path, fragment) if path else None
    if not path or _URL_PREFIX_RE.match(path):
        return None
    return RelativeTarget(path, fragment)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LinkResolver:
    """Resolves raw link targets against one corpus configuration."""

    base_dir: Path
    extensions: tuple[str, ...]
    scheme: str

    @classmethod
    def from_config(cls, config: CorpusConfig) -> "LinkResolver":
        return cls(Path(config.root_dir), tuple(config.file_extensions), config.link_scheme)

    def parse(self, raw: str) -> LinkTarget | None:
        return parse_target(raw, self.scheme)

    def resolve(self, raw: str, source: Path) -> Path | None:
        """Absolute memo path *raw* points at from *source*, or ``None``."""
        target = self.parse(raw)
        if target is None:
            return None
        resolved = target.resolve(source, self.base_dir)
        if not is_memo_file(resolved.name, self.extensions):
            return None
        return resolved

    def stem(self, path: Path) -> str:
        return document_stem(path, self.extensions)
