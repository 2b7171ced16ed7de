"""Inline-link, tag, and frontmatter scanner.

Scanning is pure: callers hand in the text, the path it was read from, and a
:class:`~memograph.resolver.LinkResolver`; nothing here touches the disk.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from memograph.models import Link, ScanResult
from memograph.resolver import LinkResolver

# [text](target) but not ![alt](image)
LINK_RE = re.compile(r"(?<!!)\[([^\]]*)\]\(([^)]+)\)")
# Leading frontmatter block
_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
# "key: value" line
_KEY_VALUE_RE = re.compile(r"^([^:]+):\s*(.*)$")
# "  - item" line of a block list
_BLOCK_ITEM_RE = re.compile(r"^\s+-(\s|$)")
_INT_RE = re.compile(r"^\d+$")
_DECIMAL_RE = re.compile(r"^\d+\.\d+$")
_HEADING_RE = re.compile(r"^\s*#+\s*")

CONTEXT_LINES = 2


# ---------------------------------------------------------------------------
# Frontmatter
# ---------------------------------------------------------------------------


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split frontmatter from body text.

    Returns ``(metadata_dict, body)``; ``metadata_dict`` is empty when there
    is no frontmatter block.

    Each ``key: value`` line is read literally: everything after the first
    colon is the value, so ``#`` and quotes are kept.  ``[a, b]`` becomes a
    list of strings, ``true``/``false`` a bool and digit-only values numbers.
    A key with no inline value followed by indented ``- item`` lines is read
    as a YAML block list.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return {}, content
    return _parse_key_value_lines(match.group(1)), content[match.end() :]


def _parse_key_value_lines(block: str) -> dict[str, Any]:
    result: dict[str, Any] = {}
    lines = block.splitlines()
    i = 0
    while i < len(lines):
        m = _KEY_VALUE_RE.match(lines[i])
        i += 1
        if not m:
            continue
        key, value = m.group(1).strip(), m.group(2).strip()
        if not value:
            items: list[str] = []
            while i < len(lines) and _BLOCK_ITEM_RE.match(lines[i]):
                items.append(lines[i])
                i += 1
            if items:
                block_list = _load_block_list(items)
                if block_list is not None:
                    result[key] = block_list
                continue
        result[key] = _coerce(value)
    return result


def _load_block_list(lines: list[str]) -> list[str] | None:
    try:
        loaded = yaml.load("\n".join(lines), Loader=yaml.BaseLoader)
    except yaml.YAMLError:
        return None
    if not isinstance(loaded, list):
        return None
    items = (str(item).strip() for item in loaded if not isinstance(item, (list, dict)))
    return [item for item in items if item]


def _coerce(value: str) -> Any:
    if value.startswith("[") and value.endswith("]"):
        items = (item.strip() for item in value[1:-1].split(","))
        return [item for item in items if item]
    if value == "true":
        return True
    if value == "false":
        return False
    if _INT_RE.match(value):
        return int(value)
    if _DECIMAL_RE.match(value):
        return float(value)
    return value


def parse_tags(meta: dict[str, Any]) -> list[str] | None:
    tags = meta.get("tags")
    return list(tags) if isinstance(tags, list) else None


def parse_title(meta: dict[str, Any]) -> str | None:
    title = meta.get("title")
    return title if isinstance(title, str) and title else None


def first_heading(body: str) -> str | None:
    """Text of the first Markdown heading in *body*, if any."""
    for line in body.split("\n"):
        if line.strip().startswith("#"):
            return _HEADING_RE.sub("", line).strip() or None
    return None


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


def parse_links(text: str, source: Path, resolver: LinkResolver) -> list[Link]:
    """Return every memo link in *text*, in document order."""
    links: list[Link] = []
    lines = text.split("\n")
    for index, line in enumerate(lines):
        for m in LINK_RE.finditer(line):
            raw_target = m.group(2).strip()
            target = resolver.resolve(raw_target, source)
            if target is None:
                continue
            links.append(
                Link(
                    source=source,
                    line=index + 1,
                    text=m.group(1),
                    raw_target=raw_target,
                    target=target,
                    context=line_context(lines, index),
                )
            )
    return links


def line_context(lines: list[str], index: int, radius: int = CONTEXT_LINES) -> str:
    start = max(0, index - radius)
    end = min(len(lines), index + radius + 1)
    return "\n".join(
        ("> " if i == index else "  ") + lines[i].rstrip("\r") for i in range(start, end)
    )


def scan(text: str, source: Path, resolver: LinkResolver) -> ScanResult:
    """Extract links, frontmatter tags and title from one document."""
    meta, _body = parse_frontmatter(text)
    return ScanResult(
        links=parse_links(text, source, resolver),
        tags=parse_tags(meta),
        title=parse_title(meta),
    )
