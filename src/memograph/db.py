"""IndexDB: SQL view over the backlink and tag indexes.

Uses DuckDB (in-memory) as a query engine over a snapshot of both indexes
and returns :mod:`polars` DataFrames, handy for ad-hoc analytics next to the
structured query surface.

Usage::

    db = IndexDB(backlinks, tags)

    # Free-form SQL
    df = db.query("SELECT source, target FROM links WHERE text = 'todo'")

    # Pre-built views
    hubs   = db.most_linked(limit=5)
    counts = db.tag_counts()

Call :meth:`IndexDB.refresh` after the indexes change; the database is a
snapshot, not a live view.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import duckdb
import polars as pl

if TYPE_CHECKING:
    from memograph.backlinks import BacklinkIndex
    from memograph.tags import TagIndex


class IndexDB:
    """In-memory DuckDB database over indexed links and tags."""

    def __init__(self, backlinks: "BacklinkIndex", tags: "TagIndex") -> None:
        self.conn: duckdb.DuckDBPyConnection = duckdb.connect(":memory:")
        self.refresh(backlinks, tags)

    # ------------------------------------------------------------------
    # Build / refresh
    # ------------------------------------------------------------------

    def refresh(self, backlinks: "BacklinkIndex", tags: "TagIndex") -> None:
        """(Re-)populate the database from the indexes."""
        self._backlinks = backlinks
        self._tags = tags
        self._create_schema()
        self._load_links()
        self._load_tags()

    def _create_schema(self) -> None:
        self.conn.execute("""
            CREATE OR REPLACE TABLE links (
                seq         INTEGER,
                source      VARCHAR,
                line        INTEGER,
                text        VARCHAR,
                raw_target  VARCHAR,
                target      VARCHAR
            )
        """)
        self.conn.execute("""
            CREATE OR REPLACE TABLE tags (
                path          VARCHAR,
                tag           VARCHAR,
                title         VARCHAR,
                last_modified TIMESTAMP
            )
        """)

    def _load_links(self) -> None:
        rows = [
            (seq, str(link.source), link.line, link.text, link.raw_target, str(link.target))
            for seq, link in enumerate(self._backlinks.iter_links())
        ]
        if rows:
            self.conn.executemany("INSERT INTO links VALUES (?,?,?,?,?,?)", rows)

    def _load_tags(self) -> None:
        rows = [
            (str(memo.path), tag, memo.title, memo.last_modified)
            for memo in self._tags.iter_memos()
            for tag in memo.tags
        ]
        if rows:
            self.conn.executemany("INSERT INTO tags VALUES (?,?,?,?)", rows)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def query(self, sql: str, params: list[object] | None = None) -> pl.DataFrame:
        """Run a raw SQL query and return a Polars DataFrame."""
        return self.conn.execute(sql, params or []).pl()

    # ------------------------------------------------------------------
    # Pre-built views
    # ------------------------------------------------------------------

    def link_table(self, *, target: str | None = None) -> pl.DataFrame:
        """Every indexed link in index order, optionally only those to *target*."""
        if target is None:
            return self.query("SELECT source, line, text, raw_target, target FROM links ORDER BY seq")
        return self.query(
            "SELECT source, line, text, raw_target, target FROM links "
            "WHERE lower(target) = lower(?) ORDER BY seq",
            [target],
        )

    def most_linked(self, limit: int = 10) -> pl.DataFrame:
        """Targets by backlink count; ties keep first-indexed order."""
        return self.query(
            """
            SELECT arg_min(target, seq) AS target, COUNT(*) AS link_count
            FROM links
            GROUP BY lower(target)
            ORDER BY link_count DESC, MIN(seq)
            LIMIT ?
            """,
            [limit],
        )

    def tag_counts(self) -> pl.DataFrame:
        """Return a tag → memo count table sorted by frequency."""
        return self.query(
            """
            SELECT tag, COUNT(DISTINCT path) AS memo_count
            FROM tags
            GROUP BY tag
            ORDER BY memo_count DESC, tag
            """
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def schema_info(self, table: str = "links") -> pl.DataFrame:
        """Return DuckDB DESCRIBE output for *table*."""
        if table not in {"links", "tags"}:
            raise ValueError(f"Unknown table: {table}")
        return self.query(f"DESCRIBE {table}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "IndexDB":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
