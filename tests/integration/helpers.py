"""Standard-library helpers for reading and writing standalone stores."""

from __future__ import annotations

import sqlite3
from pathlib import Path


def read_file_rows(path: Path) -> list[tuple[int, str]]:
    """Read the seeded table from a file with the standard library client."""
    conn = sqlite3.connect(path)
    try:
        return [tuple(row) for row in conn.execute("select id, name from test")]
    finally:
        conn.close()


def write_file_rows(path: Path, rows: list[tuple[int, str]]) -> None:
    """Create a standalone store holding ``rows`` in a ``test`` table."""
    conn = sqlite3.connect(path)
    try:
        conn.execute("create table test (id integer primary key, name text)")
        conn.executemany("insert into test (id, name) values (?, ?)", rows)
        conn.commit()
    finally:
        conn.close()
