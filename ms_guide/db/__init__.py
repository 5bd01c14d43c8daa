import os
from contextlib import contextmanager
from typing import Iterator

import duckdb


def get_duckdb_path() -> str:
    """Resolve DuckDB read-model path from environment, defaulting to instance dir."""
    return os.getenv("DUCKDB_PATH", os.path.join("instance", "guides_read.duckdb"))


@contextmanager
def duckdb_session(path: str | None = None, read_only: bool = True) -> Iterator[duckdb.DuckDBPyConnection]:
    """Yield a DuckDB connection. Write mode allowed when read_only is False."""
    database = path or get_duckdb_path()
    if read_only and not os.path.exists(database):
        raise FileNotFoundError(f"DuckDB file not found: {database}")
    if not read_only:
        os.makedirs(os.path.dirname(database) or ".", exist_ok=True)
    conn = duckdb.connect(database=database, read_only=read_only)
    try:
        yield conn
    finally:
        conn.close()
