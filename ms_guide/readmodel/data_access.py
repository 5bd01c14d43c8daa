"""
Accessor for the DuckDB read model (projected guides and procedures).

Usage:
    from ms_guide.readmodel import ReadModelLoader
    loader = ReadModelLoader()
    df = loader.query(f"SELECT COUNT(*) AS total FROM {loader.guides_table}")
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional, Sequence

import pandas as pd
import yaml

from ..db import duckdb_session

READ_MODEL_CONFIG_PATH = Path(__file__).with_name("config.yaml")


class ReadModelLoader:
    """Simple accessor for the analytics read model stored in DuckDB."""

    def __init__(
        self,
        duckdb_path: Optional[str] = None,
        config_path: Path = READ_MODEL_CONFIG_PATH,
    ) -> None:
        self._config = self._load_config(config_path)
        self.duckdb_path = duckdb_path or os.getenv("DUCKDB_PATH") or self._config.get("duckdb_path")
        tables = self._config.get("tables", {})
        self.guides_table = self._checked_name(tables.get("guides", "guides"))
        self.procedures_table = self._checked_name(tables.get("procedures", "guide_procedures"))
        self.etl_runs_table = self._checked_name(tables.get("etl_runs", "etl_runs"))

    @staticmethod
    def _load_config(path: Path) -> dict:
        if not path.exists():
            raise FileNotFoundError(f"Config not found at {path}")
        with path.open() as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _is_safe_name(name: str) -> bool:
        """Basic safeguard preventing SQL injection via table or column names."""
        return bool(name) and name.replace("_", "").isalnum()

    @classmethod
    def _checked_name(cls, name: str) -> str:
        if not cls._is_safe_name(name):
            raise ValueError(f"Invalid table name in read model config: {name}")
        return name

    def query(self, sql: str, params: Optional[Sequence[object]] = None) -> pd.DataFrame:
        """Execute a read-only SQL query against the read model and return the results."""
        with duckdb_session(self.duckdb_path, read_only=True) as con:
            return con.execute(sql, list(params or [])).fetchdf()

    def replace_table(
        self,
        table_name: str,
        columns: Sequence[tuple[str, str]],
        rows: Iterable[Sequence[object]],
    ) -> int:
        """
        Recreate a table with an explicit schema and load the given rows.

        Args:
            table_name: Target table name.
            columns: (name, DuckDB type) pairs in insert order.
            rows: Row tuples matching ``columns``.

        Returns:
            Number of rows written.
        """
        table = self._checked_name(table_name)
        for name, _ in columns:
            self._checked_name(name)

        column_sql = ", ".join(f"{name} {sql_type}" for name, sql_type in columns)
        placeholders = ", ".join("?" for _ in columns)
        materialized = [tuple(row) for row in rows]

        with duckdb_session(self.duckdb_path, read_only=False) as con:
            con.execute(f"DROP TABLE IF EXISTS {table}")
            con.execute(f"CREATE TABLE {table} ({column_sql})")
            if materialized:
                con.executemany(f"INSERT INTO {table} VALUES ({placeholders})", materialized)
        return len(materialized)

    def table_exists(self, table_name: str) -> bool:
        sql = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'main' AND table_name = ?
        """
        with duckdb_session(self.duckdb_path, read_only=True) as con:
            return con.execute(sql, [table_name]).fetchone() is not None
