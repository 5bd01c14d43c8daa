from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..db import duckdb_session


@dataclass(frozen=True)
class RunMetadata:
    """Container for one read-model projection run."""

    run_id: str
    executed_at: datetime


def ensure_metadata_tables(duckdb_path: str | None, table_name: str = "etl_runs") -> None:
    """Ensure the projection run log exists."""
    if not duckdb_path:
        return

    with duckdb_session(duckdb_path, read_only=False) as con:
        con.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                run_id TEXT PRIMARY KEY,
                executed_at TIMESTAMP NOT NULL,
                guides_projected BIGINT,
                procedures_projected BIGINT,
                notes TEXT
            );
            """
        )


def record_etl_run(
    duckdb_path: str | None,
    guides_projected: int,
    procedures_projected: int,
    notes: str | None = None,
    table_name: str = "etl_runs",
) -> RunMetadata | None:
    """Persist projection run metadata."""
    if not duckdb_path:
        return None

    ensure_metadata_tables(duckdb_path, table_name)
    run_id = str(uuid.uuid4())
    executed_at = datetime.now(tz=timezone.utc)

    with duckdb_session(duckdb_path, read_only=False) as con:
        con.execute(
            f"""
            INSERT INTO {table_name} (run_id, executed_at, guides_projected, procedures_projected, notes)
            VALUES (?, ?, ?, ?, ?);
            """,
            [run_id, executed_at.replace(tzinfo=None), guides_projected, procedures_projected, notes],
        )

    return RunMetadata(run_id=run_id, executed_at=executed_at)


def latest_etl_run(duckdb_path: str | None, table_name: str = "etl_runs") -> dict[str, Any] | None:
    """Return the most recent projection run, or None when nothing was recorded yet."""
    if not duckdb_path:
        return None

    with duckdb_session(duckdb_path, read_only=True) as con:
        exists = con.execute(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'main' AND table_name = ?
            """,
            [table_name],
        ).fetchone()
        if not exists:
            return None
        row = con.execute(
            f"""
            SELECT run_id, executed_at, guides_projected, procedures_projected
            FROM {table_name}
            ORDER BY executed_at DESC
            LIMIT 1
            """
        ).fetchone()

    if row is None:
        return None
    run_id, executed_at, guides_projected, procedures_projected = row
    return {
        "run_id": run_id,
        "executed_at": executed_at.isoformat() if executed_at else None,
        "guides_projected": int(guides_projected or 0),
        "procedures_projected": int(procedures_projected or 0),
    }
