from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

import pandas as pd

from ..readmodel import ReadModelLoader
from .base import MONETARY_FIELDS, GuideState

STATE_PREDICATES: dict[GuideState, str] = {
    GuideState.FINALIZADA: "data_final_faturamento IS NOT NULL AND motivo_encerramento IS NULL",
    GuideState.EM_ANDAMENTO: "data_final_faturamento IS NULL AND motivo_encerramento IS NULL",
    GuideState.CANCELADA: "motivo_encerramento IS NOT NULL",
}


def _is_na(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _to_optional_float(value: Any) -> float | None:
    if _is_na(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_optional_str(value: Any) -> str | None:
    if _is_na(value):
        return None
    return str(value)


def _to_optional_datetime(value: Any) -> str | None:
    if _is_na(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime().isoformat()
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class DuckDBGuideStore:
    """Analytics store reading the projected guides from the DuckDB read model."""

    def __init__(self, duckdb_path: str | None = None, loader: ReadModelLoader | None = None) -> None:
        self.loader = loader or ReadModelLoader(duckdb_path=duckdb_path)

    def _where(self, state: GuideState | None) -> str:
        clauses = ["tenant_id = ?", "created_at >= ?", "created_at <= ?"]
        if state is not None:
            clauses.append(f"({STATE_PREDICATES[state]})")
        return " AND ".join(clauses)

    @staticmethod
    def _params(tenant_id: str, start: datetime, end: datetime) -> list[object]:
        return [tenant_id, start, end]

    def count_guides(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState | None = None
    ) -> int:
        df = self.loader.query(
            f"SELECT COUNT(*) AS total FROM {self.loader.guides_table} WHERE {self._where(state)}",
            self._params(tenant_id, start, end),
        )
        return int(df["total"].iloc[0]) if not df.empty else 0

    def sum_guide_values(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        fields: Sequence[str] = MONETARY_FIELDS,
        state: GuideState | None = None,
    ) -> dict[str, float]:
        for name in fields:
            if name not in MONETARY_FIELDS:
                raise ValueError(f"Unsupported monetary field: {name}")
        columns = ", ".join(f"COALESCE(SUM({name}), 0) AS {name}" for name in fields)
        df = self.loader.query(
            f"SELECT {columns} FROM {self.loader.guides_table} WHERE {self._where(state)}",
            self._params(tenant_id, start, end),
        )
        if df.empty:
            return {name: 0.0 for name in fields}
        row = df.iloc[0]
        return {name: _to_optional_float(row[name]) or 0.0 for name in fields}

    def list_guides_by_state(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState, limit: int
    ) -> list[dict[str, Any]]:
        df = self.loader.query(
            f"""
            SELECT id, numero_guia_prestador, numero_guia_operadora, numero_carteira,
                   data_autorizacao, valor_total_geral, tipo_faturamento
            FROM {self.loader.guides_table}
            WHERE {self._where(state)}
            ORDER BY created_at DESC, id DESC
            LIMIT {int(limit)}
            """,
            self._params(tenant_id, start, end),
        )
        return [
            {
                "id": int(row.id),
                "numeroGuiaPrestador": _to_optional_str(row.numero_guia_prestador),
                "numeroGuiaOperadora": _to_optional_str(row.numero_guia_operadora),
                "numeroCarteira": _to_optional_str(row.numero_carteira),
                "dataAutorizacao": _to_optional_datetime(row.data_autorizacao),
                "valorTotalGeral": _to_optional_float(row.valor_total_geral),
                "tipoFaturamento": _to_optional_str(row.tipo_faturamento),
            }
            for row in df.itertuples(index=False)
        ]

    def count_procedures(self, tenant_id: str, start: datetime, end: datetime) -> int:
        df = self.loader.query(
            f"""
            SELECT COUNT(p.id) AS total
            FROM {self.loader.procedures_table} p
            JOIN {self.loader.guides_table} g ON g.id = p.guide_id
            WHERE g.tenant_id = ? AND g.created_at >= ? AND g.created_at <= ?
            """,
            self._params(tenant_id, start, end),
        )
        return int(df["total"].iloc[0]) if not df.empty else 0

    def list_guide_values(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState
    ) -> list[dict[str, Any]]:
        columns = ", ".join(MONETARY_FIELDS)
        df = self.loader.query(
            f"""
            SELECT id, tipo_faturamento, {columns}
            FROM {self.loader.guides_table}
            WHERE {self._where(state)}
            ORDER BY created_at ASC, id ASC
            """,
            self._params(tenant_id, start, end),
        )
        results: list[dict[str, Any]] = []
        for record in df.to_dict(orient="records"):
            item: dict[str, Any] = {
                "id": int(record["id"]),
                "tipo_faturamento": _to_optional_str(record["tipo_faturamento"]),
            }
            for name in MONETARY_FIELDS:
                item[name] = _to_optional_float(record[name])
            results.append(item)
        return results
