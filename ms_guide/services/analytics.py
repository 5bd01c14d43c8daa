from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from typing import Any, Iterator

import pandas as pd
from flask import current_app

from ..errors import InvalidArgument, StoreError
from ..store import STORE_ERRORS, AnalyticsStore, GuideState, SqlGuideStore

logger = logging.getLogger(__name__)

PERIOD_OFFSETS: dict[str, pd.DateOffset | None] = {
    "day": None,
    "week": pd.DateOffset(days=7),
    "month": pd.DateOffset(months=1),
    "year": pd.DateOffset(years=1),
}
DEFAULT_STATUS_LIMIT = 100
UNSPECIFIED_BILLING_TYPE = "NAO_ESPECIFICADO"
END_OF_DAY = time(23, 59, 59, 999000)


def _as_date(reference: date | datetime | None) -> date:
    if reference is None:
        return date.today()
    if isinstance(reference, datetime):
        return reference.date()
    return reference


def compute_window(period: str, reference: date | datetime | None) -> tuple[datetime, datetime]:
    """Return the inclusive [start, end] window for a period ending on the reference day.

    The end is always the reference day at 23:59:59.999; week/month/year start that many
    units before the reference day's midnight.
    """
    normalized = (period or "").strip().lower()
    if normalized not in PERIOD_OFFSETS:
        raise InvalidArgument(f"Período inválido: {period}")

    day = _as_date(reference)
    day_start = datetime.combine(day, time.min)
    end = datetime.combine(day, END_OF_DAY)

    offset = PERIOD_OFFSETS[normalized]
    if offset is None:
        return day_start, end
    start = (pd.Timestamp(day_start) - offset).to_pydatetime()
    return start, end


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


class AnalyticsAggregator:
    """Period-bounded summaries over a tenant's guides."""

    def __init__(self, store: AnalyticsStore, default_tenant_id: str) -> None:
        self.store = store
        self.default_tenant_id = default_tenant_id

    def _tenant(self, tenant_id: str | None) -> str:
        return tenant_id or self.default_tenant_id

    @contextmanager
    def _store_call(self, message: str) -> Iterator[None]:
        try:
            yield
        except STORE_ERRORS as exc:
            logger.exception("[Analytics] %s", message)
            raise StoreError(message) from exc

    def get_daily_summary(
        self, reference: date | datetime | None = None, tenant_id: str | None = None
    ) -> dict[str, Any]:
        tenant = self._tenant(tenant_id)
        start, end = compute_window("day", reference)

        with self._store_call("Erro ao buscar resumo diário de guias"):
            total = self.store.count_guides(tenant, start, end)
            finalizadas = self.store.count_guides(tenant, start, end, GuideState.FINALIZADA)
            em_andamento = self.store.count_guides(tenant, start, end, GuideState.EM_ANDAMENTO)
            canceladas = self.store.count_guides(tenant, start, end, GuideState.CANCELADA)
            sums = self.store.sum_guide_values(tenant, start, end, fields=("valor_total_geral",))

        valor_total = float(sums["valor_total_geral"])
        logger.info("[Analytics] Resumo diário tenant=%s: %s guias, %s finalizadas", tenant, total, finalizadas)
        return {
            "total": total,
            "finalizadas": finalizadas,
            "em_andamento": em_andamento,
            "canceladas": canceladas,
            "valor_total": valor_total,
            "valor_medio": _ratio(valor_total, total),
        }

    def get_guides_by_status(
        self,
        status: str,
        reference: date | datetime | None = None,
        limit: int = DEFAULT_STATUS_LIMIT,
        tenant_id: str | None = None,
    ) -> list[dict[str, Any]]:
        state = GuideState.parse(status)
        if state is None:
            raise InvalidArgument(f"Status inválido: {status}")

        limit = min(limit if limit and limit > 0 else DEFAULT_STATUS_LIMIT, DEFAULT_STATUS_LIMIT)
        tenant = self._tenant(tenant_id)
        start, end = compute_window("day", reference)
        with self._store_call("Erro ao buscar guias por status"):
            guides = self.store.list_guides_by_state(tenant, start, end, state, limit)

        return [{**guide, "status": state.value} for guide in guides]

    def get_statistics(
        self, period: str = "day", reference: date | datetime | None = None, tenant_id: str | None = None
    ) -> dict[str, Any]:
        tenant = self._tenant(tenant_id)
        start, end = compute_window(period, reference)

        with self._store_call("Erro ao buscar estatísticas de guias"):
            total = self.store.count_guides(tenant, start, end)
            finalizadas = self.store.count_guides(tenant, start, end, GuideState.FINALIZADA)
            em_andamento = self.store.count_guides(tenant, start, end, GuideState.EM_ANDAMENTO)
            canceladas = self.store.count_guides(tenant, start, end, GuideState.CANCELADA)
            sums = self.store.sum_guide_values(tenant, start, end, fields=("valor_total_geral",))
            procedimentos = self.store.count_procedures(tenant, start, end)

        valor_total = float(sums["valor_total_geral"])
        # Cancelled guides count as closed for the completion rate.
        taxa_finalizacao = _ratio(finalizadas + canceladas, total) * 100
        return {
            "total_guias": total,
            "guias_finalizadas": finalizadas,
            "guias_em_andamento": em_andamento,
            "guias_canceladas": canceladas,
            "taxa_finalizacao": round(taxa_finalizacao, 2),
            "valor_total": valor_total,
            "valor_medio_guia": round(_ratio(valor_total, total), 2),
            "procedimentos_total": procedimentos,
            "procedimentos_por_guia": round(_ratio(procedimentos, total), 2),
        }

    def get_revenue(
        self, period: str = "day", reference: date | datetime | None = None, tenant_id: str | None = None
    ) -> dict[str, Any]:
        tenant = self._tenant(tenant_id)
        start, end = compute_window(period, reference)

        with self._store_call("Erro ao buscar receita de guias"):
            guides = self.store.list_guide_values(tenant, start, end, GuideState.FINALIZADA)

        receita_total = 0.0
        valor_total_procedimentos = 0.0
        valor_total_materiais = 0.0
        valor_total_medicamentos = 0.0
        por_tipo: dict[str, dict[str, Any]] = {}

        for guide in guides:
            valor_geral = guide.get("valor_total_geral") or 0.0
            receita_total += valor_geral
            valor_total_procedimentos += guide.get("valor_total_procedimentos") or 0.0
            valor_total_materiais += guide.get("valor_total_materiais") or 0.0
            valor_total_medicamentos += guide.get("valor_total_medicamentos") or 0.0

            tipo = guide.get("tipo_faturamento") or UNSPECIFIED_BILLING_TYPE
            bucket = por_tipo.setdefault(tipo, {"tipo": tipo, "quantidade": 0, "valor_total": 0.0})
            bucket["quantidade"] += 1
            bucket["valor_total"] += valor_geral

        return {
            "receita_total": float(receita_total),
            "guias_faturadas": len(guides),
            "valor_medio_guia": round(_ratio(receita_total, len(guides)), 2),
            "valor_total_procedimentos": float(valor_total_procedimentos),
            "valor_total_materiais": float(valor_total_materiais),
            "valor_total_medicamentos": float(valor_total_medicamentos),
            "por_tipo_faturamento": list(por_tipo.values()),
        }


def build_analytics_aggregator() -> AnalyticsAggregator:
    """Create an aggregator wired to the configured read backend for the current app."""
    backend = current_app.config.get("ANALYTICS_BACKEND", "sql")
    if backend == "duckdb":
        from ..store.duckdb_store import DuckDBGuideStore

        store: AnalyticsStore = DuckDBGuideStore(duckdb_path=current_app.config.get("DUCKDB_PATH"))
    else:
        store = SqlGuideStore()
    return AnalyticsAggregator(store, default_tenant_id=current_app.config["DEFAULT_TENANT_ID"])
