from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Protocol, Sequence

MONETARY_FIELDS = (
    "valor_total_geral",
    "valor_total_procedimentos",
    "valor_total_materiais",
    "valor_total_medicamentos",
)


class GuideState(str, Enum):
    """Lifecycle state derived from (data_final_faturamento, motivo_encerramento)."""

    FINALIZADA = "FINALIZADA"
    EM_ANDAMENTO = "EM_ANDAMENTO"
    CANCELADA = "CANCELADA"

    @classmethod
    def parse(cls, value: str | None) -> "GuideState | None":
        try:
            return cls((value or "").strip().upper())
        except ValueError:
            return None


def classify_guide(data_final_faturamento: datetime | None, motivo_encerramento: str | None) -> GuideState:
    if motivo_encerramento is not None:
        return GuideState.CANCELADA
    if data_final_faturamento is not None:
        return GuideState.FINALIZADA
    return GuideState.EM_ANDAMENTO


class AnalyticsStore(Protocol):
    """Query contract the analytics aggregator needs from a guide store.

    All windows are inclusive on both ends and filter on the guide creation timestamp.
    """

    def count_guides(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState | None = None
    ) -> int: ...

    def sum_guide_values(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        fields: Sequence[str] = MONETARY_FIELDS,
        state: GuideState | None = None,
    ) -> dict[str, float]: ...

    def list_guides_by_state(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState, limit: int
    ) -> list[dict[str, Any]]: ...

    def count_procedures(self, tenant_id: str, start: datetime, end: datetime) -> int: ...

    def list_guide_values(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState
    ) -> list[dict[str, Any]]: ...
