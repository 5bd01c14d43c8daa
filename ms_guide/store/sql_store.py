from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Guide, GuideProcedure, ProcedureStatus
from .base import MONETARY_FIELDS, GuideState


def _state_clauses(state: GuideState | None) -> list:
    if state is GuideState.FINALIZADA:
        return [Guide.data_final_faturamento.isnot(None), Guide.motivo_encerramento.is_(None)]
    if state is GuideState.EM_ANDAMENTO:
        return [Guide.data_final_faturamento.is_(None), Guide.motivo_encerramento.is_(None)]
    if state is GuideState.CANCELADA:
        return [Guide.motivo_encerramento.isnot(None)]
    return []


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class SqlGuideStore:
    """Guide store backed by the relational write database (Flask-SQLAlchemy session)."""

    # --- guide/procedure lookups -------------------------------------------------

    def find_guides(
        self,
        tenant_id: str,
        limit: int,
        offset: int,
        search: str | None = None,
        tipo_guia: str | None = None,
    ) -> tuple[list[Guide], int]:
        query = Guide.query.filter(Guide.tenant_id == tenant_id)
        if tipo_guia:
            query = query.filter(Guide.tipo_guia == tipo_guia)
        if search:
            pattern = _like_pattern(search)
            query = query.filter(
                or_(
                    Guide.numero_guia_prestador.ilike(pattern, escape="\\"),
                    Guide.numero_carteira.ilike(pattern, escape="\\"),
                    Guide.numero_guia_operadora.ilike(pattern, escape="\\"),
                )
            )

        total = query.order_by(None).count()
        guides = (
            query.order_by(Guide.created_at.desc(), Guide.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return guides, total

    def fetch_procedure_projection(self, guide_ids: Sequence[int]) -> dict[int, list[dict[str, Any]]]:
        """Return a slim procedure listing per guide id."""
        if not guide_ids:
            return {}
        rows = (
            db.session.query(
                GuideProcedure.id,
                GuideProcedure.guide_id,
                GuideProcedure.sequencial_item,
                GuideProcedure.codigo_procedimento,
                GuideProcedure.descricao_procedimento,
                GuideProcedure.valor_total,
            )
            .filter(GuideProcedure.guide_id.in_(guide_ids))
            .order_by(GuideProcedure.guide_id, GuideProcedure.sequencial_item, GuideProcedure.id)
            .all()
        )
        projection: dict[int, list[dict[str, Any]]] = defaultdict(list)
        for row in rows:
            projection[row.guide_id].append(
                {
                    "id": row.id,
                    "sequencialItem": row.sequencial_item,
                    "codigoProcedimento": row.codigo_procedimento,
                    "descricaoProcedimento": row.descricao_procedimento,
                    "valorTotal": row.valor_total,
                }
            )
        return dict(projection)

    def fetch_status_map(self, guide_ids: Sequence[int]) -> dict[int, dict[int, str]]:
        """Return {guide_id: {procedure_id: persisted_status}} for the given guides."""
        if not guide_ids:
            return {}
        rows = (
            db.session.query(ProcedureStatus.guide_id, ProcedureStatus.procedure_id, ProcedureStatus.status)
            .filter(ProcedureStatus.guide_id.in_(guide_ids))
            .all()
        )
        status_map: dict[int, dict[int, str]] = defaultdict(dict)
        for guide_id, procedure_id, status in rows:
            status_map[guide_id][procedure_id] = status
        return dict(status_map)

    def get_guide(self, guide_id: int) -> Guide | None:
        return db.session.get(Guide, guide_id)

    def get_guide_by_number(self, numero_guia_prestador: str) -> Guide | None:
        return (
            Guide.query.filter(Guide.numero_guia_prestador == numero_guia_prestador)
            .order_by(Guide.id.asc())
            .first()
        )

    def list_procedures_with_status(
        self, guide_id: int, limit: int, offset: int
    ) -> list[tuple[GuideProcedure, ProcedureStatus | None]]:
        return (
            db.session.query(GuideProcedure, ProcedureStatus)
            .outerjoin(
                ProcedureStatus,
                (ProcedureStatus.procedure_id == GuideProcedure.id)
                & (ProcedureStatus.guide_id == GuideProcedure.guide_id),
            )
            .filter(GuideProcedure.guide_id == guide_id)
            .order_by(GuideProcedure.sequencial_item.asc(), GuideProcedure.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_procedure(self, procedure_id: int) -> GuideProcedure | None:
        return db.session.get(GuideProcedure, procedure_id)

    def get_status(self, guide_id: int, procedure_id: int) -> ProcedureStatus | None:
        return ProcedureStatus.query.filter_by(guide_id=guide_id, procedure_id=procedure_id).first()

    def save_procedure_audit(
        self,
        procedure: GuideProcedure,
        fields: dict[str, Any],
        persisted_status: str | None,
    ) -> ProcedureStatus | None:
        """Write procedure fields and upsert its status row in a single transaction.

        Returns the status row as it stands after the write (None when none exists).
        """
        try:
            for name, value in fields.items():
                setattr(procedure, name, value)

            status_row = self.get_status(procedure.guide_id, procedure.id)
            if persisted_status is not None:
                now = datetime.now()
                if status_row is None:
                    status_row = ProcedureStatus(
                        guide_id=procedure.guide_id,
                        procedure_id=procedure.id,
                        status=persisted_status,
                        auditor_id="SYSTEM",
                        created_at=now,
                        updated_at=now,
                    )
                    db.session.add(status_row)
                else:
                    status_row.status = persisted_status
                    status_row.updated_at = now

            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return status_row

    def count_by_tipo_guia(self, tenant_id: str) -> dict[str, int]:
        rows = (
            db.session.query(Guide.tipo_guia, func.count(Guide.id))
            .filter(Guide.tenant_id == tenant_id, Guide.tipo_guia.isnot(None))
            .group_by(Guide.tipo_guia)
            .all()
        )
        return {tipo: int(count) for tipo, count in rows}

    def total_procedures_value(self, tenant_id: str) -> float:
        total = (
            db.session.query(func.coalesce(func.sum(Guide.valor_total_procedimentos), 0.0))
            .filter(Guide.tenant_id == tenant_id)
            .scalar()
        )
        return float(total or 0)

    # --- analytics contract --------------------------------------------------------

    def _window_query(self, tenant_id: str, start: datetime, end: datetime, state: GuideState | None):
        return Guide.query.filter(
            Guide.tenant_id == tenant_id,
            Guide.created_at >= start,
            Guide.created_at <= end,
            *_state_clauses(state),
        )

    def count_guides(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState | None = None
    ) -> int:
        return self._window_query(tenant_id, start, end, state).count()

    def sum_guide_values(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        fields: Sequence[str] = MONETARY_FIELDS,
        state: GuideState | None = None,
    ) -> dict[str, float]:
        columns = [func.coalesce(func.sum(getattr(Guide, name)), 0.0) for name in fields]
        row = (
            db.session.query(*columns)
            .filter(
                Guide.tenant_id == tenant_id,
                Guide.created_at >= start,
                Guide.created_at <= end,
                *_state_clauses(state),
            )
            .one()
        )
        return {name: float(value or 0) for name, value in zip(fields, row)}

    def list_guides_by_state(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState, limit: int
    ) -> list[dict[str, Any]]:
        guides = (
            self._window_query(tenant_id, start, end, state)
            .order_by(Guide.created_at.desc(), Guide.id.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                "id": guide.id,
                "numeroGuiaPrestador": guide.numero_guia_prestador,
                "numeroGuiaOperadora": guide.numero_guia_operadora,
                "numeroCarteira": guide.numero_carteira,
                "dataAutorizacao": _isoformat(guide.data_autorizacao),
                "valorTotalGeral": guide.valor_total_geral,
                "tipoFaturamento": guide.tipo_faturamento,
            }
            for guide in guides
        ]

    def count_procedures(self, tenant_id: str, start: datetime, end: datetime) -> int:
        total = (
            db.session.query(func.count(GuideProcedure.id))
            .join(Guide, Guide.id == GuideProcedure.guide_id)
            .filter(
                Guide.tenant_id == tenant_id,
                Guide.created_at >= start,
                Guide.created_at <= end,
            )
            .scalar()
        )
        return int(total or 0)

    def list_guide_values(
        self, tenant_id: str, start: datetime, end: datetime, state: GuideState
    ) -> list[dict[str, Any]]:
        rows = (
            db.session.query(
                Guide.id,
                Guide.tipo_faturamento,
                *[getattr(Guide, name) for name in MONETARY_FIELDS],
            )
            .filter(
                Guide.tenant_id == tenant_id,
                Guide.created_at >= start,
                Guide.created_at <= end,
                *_state_clauses(state),
            )
            .order_by(Guide.created_at.asc(), Guide.id.asc())
            .all()
        )
        return [dict(row._mapping) for row in rows]
