from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from ..errors import InvalidArgument, NotFound, StoreError
from ..store import STORE_ERRORS, SqlGuideStore
from .events import GUIDE_UPDATED_TOPIC, get_event_publisher
from .rollup import compute_audit_status
from .status_vocabulary import (
    ACCEPTED_STATUSES,
    PENDING,
    REJECTED,
    normalize_requested_status,
    to_exposed,
    to_persisted,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 100
DEFAULT_PROCEDURE_LIMIT = 200


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int
    page: int

    def metadata(self, total: int) -> dict[str, Any]:
        return {
            "total": total,
            "page": self.page,
            "limit": self.limit,
            "hasNext": self.offset + self.limit < total,
            "hasPrev": self.offset > 0,
        }


def resolve_pagination(
    limit: int | None = None,
    offset: int | None = None,
    page: int | None = None,
    max_limit: int = MAX_LIMIT,
) -> Pagination:
    """Clamp limit and derive offset from page when no explicit offset is given."""
    effective_limit = min(limit if limit and limit > 0 else DEFAULT_LIMIT, max_limit)
    effective_page = page if page and page > 0 else 1
    if offset is None or offset < 0:
        offset = (effective_page - 1) * effective_limit
    return Pagination(limit=effective_limit, offset=offset, page=effective_page)


def _parse_identifier(value: Any, label: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"Invalid {label} ID") from exc


def _parse_amount(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidArgument("valorAprovado must be a number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument("valorAprovado must be a number") from exc
    if not math.isfinite(parsed):
        raise InvalidArgument("valorAprovado must be a number")
    return parsed


def _require_text(value: Any, field: str) -> None:
    if value is not None and not isinstance(value, str):
        raise InvalidArgument(f"{field} must be a string")


def list_guides(
    tenant_id: str,
    *,
    limit: int | None = None,
    offset: int | None = None,
    page: int | None = None,
    search: str | None = None,
    tipo_guia: str | None = None,
    max_limit: int = MAX_LIMIT,
    store: SqlGuideStore | None = None,
) -> dict[str, Any]:
    """Return one page of guides for a tenant, each with its derived auditStatus, plus paging metadata."""
    store = store or SqlGuideStore()
    pagination = resolve_pagination(limit, offset, page, max_limit=max_limit)
    try:
        guides, total = store.find_guides(
            tenant_id,
            limit=pagination.limit,
            offset=pagination.offset,
            search=(search or "").strip() or None,
            tipo_guia=tipo_guia or None,
        )
        guide_ids = [guide.id for guide in guides]
        procedures = store.fetch_procedure_projection(guide_ids)
        statuses = store.fetch_status_map(guide_ids)
    except STORE_ERRORS as exc:
        logger.exception("Error retrieving guides for tenant %s", tenant_id)
        raise StoreError("Failed to retrieve guides") from exc

    data: list[dict[str, Any]] = []
    for guide in guides:
        guide_procedures = procedures.get(guide.id, [])
        payload = guide.to_dict()
        payload["procedures"] = guide_procedures
        payload["auditStatus"] = compute_audit_status(
            (procedure["id"] for procedure in guide_procedures),
            statuses.get(guide.id, {}),
        )
        data.append(payload)

    return {"data": data, **pagination.metadata(total)}


def get_guide_by_id(guide_id: Any, store: SqlGuideStore | None = None) -> dict[str, Any]:
    store = store or SqlGuideStore()
    parsed_id = _parse_identifier(guide_id, "guide")
    try:
        guide = store.get_guide(parsed_id)
        payload = guide.to_dict(include_procedures=True) if guide else None
    except STORE_ERRORS as exc:
        logger.exception("Error retrieving guide %s", parsed_id)
        raise StoreError("Failed to retrieve guide") from exc
    if payload is None:
        raise NotFound("Guide not found")
    return payload


def get_procedures_by_guide_number(
    numero_guia_prestador: str | None,
    limit: int = DEFAULT_PROCEDURE_LIMIT,
    offset: int = 0,
    store: SqlGuideStore | None = None,
) -> list[dict[str, Any]]:
    """List a guide's procedures with their exposed status.

    An unknown guide number yields an empty list; callers decide whether that is a 404.
    """
    numero = (numero_guia_prestador or "").strip()
    if not numero:
        raise InvalidArgument("numeroGuiaPrestador is required")

    store = store or SqlGuideStore()
    try:
        guide = store.get_guide_by_number(numero)
        if guide is None:
            return []
        rows = store.list_procedures_with_status(guide.id, limit=limit, offset=offset)
    except STORE_ERRORS as exc:
        logger.exception("Error retrieving procedures for guide %s", numero)
        raise StoreError("Failed to retrieve guide procedures") from exc

    procedures: list[dict[str, Any]] = []
    for procedure, status_row in rows:
        payload = procedure.to_dict()
        payload["guiaId"] = str(procedure.guide_id)
        payload["status"] = to_exposed(status_row.status if status_row else None)
        payload["auditorId"] = status_row.auditor_id if status_row else None
        payload["observacoes"] = status_row.observacoes if status_row else None
        payload["statusUpdatedAt"] = (
            status_row.updated_at.isoformat() if status_row and status_row.updated_at else None
        )
        procedures.append(payload)
    return procedures


def get_procedure_by_id(procedure_id: Any, store: SqlGuideStore | None = None) -> dict[str, Any]:
    store = store or SqlGuideStore()
    parsed_id = _parse_identifier(procedure_id, "procedure")
    try:
        procedure = store.get_procedure(parsed_id)
        payload = procedure.to_dict(include_guide=True) if procedure else None
    except STORE_ERRORS as exc:
        logger.exception("Error retrieving procedure %s", parsed_id)
        raise StoreError("Failed to retrieve guide procedure") from exc
    if payload is None:
        raise NotFound("Guide procedure not found")
    return payload


def get_guide_stats(tenant_id: str, store: SqlGuideStore | None = None) -> dict[str, Any]:
    store = store or SqlGuideStore()
    try:
        count_by_type = store.count_by_tipo_guia(tenant_id)
        total_value = store.total_procedures_value(tenant_id)
    except STORE_ERRORS as exc:
        logger.exception("Error retrieving guide stats for tenant %s", tenant_id)
        raise StoreError("Failed to retrieve guide statistics") from exc
    return {"countByType": count_by_type, "totalValue": total_value}


def update_procedure_status(
    procedure_id: Any,
    status: str | None,
    valor_aprovado: Any = None,
    motivo_rejeicao: str | None = None,
    categoria_rejeicao: str | None = None,
    store: SqlGuideStore | None = None,
) -> dict[str, Any]:
    """Record an audit decision for one procedure.

    Only supplied fields are written. The status row is upserted in the persisted
    vocabulary; FINALIZED is accepted but leaves the status row untouched.
    """
    parsed_id = _parse_identifier(procedure_id, "procedure")
    _require_text(status, "status")
    _require_text(motivo_rejeicao, "motivoRejeicao")
    _require_text(categoria_rejeicao, "categoriaRejeicao")

    requested = normalize_requested_status(status)
    if not requested:
        raise InvalidArgument("Status is required")
    if requested not in ACCEPTED_STATUSES:
        raise InvalidArgument(f"Invalid status. Must be one of: {', '.join(ACCEPTED_STATUSES)}")
    if requested == REJECTED and not motivo_rejeicao:
        raise InvalidArgument("motivoRejeicao is required when rejecting a procedure")

    fields: dict[str, Any] = {}
    if valor_aprovado is not None:
        fields["valor_aprovado"] = _parse_amount(valor_aprovado)
    if motivo_rejeicao is not None:
        fields["motivo_rejeicao"] = motivo_rejeicao
    if categoria_rejeicao is not None:
        fields["categoria_rejeicao"] = categoria_rejeicao

    store = store or SqlGuideStore()
    try:
        procedure = store.get_procedure(parsed_id)
    except STORE_ERRORS as exc:
        logger.exception("Error loading procedure %s", parsed_id)
        raise StoreError("Failed to update procedure status") from exc
    if procedure is None:
        raise NotFound("Procedure not found")

    try:
        status_row = store.save_procedure_audit(procedure, fields, to_persisted(requested))
        payload = procedure.to_dict(include_guide=True)
    except STORE_ERRORS as exc:
        logger.exception("Error updating procedure %s status", parsed_id)
        raise StoreError("Failed to update procedure status") from exc

    payload["status"] = to_exposed(status_row.status) if status_row else PENDING
    logger.info(
        "Procedure status updated procedure_id=%s status=%s valor_aprovado=%s has_rejeicao=%s",
        parsed_id,
        requested,
        fields.get("valor_aprovado"),
        bool(motivo_rejeicao),
    )

    get_event_publisher().publish(
        GUIDE_UPDATED_TOPIC,
        {
            "guideId": procedure.guide_id,
            "procedureId": procedure.id,
            "status": payload["status"],
        },
    )
    return payload
