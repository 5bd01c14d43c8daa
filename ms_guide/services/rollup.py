from __future__ import annotations

from collections.abc import Iterable, Mapping

from .status_vocabulary import PENDING, to_exposed

AUDIT_PENDING = "PENDING"
AUDIT_COMPLETED = "COMPLETED"


def compute_audit_status(procedure_ids: Iterable[int], status_by_procedure: Mapping[int, str]) -> str:
    """Fold a guide's procedures and their persisted statuses into PENDING/COMPLETED.

    COMPLETED only when the guide has at least one procedure, every procedure has a
    status row, and none of those rows reads as PENDING.
    """
    seen = 0
    for procedure_id in procedure_ids:
        seen += 1
        persisted = status_by_procedure.get(procedure_id)
        if persisted is None or to_exposed(persisted) == PENDING:
            return AUDIT_PENDING
    return AUDIT_COMPLETED if seen else AUDIT_PENDING
