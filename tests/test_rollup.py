from ms_guide.services.rollup import AUDIT_COMPLETED, AUDIT_PENDING, compute_audit_status


def test_guide_without_procedures_is_pending():
    assert compute_audit_status([], {}) == AUDIT_PENDING


def test_all_procedures_audited_is_completed():
    statuses = {1: "APROVADO", 2: "REJEITADO"}
    assert compute_audit_status([1, 2], statuses) == AUDIT_COMPLETED


def test_procedure_without_status_row_keeps_guide_pending():
    assert compute_audit_status([1, 2], {1: "APROVADO"}) == AUDIT_PENDING


def test_explicit_pending_row_keeps_guide_pending():
    assert compute_audit_status([1, 2], {1: "APROVADO", 2: "PENDENTE"}) == AUDIT_PENDING


def test_unknown_persisted_value_counts_as_pending():
    assert compute_audit_status([1], {1: "EM_ANALISE"}) == AUDIT_PENDING


def test_accepts_any_iterable_of_ids():
    ids = (procedure_id for procedure_id in [7, 8])
    assert compute_audit_status(ids, {7: "APROVADO", 8: "APROVADO"}) == AUDIT_COMPLETED


def test_statuses_for_other_procedures_are_ignored():
    assert compute_audit_status([1], {2: "APROVADO"}) == AUDIT_PENDING
