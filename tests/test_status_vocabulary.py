from ms_guide.services.status_vocabulary import (
    ACCEPTED_STATUSES,
    FINALIZED,
    normalize_requested_status,
    to_exposed,
    to_persisted,
)


def test_persisted_values_translate_to_exposed():
    assert to_exposed("APROVADO") == "APPROVED"
    assert to_exposed("REJEITADO") == "REJECTED"
    assert to_exposed("PENDENTE") == "PENDING"


def test_missing_or_unknown_persisted_value_reads_as_pending():
    assert to_exposed(None) == "PENDING"
    assert to_exposed("") == "PENDING"
    assert to_exposed("SOMETHING_ELSE") == "PENDING"


def test_exposed_values_translate_to_persisted():
    assert to_persisted("APPROVED") == "APROVADO"
    assert to_persisted("rejected") == "REJEITADO"
    assert to_persisted("PENDING") == "PENDENTE"


def test_finalized_is_accepted_but_has_no_persisted_mapping():
    assert FINALIZED in ACCEPTED_STATUSES
    assert to_persisted(FINALIZED) is None


def test_requested_status_is_trimmed_and_uppercased():
    assert normalize_requested_status("  approved ") == "APPROVED"
    assert normalize_requested_status(None) == ""
