"""Translation between the persisted (Portuguese) and exposed (English) audit status values."""

from __future__ import annotations

PENDING = "PENDING"
APPROVED = "APPROVED"
REJECTED = "REJECTED"
FINALIZED = "FINALIZED"

PERSISTED_TO_EXPOSED = {
    "APROVADO": APPROVED,
    "REJEITADO": REJECTED,
    "PENDENTE": PENDING,
}
EXPOSED_TO_PERSISTED = {exposed: persisted for persisted, exposed in PERSISTED_TO_EXPOSED.items()}

# FINALIZED passes validation but has no persisted counterpart.
ACCEPTED_STATUSES = (PENDING, APPROVED, REJECTED, FINALIZED)


def to_exposed(persisted: str | None) -> str:
    """Map a stored status to the API vocabulary; unknown or missing values read as PENDING."""
    if not persisted:
        return PENDING
    return PERSISTED_TO_EXPOSED.get(str(persisted).strip().upper(), PENDING)


def to_persisted(exposed: str) -> str | None:
    """Map an API status to the stored vocabulary, or None when there is no mapping."""
    return EXPOSED_TO_PERSISTED.get(str(exposed).strip().upper())


def normalize_requested_status(value: str | None) -> str:
    return (value or "").strip().upper()
