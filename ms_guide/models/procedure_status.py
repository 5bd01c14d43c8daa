from datetime import datetime

from ..extensions import db


class ProcedureStatus(db.Model):
    """Audit status of one procedure; at most one row per (guide, procedure) pair."""

    __tablename__ = "procedimento_status"
    __table_args__ = (
        db.UniqueConstraint("guide_id", "procedure_id", name="uq_procedimento_status_guia_procedimento"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    guide_id = db.Column(db.Integer, db.ForeignKey("guias.id"), nullable=False, index=True)
    procedure_id = db.Column(db.Integer, db.ForeignKey("guia_procedimentos.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="PENDENTE")  # PENDENTE|APROVADO|REJEITADO
    auditor_id = db.Column(db.String(64), nullable=False, default="SYSTEM")
    observacoes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
