from datetime import datetime

from ..extensions import db


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class Guide(db.Model):
    __tablename__ = "guias"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "numero_guia_prestador", name="uq_guias_tenant_numero_prestador"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    numero_guia_prestador = db.Column(db.String(64), nullable=False, index=True)
    numero_guia_operadora = db.Column(db.String(64))
    numero_carteira = db.Column(db.String(64))
    tipo_guia = db.Column(db.String(32))
    tenant_id = db.Column(db.String(64), nullable=False, index=True)
    data_autorizacao = db.Column(db.DateTime)
    # Lifecycle is derived from these two columns only.
    data_final_faturamento = db.Column(db.DateTime)
    motivo_encerramento = db.Column(db.String(255))
    tipo_faturamento = db.Column(db.String(32))
    valor_total_geral = db.Column(db.Float)
    valor_total_procedimentos = db.Column(db.Float)
    valor_total_materiais = db.Column(db.Float)
    valor_total_medicamentos = db.Column(db.Float)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    procedures = db.relationship(
        "GuideProcedure",
        back_populates="guide",
        order_by=lambda: [GuideProcedure.sequencial_item, GuideProcedure.id],
    )

    def to_dict(self, include_procedures: bool = False) -> dict:
        payload = {
            "id": self.id,
            "numeroGuiaPrestador": self.numero_guia_prestador,
            "numeroGuiaOperadora": self.numero_guia_operadora,
            "numeroCarteira": self.numero_carteira,
            "tipoGuia": self.tipo_guia,
            "tenantId": self.tenant_id,
            "dataAutorizacao": _isoformat(self.data_autorizacao),
            "dataFinalFaturamento": _isoformat(self.data_final_faturamento),
            "motivoEncerramento": self.motivo_encerramento,
            "tipoFaturamento": self.tipo_faturamento,
            "valorTotalGeral": self.valor_total_geral,
            "valorTotalProcedimentos": self.valor_total_procedimentos,
            "valorTotalMateriais": self.valor_total_materiais,
            "valorTotalMedicamentos": self.valor_total_medicamentos,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }
        if include_procedures:
            payload["procedures"] = [procedure.to_dict() for procedure in self.procedures]
        return payload

    def to_parent_summary(self) -> dict:
        return {
            "numeroGuiaPrestador": self.numero_guia_prestador,
            "numeroCarteira": self.numero_carteira,
            "tipoGuia": self.tipo_guia,
        }


class GuideProcedure(db.Model):
    __tablename__ = "guia_procedimentos"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    guide_id = db.Column(db.Integer, db.ForeignKey("guias.id"), nullable=False, index=True)
    sequencial_item = db.Column(db.Integer, nullable=False, default=1)
    codigo_procedimento = db.Column(db.String(32))
    descricao_procedimento = db.Column(db.String(255))
    quantidade_executada = db.Column(db.Float)
    valor_unitario = db.Column(db.Float)
    valor_total = db.Column(db.Float)
    valor_aprovado = db.Column(db.Float)
    motivo_rejeicao = db.Column(db.Text)
    categoria_rejeicao = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    guide = db.relationship("Guide", back_populates="procedures")

    def to_dict(self, include_guide: bool = False) -> dict:
        payload = {
            "id": self.id,
            "guiaId": self.guide_id,
            "sequencialItem": self.sequencial_item,
            "codigoProcedimento": self.codigo_procedimento,
            "descricaoProcedimento": self.descricao_procedimento,
            "quantidadeExecutada": self.quantidade_executada,
            "valorUnitario": self.valor_unitario,
            "valorTotal": self.valor_total,
            "valorAprovado": self.valor_aprovado,
            "motivoRejeicao": self.motivo_rejeicao,
            "categoriaRejeicao": self.categoria_rejeicao,
        }
        if include_guide:
            payload["guia"] = self.guide.to_parent_summary() if self.guide else None
        return payload
