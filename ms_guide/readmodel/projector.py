from __future__ import annotations

import logging
from dataclasses import dataclass

from ..extensions import db
from ..models import Guide, GuideProcedure
from . import metadata
from .data_access import ReadModelLoader

logger = logging.getLogger(__name__)

GUIDE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("id", "BIGINT"),
    ("numero_guia_prestador", "VARCHAR"),
    ("numero_guia_operadora", "VARCHAR"),
    ("numero_carteira", "VARCHAR"),
    ("tipo_guia", "VARCHAR"),
    ("tenant_id", "VARCHAR"),
    ("data_autorizacao", "TIMESTAMP"),
    ("data_final_faturamento", "TIMESTAMP"),
    ("motivo_encerramento", "VARCHAR"),
    ("tipo_faturamento", "VARCHAR"),
    ("valor_total_geral", "DOUBLE"),
    ("valor_total_procedimentos", "DOUBLE"),
    ("valor_total_materiais", "DOUBLE"),
    ("valor_total_medicamentos", "DOUBLE"),
    ("created_at", "TIMESTAMP"),
)

PROCEDURE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("id", "BIGINT"),
    ("guide_id", "BIGINT"),
    ("sequencial_item", "INTEGER"),
    ("codigo_procedimento", "VARCHAR"),
    ("valor_total", "DOUBLE"),
)


@dataclass(frozen=True)
class ProjectionResult:
    guides: int
    procedures: int
    run_id: str | None


def project_read_model(loader: ReadModelLoader | None = None) -> ProjectionResult:
    """Copy guides and procedures from the write database into the DuckDB read model.

    Must run inside a Flask application context. Tables are replaced wholesale.
    """
    loader = loader or ReadModelLoader()

    guide_rows = db.session.query(*[getattr(Guide, name) for name, _ in GUIDE_COLUMNS]).order_by(Guide.id).all()
    procedure_rows = (
        db.session.query(*[getattr(GuideProcedure, name) for name, _ in PROCEDURE_COLUMNS])
        .order_by(GuideProcedure.id)
        .all()
    )

    guides_written = loader.replace_table(loader.guides_table, GUIDE_COLUMNS, guide_rows)
    procedures_written = loader.replace_table(loader.procedures_table, PROCEDURE_COLUMNS, procedure_rows)

    run = metadata.record_etl_run(
        loader.duckdb_path,
        guides_projected=guides_written,
        procedures_projected=procedures_written,
        notes=f"guides={loader.guides_table} procedures={loader.procedures_table}",
        table_name=loader.etl_runs_table,
    )
    logger.info(
        "Read model projected guides=%s procedures=%s path=%s",
        guides_written,
        procedures_written,
        loader.duckdb_path,
    )
    return ProjectionResult(
        guides=guides_written,
        procedures=procedures_written,
        run_id=run.run_id if run else None,
    )
