from datetime import datetime
from itertools import count

import pytest

from ms_guide import create_app
from ms_guide.extensions import db
from ms_guide.models import Guide, GuideProcedure, ProcedureStatus

API_KEY = "test-api-key"
TENANT = "hosp_test_001"

_numbers = count(1)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"X-API-Key": API_KEY}


@pytest.fixture
def make_guide(app):
    def factory(**overrides) -> Guide:
        number = next(_numbers)
        values = {
            "numero_guia_prestador": f"GP{number:05d}",
            "numero_guia_operadora": f"OP{number:05d}",
            "numero_carteira": f"CART{number:05d}",
            "tipo_guia": "SP_SADT",
            "tenant_id": TENANT,
            "valor_total_geral": 100.0,
            "valor_total_procedimentos": 60.0,
            "valor_total_materiais": 30.0,
            "valor_total_medicamentos": 10.0,
        }
        values.update(overrides)
        guide = Guide(**values)
        db.session.add(guide)
        db.session.commit()
        return guide

    return factory


@pytest.fixture
def make_procedure(app):
    def factory(guide: Guide, **overrides) -> GuideProcedure:
        values = {
            "guide_id": guide.id,
            "sequencial_item": 1,
            "codigo_procedimento": "10101012",
            "descricao_procedimento": "Consulta em consultorio",
            "quantidade_executada": 1.0,
            "valor_unitario": 50.0,
            "valor_total": 50.0,
        }
        values.update(overrides)
        procedure = GuideProcedure(**values)
        db.session.add(procedure)
        db.session.commit()
        return procedure

    return factory


@pytest.fixture
def set_status(app):
    def factory(procedure: GuideProcedure, status: str, auditor_id: str = "SYSTEM") -> ProcedureStatus:
        now = datetime.now()
        row = ProcedureStatus(
            guide_id=procedure.guide_id,
            procedure_id=procedure.id,
            status=status,
            auditor_id=auditor_id,
            created_at=now,
            updated_at=now,
        )
        db.session.add(row)
        db.session.commit()
        return row

    return factory
