from datetime import datetime

from ms_guide.readmodel import ReadModelLoader
from ms_guide.readmodel.projector import project_read_model

DAY = datetime(2024, 3, 15, 10)


def _seed(make_guide):
    make_guide(created_at=DAY, data_final_faturamento=DAY, tipo_faturamento="TOTAL", valor_total_geral=100.0)
    make_guide(created_at=DAY, motivo_encerramento="Desistencia", valor_total_geral=50.0)
    make_guide(created_at=DAY, valor_total_geral=25.0)


def test_daily_summary_echoes_date(client, auth_headers, make_guide):
    _seed(make_guide)

    response = client.get("/api/v1/analytics/guides/daily-summary?date=2024-03-15", headers=auth_headers)

    body = response.get_json()
    assert response.status_code == 200
    assert body["date"] == "2024-03-15"
    assert body["data"]["total"] == 3
    assert body["data"]["valor_total"] == 175.0


def test_by_status_envelope(client, auth_headers, make_guide):
    _seed(make_guide)

    response = client.get(
        "/api/v1/analytics/guides/by-status?status=EM_ANDAMENTO&date=2024-03-15", headers=auth_headers
    )

    body = response.get_json()
    assert body["status"] == "EM_ANDAMENTO"
    assert body["count"] == 1
    assert body["data"][0]["status"] == "EM_ANDAMENTO"


def test_by_status_requires_known_status(client, auth_headers):
    missing = client.get("/api/v1/analytics/guides/by-status", headers=auth_headers)
    unknown = client.get("/api/v1/analytics/guides/by-status?status=ABERTA", headers=auth_headers)

    assert missing.status_code == 400
    assert unknown.status_code == 400
    assert unknown.get_json()["error"] == "Status inválido: ABERTA"


def test_statistics_and_revenue_echo_period(client, auth_headers, make_guide):
    _seed(make_guide)

    stats = client.get("/api/v1/analytics/guides/statistics?period=week&date=2024-03-20", headers=auth_headers)
    revenue = client.get("/api/v1/analytics/guides/revenue?period=week&date=2024-03-20", headers=auth_headers)

    assert stats.get_json()["period"] == "week"
    assert stats.get_json()["data"]["taxa_finalizacao"] == 66.67
    assert revenue.get_json()["data"]["receita_total"] == 100.0
    assert revenue.get_json()["data"]["por_tipo_faturamento"] == [{"tipo": "TOTAL", "quantidade": 1, "valor_total": 100.0}]


def test_invalid_period_and_date_are_400(client, auth_headers):
    bad_period = client.get("/api/v1/analytics/guides/statistics?period=decade", headers=auth_headers)
    bad_date = client.get("/api/v1/analytics/guides/revenue?date=15/03/2024", headers=auth_headers)

    assert bad_period.status_code == 400
    assert bad_date.status_code == 400


def test_tenant_query_param(client, auth_headers, make_guide):
    make_guide(created_at=DAY, tenant_id="hosp_b")

    default = client.get("/api/v1/analytics/guides/daily-summary?date=2024-03-15", headers=auth_headers)
    other = client.get("/api/v1/analytics/guides/daily-summary?date=2024-03-15&tenantId=hosp_b", headers=auth_headers)

    assert default.get_json()["data"]["total"] == 0
    assert other.get_json()["data"]["total"] == 1


def test_duckdb_backend_serves_projected_data(app, client, auth_headers, make_guide, tmp_path):
    _seed(make_guide)
    path = str(tmp_path / "api.duckdb")
    project_read_model(ReadModelLoader(duckdb_path=path))
    app.config.update(ANALYTICS_BACKEND="duckdb", DUCKDB_PATH=path)

    response = client.get("/api/v1/analytics/guides/daily-summary?date=2024-03-15", headers=auth_headers)

    assert response.get_json()["data"]["finalizadas"] == 1


def test_store_error_body_is_sanitized(app, client, auth_headers, tmp_path):
    app.config.update(ANALYTICS_BACKEND="duckdb", DUCKDB_PATH=str(tmp_path / "absent.duckdb"))

    response = client.get("/api/v1/analytics/guides/daily-summary", headers=auth_headers)

    body = response.get_json()
    assert response.status_code == 500
    assert body["error"] == "Erro ao buscar resumo diário de guias"
    assert "detail" not in body
