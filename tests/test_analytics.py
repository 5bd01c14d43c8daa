from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from ms_guide.errors import InvalidArgument, StoreError
from ms_guide.services.analytics import AnalyticsAggregator, build_analytics_aggregator, compute_window
from ms_guide.store import GuideState, SqlGuideStore, classify_guide

from .conftest import TENANT

REFERENCE = date(2024, 3, 15)
IN_DAY = datetime(2024, 3, 15, 10, 30)


@pytest.fixture
def aggregator(app):
    return AnalyticsAggregator(SqlGuideStore(), default_tenant_id=TENANT)


@pytest.fixture
def lifecycle_guides(make_guide, make_procedure):
    """Two finalized, one in progress, two cancelled (one of them also has a billing date)."""
    finalized_a = make_guide(
        created_at=IN_DAY, data_final_faturamento=IN_DAY, tipo_faturamento="TOTAL", valor_total_geral=100.0
    )
    finalized_b = make_guide(
        created_at=IN_DAY, data_final_faturamento=IN_DAY, tipo_faturamento="PARCIAL", valor_total_geral=50.0
    )
    in_progress = make_guide(created_at=IN_DAY, valor_total_geral=30.0)
    cancelled = make_guide(created_at=IN_DAY, motivo_encerramento="Desistencia", valor_total_geral=20.0)
    cancelled_billed = make_guide(
        created_at=IN_DAY,
        data_final_faturamento=IN_DAY,
        motivo_encerramento="Glosa total",
        valor_total_geral=1000.0,
    )
    make_procedure(finalized_a)
    make_procedure(finalized_a, sequencial_item=2)
    make_procedure(in_progress)
    return {
        "finalized": [finalized_a, finalized_b],
        "in_progress": [in_progress],
        "cancelled": [cancelled, cancelled_billed],
    }


def test_day_window_spans_the_whole_reference_day():
    start, end = compute_window("day", REFERENCE)

    assert start == datetime(2024, 3, 15, 0, 0, 0)
    assert end == datetime(2024, 3, 15, 23, 59, 59, 999000)


def test_week_window_starts_seven_days_before_reference_midnight():
    start, end = compute_window("week", datetime(2024, 3, 15, 18, 0))

    assert start == datetime(2024, 3, 8, 0, 0, 0)
    assert end == datetime(2024, 3, 15, 23, 59, 59, 999000)


def test_month_and_year_windows_clip_to_month_end():
    assert compute_window("month", date(2024, 3, 31))[0] == datetime(2024, 2, 29)
    assert compute_window("year", date(2024, 2, 29))[0] == datetime(2023, 2, 28)


def test_unknown_period_is_invalid_argument():
    with pytest.raises(InvalidArgument):
        compute_window("decade", REFERENCE)


def test_classify_guide_gives_cancellation_precedence():
    assert classify_guide(IN_DAY, "Glosa") is GuideState.CANCELADA
    assert classify_guide(IN_DAY, None) is GuideState.FINALIZADA
    assert classify_guide(None, None) is GuideState.EM_ANDAMENTO


def test_daily_summary_partitions_total(aggregator, lifecycle_guides, make_guide):
    make_guide(created_at=datetime(2024, 3, 14, 23, 59), valor_total_geral=5000.0)
    make_guide(created_at=IN_DAY, tenant_id="other_tenant", valor_total_geral=5000.0)

    summary = aggregator.get_daily_summary(REFERENCE)

    assert summary["total"] == 5
    assert summary["finalizadas"] == 2
    assert summary["em_andamento"] == 1
    assert summary["canceladas"] == 2
    assert summary["finalizadas"] + summary["em_andamento"] + summary["canceladas"] == summary["total"]
    assert summary["valor_total"] == 1200.0
    assert summary["valor_medio"] == 240.0


def test_new_in_progress_guide_only_moves_em_andamento(aggregator, lifecycle_guides, make_guide):
    before = aggregator.get_daily_summary(REFERENCE)

    make_guide(created_at=IN_DAY)
    after = aggregator.get_daily_summary(REFERENCE)

    assert after["em_andamento"] == before["em_andamento"] + 1
    assert after["finalizadas"] == before["finalizadas"]
    assert after["canceladas"] == before["canceladas"]


def test_daily_summary_of_empty_day_is_zeroed(aggregator):
    assert aggregator.get_daily_summary(REFERENCE) == {
        "total": 0,
        "finalizadas": 0,
        "em_andamento": 0,
        "canceladas": 0,
        "valor_total": 0.0,
        "valor_medio": 0.0,
    }


def test_guides_by_status_includes_billed_cancellation(aggregator, lifecycle_guides):
    guides = aggregator.get_guides_by_status("cancelada", REFERENCE)

    assert {guide["id"] for guide in guides} == {guide.id for guide in lifecycle_guides["cancelled"]}
    assert all(guide["status"] == "CANCELADA" for guide in guides)
    assert set(guides[0]) == {
        "id",
        "numeroGuiaPrestador",
        "numeroGuiaOperadora",
        "numeroCarteira",
        "dataAutorizacao",
        "valorTotalGeral",
        "tipoFaturamento",
        "status",
    }


def test_guides_by_status_orders_newest_first_and_caps(aggregator, make_guide):
    early = make_guide(created_at=datetime(2024, 3, 15, 8), data_final_faturamento=IN_DAY)
    late = make_guide(created_at=datetime(2024, 3, 15, 20), data_final_faturamento=IN_DAY)
    make_guide(created_at=datetime(2024, 3, 15, 9), data_final_faturamento=IN_DAY)

    guides = aggregator.get_guides_by_status("FINALIZADA", REFERENCE, limit=2)

    assert len(guides) == 2
    assert guides[0]["id"] == late.id
    assert early.id not in {guide["id"] for guide in guides}


def test_guides_by_status_rejects_unknown_status(aggregator):
    with pytest.raises(InvalidArgument):
        aggregator.get_guides_by_status("APROVADA", REFERENCE)


class RecordingLimitStore(SqlGuideStore):
    def __init__(self):
        self.limits = []

    def list_guides_by_state(self, tenant_id, start, end, state, limit):
        self.limits.append(limit)
        return super().list_guides_by_state(tenant_id, start, end, state, limit)


@pytest.mark.parametrize(("requested", "expected"), [(-5, 100), (0, 100), (None, 100), (250, 100), (7, 7)])
def test_guides_by_status_clamps_limit(app, make_guide, requested, expected):
    make_guide(created_at=IN_DAY, data_final_faturamento=IN_DAY)
    store = RecordingLimitStore()
    aggregator = AnalyticsAggregator(store, default_tenant_id=TENANT)

    guides = aggregator.get_guides_by_status("FINALIZADA", REFERENCE, limit=requested)

    assert store.limits == [expected]
    assert len(guides) == 1


def test_statistics_rate_counts_cancellations_as_closed(aggregator, lifecycle_guides):
    stats = aggregator.get_statistics("day", REFERENCE)

    assert stats["total_guias"] == 5
    assert stats["guias_finalizadas"] == 2
    assert stats["guias_em_andamento"] == 1
    assert stats["guias_canceladas"] == 2
    assert stats["taxa_finalizacao"] == 80.0
    assert stats["valor_total"] == 1200.0
    assert stats["valor_medio_guia"] == 240.0
    assert stats["procedimentos_total"] == 3
    assert stats["procedimentos_por_guia"] == 0.6


def test_statistics_rounds_to_two_decimals(aggregator, make_guide):
    make_guide(created_at=IN_DAY, data_final_faturamento=IN_DAY, valor_total_geral=10.0)
    make_guide(created_at=IN_DAY, valor_total_geral=10.0)
    make_guide(created_at=IN_DAY, valor_total_geral=0.0)

    stats = aggregator.get_statistics("day", REFERENCE)

    assert stats["taxa_finalizacao"] == 33.33
    assert stats["valor_medio_guia"] == 6.67


def test_statistics_with_no_guides_is_zero(aggregator):
    stats = aggregator.get_statistics("year", REFERENCE)

    assert stats["taxa_finalizacao"] == 0
    assert stats["procedimentos_por_guia"] == 0


def test_revenue_only_counts_finalized_guides(aggregator, lifecycle_guides):
    revenue = aggregator.get_revenue("day", REFERENCE)

    assert revenue["guias_faturadas"] == 2
    assert revenue["receita_total"] == 150.0
    assert revenue["valor_medio_guia"] == 75.0
    assert revenue["valor_total_procedimentos"] == 120.0
    assert revenue["valor_total_materiais"] == 60.0
    assert revenue["valor_total_medicamentos"] == 20.0


def test_revenue_groups_by_billing_type_in_first_seen_order(aggregator, make_guide):
    for hour, tipo, valor in [(8, "TOTAL", 10.0), (9, None, 5.0), (10, "PARCIAL", 7.0), (11, "TOTAL", 1.0)]:
        make_guide(
            created_at=datetime(2024, 3, 15, hour),
            data_final_faturamento=IN_DAY,
            tipo_faturamento=tipo,
            valor_total_geral=valor,
        )

    revenue = aggregator.get_revenue("day", REFERENCE)

    assert revenue["por_tipo_faturamento"] == [
        {"tipo": "TOTAL", "quantidade": 2, "valor_total": 11.0},
        {"tipo": "NAO_ESPECIFICADO", "quantidade": 1, "valor_total": 5.0},
        {"tipo": "PARCIAL", "quantidade": 1, "valor_total": 7.0},
    ]


def test_week_revenue_includes_both_window_bounds(aggregator, make_guide):
    at_start = make_guide(created_at=datetime(2024, 3, 8, 0, 0, 0), data_final_faturamento=IN_DAY)
    at_end = make_guide(created_at=datetime(2024, 3, 15, 23, 59, 59, 999000), data_final_faturamento=IN_DAY)
    make_guide(created_at=datetime(2024, 3, 7, 23, 59, 59), data_final_faturamento=IN_DAY)
    make_guide(created_at=datetime(2024, 3, 16, 0, 0, 0), data_final_faturamento=IN_DAY)

    revenue = aggregator.get_revenue("week", REFERENCE)

    assert revenue["guias_faturadas"] == 2
    assert revenue["receita_total"] == at_start.valor_total_geral + at_end.valor_total_geral


def test_revenue_rejects_unknown_period(aggregator):
    with pytest.raises(InvalidArgument):
        aggregator.get_revenue("quarter", REFERENCE)


def test_tenant_argument_overrides_default(aggregator, make_guide):
    make_guide(created_at=IN_DAY, tenant_id="hosp_other")

    assert aggregator.get_daily_summary(REFERENCE)["total"] == 0
    assert aggregator.get_daily_summary(REFERENCE, tenant_id="hosp_other")["total"] == 1


class BrokenStore(SqlGuideStore):
    def count_guides(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("timeout"))


def test_store_failures_become_store_error(app):
    aggregator = AnalyticsAggregator(BrokenStore(), default_tenant_id=TENANT)

    with pytest.raises(StoreError) as excinfo:
        aggregator.get_statistics("day", REFERENCE)

    assert "timeout" not in str(excinfo.value)


def test_build_aggregator_uses_configured_tenant_and_backend(app):
    aggregator = build_analytics_aggregator()

    assert aggregator.default_tenant_id == TENANT
    assert isinstance(aggregator.store, SqlGuideStore)
