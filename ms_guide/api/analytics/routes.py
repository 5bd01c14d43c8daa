from flask import current_app, request

from . import blueprint
from ..params import parse_date, parse_int
from ...auth import api_key_required
from ...errors import InvalidArgument
from ...responses import success_response
from ...services.analytics import DEFAULT_STATUS_LIMIT, build_analytics_aggregator


def _tenant_arg():
    return request.args.get("tenantId") or None


@blueprint.route("/guides/daily-summary")
@api_key_required
def daily_summary():
    """Counts and totals for the guides created on one day."""
    target_date = parse_date(request.args.get("date"))
    current_app.logger.info("[Analytics] Buscando resumo diário de guias para %s", target_date.isoformat())
    summary = build_analytics_aggregator().get_daily_summary(target_date, tenant_id=_tenant_arg())
    return success_response(summary, date=target_date.isoformat())


@blueprint.route("/guides/by-status")
@api_key_required
def guides_by_status():
    """Guides of one day in a given lifecycle state."""
    status = (request.args.get("status") or "").strip()
    if not status:
        raise InvalidArgument('Parâmetro "status" é obrigatório')

    target_date = parse_date(request.args.get("date"))
    limit = parse_int(request.args.get("limit")) or DEFAULT_STATUS_LIMIT
    current_app.logger.info("[Analytics] Buscando guias com status %s para %s", status, target_date.isoformat())
    guides = build_analytics_aggregator().get_guides_by_status(
        status, target_date, limit=limit, tenant_id=_tenant_arg()
    )
    return success_response(guides, count=len(guides), status=status, date=target_date.isoformat())


@blueprint.route("/guides/statistics")
@api_key_required
def statistics():
    period = request.args.get("period") or "day"
    target_date = parse_date(request.args.get("date"))
    current_app.logger.info("[Analytics] Buscando estatísticas de guias (período: %s)", period)
    stats = build_analytics_aggregator().get_statistics(period, target_date, tenant_id=_tenant_arg())
    return success_response(stats, period=period, date=target_date.isoformat())


@blueprint.route("/guides/revenue")
@api_key_required
def revenue():
    period = request.args.get("period") or "day"
    target_date = parse_date(request.args.get("date"))
    current_app.logger.info("[Analytics] Buscando receita de guias (período: %s)", period)
    result = build_analytics_aggregator().get_revenue(period, target_date, tenant_id=_tenant_arg())
    return success_response(result, period=period, date=target_date.isoformat())
