"""
MCP server exposing the guide analytics as tools.

Run over stdio:
  python -m ms_guide.mcp_server

Each tool returns JSON text. Failures come back as plain text starting with
"Erro ao executar <tool>" so the calling model can read them.
"""

import json
import logging
import os
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP

from . import create_app
from .api.params import parse_date
from .errors import GuideServiceError, InvalidArgument
from .services.analytics import DEFAULT_STATUS_LIMIT, AnalyticsAggregator, build_analytics_aggregator

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "ms-guide",
    instructions=(
        "Ferramentas de análise de guias TISS de um hospital. "
        "Datas no formato YYYY-MM-DD (padrão: hoje). "
        "Períodos aceitos: day, week, month, year. "
        "Status de guia: FINALIZADA, EM_ANDAMENTO, CANCELADA."
    ),
)

_app = None


def _get_app():
    global _app
    if _app is None:
        _app = create_app(os.getenv("MS_GUIDE_CONFIG", "production"))
    return _app


def _run_tool(name: str, call: Callable[[AnalyticsAggregator], Any]) -> str:
    app = _get_app()
    with app.app_context():
        try:
            result = call(build_analytics_aggregator())
        except GuideServiceError as exc:
            logger.error("[MCP] Erro ao executar tool %s: %s", name, exc)
            return f"Erro ao executar {name}: {exc}"
    return json.dumps(result, ensure_ascii=False, indent=2, default=str)


@mcp.tool()
def get_daily_guides_summary(date: str = "", hospitalId: str = "") -> str:
    """Resumo das guias criadas em um dia: total, finalizadas, em andamento, canceladas e valores.

    Args:
        date: Dia de referência (YYYY-MM-DD). Padrão: hoje.
        hospitalId: Identificador do hospital (tenant). Padrão: tenant configurado.
    """
    return _run_tool(
        "get_daily_guides_summary",
        lambda aggregator: aggregator.get_daily_summary(parse_date(date), tenant_id=hospitalId or None),
    )


@mcp.tool()
def get_guides_by_status(status: str, date: str = "", limit: int = DEFAULT_STATUS_LIMIT, hospitalId: str = "") -> str:
    """Lista as guias de um dia em um estado (FINALIZADA, EM_ANDAMENTO, CANCELADA).

    Args:
        status: Estado da guia.
        date: Dia de referência (YYYY-MM-DD). Padrão: hoje.
        limit: Máximo de guias retornadas. Padrão: 100.
        hospitalId: Identificador do hospital (tenant).
    """

    def call(aggregator: AnalyticsAggregator):
        if not status:
            raise InvalidArgument('Parâmetro "status" é obrigatório')
        return aggregator.get_guides_by_status(
            status, parse_date(date), limit=limit or DEFAULT_STATUS_LIMIT, tenant_id=hospitalId or None
        )

    return _run_tool("get_guides_by_status", call)


@mcp.tool()
def get_guides_statistics(period: str = "day", date: str = "", hospitalId: str = "") -> str:
    """Estatísticas de guias em um período: contagens, taxa de finalização, valores e procedimentos.

    Args:
        period: day, week, month ou year. Padrão: day.
        date: Dia final do período (YYYY-MM-DD). Padrão: hoje.
        hospitalId: Identificador do hospital (tenant).
    """
    return _run_tool(
        "get_guides_statistics",
        lambda aggregator: aggregator.get_statistics(period or "day", parse_date(date), tenant_id=hospitalId or None),
    )


@mcp.tool()
def get_guides_revenue(period: str = "day", date: str = "", hospitalId: str = "") -> str:
    """Receita das guias finalizadas em um período, com quebra por tipo de faturamento.

    Args:
        period: day, week, month ou year. Padrão: day.
        date: Dia final do período (YYYY-MM-DD). Padrão: hoje.
        hospitalId: Identificador do hospital (tenant).
    """
    return _run_tool(
        "get_guides_revenue",
        lambda aggregator: aggregator.get_revenue(period or "day", parse_date(date), tenant_id=hospitalId or None),
    )


def main():
    import argparse

    parser = argparse.ArgumentParser(description="MCP server for guide analytics")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    args = parser.parse_args()
    mcp.run(transport=args.transport)


if __name__ == "__main__":
    main()
