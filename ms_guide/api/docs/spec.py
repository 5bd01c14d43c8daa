from collections.abc import Mapping

SECURED = [{"ApiKeyAuth": []}]


def _query(name: str, schema: dict, description: str, required: bool = False) -> dict:
    return {"name": name, "in": "query", "required": required, "schema": schema, "description": description}


def _path(name: str, description: str) -> dict:
    return {"name": name, "in": "path", "required": True, "schema": {"type": "string"}, "description": description}


def _json(ref: str) -> dict:
    return {"application/json": {"schema": {"$ref": f"#/components/schemas/{ref}"}}}


def _error(description: str) -> dict:
    return {"description": description, "content": _json("ErrorResponse")}


AUTH_ERRORS = {
    "401": _error("API key missing"),
    "403": _error("API key invalid"),
}

DATE_PARAM = _query("date", {"type": "string", "format": "date"}, "Reference day (YYYY-MM-DD, default today)")
PERIOD_PARAM = _query(
    "period",
    {"type": "string", "enum": ["day", "week", "month", "year"], "default": "day"},
    "Window ending on the reference day",
)
TENANT_PARAM = _query("tenantId", {"type": "string"}, "Tenant (hospital) identifier; defaults to the configured tenant")


def _analytics_get(summary: str, parameters: list[dict], schema: str) -> dict:
    return {
        "get": {
            "summary": summary,
            "tags": ["Analytics"],
            "security": SECURED,
            "parameters": parameters,
            "responses": {
                "200": {"description": summary, "content": _json(schema)},
                "400": _error("Invalid period, status or date"),
                **AUTH_ERRORS,
                "500": _error("Store failure"),
            },
        }
    }


def build_spec(config: Mapping[str, str], server_url: str) -> dict:
    """Return the OpenAPI document covering the guide and analytics endpoints."""
    title = config.get("API_TITLE", "Guide Service API")
    version = config.get("API_VERSION", "1.0.0")

    return {
        "openapi": "3.0.3",
        "info": {
            "title": title,
            "version": version,
            "description": (
                "Guide (billing claim) service: lists TISS guides with their derived audit status, "
                "records per-procedure audit decisions and serves period-bounded guide analytics."
            ),
        },
        "servers": [{"url": server_url}],
        "paths": {
            "/health": {
                "get": {
                    "summary": "Service health with dependency status",
                    "tags": ["Health"],
                    "responses": {
                        "200": {"description": "Service is healthy"},
                        "503": {"description": "A dependency is unavailable"},
                    },
                }
            },
            "/health/ready": {"get": {"summary": "Readiness probe", "tags": ["Health"], "responses": {"200": {"description": "Ready"}}}},
            "/health/live": {"get": {"summary": "Liveness probe", "tags": ["Health"], "responses": {"200": {"description": "Alive"}}}},
            "/api/v1/guides": {
                "get": {
                    "summary": "List guides with derived audit status",
                    "tags": ["Guides"],
                    "security": SECURED,
                    "parameters": [
                        _query("limit", {"type": "integer", "minimum": 1, "maximum": 100}, "Page size (default 100)"),
                        _query("offset", {"type": "integer", "minimum": 0}, "Rows to skip; overrides page"),
                        _query("page", {"type": "integer", "minimum": 1}, "Page number (default 1)"),
                        _query("search", {"type": "string"}, "Substring of provider number, card number or operator number"),
                        _query("tipoGuia", {"type": "string"}, "Exact guide type"),
                        TENANT_PARAM,
                    ],
                    "responses": {
                        "200": {"description": "One page of guides", "content": _json("GuideListResponse")},
                        **AUTH_ERRORS,
                        "500": _error("Store failure"),
                    },
                }
            },
            "/api/v1/guides/stats": {
                "get": {
                    "summary": "Guide counts per type and total procedure value",
                    "tags": ["Guides"],
                    "security": SECURED,
                    "parameters": [TENANT_PARAM],
                    "responses": {"200": {"description": "Guide statistics"}, **AUTH_ERRORS},
                }
            },
            "/api/v1/guides/{id}": {
                "get": {
                    "summary": "Get a guide with its procedures",
                    "tags": ["Guides"],
                    "security": SECURED,
                    "parameters": [_path("id", "Guide identifier")],
                    "responses": {
                        "200": {"description": "Guide found"},
                        "400": _error("Malformed identifier"),
                        **AUTH_ERRORS,
                        "404": _error("Guide not found"),
                    },
                }
            },
            "/api/v1/guides/{numeroGuiaPrestador}/procedures": {
                "get": {
                    "summary": "List a guide's procedures with their audit status",
                    "tags": ["Guides"],
                    "security": SECURED,
                    "parameters": [
                        _path("numeroGuiaPrestador", "Provider-assigned guide number"),
                        _query("limit", {"type": "integer", "minimum": 1}, "Page size (default 200)"),
                        _query("offset", {"type": "integer", "minimum": 0}, "Rows to skip"),
                    ],
                    "responses": {
                        "200": {"description": "Procedures ordered by sequencialItem"},
                        **AUTH_ERRORS,
                        "404": _error("Guide not found or has no procedures"),
                    },
                }
            },
            "/api/v1/guides/procedures/{procedureId}": {
                "get": {
                    "summary": "Get one procedure with its parent guide summary",
                    "tags": ["Guides"],
                    "security": SECURED,
                    "parameters": [_path("procedureId", "Procedure identifier")],
                    "responses": {
                        "200": {"description": "Procedure found"},
                        **AUTH_ERRORS,
                        "404": _error("Procedure not found"),
                    },
                }
            },
            "/api/v1/guides/procedures/{procedureId}/status": {
                "put": {
                    "summary": "Record an audit decision for a procedure",
                    "tags": ["Guides"],
                    "security": SECURED,
                    "parameters": [_path("procedureId", "Procedure identifier")],
                    "requestBody": {"required": True, "content": _json("StatusUpdateRequest")},
                    "responses": {
                        "200": {"description": "Procedure updated"},
                        "400": _error("Missing or invalid status, or rejection without motivoRejeicao"),
                        **AUTH_ERRORS,
                        "404": _error("Procedure not found"),
                        "500": _error("Store failure"),
                    },
                }
            },
            "/api/v1/analytics/guides/daily-summary": _analytics_get(
                "Daily guide summary", [DATE_PARAM, TENANT_PARAM], "DailySummaryResponse"
            ),
            "/api/v1/analytics/guides/by-status": _analytics_get(
                "Guides of one day in a lifecycle state",
                [
                    _query(
                        "status",
                        {"type": "string", "enum": ["FINALIZADA", "EM_ANDAMENTO", "CANCELADA"]},
                        "Lifecycle state",
                        required=True,
                    ),
                    DATE_PARAM,
                    _query("limit", {"type": "integer", "minimum": 1, "default": 100}, "Maximum guides returned"),
                    TENANT_PARAM,
                ],
                "GuidesByStatusResponse",
            ),
            "/api/v1/analytics/guides/statistics": _analytics_get(
                "Guide statistics over a period", [PERIOD_PARAM, DATE_PARAM, TENANT_PARAM], "StatisticsResponse"
            ),
            "/api/v1/analytics/guides/revenue": _analytics_get(
                "Revenue of finalized guides over a period", [PERIOD_PARAM, DATE_PARAM, TENANT_PARAM], "RevenueResponse"
            ),
        },
        "components": {
            "securitySchemes": {
                "ApiKeyAuth": {"type": "apiKey", "in": "header", "name": "X-API-Key"},
            },
            "schemas": {
                "ErrorResponse": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean", "example": False},
                        "error": {"type": "string", "example": "Invalid API Key"},
                        "timestamp": {"type": "string", "format": "date-time"},
                    },
                    "required": ["success", "error"],
                },
                "GuideSummary": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "integer"},
                        "numeroGuiaPrestador": {"type": "string"},
                        "numeroGuiaOperadora": {"type": "string", "nullable": True},
                        "numeroCarteira": {"type": "string", "nullable": True},
                        "tipoGuia": {"type": "string", "nullable": True},
                        "valorTotalGeral": {"type": "number", "nullable": True},
                        "auditStatus": {"type": "string", "enum": ["PENDING", "COMPLETED"]},
                        "procedures": {"type": "array", "items": {"type": "object"}},
                    },
                },
                "GuideListResponse": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean"},
                        "data": {"type": "array", "items": {"$ref": "#/components/schemas/GuideSummary"}},
                        "total": {"type": "integer"},
                        "page": {"type": "integer"},
                        "limit": {"type": "integer"},
                        "hasNext": {"type": "boolean"},
                        "hasPrev": {"type": "boolean"},
                        "timestamp": {"type": "string", "format": "date-time"},
                    },
                },
                "StatusUpdateRequest": {
                    "type": "object",
                    "properties": {
                        "status": {"type": "string", "enum": ["PENDING", "APPROVED", "REJECTED", "FINALIZED"]},
                        "valorAprovado": {"type": "number"},
                        "motivoRejeicao": {"type": "string", "description": "Required when status is REJECTED"},
                        "categoriaRejeicao": {"type": "string"},
                    },
                    "required": ["status"],
                },
                "DailySummaryResponse": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean"},
                        "date": {"type": "string", "format": "date"},
                        "data": {
                            "type": "object",
                            "properties": {
                                "total": {"type": "integer"},
                                "finalizadas": {"type": "integer"},
                                "em_andamento": {"type": "integer"},
                                "canceladas": {"type": "integer"},
                                "valor_total": {"type": "number"},
                                "valor_medio": {"type": "number"},
                            },
                        },
                    },
                },
                "GuidesByStatusResponse": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean"},
                        "status": {"type": "string"},
                        "date": {"type": "string", "format": "date"},
                        "count": {"type": "integer"},
                        "data": {"type": "array", "items": {"type": "object"}},
                    },
                },
                "StatisticsResponse": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean"},
                        "period": {"type": "string"},
                        "date": {"type": "string", "format": "date"},
                        "data": {
                            "type": "object",
                            "properties": {
                                "total_guias": {"type": "integer"},
                                "guias_finalizadas": {"type": "integer"},
                                "guias_em_andamento": {"type": "integer"},
                                "guias_canceladas": {"type": "integer"},
                                "taxa_finalizacao": {"type": "number"},
                                "valor_total": {"type": "number"},
                                "valor_medio_guia": {"type": "number"},
                                "procedimentos_total": {"type": "integer"},
                                "procedimentos_por_guia": {"type": "number"},
                            },
                        },
                    },
                },
                "RevenueResponse": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean"},
                        "period": {"type": "string"},
                        "date": {"type": "string", "format": "date"},
                        "data": {
                            "type": "object",
                            "properties": {
                                "receita_total": {"type": "number"},
                                "guias_faturadas": {"type": "integer"},
                                "valor_medio_guia": {"type": "number"},
                                "valor_total_procedimentos": {"type": "number"},
                                "valor_total_materiais": {"type": "number"},
                                "valor_total_medicamentos": {"type": "number"},
                                "por_tipo_faturamento": {
                                    "type": "array",
                                    "items": {
                                        "type": "object",
                                        "properties": {
                                            "tipo": {"type": "string"},
                                            "quantidade": {"type": "integer"},
                                            "valor_total": {"type": "number"},
                                        },
                                    },
                                },
                            },
                        },
                    },
                },
            },
        },
    }
