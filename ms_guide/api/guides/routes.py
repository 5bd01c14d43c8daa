from flask import current_app, request

from . import blueprint
from ..params import parse_int
from ...auth import api_key_required
from ...errors import InvalidArgument, NotFound
from ...responses import success_response
from ...services import guides as guide_service


@blueprint.route("", strict_slashes=False)
@api_key_required
def list_guides():
    """List the tenant's guides with pagination, search and tipoGuia filter."""
    tenant_id = request.args.get("tenantId") or current_app.config["DEFAULT_TENANT_ID"]
    current_app.logger.info("Getting all guides tenant=%s query=%s", tenant_id, request.args.to_dict())
    result = guide_service.list_guides(
        tenant_id,
        limit=parse_int(request.args.get("limit")),
        offset=parse_int(request.args.get("offset")),
        page=parse_int(request.args.get("page")),
        search=request.args.get("search"),
        tipo_guia=request.args.get("tipoGuia"),
        max_limit=current_app.config.get("PAGINATION_MAX_LIMIT", guide_service.MAX_LIMIT),
    )
    data = result.pop("data")
    return success_response(data, **result)


@blueprint.route("/stats")
@api_key_required
def guide_stats():
    tenant_id = request.args.get("tenantId") or current_app.config["DEFAULT_TENANT_ID"]
    current_app.logger.info("Getting guide statistics tenant=%s", tenant_id)
    return success_response(guide_service.get_guide_stats(tenant_id))


@blueprint.route("/procedures/<procedure_id>")
@api_key_required
def get_procedure(procedure_id: str):
    """Fetch one procedure together with its parent guide summary."""
    current_app.logger.info("Getting guide procedure by id procedure_id=%s", procedure_id)
    return success_response(guide_service.get_procedure_by_id(procedure_id))


@blueprint.route("/procedures/<procedure_id>/status", methods=["PUT"])
@api_key_required
def update_procedure_status(procedure_id: str):
    """Record an audit decision (status, approved amount, rejection reason) for a procedure."""
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise InvalidArgument("Request body must be a JSON object")
    current_app.logger.info(
        "Updating procedure status procedure_id=%s status=%s has_rejeicao=%s",
        procedure_id,
        body.get("status"),
        bool(body.get("motivoRejeicao")),
    )
    procedure = guide_service.update_procedure_status(
        procedure_id,
        body.get("status"),
        valor_aprovado=body.get("valorAprovado"),
        motivo_rejeicao=body.get("motivoRejeicao"),
        categoria_rejeicao=body.get("categoriaRejeicao"),
    )
    return success_response(procedure, message="Procedure status updated successfully")


@blueprint.route("/<numero_guia_prestador>/procedures")
@api_key_required
def list_guide_procedures(numero_guia_prestador: str):
    limit = parse_int(request.args.get("limit")) or guide_service.DEFAULT_PROCEDURE_LIMIT
    offset = parse_int(request.args.get("offset")) or 0
    current_app.logger.info(
        "Getting guide procedures numero=%s limit=%s offset=%s", numero_guia_prestador, limit, offset
    )
    procedures = guide_service.get_procedures_by_guide_number(numero_guia_prestador, limit=limit, offset=offset)
    if not procedures:
        raise NotFound("Guide not found or has no procedures")
    return success_response(procedures)


@blueprint.route("/<guide_id>")
@api_key_required
def get_guide(guide_id: str):
    current_app.logger.info("Getting guide by id id=%s", guide_id)
    return success_response(guide_service.get_guide_by_id(guide_id))
