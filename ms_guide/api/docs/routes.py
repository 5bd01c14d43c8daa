from flask import current_app, jsonify, render_template_string, request, url_for

from . import blueprint
from .spec import build_spec

SWAGGER_TEMPLATE = """
<!DOCTYPE html>
<html lang="pt-BR">
<head>
  <meta charset="utf-8">
  <title>{{ title }}</title>
  <link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui.css">
  <style>
    body { margin: 0; background: #fafafa; }
    .swagger-ui .topbar { display: none; }
  </style>
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui-bundle.js"></script>
  <script>
    window.onload = () => {
      SwaggerUIBundle({
        url: "{{ spec_url }}",
        dom_id: '#swagger-ui',
        deepLinking: true,
        persistAuthorization: true
      });
    };
  </script>
</body>
</html>
"""


def _request_scheme() -> str:
    return request.headers.get("X-Forwarded-Proto", request.scheme)


@blueprint.route("/openapi.json")
def openapi_json():
    """Serve the OpenAPI document for the guide API."""
    server_url = f"{_request_scheme()}://{request.host.rstrip('/')}"
    return jsonify(build_spec(current_app.config, server_url))


@blueprint.route("/swagger")
def swagger_ui():
    spec_url = url_for("docs.openapi_json", _external=True, _scheme=_request_scheme())
    title = f"{current_app.config.get('API_TITLE', 'Guide Service API')} - Docs"
    return render_template_string(SWAGGER_TEMPLATE, spec_url=spec_url, title=title)


@blueprint.route("/")
def docs_index():
    return ("", 302, {"Location": url_for("docs.swagger_ui")})
