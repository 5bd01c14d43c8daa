from flask import Blueprint

blueprint = Blueprint("guides", __name__)

from . import routes  # noqa: E402,F401
