"""The stats blueprint."""

from flask import Blueprint

bp = Blueprint("stats", __name__, url_prefix="/users")

from . import routes  # noqa: E402

__all__ = ["routes"]
