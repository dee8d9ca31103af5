"""The game blueprint, nested under meetups."""

from flask import Blueprint

bp = Blueprint("game", __name__, url_prefix="/meetups")

from . import routes  # noqa: E402

__all__ = ["routes"]
