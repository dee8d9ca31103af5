"""The meetup blueprint."""

from flask import Blueprint

bp = Blueprint("meetup", __name__, url_prefix="/meetups")

from . import routes  # noqa: E402

__all__ = ["routes"]
