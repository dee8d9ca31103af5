"""Routes for the stats blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import jsonify

from kickabout.auth.decorators import login_required

from . import bp
from .services import StatsService


@bp.route("/<string:user_id>/stats", methods=["GET"])
@login_required
def user_stats(user_id: str) -> Any:
    """Return a player's goals, assists, cards and attendance."""
    db = firestore.client()
    stats = StatsService.get_user_stats(user_id, db=db)
    return jsonify({"status": "success", "data": {"stats": stats}})
