"""Routes for the group blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import jsonify, request

from kickabout.auth.decorators import current_user_id, login_required
from kickabout.core.forms import validate_json
from kickabout.core.pagination import paginate, parse_page_args
from kickabout.core.serialization import to_json_value

from . import bp
from .forms import GroupForm
from .services import GroupService


@bp.route("/", methods=["POST"])
@login_required
def create_group() -> Any:
    """Create a new group owned by the current user."""
    form = validate_json(GroupForm, request.get_json(silent=True))
    db = firestore.client()
    group = GroupService.create_group(form.data, current_user_id(), db=db)
    return (
        jsonify({"status": "success", "data": {"group": to_json_value(group)}}),
        201,
    )


@bp.route("/", methods=["GET"])
@login_required
def list_groups() -> Any:
    """List the current user's groups."""
    page, limit = parse_page_args(request.args)
    db = firestore.client()
    groups = GroupService.list_groups(
        current_user_id(),
        privacy=request.args.get("privacy"),
        search=request.args.get("search"),
        city=request.args.get("city"),
        db=db,
    )
    pagination = paginate(groups, page, limit)
    return jsonify(
        {
            "status": "success",
            "results": len(pagination.items),
            "data": {"groups": to_json_value(pagination.items)},
            "pagination": pagination.to_dict(),
        }
    )


@bp.route("/<string:group_id>", methods=["GET"])
@login_required
def view_group(group_id: str) -> Any:
    """Return a single group."""
    db = firestore.client()
    group = GroupService.get_group_for_member(group_id, current_user_id(), db=db)
    return jsonify({"status": "success", "data": {"group": to_json_value(group)}})


@bp.route("/<string:group_id>/stats", methods=["GET"])
@login_required
def group_stats(group_id: str) -> Any:
    """Return meetup activity statistics for a group."""
    db = firestore.client()
    GroupService.get_group_for_member(group_id, current_user_id(), db=db)
    stats = GroupService.get_group_stats(group_id, db=db)
    return jsonify({"status": "success", "data": {"stats": stats}})
