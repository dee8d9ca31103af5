"""Routes for the meetup blueprint."""

from __future__ import annotations

import datetime
from typing import Any

from firebase_admin import firestore
from flask import jsonify, request

from kickabout.auth.decorators import current_user_id, login_required
from kickabout.core.forms import as_utc, validate_json
from kickabout.core.pagination import paginate, parse_page_args
from kickabout.errors import ValidationError

from . import bp
from .forms import (
    GuestApprovalForm,
    GuestForm,
    LocationForm,
    MeetupForm,
    MeetupUpdateForm,
)
from .lifecycle import UPDATABLE_FIELDS
from .models import Meetup
from .services import MeetupService


def _meetup_response(meetup: Meetup, status_code: int = 200) -> Any:
    return (
        jsonify({"status": "success", "data": {"meetup": meetup.to_api()}}),
        status_code,
    )


def _parse_bool(value: str | None) -> bool:
    return (value or "").lower() in ["true", "1", "t", "yes"]


def _parse_datetime_arg(name: str) -> Any:
    value = request.args.get(name)
    if not value:
        return None
    try:
        return as_utc(datetime.datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError as e:
        raise ValidationError(f"{name} must be an ISO 8601 date.") from e


def _location_data(form: Any) -> dict[str, Any]:
    return {
        "name": form.name.data,
        "address": form.address.data,
        "coordinates": {
            "lat": form.coordinates.lat.data,
            "lng": form.coordinates.lng.data,
        },
    }


@bp.route("/", methods=["POST"])
@login_required
def create_meetup() -> Any:
    """Create a meetup in one of the current user's groups."""
    form = validate_json(MeetupForm, request.get_json(silent=True))
    data = dict(form.data)
    data["dateTime"] = as_utc(form.dateTime.data)
    data["location"] = _location_data(form.location.form)
    db = firestore.client()
    meetup = MeetupService.create_meetup(data, current_user_id(), db=db)
    return _meetup_response(meetup, 201)


@bp.route("/", methods=["GET"])
@login_required
def list_meetups() -> Any:
    """List the current user's meetups, soonest first."""
    page, limit = parse_page_args(request.args)
    db = firestore.client()
    meetups = MeetupService.list_meetups(
        current_user_id(),
        status=request.args.get("status"),
        upcoming=_parse_bool(request.args.get("upcoming")),
        search=request.args.get("search"),
        start=_parse_datetime_arg("start"),
        end=_parse_datetime_arg("end"),
        group_id=request.args.get("group"),
        db=db,
    )
    pagination = paginate(meetups, page, limit)
    return jsonify(
        {
            "status": "success",
            "results": len(pagination.items),
            "data": {"meetups": [m.to_api() for m in pagination.items]},
            "pagination": pagination.to_dict(),
        }
    )


@bp.route("/<string:meetup_id>", methods=["GET"])
@login_required
def view_meetup(meetup_id: str) -> Any:
    db = firestore.client()
    return _meetup_response(MeetupService.get_meetup(meetup_id, db=db))


@bp.route("/<string:meetup_id>", methods=["PUT"])
@login_required
def update_meetup(meetup_id: str) -> Any:
    """Edit a meetup. Only the fields present in the body are changed."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    unknown = set(payload) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"These fields cannot be updated: {', '.join(sorted(unknown))}"
        )

    form = validate_json(MeetupUpdateForm, payload)
    patch: dict[str, Any] = {}
    for name in UPDATABLE_FIELDS:
        if name not in payload or name == "location":
            continue
        if payload[name] is None or payload[name] == "":
            raise ValidationError(f"{name} cannot be empty.")
        patch[name] = form[name].data
    if "dateTime" in patch:
        patch["dateTime"] = as_utc(patch["dateTime"])
    if "location" in payload:
        location_form = validate_json(LocationForm, payload["location"])
        patch["location"] = _location_data(location_form)
    if not patch:
        raise ValidationError("No fields to update.")

    db = firestore.client()
    meetup = MeetupService.update_meetup(meetup_id, current_user_id(), patch, db=db)
    return _meetup_response(meetup)


@bp.route("/<string:meetup_id>", methods=["DELETE"])
@login_required
def delete_meetup(meetup_id: str) -> Any:
    db = firestore.client()
    MeetupService.delete_meetup(meetup_id, current_user_id(), db=db)
    return "", 204


@bp.route("/<string:meetup_id>/cancel", methods=["POST"])
@login_required
def cancel_meetup(meetup_id: str) -> Any:
    """Call the meetup off."""
    db = firestore.client()
    return _meetup_response(
        MeetupService.cancel_meetup(meetup_id, current_user_id(), db=db)
    )


@bp.route("/<string:meetup_id>/complete", methods=["POST"])
@login_required
def complete_meetup(meetup_id: str) -> Any:
    """Mark a meetup that has taken place as completed."""
    db = firestore.client()
    return _meetup_response(
        MeetupService.complete_meetup(meetup_id, current_user_id(), db=db)
    )


@bp.route("/<string:meetup_id>/register", methods=["POST"])
@login_required
def register(meetup_id: str) -> Any:
    """Join a meetup, or its waitlist when it has no room."""
    db = firestore.client()
    return _meetup_response(MeetupService.register(meetup_id, current_user_id(), db=db))


@bp.route("/<string:meetup_id>/register", methods=["DELETE"])
@login_required
def cancel_registration(meetup_id: str) -> Any:
    """Leave a meetup."""
    db = firestore.client()
    return _meetup_response(
        MeetupService.cancel_registration(meetup_id, current_user_id(), db=db)
    )


@bp.route("/<string:meetup_id>/guests", methods=["POST"])
@login_required
def register_guest(meetup_id: str) -> Any:
    form = validate_json(GuestForm, request.get_json(silent=True))
    db = firestore.client()
    meetup = MeetupService.register_guest(
        meetup_id, current_user_id(), form.guestId.data, db=db
    )
    return _meetup_response(meetup, 201)


@bp.route("/<string:meetup_id>/guests/<string:user_id>", methods=["PUT"])
@login_required
def approve_guest(meetup_id: str, user_id: str) -> Any:
    """Approve or reject a guest."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or "approved" not in payload:
        raise ValidationError("approved is required.")
    form = validate_json(GuestApprovalForm, payload)
    db = firestore.client()
    meetup = MeetupService.approve_guest(
        meetup_id, current_user_id(), user_id, form.approved.data, db=db
    )
    return _meetup_response(meetup)
