"""Routes for the game blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import jsonify, request

from kickabout.auth.decorators import current_user_id, login_required
from kickabout.core.forms import as_utc, validate_json
from kickabout.core.serialization import to_json_value

from . import bp
from .forms import GameForm
from .services import GameService


def _game_data(form: GameForm) -> dict[str, Any]:
    """Turn a validated form into the fields of a game document."""
    events = []
    for entry in form.events.entries:
        sub = entry.form
        event = {
            "type": sub.type.data,
            "player": sub.player.data,
            "team": sub.team.data,
            "timestamp": as_utc(sub.timestamp.data),
        }
        if sub.assistedBy.data:
            event["assistedBy"] = sub.assistedBy.data
        if sub.substitutedFor.data:
            event["substitutedFor"] = sub.substitutedFor.data
        events.append(event)

    return {
        "teams": {"team1": form.teams.team1.data, "team2": form.teams.team2.data},
        "score": {
            "team1": form.score.team1.data or 0,
            "team2": form.score.team2.data or 0,
        },
        "startTime": as_utc(form.startTime.data),
        "endTime": as_utc(form.endTime.data),
        "duration": form.duration.data,
        "format": form.format.data,
        "events": events,
    }


@bp.route("/<string:meetup_id>/games", methods=["POST"])
@login_required
def record_game(meetup_id: str) -> Any:
    """Record a game played at a meetup."""
    form = validate_json(GameForm, request.get_json(silent=True))
    db = firestore.client()
    game = GameService.record_game(
        meetup_id, current_user_id(), _game_data(form), db=db
    )
    return (
        jsonify({"status": "success", "data": {"game": to_json_value(game)}}),
        201,
    )


@bp.route("/<string:meetup_id>/games", methods=["GET"])
@login_required
def list_games(meetup_id: str) -> Any:
    db = firestore.client()
    games = GameService.list_games(meetup_id, db=db)
    return jsonify(
        {
            "status": "success",
            "results": len(games),
            "data": {"games": to_json_value(games)},
        }
    )
