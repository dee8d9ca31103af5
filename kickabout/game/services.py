"""Service layer for recording and listing games."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app

from kickabout.core.constants import GAMES_COLLECTION
from kickabout.errors import ValidationError
from kickabout.meetup.models import Meetup, MeetupStatus
from kickabout.meetup.services import MeetupService

from .models import Game, GameEvent, player_ids

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction


class GameService:
    """Handles business logic and data access for games."""

    @staticmethod
    def record_game(
        meetup_id: str,
        user_uid: str,
        data: dict[str, Any],
        db: Client | None = None,
    ) -> Game:
        """Store a game and attach it to its meetup in one transaction."""
        if db is None:
            db = firestore.client()

        game_ref = db.collection(GAMES_COLLECTION).document()
        events = [cast(GameEvent, event) for event in data.get("events", [])]
        game: Game = {
            "meetup": meetup_id,
            "teams": data["teams"],
            "score": data["score"],
            "startTime": data["startTime"],
            "format": data["format"],
            "events": events,
            "playerIds": player_ids(events),
            "recordedBy": user_uid,
        }
        if data.get("endTime") is not None:
            game["endTime"] = data["endTime"]
        if data.get("duration") is not None:
            game["duration"] = data["duration"]

        def _attach(transaction: Transaction, meetup: Meetup) -> None:
            MeetupService.require_organizer(
                db, meetup, user_uid, "record games for this meetup", transaction
            )
            if meetup.status in (MeetupStatus.DRAFT, MeetupStatus.CANCELLED):
                raise ValidationError(
                    f"Games cannot be recorded for a {meetup.status.value} meetup."
                )
            document = dict(game)
            document["createdAt"] = firestore.SERVER_TIMESTAMP
            transaction.set(game_ref, document)
            meetup.games.append(game_ref.id)

        MeetupService.mutate_meetup(db, meetup_id, _attach)
        current_app.logger.info(f"Game {game_ref.id} recorded for meetup {meetup_id}")

        game["id"] = game_ref.id
        return game

    @staticmethod
    def list_games(meetup_id: str, db: Client | None = None) -> list[Game]:
        """Fetch the games of a meetup in the order they were played."""
        if db is None:
            db = firestore.client()
        MeetupService.get_meetup(meetup_id, db=db)

        query = db.collection(GAMES_COLLECTION).where(
            filter=firestore.FieldFilter("meetup", "==", meetup_id)
        )
        games = []
        for doc in query.stream():
            game = cast(Game, doc.to_dict() or {})
            game["id"] = doc.id
            games.append(game)
        games.sort(key=lambda g: g["startTime"])
        return games
