"""Per-user football statistics derived from games and meetups."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypedDict, Union

from firebase_admin import firestore

from kickabout.core.constants import GAMES_COLLECTION, MEETUPS_COLLECTION
from kickabout.meetup.models import Meetup, MeetupStatus

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

# Event types counted towards a player's totals; substitutions are not.
_TALLIED_EVENTS = {
    "goal": "totalGoals",
    "assist": "totalAssists",
    "yellow_card": "totalYellowCards",
    "red_card": "totalRedCards",
}


class UserStats(TypedDict):
    gamesPlayed: int
    meetupsAttended: int
    totalGoals: int
    totalAssists: int
    totalYellowCards: int
    totalRedCards: int
    averageGoalsPerGame: Union[str, int]
    averageAssistsPerGame: Union[str, int]


def _average(total: int, games: int) -> Union[str, int]:
    """Two-decimal average as a string, or 0 when no games were played."""
    if games == 0:
        return 0
    return f"{total / games:.2f}"


def attended(meetup: Meetup, user_id: str) -> bool:
    """Return True if the user took part in the meetup."""
    if user_id in meetup.participants.confirmed:
        return True
    guest = meetup.participants.find_guest(user_id)
    return guest is not None and guest.approved


class StatsService:
    """Aggregates a user's game events and meetup attendance."""

    @staticmethod
    def get_user_stats(user_id: str, db: Client | None = None) -> UserStats:
        """Return the user's totals. An unknown user gets all zeros."""
        if db is None:
            db = firestore.client()

        totals: dict[str, int] = {key: 0 for key in _TALLIED_EVENTS.values()}
        games_played = 0
        games = db.collection(GAMES_COLLECTION).where(
            filter=firestore.FieldFilter("playerIds", "array_contains", user_id)
        )
        for doc in games.stream():
            game: dict[str, Any] = doc.to_dict() or {}
            events = [e for e in game.get("events", []) if e.get("player") == user_id]
            if not events:
                continue
            games_played += 1
            for event in events:
                key = _TALLIED_EVENTS.get(event.get("type", ""))
                if key:
                    totals[key] += 1

        meetups = db.collection(MEETUPS_COLLECTION).where(
            filter=firestore.FieldFilter("participantIds", "array_contains", user_id)
        )
        meetups_attended = 0
        for doc in meetups.stream():
            meetup = Meetup.from_snapshot(doc)
            if meetup.status == MeetupStatus.COMPLETED and attended(meetup, user_id):
                meetups_attended += 1

        return {
            "gamesPlayed": games_played,
            "meetupsAttended": meetups_attended,
            "totalGoals": totals["totalGoals"],
            "totalAssists": totals["totalAssists"],
            "totalYellowCards": totals["totalYellowCards"],
            "totalRedCards": totals["totalRedCards"],
            "averageGoalsPerGame": _average(totals["totalGoals"], games_played),
            "averageAssistsPerGame": _average(totals["totalAssists"], games_played),
        }
