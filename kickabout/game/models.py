"""Data models for the game blueprint."""

from __future__ import annotations

from typing import Any, Iterable, TypedDict

from kickabout.core.types import FirestoreDocument


class Teams(TypedDict):
    """The two sides of a game."""

    team1: str
    team2: str


class Score(TypedDict):
    team1: int
    team2: int


class GameEvent(TypedDict, total=False):
    """Something that happened during a game."""

    type: str
    player: str
    team: str
    timestamp: Any
    assistedBy: str
    substitutedFor: str


class Game(FirestoreDocument, total=False):
    """A game document in Firestore."""

    meetup: str
    teams: Teams
    score: Score
    startTime: Any
    endTime: Any
    duration: int
    format: str
    events: list[GameEvent]
    # Denormalized event players, queried with array_contains for stats.
    playerIds: list[str]
    recordedBy: str


def player_ids(events: Iterable[GameEvent]) -> list[str]:
    """Return the distinct players named by ``events`` in first-seen order."""
    return list(dict.fromkeys(event["player"] for event in events))
