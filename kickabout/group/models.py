"""Data models for the group blueprint."""

from __future__ import annotations

from typing import Any, TypedDict

from kickabout.core.types import FirestoreDocument


class GroupLocation(TypedDict, total=False):
    """Where a group usually plays."""

    city: str
    coordinates: dict[str, float]


class Group(FirestoreDocument, total=False):
    """A group document in Firestore."""

    name: str
    description: str
    privacy: str
    location: GroupLocation
    rules: str
    members: list[str]
    managers: list[str]
    createdBy: str


class GroupStats(TypedDict):
    """Derived meetup activity figures for a group."""

    totalMembers: int
    totalMeetups: int
    completedMeetups: int
    upcomingMeetups: int
    averageParticipation: float


def is_member(group: Group | dict[str, Any], user_id: str) -> bool:
    """Return True if the user belongs to the group."""
    return user_id in group.get("members", [])


def is_manager(group: Group | dict[str, Any], user_id: str) -> bool:
    """Return True if the user manages the group."""
    return user_id in group.get("managers", [])
