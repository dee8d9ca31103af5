"""Data models for the meetup blueprint."""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, TypedDict

from kickabout.core.serialization import to_json_value
from kickabout.core.types import FirestoreDocument
from kickabout.errors import ValidationError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot


class MeetupStatus(str, enum.Enum):
    """Lifecycle states of a meetup."""

    DRAFT = "draft"
    PUBLISHED = "published"
    FULL = "full"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (MeetupStatus.COMPLETED, MeetupStatus.CANCELLED)

    def can_transition_to(self, target: MeetupStatus) -> bool:
        """Return True if the transition table allows ``self -> target``."""
        return target in _TRANSITIONS[self]

    def transition_to(self, target: MeetupStatus) -> MeetupStatus:
        """Return ``target`` or raise ValidationError for an illegal move."""
        if not self.can_transition_to(target):
            raise ValidationError(
                f"A meetup cannot move from {self.value} to {target.value}."
            )
        return target


_TRANSITIONS: dict[MeetupStatus, frozenset[MeetupStatus]] = {
    MeetupStatus.DRAFT: frozenset({MeetupStatus.PUBLISHED}),
    MeetupStatus.PUBLISHED: frozenset(
        {MeetupStatus.FULL, MeetupStatus.CANCELLED, MeetupStatus.COMPLETED}
    ),
    MeetupStatus.FULL: frozenset(
        {MeetupStatus.PUBLISHED, MeetupStatus.CANCELLED, MeetupStatus.COMPLETED}
    ),
    MeetupStatus.COMPLETED: frozenset(),
    MeetupStatus.CANCELLED: frozenset(),
}

# Statuses that follow from capacity and are never requested directly.
AUTOMATIC_STATUSES = frozenset({MeetupStatus.FULL})
INITIAL_STATUSES = frozenset({MeetupStatus.DRAFT, MeetupStatus.PUBLISHED})


class Coordinates(TypedDict):
    """Latitude/longitude pair."""

    lat: float
    lng: float


class Location(TypedDict):
    """Where a meetup takes place."""

    name: str
    address: str
    coordinates: Coordinates


class GuestEntry(TypedDict, total=False):
    """A guest as stored in Firestore."""

    user: str
    approved: bool
    approvedBy: str


class ParticipantsDocument(TypedDict):
    """The participation partition as stored in Firestore."""

    confirmed: list[str]
    waitlist: list[str]
    guests: list[GuestEntry]


class MeetupDocument(FirestoreDocument, total=False):
    """A meetup document in Firestore."""

    title: str
    description: str
    group: str
    createdBy: str
    dateTime: Any
    duration: int
    location: Location
    minParticipants: int
    maxParticipants: int
    costPerPerson: float
    participants: ParticipantsDocument
    participantIds: list[str]
    status: str
    games: list[str]
    version: int


@dataclass
class Guest:
    """A user brought along by another participant."""

    user: str
    approved: bool = False
    approvedBy: Optional[str] = None

    def to_dict(self) -> GuestEntry:
        entry: GuestEntry = {"user": self.user, "approved": self.approved}
        if self.approvedBy:
            entry["approvedBy"] = self.approvedBy
        return entry


@dataclass
class Participants:
    """Confirmed, waitlisted and guest populations of a meetup."""

    confirmed: list[str] = field(default_factory=list)
    waitlist: list[str] = field(default_factory=list)
    guests: list[Guest] = field(default_factory=list)

    def is_registered(self, user_id: str) -> bool:
        """Return True if the user holds a slot or a waitlist place."""
        return user_id in self.confirmed or user_id in self.waitlist

    def find_guest(self, user_id: str) -> Guest | None:
        return next((guest for guest in self.guests if guest.user == user_id), None)

    def to_dict(self) -> ParticipantsDocument:
        return {
            "confirmed": list(self.confirmed),
            "waitlist": list(self.waitlist),
            "guests": [guest.to_dict() for guest in self.guests],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Participants:
        data = data or {}
        return cls(
            confirmed=list(data.get("confirmed", [])),
            waitlist=list(data.get("waitlist", [])),
            guests=[
                Guest(
                    user=entry["user"],
                    approved=bool(entry.get("approved", False)),
                    approvedBy=entry.get("approvedBy"),
                )
                for entry in data.get("guests", [])
            ],
        )


@dataclass
class Meetup:
    """In-memory meetup aggregate mutated by the lifecycle engine."""

    id: str
    title: str
    description: str
    group: str
    createdBy: str
    dateTime: datetime.datetime
    location: Location
    minParticipants: int
    maxParticipants: int
    status: MeetupStatus = MeetupStatus.DRAFT
    participants: Participants = field(default_factory=Participants)
    duration: Optional[int] = None
    costPerPerson: Optional[float] = None
    games: list[str] = field(default_factory=list)
    version: int = 0
    createdAt: Any = None
    updatedAt: Any = None

    @property
    def has_space(self) -> bool:
        return len(self.participants.confirmed) < self.maxParticipants

    def participant_ids(self) -> list[str]:
        """Everyone with a stake in the meetup, creator first, without repeats."""
        ids = [self.createdBy]
        ids.extend(self.participants.confirmed)
        ids.extend(self.participants.waitlist)
        ids.extend(guest.user for guest in self.participants.guests)
        return list(dict.fromkeys(ids))

    def to_dict(self) -> MeetupDocument:
        """Return the Firestore document for this meetup (without its ID)."""
        document: MeetupDocument = {
            "title": self.title,
            "description": self.description,
            "group": self.group,
            "createdBy": self.createdBy,
            "dateTime": self.dateTime,
            "location": self.location,
            "minParticipants": self.minParticipants,
            "maxParticipants": self.maxParticipants,
            "participants": self.participants.to_dict(),
            "participantIds": self.participant_ids(),
            "status": self.status.value,
            "games": list(self.games),
            "version": self.version,
        }
        if self.duration is not None:
            document["duration"] = self.duration
        if self.costPerPerson is not None:
            document["costPerPerson"] = self.costPerPerson
        return document

    def to_api(self) -> dict[str, Any]:
        """Return the JSON representation sent to clients."""
        data: dict[str, Any] = dict(self.to_dict())
        data["id"] = self.id
        data["createdAt"] = self.createdAt
        data["updatedAt"] = self.updatedAt
        return to_json_value(data)

    @classmethod
    def from_dict(cls, meetup_id: str, data: dict[str, Any]) -> Meetup:
        return cls(
            id=meetup_id,
            title=data.get("title", ""),
            description=data.get("description", ""),
            group=data.get("group", ""),
            createdBy=data.get("createdBy", ""),
            dateTime=data["dateTime"],
            location=data.get("location", {}),
            minParticipants=int(data.get("minParticipants", 2)),
            maxParticipants=int(data.get("maxParticipants", 2)),
            status=MeetupStatus(data.get("status", MeetupStatus.DRAFT.value)),
            participants=Participants.from_dict(data.get("participants")),
            duration=data.get("duration"),
            costPerPerson=data.get("costPerPerson"),
            games=list(data.get("games", [])),
            version=int(data.get("version", 0)),
            createdAt=data.get("createdAt"),
            updatedAt=data.get("updatedAt"),
        )

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Meetup:
        return cls.from_dict(snapshot.id, snapshot.to_dict() or {})
