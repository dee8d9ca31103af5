"""Meetup lifecycle engine: admission, cancellation and status transitions.

Everything here works on an in-memory :class:`Meetup` and never touches
Firestore; :class:`MeetupService` runs these functions inside a transaction
so that each call is one atomic read-modify-write of the meetup document.

The engine protects a single hard invariant, ``len(confirmed) <=
maxParticipants``, and keeps ``confirmed`` and ``waitlist`` disjoint.
"""

from __future__ import annotations

import datetime
from typing import Any

from kickabout.core.constants import MEETUP_MIN_CAPACITY
from kickabout.errors import (
    AlreadyRegisteredError,
    GuestAlreadyRegisteredError,
    InvariantViolationError,
    MeetupInPastError,
    NotFoundError,
    RegistrationClosedError,
    ValidationError,
)

from .models import (
    AUTOMATIC_STATUSES,
    INITIAL_STATUSES,
    Guest,
    Meetup,
    MeetupStatus,
)

CONFIRMED = "confirmed"
WAITLIST = "waitlist"

UPDATABLE_FIELDS = (
    "title",
    "description",
    "dateTime",
    "duration",
    "location",
    "minParticipants",
    "maxParticipants",
    "costPerPerson",
    "status",
)


class MeetupLifecycle:
    """Pure state-machine operations over a meetup."""

    @staticmethod
    def validate_capacity(
        min_participants: int, max_participants: int, confirmed_count: int = 0
    ) -> None:
        """Check the capacity bounds of a meetup."""
        if min_participants < MEETUP_MIN_CAPACITY:
            raise ValidationError(
                f"Minimum participants must be at least {MEETUP_MIN_CAPACITY}"
            )
        if max_participants < MEETUP_MIN_CAPACITY:
            raise ValidationError(
                f"Maximum participants must be at least {MEETUP_MIN_CAPACITY}"
            )
        if max_participants < min_participants:
            raise ValidationError(
                "Maximum participants must be greater than or equal to minimum "
                "participants"
            )
        if max_participants < confirmed_count:
            raise ValidationError(
                f"Maximum participants cannot be lower than the {confirmed_count} "
                "participants already confirmed"
            )

    @staticmethod
    def validate_future(date_time: datetime.datetime, now: datetime.datetime) -> None:
        if date_time <= now:
            raise ValidationError("Meetup date must be in the future")

    @staticmethod
    def validate_initial_status(status: MeetupStatus) -> None:
        if status not in INITIAL_STATUSES:
            raise ValidationError("A meetup starts as draft or published.")

    @staticmethod
    def register(meetup: Meetup, user_id: str, now: datetime.datetime) -> str:
        """Admit a user, returning ``"confirmed"`` or ``"waitlist"``.

        Only a published meetup accepts registrations; ``full`` rejects them
        rather than waitlisting.
        """
        if meetup.status != MeetupStatus.PUBLISHED:
            raise RegistrationClosedError()
        if meetup.dateTime <= now:
            raise MeetupInPastError()
        if meetup.participants.is_registered(user_id):
            raise AlreadyRegisteredError()

        if meetup.has_space:
            meetup.participants.confirmed.append(user_id)
            placement = CONFIRMED
        else:
            meetup.participants.waitlist.append(user_id)
            placement = WAITLIST

        if not meetup.has_space:
            meetup.status = meetup.status.transition_to(MeetupStatus.FULL)
        return placement

    @staticmethod
    def cancel_registration(meetup: Meetup, user_id: str) -> str | None:
        """Withdraw a user and promote at most one waitlisted user.

        Cancelling a user who holds no registration changes nothing. Returns
        the ID of the promoted user, if any.
        """
        participants = meetup.participants
        participants.confirmed = [uid for uid in participants.confirmed if uid != user_id]
        participants.waitlist = [uid for uid in participants.waitlist if uid != user_id]

        promoted = None
        if participants.waitlist and meetup.has_space:
            promoted = participants.waitlist.pop(0)
            participants.confirmed.append(promoted)

        if meetup.has_space and meetup.status == MeetupStatus.FULL:
            meetup.status = meetup.status.transition_to(MeetupStatus.PUBLISHED)
        return promoted

    @staticmethod
    def add_guest(meetup: Meetup, guest_id: str) -> Guest:
        """Put a guest on the guest list, pending approval."""
        if meetup.participants.find_guest(guest_id) is not None:
            raise GuestAlreadyRegisteredError()
        guest = Guest(user=guest_id, approved=False)
        meetup.participants.guests.append(guest)
        return guest

    @staticmethod
    def set_guest_approval(
        meetup: Meetup, guest_id: str, approved: bool, approved_by: str
    ) -> Guest:
        """Record an organizer's decision on a guest; capacity is untouched."""
        guest = meetup.participants.find_guest(guest_id)
        if guest is None:
            raise NotFoundError("Guest not found")
        guest.approved = approved
        guest.approvedBy = approved_by
        return guest

    @staticmethod
    def change_status(
        meetup: Meetup, target: MeetupStatus, now: datetime.datetime
    ) -> None:
        """Apply an organizer-requested status change."""
        if target == meetup.status:
            return
        if target in AUTOMATIC_STATUSES or (
            target == MeetupStatus.PUBLISHED and meetup.status == MeetupStatus.FULL
        ):
            raise ValidationError(
                "The full status follows from capacity and cannot be set directly."
            )
        new_status = meetup.status.transition_to(target)
        if new_status == MeetupStatus.COMPLETED and meetup.dateTime > now:
            raise ValidationError("A meetup can only be completed after it starts.")
        meetup.status = new_status
        if new_status == MeetupStatus.PUBLISHED:
            MeetupLifecycle.sync_capacity(meetup)

    @staticmethod
    def sync_capacity(meetup: Meetup) -> list[str]:
        """Re-derive the capacity-driven part of the state after a resize.

        Free slots are filled from the head of the waitlist, then an open
        meetup is ``full`` exactly when every slot is taken.
        """
        promoted = []
        participants = meetup.participants
        while participants.waitlist and meetup.has_space:
            user_id = participants.waitlist.pop(0)
            participants.confirmed.append(user_id)
            promoted.append(user_id)

        if meetup.status == MeetupStatus.FULL and meetup.has_space:
            meetup.status = meetup.status.transition_to(MeetupStatus.PUBLISHED)
        elif meetup.status == MeetupStatus.PUBLISHED and not meetup.has_space:
            meetup.status = meetup.status.transition_to(MeetupStatus.FULL)
        return promoted

    @staticmethod
    def apply_update(
        meetup: Meetup, patch: dict[str, Any], now: datetime.datetime
    ) -> list[str]:
        """Apply an organizer's edit and return users promoted by a resize."""
        unknown = set(patch) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"These fields cannot be updated: {', '.join(sorted(unknown))}"
            )
        if meetup.status.is_terminal:
            raise ValidationError(f"A {meetup.status.value} meetup cannot be edited.")

        if "dateTime" in patch and patch["dateTime"] != meetup.dateTime:
            MeetupLifecycle.validate_future(patch["dateTime"], now)

        min_participants = patch.get("minParticipants", meetup.minParticipants)
        max_participants = patch.get("maxParticipants", meetup.maxParticipants)
        MeetupLifecycle.validate_capacity(
            min_participants, max_participants, len(meetup.participants.confirmed)
        )

        for name in UPDATABLE_FIELDS:
            if name in patch and name != "status":
                setattr(meetup, name, patch[name])

        promoted: list[str] = []
        if "minParticipants" in patch or "maxParticipants" in patch:
            promoted = MeetupLifecycle.sync_capacity(meetup)
        if "status" in patch:
            MeetupLifecycle.change_status(meetup, MeetupStatus(patch["status"]), now)
        return promoted

    @staticmethod
    def check_invariants(meetup: Meetup) -> None:
        """Fail loudly if a mutation broke the participation invariants."""
        confirmed = meetup.participants.confirmed
        waitlist = meetup.participants.waitlist
        if len(confirmed) > meetup.maxParticipants:
            raise InvariantViolationError(f"Meetup {meetup.id} is over capacity.")
        if len(set(confirmed)) != len(confirmed) or len(set(waitlist)) != len(
            waitlist
        ):
            raise InvariantViolationError(
                f"Meetup {meetup.id} lists a participant twice."
            )
        if set(confirmed) & set(waitlist):
            raise InvariantViolationError(
                f"Meetup {meetup.id} has users both confirmed and waitlisted."
            )
        if meetup.maxParticipants < meetup.minParticipants:
            raise InvariantViolationError(
                f"Meetup {meetup.id} has inverted capacity bounds."
            )
