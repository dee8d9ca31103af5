"""Service layer for meetups: registration protocol, lifecycle actions and listing."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, Callable, TypeVar, cast

from firebase_admin import firestore
from flask import current_app

from kickabout.core.constants import (
    GROUPS_COLLECTION,
    MEETUPS_COLLECTION,
    USERS_COLLECTION,
)
from kickabout.errors import (
    ConcurrencyConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from kickabout.group.models import is_manager, is_member
from kickabout.group.services import GroupService
from kickabout.utils import EmailError, send_email

from .lifecycle import MeetupLifecycle
from .models import Location, Meetup, MeetupStatus, Participants

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

T = TypeVar("T")

DEFAULT_TRANSACTION_ATTEMPTS = 5
# Raised by firestore.transactional once every attempt lost to a concurrent write.
_EXCEEDED_ATTEMPTS_MESSAGE = "Failed to commit transaction"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _max_attempts() -> int:
    return int(
        current_app.config.get(
            "MEETUP_TRANSACTION_MAX_ATTEMPTS", DEFAULT_TRANSACTION_ATTEMPTS
        )
    )


class MeetupService:
    """Handles business logic and data access for meetups."""

    @staticmethod
    def _meetup_ref(db: Client, meetup_id: str) -> DocumentReference:
        return db.collection(MEETUPS_COLLECTION).document(meetup_id)

    @staticmethod
    def require_organizer(
        db: Client,
        meetup: Meetup,
        user_uid: str,
        action: str,
        transaction: Transaction | None = None,
    ) -> None:
        """Allow only the meetup creator or a manager of its group."""
        if meetup.createdBy == user_uid:
            return
        group_ref = db.collection(GROUPS_COLLECTION).document(meetup.group)
        group_doc = cast("DocumentSnapshot", group_ref.get(transaction=transaction))
        group_data = (group_doc.to_dict() or {}) if group_doc.exists else {}
        if not is_manager(group_data, user_uid):
            raise ForbiddenError(f"You do not have permission to {action}")

    @staticmethod
    def run_transaction(
        db: Client, meetup_id: str, func: Callable[[Transaction], T]
    ) -> T:
        """Run ``func`` in a retrying transaction scoped to one meetup."""
        transaction = db.transaction(max_attempts=_max_attempts())
        try:
            return firestore.transactional(func)(transaction)
        except ValueError as e:
            if _EXCEEDED_ATTEMPTS_MESSAGE in str(e):
                current_app.logger.error(f"Meetup {meetup_id} write contention: {e}")
                raise ConcurrencyConflictError() from e
            raise

    @staticmethod
    def mutate_meetup(
        db: Client,
        meetup_id: str,
        mutation: Callable[[Transaction, Meetup], T],
    ) -> tuple[Meetup, T]:
        """Run ``mutation`` as one atomic read-modify-write of a meetup.

        The meetup is read inside a Firestore transaction, handed to
        ``mutation`` together with the transaction, checked against the
        participation invariants and written back with its version bumped.
        Firestore retries the whole function when a concurrent write wins; if
        every attempt loses, ConcurrencyConflictError is raised. Errors raised
        by ``mutation`` abort the transaction without writing anything.
        """
        meetup_ref = MeetupService._meetup_ref(db, meetup_id)

        def _apply(transaction: Transaction) -> tuple[Meetup, T]:
            snapshot = cast(
                "DocumentSnapshot", meetup_ref.get(transaction=transaction)
            )
            if not snapshot.exists:
                raise NotFoundError("Meetup not found")
            meetup = Meetup.from_snapshot(snapshot)
            outcome = mutation(transaction, meetup)
            MeetupLifecycle.check_invariants(meetup)
            meetup.version += 1
            update = dict(meetup.to_dict())
            update["updatedAt"] = firestore.SERVER_TIMESTAMP
            transaction.update(meetup_ref, update)
            return meetup, outcome

        return MeetupService.run_transaction(db, meetup_id, _apply)

    @staticmethod
    def create_meetup(
        data: dict[str, Any],
        user_uid: str,
        db: Client | None = None,
        now: datetime.datetime | None = None,
    ) -> Meetup:
        """Create a meetup in a group the user belongs to.

        The creator takes the first confirmed slot.
        """
        if db is None:
            db = firestore.client()
        if now is None:
            now = _utcnow()

        group = GroupService.get_group(data["group"], db)
        if not is_member(group, user_uid):
            raise ForbiddenError(
                "You must be a member of the group to create meetups"
            )

        status = MeetupStatus(data.get("status") or MeetupStatus.DRAFT.value)
        MeetupLifecycle.validate_initial_status(status)
        MeetupLifecycle.validate_future(data["dateTime"], now)
        MeetupLifecycle.validate_capacity(
            data["minParticipants"], data["maxParticipants"]
        )

        meetup_ref = db.collection(MEETUPS_COLLECTION).document()
        meetup = Meetup(
            id=meetup_ref.id,
            title=data["title"],
            description=data["description"],
            group=data["group"],
            createdBy=user_uid,
            dateTime=data["dateTime"],
            location=cast(Location, data["location"]),
            minParticipants=data["minParticipants"],
            maxParticipants=data["maxParticipants"],
            status=status,
            participants=Participants(confirmed=[user_uid]),
            duration=data.get("duration"),
            costPerPerson=data.get("costPerPerson"),
            version=1,
        )
        document = dict(meetup.to_dict())
        document["createdAt"] = firestore.SERVER_TIMESTAMP
        document["updatedAt"] = firestore.SERVER_TIMESTAMP
        meetup_ref.set(document)

        current_app.logger.info(
            f"Meetup {meetup.id} created in group {meetup.group} ({status.value})"
        )
        return meetup

    @staticmethod
    def get_meetup(meetup_id: str, db: Client | None = None) -> Meetup:
        """Fetch a meetup by ID or raise NotFoundError."""
        if db is None:
            db = firestore.client()
        snapshot = cast(
            "DocumentSnapshot", MeetupService._meetup_ref(db, meetup_id).get()
        )
        if not snapshot.exists:
            raise NotFoundError("Meetup not found")
        return Meetup.from_snapshot(snapshot)

    @staticmethod
    def update_meetup(
        meetup_id: str,
        user_uid: str,
        patch: dict[str, Any],
        db: Client | None = None,
        now: datetime.datetime | None = None,
    ) -> Meetup:
        """Apply an organizer's edit, re-validating capacity and schedule."""
        if db is None:
            db = firestore.client()
        if now is None:
            now = _utcnow()

        def _update(transaction: Transaction, meetup: Meetup) -> list[str]:
            MeetupService.require_organizer(
                db, meetup, user_uid, "update this meetup", transaction
            )
            previous_status = meetup.status
            promoted = MeetupLifecycle.apply_update(meetup, patch, now)
            if meetup.status != previous_status:
                current_app.logger.info(
                    f"Meetup {meetup.id} moved from {previous_status.value} "
                    f"to {meetup.status.value}"
                )
            return promoted

        meetup, promoted = MeetupService.mutate_meetup(db, meetup_id, _update)
        for promoted_uid in promoted:
            MeetupService._notify_promotion(db, meetup, promoted_uid)
        return meetup

    @staticmethod
    def set_status(
        meetup_id: str,
        user_uid: str,
        target: MeetupStatus,
        db: Client | None = None,
        now: datetime.datetime | None = None,
    ) -> Meetup:
        """Cancel, complete or publish a meetup on an organizer's request."""
        if db is None:
            db = firestore.client()
        if now is None:
            now = _utcnow()

        def _transition(transaction: Transaction, meetup: Meetup) -> None:
            MeetupService.require_organizer(
                db, meetup, user_uid, f"mark this meetup {target.value}", transaction
            )
            previous_status = meetup.status
            MeetupLifecycle.change_status(meetup, target, now)
            current_app.logger.info(
                f"Meetup {meetup.id} moved from {previous_status.value} "
                f"to {meetup.status.value}"
            )

        meetup, _ = MeetupService.mutate_meetup(db, meetup_id, _transition)
        return meetup

    @staticmethod
    def cancel_meetup(
        meetup_id: str, user_uid: str, db: Client | None = None
    ) -> Meetup:
        return MeetupService.set_status(
            meetup_id, user_uid, MeetupStatus.CANCELLED, db=db
        )

    @staticmethod
    def complete_meetup(
        meetup_id: str,
        user_uid: str,
        db: Client | None = None,
        now: datetime.datetime | None = None,
    ) -> Meetup:
        return MeetupService.set_status(
            meetup_id, user_uid, MeetupStatus.COMPLETED, db=db, now=now
        )

    @staticmethod
    def delete_meetup(
        meetup_id: str, user_uid: str, db: Client | None = None
    ) -> None:
        """Delete a meetup that has no recorded games."""
        if db is None:
            db = firestore.client()
        meetup_ref = MeetupService._meetup_ref(db, meetup_id)

        def _delete(transaction: Transaction) -> None:
            snapshot = cast(
                "DocumentSnapshot", meetup_ref.get(transaction=transaction)
            )
            if not snapshot.exists:
                raise NotFoundError("Meetup not found")
            meetup = Meetup.from_snapshot(snapshot)
            MeetupService.require_organizer(
                db, meetup, user_uid, "delete this meetup", transaction
            )
            if meetup.games:
                raise ValidationError(
                    "A meetup with recorded games cannot be deleted."
                )
            transaction.delete(meetup_ref)

        MeetupService.run_transaction(db, meetup_id, _delete)
        current_app.logger.info(f"Meetup {meetup_id} deleted by {user_uid}")

    @staticmethod
    def register(
        meetup_id: str,
        user_uid: str,
        db: Client | None = None,
        now: datetime.datetime | None = None,
    ) -> Meetup:
        """Register the user, confirming them or adding them to the waitlist."""
        if db is None:
            db = firestore.client()
        if now is None:
            now = _utcnow()

        def _register(transaction: Transaction, meetup: Meetup) -> str:
            return MeetupLifecycle.register(meetup, user_uid, now)

        meetup, placement = MeetupService.mutate_meetup(db, meetup_id, _register)
        current_app.logger.info(
            f"User {user_uid} registered for meetup {meetup_id} ({placement})"
        )
        if meetup.status == MeetupStatus.FULL:
            current_app.logger.info(f"Meetup {meetup_id} is now full")
        return meetup

    @staticmethod
    def cancel_registration(
        meetup_id: str, user_uid: str, db: Client | None = None
    ) -> Meetup:
        """Withdraw the user; the head of the waitlist takes the freed slot."""
        if db is None:
            db = firestore.client()

        def _cancel(transaction: Transaction, meetup: Meetup) -> str | None:
            return MeetupLifecycle.cancel_registration(meetup, user_uid)

        meetup, promoted_uid = MeetupService.mutate_meetup(db, meetup_id, _cancel)
        current_app.logger.info(
            f"User {user_uid} cancelled registration for meetup {meetup_id}"
        )
        if promoted_uid:
            current_app.logger.info(
                f"User {promoted_uid} promoted from the waitlist of {meetup_id}"
            )
            MeetupService._notify_promotion(db, meetup, promoted_uid)
        return meetup

    @staticmethod
    def register_guest(
        meetup_id: str,
        host_uid: str,
        guest_uid: str,
        db: Client | None = None,
    ) -> Meetup:
        """Add a guest, pending approval. Guests take no capacity."""
        if db is None:
            db = firestore.client()

        def _add_guest(transaction: Transaction, meetup: Meetup) -> None:
            MeetupLifecycle.add_guest(meetup, guest_uid)

        meetup, _ = MeetupService.mutate_meetup(db, meetup_id, _add_guest)
        current_app.logger.info(
            f"User {host_uid} registered guest {guest_uid} for {meetup_id}"
        )
        return meetup

    @staticmethod
    def approve_guest(
        meetup_id: str,
        user_uid: str,
        guest_uid: str,
        approved: bool,
        db: Client | None = None,
    ) -> Meetup:
        """Approve or reject a guest as the creator or a group manager."""
        if db is None:
            db = firestore.client()

        def _approve(transaction: Transaction, meetup: Meetup) -> None:
            MeetupService.require_organizer(
                db, meetup, user_uid, "approve guests", transaction
            )
            MeetupLifecycle.set_guest_approval(meetup, guest_uid, approved, user_uid)

        meetup, _ = MeetupService.mutate_meetup(db, meetup_id, _approve)
        return meetup

    @staticmethod
    def list_meetups(
        user_uid: str,
        status: str | None = None,
        upcoming: bool = False,
        search: str | None = None,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
        group_id: str | None = None,
        db: Client | None = None,
        now: datetime.datetime | None = None,
    ) -> list[Meetup]:
        """Fetch the user's meetups matching the filters, soonest first.

        A user's meetups are those they created, hold a slot in, are
        waitlisted for, or are a guest of.
        """
        if db is None:
            db = firestore.client()
        if now is None:
            now = _utcnow()

        query = db.collection(MEETUPS_COLLECTION).where(
            filter=firestore.FieldFilter("participantIds", "array_contains", user_uid)
        )

        term = (search or "").strip().lower()
        meetups = []
        for doc in query.stream():
            meetup = Meetup.from_snapshot(doc)
            if status and meetup.status.value != status:
                continue
            if group_id and meetup.group != group_id:
                continue
            if upcoming and meetup.dateTime < now:
                continue
            if start and meetup.dateTime < start:
                continue
            if end and meetup.dateTime > end:
                continue
            if term and not (
                term in meetup.title.lower() or term in meetup.description.lower()
            ):
                continue
            meetups.append(meetup)

        meetups.sort(key=lambda m: m.dateTime)
        return meetups

    @staticmethod
    def _notify_promotion(db: Client, meetup: Meetup, user_uid: str) -> None:
        """Tell a user they moved off the waitlist. Failures are only logged."""
        if not current_app.config.get("NOTIFY_WAITLIST_PROMOTION", True):
            return
        user_doc = cast(
            "DocumentSnapshot", db.collection(USERS_COLLECTION).document(user_uid).get()
        )
        user_data = (user_doc.to_dict() or {}) if user_doc.exists else {}
        if not user_data.get("email"):
            return
        try:
            send_email(
                to=user_data["email"],
                subject=f"You're in: {meetup.title}",
                template="email/waitlist_promoted.html",
                user=user_data,
                meetup=meetup,
            )
        except EmailError as e:
            current_app.logger.error(f"Promotion email to {user_uid} failed: {e}")
