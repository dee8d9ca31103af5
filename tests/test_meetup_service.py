"""Tests for MeetupService against an in-memory Firestore."""

from __future__ import annotations

import datetime
from unittest.mock import MagicMock, patch

from kickabout.errors import (
    ConcurrencyConflictError,
    ForbiddenError,
    GuestAlreadyRegisteredError,
    NotFoundError,
    RegistrationClosedError,
    ValidationError,
)
from kickabout.meetup.models import MeetupStatus
from kickabout.meetup.services import MeetupService
from kickabout.utils import EmailError
from tests.conftest import mock_transactional
from tests.helpers import FUTURE, LOCATION, NOW, PAST, UTC, ApiTestCase


class MeetupServiceTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.create_group()

    def _new_meetup_data(self, **overrides):
        data = {
            "title": "Friday kickabout",
            "description": "Bring bibs",
            "group": "group1",
            "dateTime": FUTURE,
            "location": LOCATION,
            "minParticipants": 2,
            "maxParticipants": 10,
            "duration": 90,
            "costPerPerson": 5.0,
            "status": "published",
        }
        data.update(overrides)
        return data

    def test_create_meetup_confirms_creator(self):
        meetup = MeetupService.create_meetup(
            self._new_meetup_data(), "player1", db=self.db, now=NOW
        )

        stored = self.meetup_data(meetup.id)
        self.assertEqual(stored["participants"]["confirmed"], ["player1"])
        self.assertEqual(stored["participantIds"], ["player1"])
        self.assertEqual(stored["status"], "published")
        self.assertEqual(stored["createdBy"], "player1")
        self.assertEqual(stored["version"], 1)

    def test_create_meetup_defaults_to_draft(self):
        meetup = MeetupService.create_meetup(
            self._new_meetup_data(status=None), "organizer", db=self.db, now=NOW
        )
        self.assertEqual(meetup.status, MeetupStatus.DRAFT)

    def test_create_meetup_requires_membership(self):
        with self.assertRaises(ForbiddenError):
            MeetupService.create_meetup(
                self._new_meetup_data(), "outsider", db=self.db, now=NOW
            )

    def test_create_meetup_unknown_group(self):
        with self.assertRaises(NotFoundError):
            MeetupService.create_meetup(
                self._new_meetup_data(group="nope"), "organizer", db=self.db, now=NOW
            )

    def test_create_meetup_rejects_bad_capacity(self):
        with self.assertRaises(ValidationError):
            MeetupService.create_meetup(
                self._new_meetup_data(minParticipants=6, maxParticipants=4),
                "organizer",
                db=self.db,
                now=NOW,
            )

    def test_create_meetup_in_the_past(self):
        with self.assertRaises(ValidationError):
            MeetupService.create_meetup(
                self._new_meetup_data(dateTime=PAST), "organizer", db=self.db, now=NOW
            )

    def test_register_until_full_then_closed(self):
        self.create_meetup(maxParticipants=2)

        meetup = MeetupService.register("meetup1", "player1", db=self.db, now=NOW)
        self.assertEqual(meetup.status, MeetupStatus.FULL)

        stored = self.meetup_data()
        self.assertEqual(stored["participants"]["confirmed"], ["organizer", "player1"])
        self.assertEqual(stored["status"], "full")
        self.assertEqual(stored["version"], 2)
        self.assertIn("player1", stored["participantIds"])

        with self.assertRaises(RegistrationClosedError):
            MeetupService.register("meetup1", "player2", db=self.db, now=NOW)
        self.assertEqual(self.meetup_data()["version"], 2)

    def test_register_unknown_meetup(self):
        with self.assertRaises(NotFoundError):
            MeetupService.register("missing", "player1", db=self.db, now=NOW)

    def test_register_uses_configured_attempts(self):
        self.app.config["MEETUP_TRANSACTION_MAX_ATTEMPTS"] = 3
        self.create_meetup()

        MeetupService.register("meetup1", "player1", db=self.db, now=NOW)

        self.db.transaction.assert_called_with(max_attempts=3)

    def test_exhausted_retries_become_conflict(self):
        self.create_meetup()
        failing = MagicMock(
            side_effect=ValueError("Failed to commit transaction in 5 attempts.")
        )
        with patch("firebase_admin.firestore.transactional", return_value=failing):
            with self.assertRaises(ConcurrencyConflictError):
                MeetupService.register("meetup1", "player1", db=self.db, now=NOW)

    def test_retry_after_losing_the_last_slot(self):
        self.create_meetup(maxParticipants=2)
        attempts = []

        def contended(func):
            def run(transaction):
                attempts.append("first")
                func(transaction)
                # player2 commits the last slot before this attempt can.
                with patch(
                    "firebase_admin.firestore.transactional", new=mock_transactional
                ):
                    MeetupService.register("meetup1", "player2", db=self.db, now=NOW)
                transaction.writes.clear()

                attempts.append("retry")
                result = func(transaction)
                transaction.commit()
                return result

            return run

        with patch("firebase_admin.firestore.transactional", new=contended):
            with self.assertRaises(RegistrationClosedError):
                MeetupService.register("meetup1", "player1", db=self.db, now=NOW)

        self.assertEqual(attempts, ["first", "retry"])
        stored = self.meetup_data()
        self.assertEqual(stored["participants"]["confirmed"], ["organizer", "player2"])
        self.assertEqual(stored["status"], "full")
        self.assertEqual(stored["version"], 2)

    def test_other_value_errors_propagate(self):
        self.create_meetup()
        failing = MagicMock(side_effect=ValueError("boom"))
        with patch("firebase_admin.firestore.transactional", return_value=failing):
            with self.assertRaises(ValueError):
                MeetupService.register("meetup1", "player1", db=self.db, now=NOW)

    def test_cancel_promotes_and_notifies(self):
        self.create_meetup(
            maxParticipants=2,
            status="full",
            participants={
                "confirmed": ["organizer", "player1"],
                "waitlist": ["player3", "player2"],
                "guests": [],
            },
        )

        with patch("kickabout.meetup.services.send_email") as mock_send:
            meetup = MeetupService.cancel_registration("meetup1", "player1", db=self.db)

        self.assertEqual(meetup.participants.confirmed, ["organizer", "player3"])
        self.assertEqual(meetup.participants.waitlist, ["player2"])
        stored = self.meetup_data()
        self.assertEqual(stored["status"], "full")
        self.assertNotIn("player1", stored["participantIds"])
        mock_send.assert_called_once()
        self.assertEqual(mock_send.call_args.kwargs["to"], "player3@example.com")

    def test_promotion_email_failure_is_logged_only(self):
        self.create_meetup(
            maxParticipants=2,
            status="full",
            participants={
                "confirmed": ["organizer", "player1"],
                "waitlist": ["player2"],
                "guests": [],
            },
        )

        with patch(
            "kickabout.meetup.services.send_email",
            side_effect=EmailError("SMTP unavailable"),
        ):
            meetup = MeetupService.cancel_registration("meetup1", "player1", db=self.db)

        self.assertEqual(meetup.participants.confirmed, ["organizer", "player2"])
        self.assertEqual(
            self.meetup_data()["participants"]["confirmed"], ["organizer", "player2"]
        )

    def test_promotion_email_can_be_disabled(self):
        self.app.config["NOTIFY_WAITLIST_PROMOTION"] = False
        self.create_meetup(
            maxParticipants=2,
            status="full",
            participants={
                "confirmed": ["organizer", "player1"],
                "waitlist": ["player2"],
                "guests": [],
            },
        )
        with patch("kickabout.meetup.services.send_email") as mock_send:
            MeetupService.cancel_registration("meetup1", "player1", db=self.db)
        mock_send.assert_not_called()

    def test_guest_registered_twice(self):
        self.create_meetup()
        MeetupService.register_guest("meetup1", "player1", "player3", db=self.db)

        with self.assertRaises(GuestAlreadyRegisteredError):
            MeetupService.register_guest("meetup1", "player1", "player3", db=self.db)

        guests = self.meetup_data()["participants"]["guests"]
        self.assertEqual(guests, [{"user": "player3", "approved": False}])

    def test_non_organizer_cannot_approve_guest(self):
        self.create_meetup(
            participants={
                "confirmed": ["organizer"],
                "waitlist": [],
                "guests": [{"user": "player3", "approved": False}],
            }
        )

        with self.assertRaises(ForbiddenError):
            MeetupService.approve_guest(
                "meetup1", "player1", "player3", True, db=self.db
            )

        guests = self.meetup_data()["participants"]["guests"]
        self.assertFalse(guests[0]["approved"])

    def test_group_manager_approves_guest(self):
        self.create_group(managers=["organizer", "player2"])
        self.create_meetup(
            participants={
                "confirmed": ["organizer"],
                "waitlist": [],
                "guests": [{"user": "player3", "approved": False}],
            }
        )

        MeetupService.approve_guest("meetup1", "player2", "player3", True, db=self.db)

        guest = self.meetup_data()["participants"]["guests"][0]
        self.assertTrue(guest["approved"])
        self.assertEqual(guest["approvedBy"], "player2")
        self.assertEqual(self.meetup_data()["participants"]["confirmed"], ["organizer"])

    def test_update_requires_organizer(self):
        self.create_meetup()
        with self.assertRaises(ForbiddenError):
            MeetupService.update_meetup(
                "meetup1", "player1", {"title": "Mine now"}, db=self.db, now=NOW
            )

    def test_update_capacity_promotes_waitlist(self):
        self.create_meetup(
            maxParticipants=2,
            status="full",
            participants={
                "confirmed": ["organizer", "player1"],
                "waitlist": ["player2"],
                "guests": [],
            },
        )

        with patch("kickabout.meetup.services.send_email") as mock_send:
            meetup = MeetupService.update_meetup(
                "meetup1", "organizer", {"maxParticipants": 4}, db=self.db, now=NOW
            )

        self.assertEqual(meetup.status, MeetupStatus.PUBLISHED)
        self.assertEqual(
            self.meetup_data()["participants"]["confirmed"],
            ["organizer", "player1", "player2"],
        )
        mock_send.assert_called_once()

    def test_cancel_and_complete(self):
        self.create_meetup("upcoming")
        self.create_meetup("played", dateTime=PAST)

        cancelled = MeetupService.cancel_meetup("upcoming", "organizer", db=self.db)
        completed = MeetupService.complete_meetup("played", "organizer", db=self.db)

        self.assertEqual(cancelled.status, MeetupStatus.CANCELLED)
        self.assertEqual(completed.status, MeetupStatus.COMPLETED)
        with self.assertRaises(ValidationError):
            MeetupService.complete_meetup("upcoming", "organizer", db=self.db)

    def test_complete_before_start_is_rejected(self):
        self.create_meetup()
        with self.assertRaises(ValidationError):
            MeetupService.complete_meetup("meetup1", "organizer", db=self.db, now=NOW)
        self.assertEqual(self.meetup_data()["status"], "published")

    def test_delete_meetup(self):
        self.create_meetup()
        MeetupService.delete_meetup("meetup1", "organizer", db=self.db)
        self.assertFalse(self.db.collection("meetups").document("meetup1").get().exists)

    def test_delete_meetup_with_games_is_refused(self):
        self.create_meetup(games=["game1"])
        with self.assertRaises(ValidationError):
            MeetupService.delete_meetup("meetup1", "organizer", db=self.db)
        self.assertTrue(self.db.collection("meetups").document("meetup1").get().exists)

    def test_delete_requires_organizer(self):
        self.create_meetup()
        with self.assertRaises(ForbiddenError):
            MeetupService.delete_meetup("meetup1", "player1", db=self.db)

    def test_delete_contention_becomes_conflict(self):
        self.create_meetup()
        failing = MagicMock(
            side_effect=ValueError("Failed to commit transaction in 5 attempts.")
        )
        with patch("firebase_admin.firestore.transactional", return_value=failing):
            with self.assertRaises(ConcurrencyConflictError):
                MeetupService.delete_meetup("meetup1", "organizer", db=self.db)
        self.assertTrue(self.db.collection("meetups").document("meetup1").get().exists)

    def test_list_meetups_filters_and_sorts(self):
        later = datetime.datetime(2030, 8, 1, 18, 0, tzinfo=UTC)
        self.create_meetup("late", title="Evening five-a-side", dateTime=later)
        self.create_meetup("soon", title="Lunchtime kickabout")
        self.create_meetup("old", title="Old game", dateTime=PAST, status="completed")
        self.create_meetup("other", createdBy="player2", participants={
            "confirmed": ["player2"], "waitlist": [], "guests": []
        })

        meetups = MeetupService.list_meetups("organizer", db=self.db, now=NOW)
        self.assertEqual([m.id for m in meetups], ["old", "soon", "late"])

        upcoming = MeetupService.list_meetups(
            "organizer", upcoming=True, db=self.db, now=NOW
        )
        self.assertEqual([m.id for m in upcoming], ["soon", "late"])

        searched = MeetupService.list_meetups(
            "organizer", search="FIVE-A-SIDE", db=self.db, now=NOW
        )
        self.assertEqual([m.id for m in searched], ["late"])

        completed = MeetupService.list_meetups(
            "organizer", status="completed", db=self.db, now=NOW
        )
        self.assertEqual([m.id for m in completed], ["old"])

        windowed = MeetupService.list_meetups(
            "organizer", start=NOW, end=FUTURE, db=self.db, now=NOW
        )
        self.assertEqual([m.id for m in windowed], ["soon"])
