"""Shared fixtures for API tests backed by an in-memory Firestore."""

import datetime
import unittest
from unittest.mock import patch

from mockfirestore import MockFirestore

from kickabout import create_app
from tests.conftest import install_transactions, mock_transactional, patch_mockfirestore

UTC = datetime.timezone.utc
NOW = datetime.datetime(2030, 6, 1, 12, 0, tzinfo=UTC)
FUTURE = datetime.datetime(2030, 7, 1, 18, 30, tzinfo=UTC)
PAST = datetime.datetime(2020, 5, 1, 18, 30, tzinfo=UTC)

LOCATION = {
    "name": "Riverside Pitch",
    "address": "1 River Road",
    "coordinates": {"lat": 51.5, "lng": -0.12},
}


class ApiTestCase(unittest.TestCase):
    """Test case with a patched Firebase, a seeded user set and a test client."""

    users = ("organizer", "player1", "player2", "player3", "outsider")

    def setUp(self):
        patch_mockfirestore()
        self.db = MockFirestore()
        self.transactions = install_transactions(self.db)

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "client": patch("firebase_admin.firestore.client", return_value=self.db),
            "transactional": patch(
                "firebase_admin.firestore.transactional", new=mock_transactional
            ),
            "verify_id_token": patch("firebase_admin.auth.verify_id_token"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app(
            {"TESTING": True, "WTF_CSRF_ENABLED": False, "SERVER_NAME": "localhost"}
        )
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.addCleanup(self.db.reset)

        for uid in self.users:
            self.db.collection("users").document(uid).set(
                {"name": uid.title(), "email": f"{uid}@example.com"}
            )

    def tearDown(self):
        self.app_context.pop()

    def login(self, uid):
        with self.client.session_transaction() as sess:
            sess["user_id"] = uid

    def create_group(self, group_id="group1", members=None, managers=None, **extra):
        """Store a group directly; the organizer manages it by default."""
        data = {
            "name": extra.pop("name", "Sunday League"),
            "description": "Weekly five-a-side",
            "privacy": "public",
            "location": {"city": "London"},
            "createdBy": "organizer",
            "members": list(members or ["organizer", "player1", "player2"]),
            "managers": list(managers or ["organizer"]),
        }
        data.update(extra)
        self.db.collection("groups").document(group_id).set(data)
        return group_id

    def create_meetup(self, meetup_id="meetup1", **fields):
        """Store a meetup document directly, bypassing the API."""
        participants = fields.pop("participants", None) or {
            "confirmed": ["organizer"],
            "waitlist": [],
            "guests": [],
        }
        data = {
            "title": "Friday kickabout",
            "description": "Bring bibs",
            "group": "group1",
            "createdBy": "organizer",
            "dateTime": FUTURE,
            "location": LOCATION,
            "minParticipants": 2,
            "maxParticipants": 4,
            "status": "published",
            "participants": participants,
            "games": [],
            "version": 1,
        }
        data.update(fields)
        ids = [data["createdBy"]] + participants["confirmed"] + participants["waitlist"]
        ids += [guest["user"] for guest in participants["guests"]]
        data["participantIds"] = list(dict.fromkeys(ids))
        self.db.collection("meetups").document(meetup_id).set(data)
        return meetup_id

    def meetup_data(self, meetup_id="meetup1"):
        return self.db.collection("meetups").document(meetup_id).get().to_dict()
