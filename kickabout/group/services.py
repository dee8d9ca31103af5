"""Service layer for group records and their capability checks."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from kickabout.core.constants import GROUPS_COLLECTION, MEETUPS_COLLECTION
from kickabout.errors import ForbiddenError, NotFoundError

from .models import Group, GroupStats, is_member

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


class GroupService:
    """Handles business logic and data access for groups."""

    @staticmethod
    def _to_group(snapshot: DocumentSnapshot) -> Group:
        data = cast(Group, snapshot.to_dict() or {})
        data["id"] = snapshot.id
        return data

    @staticmethod
    def create_group(
        data: dict[str, Any], user_uid: str, db: Client | None = None
    ) -> Group:
        """Create a group with the creator as its first member and manager."""
        if db is None:
            db = firestore.client()

        location: dict[str, Any] = {"city": data["location"]["city"]}
        coordinates = data["location"].get("coordinates") or {}
        if coordinates.get("lat") is not None and coordinates.get("lng") is not None:
            location["coordinates"] = {
                "lat": coordinates["lat"],
                "lng": coordinates["lng"],
            }

        group_payload = {
            "name": data["name"],
            "description": data["description"],
            "privacy": data.get("privacy") or "public",
            "location": location,
            "rules": data.get("rules"),
            "createdBy": user_uid,
            "managers": [user_uid],
            "members": [user_uid],
            "createdAt": firestore.SERVER_TIMESTAMP,
            "updatedAt": firestore.SERVER_TIMESTAMP,
        }
        group_ref = db.collection(GROUPS_COLLECTION).document()
        group_ref.set(group_payload)

        group = cast(Group, dict(group_payload))
        group["id"] = group_ref.id
        return group

    @staticmethod
    def get_group(group_id: str, db: Client | None = None) -> Group:
        """Fetch a group by ID or raise NotFoundError."""
        if db is None:
            db = firestore.client()
        snapshot = cast(
            "DocumentSnapshot", db.collection(GROUPS_COLLECTION).document(group_id).get()
        )
        if not snapshot.exists:
            raise NotFoundError("Group not found.")
        return GroupService._to_group(snapshot)

    @staticmethod
    def get_group_for_member(
        group_id: str, user_uid: str, db: Client | None = None
    ) -> Group:
        """Fetch a group the user may see: public ones, or ones they belong to."""
        group = GroupService.get_group(group_id, db)
        if group.get("privacy", "public") != "public" and not is_member(
            group, user_uid
        ):
            raise ForbiddenError("You are not a member of this group.")
        return group

    @staticmethod
    def list_groups(
        user_uid: str,
        privacy: str | None = None,
        search: str | None = None,
        city: str | None = None,
        db: Client | None = None,
    ) -> list[Group]:
        """Fetch the user's groups matching the filters, sorted by name."""
        if db is None:
            db = firestore.client()
        query = db.collection(GROUPS_COLLECTION).where(
            filter=firestore.FieldFilter("members", "array_contains", user_uid)
        )

        term = (search or "").strip().lower()
        city_term = (city or "").strip().lower()
        groups = []
        for doc in query.stream():
            group = GroupService._to_group(doc)
            if privacy and group.get("privacy", "public") != privacy:
                continue
            if term and not (
                term in group.get("name", "").lower()
                or term in group.get("description", "").lower()
            ):
                continue
            if city_term and (
                group.get("location", {}).get("city", "").lower() != city_term
            ):
                continue
            groups.append(group)

        groups.sort(key=lambda grp: grp.get("name", "").lower())
        return groups

    @staticmethod
    def get_group_stats(
        group_id: str,
        db: Client | None = None,
        now: datetime.datetime | None = None,
    ) -> GroupStats:
        """Summarize meetup activity for a group."""
        if db is None:
            db = firestore.client()
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)
        group = GroupService.get_group(group_id, db)

        meetups = (
            db.collection(MEETUPS_COLLECTION)
            .where(filter=firestore.FieldFilter("group", "==", group_id))
            .stream()
        )

        total_meetups = 0
        completed_meetups = 0
        upcoming_meetups = 0
        confirmed_slots = 0
        for doc in meetups:
            data = doc.to_dict() or {}
            total_meetups += 1
            status = data.get("status")
            if status == "completed":
                completed_meetups += 1
                confirmed_slots += len(
                    data.get("participants", {}).get("confirmed", [])
                )
            elif status == "published":
                date_time = data.get("dateTime")
                if date_time is not None and date_time >= now:
                    upcoming_meetups += 1

        return {
            "totalMembers": len(group.get("members", [])),
            "totalMeetups": total_meetups,
            "completedMeetups": completed_meetups,
            "upcomingMeetups": upcoming_meetups,
            "averageParticipation": (
                confirmed_slots / completed_meetups if completed_meetups > 0 else 0
            ),
        }
