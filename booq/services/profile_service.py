"""
User profile service.

The profile is a singleton. Its ``favorite_book_ids`` index belongs to the
book service and cannot be changed here.
"""

from dataclasses import fields
from typing import Any
import logging

from ..models import UserProfile, ActivityType
from ..store import PersistentStore, PROFILE_KEY, ACTIVITY_KEY
from .activity_service import ActivityService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {f.name for f in fields(UserProfile)} - {"favorite_book_ids"}


class ProfileService:
    """Service for reading and editing the user profile."""

    def __init__(self, store: PersistentStore):
        self.store = store
        self.activity = ActivityService(store)

    def get(self) -> UserProfile:
        """Get the profile (the default profile if none was saved)."""
        return UserProfile.from_dict(self.store.read(PROFILE_KEY, {}))

    def update(self, **changes: Any) -> UserProfile:
        """
        Merge changes into the profile.

        Args:
            **changes: Profile fields to set (username, bio, pronouns, ...)

        Returns:
            The updated profile

        Raises:
            ValueError: For unknown fields, ``favorite_book_ids``, or a blank
                username
        """
        invalid = set(changes) - EDITABLE_FIELDS
        if invalid:
            raise ValueError(f"Cannot update profile field(s): {', '.join(sorted(invalid))}")
        if "username" in changes and not (changes["username"] or "").strip():
            raise ValueError("Username cannot be empty")

        data = self.store.read(PROFILE_KEY, {})
        data.update(changes)
        profile = UserProfile.from_dict(data)

        item = self.activity.build(ActivityType.UPDATED_PROFILE, details=", ".join(sorted(changes)))
        self.store.write_many({
            PROFILE_KEY: profile.to_dict(),
            ACTIVITY_KEY: self.activity.pending_log([item]),
        })
        logger.info(f"Updated profile: {', '.join(sorted(changes))}")
        return profile
