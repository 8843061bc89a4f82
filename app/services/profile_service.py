"""Pulseboard — Social Profile Service."""

from typing import Any, Dict, List, Optional

from app.core.errors import DuplicateEntityError, ValidationError
from app.core.logging import get_logger
from app.database import Database
from app.models.documents import SocialProfileDocument, utcnow
from app.models.entity_models import DeleteResult, Platform, SocialProfile
from app.services.db_service import DatabaseService
from app.services.serializers import (
    enum_value,
    profile_from_document,
    profile_to_document_fields,
)

logger = get_logger("services.profile")

REQUIRED_FIELDS = ("user_id", "platform", "username", "profile_url")


class SocialProfileService(DatabaseService[SocialProfileDocument]):
    """Linked social accounts; at most one per (user, platform)."""

    def __init__(self, database: Database):
        super().__init__(SocialProfileDocument, "SocialProfile", database)

    async def get_profiles_by_user_id(self, user_id: str) -> List[SocialProfile]:
        docs = await self.find({"user_id": user_id}, order_by="created_at")
        return [profile_from_document(d) for d in docs]

    async def get_profile_by_id(self, profile_id: str) -> Optional[SocialProfile]:
        doc = await self.find_by_id(profile_id)
        return profile_from_document(doc) if doc else None

    async def get_user_platform_profile(
        self, user_id: str, platform: str
    ) -> Optional[SocialProfile]:
        """The single profile a user has on ``platform``, if any."""
        platform = enum_value(Platform, platform, "platform")
        doc = await self.find_one({"user_id": user_id, "platform": platform})
        return profile_from_document(doc) if doc else None

    async def add_profile(self, data: Dict[str, Any]) -> SocialProfile:
        """Link a new account.

        Requires user_id, platform, username and profile_url. ``connected``
        defaults to True and ``followers`` to 0. A second profile for the same
        (user, platform) raises ``DuplicateEntityError``.
        """
        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            raise ValidationError(f"Missing required social profile fields: {', '.join(missing)}")

        fields = profile_to_document_fields({"connected": True, "followers": 0, **data})
        existing = await self.get_user_platform_profile(fields["user_id"], fields["platform"])
        if existing:
            raise DuplicateEntityError(
                f"User {fields['user_id']} already has a {fields['platform']} profile"
            )

        doc = await self.create(fields)
        logger.info(
            f"Linked {doc.platform} profile @{doc.username}",
            extra={"entity": self.model_name, "entity_id": doc.id},
        )
        return profile_from_document(doc)

    async def update_profile(self, profile_id: str, data: Dict[str, Any]) -> Optional[SocialProfile]:
        if "user_id" in data:
            raise ValidationError("A profile cannot be moved to another user")
        fields = profile_to_document_fields(data)
        if "followers" in fields and "last_updated" not in fields:
            fields["last_updated"] = utcnow()
        doc = await self.update_by_id(profile_id, fields)
        return profile_from_document(doc) if doc else None

    async def delete_profile(self, profile_id: str) -> DeleteResult:
        doc = await self.delete_by_id(profile_id)
        if doc is None:
            return DeleteResult(success=False, message="Profile not found")
        return DeleteResult(success=True, message="Profile deleted successfully")
