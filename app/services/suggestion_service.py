"""Pulseboard — Content Suggestion Service."""

from typing import Any, Dict, FrozenSet, List, Optional

from app.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.database import Database
from app.models.documents import ContentSuggestionDocument, utcnow
from app.models.entity_models import (
    ContentPlatform,
    ContentSuggestion,
    DeleteResult,
    SuggestionStatus,
)
from app.services.db_service import DatabaseService
from app.services.serializers import (
    enum_value,
    suggestion_from_document,
    suggestion_to_document_fields,
)

logger = get_logger("services.suggestion")

REQUIRED_FIELDS = ("user_id", "title", "content")

# pending → approved | rejected, approved → published; the rest are terminal
TRANSITIONS: Dict[str, FrozenSet[str]] = {
    SuggestionStatus.PENDING.value: frozenset(
        {SuggestionStatus.APPROVED.value, SuggestionStatus.REJECTED.value}
    ),
    SuggestionStatus.APPROVED.value: frozenset({SuggestionStatus.PUBLISHED.value}),
    SuggestionStatus.REJECTED.value: frozenset(),
    SuggestionStatus.PUBLISHED.value: frozenset(),
}


def check_transition(current: str, requested: str) -> bool:
    """True if the status changes, False for a same-status no-op.

    Raises ``InvalidTransitionError`` for anything the table forbids.
    """
    if current == requested:
        return False
    if requested not in TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current, requested)
    return True


class ContentSuggestionService(DatabaseService[ContentSuggestionDocument]):
    def __init__(self, database: Database):
        super().__init__(ContentSuggestionDocument, "ContentSuggestion", database)

    async def get_suggestions_by_user_id(
        self,
        user_id: str,
        status: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> List[ContentSuggestion]:
        query: Dict[str, Any] = {"user_id": user_id}
        if status:
            query["status"] = enum_value(SuggestionStatus, status, "status")
        if platform:
            query["platform"] = enum_value(ContentPlatform, platform, "platform")
        docs = await self.find(query, order_by="-created_at")
        return [suggestion_from_document(d) for d in docs]

    async def get_suggestion_by_id(self, suggestion_id: str) -> Optional[ContentSuggestion]:
        doc = await self.find_by_id(suggestion_id)
        return suggestion_from_document(doc) if doc else None

    async def create_suggestion(self, data: Dict[str, Any]) -> ContentSuggestion:
        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            raise ValidationError(f"Missing required content suggestion fields: {', '.join(missing)}")
        doc = await self.create(suggestion_to_document_fields(data))
        logger.info(
            f"Created suggestion '{doc.title}' for {doc.platform}",
            extra={"entity": self.model_name, "entity_id": doc.id},
        )
        return suggestion_from_document(doc)

    async def update_suggestion(
        self, suggestion_id: str, data: Dict[str, Any]
    ) -> Optional[ContentSuggestion]:
        """Partial update; a ``status`` in ``data`` must be a legal transition."""
        if "user_id" in data:
            raise ValidationError("A suggestion cannot be moved to another user")
        fields = suggestion_to_document_fields(data)

        if "status" in fields:
            current = await self.find_by_id(suggestion_id)
            if current is None:
                return None
            if not check_transition(current.status, fields["status"]):
                fields.pop("status")
            elif fields["status"] == SuggestionStatus.PUBLISHED.value:
                fields.setdefault("published_at", utcnow())

        if not fields:
            current = await self.find_by_id(suggestion_id)
            return suggestion_from_document(current) if current else None

        doc = await self.update_by_id(suggestion_id, fields)
        return suggestion_from_document(doc) if doc else None

    async def update_suggestion_status(self, suggestion_id: str, status: str) -> ContentSuggestion:
        """Move a suggestion through its lifecycle.

        Re-applying the current status is a no-op. Illegal moves raise
        ``InvalidTransitionError``; a missing suggestion raises ``NotFoundError``.
        """
        updated = await self.update_suggestion(suggestion_id, {"status": status})
        if updated is None:
            raise NotFoundError(self.model_name, suggestion_id)
        return updated

    async def delete_suggestion(self, suggestion_id: str) -> DeleteResult:
        doc = await self.delete_by_id(suggestion_id)
        if doc is None:
            return DeleteResult(success=False, message="Suggestion not found")
        return DeleteResult(success=True, message="Suggestion deleted successfully")
