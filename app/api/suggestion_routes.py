"""Pulseboard — Content Suggestion API Routes."""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import (
    get_current_user_id,
    get_data_context,
    get_suggestion_service,
    to_http_error,
)
from app.core.errors import PulseboardError
from app.core.logging import get_logger
from app.mock_data.context import SessionDataContext
from app.models.entity_models import CamelModel, ContentSuggestion, DeleteResult
from app.services.suggestion_service import ContentSuggestionService

logger = get_logger("api.suggestions")

router = APIRouter(prefix="/api/content/suggestions", tags=["Content Suggestions"])


# ── Request Models ──


class SuggestionCreate(CamelModel):
    title: str
    content: str
    platform: str = "all"
    media_type: str = "text"
    suggested_tags: List[str] = []
    tags: List[str] = []
    best_time_to_post: Optional[datetime] = None
    ai_generated_score: Optional[float] = None
    ai_generated: bool = False
    image_prompt: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    metadata: Dict[str, str] = {}


class SuggestionUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    platform: Optional[str] = None
    media_type: Optional[str] = None
    status: Optional[str] = None
    suggested_tags: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    best_time_to_post: Optional[datetime] = None
    ai_generated_score: Optional[float] = None
    image_prompt: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    metadata: Optional[Dict[str, str]] = None
    published_url: Optional[str] = None


class StatusUpdate(CamelModel):
    status: str


class GenerateRequest(CamelModel):
    """Parameters for mock AI generation."""

    platform: str = "all"
    topic: str
    tone: Optional[str] = None
    media_type: Optional[str] = None
    target_audience: Optional[str] = None
    include_hashtags: bool = True
    save: bool = True
    """Store the generated suggestion for the current user."""


async def _owned(service: ContentSuggestionService, suggestion_id: str, user_id: str) -> ContentSuggestion:
    suggestion = await service.get_suggestion_by_id(suggestion_id)
    if suggestion is None or suggestion.user_id != user_id:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return suggestion


# ── Endpoints ──


@router.get("", response_model=List[ContentSuggestion])
async def list_suggestions(
    status: Optional[str] = Query(default=None),
    platform: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    service: ContentSuggestionService = Depends(get_suggestion_service),
):
    """Current user's suggestions, newest first."""
    try:
        return await service.get_suggestions_by_user_id(user_id, status, platform)
    except PulseboardError as e:
        raise to_http_error(e) from e


@router.post("", response_model=ContentSuggestion, status_code=201)
async def create_suggestion(
    body: SuggestionCreate,
    user_id: str = Depends(get_current_user_id),
    service: ContentSuggestionService = Depends(get_suggestion_service),
):
    try:
        return await service.create_suggestion({**body.model_dump(), "user_id": user_id})
    except PulseboardError as e:
        raise to_http_error(e) from e


@router.post("/generate", response_model=ContentSuggestion, status_code=201)
async def generate_suggestion(
    body: GenerateRequest,
    user_id: str = Depends(get_current_user_id),
    context: SessionDataContext = Depends(get_data_context),
    service: ContentSuggestionService = Depends(get_suggestion_service),
):
    """Generate a suggestion from the mock catalog, shaped by the request."""
    try:
        generated = context.generate_content_suggestion(body.model_dump())
        if not body.save:
            return generated.model_copy(update={"user_id": user_id})
        fields = generated.model_dump(
            exclude={"id", "user_id", "created_at", "updated_at", "status", "engagement"}
        )
        return await service.create_suggestion({**fields, "user_id": user_id})
    except PulseboardError as e:
        raise to_http_error(e) from e


@router.put("/{suggestion_id}", response_model=ContentSuggestion)
async def update_suggestion(
    suggestion_id: str,
    body: SuggestionUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ContentSuggestionService = Depends(get_suggestion_service),
):
    try:
        await _owned(service, suggestion_id, user_id)
        updated = await service.update_suggestion(suggestion_id, body.model_dump(exclude_unset=True))
    except PulseboardError as e:
        raise to_http_error(e) from e
    if updated is None:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return updated


@router.patch("/{suggestion_id}/status", response_model=ContentSuggestion)
async def update_suggestion_status(
    suggestion_id: str,
    body: StatusUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ContentSuggestionService = Depends(get_suggestion_service),
):
    try:
        await _owned(service, suggestion_id, user_id)
        return await service.update_suggestion_status(suggestion_id, body.status)
    except PulseboardError as e:
        raise to_http_error(e) from e


@router.delete("/{suggestion_id}", response_model=DeleteResult)
async def delete_suggestion(
    suggestion_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ContentSuggestionService = Depends(get_suggestion_service),
):
    try:
        await _owned(service, suggestion_id, user_id)
        return await service.delete_suggestion(suggestion_id)
    except PulseboardError as e:
        raise to_http_error(e) from e
