"""Pulseboard — Shared API Dependencies."""

from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException, Request

from app.connectors.backend.client import SESSION_COOKIE
from app.core.errors import (
    DuplicateEntityError,
    InvalidIdError,
    NotFoundError,
    PulseboardError,
    StorageError,
    ValidationError,
)
from app.core.logging import get_logger
from app.database import Database, get_database
from app.mock_data.context import SessionDataContext
from app.services.metrics_service import SocialMetricsService
from app.services.profile_service import SocialProfileService
from app.services.suggestion_service import ContentSuggestionService
from app.services.user_service import UserService
from app.storage.local_cache import LocalCache

logger = get_logger("api.deps")


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    session_user: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
) -> str:
    """Opaque user id handed over by the session provider."""
    user_id = x_user_id or session_user
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def get_cache(request: Request) -> LocalCache:
    return request.app.state.cache


def get_data_context(request: Request) -> SessionDataContext:
    return request.app.state.data_context


def get_profile_service(database: Database = Depends(get_database)) -> SocialProfileService:
    return SocialProfileService(database)


def get_metrics_service(database: Database = Depends(get_database)) -> SocialMetricsService:
    return SocialMetricsService(database)


def get_suggestion_service(database: Database = Depends(get_database)) -> ContentSuggestionService:
    return ContentSuggestionService(database)


def get_user_service(database: Database = Depends(get_database)) -> UserService:
    return UserService(database)


def to_http_error(error: PulseboardError) -> HTTPException:
    """Map a data-layer error onto the HTTP status the caller should see."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, DuplicateEntityError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, (ValidationError, InvalidIdError)):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, StorageError):
        logger.error(f"Storage unavailable: {error}")
        return HTTPException(status_code=503, detail="Storage unavailable")
    logger.error(f"Unhandled data-layer error: {error}")
    return HTTPException(status_code=500, detail=str(error))
