"""Pulseboard — System & Dev Routes."""

from fastapi import APIRouter, Depends

from app.api.deps import get_cache, get_data_context, to_http_error
from app.core.errors import PulseboardError
from app.core.logging import get_logger
from app.database import Database, get_database
from app.mock_data.context import SessionDataContext
from app.mock_data.importer import import_mock_data_to_database, is_mock_data_imported
from app.storage.local_cache import LocalCache

logger = get_logger("api.system")

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "pulseboard",
        "version": "1.0.0",
    }


@router.get("/api/db-status")
async def db_status(database: Database = Depends(get_database)):
    """Connection status; opens the connection if it is not open yet."""
    connected = await database.test_connection()
    return {"success": True, "isConnected": connected, "status": database.status()}


@router.get("/api/dev/import-mock-data")
async def mock_import_status(
    cache: LocalCache = Depends(get_cache),
    database: Database = Depends(get_database),
):
    return {"imported": await is_mock_data_imported(cache, database)}


@router.post("/api/dev/import-mock-data")
async def import_mock_data(
    context: SessionDataContext = Depends(get_data_context),
    database: Database = Depends(get_database),
):
    """Load the session's mock dataset into the database."""
    steps = []
    try:
        summary = await import_mock_data_to_database(context, database, progress=steps.append)
    except PulseboardError as e:
        raise to_http_error(e) from e
    return {"success": True, "imported": summary, "progress": steps}
