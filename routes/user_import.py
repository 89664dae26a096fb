"""
Bulk user import API routes.

One import is one session: create it, upload a CSV, adjust the column
mapping, request a preview, then commit. Every response carries the
session snapshot (state, error lists, progress, result).
"""

from fastapi import APIRouter, UploadFile, File, Query
from fastapi.responses import JSONResponse, Response
from typing import Optional
import structlog

from models.base import PaginatedResponse
from models.user_import import ColumnMappingUpdate, ImportSessionResponse
from services import import_session_store
from services.import_template_service import build_import_template, TEMPLATE_FILENAME
from services.user_service import get_user_service
from exceptions import (
    AppError,
    MappingValidationError,
    DataValidationError,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# TEMPLATE
# ===================

@router.get("/template")
async def download_template():
    """
    Download the CSV template with sample users.
    """
    return Response(
        content=build_import_template(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'}
    )


# ===================
# SESSIONS
# ===================

@router.post("/sessions", response_model=ImportSessionResponse, status_code=201)
async def create_import_session():
    """
    Open a new import session in the upload step.
    """
    try:
        session = import_session_store.create_session()
        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}", response_model=ImportSessionResponse)
async def get_import_session(session_id: str):
    """
    Get the current snapshot of an import session.

    Raises:
        404: Session not found or expired
    """
    try:
        session = import_session_store.get_session(session_id)
        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/upload", response_model=ImportSessionResponse)
async def upload_import_file(
    session_id: str,
    file: UploadFile = File(..., description="CSV file with one user per row")
):
    """
    Upload and parse a CSV file.

    On success the session moves to the mapping step with columns
    auto-mapped. On a parse error it stays in upload.

    Raises:
        404: Session not found
        409: Session is not in the upload step
        422: Not a .csv file, undecodable or empty
    """
    logger.info(
        "import_upload_received",
        session_id=session_id,
        filename=file.filename,
        content_type=file.content_type
    )

    try:
        session = import_session_store.get_session(session_id)
        content = await file.read()
        session.upload(file.filename, content)
        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.put("/sessions/{session_id}/mapping", response_model=ImportSessionResponse)
async def update_column_mapping(session_id: str, data: ColumnMappingUpdate):
    """
    Assign a CSV column to a target field, or unmap it with field=null.

    Raises:
        404: Session not found
        409: Session is not in the mapping step
        422: Column is not in the uploaded file
    """
    try:
        session = import_session_store.get_session(session_id)
        session.set_column_mapping(data.csv_column, data.field)
        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/preview", response_model=ImportSessionResponse)
async def request_preview(session_id: str):
    """
    Validate mapping and data, then move to the preview step.

    When validation fails the session stays in mapping with both error
    lists recorded, and the request answers 422.

    Raises:
        404: Session not found
        409: Session is not in the mapping step
        422: Mapping incomplete or data invalid
    """
    try:
        session = import_session_store.get_session(session_id)
        if not session.request_preview():
            if session.data_errors:
                raise DataValidationError(
                    list(session.data_errors),
                    mapping_errors=list(session.mapping_errors)
                )
            raise MappingValidationError(list(session.mapping_errors))
        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}/preview", response_model=PaginatedResponse)
async def get_preview_page(
    session_id: str,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: Optional[int] = Query(None, ge=1, le=100, description="Rows per page")
):
    """
    Transformed users for one page of the preview table.

    Raises:
        404: Session not found
        409: Session is not in the preview step
    """
    try:
        session = import_session_store.get_session(session_id)
        return session.preview_page(page=page, page_size=page_size)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/back", response_model=ImportSessionResponse)
async def go_back(session_id: str):
    """
    Step back: preview to mapping (mapping kept), mapping to upload (file dropped).

    Raises:
        404: Session not found
        409: No previous step from the current state
    """
    try:
        session = import_session_store.get_session(session_id)
        session.back()
        return session.to_response()
    except Exception as e:
        return handle_error(e)


# Plain def: user creation blocks, so FastAPI runs it in the threadpool
@router.post("/sessions/{session_id}/commit", response_model=ImportSessionResponse)
def commit_import(session_id: str):
    """
    Create every previewed user.

    Per-user failures (duplicate email, store errors) are counted, not
    raised. The session completes and is closed afterwards.

    Raises:
        404: Session not found
        409: Session is not in the preview step
        503: The batch could not be attempted (session back in preview)
    """
    try:
        session = import_session_store.get_session(session_id)
        summary = session.commit(lambda: get_user_service().create_from_candidate)

        logger.info(
            "user_import_committed",
            session_id=session_id,
            succeeded=summary.succeeded,
            failed=summary.failed
        )

        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/cancel", response_model=ImportSessionResponse)
async def cancel_import(session_id: str):
    """
    Cancel the import and discard the session.

    Refused while users are being created; the returned state shows
    whether the cancel took effect.

    Raises:
        404: Session not found
    """
    try:
        session = import_session_store.get_session(session_id)
        session.cancel()
        return session.to_response()
    except Exception as e:
        return handle_error(e)
