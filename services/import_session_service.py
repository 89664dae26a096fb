"""
Import session: the aggregate root of one user import.

Holds the parsed document, the column mapping, both validation error
lists, commit progress and the commit outcome. Every operation runs its
state change through import_workflow.transition() under the session lock.
The lock is released while users are being created, so a cancel that
arrives mid-commit sees IMPORTING and is refused instead of waiting.
"""

from datetime import datetime
from threading import Lock
from typing import Any, Callable, Optional, Union
import uuid
import structlog

from config import get_settings
from exceptions import CommitBatchError, CSVParseError, InvalidTransitionError, ValidationError
from models.base import PaginatedResponse
from models.user_import import (
    ColumnMapping,
    CommitSummary,
    ImportSessionResponse,
    MappingEntrySchema,
    TargetField,
    WorkflowState,
    target_field_catalog,
)
from parsers.csv_parser import TabularDocument, parse_csv_upload
from services.batch_commit_service import BatchResult, CreateOne, commit_batch
from services.column_mapping_service import auto_map, validate_mapping
from services.import_validation_service import validate_data
from services.import_workflow import (
    Effect,
    Transition,
    WorkflowEvent,
    available_actions,
    transition,
)
from services.user_transform_service import transform_document, transform_row

logger = structlog.get_logger(__name__)

# Returns the per-user creation callable; raising here fails the whole batch
CreatorResolver = Callable[[], CreateOne]


class ImportSession:
    """
    One import, from upload to completion or cancellation.

    Usage:
        session = ImportSession()
        session.upload("usuarios.csv", content)
        session.set_column_mapping("Correo", TargetField.EMAIL)
        if session.request_preview():
            summary = session.commit(lambda: get_user_service().create_from_candidate)
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        on_close: Optional[Callable[[str], None]] = None,
    ):
        self.id = session_id or str(uuid.uuid4())
        self.state = WorkflowState.UPLOAD
        self.document: Optional[TabularDocument] = None
        self.mapping = ColumnMapping()
        self.mapping_errors: list[str] = []
        self.data_errors: list[str] = []
        self.progress = 0
        self.summary: Optional[CommitSummary] = None
        # Kept for per-row diagnostics; only counts leave the session
        self.batch_result: Optional[BatchResult] = None
        # Message of the last failed step; cleared by the next transition
        self.last_error: Optional[str] = None
        self.created_at = datetime.utcnow()
        self.updated_at = self.created_at
        self._on_close = on_close
        self._lock = Lock()

    # ===================
    # UPLOAD
    # ===================

    def upload(self, filename: Optional[str], content: Union[bytes, str]) -> TabularDocument:
        """
        Parse an uploaded file and auto-map its columns.

        Raises:
            CSVParseError: Wrong extension, undecodable or empty file.
                The session stays in UPLOAD.
            InvalidTransitionError: If not in UPLOAD
        """
        with self._lock:
            self._ensure_state(WorkflowState.UPLOAD, "upload")
            try:
                document = parse_csv_upload(filename, content)
            except CSVParseError as e:
                self._apply(transition(self.state, WorkflowEvent.PARSE_FAILED), error=e)
                raise
            self._apply(transition(self.state, WorkflowEvent.PARSE_SUCCEEDED), document=document)
            return document

    # ===================
    # MAPPING
    # ===================

    def set_column_mapping(self, csv_column: str, target: Optional[TargetField]) -> ColumnMapping:
        """
        Assign a column to a field (or clear it with target=None).

        Raises:
            ValidationError: If the column is not a header of the document
            InvalidTransitionError: If not in MAPPING
        """
        with self._lock:
            self._ensure_state(WorkflowState.MAPPING, WorkflowEvent.MAPPING_EDITED.value)
            if csv_column not in self.document.headers:
                raise ValidationError(
                    message=f'Column "{csv_column}" is not in the uploaded file',
                    code="IMPORT_UNKNOWN_COLUMN",
                    details={"csv_column": csv_column, "headers": self.document.headers}
                )
            mapping = self.mapping.with_column(csv_column, target)
            self._apply(transition(self.state, WorkflowEvent.MAPPING_EDITED), mapping=mapping)
            return self.mapping

    def request_preview(self) -> bool:
        """
        Validate mapping and data; move to PREVIEW if both are clean.

        Returns:
            True if the session moved to PREVIEW. On False the error lists
            are populated and the session stays in MAPPING.
        """
        with self._lock:
            self._ensure_state(WorkflowState.MAPPING, WorkflowEvent.PREVIEW_REQUESTED.value)
            mapping_errors = validate_mapping(self.mapping)
            data_errors = validate_data(self.document, self.mapping)
            passed = not mapping_errors and not data_errors
            self._apply(
                transition(self.state, WorkflowEvent.PREVIEW_REQUESTED, validation_passed=passed),
                mapping_errors=mapping_errors,
                data_errors=data_errors,
            )
            return passed

    def back(self) -> WorkflowState:
        """PREVIEW -> MAPPING (mapping kept), MAPPING -> UPLOAD (file dropped)."""
        with self._lock:
            self._apply(transition(self.state, WorkflowEvent.BACK))
            return self.state

    # ===================
    # PREVIEW
    # ===================

    def preview_page(self, page: int = 1, page_size: Optional[int] = None) -> PaginatedResponse:
        """
        Transformed candidate users for one page of the preview table.

        Raises:
            InvalidTransitionError: If not in PREVIEW
        """
        if page_size is None:
            page_size = get_settings().import_preview_page_size

        with self._lock:
            self._ensure_state(WorkflowState.PREVIEW, "preview")
            rows = self.document.rows
            mapping = self.mapping

        start = (page - 1) * page_size
        records = [transform_row(row, mapping) for row in rows[start:start + page_size]]

        return PaginatedResponse.create(
            data=[record.model_dump(mode="json") for record in records],
            total=len(rows),
            page=page,
            page_size=page_size
        )

    # ===================
    # COMMIT
    # ===================

    def commit(
        self,
        resolve_creator: CreatorResolver,
        max_workers: Optional[int] = None,
    ) -> CommitSummary:
        """
        Create every previewed user.

        The creator is resolved and all rows transformed before any user is
        submitted; a failure there is a whole-batch failure and returns the
        session to PREVIEW. Per-user failures only show up in the counts.

        An interrupt (KeyboardInterrupt, task cancellation) also returns the
        session to PREVIEW before it propagates, so it never stays stuck in
        IMPORTING.

        Raises:
            CommitBatchError: If the batch could not be attempted
            InvalidTransitionError: If not in PREVIEW
        """
        with self._lock:
            self._apply(transition(self.state, WorkflowEvent.COMMIT_REQUESTED))
            document, mapping = self.document, self.mapping

        try:
            create_one = resolve_creator()
            records = transform_document(document, mapping)
            batch_result = commit_batch(
                records,
                create_one,
                on_progress=self._record_progress,
                max_workers=max_workers
            )
            with self._lock:
                self._apply(
                    transition(self.state, WorkflowEvent.COMMIT_SETTLED),
                    batch_result=batch_result
                )
                return self.summary
        except Exception as e:
            error = CommitBatchError(str(e), details={"session_id": self.id})
            self._fail_commit(error)
            raise error from e
        except BaseException as e:
            self._fail_commit(CommitBatchError(
                f"interrupted ({type(e).__name__})",
                details={"session_id": self.id}
            ))
            raise

    # ===================
    # CANCEL
    # ===================

    def cancel(self) -> bool:
        """
        Discard the session unless users are being created.

        Returns:
            True if the session was cancelled, False if refused (IMPORTING)
            or already finished.
        """
        with self._lock:
            result = transition(self.state, WorkflowEvent.CANCEL)
            if result.refused:
                logger.info("import_cancel_refused", session_id=self.id, state=self.state.value)
                return False
            self._apply(result)
            return True

    # ===================
    # SERIALIZATION
    # ===================

    def to_response(self) -> ImportSessionResponse:
        """Snapshot for the API."""
        with self._lock:
            document = self.document
            return ImportSessionResponse(
                session_id=self.id,
                state=self.state,
                filename=document.filename if document else None,
                headers=list(document.headers) if document else [],
                row_count=document.row_count if document else 0,
                mapping=[
                    MappingEntrySchema(csv_column=e.csv_column, field=e.field)
                    for e in self.mapping
                ],
                mapping_errors=list(self.mapping_errors),
                data_errors=list(self.data_errors),
                last_error=self.last_error,
                progress=self.progress,
                result=self.summary,
                actions=[a.value for a in available_actions(self.state)],
                target_fields=target_field_catalog(),
                created_at=self.created_at,
                updated_at=self.updated_at,
            )

    # ===================
    # HELPER METHODS
    # ===================

    def _ensure_state(self, expected: WorkflowState, action: str) -> None:
        if self.state != expected:
            raise InvalidTransitionError(self.state.value, action)

    def _record_progress(self, percent: int) -> None:
        with self._lock:
            if percent > self.progress:
                self.progress = percent

    def _fail_commit(self, error: CommitBatchError) -> None:
        with self._lock:
            if self.state == WorkflowState.IMPORTING:
                self._apply(transition(self.state, WorkflowEvent.COMMIT_BATCH_FAILED), error=error)

    def _apply(self, step: Transition, **payload: Any) -> None:
        """Apply a transition's effects, then move to its state."""
        previous = self.state
        self.last_error = None

        for effect in step.effects:
            if effect == Effect.STORE_DOCUMENT:
                self.document = payload["document"]
            elif effect == Effect.APPLY_AUTO_MAPPING:
                self.mapping = auto_map(self.document.headers)
            elif effect == Effect.CLEAR_ERRORS:
                self.mapping_errors = []
                self.data_errors = []
            elif effect == Effect.UPDATE_MAPPING:
                self.mapping = payload["mapping"]
            elif effect == Effect.STORE_VALIDATION_ERRORS:
                self.mapping_errors = payload["mapping_errors"]
                self.data_errors = payload["data_errors"]
            elif effect == Effect.CLEAR_DATA_ERRORS:
                self.data_errors = []
            elif effect == Effect.DISCARD_DOCUMENT:
                self.document = None
                self.mapping = ColumnMapping()
                self.mapping_errors = []
                self.data_errors = []
            elif effect == Effect.START_COMMIT:
                self.progress = 0
                self.summary = None
                self.batch_result = None
            elif effect == Effect.RECORD_RESULT:
                self.batch_result = payload["batch_result"]
                self.summary = self.batch_result.summary()
                self.progress = 100
            elif effect in (Effect.SURFACE_PARSE_ERROR, Effect.SURFACE_COMMIT_ERROR):
                error = payload.get("error")
                self.last_error = getattr(error, "message", None) or str(error)
                logger.warning(
                    "import_step_failed",
                    session_id=self.id,
                    effect=effect.value,
                    error=str(error),
                    error_type=type(error).__name__
                )
            elif effect == Effect.DISCARD_SESSION:
                self.document = None
                self.mapping = ColumnMapping()
                self._close()
            elif effect == Effect.CLOSE_SESSION:
                self._close()

        self.state = step.state
        self.updated_at = datetime.utcnow()

        if previous != self.state:
            logger.info(
                "import_state_changed",
                session_id=self.id,
                from_state=previous.value,
                to_state=self.state.value
            )

    def _close(self) -> None:
        if self._on_close:
            self._on_close(self.id)
