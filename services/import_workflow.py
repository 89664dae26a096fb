"""
User import workflow state machine.

transition(state, event) is pure: it returns the next state and the
effects the session must apply, or raises InvalidTransitionError. The
session (services/import_session_service.py) owns the data and applies
the effects.

    upload --parse_succeeded--> mapping
    upload --parse_failed--> upload
    mapping --mapping_edited--> mapping
    mapping --preview_requested [valid]--> preview
    mapping --preview_requested [invalid]--> mapping
    mapping --back--> upload
    preview --back--> mapping
    preview --commit_requested--> importing
    importing --commit_settled--> completed
    importing --commit_batch_failed--> preview
    upload|mapping|preview --cancel--> cancelled
    importing --cancel--> importing (refused while users are being created)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from exceptions import InvalidTransitionError
from models.user_import import WorkflowState


class WorkflowEvent(str, Enum):
    """Things that can happen to an import session."""
    PARSE_SUCCEEDED = "parse_succeeded"
    PARSE_FAILED = "parse_failed"
    MAPPING_EDITED = "mapping_edited"
    PREVIEW_REQUESTED = "preview_requested"
    BACK = "back"
    COMMIT_REQUESTED = "commit_requested"
    COMMIT_SETTLED = "commit_settled"
    COMMIT_BATCH_FAILED = "commit_batch_failed"
    CANCEL = "cancel"


class Effect(str, Enum):
    """Side effects the session applies after a transition."""
    STORE_DOCUMENT = "store_document"
    APPLY_AUTO_MAPPING = "apply_auto_mapping"
    CLEAR_ERRORS = "clear_errors"
    SURFACE_PARSE_ERROR = "surface_parse_error"
    UPDATE_MAPPING = "update_mapping"
    STORE_VALIDATION_ERRORS = "store_validation_errors"
    CLEAR_DATA_ERRORS = "clear_data_errors"
    DISCARD_DOCUMENT = "discard_document"
    START_COMMIT = "start_commit"
    RECORD_RESULT = "record_result"
    SURFACE_COMMIT_ERROR = "surface_commit_error"
    CLOSE_SESSION = "close_session"
    DISCARD_SESSION = "discard_session"


@dataclass(frozen=True)
class Transition:
    """Next state plus the effects to apply, in order."""
    state: WorkflowState
    effects: tuple[Effect, ...] = ()

    @property
    def refused(self) -> bool:
        return not self.effects


_S = WorkflowState
_E = WorkflowEvent

_TRANSITIONS: dict[tuple[WorkflowState, WorkflowEvent], Transition] = {
    (_S.UPLOAD, _E.PARSE_SUCCEEDED): Transition(
        _S.MAPPING,
        (Effect.STORE_DOCUMENT, Effect.APPLY_AUTO_MAPPING, Effect.CLEAR_ERRORS)
    ),
    (_S.UPLOAD, _E.PARSE_FAILED): Transition(_S.UPLOAD, (Effect.SURFACE_PARSE_ERROR,)),
    (_S.MAPPING, _E.MAPPING_EDITED): Transition(_S.MAPPING, (Effect.UPDATE_MAPPING,)),
    (_S.MAPPING, _E.BACK): Transition(_S.UPLOAD, (Effect.DISCARD_DOCUMENT,)),
    (_S.PREVIEW, _E.BACK): Transition(_S.MAPPING, (Effect.CLEAR_DATA_ERRORS,)),
    (_S.PREVIEW, _E.COMMIT_REQUESTED): Transition(_S.IMPORTING, (Effect.START_COMMIT,)),
    (_S.IMPORTING, _E.COMMIT_SETTLED): Transition(
        _S.COMPLETED,
        (Effect.RECORD_RESULT, Effect.CLOSE_SESSION)
    ),
    (_S.IMPORTING, _E.COMMIT_BATCH_FAILED): Transition(
        _S.PREVIEW,
        (Effect.SURFACE_COMMIT_ERROR,)
    ),
}

# Preview is guarded by the validators
_PREVIEW_PASSED = Transition(_S.PREVIEW, (Effect.CLEAR_ERRORS,))
_PREVIEW_FAILED = Transition(_S.MAPPING, (Effect.STORE_VALIDATION_ERRORS,))

# States with no user creation in flight
CANCELLABLE_STATES = frozenset({_S.UPLOAD, _S.MAPPING, _S.PREVIEW})


def transition(
    state: WorkflowState,
    event: WorkflowEvent,
    validation_passed: Optional[bool] = None,
) -> Transition:
    """
    Compute the next state for an event.

    Args:
        state: Current state
        event: Event to handle
        validation_passed: Guard result, required for PREVIEW_REQUESTED

    Returns:
        Transition. A cancel that cannot be honoured (importing, or a
        terminal state) returns the current state with no effects.

    Raises:
        InvalidTransitionError: If the event is not legal in this state
    """
    if event == _E.CANCEL:
        if state in CANCELLABLE_STATES:
            return Transition(_S.CANCELLED, (Effect.DISCARD_SESSION,))
        return Transition(state)

    if event == _E.PREVIEW_REQUESTED and state == _S.MAPPING:
        if validation_passed is None:
            raise ValueError("validation_passed is required for preview_requested")
        return _PREVIEW_PASSED if validation_passed else _PREVIEW_FAILED

    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(state.value, event.value) from None


def is_allowed(state: WorkflowState, event: WorkflowEvent) -> bool:
    """True if the event would change something in this state."""
    if event == _E.CANCEL:
        return state in CANCELLABLE_STATES
    if event == _E.PREVIEW_REQUESTED:
        return state == _S.MAPPING
    return (state, event) in _TRANSITIONS


# Events a client can trigger; the rest come from parsing and committing
USER_ACTIONS = (
    _E.MAPPING_EDITED,
    _E.PREVIEW_REQUESTED,
    _E.BACK,
    _E.COMMIT_REQUESTED,
    _E.CANCEL,
)


def available_actions(state: WorkflowState) -> list[WorkflowEvent]:
    """User actions the client may offer in this state."""
    return [event for event in USER_ACTIONS if is_allowed(state, event)]
