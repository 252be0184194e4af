"""Job lifecycle transition rules."""

from downloader.errors import ApiError
from downloader.schemas.job import JobStatus

_TERMINAL_STATES: set[JobStatus] = {
    JobStatus.DONE,
    JobStatus.ERROR,
}

_ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.QUEUED: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.PROCESSING, JobStatus.DONE, JobStatus.ERROR},
    JobStatus.DONE: set(),
    JobStatus.ERROR: set(),
}


def is_terminal(status: JobStatus) -> bool:
    return status in _TERMINAL_STATES


def allowed_next_statuses(status: JobStatus) -> list[JobStatus]:
    """Return deterministically ordered allowed successors for a status."""
    return sorted(_ALLOWED_TRANSITIONS.get(status, set()), key=lambda s: s.value)


def ensure_transition(old_status: JobStatus, new_status: JobStatus) -> None:
    """Validate transition according to lifecycle rules."""
    if old_status in _TERMINAL_STATES:
        raise ApiError(
            status_code=409,
            code="FSM_TERMINAL_IMMUTABLE",
            message="Terminal state cannot be mutated",
            details={
                "current_status": old_status.value,
                "attempted_status": new_status.value,
                "allowed_next_statuses": [],
            },
        )

    if new_status not in _ALLOWED_TRANSITIONS.get(old_status, set()):
        raise ApiError(
            status_code=409,
            code="FSM_TRANSITION_INVALID",
            message="Invalid status transition",
            details={
                "current_status": old_status.value,
                "attempted_status": new_status.value,
                "allowed_next_statuses": [s.value for s in allowed_next_statuses(old_status)],
            },
        )
